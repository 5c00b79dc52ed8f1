"""access-log-replayer: replay recorded HTTP accesses at their original (shifted) time."""

import asyncio
import logging
import signal
import sys
from argparse import ArgumentParser

from replayer.config import load_config, load_yaml_config
from replayer.decoder import decode_file, decode_text
from replayer.dispatcher import DispatchEngine, build_schedule
from replayer.errors import ReplayError
from replayer.metrics import summarize
from replayer.report import get_formatters
from replayer.sender import HttpxSender
from replayer.shift import parse_shift

logger = logging.getLogger("replayer")


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="replay",
        description="Replay an HTTP access log, firing each request at its recorded time plus a shift.",
    )
    parser.add_argument(
        "access_log",
        nargs="?",
        default=None,
        help="Access log as literal JSON text",
    )
    parser.add_argument(
        "-f", "--file",
        metavar="filepath",
        help="Path to an access log JSON file",
    )
    parser.add_argument(
        "--shift",
        default="0s",
        help="Time shift added to every timestamp (e.g. 2s, 5m, 5h, 1d, 2w; default: 0s)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Cancel requests still pending after this many seconds",
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=None,
        help="Per-request HTTP timeout in seconds (default: 30)",
    )
    parser.add_argument(
        "--no-follow-redirects",
        action="store_true",
        help="Do not follow HTTP redirects",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS certificate verification",
    )
    parser.add_argument(
        "--output",
        choices=["text", "json"],
        default=None,
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [REPLAYER] %(levelname)s %(message)s",
        stream=sys.stderr,
    )


async def replay(records, shift, config) -> list:
    """Run the dispatch engine with a stop event wired to SIGINT/SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _signal_handler():
        logger.info("Shutdown signal received, cancelling pending requests...")
        stop_event.set()

    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not available on this platform or outside the main thread
            pass

    try:
        async with HttpxSender(
            timeout=config.request_timeout,
            follow_redirects=config.follow_redirects,
            verify=config.verify_tls,
        ) as sender:
            engine = DispatchEngine(sender, progress_interval=config.progress_interval)
            return await engine.run(
                records, shift, timeout=config.run_timeout, stop_event=stop_event
            )
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.file is None and args.access_log is None:
        parser.error("please specify log filepath or access log text")
    if args.file is not None and args.access_log is not None:
        parser.error("specify either log filepath or access log text, not both")

    try:
        config = load_config(
            load_yaml_config(args.config),
            overrides={
                "request_timeout": args.request_timeout,
                "follow_redirects": False if args.no_follow_redirects else None,
                "verify_tls": False if args.insecure else None,
                "run_timeout": args.timeout,
                "output": args.output,
                "log_level": "DEBUG" if args.verbose else None,
            },
        )
        _setup_logging(config.log_level)

        if args.file is not None:
            records = decode_file(args.file)
        else:
            records = decode_text(args.access_log)
        shift = parse_shift(args.shift)
        # every deadline must be representable before anything is dispatched
        build_schedule(records, shift)
    except ReplayError as e:
        _setup_logging("INFO")
        logger.error("%s", e)
        return 1

    logger.info("Loaded %d records, shift=%s", len(records), shift)
    outcomes = asyncio.run(replay(records, shift, config))

    format_outcome, format_summary = get_formatters(config.output)
    for outcome in outcomes:
        print(format_outcome(outcome))
    summary = summarize(outcomes)
    print(format_summary(summary))

    return 1 if summary["failures"] else 0


if __name__ == "__main__":
    sys.exit(main())
