"""Output formatters for outcomes and the run summary: text or JSON (NDJSON)."""

import json
from typing import Callable

from replayer.models import Outcome


def format_outcome_text(outcome: Outcome) -> str:
    head = f"[{outcome.index}] {outcome.deadline.strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]} {outcome.method} {outcome.url}"
    if outcome.response is not None:
        r = outcome.response
        status = f"{r.status_code} {r.reason}".strip()
        return f"{head} -> {status} ({r.elapsed_ms:.1f}ms)"
    return f"{head} -> {outcome.kind.value.upper()}: {outcome.error}"


def format_outcome_json(outcome: Outcome) -> str:
    return json.dumps(outcome.to_dict())


def format_summary_text(summary: dict) -> str:
    lines = [
        "=" * 60,
        "REPLAY RESULTS",
        "=" * 60,
        f"  Total Requests:    {summary['total']}",
        f"  Responses:         {summary['responses']}",
        f"  Deadline Elapsed:  {summary['deadline_elapsed']}",
        f"  Transport Errors:  {summary['transport_errors']}",
        f"  Cancelled:         {summary['cancelled']}",
    ]
    if summary["status_counts"]:
        lines.append("  Status Codes:")
        for code, count in summary["status_counts"].items():
            lines.append(f"    {code}  {count}")
    if summary["responses"]:
        lines.extend([
            f"  Latency Avg:       {summary['latency_avg_ms']:.3f}ms",
            f"  Latency P50:       {summary['latency_p50_ms']:.3f}ms",
            f"  Latency P95:       {summary['latency_p95_ms']:.3f}ms",
            f"  Latency P99:       {summary['latency_p99_ms']:.3f}ms",
        ])
    lines.append("=" * 60)
    return "\n".join(lines)


def format_summary_json(summary: dict) -> str:
    return json.dumps({"summary": summary})


def get_formatters(output_format: str = "text") -> tuple[Callable[[Outcome], str], Callable[[dict], str]]:
    """Return (outcome formatter, summary formatter) for the output format."""
    if output_format == "json":
        return format_outcome_json, format_summary_json
    return format_outcome_text, format_summary_text
