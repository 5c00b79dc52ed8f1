"""Configuration: frozen dataclass built from defaults, YAML, env vars, and CLI args."""

import logging
import os
from dataclasses import dataclass, fields
from typing import Optional

import yaml

from replayer.errors import ConfigError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
OUTPUT_FORMATS = ("text", "json")

ENV_VARS = {
    "request_timeout": "REPLAY_REQUEST_TIMEOUT",
    "follow_redirects": "REPLAY_FOLLOW_REDIRECTS",
    "verify_tls": "REPLAY_VERIFY_TLS",
    "run_timeout": "REPLAY_RUN_TIMEOUT",
    "progress_interval": "REPLAY_PROGRESS_INTERVAL",
    "log_level": "REPLAY_LOG_LEVEL",
    "output": "REPLAY_OUTPUT",
}


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _parse_timeout(value) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return None
    seconds = float(value)
    return seconds if seconds > 0 else None


@dataclass(frozen=True)
class ReplayConfig:
    request_timeout: float = 30.0
    follow_redirects: bool = True
    verify_tls: bool = True
    run_timeout: Optional[float] = None
    progress_interval: float = 0.0  # 0 = disabled
    log_level: str = "INFO"
    output: str = "text"


_CONVERTERS = {
    "request_timeout": float,
    "follow_redirects": _parse_bool,
    "verify_tls": _parse_bool,
    "run_timeout": _parse_timeout,
    "progress_interval": float,
    "log_level": lambda v: str(v).upper(),
    "output": lambda v: str(v).lower(),
}


def load_yaml_config(path: Optional[str]) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path.

    Settings may sit under a top-level ``replay:`` key or at the top level.
    """
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data.get("replay", data) or {}


def load_config(yaml_data: Optional[dict] = None, overrides: Optional[dict] = None) -> ReplayConfig:
    """Build ReplayConfig from defaults <- YAML <- env vars <- overrides (highest priority).

    ``overrides`` holds CLI values; entries set to None are ignored.
    """
    known = {f.name for f in fields(ReplayConfig)}
    raw: dict = {}

    for key, value in (yaml_data or {}).items():
        if key not in known:
            logger.warning("Ignoring unknown config key %r", key)
            continue
        raw[key] = value

    for key, env_name in ENV_VARS.items():
        if env_name in os.environ:
            raw[key] = os.environ[env_name]

    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    kwargs = {}
    for key, value in raw.items():
        try:
            kwargs[key] = _CONVERTERS[key](value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid value for {key}: {value!r}") from e

    config = ReplayConfig(**kwargs)
    if config.output not in OUTPUT_FORMATS:
        raise ConfigError(f"output must be one of {', '.join(OUTPUT_FORMATS)}, got {config.output!r}")
    if config.log_level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {config.log_level!r}")
    if config.request_timeout <= 0:
        raise ConfigError("request_timeout must be positive")
    return config
