"""Access log record, scheduled task, and per-request outcome models."""

import ipaddress
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional
from urllib.parse import urlsplit

from replayer.errors import DecodeError, InvalidShift

HTTP_METHODS = ("GET", "HEAD", "POST", "PUT", "DELETE", "CONNECT", "OPTIONS", "TRACE", "PATCH")

# YYYY-MM-DD HH:MM:SS[.fraction] UTC
TIMESTAMP_PATTERN = re.compile(
    r"([0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2})(?:\.([0-9]{1,9}))? UTC"
)
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

URL_SCHEMES = ("http", "https")
HOSTNAME_PATTERN = re.compile(r"[a-z0-9_-]+(?:\.[a-z0-9_-]+)*\.?")


def parse_accessed_at(text: str) -> datetime:
    """Parse an access timestamp into an aware UTC datetime.

    Fractions longer than six digits are truncated to microseconds.
    """
    match = TIMESTAMP_PATTERN.fullmatch(text)
    if not match:
        raise ValueError(f"{text!r} does not match 'YYYY-MM-DD HH:MM:SS[.fraction] UTC'")

    base, fraction = match.groups()
    dt = datetime.strptime(base, TIMESTAMP_FORMAT)
    if fraction:
        dt = dt.replace(microsecond=int(fraction[:6].ljust(6, "0")))
    return dt.replace(tzinfo=timezone.utc)


def validate_url(text: str) -> str:
    """Return ``text`` unchanged if it is an absolute http(s) URL, else raise ValueError."""
    parts = urlsplit(text)
    if parts.scheme.lower() not in URL_SCHEMES:
        raise ValueError(f"{text!r} is not an absolute http(s) URL")
    host = parts.hostname
    if not host:
        raise ValueError(f"{text!r} has no host")
    if ":" in host:
        # bracketed IPv6 literal, optionally with a zone id
        ipaddress.IPv6Address(host.split("%")[0])
    else:
        try:
            ascii_host = host.encode("idna").decode("ascii")
        except UnicodeError as e:
            raise ValueError(f"{text!r} has an invalid host: {e}") from e
        if not HOSTNAME_PATTERN.fullmatch(ascii_host.lower()):
            raise ValueError(f"{text!r} has an invalid host {host!r}")
    # .port raises ValueError for a non-numeric or out-of-range port
    _ = parts.port
    return text


@dataclass(frozen=True)
class LogRecord:
    """One recorded access. Headers are a read-only mapping; records are not hashable."""

    fired_at: datetime
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""

    def __post_init__(self):
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @classmethod
    def from_fields(
        cls,
        accessed_at: str,
        url: str,
        http_method: str,
        http_header: Optional[dict] = None,
        http_body: str = "",
    ) -> "LogRecord":
        """Validate raw access log fields and build a record.

        Raises DecodeError naming the first field that fails.
        """
        try:
            fired_at = parse_accessed_at(accessed_at)
        except ValueError as e:
            raise DecodeError(f"date and time format is not correct: {e}", field="accessed_at") from e

        try:
            validate_url(url)
        except ValueError as e:
            raise DecodeError(f"url format is not correct: {e}", field="url") from e

        method = http_method.upper()
        if method not in HTTP_METHODS:
            raise DecodeError(f"method is not correct: {http_method!r}", field="http_method")

        headers = dict(http_header or {})
        for name, value in headers.items():
            if not isinstance(name, str) or not isinstance(value, str):
                raise DecodeError(
                    f"header {name!r} must map a string to a string", field="http_header"
                )

        return cls(
            fired_at=fired_at,
            method=method,
            url=url,
            headers=headers,
            body=http_body,
        )


@dataclass(frozen=True)
class ScheduledTask:
    index: int
    deadline: datetime
    record: LogRecord


def schedule_for(index: int, record: LogRecord, shift: timedelta) -> ScheduledTask:
    try:
        deadline = record.fired_at + shift
    except OverflowError as e:
        raise InvalidShift(
            f"shift {shift} moves record {index} ({record.fired_at.isoformat()}) out of the datetime range"
        ) from e
    return ScheduledTask(index=index, deadline=deadline, record=record)


class OutcomeKind(str, Enum):
    RESPONSE = "response"
    DEADLINE_ELAPSED = "deadline_elapsed"
    TRANSPORT_ERROR = "transport_error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ResponseInfo:
    status_code: int
    reason: str = ""
    http_version: str = ""
    elapsed_ms: float = 0.0
    content_length: int = 0


@dataclass(frozen=True)
class Outcome:
    """Result of replaying one record. Only RESPONSE counts as success."""

    index: int
    kind: OutcomeKind
    method: str
    url: str
    deadline: datetime
    response: Optional[ResponseInfo] = None
    error: Optional[str] = None
    sent_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.RESPONSE

    @classmethod
    def for_task(cls, task: ScheduledTask, kind: OutcomeKind, **kwargs) -> "Outcome":
        return cls(
            index=task.index,
            kind=kind,
            method=task.record.method,
            url=task.record.url,
            deadline=task.deadline,
            **kwargs,
        )

    def to_dict(self) -> dict:
        d = {
            "index": self.index,
            "kind": self.kind.value,
            "ok": self.ok,
            "method": self.method,
            "url": self.url,
            "deadline": self.deadline.isoformat(),
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "error": self.error,
            "response": None,
        }
        if self.response is not None:
            d["response"] = {
                "status_code": self.response.status_code,
                "reason": self.response.reason,
                "http_version": self.response.http_version,
                "elapsed_ms": round(self.response.elapsed_ms, 3),
                "content_length": self.response.content_length,
            }
        return d
