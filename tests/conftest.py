import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from replayer.errors import TransportError
from replayer.models import LogRecord, ResponseInfo


class FakeSender:
    """Records every send with its wall-clock time and answers from a script.

    ``responses`` maps a URL to an int status, an Exception to raise, or a
    callable returning either; unknown URLs answer 200.
    """

    def __init__(self, responses=None, delay: float = 0.0):
        self.responses = responses or {}
        self.delay = delay
        self.calls: list[tuple[str, str, dict, str, datetime]] = []

    async def send(self, method, url, headers, body):
        self.calls.append((method, url, headers, body, datetime.now(timezone.utc)))
        if self.delay:
            await asyncio.sleep(self.delay)
        answer = self.responses.get(url, 200)
        if callable(answer) and not isinstance(answer, type):
            answer = answer()
        if isinstance(answer, BaseException):
            raise answer
        return ResponseInfo(status_code=answer, reason="OK" if answer == 200 else "", elapsed_ms=1.5)


def make_record(url="https://x.test/a", method="GET", fired_at=None, headers=None, body=""):
    return LogRecord(
        fired_at=fired_at or datetime(2024, 1, 1, tzinfo=timezone.utc),
        method=method,
        url=url,
        headers=headers or {},
        body=body,
    )


def in_future(seconds: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def transport_failure():
    return TransportError("ConnectError: connection refused")


@pytest.fixture
def sample_entry():
    return {
        "accessed_at": "2024-01-01 00:00:00.000 UTC",
        "url": "https://x.test/a",
        "http_method": "GET",
        "http_header": {},
        "http_body": "",
    }
