"""HTTP sender backed by a shared httpx.AsyncClient."""

import logging
import time
from typing import Optional, Protocol

import httpx

from replayer.errors import TransportError
from replayer.models import ResponseInfo

logger = logging.getLogger(__name__)


class Sender(Protocol):
    async def send(
        self, method: str, url: str, headers: dict[str, str], body: str
    ) -> ResponseInfo:
        ...


class HttpxSender:
    """Sends replayed requests; safe to call from many tasks at once.

    Use as an async context manager so the underlying connection pool
    is closed when the run ends.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        follow_redirects: bool = True,
        verify: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.follow_redirects = follow_redirects
        self.verify = verify
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "HttpxSender":
        kwargs = {}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=self.follow_redirects,
            verify=self.verify,
            **kwargs,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send(
        self, method: str, url: str, headers: dict[str, str], body: str
    ) -> ResponseInfo:
        if self._client is None:
            raise RuntimeError("HttpxSender used outside of 'async with'")

        start = time.monotonic()
        try:
            response = await self._client.request(
                method,
                url,
                headers=headers,
                content=body.encode("utf-8") if body else None,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e
        elapsed_ms = (time.monotonic() - start) * 1000

        logger.debug("%s %s -> %d in %.1fms", method, url, response.status_code, elapsed_ms)
        return ResponseInfo(
            status_code=response.status_code,
            reason=response.reason_phrase,
            http_version=response.http_version,
            elapsed_ms=elapsed_ms,
            content_length=len(response.content),
        )
