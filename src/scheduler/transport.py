"""HTTP fetch primitive for keepalive pings."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx


@dataclass
class TransportResponse:
    ok: bool
    status: int
    status_text: str


class HttpTransport:
    """Performs one HTTP request with a hard overall deadline.

    ``ok`` means the final response is 2xx or 3xx (redirects are followed).
    Raises on transport failures; a deadline overrun raises ``TimeoutError``.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: str | None = None,
        timeout_ms: int,
    ) -> TransportResponse:
        timeout = timeout_ms / 1000
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            try:
                async with asyncio.timeout(timeout):
                    resp = await client.request(method, url, headers=headers, content=body)
            except (TimeoutError, httpx.TimeoutException) as exc:
                msg = f"Request timed out after {timeout_ms}ms"
                raise TimeoutError(msg) from exc
        return TransportResponse(
            ok=not resp.is_error,
            status=resp.status_code,
            status_text=resp.reason_phrase,
        )
