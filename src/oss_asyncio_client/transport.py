"""HTTP transport used by the client.

The client only needs ``send`` and ``close``; anything implementing
:class:`Transport` can be injected instead of the aiohttp default.
"""

import asyncio
import dataclasses
from collections.abc import Mapping
from typing import Protocol

import aiohttp
from yarl import URL

from .exceptions import TransportError


@dataclasses.dataclass(frozen=True)
class Response:
    status: int
    headers: Mapping[str, str]
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    async def send(
        self,
        method: str,
        url: URL,
        headers: Mapping[str, str],
        data: bytes | None = None,
    ) -> Response: ...

    async def close(self) -> None: ...


class AiohttpTransport:
    def __init__(self, timeout: float | None = None):
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def _ensure_session(self):
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self):
        if self._session:
            await self._session.close()
            self._session = None

    async def send(
        self,
        method: str,
        url: URL,
        headers: Mapping[str, str],
        data: bytes | None = None,
    ) -> Response:
        await self._ensure_session()
        try:
            async with self._session.request(
                method, url, headers=headers, data=data
            ) as response:
                body = await response.read()
                return Response(response.status, response.headers.copy(), body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"{method} {url} failed: {e!r}") from e
