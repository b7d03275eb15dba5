from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

from .body import Body, BodySource
from .headers import Headers


class Response:
    """
    HTTP response whose body is read lazily, exactly once.

    Status line and headers are available immediately; ``read()``,
    ``text()`` and ``json()`` collect the body under the configured
    ``size`` and ``timeout`` limits.
    """

    def __init__(
        self,
        status_code: int,
        reason: str,
        http_version: str,
        headers: Headers | Iterable[tuple[str, str]],
        body: BodySource | None,
        *,
        url: str | None = None,
        size: int = 0,
        timeout: float = 0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.http_version = http_version
        self.url = url
        self.headers = headers if isinstance(headers, Headers) else Headers(headers)
        self.body = Body(
            body,
            headers=self.headers,
            url=url,
            size=size,
            timeout=timeout,
            loop=loop,
        )

    @property
    def raw_headers(self) -> list[tuple[str, str]]:
        return self.headers.raw

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def body_used(self) -> bool:
        return self.body.body_used

    async def read(self) -> bytes:
        return await self.body.read()

    async def text(self, encoding: str = "utf-8") -> str:
        return await self.body.text(encoding)

    async def json(self) -> Any:
        return await self.body.json()

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"
