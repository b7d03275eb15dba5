"""
Response body collection and decoding.

A body is read exactly once. Streaming sources are collected through
:class:`BodyCollector`, which enforces the size and time limits and settles
its future a single time no matter how the source, the limits and the timer
race each other.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from typing import Any, Union

from . import charset
from .errors import (
    BodyParseError,
    BodyStreamError,
    BodyTimeoutError,
    BodyUsedError,
    SizeLimitError,
)
from .headers import Headers

logger = logging.getLogger(__name__)

BodySource = Union[str, bytes, bytearray, memoryview, AsyncIterable[bytes], Iterable[bytes]]


class BodyState(enum.Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    ABORTED = "aborted"
    COMPLETED = "completed"
    FAILED = "failed"


class BodyCollector:
    """
    Event-driven accumulator for one body read.

    Sources report ``feed`` (a chunk arrived), ``fail`` (the source broke) and
    ``finish`` (the source ended). The collector turns those events, plus its
    own timer, into exactly one outcome on the future returned by ``start``.
    Events that arrive once the outcome is decided are ignored.

    Args:
        url: Address of the resource, used in error messages
        size: Maximum body size in bytes, 0 for no limit
        timeout: Maximum time in seconds to wait for the end, 0 for no limit
        loop: Event loop that owns the future and the timer
    """

    def __init__(
        self,
        url: str | None = None,
        size: int = 0,
        timeout: float = 0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.url = url
        self.size = size
        self.timeout = timeout
        self.state = BodyState.IDLE
        self.chunks: list[bytes] = []
        self.bytes_read = 0
        self._loop = loop
        self._future: asyncio.Future[bytes] | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def settled(self) -> bool:
        return self.state in (BodyState.ABORTED, BodyState.COMPLETED, BodyState.FAILED)

    def start(self) -> asyncio.Future[bytes]:
        if self.state is not BodyState.IDLE:
            raise RuntimeError(f"collector already started for: {self.url}")

        loop = self._loop or asyncio.get_running_loop()
        self.state = BodyState.COLLECTING
        self.chunks = []
        self.bytes_read = 0
        self._future = loop.create_future()

        # allow timeout on slow response body
        if self.timeout:
            self._timer = loop.call_later(self.timeout, self._expire)
        return self._future

    def feed(self, chunk: bytes | None) -> None:
        if self.state is not BodyState.COLLECTING or chunk is None:
            return

        data = bytes(chunk)
        if self.size and self.bytes_read + len(data) > self.size:
            self._settle(
                BodyState.ABORTED,
                error=SizeLimitError(f"content size at {self.url} over limit: {self.size}", self.size),
            )
            return

        self.chunks.append(data)
        self.bytes_read += len(data)

    def fail(self, exc: BaseException) -> None:
        if self.state is not BodyState.COLLECTING:
            return
        error = BodyStreamError(f"invalid response body at: {self.url} reason: {exc}", exc)
        error.__cause__ = exc
        self._settle(BodyState.FAILED, error=error)

    def finish(self) -> None:
        if self.state is not BodyState.COLLECTING:
            return
        self._settle(BodyState.COMPLETED, result=b"".join(self.chunks))

    def close(self) -> None:
        """Stop collecting without reporting an outcome."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.state is BodyState.COLLECTING:
            self.state = BodyState.ABORTED

    def _expire(self) -> None:
        self._timer = None
        if self.state is not BodyState.COLLECTING:
            return
        self._settle(
            BodyState.ABORTED,
            error=BodyTimeoutError(f"response timeout at {self.url} over limit: {self.timeout}", self.timeout),
        )

    def _settle(
        self,
        state: BodyState,
        result: bytes | None = None,
        error: BaseException | None = None,
    ) -> None:
        assert self._future is not None
        self.state = state
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        logger.debug("body at %s %s after %d bytes", self.url, state.value, self.bytes_read)

        if self._future.done():
            # The awaiting task was cancelled; nothing left to report to.
            return
        if error is not None:
            self._future.set_exception(error)
        else:
            self._future.set_result(result if result is not None else b"")


async def _aiter_sync(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk
        # let the timer run between chunks
        await asyncio.sleep(0)


class Body:
    """
    Single-use response body.

    The body may be given as ``str``/``bytes`` or as an (async) iterable of
    byte chunks. ``read()``, ``text()`` and ``json()`` each consume it; any
    second call raises :class:`BodyUsedError`.

    Args:
        source: Body content or byte source
        headers: Response headers, consulted for the Content-Type charset
        url: Address of the resource, used in error messages
        size: Maximum body size in bytes, 0 for no limit
        timeout: Maximum time in seconds to collect the body, 0 for no limit
        loop: Event loop used for collection; the running loop by default
    """

    def __init__(
        self,
        source: BodySource | None,
        *,
        headers: Headers | Iterable[tuple[str, str]] | dict[str, str] | None = None,
        url: str | None = None,
        size: int = 0,
        timeout: float = 0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if size < 0:
            raise ValueError("size must be non-negative")
        if timeout < 0:
            raise ValueError("timeout must be non-negative")

        self._source = b"" if source is None else source
        self.headers = headers if isinstance(headers, Headers) else Headers(headers)
        self.url = url
        self.size = size
        self.timeout = timeout
        self._loop = loop
        self._used = False
        self._collector: BodyCollector | None = None

    @property
    def body_used(self) -> bool:
        return self._used

    @property
    def state(self) -> BodyState:
        if self._collector is None:
            return BodyState.IDLE
        return self._collector.state

    async def read(self) -> bytes:
        """Collect the raw body bytes."""
        return await self._collect()

    async def text(self, encoding: str = "utf-8") -> str:
        """Collect the body and decode it using the detected charset."""
        data = await self._collect()
        return charset.decode(data, self.headers.get("content-type"), encoding)

    async def json(self) -> Any:
        """Collect the body, decode it and parse it as JSON."""
        text = await self.text()
        try:
            return json.loads(text)
        except (ValueError, RecursionError) as exc:
            raise BodyParseError(f"invalid json response body at: {self.url} reason: {exc}") from exc

    async def _collect(self) -> bytes:
        if self._used:
            raise BodyUsedError(f"body used already for: {self.url}")
        self._used = True

        source = self._source
        if isinstance(source, (str, bytes, bytearray, memoryview)):
            data = source.encode("utf-8") if isinstance(source, str) else bytes(source)
            # Already in memory: nothing to wait for, so no limits apply.
            self._collector = BodyCollector(self.url, loop=self._loop)
            result = self._collector.start()
            self._collector.feed(data)
            self._collector.finish()
            return await result

        if isinstance(source, AsyncIterable):
            chunks = source
        else:
            chunks = _aiter_sync(source)

        self._collector = collector = BodyCollector(self.url, self.size, self.timeout, self._loop)
        result = collector.start()
        loop = self._loop or asyncio.get_running_loop()
        pump = loop.create_task(self._pump(collector, chunks))
        try:
            return await result
        finally:
            collector.close()
            if not pump.done():
                pump.cancel()
            pump.add_done_callback(self._pump_done)

    def _pump_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("byte source for %s failed to close: %s", self.url, exc)

    @staticmethod
    async def _pump(collector: BodyCollector, chunks: AsyncIterable[bytes]) -> None:
        iterator = chunks.__aiter__()
        try:
            async for chunk in iterator:
                if collector.settled:
                    return
                collector.feed(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # handle stream error, such as malformed chunked framing
            collector.fail(exc)
        else:
            collector.finish()
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

    def __repr__(self) -> str:
        return f"<Body [{self.state.value}]>"
