"""
Byte sources that feed a :class:`~fetchbody.body.Body`.

``ByteStream`` is a push-style source for transports that deliver chunks
through callbacks. The ``aiter_*`` helpers pull an HTTP/1.1 body off an
``asyncio.StreamReader`` according to its framing.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from .errors import ProtocolError
from .headers import Headers

DEFAULT_CHUNK_SIZE = 8192

_DATA = "data"
_END = "end"
_ERROR = "error"


class ByteStream:
    """
    Push-style byte source.

    A producer calls ``write()`` for each chunk and then exactly one of
    ``end()`` or ``error()``. Iterating the stream yields the chunks in the
    order they were written, stops at ``end()`` and raises the exception given
    to ``error()``. Anything pushed after ``end()`` or ``error()`` is dropped.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[tuple[str, object]] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, chunk: bytes) -> None:
        if self._closed:
            return
        self._queue.put_nowait((_DATA, chunk))

    def end(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait((_END, None))

    def error(self, exc: BaseException) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait((_ERROR, exc))

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            kind, payload = await self._queue.get()
            if kind == _DATA:
                yield payload  # type: ignore[misc]
            elif kind == _ERROR:
                raise payload  # type: ignore[misc]
            else:
                return

    def __repr__(self) -> str:
        return f"<ByteStream {'closed' if self._closed else 'open'}>"


async def aiter_chunked(
    reader: asyncio.StreamReader, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> AsyncIterator[bytes]:
    """
    Async iterate over a body with chunked transfer encoding.

    Raises:
        ProtocolError: If a chunk size line is malformed or the connection
            closes in the middle of a chunk
    """
    while True:
        line = await reader.readline()
        if not line:
            raise ProtocolError("connection closed before last chunk")
        # Chunk extensions after ';' are ignored
        size_field = line.split(b";", 1)[0].strip()
        try:
            size = int(size_field, 16)
        except ValueError:
            raise ProtocolError(f"invalid chunk size: {size_field!r}") from None
        if size < 0:
            raise ProtocolError(f"invalid chunk size: {size_field!r}")

        if size == 0:
            # Skip trailers up to the terminating blank line
            while True:
                trailer = await reader.readline()
                if not trailer or trailer in (b"\r\n", b"\n"):
                    return

        remaining = size
        while remaining > 0:
            data = await reader.read(min(remaining, chunk_size))
            if not data:
                raise ProtocolError("connection closed in the middle of a chunk")
            remaining -= len(data)
            yield data

        # Consume CRLF after chunk
        try:
            await reader.readexactly(2)
        except asyncio.IncompleteReadError:
            raise ProtocolError("connection closed in the middle of a chunk") from None


async def aiter_content_length(
    reader: asyncio.StreamReader, length: int, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> AsyncIterator[bytes]:
    """Async iterate over exactly ``length`` body bytes."""
    remaining = length
    while remaining > 0:
        data = await reader.read(min(remaining, chunk_size))
        if not data:
            raise ProtocolError(
                f"connection closed after {length - remaining} of {length} body bytes"
            )
        remaining -= len(data)
        yield data


async def aiter_until_close(
    reader: asyncio.StreamReader, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> AsyncIterator[bytes]:
    """Async iterate until the connection closes."""
    while True:
        data = await reader.read(chunk_size)
        if not data:
            return
        yield data


def iter_body(
    reader: asyncio.StreamReader,
    headers: Headers,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> AsyncIterator[bytes]:
    """
    Pick the body iterator matching the response framing.

    Args:
        reader: Stream positioned at the start of the body
        headers: Response headers
        chunk_size: Maximum size of each chunk read from the stream

    Returns:
        Async iterator over the raw body bytes
    """
    transfer_encoding = (headers.get("transfer-encoding") or "").lower()
    if "chunked" in transfer_encoding:
        return aiter_chunked(reader, chunk_size)

    content_length = headers.get("content-length")
    if content_length is not None:
        try:
            length = int(content_length.strip())
        except ValueError:
            raise ProtocolError(f"invalid content-length: {content_length!r}") from None
        if length < 0:
            raise ProtocolError(f"invalid content-length: {content_length!r}")
        return aiter_content_length(reader, length, chunk_size)

    return aiter_until_close(reader, chunk_size)
