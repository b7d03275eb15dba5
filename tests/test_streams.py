"""Tests for byte sources."""
from __future__ import annotations

import asyncio

import pytest

from fetchbody import Body, ByteStream, Headers
from fetchbody.errors import BodyStreamError, ProtocolError, SizeLimitError
from fetchbody.streams import (
    aiter_chunked,
    aiter_content_length,
    aiter_until_close,
    iter_body,
)


async def _collect(chunks):
    return [chunk async for chunk in chunks]


class TestByteStream:
    """Tests for the push-style byte source."""

    @pytest.mark.asyncio
    async def test_written_chunks_in_order(self):
        """Chunks come out in the order they were written."""
        stream = ByteStream()
        stream.write(b"he")
        stream.write(b"llo")
        stream.end()
        assert await _collect(stream) == [b"he", b"llo"]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_writes_from_callbacks(self):
        """A producer pushing from loop callbacks feeds a Body."""
        stream = ByteStream()
        loop = asyncio.get_running_loop()
        for chunk in (b"call", b"back"):
            loop.call_soon(stream.write, chunk)
        loop.call_later(0.01, stream.end)
        assert await Body(stream).text() == "callback"

    @pytest.mark.asyncio
    async def test_error_raised_to_consumer(self):
        """error() surfaces as BodyStreamError on the body."""
        stream = ByteStream()
        stream.write(b"abc")
        stream.error(ValueError("incorrect header check"))
        with pytest.raises(BodyStreamError, match="reason: incorrect header check"):
            await Body(stream, url="http://example.com").read()

    @pytest.mark.asyncio
    async def test_events_after_end_dropped(self):
        """Writes and errors after end() are ignored."""
        stream = ByteStream()
        stream.write(b"a")
        stream.end()
        stream.write(b"b")
        stream.error(RuntimeError("late"))
        assert await Body(stream).read() == b"a"

    @pytest.mark.asyncio
    async def test_size_limit_on_push_stream(self):
        """Pushed bytes count against the size limit."""
        stream = ByteStream()
        stream.write(b"12345")
        stream.write(b"6")
        stream.end()
        with pytest.raises(SizeLimitError):
            await Body(stream, size=5).read()

    def test_repr(self):
        """ByteStream has a useful repr."""
        stream = ByteStream()
        assert repr(stream) == "<ByteStream open>"
        stream.end()
        assert repr(stream) == "<ByteStream closed>"


class TestChunked:
    """Tests for chunked transfer encoding."""

    @pytest.mark.asyncio
    async def test_chunked_body(self, stream_reader):
        """Chunk payloads are yielded without framing."""
        reader = stream_reader(b"5\r\nhello\r\n6\r\n world\r\n0\r\n\r\n")
        assert b"".join(await _collect(aiter_chunked(reader))) == b"hello world"

    @pytest.mark.asyncio
    async def test_chunk_extensions_and_trailers(self, stream_reader):
        """Chunk extensions and trailer headers are skipped."""
        reader = stream_reader(b"3;name=value\r\nabc\r\n0\r\nX-Trailer: 1\r\n\r\n")
        assert await _collect(aiter_chunked(reader)) == [b"abc"]

    @pytest.mark.asyncio
    async def test_large_chunk_split(self, stream_reader):
        """A chunk larger than chunk_size is yielded in pieces."""
        payload = b"x" * 100
        reader = stream_reader(b"64\r\n" + payload + b"\r\n0\r\n\r\n")
        chunks = await _collect(aiter_chunked(reader, chunk_size=30))
        assert b"".join(chunks) == payload
        assert len(chunks) > 1

    @pytest.mark.asyncio
    async def test_invalid_chunk_size(self, stream_reader):
        """A malformed size line raises ProtocolError."""
        reader = stream_reader(b"zz\r\nhello\r\n0\r\n\r\n")
        with pytest.raises(ProtocolError, match="invalid chunk size"):
            await _collect(aiter_chunked(reader))

    @pytest.mark.asyncio
    async def test_truncated_chunk(self, stream_reader):
        """A connection closing mid-chunk raises ProtocolError."""
        reader = stream_reader(b"a\r\nhello")
        with pytest.raises(ProtocolError):
            await _collect(aiter_chunked(reader))

    @pytest.mark.asyncio
    async def test_missing_last_chunk(self, stream_reader):
        """EOF before the zero-size chunk raises ProtocolError."""
        reader = stream_reader(b"5\r\nhello\r\n")
        with pytest.raises(ProtocolError, match="before last chunk"):
            await _collect(aiter_chunked(reader))

    @pytest.mark.asyncio
    async def test_malformed_framing_fails_body(self, stream_reader):
        """Framing errors reach the caller as BodyStreamError."""
        reader = stream_reader(b"5\r\nhello\r\nnope\r\n")
        body = Body(aiter_chunked(reader), url="http://example.com/chunked")
        with pytest.raises(BodyStreamError, match="invalid chunk size") as info:
            await body.text()
        assert isinstance(info.value.reason, ProtocolError)


class TestContentLength:
    """Tests for bodies framed by Content-Length."""

    @pytest.mark.asyncio
    async def test_reads_exact_length(self, stream_reader):
        """Only the declared number of bytes is read."""
        reader = stream_reader(b"hello world, and more")
        assert b"".join(await _collect(aiter_content_length(reader, 11))) == b"hello world"

    @pytest.mark.asyncio
    async def test_zero_length(self, stream_reader):
        """A zero length body yields nothing."""
        assert await _collect(aiter_content_length(stream_reader(b""), 0)) == []

    @pytest.mark.asyncio
    async def test_short_body(self, stream_reader):
        """Closing before the declared length raises ProtocolError."""
        reader = stream_reader(b"short")
        with pytest.raises(ProtocolError, match="5 of 10"):
            await _collect(aiter_content_length(reader, 10))


class TestUntilClose:
    """Tests for bodies delimited by connection close."""

    @pytest.mark.asyncio
    async def test_reads_to_eof(self, stream_reader):
        """Everything up to EOF is yielded."""
        reader = stream_reader(b"x" * 20000)
        chunks = await _collect(aiter_until_close(reader, chunk_size=8192))
        assert sum(len(c) for c in chunks) == 20000


class TestIterBody:
    """Tests for framing selection."""

    @pytest.mark.asyncio
    async def test_selects_chunked(self, stream_reader):
        """Transfer-Encoding: chunked wins over Content-Length."""
        reader = stream_reader(b"2\r\nok\r\n0\r\n\r\n")
        headers = Headers([("Transfer-Encoding", "chunked"), ("Content-Length", "99")])
        assert await Body(iter_body(reader, headers)).text() == "ok"

    @pytest.mark.asyncio
    async def test_selects_content_length(self, stream_reader):
        """Content-Length bounds the body."""
        reader = stream_reader(b"abcdef")
        headers = Headers({"Content-Length": "3"})
        assert await Body(iter_body(reader, headers)).read() == b"abc"

    @pytest.mark.asyncio
    async def test_selects_until_close(self, stream_reader):
        """Without framing headers the body runs to EOF."""
        reader = stream_reader(b"all of it")
        assert await Body(iter_body(reader, Headers())).read() == b"all of it"

    @pytest.mark.asyncio
    async def test_invalid_content_length(self, stream_reader):
        """A non-numeric Content-Length raises ProtocolError."""
        with pytest.raises(ProtocolError, match="invalid content-length"):
            iter_body(stream_reader(b""), Headers({"Content-Length": "ten"}))
