"""Pytest configuration and fixtures."""

import asyncio

import pytest
from fetchbody.models import Response


@pytest.fixture
def byte_source():
    """Build an async byte source yielding chunks with an optional pause before each."""

    async def make(*chunks, delay=0.0):
        for chunk in chunks:
            if delay:
                await asyncio.sleep(delay)
            yield chunk

    return make


@pytest.fixture
def sample_response():
    """Create a sample Response object."""
    return Response(
        status_code=200,
        reason="OK",
        http_version="1.1",
        headers=[
            ("Content-Type", "application/json"),
            ("Content-Length", "13"),
        ],
        body=b'{"key":"val"}',
        url="http://example.com/data",
    )


@pytest.fixture
def html_page():
    """HTML document declaring its charset in both an XML declaration and a meta tag."""
    return (
        '<?xml version="1.0" encoding="iso-8859-1"?>\n'
        '<html><head><meta charset="shift_jis"><title>t</title></head>'
        "<body>日本語</body></html>"
    ).encode("shift_jis")


@pytest.fixture
def stream_reader():
    """Build an asyncio StreamReader pre-loaded with body bytes."""

    def make(data: bytes, eof: bool = True) -> asyncio.StreamReader:
        reader = asyncio.StreamReader()
        reader.feed_data(data)
        if eof:
            reader.feed_eof()
        return reader

    return make
