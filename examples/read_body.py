#!/usr/bin/env python3
"""
Example: Reading a response body with size and time limits.

Opens a plain HTTP/1.1 connection with asyncio, hands the body stream to
fetchbody and prints the decoded text. The charset comes from the
Content-Type header or, failing that, from the page markup.
"""
from __future__ import annotations

import asyncio
import sys
from urllib.parse import urlparse

from fetchbody import FetchBodyError, Headers, Response, iter_body


async def fetch(url: str) -> Response:
    parsed = urlparse(url)
    host = parsed.hostname or ""
    port = parsed.port or 80
    path = parsed.path or "/"

    reader, writer = await asyncio.open_connection(host, port)
    writer.write(
        f"GET {path} HTTP/1.1\r\nHost: {host}\r\nAccept-Encoding: identity\r\n"
        "Connection: close\r\n\r\n".encode()
    )
    await writer.drain()

    status_line = (await reader.readline()).decode("latin-1").rstrip("\r\n")
    version, status, reason = status_line.split(" ", 2)
    raw_headers = []
    while True:
        line = (await reader.readline()).decode("latin-1").rstrip("\r\n")
        if not line:
            break
        name, _, value = line.partition(":")
        raw_headers.append((name.strip(), value.strip()))

    headers = Headers(raw_headers)
    return Response(
        int(status),
        reason,
        version.split("/")[-1],
        headers,
        iter_body(reader, headers),
        url=url,
        size=1024 * 1024,
        timeout=10,
    )


async def main(url: str) -> int:
    response = await fetch(url)
    print(f"Status: {response.status_code}")
    print(f"Content-Type: {response.headers.get('content-type')}")
    try:
        text = await response.text()
    except FetchBodyError as exc:
        print(f"Error: {exc}")
        return 1
    print(text[:500])
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "http://example.com/")))
