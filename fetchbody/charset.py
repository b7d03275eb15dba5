"""
Charset detection and conversion for response bodies.

The source encoding is picked by a cascade, first match wins:

1. ``charset=`` in the Content-Type header
2. HTML5 ``<meta charset="...">``
3. HTML4 ``<meta http-equiv="Content-Type" content="...; charset=...">``
4. XML declaration ``<?xml ... encoding="..."?>``
5. ``utf-8``

ref: https://www.w3.org/TR/2011/WD-html5-20110113/parsing.html#determining-the-character-encoding
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_CHARSET = "utf-8"

# Markup sniffing only looks at the start of the document.
SNIFF_LENGTH = 1024

_HEADER_CHARSET = re.compile(r"charset=([^;]*)", re.IGNORECASE)
_HTML5_META = re.compile(r"""<meta.+?charset=(['"])(.+?)\1""", re.IGNORECASE)
_HTML4_META = re.compile(
    r"""<meta\s+?http-equiv=(['"])content-type\1\s+?content=(['"])(.+?)\2""",
    re.IGNORECASE,
)
_CONTENT_CHARSET = re.compile(r"charset=(.*)", re.IGNORECASE)
_XML_DECLARATION = re.compile(r"""<\?xml.+?encoding=(['"])(.+?)\1""", re.IGNORECASE)

# Sites labelled gb2312/gbk routinely serve gb18030, which is a superset of both.
# ref: https://hsivonen.fi/encoding-menu/
_CHARSET_SUBSTITUTES = {
    "gb2312": "gb18030",
    "gbk": "gb18030",
}


def _clean(value: str) -> str:
    return value.strip().strip("'\"").strip().lower()


def _from_content_type(content_type: str | None) -> str | None:
    if not content_type:
        return None
    match = _HEADER_CHARSET.search(content_type)
    if match:
        return _clean(match.group(1)) or None
    return None


def _from_markup(data: bytes) -> str | None:
    head = data[:SNIFF_LENGTH].decode("utf-8", errors="replace")

    match = _HTML5_META.search(head)
    if match:
        return _clean(match.group(2)) or None

    match = _HTML4_META.search(head)
    if match:
        inner = _CONTENT_CHARSET.search(match.group(3))
        if inner:
            return _clean(inner.group(1)) or None

    match = _XML_DECLARATION.search(head)
    if match:
        return _clean(match.group(2)) or None

    return None


def detect_charset(data: bytes, content_type: str | None = None) -> str:
    """
    Work out the source charset of a response body.

    Args:
        data: Complete response body
        content_type: Value of the Content-Type header, if any

    Returns:
        Lower-cased charset name, ``utf-8`` when nothing is declared
    """
    charset = _from_content_type(content_type)
    if charset is None and data:
        charset = _from_markup(data)
    if charset is None:
        return DEFAULT_CHARSET

    charset = _CHARSET_SUBSTITUTES.get(charset, charset)
    logger.debug("detected charset %s", charset)
    return charset


def convert(data: bytes, to_charset: str = DEFAULT_CHARSET, from_charset: str = DEFAULT_CHARSET) -> bytes:
    """
    Re-encode bytes from one charset to another.

    Undecodable input is replaced rather than raised. An unknown source
    charset falls back to utf-8.
    """
    try:
        text = data.decode(from_charset, errors="replace")
    except (LookupError, ValueError):
        logger.warning("unknown charset %r, decoding as %s", from_charset, DEFAULT_CHARSET)
        text = data.decode(DEFAULT_CHARSET, errors="replace")
    return text.encode(to_charset, errors="replace")


def decode(data: bytes, content_type: str | None = None, encoding: str = DEFAULT_CHARSET) -> str:
    """Detect the charset of ``data`` and return it as text."""
    charset = detect_charset(data, content_type)
    return convert(data, encoding, charset).decode(encoding, errors="replace")
