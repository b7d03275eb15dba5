from fetchbody.body import Body, BodyCollector, BodyState
from fetchbody.charset import convert, decode, detect_charset
from fetchbody.errors import (
    BodyParseError,
    BodyStreamError,
    BodyTimeoutError,
    BodyUsedError,
    FetchBodyError,
    ProtocolError,
    SizeLimitError,
)
from fetchbody.headers import Headers
from fetchbody.models import Response
from fetchbody.streams import (
    ByteStream,
    aiter_chunked,
    aiter_content_length,
    aiter_until_close,
    iter_body,
)

__all__ = [
    "Body",
    "BodyCollector",
    "BodyState",
    "Response",
    "Headers",
    "ByteStream",
    "aiter_chunked",
    "aiter_content_length",
    "aiter_until_close",
    "iter_body",
    "detect_charset",
    "convert",
    "decode",
    "FetchBodyError",
    "ProtocolError",
    "BodyUsedError",
    "SizeLimitError",
    "BodyTimeoutError",
    "BodyStreamError",
    "BodyParseError",
]
