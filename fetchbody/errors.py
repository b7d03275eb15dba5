class FetchBodyError(Exception):
    """Base error for fetchbody."""


class ProtocolError(FetchBodyError):
    """Raised when HTTP body framing is malformed."""


class BodyUsedError(FetchBodyError):
    """Raised when a body is decoded a second time."""


class SizeLimitError(FetchBodyError):
    """Raised when a body grows past its configured size ceiling."""

    def __init__(self, message: str, limit: int) -> None:
        super().__init__(message)
        self.limit = limit


class BodyTimeoutError(FetchBodyError, TimeoutError):
    """Raised when a body is not complete within its configured timeout."""

    def __init__(self, message: str, limit: float) -> None:
        super().__init__(message)
        self.limit = limit


class BodyStreamError(FetchBodyError):
    """Raised when the byte source fails while the body is being collected."""

    def __init__(self, message: str, reason: BaseException) -> None:
        super().__init__(message)
        self.reason = reason


class BodyParseError(FetchBodyError, ValueError):
    """Raised when a decoded body is not valid JSON."""
