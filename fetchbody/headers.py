from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping


def _sanitize_header(name: str, value: str) -> tuple[str, str]:
    """
    Strip CR, LF and null bytes from a header name and value so a stored
    header can never be re-emitted as two.
    """
    clean_name = name.replace("\r", "").replace("\n", "").replace("\x00", "")
    clean_value = value.replace("\r", "").replace("\n", "").replace("\x00", "")
    return clean_name, clean_value


class Headers:
    """
    Response header store that preserves header order while exposing
    case-insensitive lookups.

    Duplicate names resolve to the last value received.
    """

    def __init__(
        self,
        headers: Iterable[tuple[str, str]] | Mapping[str, str] | None = None,
    ) -> None:
        if headers is None:
            headers = []
        elif isinstance(headers, Mapping):
            headers = headers.items()
        self.raw: list[tuple[str, str]] = [
            _sanitize_header(str(name), str(value)) for name, value in headers
        ]
        self._index: dict[str, str] = {}
        for name, value in self.raw:
            self._index[name.lower()] = value

    def has(self, name: str) -> bool:
        return name.lower() in self._index

    def get(self, name: str, default: str | None = None) -> str | None:
        return self._index.get(name.lower(), default)

    def items(self) -> list[tuple[str, str]]:
        return list(self._index.items())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __getitem__(self, name: str) -> str:
        return self._index[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"<Headers {self.raw!r}>"
