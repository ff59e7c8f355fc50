"""HTTP Error - Raised for responses with a non-2xx status."""

from __future__ import annotations


class HTTPError(Exception):
    """A response came back with an unsuccessful status.

    Usage:
        raise HTTPError(404, "Not Found")   # str(error) == "404 Not Found"
    """

    def __init__(self, status: int, status_text: str) -> None:
        super().__init__(f"{status} {status_text}")
        self._status = status
        self._status_text = status_text

    @property
    def status(self) -> int:
        return self._status

    @property
    def status_text(self) -> str:
        return self._status_text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HTTPError):
            return NotImplemented
        return (self._status, self._status_text) == (other._status, other._status_text)

    def __hash__(self) -> int:
        return hash((self._status, self._status_text))

    def __reduce__(self) -> tuple[type[HTTPError], tuple[int, str]]:
        return (type(self), (self._status, self._status_text))

    def __repr__(self) -> str:
        return f"HTTPError({self._status!r}, {self._status_text!r})"
