"""Pytest configuration and fixtures for api-fetcher tests.

This file provides:
- RecordingHandler: httpx.MockTransport handler with a canned response
- ExplodingStream: response body that fails the test if it is ever read
- Fixtures: mock-backed client, fetcher and URL builder
"""

from __future__ import annotations

import json
from typing import Any, Generator, Iterator

import httpx
import pytest

from api_fetcher.fetcher import Fetcher
from api_fetcher.url_builder import URLBuilder

BASE_URL = "https://api.example.com"


class ExplodingStream(httpx.SyncByteStream):
    """Response stream that raises when iterated and records close()."""

    def __init__(self) -> None:
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        raise AssertionError("response body was read")

    def close(self) -> None:
        self.closed = True


class RecordingHandler:
    """MockTransport handler that records requests and returns a canned response.

    A fresh httpx.Response is built per call so the handler can serve any
    number of requests.

    Usage:
        handler = RecordingHandler()
        handler.respond(200, b'{"ok":true}', content_type="application/json")
        client = httpx.Client(transport=httpx.MockTransport(handler))
        ...
        handler.last_request.headers["content-type"]
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.content = b""
        self.headers: dict[str, str] = {}
        self.stream: httpx.SyncByteStream | None = None
        self.error: Exception | None = None

    def respond(
        self,
        status_code: int = 200,
        content: bytes = b"",
        content_type: str | None = None,
        headers: dict[str, str] | None = None,
        stream: httpx.SyncByteStream | None = None,
    ) -> RecordingHandler:
        self.status_code = status_code
        self.content = content
        self.headers = dict(headers or {})
        if content_type is not None:
            self.headers["Content-Type"] = content_type
        self.stream = stream
        return self

    def fail_with(self, error: Exception) -> RecordingHandler:
        """Raise error from the transport instead of responding."""
        self.error = error
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.stream is not None:
            return httpx.Response(self.status_code, headers=self.headers, stream=self.stream)
        return httpx.Response(self.status_code, headers=self.headers, content=self.content)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "no request was sent"
        return self.requests[-1]


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def client(handler: RecordingHandler) -> Generator[httpx.Client, None, None]:
    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        yield client


@pytest.fixture
def fetcher(client: httpx.Client) -> Fetcher:
    return Fetcher(client=client)


@pytest.fixture
def url_builder() -> URLBuilder:
    return URLBuilder(BASE_URL, path="/items")


def json_bytes(value: Any) -> bytes:
    """Compact JSON encoding used for canned response bodies."""
    return json.dumps(value, separators=(",", ":")).encode("utf-8")
