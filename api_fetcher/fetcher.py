"""Fetcher - Sends one request, checks the status, parses and validates the body.

Each call is a single linear exchange:

    URLBuilder.build() -> request -> status check -> content-type dispatch
    -> optional schema validation

Non-2xx responses raise HTTPError before the body is read. Responses whose
Content-Type is missing or outside the known taxonomy parse to None.

Fetcher is synchronous (httpx.Client); AsyncFetcher has the same surface with
coroutine methods (httpx.AsyncClient).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from api_fetcher.config_loader import build_client_kwargs
from api_fetcher.content_types import (
    ArrayBufferContentType,
    BlobContentType,
    ContentTypeError,
    FormDataContentType,
    JsonContentType,
    ParserType,
    TextContentType,
    content_type_schema,
    parse_content_type,
)
from api_fetcher.form_data import FileEntry, FormData, FormDataParseError, parse_multipart
from api_fetcher.http_error import HTTPError
from api_fetcher.models import Blob, FetcherConfig
from api_fetcher.schema import as_schema
from api_fetcher.url_builder import URLBuilder

logger = logging.getLogger("api_fetcher.fetcher")

# Options consumed by client.send(); everything else goes to client.build_request()
_SEND_OPTIONS = ("auth", "follow_redirects")


class FetcherError(Exception):
    """Base class for fetch-time errors other than HTTPError and schema errors."""


class RequestError(FetcherError):
    """Raised when the transport fails (connection error, timeout, etc.)."""


class ResponseParseError(FetcherError):
    """Raised when a body cannot be decoded according to its Content-Type."""


# =============================================================================
# Request bodies
# =============================================================================


@dataclass(frozen=True)
class _Payload:
    """Request body and the Content-Type header to send with it.

    content_type is None when httpx derives the header from the body, as it
    does for multipart files (boundary included).
    """

    content_type: str | None
    content: str | bytes | None = None
    files: list[FileEntry] | None = None


def _require_content_type(content_type: str, parser_type: ParserType) -> str:
    if not content_type_schema(parser_type).safe_parse(content_type).success:
        raise ContentTypeError(
            f"Content type {content_type!r} is not a {parser_type.value} content type"
        )
    return content_type


def _text_payload(body: str, content_type: str) -> _Payload:
    _require_content_type(content_type, ParserType.TEXT)
    if not isinstance(body, str):
        raise TypeError(f"Text body must be str, got {type(body).__name__}")
    return _Payload(content_type, body)


def _json_payload(body: Mapping[str, Any], content_type: str) -> _Payload:
    _require_content_type(content_type, ParserType.JSON)
    if not isinstance(body, Mapping):
        raise TypeError(f"JSON body must be a mapping, got {type(body).__name__}")
    # Compact separators so the payload matches JSON.stringify output
    return _Payload(content_type, json.dumps(dict(body), separators=(",", ":"), ensure_ascii=False))


def _form_data_payload(body: FormData, content_type: str) -> _Payload:
    _require_content_type(content_type, ParserType.FORM_DATA)
    if not isinstance(body, FormData):
        raise TypeError(f"Form body must be FormData, got {type(body).__name__}")
    if len(body) == 0:
        # httpx writes no multipart body for an empty files list
        return _Payload(content_type, b"")
    return _Payload(None, files=body.to_files())


def _blob_payload(body: Blob | bytes, content_type: str) -> _Payload:
    _require_content_type(content_type, ParserType.BLOB)
    if isinstance(body, Blob):
        return _Payload(content_type, body.data)
    if isinstance(body, (bytes, bytearray, memoryview)):
        return _Payload(content_type, bytes(body))
    raise TypeError(f"Blob body must be Blob or bytes, got {type(body).__name__}")


def _array_buffer_payload(body: bytes | bytearray | memoryview, content_type: str) -> _Payload:
    _require_content_type(content_type, ParserType.ARRAY_BUFFER)
    if not isinstance(body, (bytes, bytearray, memoryview)):
        raise TypeError(f"Array buffer body must be bytes-like, got {type(body).__name__}")
    return _Payload(content_type, bytes(body))


# =============================================================================
# Shared request/response handling
# =============================================================================


def _transport_error(e: httpx.RequestError) -> RequestError:
    if isinstance(e, httpx.TimeoutException):
        return RequestError(f"Request timeout: {e}")
    if isinstance(e, httpx.ConnectError):
        return RequestError(f"Connection error: {e}")
    return RequestError(f"Request error: {e}")


class _FetcherBase:
    """Request construction and response handling shared by both fetchers."""

    def __init__(self, config: FetcherConfig | None = None) -> None:
        self._config = config or FetcherConfig()

    @property
    def config(self) -> FetcherConfig:
        return self._config

    @staticmethod
    def _build_request(
        client: httpx.Client | httpx.AsyncClient,
        method: str,
        url_builder: URLBuilder,
        payload: _Payload | None,
        options: dict[str, Any],
    ) -> tuple[httpx.Request, dict[str, Any]]:
        """Build the request and split off the send-time options.

        The payload's Content-Type replaces any Content-Type in the caller's
        headers; all other caller headers are kept. For multipart payloads the
        caller's Content-Type is dropped so httpx can set the boundary.
        """
        request_options = dict(options)
        send_options = {
            name: request_options.pop(name) for name in _SEND_OPTIONS if name in request_options
        }

        headers = httpx.Headers(request_options.pop("headers", None))
        content: str | bytes | None = None
        files: list[FileEntry] | None = None
        if payload is not None:
            if payload.content_type is None:
                headers.pop("Content-Type", None)
            else:
                headers["Content-Type"] = payload.content_type
            content, files = payload.content, payload.files

        url = url_builder.build()
        logger.debug("%s %s", method, url)
        request = client.build_request(
            method, url, headers=headers, content=content, files=files, **request_options
        )
        return request, send_options

    @staticmethod
    def _check_status(response: httpx.Response) -> None:
        logger.debug("Response %d %s", response.status_code, response.reason_phrase)
        if not response.is_success:
            raise HTTPError(response.status_code, response.reason_phrase)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        """Extract the body according to the response Content-Type.

        Returns:
            str, decoded JSON, Blob, bytes or FormData depending on the
            category, or None when the Content-Type selects no category.

        Raises:
            ResponseParseError: If the body does not decode as its category.
        """
        parser_type = parse_content_type(response.headers)
        logger.debug("Parsing response body as %s", parser_type.value if parser_type else None)

        if parser_type is None:
            return None
        if parser_type is ParserType.TEXT:
            return response.text
        if parser_type is ParserType.JSON:
            try:
                return response.json()
            except ValueError as e:
                raise ResponseParseError(f"Invalid JSON body: {e}") from e
        if parser_type is ParserType.BLOB:
            return Blob(data=response.content, content_type=response.headers.get("content-type"))
        if parser_type is ParserType.ARRAY_BUFFER:
            return response.content
        try:
            return parse_multipart(response.content, response.headers["content-type"])
        except FormDataParseError as e:
            raise ResponseParseError(f"Invalid form data body: {e}") from e

    @staticmethod
    def _validate(value: Any, schema: Any) -> Any:
        if schema is None:
            return value
        return as_schema(schema).parse(value)


# =============================================================================
# Fetcher
# =============================================================================


class Fetcher(_FetcherBase):
    """Synchronous fetcher.

    Usage:
        builder = URLBuilder("https://api.example.com", path="/users/:id")
        user = Fetcher().get(builder.replace_path_params({"id": "1"}), schema=User)

    With a caller-managed client (connection reuse, custom transport):
        with httpx.Client() as client:
            fetcher = Fetcher(client=client)
            fetcher.post_json(url_builder, body={"name": "x"}, content_type="application/json")
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        config: FetcherConfig | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            client: Client to send requests with. It is never closed by the
                fetcher. If None, each call opens and closes its own client
                built from config.
            config: Settings for per-call clients. Ignored when client is given.
        """
        super().__init__(config)
        self._client = client

    def get(self, url_builder: URLBuilder, *, schema: Any = None, **options: Any) -> Any:
        """GET the URL and return the parsed (and validated) body.

        Args:
            url_builder: Source of the request URL.
            schema: Optional schema for the parsed body (see schema.as_schema).
            **options: headers, cookies, timeout, extensions, auth, follow_redirects.

        Raises:
            HTTPError: If the response status is not 2xx.
            SchemaValidationError: If the body does not match schema.
            RequestError: If the transport fails.
            ResponseParseError: If the body does not decode as its Content-Type.
        """
        return self._fetch("GET", url_builder, None, schema, options)

    def post_text(
        self,
        url_builder: URLBuilder,
        *,
        body: str,
        content_type: TextContentType,
        schema: Any = None,
        **options: Any,
    ) -> Any:
        """POST a text body. content_type must be a text content type."""
        return self._fetch("POST", url_builder, _text_payload(body, content_type), schema, options)

    def post_json(
        self,
        url_builder: URLBuilder,
        *,
        body: Mapping[str, Any],
        content_type: JsonContentType,
        schema: Any = None,
        **options: Any,
    ) -> Any:
        """POST a mapping serialized as compact JSON."""
        return self._fetch("POST", url_builder, _json_payload(body, content_type), schema, options)

    def post_form_data(
        self,
        url_builder: URLBuilder,
        *,
        body: FormData,
        content_type: FormDataContentType,
        schema: Any = None,
        **options: Any,
    ) -> Any:
        """POST a multipart form; httpx encodes it and sets the boundary."""
        return self._fetch(
            "POST", url_builder, _form_data_payload(body, content_type), schema, options
        )

    def post_blob(
        self,
        url_builder: URLBuilder,
        *,
        body: Blob | bytes,
        content_type: BlobContentType,
        schema: Any = None,
        **options: Any,
    ) -> Any:
        """POST a blob's bytes with a blob content type."""
        return self._fetch("POST", url_builder, _blob_payload(body, content_type), schema, options)

    def post_array_buffer(
        self,
        url_builder: URLBuilder,
        *,
        body: bytes | bytearray | memoryview,
        content_type: ArrayBufferContentType,
        schema: Any = None,
        **options: Any,
    ) -> Any:
        """POST raw bytes with an array buffer content type."""
        return self._fetch(
            "POST", url_builder, _array_buffer_payload(body, content_type), schema, options
        )

    def _fetch(
        self,
        method: str,
        url_builder: URLBuilder,
        payload: _Payload | None,
        schema: Any,
        options: dict[str, Any],
    ) -> Any:
        if self._client is not None:
            return self._fetch_with(self._client, method, url_builder, payload, schema, options)
        with httpx.Client(**build_client_kwargs(self._config)) as client:
            return self._fetch_with(client, method, url_builder, payload, schema, options)

    def _fetch_with(
        self,
        client: httpx.Client,
        method: str,
        url_builder: URLBuilder,
        payload: _Payload | None,
        schema: Any,
        options: dict[str, Any],
    ) -> Any:
        request, send_options = self._build_request(client, method, url_builder, payload, options)
        response = self._send(client, request, send_options)
        return self._validate(self._parse_body(response), schema)

    def _send(
        self,
        client: httpx.Client,
        request: httpx.Request,
        send_options: dict[str, Any],
    ) -> httpx.Response:
        """Send the request, raising HTTPError without reading the body on failure."""
        try:
            response = client.send(request, stream=True, **send_options)
        except httpx.RequestError as e:
            raise _transport_error(e) from e

        try:
            self._check_status(response)
            response.read()
        except httpx.RequestError as e:
            raise _transport_error(e) from e
        finally:
            response.close()
        return response


# =============================================================================
# AsyncFetcher
# =============================================================================


class AsyncFetcher(_FetcherBase):
    """Asynchronous fetcher with the same methods as Fetcher.

    Usage:
        fetcher = AsyncFetcher()
        data = await fetcher.get(URLBuilder("https://api.example.com"), schema=Payload)
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        config: FetcherConfig | None = None,
    ) -> None:
        super().__init__(config)
        self._client = client

    async def get(self, url_builder: URLBuilder, *, schema: Any = None, **options: Any) -> Any:
        return await self._fetch("GET", url_builder, None, schema, options)

    async def post_text(
        self,
        url_builder: URLBuilder,
        *,
        body: str,
        content_type: TextContentType,
        schema: Any = None,
        **options: Any,
    ) -> Any:
        return await self._fetch(
            "POST", url_builder, _text_payload(body, content_type), schema, options
        )

    async def post_json(
        self,
        url_builder: URLBuilder,
        *,
        body: Mapping[str, Any],
        content_type: JsonContentType,
        schema: Any = None,
        **options: Any,
    ) -> Any:
        return await self._fetch(
            "POST", url_builder, _json_payload(body, content_type), schema, options
        )

    async def post_form_data(
        self,
        url_builder: URLBuilder,
        *,
        body: FormData,
        content_type: FormDataContentType,
        schema: Any = None,
        **options: Any,
    ) -> Any:
        return await self._fetch(
            "POST", url_builder, _form_data_payload(body, content_type), schema, options
        )

    async def post_blob(
        self,
        url_builder: URLBuilder,
        *,
        body: Blob | bytes,
        content_type: BlobContentType,
        schema: Any = None,
        **options: Any,
    ) -> Any:
        return await self._fetch(
            "POST", url_builder, _blob_payload(body, content_type), schema, options
        )

    async def post_array_buffer(
        self,
        url_builder: URLBuilder,
        *,
        body: bytes | bytearray | memoryview,
        content_type: ArrayBufferContentType,
        schema: Any = None,
        **options: Any,
    ) -> Any:
        return await self._fetch(
            "POST", url_builder, _array_buffer_payload(body, content_type), schema, options
        )

    async def _fetch(
        self,
        method: str,
        url_builder: URLBuilder,
        payload: _Payload | None,
        schema: Any,
        options: dict[str, Any],
    ) -> Any:
        if self._client is not None:
            return await self._fetch_with(
                self._client, method, url_builder, payload, schema, options
            )
        async with httpx.AsyncClient(**build_client_kwargs(self._config)) as client:
            return await self._fetch_with(client, method, url_builder, payload, schema, options)

    async def _fetch_with(
        self,
        client: httpx.AsyncClient,
        method: str,
        url_builder: URLBuilder,
        payload: _Payload | None,
        schema: Any,
        options: dict[str, Any],
    ) -> Any:
        request, send_options = self._build_request(client, method, url_builder, payload, options)
        response = await self._send(client, request, send_options)
        return self._validate(self._parse_body(response), schema)

    async def _send(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        send_options: dict[str, Any],
    ) -> httpx.Response:
        try:
            response = await client.send(request, stream=True, **send_options)
        except httpx.RequestError as e:
            raise _transport_error(e) from e

        try:
            self._check_status(response)
            await response.aread()
        except httpx.RequestError as e:
            raise _transport_error(e) from e
        finally:
            await response.aclose()
        return response
