"""Content Types - Closed MIME taxonomy and response parser selection.

Every recognized MIME type belongs to exactly one parser category. The
category decides how a response body is read:

    text          -> str
    json          -> decoded JSON value
    form_data     -> FormData
    blob          -> Blob (bytes plus content type)
    array_buffer  -> bytes

The header value is compared verbatim against the taxonomy, so a value with
parameters (`application/json; charset=utf-8`) or different case is
unrecognized. A missing or unrecognized Content-Type selects no category; the
body is then treated as absent rather than rejected.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Literal, Union, get_args

import httpx

from api_fetcher.schema import Schema

# =============================================================================
# Taxonomy
# =============================================================================

TextContentType = Literal[
    "text/plain",
    "text/html",
    "text/css",
    "text/javascript",
    "text/csv",
    "application/x-www-form-urlencoded",
    "text/xml",
]

JsonContentType = Literal["application/json", "application/ld+json"]

FormDataContentType = Literal["multipart/form-data"]

BlobContentType = Literal[
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/svg+xml",
    "application/pdf",
    "application/zip",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/atom+xml",
    "application/rss+xml",
]

ArrayBufferContentType = Literal[
    "application/octet-stream",
    "audio/mpeg",
    "audio/ogg",
    "audio/wav",
    "video/mp4",
    "video/ogg",
    "video/webm",
    "font/woff",
    "font/woff2",
    "application/font-woff",
    "application/xml",
    "application/xhtml+xml",
    "application/x-yaml",
]

ContentType = Union[
    TextContentType,
    JsonContentType,
    FormDataContentType,
    BlobContentType,
    ArrayBufferContentType,
]

TEXT_CONTENT_TYPES: tuple[str, ...] = get_args(TextContentType)
JSON_CONTENT_TYPES: tuple[str, ...] = get_args(JsonContentType)
FORM_DATA_CONTENT_TYPES: tuple[str, ...] = get_args(FormDataContentType)
BLOB_CONTENT_TYPES: tuple[str, ...] = get_args(BlobContentType)
ARRAY_BUFFER_CONTENT_TYPES: tuple[str, ...] = get_args(ArrayBufferContentType)

text_content_types_schema: Schema[str] = Schema(TextContentType, strict=True)
json_content_types_schema: Schema[str] = Schema(JsonContentType, strict=True)
form_data_content_types_schema: Schema[str] = Schema(FormDataContentType, strict=True)
blob_content_types_schema: Schema[str] = Schema(BlobContentType, strict=True)
array_buffer_content_types_schema: Schema[str] = Schema(ArrayBufferContentType, strict=True)
content_types_schema: Schema[str] = Schema(ContentType, strict=True)


class ParserType(str, Enum):
    """How a response body is extracted."""

    TEXT = "text"
    JSON = "json"
    FORM_DATA = "form_data"
    BLOB = "blob"
    ARRAY_BUFFER = "array_buffer"


# Checked in this order; the sets are disjoint so order only matters for speed
_CATEGORY_SCHEMAS: tuple[tuple[ParserType, Schema[str]], ...] = (
    (ParserType.TEXT, text_content_types_schema),
    (ParserType.JSON, json_content_types_schema),
    (ParserType.FORM_DATA, form_data_content_types_schema),
    (ParserType.BLOB, blob_content_types_schema),
    (ParserType.ARRAY_BUFFER, array_buffer_content_types_schema),
)


class ContentTypeError(Exception):
    """Raised when a request content type does not match the body category."""


def content_type_schema(parser_type: ParserType) -> Schema[str]:
    """Return the schema accepting exactly the MIME types of a category."""
    for category, schema in _CATEGORY_SCHEMAS:
        if category == parser_type:
            return schema
    raise ValueError(f"Unknown parser type: {parser_type!r}")


def _get_header(headers: httpx.Headers | Mapping[str, str], name: str) -> str | None:
    if isinstance(headers, httpx.Headers):
        return headers.get(name)
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def parse_content_type(headers: httpx.Headers | Mapping[str, str]) -> ParserType | None:
    """Select the parser category for a response.

    Args:
        headers: Response headers. Header names are matched case-insensitively.

    Returns:
        The category whose taxonomy contains the exact header value, or None
        when the header is absent, empty or not part of the taxonomy.
    """
    content_type = _get_header(headers, "content-type")
    if not content_type:
        return None

    for category, schema in _CATEGORY_SCHEMAS:
        if schema.safe_parse(content_type).success:
            return category
    return None
