"""Data models for api-fetcher.

All models use Pydantic v2.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Body Models
# =============================================================================


class Blob(BaseModel):
    """Binary body with the media type it was sent or received with.

    Returned for responses in the blob category (images, PDFs, archives,
    feeds, spreadsheets) and accepted as the body of Fetcher.post_blob.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    data: bytes = Field(default=b"", description="Raw body bytes")
    content_type: str | None = Field(
        default=None, description="Content-Type header value, e.g., image/png"
    )

    @property
    def size(self) -> int:
        return len(self.data)

    def text(self, encoding: str = "utf-8") -> str:
        """Decode the blob as text."""
        return self.data.decode(encoding)


class FormFile(BaseModel):
    """A file part of a multipart form."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    filename: str = Field(description="Filename sent in Content-Disposition")
    content: bytes = Field(default=b"", description="File contents")
    content_type: str = Field(
        default="application/octet-stream", description="Content-Type of the part"
    )


# =============================================================================
# Runtime Configuration Models
# =============================================================================


class FetcherConfig(BaseModel):
    """Settings for the HTTP client a Fetcher creates when none is supplied."""

    model_config = ConfigDict(extra="forbid")

    timeout: float = Field(default=30.0, gt=0, description="Default timeout in seconds")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Headers sent with every request"
    )
    verify_ssl: bool = Field(default=True, description="Verify server TLS certificates")
    ca_bundle: str | None = Field(default=None, description="Path to a CA bundle file")
    cert: str | None = Field(default=None, description="Client certificate path (mTLS)")
    key: str | None = Field(default=None, description="Client private key path (mTLS)")
    follow_redirects: bool = Field(default=True, description="Follow 3xx redirects")

    @model_validator(mode="after")
    def check_cert_and_key(self) -> Self:
        if (self.cert is None) != (self.key is None):
            raise ValueError("cert and key must be provided together")
        return self
