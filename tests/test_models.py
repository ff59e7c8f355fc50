"""Tests for api_fetcher.models."""

import pytest
from pydantic import ValidationError

from api_fetcher.models import Blob, FetcherConfig, FormFile


class TestBlob:
    def test_defaults(self) -> None:
        blob = Blob()
        assert blob.data == b""
        assert blob.content_type is None
        assert blob.size == 0

    def test_size_and_text(self) -> None:
        blob = Blob(data="héllo".encode("utf-8"), content_type="text/plain")
        assert blob.size == 6
        assert blob.text() == "héllo"
        assert blob.text("latin-1") == "hÃ©llo"

    def test_frozen(self) -> None:
        blob = Blob(data=b"x")
        with pytest.raises(ValidationError):
            blob.data = b"y"  # type: ignore[misc]

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            Blob(data=b"x", name="file.bin")  # type: ignore[call-arg]


class TestFormFile:
    def test_default_content_type(self) -> None:
        assert FormFile(filename="a.bin").content_type == "application/octet-stream"

    def test_filename_required(self) -> None:
        with pytest.raises(ValidationError):
            FormFile(content=b"x")  # type: ignore[call-arg]

    def test_equality(self) -> None:
        assert FormFile(filename="a", content=b"1") == FormFile(filename="a", content=b"1")


class TestFetcherConfig:
    def test_defaults(self) -> None:
        config = FetcherConfig()
        assert config.timeout == 30.0
        assert config.headers == {}
        assert config.verify_ssl is True
        assert config.ca_bundle is None
        assert config.follow_redirects is True

    @pytest.mark.parametrize("timeout", [0, -1])
    def test_timeout_must_be_positive(self, timeout: float) -> None:
        with pytest.raises(ValidationError):
            FetcherConfig(timeout=timeout)

    def test_cert_requires_key(self) -> None:
        with pytest.raises(ValidationError, match="cert and key must be provided together"):
            FetcherConfig(cert="client.pem")

    def test_key_requires_cert(self) -> None:
        with pytest.raises(ValidationError, match="cert and key"):
            FetcherConfig(key="client.key")

    def test_cert_and_key(self) -> None:
        config = FetcherConfig(cert="client.pem", key="client.key")
        assert config.cert == "client.pem"

    def test_unknown_field(self) -> None:
        with pytest.raises(ValidationError):
            FetcherConfig(retries=3)  # type: ignore[call-arg]
