"""Tests for api_fetcher.config_loader."""

import json
import ssl
from pathlib import Path

import certifi
import pytest

from api_fetcher.config_loader import ConfigError, build_client_kwargs, load_fetcher_config
from api_fetcher.models import FetcherConfig


class TestLoadFetcherConfig:
    def test_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "fetcher.yaml"
        path.write_text(
            "timeout: 5\n"
            "headers:\n"
            "  Authorization: Bearer token\n"
            "follow_redirects: true\n"
        )
        config = load_fetcher_config(path)
        assert config.timeout == 5.0
        assert config.headers == {"Authorization": "Bearer token"}
        assert config.follow_redirects is True

    def test_yml_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "fetcher.yml"
        path.write_text("verify_ssl: false\n")
        assert load_fetcher_config(path).verify_ssl is False

    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "fetcher.json"
        path.write_text(json.dumps({"timeout": 2.5}))
        assert load_fetcher_config(str(path)).timeout == 2.5

    def test_empty_yaml_means_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "fetcher.yaml"
        path.write_text("")
        assert load_fetcher_config(path) == FetcherConfig()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Config file not found"):
            load_fetcher_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "fetcher.yaml"
        path.write_text("timeout: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_fetcher_config(path)

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "fetcher.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_fetcher_config(path)

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "fetcher.yaml"
        path.write_text("- timeout\n- 5\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_fetcher_config(path)

    def test_invalid_structure(self, tmp_path: Path) -> None:
        path = tmp_path / "fetcher.yaml"
        path.write_text("timeout: 0\n")
        with pytest.raises(ConfigError, match="Invalid config structure"):
            load_fetcher_config(path)

    def test_unknown_key(self, tmp_path: Path) -> None:
        path = tmp_path / "fetcher.yaml"
        path.write_text("retries: 3\n")
        with pytest.raises(ConfigError, match="Invalid config structure"):
            load_fetcher_config(path)


class TestBuildClientKwargs:
    def test_defaults(self) -> None:
        kwargs = build_client_kwargs(FetcherConfig())
        assert kwargs == {"headers": {}, "timeout": 30.0, "follow_redirects": True}

    def test_verify_disabled(self) -> None:
        kwargs = build_client_kwargs(FetcherConfig(verify_ssl=False))
        assert kwargs["verify"] is False

    def test_headers_and_redirects(self) -> None:
        config = FetcherConfig(headers={"X-Api-Key": "k"}, follow_redirects=False, timeout=3)
        kwargs = build_client_kwargs(config)
        assert kwargs["headers"] == {"X-Api-Key": "k"}
        assert kwargs["follow_redirects"] is False
        assert kwargs["timeout"] == 3.0

    def test_missing_ca_bundle(self, tmp_path: Path) -> None:
        config = FetcherConfig(ca_bundle=str(tmp_path / "missing.pem"))
        with pytest.raises(ConfigError, match="Invalid CA bundle"):
            build_client_kwargs(config)

    def test_client_cert_passed_as_tuple(self, tmp_path: Path) -> None:
        cert, key = str(tmp_path / "c.pem"), str(tmp_path / "c.key")
        kwargs = build_client_kwargs(FetcherConfig(cert=cert, key=key))
        assert kwargs["cert"] == (cert, key)
        assert "verify" not in kwargs

    def test_client_cert_with_ca_bundle(self, tmp_path: Path) -> None:
        cert, key = str(tmp_path / "c.pem"), str(tmp_path / "c.key")
        kwargs = build_client_kwargs(FetcherConfig(cert=cert, key=key, ca_bundle=certifi.where()))
        assert kwargs["cert"] == (cert, key)
        assert isinstance(kwargs["verify"], ssl.SSLContext)

    def test_client_cert_with_verify_disabled(self, tmp_path: Path) -> None:
        cert, key = str(tmp_path / "c.pem"), str(tmp_path / "c.key")
        kwargs = build_client_kwargs(FetcherConfig(cert=cert, key=key, verify_ssl=False))
        assert kwargs["cert"] == (cert, key)
        assert kwargs["verify"] is False

    def test_ca_bundle_builds_ssl_context(self) -> None:
        kwargs = build_client_kwargs(FetcherConfig(ca_bundle=certifi.where()))
        assert isinstance(kwargs["verify"], ssl.SSLContext)
        assert kwargs["verify"].verify_mode == ssl.CERT_REQUIRED

    def test_ca_bundle_with_verify_disabled(self) -> None:
        kwargs = build_client_kwargs(FetcherConfig(ca_bundle=certifi.where(), verify_ssl=False))
        context = kwargs["verify"]
        assert context.check_hostname is False
        assert context.verify_mode == ssl.CERT_NONE
