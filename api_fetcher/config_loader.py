"""Config Loader - Loads Fetcher client settings from YAML or JSON files.

Files ending in .yaml/.yml are read with PyYAML; anything else is read as
JSON. The top level must be a mapping matching FetcherConfig.
"""

from __future__ import annotations

import json
import logging
import ssl
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from api_fetcher.models import FetcherConfig

logger = logging.getLogger("api_fetcher.config_loader")


class ConfigError(Exception):
    """Raised when configuration loading fails."""


def _read_config_file(config_path: Path) -> Any:
    with open(config_path, "r", encoding="utf-8") as f:
        if config_path.suffix.lower() in (".yaml", ".yml"):
            return yaml.safe_load(f)
        return json.load(f)


def load_fetcher_config(config_path: Path | str) -> FetcherConfig:
    """Load FetcherConfig from a file.

    Args:
        config_path: Path to a YAML or JSON config file.

    Returns:
        Validated FetcherConfig.

    Raises:
        ConfigError: If the file is missing, unparseable or structurally invalid.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        raw_config = _read_config_file(config_path)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {e}") from e

    # An empty YAML file means "all defaults"
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must be a mapping")

    try:
        config = FetcherConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid config structure: {e}") from e

    logger.debug("Loaded fetcher config from %s", config_path)
    return config


def build_client_kwargs(config: FetcherConfig) -> dict[str, Any]:
    """Build kwargs for httpx.Client / httpx.AsyncClient from a FetcherConfig.

    Args:
        config: Client settings.

    Returns:
        Dictionary of kwargs for the httpx client constructor.

    Raises:
        ConfigError: If the CA bundle cannot be loaded.
    """
    kwargs: dict[str, Any] = {
        "headers": config.headers,
        "timeout": config.timeout,
        "follow_redirects": config.follow_redirects,
    }

    # Handle client certificate (mTLS)
    if config.cert and config.key:
        kwargs["cert"] = (config.cert, config.key)

    # Handle CA bundle - loaded into a custom SSL context
    if config.ca_bundle:
        try:
            ssl_context = ssl.create_default_context(cafile=config.ca_bundle)
        except (OSError, ssl.SSLError) as e:
            raise ConfigError(f"Invalid CA bundle '{config.ca_bundle}': {e}") from e
        if not config.verify_ssl:
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
        kwargs["verify"] = ssl_context
    elif not config.verify_ssl:
        kwargs["verify"] = False
    # else: use httpx default (True)

    return kwargs
