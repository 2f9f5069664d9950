"""
Configuration for the connector tooling.

Configuration Precedence:
    CLI arguments → environment variables → --config file → default_config.yaml → code defaults
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

import click
import yaml

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default_config.yaml"

ENV_WEB_URL = "DATABASIN_WEB_URL"
ENV_TIMEOUT = "DATABASIN_TIMEOUT"

DEFAULT_CATEGORY_FILES = [
    "config/connectors/v2/types/DatabasinConnectorRDBMS.json",
    "config/connectors/v2/types/DatabasinConnectorMarketing.json",
    "config/connectors/v2/types/DatabasinConnectorFileAPI.json",
    "config/connectors/v2/types/DatabasinConnectorAccounting.json",
    "config/connectors/v2/types/DatabasinConnectorBigDataNoSQL.json",
    "config/connectors/v2/types/DatabasinConnectorCRMERP.json",
    "config/connectors/v2/types/DatabasinConnectorECommerce.json",
    "config/connectors/v2/types/DatabasinConnectorCollaboration.json",
    "config/connectors/v2/types/DatabasinConnectorAILLM.json",
]


@dataclass
class ClientConfig:
    """Settings for fetching connector configurations from the web app."""

    web_url: str = "http://localhost:3000"
    timeout: float = 30.0
    cache_ttl_seconds: float = 300.0
    category_files: List[str] = field(default_factory=lambda: list(DEFAULT_CATEGORY_FILES))
    pipeline_screens_file: str = "config/pipelines/FlowbasinPipelineScreens.json"


def _load_yaml(path) -> dict:
    """
    Load a YAML config file into a dictionary.

    Raises:
        click.ClickException: If the file is unreadable or not a mapping.
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise click.ClickException(f"Config file not found: {path}")
    except yaml.YAMLError as e:
        raise click.ClickException(f"Failed to parse config file {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise click.ClickException(f"Config file {path} must contain a mapping at the top level")
    return data


def _apply(config: ClientConfig, values: dict) -> None:
    """Copy known keys from values onto config, ignoring unknown ones."""
    known = {f.name for f in fields(ClientConfig)}
    for key, value in values.items():
        if key in known and value is not None:
            setattr(config, key, value)


def _parse_timeout(value, source: str) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise click.ClickException(f"Invalid timeout from {source}: {value!r}")
    if timeout <= 0:
        raise click.ClickException(f"Timeout from {source} must be positive, got {value!r}")
    return timeout


def build_config(
    web_url: Optional[str] = None,
    timeout: Optional[float] = None,
    config_file: Optional[str] = None,
    default_config_path: Path = DEFAULT_CONFIG_PATH,
) -> ClientConfig:
    """
    Build the client configuration, applying sources in precedence order.

    Args:
        web_url: Web app URL from the command line.
        timeout: Request timeout in seconds from the command line.
        config_file: Optional path to a user YAML config file.
        default_config_path: Bundled defaults, overridable for tests.

    Returns:
        The merged ClientConfig.
    """
    config = ClientConfig()

    if default_config_path and Path(default_config_path).exists():
        _apply(config, _load_yaml(default_config_path))

    if config_file:
        _apply(config, _load_yaml(config_file))

    if os.environ.get(ENV_WEB_URL):
        config.web_url = os.environ[ENV_WEB_URL]
    if os.environ.get(ENV_TIMEOUT):
        config.timeout = _parse_timeout(os.environ[ENV_TIMEOUT], ENV_TIMEOUT)

    if web_url:
        config.web_url = web_url
    if timeout is not None:
        config.timeout = _parse_timeout(timeout, "--timeout")

    _check_types(config)
    config.web_url = config.web_url.rstrip("/")
    return config


def _check_types(config: ClientConfig) -> None:
    """
    Reject settings of the wrong type before anything uses them.

    Raises:
        click.ClickException: Naming the offending setting.
    """
    if not isinstance(config.web_url, str) or not config.web_url.strip():
        raise click.ClickException(f"web_url must be a non-empty string, got {config.web_url!r}")

    config.timeout = _parse_timeout(config.timeout, "config")

    try:
        config.cache_ttl_seconds = float(config.cache_ttl_seconds)
    except (TypeError, ValueError):
        raise click.ClickException(
            f"cache_ttl_seconds must be a number, got {config.cache_ttl_seconds!r}"
        )
    if config.cache_ttl_seconds < 0:
        raise click.ClickException(
            f"cache_ttl_seconds must not be negative, got {config.cache_ttl_seconds!r}"
        )

    files = config.category_files
    if not isinstance(files, list) or not all(isinstance(f, str) and f for f in files):
        raise click.ClickException(f"category_files must be a list of file paths, got {files!r}")

    if not isinstance(config.pipeline_screens_file, str) or not config.pipeline_screens_file:
        raise click.ClickException(
            f"pipeline_screens_file must be a file path, got {config.pipeline_screens_file!r}"
        )
