"""
Configuration client for Databasin connector definitions.

Connector and pipeline screen configurations are static JSON files served by
the Databasin web app:

    /config/connectors/v2/types/DatabasinConnector{Category}.json
    /config/pipelines/FlowbasinPipelineScreens.json

Each category file carries a ``connectorType`` and an ``availableConnectors``
list; every entry there is one connector configuration with its
``pipelineRequiredScreens``.
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
import yaml

from databasin.connectors.config import ClientConfig
from databasin.connectors.discovery import ConnectorConfiguration

logger = logging.getLogger(__name__)

CONNECTOR_CACHE_PREFIX = "connector:"
PIPELINE_SCREENS_CACHE_KEY = "pipeline:screens"


class ConfigurationLoadError(Exception):
    """A configuration file could not be fetched or parsed."""


class ConnectorNotFoundError(ConfigurationLoadError):
    """No category file defines the requested connector."""


class ConfigurationClient:
    """
    Fetches and caches connector configurations from the web app.

    Cached entries expire after ``cache_ttl_seconds``; expired entries are
    dropped on the next lookup.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the ConfigurationClient.

        Args:
            config: Client settings. Defaults to ClientConfig().
            session: Optional requests session, mostly for tests.
            clock: Monotonic time source used for cache expiry.
        """
        self.config = config or ClientConfig()
        self._session = session or requests.Session()
        self._clock = clock
        self._cache: Dict[str, Tuple[Any, float]] = {}

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def fetch_static_file(self, path: str) -> Any:
        """
        Fetch and decode one static JSON file.

        Args:
            path: Path relative to the web app root.

        Returns:
            The decoded JSON document.

        Raises:
            ConfigurationLoadError: On HTTP, network or decoding failure.
        """
        url = f"{self.config.web_url.rstrip('/')}/{path.lstrip('/')}"
        logger.debug("Fetching static file: %s", url)

        try:
            response = self._session.get(
                url,
                headers={"Accept": "application/json"},
                timeout=self.config.timeout,
            )
        except requests.exceptions.Timeout:
            raise ConfigurationLoadError(
                f"Request for {url} timed out after {self.config.timeout}s"
            )
        except requests.exceptions.RequestException as e:
            raise ConfigurationLoadError(f"Request for {url} failed: {e}")

        if response.status_code != 200:
            raise ConfigurationLoadError(
                f"Request for {url} failed with status {response.status_code}: {response.reason}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise ConfigurationLoadError(f"Response from {url} is not valid JSON: {e}")

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def _cache_get(self, key: str) -> Optional[Any]:
        entry = self._cache.get(key)
        if entry is None:
            logger.debug("Cache miss: %s", key)
            return None

        data, stored_at = entry
        age = self._clock() - stored_at
        if age >= self.config.cache_ttl_seconds:
            logger.debug(
                "Cache expired: %s (age: %ds, ttl: %ds)",
                key,
                age,
                self.config.cache_ttl_seconds,
            )
            del self._cache[key]
            return None

        logger.debug(
            "Cache hit: %s (expires in %ds)", key, self.config.cache_ttl_seconds - age
        )
        return data

    def _cache_set(self, key: str, data: Any) -> None:
        self._cache[key] = (data, self._clock())

    def clear_cache(self) -> int:
        """Drop every cached configuration and return how many were removed."""
        size = len(self._cache)
        self._cache.clear()
        logger.debug("Cache cleared (%d entries removed)", size)
        return size

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_connector_configuration(self, connector_name: str) -> ConnectorConfiguration:
        """
        Find a connector's configuration across all category files.

        Matching is case-insensitive on ``connectorName``. A category file
        that fails to load does not stop the search.

        Args:
            connector_name: Connector subtype, e.g. 'Postgres' or 'MySQL'.

        Returns:
            The ConnectorConfiguration, with ``category`` set from the file.

        Raises:
            ConnectorNotFoundError: If no loaded file defines the connector.
        """
        cache_key = f"{CONNECTOR_CACHE_PREFIX}{connector_name.lower()}"
        cached = self._cache_get(cache_key)
        if cached is not None:
            return cached

        failures: List[Tuple[str, str]] = []
        loaded = 0

        for category_file in self.config.category_files:
            try:
                category_config = self.fetch_static_file(category_file)
            except ConfigurationLoadError as e:
                logger.debug("Failed to load %s: %s", category_file, e)
                failures.append((category_file, str(e)))
                continue

            loaded += 1
            connectors = []
            if isinstance(category_config, dict):
                connectors = category_config.get("availableConnectors") or []
            logger.debug("Loaded %s (%d connectors)", category_file, len(connectors))

            for entry in connectors:
                if not isinstance(entry, dict):
                    continue
                name = entry.get("connectorName")
                if isinstance(name, str) and name.lower() == connector_name.lower():
                    data = dict(entry)
                    data["category"] = category_config.get("connectorType")
                    configuration = ConnectorConfiguration.from_dict(data)
                    self._cache_set(cache_key, configuration)
                    logger.debug("Found and cached %s in %s", connector_name, category_file)
                    return configuration

        raise ConnectorNotFoundError(
            _not_found_report(connector_name, failures, loaded, len(self.config.category_files))
        )

    def get_pipeline_screen_configuration(self) -> Any:
        """Fetch the pipeline wizard screen definitions."""
        cached = self._cache_get(PIPELINE_SCREENS_CACHE_KEY)
        if cached is not None:
            return cached

        screens = self.fetch_static_file(self.config.pipeline_screens_file)
        self._cache_set(PIPELINE_SCREENS_CACHE_KEY, screens)
        return screens


def _not_found_report(
    connector_name: str,
    failures: List[Tuple[str, str]],
    loaded: int,
    total: int,
) -> str:
    details = "\n".join(f"  {path}: {error}" for path, error in failures)

    if total and len(failures) == total:
        return (
            f"Failed to load any connector configuration files (0/{total} succeeded).\n"
            "This may indicate a network issue or missing configuration files.\n\n"
            f"Errors encountered:\n{details}"
        )

    if failures:
        return (
            f'Connector "{connector_name}" not found in any category.\n'
            f"Searched {total} categories: {loaded} succeeded, {len(failures)} failed.\n\n"
            f"Files that failed to load:\n{details}"
        )

    return (
        f'Connector "{connector_name}" not found in any of the {total} connector categories.\n'
        "Check the connector name spelling (matching is case-insensitive)."
    )


def load_connector_configuration_file(path: str) -> ConnectorConfiguration:
    """
    Load one connector configuration from a local JSON or YAML file.

    Args:
        path: Path to a .json, .yaml or .yml file holding a single
            ``availableConnectors`` entry.

    Returns:
        The ConnectorConfiguration. It is not validated.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationLoadError: If the file cannot be parsed or is not a mapping.
    """
    suffix = Path(path).suffix.lower()
    if suffix not in (".json", ".yaml", ".yml"):
        raise ConfigurationLoadError(
            f"Unsupported configuration file type: {path} (expected .json, .yaml or .yml)"
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            if suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except FileNotFoundError:
        raise
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationLoadError(f"Failed to parse configuration file {path}: {e}")
    except UnicodeDecodeError as e:
        raise ConfigurationLoadError(f"Configuration file {path} is not valid UTF-8: {e}")
    except OSError as e:
        raise ConfigurationLoadError(f"Failed to read configuration file {path}: {e.strerror or e}")

    if not isinstance(data, dict):
        raise ConfigurationLoadError(f"Configuration file {path} must contain a mapping")
    return ConnectorConfiguration.from_dict(data)
