"""
Discovery pattern detection and connector configuration validation.

Databasin connectors use one of two schema discovery workflows, selected by
the ``pipelineRequiredScreens`` list in the connector configuration:

    RDBMS-style (single phase): [1, 2, 3, 4, 5]
        Catalogs screen lists schemas directly (MySQL, Oracle, MariaDB, DB2).

    Lakehouse-style (two phase): [6, 7, 2, 3, 4, 5]
        Database screen, then schema screen within the selected database
        (Postgres, MSSQL, Databricks, Snowflake).

Everything in this module is a pure function over an already deserialized
configuration. Nothing here performs I/O.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from databasin.connectors.screens import (
    DISCOVERY_SCREENS,
    SCHEMA_CONTEXT_SCREENS,
    SCREEN_ARTIFACTS,
    SCREEN_CATALOGS,
    SCREEN_DATABASE,
    SCREEN_SCHEMA,
)


class DiscoveryPattern(str, Enum):
    """Discovery workflow a connector uses."""

    LAKEHOUSE = "lakehouse"
    RDBMS = "rdbms"
    NONE = "none"


@dataclass(frozen=True)
class ConnectorConfiguration:
    """
    Wizard requirements for one connector type.

    ``pipeline_required_screens`` is left untyped on purpose: configurations
    come from loosely typed JSON and the validator has to be able to report a
    value that is not a list at all. A list is stored as a tuple and
    ``extra`` as a read-only mapping, so the value cannot change after
    construction. ``extra`` takes part in equality but not in hashing.
    """

    connector_name: Optional[str] = None
    pipeline_required_screens: Any = None
    active: bool = True
    category: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if isinstance(self.pipeline_required_screens, list):
            object.__setattr__(
                self, "pipeline_required_screens", tuple(self.pipeline_required_screens)
            )
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConnectorConfiguration":
        """
        Build a configuration from a raw ``availableConnectors`` entry.

        Known keys are mapped to attributes; everything else is kept in
        ``extra`` untouched. No validation happens here.
        """
        known = {"connectorName", "pipelineRequiredScreens", "active", "category"}
        return cls(
            connector_name=data.get("connectorName"),
            pipeline_required_screens=data.get("pipelineRequiredScreens"),
            active=bool(data.get("active", True)),
            category=data.get("category"),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data["connectorName"] = self.connector_name
        screens = self.pipeline_required_screens
        data["pipelineRequiredScreens"] = list(screens) if isinstance(screens, tuple) else screens
        data["active"] = self.active
        if self.category is not None:
            data["category"] = self.category
        return data


@dataclass(frozen=True)
class DiscoveryFlow:
    """Everything the wizard needs to know about a connector's discovery."""

    pattern: DiscoveryPattern
    requires_database: bool
    requires_schema: bool
    screens: Tuple[int, ...]


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a connector configuration."""

    valid: bool
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


class InvalidConnectorConfigurationError(ValueError):
    """Raised by assert_valid_configuration for a configuration with errors."""

    def __init__(self, errors: Iterable[str]):
        self.errors = tuple(errors)
        details = "\n".join(f"  - {error}" for error in self.errors)
        super().__init__(f"Invalid connector configuration:\n{details}")


# ---------------------------------------------------------------------------
# Field access
# ---------------------------------------------------------------------------

def _get_field(config: Any, key: str, attribute: str) -> Any:
    """Read a field from either a ConnectorConfiguration or a raw mapping."""
    if isinstance(config, ConnectorConfiguration):
        return getattr(config, attribute)
    if isinstance(config, Mapping):
        return config.get(key)
    return getattr(config, attribute, None)


def _as_screen_list(screens: Any) -> List[Any]:
    if isinstance(screens, (list, tuple)):
        return list(screens)
    return []


def _required_screens(config: Any) -> List[Any]:
    if config is None:
        return []
    return _as_screen_list(
        _get_field(config, "pipelineRequiredScreens", "pipeline_required_screens")
    )


def _contains(screens: List[Any], screen: int) -> bool:
    # bool is an int subclass, but True is not screen 1
    return any(s == screen and not isinstance(s, bool) for s in screens)


# ---------------------------------------------------------------------------
# Pattern classifier
# ---------------------------------------------------------------------------


def is_single_phase(screens: Any) -> bool:
    """True when the catalogs screen is present without the database screen."""
    screens = _as_screen_list(screens)
    return _contains(screens, SCREEN_CATALOGS) and not _contains(screens, SCREEN_DATABASE)


def is_two_phase(screens: Any) -> bool:
    """True when both the database and the schema screens are present."""
    screens = _as_screen_list(screens)
    return _contains(screens, SCREEN_DATABASE) and _contains(screens, SCREEN_SCHEMA)


def has_conflict(screens: Any) -> bool:
    """True when RDBMS catalogs and lakehouse database screens are both present."""
    screens = _as_screen_list(screens)
    return _contains(screens, SCREEN_CATALOGS) and _contains(screens, SCREEN_DATABASE)


def has_incomplete_lakehouse(screens: Any) -> bool:
    """True when the database screen has no schema screen to follow it."""
    screens = _as_screen_list(screens)
    return _contains(screens, SCREEN_DATABASE) and not _contains(screens, SCREEN_SCHEMA)


def has_orphan_schema(screens: Any) -> bool:
    """True when schema selection has neither a catalogs nor a database screen."""
    screens = _as_screen_list(screens)
    return (
        _contains(screens, SCREEN_SCHEMA)
        and not _contains(screens, SCREEN_CATALOGS)
        and not _contains(screens, SCREEN_DATABASE)
    )


def has_orphan_artifacts(screens: Any) -> bool:
    """True when the artifacts screen has no screen establishing a schema."""
    screens = _as_screen_list(screens)
    return _contains(screens, SCREEN_ARTIFACTS) and not any(
        _contains(screens, screen) for screen in SCHEMA_CONTEXT_SCREENS
    )


def get_discovery_pattern(config: Any) -> DiscoveryPattern:
    """
    Determine the discovery pattern of a connector configuration.

    Detection rules, in order:
        - no screens (missing, not a list, or empty): NONE
        - database and schema screens present: LAKEHOUSE, even when the
          catalogs screen is also present
        - catalogs screen without database or schema: RDBMS
        - schema screen without database (schema-only connectors such as
          Microsoft Access, [7, 2, 3, 4, 5]): RDBMS
        - anything else: NONE

    Args:
        config: ConnectorConfiguration or a raw configuration mapping.

    Returns:
        The DiscoveryPattern for the connector.
    """
    screens = _required_screens(config)
    if not screens:
        return DiscoveryPattern.NONE

    if is_two_phase(screens):
        return DiscoveryPattern.LAKEHOUSE

    has_catalogs = _contains(screens, SCREEN_CATALOGS)
    has_database = _contains(screens, SCREEN_DATABASE)
    has_schema = _contains(screens, SCREEN_SCHEMA)

    if has_catalogs and not has_database and not has_schema:
        return DiscoveryPattern.RDBMS

    if has_schema and not has_database:
        return DiscoveryPattern.RDBMS

    return DiscoveryPattern.NONE


def requires_database_selection(config: Any) -> bool:
    """True if the connector asks for a database/catalog before schemas."""
    return _contains(_required_screens(config), SCREEN_DATABASE)


def requires_schema_selection(config: Any) -> bool:
    """True if the connector has any schema selection step (screen 1 or 7)."""
    screens = _required_screens(config)
    return _contains(screens, SCREEN_CATALOGS) or _contains(screens, SCREEN_SCHEMA)


def get_discovery_screens(config: Any) -> Tuple[int, ...]:
    """Discovery screens of the connector, in the order they appear."""
    return tuple(
        int(s)
        for s in _required_screens(config)
        if any(_contains([s], screen) for screen in DISCOVERY_SCREENS)
    )


def uses_legacy_discovery(config: Any) -> bool:
    return get_discovery_pattern(config) is DiscoveryPattern.RDBMS


def uses_lakehouse_discovery(config: Any) -> bool:
    return get_discovery_pattern(config) is DiscoveryPattern.LAKEHOUSE


def get_discovery_flow(config: Any) -> DiscoveryFlow:
    """Aggregate all discovery metadata for a connector configuration."""
    return DiscoveryFlow(
        pattern=get_discovery_pattern(config),
        requires_database=requires_database_selection(config),
        requires_schema=requires_schema_selection(config),
        screens=get_discovery_screens(config),
    )


# ---------------------------------------------------------------------------
# Configuration validation
# ---------------------------------------------------------------------------


def _is_valid_screen_id(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 1
    if isinstance(value, float):
        return value.is_integer() and value >= 1
    return False


def _screen_key(value: Any) -> Tuple[str, Any]:
    if isinstance(value, bool):
        return ("bool", value)
    try:
        hash(value)
    except TypeError:
        return ("repr", repr(value))
    return ("value", value)


def _has_duplicates(screens: List[Any]) -> bool:
    seen = set()
    for screen in screens:
        key = _screen_key(screen)
        if key in seen:
            return True
        seen.add(key)
    return False


def validate_connector_configuration(config: Any) -> ValidationResult:
    """
    Validate a connector's discovery configuration.

    Errors make the configuration invalid; warnings point at screen lists
    that will probably misbehave in the wizard but are still usable. All
    applicable checks run and are reported together. This function never
    raises.

    Args:
        config: ConnectorConfiguration, raw configuration mapping, or None.

    Returns:
        ValidationResult with the accumulated errors and warnings.
    """
    if config is None:
        return ValidationResult(valid=False, errors=("Configuration is null or undefined",))

    errors: List[str] = []
    warnings: List[str] = []

    if not _get_field(config, "connectorName", "connector_name"):
        errors.append("Missing connectorName in configuration")

    raw_screens = _get_field(config, "pipelineRequiredScreens", "pipeline_required_screens")
    if raw_screens is None:
        errors.append("Missing pipelineRequiredScreens array")
        return ValidationResult(valid=False, errors=tuple(errors))

    if not isinstance(raw_screens, (list, tuple)):
        errors.append("pipelineRequiredScreens is not an array")
        return ValidationResult(valid=False, errors=tuple(errors))

    screens = list(raw_screens)

    invalid = [s for s in screens if not _is_valid_screen_id(s)]
    if invalid:
        errors.append(
            "Invalid screen IDs in pipelineRequiredScreens: "
            f"{', '.join(str(s) for s in invalid)} "
            "(screen IDs must be positive integers)"
        )

    if not screens:
        warnings.append(
            "pipelineRequiredScreens is empty - connector will have no discovery workflow"
        )

    if _has_duplicates(screens):
        warnings.append(
            "pipelineRequiredScreens contains duplicate screen IDs - duplicates will be ignored"
        )

    if has_conflict(screens):
        warnings.append(
            f"Configuration includes both Screen {int(SCREEN_CATALOGS)} (RDBMS catalogs) "
            f"and Screen {int(SCREEN_DATABASE)} (lakehouse database) - "
            "lakehouse pattern will take precedence"
        )

    if has_incomplete_lakehouse(screens):
        warnings.append(
            f"Screen {int(SCREEN_DATABASE)} (database) present without "
            f"Screen {int(SCREEN_SCHEMA)} (schema) - "
            "incomplete lakehouse pattern may cause discovery to fail"
        )

    if has_orphan_schema(screens):
        warnings.append(
            f"Screen {int(SCREEN_SCHEMA)} (schema) present without "
            f"Screen {int(SCREEN_DATABASE)} (database) or "
            f"Screen {int(SCREEN_CATALOGS)} (catalogs) - "
            "schema selection has no parent screen"
        )

    if has_orphan_artifacts(screens):
        warnings.append(
            f"Screen {int(SCREEN_ARTIFACTS)} (artifacts) present without schema selection - "
            "artifact discovery needs schema context"
        )

    return ValidationResult(
        valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )


def assert_valid_configuration(config: Any) -> None:
    """
    Raise if a connector configuration has errors.

    Warnings are ignored. The raised message lists every error so callers
    get the whole picture in one go.

    Raises:
        InvalidConnectorConfigurationError: If validation reports errors.
    """
    result = validate_connector_configuration(config)
    if not result.valid:
        raise InvalidConnectorConfigurationError(result.errors)
