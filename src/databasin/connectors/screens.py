"""
Pipeline wizard screen identifiers.

These IDs correspond to the screens defined in the platform's
config/pipelines/FlowbasinPipelineScreens.json static asset. A connector
lists the screens its pipeline wizard needs in ``pipelineRequiredScreens``;
a handful of them (catalogs, database, schema, artifacts) decide how schema
discovery works for that connector.
"""

from enum import IntEnum


class Screen(IntEnum):
    """Wizard screens, identified by their numeric ID."""

    # Single-level discovery, schemas returned directly (MySQL, Oracle, MariaDB)
    CATALOGS = 1
    # Tables/views/objects to ingest; needs a schema context
    ARTIFACTS = 2
    COLUMNS = 3
    INGESTION_OPTIONS = 4
    FINAL_CONFIGURATION = 5
    # Two-level discovery, first step (Postgres, MSSQL, Databricks, Snowflake)
    DATABASE = 6
    # Two-level discovery, schema within the selected database
    SCHEMA = 7
    API_CONFIGURATION = 8
    API_AUTHENTICATION = 9
    GENERIC_API = 10


SCREEN_CATALOGS = Screen.CATALOGS
SCREEN_ARTIFACTS = Screen.ARTIFACTS
SCREEN_COLUMNS = Screen.COLUMNS
SCREEN_INGESTION_OPTIONS = Screen.INGESTION_OPTIONS
SCREEN_FINAL_CONFIGURATION = Screen.FINAL_CONFIGURATION
SCREEN_DATABASE = Screen.DATABASE
SCREEN_SCHEMA = Screen.SCHEMA
SCREEN_API_CONFIGURATION = Screen.API_CONFIGURATION
SCREEN_API_AUTHENTICATION = Screen.API_AUTHENTICATION
SCREEN_GENERIC_API = Screen.GENERIC_API

# Screens that determine the discovery pattern
DISCOVERY_SCREENS = (SCREEN_CATALOGS, SCREEN_DATABASE, SCREEN_SCHEMA)

# Screens that give the artifacts screen something to list tables from
SCHEMA_CONTEXT_SCREENS = (SCREEN_CATALOGS, SCREEN_DATABASE, SCREEN_SCHEMA)

ALL_SCREENS = tuple(Screen)

SCREEN_LABELS = {
    Screen.CATALOGS: "Catalogs/Schemas (RDBMS)",
    Screen.ARTIFACTS: "Artifacts (tables/views/objects)",
    Screen.COLUMNS: "Columns",
    Screen.INGESTION_OPTIONS: "Data ingestion options",
    Screen.FINAL_CONFIGURATION: "Final configuration",
    Screen.DATABASE: "Database (lakehouse)",
    Screen.SCHEMA: "Schema (lakehouse)",
    Screen.API_CONFIGURATION: "API configuration",
    Screen.API_AUTHENTICATION: "API authentication",
    Screen.GENERIC_API: "Generic API configuration",
}


def describe_screen(screen_id) -> str:
    """Return a human readable label for a screen ID, known or not."""
    try:
        return f"Screen {int(screen_id)}: {SCREEN_LABELS[Screen(screen_id)]}"
    except (ValueError, TypeError, KeyError):
        return f"Screen {screen_id}"
