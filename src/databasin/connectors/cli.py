"""
Command-line interface for Databasin connector configurations.

This module provides CLI commands for checking how a connector's pipeline
wizard discovers schemas and whether its screen configuration is sound.

Configuration Precedence:
    CLI arguments → environment variables → --config file → default_config.yaml → code defaults
"""

import logging
from typing import Optional

import click

from databasin.connectors import __version__
from databasin.connectors.config import build_config
from databasin.connectors.configuration_client import (
    ConfigurationClient,
    ConfigurationLoadError,
    load_connector_configuration_file,
)
from databasin.connectors.discovery import (
    ConnectorConfiguration,
    DiscoveryPattern,
    get_discovery_flow,
    validate_connector_configuration,
)
from databasin.connectors.screens import ALL_SCREENS, describe_screen


class OrderedGroup(click.Group):
    """Custom Click group that preserves command order as defined in code."""

    def list_commands(self, ctx):
        """Return commands in the order they were added, not alphabetically."""
        return list(self.commands.keys())


PATTERN_DESCRIPTIONS = {
    DiscoveryPattern.LAKEHOUSE: "lakehouse (database → schema → tables)",
    DiscoveryPattern.RDBMS: "rdbms (schema → tables)",
    DiscoveryPattern.NONE: "none (no schema discovery)",
}


def _load_configuration(
    ctx: click.Context,
    connector_name: str,
    config_file: Optional[str],
    connector_file: Optional[str],
    web_url: Optional[str],
    timeout: Optional[float],
) -> ConnectorConfiguration:
    """
    Load a connector configuration from a local file or from the web app.

    Raises:
        click.ClickException: If the configuration cannot be loaded.
    """
    debug = ctx.obj.get("debug", False)

    if connector_file:
        if debug:
            click.echo(f"[DEBUG] Loading configuration from file: {connector_file}")
        try:
            return load_connector_configuration_file(connector_file)
        except FileNotFoundError:
            raise click.ClickException(f"Connector configuration file not found: {connector_file}")
        except ConfigurationLoadError as e:
            raise click.ClickException(str(e))

    client_config = build_config(web_url=web_url, timeout=timeout, config_file=config_file)
    if debug:
        click.echo(f"[DEBUG] Client config: {client_config}")

    client = ConfigurationClient(client_config)
    try:
        return client.get_connector_configuration(connector_name)
    except ConfigurationLoadError as e:
        raise click.ClickException(str(e))


def _echo_list(title: str, items, err: bool = False) -> None:
    click.echo(f"{title}:", err=err)
    for item in items:
        click.echo(f"  - {item}", err=err)


def _source_options(func):
    """Options shared by commands that load a connector configuration."""
    options = [
        click.option(
            "--file",
            "-F",
            "connector_file",
            type=click.Path(),
            help="Read the connector configuration from a local .json/.yaml file instead of the web app",
        ),
        click.option(
            "--config",
            "-f",
            "config_file",
            type=click.Path(exists=True),
            help="Path to custom config file (overrides defaults)",
        ),
        click.option("--web-url", "-u", help="Databasin web app URL serving the configuration files"),
        click.option("--timeout", type=float, help="Request timeout in seconds"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group(cls=OrderedGroup)
@click.version_option(version=__version__, prog_name="databasin-connectors")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def main(ctx: click.Context, debug: bool):
    """
    Databasin connector configuration tool.

    Inspects the pipeline wizard screens a connector requires, reports which
    schema discovery pattern it uses, and validates the screen list.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="[DEBUG] %(name)s: %(message)s")


@main.command("validate_connector")
@click.argument("connector_name")
@_source_options
@click.option("--strict", is_flag=True, help="Treat warnings as failures")
@click.pass_context
def validate_connector(
    ctx: click.Context,
    connector_name: str,
    connector_file: Optional[str],
    config_file: Optional[str],
    web_url: Optional[str],
    timeout: Optional[float],
    strict: bool,
):
    """
    Validate a connector's pipeline screen configuration.

    CONNECTOR_NAME is the connector subtype (e.g., 'Postgres', 'MySQL').

    Exits with a non-zero status when the configuration has errors, or
    with --strict when it has warnings.

    \b
    Example:
        databasin-connectors validate_connector Postgres
        databasin-connectors validate_connector MySQL --web-url https://app.databasin.co
        databasin-connectors validate_connector custom -F connector.yaml --strict
    """
    configuration = _load_configuration(
        ctx, connector_name, config_file, connector_file, web_url, timeout
    )
    result = validate_connector_configuration(configuration)

    click.echo(f"Connector: {configuration.connector_name or connector_name}")
    if configuration.category:
        click.echo(f"Category:  {configuration.category}")
    click.echo(f"Screens:   {configuration.to_dict()['pipelineRequiredScreens']}")

    if result.errors:
        _echo_list("\nErrors", result.errors)
    if result.warnings:
        _echo_list("\nWarnings", result.warnings)

    if not result.valid:
        raise click.ClickException(
            f"Invalid connector configuration ({len(result.errors)} error(s))"
        )
    if strict and result.warnings:
        raise click.ClickException(
            f"Configuration has {len(result.warnings)} warning(s) (--strict)"
        )

    click.echo("\n  ✓ Configuration is valid")


@main.command("show_discovery")
@click.argument("connector_name")
@_source_options
@click.pass_context
def show_discovery(
    ctx: click.Context,
    connector_name: str,
    connector_file: Optional[str],
    config_file: Optional[str],
    web_url: Optional[str],
    timeout: Optional[float],
):
    """
    Show the schema discovery workflow of a connector.

    CONNECTOR_NAME is the connector subtype (e.g., 'Postgres', 'MySQL').

    \b
    Example:
        databasin-connectors show_discovery Postgres
        databasin-connectors show_discovery custom -F connector.json
    """
    debug = ctx.obj.get("debug", False)

    configuration = _load_configuration(
        ctx, connector_name, config_file, connector_file, web_url, timeout
    )
    result = validate_connector_configuration(configuration)
    if not result.valid:
        _echo_list("⚠️  Configuration errors", result.errors, err=True)
        raise click.ClickException("Cannot determine discovery workflow for an invalid configuration")
    for warning in result.warnings:
        click.echo(f"⚠️  Warning: {warning}", err=True)

    flow = get_discovery_flow(configuration)

    click.echo("Discovery Workflow")
    click.echo(f"{'=' * 40}")
    click.echo(f"  Connector:          {configuration.connector_name or connector_name}")
    click.echo(f"  Pattern:            {PATTERN_DESCRIPTIONS[flow.pattern]}")
    click.echo(f"  Database selection: {'yes' if flow.requires_database else 'no'}")
    click.echo(f"  Schema selection:   {'yes' if flow.requires_schema else 'no'}")

    if flow.screens:
        click.echo("\nDiscovery screens:")
        for screen_id in flow.screens:
            click.echo(f"  {describe_screen(screen_id)}")

    if debug:
        click.echo(f"\n[DEBUG] Full configuration: {configuration}")


@main.command("list_screens")
def list_screens():
    """
    List the pipeline wizard screens and their IDs.

    \b
    Example:
        databasin-connectors list_screens
    """
    for screen in ALL_SCREENS:
        click.echo(f"  {describe_screen(screen)}")


if __name__ == "__main__":
    main()
