"""
Unit tests for the databasin-connectors CLI.

Tests command invocation using Click's CliRunner, local configuration files
and mocks for the configuration client.
"""

import json
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from databasin.connectors.cli import main
from databasin.connectors.configuration_client import ConnectorNotFoundError
from databasin.connectors.discovery import ConnectorConfiguration


def _write_json(tmp_path, data, name="connector.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data))
    return str(path)


class TestValidateConnectorCommand:
    """Tests for validate_connector command."""

    def test_valid_file(self, tmp_path):
        """Test a clean lakehouse configuration from a file."""
        path = _write_json(
            tmp_path,
            {"connectorName": "Postgres", "pipelineRequiredScreens": [6, 7, 2, 3, 4, 5], "active": True},
        )
        runner = CliRunner()

        result = runner.invoke(main, ["validate_connector", "Postgres", "-F", path])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "Warnings" not in result.output

    def test_invalid_file(self, tmp_path):
        """Test errors are listed and the exit code is non-zero."""
        path = _write_json(tmp_path, {"pipelineRequiredScreens": [1, -5, 0], "active": True})
        runner = CliRunner()

        result = runner.invoke(main, ["validate_connector", "Broken", "-F", path])

        assert result.exit_code != 0
        assert "connectorName" in result.output
        assert "Invalid screen IDs" in result.output
        assert "Invalid connector configuration" in result.output

    def test_warnings_pass_unless_strict(self, tmp_path):
        """Test that warnings only fail with --strict."""
        path = _write_json(tmp_path, {"connectorName": "Test", "pipelineRequiredScreens": [1, 6, 7]})
        runner = CliRunner()

        relaxed = runner.invoke(main, ["validate_connector", "Test", "-F", path])
        strict = runner.invoke(main, ["validate_connector", "Test", "-F", path, "--strict"])

        assert relaxed.exit_code == 0
        assert "precedence" in relaxed.output
        assert strict.exit_code != 0
        assert "--strict" in strict.output

    def test_missing_file(self, tmp_path):
        runner = CliRunner()

        result = runner.invoke(
            main, ["validate_connector", "Test", "-F", str(tmp_path / "missing.json")]
        )

        assert result.exit_code != 0
        assert "not found" in result.output

    def test_undecodable_file(self, tmp_path):
        """Test a file that is not UTF-8 is reported, not raised."""
        path = tmp_path / "connector.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        runner = CliRunner()

        result = runner.invoke(main, ["validate_connector", "X", "-F", str(path)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "not valid UTF-8" in result.output

    def test_directory_instead_of_file(self, tmp_path):
        """Test a directory path is reported, not raised."""
        path = tmp_path / "connector.json"
        path.mkdir()
        runner = CliRunner()

        result = runner.invoke(main, ["validate_connector", "X", "-F", str(path)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Failed to read configuration file" in result.output

    def test_bad_config_file_value(self, tmp_path):
        """Test a wrongly typed setting in --config exits cleanly."""
        config_path = tmp_path / "c.yaml"
        config_path.write_text("web_url: 8080\n")
        runner = CliRunner()

        result = runner.invoke(main, ["validate_connector", "X", "-f", str(config_path)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "web_url" in result.output

    @patch("databasin.connectors.cli.ConfigurationClient")
    def test_remote_lookup(self, mock_client_cls):
        """Test that the configuration is fetched by name from the web app."""
        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        mock_client.get_connector_configuration.return_value = ConnectorConfiguration(
            connector_name="MySQL",
            pipeline_required_screens=[1, 2, 3, 4, 5],
            category="RDBMS",
        )
        runner = CliRunner()

        result = runner.invoke(
            main, ["validate_connector", "mysql", "--web-url", "https://app.example.com"]
        )

        assert result.exit_code == 0
        assert "Category:  RDBMS" in result.output
        mock_client.get_connector_configuration.assert_called_once_with("mysql")
        assert mock_client_cls.call_args[0][0].web_url == "https://app.example.com"

    @patch("databasin.connectors.cli.ConfigurationClient")
    def test_remote_lookup_not_found(self, mock_client_cls):
        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        mock_client.get_connector_configuration.side_effect = ConnectorNotFoundError(
            'Connector "Nope" not found in any of the 9 connector categories.'
        )
        runner = CliRunner()

        result = runner.invoke(main, ["validate_connector", "Nope"])

        assert result.exit_code != 0
        assert "not found" in result.output


class TestShowDiscoveryCommand:
    """Tests for show_discovery command."""

    def test_lakehouse(self, tmp_path):
        path = _write_json(
            tmp_path, {"connectorName": "Postgres", "pipelineRequiredScreens": [6, 7, 2, 3, 4, 5]}
        )
        runner = CliRunner()

        result = runner.invoke(main, ["show_discovery", "Postgres", "-F", path])

        assert result.exit_code == 0
        assert "lakehouse" in result.output
        assert "Database selection: yes" in result.output
        assert "Screen 6: Database (lakehouse)" in result.output
        assert "Screen 7: Schema (lakehouse)" in result.output

    def test_no_discovery(self, tmp_path):
        path = _write_json(
            tmp_path, {"connectorName": "Generic API", "pipelineRequiredScreens": [8, 9, 10]}
        )
        runner = CliRunner()

        result = runner.invoke(main, ["show_discovery", "Generic API", "-F", path])

        assert result.exit_code == 0
        assert "none (no schema discovery)" in result.output
        assert "Discovery screens" not in result.output

    def test_invalid_configuration(self, tmp_path):
        path = _write_json(tmp_path, {"connectorName": "Bad", "pipelineRequiredScreens": "6,7"})
        runner = CliRunner()

        result = runner.invoke(main, ["show_discovery", "Bad", "-F", path])

        assert result.exit_code != 0
        assert "invalid configuration" in result.output


class TestListScreensCommand:
    """Tests for list_screens command."""

    def test_lists_all_screens(self):
        runner = CliRunner()

        result = runner.invoke(main, ["list_screens"])

        assert result.exit_code == 0
        assert "Screen 1: Catalogs/Schemas (RDBMS)" in result.output
        assert "Screen 10: Generic API configuration" in result.output


class TestVersionAndHelp:
    """Tests for --version and --help options."""

    def test_version_option(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "databasin-connectors" in result.output

    def test_help_option(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "validate_connector" in result.output
        assert "show_discovery" in result.output
        assert "list_screens" in result.output

    def test_validate_connector_help(self):
        runner = CliRunner()
        result = runner.invoke(main, ["validate_connector", "--help"])

        assert result.exit_code == 0
        assert "--file" in result.output
        assert "--strict" in result.output
        assert "--web-url" in result.output
