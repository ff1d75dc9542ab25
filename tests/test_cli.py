"""Smoke tests for the CLI.

These tests verify basic CLI functionality without requiring
network access, Docker, or buildx.
"""

import json
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from setup_buildx import __version__
from setup_buildx.actions import InputError
from setup_buildx.builder.inspect import parse_inspect_output
from setup_buildx.builder.schema import BuilderInputs
from setup_buildx.buildx.runner import CommandError
from setup_buildx.cli import app

runner = CliRunner()

INSPECT_OUTPUT = """Name:   builder-1
Driver: docker-container

Nodes:
Name:      builder-10
Endpoint:  unix:///var/run/docker.sock
Status:    running
Platforms: linux/amd64, linux/386
"""


class TestCLIHelp:
    """Test CLI help and version commands."""

    def test_help_returns_zero(self) -> None:
        """CLI --help should return exit code 0."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Set up buildx" in result.stdout

    def test_version_flag(self) -> None:
        """CLI --version should print version and exit 0."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_short_version_flag(self) -> None:
        """CLI -V should print version and exit 0."""
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_no_args_shows_help(self) -> None:
        """CLI with no args should show help."""
        result = runner.invoke(app, [])
        assert "Usage:" in result.stdout


class TestCLIConfig:
    """Test CLI config command."""

    def test_config_command(self) -> None:
        """CLI config should show configuration."""
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Cache directory" in result.stdout

    def test_config_command_shows_all_sections(self) -> None:
        """CLI config should show every section."""
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Paths:" in result.stdout
        assert "Releases:" in result.stdout
        assert "Operational:" in result.stdout
        assert "Certs directory" in result.stdout

    def test_config_json(self) -> None:
        """CLI config --json should output valid JSON."""
        result = runner.invoke(app, ["config", "--json"])
        assert result.exit_code == 0
        parsed = json.loads(result.stdout)
        assert "buildx_repo" in parsed


class TestCLISteps:
    """Test the main and post steps."""

    def test_main_success(self) -> None:
        with patch(
            "setup_buildx.builder.inputs.get_inputs",
            return_value=BuilderInputs(name="builder-1"),
        ), patch(
            "setup_buildx.builder.service.setup_builder", new=AsyncMock()
        ) as mock_setup:
            result = runner.invoke(app, ["main"])

        assert result.exit_code == 0
        assert mock_setup.call_args.args[0].name == "builder-1"

    def test_main_input_error_fails_step(self) -> None:
        with patch(
            "setup_buildx.builder.inputs.get_inputs",
            side_effect=InputError("Input required and not supplied: endpoint"),
        ):
            result = runner.invoke(app, ["main"])

        assert result.exit_code == 1
        assert "::error::Input required and not supplied: endpoint" in result.stdout

    def test_main_command_error_fails_step(self) -> None:
        with patch(
            "setup_buildx.builder.inputs.get_inputs",
            return_value=BuilderInputs(name="builder-1"),
        ), patch(
            "setup_buildx.builder.service.setup_builder",
            new=AsyncMock(side_effect=CommandError("ERROR: failed to boot")),
        ):
            result = runner.invoke(app, ["main"])

        assert result.exit_code == 1
        assert "::error::ERROR: failed to boot" in result.stdout

    def test_main_filesystem_error_fails_step(self) -> None:
        with patch(
            "setup_buildx.builder.inputs.get_inputs",
            return_value=BuilderInputs(name="builder-1"),
        ), patch(
            "setup_buildx.builder.service.setup_builder",
            new=AsyncMock(side_effect=PermissionError(13, "Permission denied", "/certs")),
        ):
            result = runner.invoke(app, ["main"])

        assert result.exit_code == 1
        assert "::error::" in result.stdout
        assert "Permission denied" in result.stdout

    def test_post_never_fails(self) -> None:
        with patch(
            "setup_buildx.builder.cleanup.run_cleanup",
            new=AsyncMock(side_effect=RuntimeError("boom")),
        ):
            result = runner.invoke(app, ["post"])

        assert result.exit_code == 0
        assert "::warning::Cleanup failed: boom" in result.stdout


class TestCLIInspect:
    """Test CLI inspect command."""

    def test_inspect(self) -> None:
        builder = parse_inspect_output(INSPECT_OUTPUT)
        with patch(
            "setup_buildx.builder.inspect.inspect_builder",
            new=AsyncMock(return_value=builder),
        ):
            result = runner.invoke(app, ["inspect", "builder-1"])

        assert result.exit_code == 0
        assert "builder-10" in result.stdout
        assert "linux/amd64, linux/386" in result.stdout

    def test_inspect_json(self) -> None:
        builder = parse_inspect_output(INSPECT_OUTPUT)
        with patch(
            "setup_buildx.builder.inspect.inspect_builder",
            new=AsyncMock(return_value=builder),
        ):
            result = runner.invoke(app, ["inspect", "builder-1", "--json"])

        assert result.exit_code == 0
        parsed = json.loads(result.stdout)
        assert parsed["name"] == "builder-1"
        assert parsed["platforms"] == ["linux/amd64", "linux/386"]
        assert parsed["nodes"][0]["endpoint"] == "unix:///var/run/docker.sock"

    def test_inspect_failure(self) -> None:
        with patch(
            "setup_buildx.builder.inspect.inspect_builder",
            new=AsyncMock(side_effect=CommandError('no builder "nope" found')),
        ):
            result = runner.invoke(app, ["inspect", "nope"])

        assert result.exit_code == 1
        assert "Failed to inspect nope" in result.stdout
