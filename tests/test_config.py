"""Tests for configuration module."""

import json
import os
from pathlib import Path
from unittest.mock import patch

from setup_buildx.config import Settings, get_settings, print_settings_json


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should have sensible defaults."""
        home = Path.home()
        with patch.dict(os.environ, {"HOME": str(home)}, clear=True):
            settings = Settings()

        assert settings.cache_dir == home / ".cache" / "setup-buildx"
        assert settings.docker_config_dir == home / ".docker"
        assert settings.buildx_config_dir == home / ".docker" / "buildx"
        assert settings.tmp_dir is None
        assert settings.log_level == "INFO"
        assert settings.verify_checksum is True
        assert settings.github_token is None

    def test_settings_from_env(self) -> None:
        """Settings should be loadable from environment variables."""
        with patch.dict(
            os.environ,
            {
                "SETUP_BUILDX_LOG_LEVEL": "DEBUG",
                "SETUP_BUILDX_VERIFY_CHECKSUM": "false",
                "SETUP_BUILDX_DOWNLOAD_TIMEOUT": "120",
            },
        ):
            settings = Settings()
            assert settings.log_level == "DEBUG"
            assert settings.verify_checksum is False
            assert settings.download_timeout == 120

    def test_docker_and_buildx_config_from_env(self) -> None:
        """Config dirs should follow DOCKER_CONFIG and BUILDX_CONFIG."""
        with patch.dict(
            os.environ,
            {"DOCKER_CONFIG": "/tmp/docker-cfg"},
            clear=True,
        ):
            settings = Settings()
            assert settings.docker_config_dir == Path("/tmp/docker-cfg")
            assert settings.buildx_config_dir == Path("/tmp/docker-cfg/buildx")
            assert settings.plugins_dir == Path("/tmp/docker-cfg/cli-plugins")

        with patch.dict(os.environ, {"BUILDX_CONFIG": "/tmp/bx"}, clear=True):
            settings = Settings()
            assert settings.buildx_config_dir == Path("/tmp/bx")
            assert settings.certs_dir == Path("/tmp/bx/certs")

    def test_runner_directories(self) -> None:
        """Runner temp and tool cache should be used when present."""
        with patch.dict(
            os.environ,
            {"RUNNER_TEMP": "/runner/temp", "RUNNER_TOOL_CACHE": "/runner/tools"},
            clear=True,
        ):
            settings = Settings()
            assert settings.tmp_dir == Path("/runner/temp")
            assert settings.cache_dir == Path("/runner/tools/setup-buildx")

    def test_github_token_fallback(self) -> None:
        """GITHUB_TOKEN should be picked up as the API token."""
        with patch.dict(os.environ, {"GITHUB_TOKEN": "ghs_abc"}, clear=True):
            settings = Settings()
            assert settings.github_token == "ghs_abc"


class TestGetSettings:
    """Test get_settings function."""

    def test_get_settings_returns_settings(self) -> None:
        """get_settings should return a Settings instance."""
        settings = get_settings()
        assert isinstance(settings, Settings)


class TestPrintSettingsJson:
    """Test print_settings_json function."""

    def test_print_settings_json(self) -> None:
        """print_settings_json should return valid JSON."""
        settings = Settings()
        json_str = print_settings_json(settings)

        parsed = json.loads(json_str)

        assert "cache_dir" in parsed
        assert "buildx_config_dir" in parsed
        assert "log_level" in parsed

    def test_token_not_rendered(self) -> None:
        """The API token must not leak into the JSON dump."""
        with patch.dict(os.environ, {"GITHUB_TOKEN": "ghs_secret"}):
            json_str = print_settings_json(Settings())
        assert "ghs_secret" not in json_str

    def test_print_settings_json_default(self) -> None:
        """print_settings_json without args should use default settings."""
        json_str = print_settings_json()
        parsed = json.loads(json_str)
        assert "cache_dir" in parsed
