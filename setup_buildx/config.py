"""Configuration settings for setup_buildx.

Uses pydantic-settings for config parsing from environment variables
and defaults. Step inputs are not settings; they are read by
setup_buildx.builder.inputs.
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_cache_dir() -> Path:
    """Return the default binary cache directory."""
    tool_cache = os.environ.get("RUNNER_TOOL_CACHE")
    if tool_cache:
        return Path(tool_cache) / "setup-buildx"
    return Path.home() / ".cache" / "setup-buildx"


def _default_docker_config_dir() -> Path:
    """Return the Docker CLI config directory."""
    docker_config = os.environ.get("DOCKER_CONFIG")
    if docker_config:
        return Path(docker_config)
    return Path.home() / ".docker"


def _default_buildx_config_dir() -> Path:
    """Return the buildx config directory."""
    buildx_config = os.environ.get("BUILDX_CONFIG")
    if buildx_config:
        return Path(buildx_config)
    return _default_docker_config_dir() / "buildx"


def _default_tmp_dir() -> Path | None:
    """Return the runner temp directory, if any."""
    runner_temp = os.environ.get("RUNNER_TEMP")
    return Path(runner_temp) if runner_temp else None


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the SETUP_BUILDX_
    prefix, falling back to the variables the Docker CLI and the runner
    already export.
    """

    model_config = SettingsConfigDict(
        env_prefix="SETUP_BUILDX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    cache_dir: Path = Field(
        default_factory=_default_cache_dir,
        description="Root directory for downloaded buildx binaries",
    )
    docker_config_dir: Path = Field(
        default_factory=_default_docker_config_dir,
        description="Docker CLI config directory (cli-plugins live here)",
    )
    buildx_config_dir: Path = Field(
        default_factory=_default_buildx_config_dir,
        description="buildx config directory (certificates live here)",
    )
    tmp_dir: Path | None = Field(
        default_factory=_default_tmp_dir,
        description="Temporary directory for BuildKit config files",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Releases
    buildx_repo: str = Field(
        default="docker/buildx",
        description="GitHub repository buildx releases are fetched from",
    )
    github_api_url: str = Field(
        default="https://api.github.com",
        description="GitHub API base URL",
    )
    releases_base_url: str = Field(
        default="https://github.com/docker/buildx/releases/download",
        description="Base URL for release downloads",
    )
    github_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SETUP_BUILDX_GITHUB_TOKEN", "GITHUB_TOKEN"),
        description="Token for GitHub API requests (raises rate limits)",
        exclude=True,
    )
    verify_checksum: bool = Field(
        default=True,
        description="Verify release binaries against checksums.txt",
    )

    # Timeouts (in seconds)
    download_timeout: int = Field(
        default=600,
        ge=30,
        description="Timeout for release downloads",
    )

    @property
    def certs_dir(self) -> Path:
        """Directory where node TLS material is written."""
        return self.buildx_config_dir / "certs"

    @property
    def plugins_dir(self) -> Path:
        """Docker CLI plugins directory."""
        return self.docker_config_dir / "cli-plugins"


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
