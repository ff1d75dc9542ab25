"""BuildKit helpers.

This module handles:
- Materializing the `config` / `config-inline` inputs into a file inside
  a process-local temporary directory, for `buildx create --config`
- Resolving the BuildKit daemon version of a builder node
"""

from __future__ import annotations

import logging
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING

from setup_buildx.buildx import docker
from setup_buildx.buildx.tool import parse_version
from setup_buildx.config import get_settings
from setup_buildx.types import CONTAINER_NAME_PREFIX

if TYPE_CHECKING:
    from setup_buildx.builder.schema import BuilderNode

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "buildkitd.toml"


class BuildkitConfigError(Exception):
    """Raised when a BuildKit config cannot be resolved."""

    def __init__(self, message: str, code: str = "config_error") -> None:
        super().__init__(message)
        self.code = code


@lru_cache(maxsize=1)
def tmp_dir() -> Path:
    """Return the temporary directory of this process, creating it once."""
    base = get_settings().tmp_dir
    if base is not None:
        base.mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix="docker-setup-buildx-", dir=base))
    logger.debug("Using temporary directory %s", path)
    return path


def _write_config(content: str, dest_dir: Path | None) -> str:
    directory = dest_dir or tmp_dir()
    directory.mkdir(parents=True, exist_ok=True)
    config_path = directory / CONFIG_FILENAME
    config_path.write_text(content, encoding="utf-8")
    logger.debug("Wrote BuildKit config to %s", config_path)
    return str(config_path)


def resolve_config_from_file(config_file: str, dest_dir: Path | None = None) -> str:
    """Copy a BuildKit config file into the temporary directory.

    Args:
        config_file: Path to an existing buildkitd.toml.
        dest_dir: Destination directory (defaults to tmp_dir()).

    Returns:
        Path of the copy, as passed to --config.

    Raises:
        BuildkitConfigError: If the file does not exist.
    """
    source = Path(config_file)
    if not source.is_file():
        raise BuildkitConfigError(
            f"config file {config_file} not found", code="config_not_found"
        )
    return _write_config(source.read_text(encoding="utf-8"), dest_dir)


def resolve_config_from_string(content: str, dest_dir: Path | None = None) -> str:
    """Write inline BuildKit config into the temporary directory.

    Args:
        content: buildkitd.toml content.
        dest_dir: Destination directory (defaults to tmp_dir()).

    Returns:
        Path of the written file, as passed to --config.
    """
    return _write_config(content, dest_dir)


async def get_version(node: BuilderNode) -> str:
    """Return the BuildKit version of a node.

    Uses the version reported by `buildx inspect` when present, otherwise
    asks buildkitd inside the node's container.

    Args:
        node: Inspected builder node.

    Returns:
        BuildKit version string (e.g. 'v0.11.6').

    Raises:
        CommandError: If the container cannot be queried.
    """
    if node.buildkit:
        return node.buildkit
    result = await docker.exec_in_container(
        f"{CONTAINER_NAME_PREFIX}{node.name}", ["buildkitd", "--version"]
    )
    try:
        return f"v{parse_version(result.stdout)}"
    except ValueError:
        return result.stdout.strip()


__all__ = [
    "BuildkitConfigError",
    "get_version",
    "resolve_config_from_file",
    "resolve_config_from_string",
    "tmp_dir",
]
