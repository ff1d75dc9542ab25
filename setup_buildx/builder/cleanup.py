"""Builder cleanup (post step).

Consumes only the state recorded by the main step. Every step is best
effort: failures are logged as warnings and the next step still runs.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from setup_buildx import actions, state
from setup_buildx.builder.inspect import builder_exists, remove_builder
from setup_buildx.buildx import docker
from setup_buildx.buildx.runner import CommandError, extract_error
from setup_buildx.buildx.tool import Buildx
from setup_buildx.state import CleanupState
from setup_buildx.types import DriverKind

logger = logging.getLogger(__name__)


async def dump_container_logs(container_name: str) -> None:
    """Print the logs of the BuildKit container."""
    try:
        result = await docker.container_logs(container_name)
    except CommandError as e:
        logger.warning("%s", e)
        return
    if result.failed:
        logger.warning("%s", extract_error(result.stderr))


async def remove_builder_if_exists(buildx: Buildx, name: str) -> None:
    """Remove a builder, or note that it is already gone."""
    try:
        if not await builder_exists(buildx, name):
            logger.info("%s does not exist", name)
            return
        result = await remove_builder(buildx, name)
    except CommandError as e:
        logger.warning("%s", e)
        return
    if result.failed:
        logger.warning("%s", extract_error(result.stderr))


def remove_certs_dir(certs_dir: str) -> None:
    """Delete the certificates directory."""
    try:
        shutil.rmtree(certs_dir)
    except OSError as e:
        logger.warning("Failed to remove %s: %s", certs_dir, e)


async def run_cleanup(
    cleanup_state: CleanupState | None = None,
    buildx: Buildx | None = None,
) -> None:
    """Run the post step.

    Args:
        cleanup_state: State from the main step; loaded if not provided.
        buildx: buildx CLI handle; built from the recorded mode if not provided.
    """
    st = cleanup_state or state.load_state()

    if st.debug and st.container_name:
        with actions.group("BuildKit container logs"):
            await dump_container_logs(st.container_name)

    if not st.cleanup:
        return

    if st.builder_driver != DriverKind.DOCKER.value and st.builder_name:
        with actions.group("Removing builder"):
            await remove_builder_if_exists(
                buildx or Buildx(standalone=st.standalone), st.builder_name
            )

    if st.certs_dir and Path(st.certs_dir).exists():
        with actions.group("Cleaning up certificates"):
            remove_certs_dir(st.certs_dir)


__all__ = [
    "dump_container_logs",
    "remove_builder_if_exists",
    "remove_certs_dir",
    "run_cleanup",
]
