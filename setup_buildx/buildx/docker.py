"""Docker CLI helpers.

Availability checks and the few plain docker commands the action runs
around buildx: version/info banners and BuildKit container access.
"""

import logging
import shutil

from setup_buildx.buildx.runner import ExecResult, run, run_checked

logger = logging.getLogger(__name__)


def is_available() -> bool:
    """Whether the docker CLI is on PATH."""
    available = shutil.which("docker") is not None
    logger.debug("Docker CLI available: %s", available)
    return available


async def print_version() -> None:
    """Print `docker version`.

    Raises:
        CommandError: If docker is missing or the command fails.
    """
    await run_checked("docker", ["version"])


async def print_info() -> None:
    """Print `docker info`.

    Raises:
        CommandError: If docker is missing or the command fails.
    """
    await run_checked("docker", ["info"])


async def container_logs(container_name: str) -> ExecResult:
    """Fetch the logs of a container. The result is not checked."""
    return await run("docker", ["logs", container_name])


async def exec_in_container(container_name: str, args: list[str]) -> ExecResult:
    """Run a command inside a running container.

    Raises:
        CommandError: If the command fails.
    """
    return await run_checked(
        "docker", ["exec", container_name, *args], silent=True
    )


__all__ = [
    "container_logs",
    "exec_in_container",
    "is_available",
    "print_info",
    "print_version",
]
