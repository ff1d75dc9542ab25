"""buildx CLI wrapper.

This module handles:
- Detecting standalone mode (buildx without the Docker CLI)
- Composing buildx invocations (`docker buildx ...` or `buildx ...`)
- Detecting and parsing the installed buildx version
- Semantic-version range checks used by feature gates
"""

from __future__ import annotations

import logging
import re

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from setup_buildx.buildx import docker
from setup_buildx.buildx.runner import CommandError, run, run_checked

logger = logging.getLogger(__name__)

# Matches the version token of `buildx version` / `buildkitd --version`,
# e.g. "github.com/docker/buildx v0.11.2 9872040" -> "0.11.2"
VERSION_PATTERN = re.compile(r"\sv?([0-9a-f]{7}|[0-9.]+)")


def parse_version(output: str) -> str:
    """Extract the version from `buildx version` output.

    Args:
        output: Command stdout.

    Returns:
        Version string (a commit hash for development builds).

    Raises:
        ValueError: If no version can be found.
    """
    match = VERSION_PATTERN.search(output)
    if not match:
        raise ValueError(f"Cannot parse buildx version from: {output.strip()!r}")
    return match.group(1)


def satisfies(version: str, specifier: str) -> bool:
    """Check a version against a range such as '>=0.3.0'.

    Only full major.minor.patch versions can satisfy a range; commit
    hashes, empty strings and anything unparseable never do.

    Args:
        version: Version to check.
        specifier: PEP 440 style specifier set.

    Returns:
        True if the version is in range.
    """
    try:
        parsed = Version(version)
        spec = SpecifierSet(specifier)
    except (InvalidVersion, InvalidSpecifier):
        logger.debug("Cannot compare %r against %r", version, specifier)
        return False
    if len(parsed.release) != 3:
        return False
    return spec.contains(parsed, prereleases=True)


class Buildx:
    """Handle on the buildx CLI of the current host.

    The detected version is cached; call clear_cache() after installing a
    different binary.
    """

    def __init__(self, standalone: bool | None = None) -> None:
        """Initialize Buildx.

        Args:
            standalone: Force standalone mode on or off; detected when None.
        """
        self._standalone = standalone
        self._version: str | None = None

    def is_standalone(self) -> bool:
        """Whether buildx is used without the Docker CLI."""
        if self._standalone is None:
            self._standalone = not docker.is_available()
        return self._standalone

    def get_command(self, args: list[str]) -> tuple[str, list[str]]:
        """Compose a buildx invocation.

        Args:
            args: buildx arguments (e.g. ['inspect', '--bootstrap']).

        Returns:
            Tuple of (executable, arguments).
        """
        if self.is_standalone():
            return "buildx", list(args)
        return "docker", ["buildx", *args]

    async def is_available(self) -> bool:
        """Whether a working buildx is installed."""
        command, args = self.get_command([])
        try:
            result = await run(command, args, silent=True)
        except CommandError:
            return False
        return not result.failed

    async def version(self) -> str:
        """Return the installed buildx version.

        An undetectable version is returned as an empty string, which
        satisfies no feature gate.
        """
        if self._version is None:
            command, args = self.get_command(["version"])
            try:
                result = await run_checked(command, args, silent=True)
                self._version = parse_version(result.stdout)
            except (CommandError, ValueError) as e:
                logger.warning("Cannot detect buildx version: %s", e)
                self._version = ""
        return self._version

    async def print_version(self) -> None:
        """Print `buildx version` to the log."""
        command, args = self.get_command(["version"])
        await run_checked(command, args)

    def clear_cache(self) -> None:
        self._version = None


__all__ = ["VERSION_PATTERN", "Buildx", "parse_version", "satisfies"]
