"""Builder inspection.

This module handles:
- Parsing the text output of `buildx inspect` into BuilderInfo
- Reducing node platforms to a deduplicated, ordered list
- Inspecting a builder by name and checking whether it exists
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from setup_buildx.builder.commands import rm_args
from setup_buildx.builder.schema import BuilderInfo, BuilderNode
from setup_buildx.buildx.runner import ExecResult, run, run_checked

if TYPE_CHECKING:
    from collections.abc import Iterable

    from setup_buildx.buildx.tool import Buildx

logger = logging.getLogger(__name__)

# key="value" pairs of the "Driver Options:" line
DRIVER_OPT_PATTERN = re.compile(r'(\S+?)="(.*?)"')

FLAGS_KEYS = ("flags", "buildkitd flags", "buildkit daemon flags")
BUILDKIT_KEYS = ("buildkit", "buildkit version")


def parse_inspect_output(output: str) -> BuilderInfo:
    """Parse `buildx inspect` output.

    The first 'Name:' line names the builder; every later one starts a
    new node. Lines that are not 'Key: value' pairs, and keys not listed
    here (labels, GC policy, ...), are ignored.

    Args:
        output: Command stdout.

    Returns:
        BuilderInfo with nodes in reported order.
    """
    builder: dict[str, Any] = {}
    nodes: list[dict[str, Any]] = []
    node: dict[str, Any] | None = None

    for line in output.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()

        if key == "name":
            if "name" not in builder:
                builder["name"] = value
            else:
                node = {"name": value}
                nodes.append(node)
            continue

        if node is None:
            if key == "driver":
                builder["driver"] = value
            elif key == "last activity":
                builder["last_activity"] = value
            continue

        if key == "endpoint":
            node["endpoint"] = value
        elif key == "driver options":
            node["driver_opts"] = [
                f"{k}={v}" for k, v in DRIVER_OPT_PATTERN.findall(value)
            ]
        elif key == "status":
            node["status"] = value
        elif key in FLAGS_KEYS:
            node["buildkitd_flags"] = value
        elif key in BUILDKIT_KEYS:
            node["buildkit"] = value
        elif key == "platforms":
            # '*' marks platforms set by the user
            node["platforms"] = [
                p.strip().rstrip("*") for p in value.split(",") if p.strip()
            ]

    return BuilderInfo(
        name=builder.get("name"),
        driver=builder.get("driver"),
        last_activity=builder.get("last_activity"),
        nodes=[BuilderNode(**n) for n in nodes],
    )


def reduce_platforms(nodes: Iterable[BuilderNode]) -> list[str]:
    """Return the union of node platforms in first-seen order.

    Args:
        nodes: Builder nodes.

    Returns:
        Platforms without duplicates (case-sensitive).
    """
    platforms: list[str] = []
    for node in nodes:
        for platform in node.platforms:
            if platform not in platforms:
                platforms.append(platform)
    return platforms


async def inspect_builder(buildx: Buildx, name: str) -> BuilderInfo:
    """Inspect a builder by name.

    Args:
        buildx: buildx CLI handle.
        name: Builder name.

    Returns:
        Parsed BuilderInfo.

    Raises:
        CommandError: If the inspect command fails.
    """
    command, args = buildx.get_command(["inspect", name])
    result = await run_checked(command, args, silent=True)
    return parse_inspect_output(result.stdout)


async def builder_exists(buildx: Buildx, name: str) -> bool:
    """Whether a builder with this name exists.

    Raises:
        CommandError: If buildx cannot be started.
    """
    command, args = buildx.get_command(["inspect", name])
    result = await run(command, args, silent=True)
    logger.debug("Builder %s exists: %s", name, result.exit_code == 0)
    return result.exit_code == 0


async def remove_builder(buildx: Buildx, name: str) -> ExecResult:
    """Run `buildx rm`. The result is not checked.

    Raises:
        CommandError: If buildx cannot be started.
    """
    command, args = buildx.get_command(rm_args(name))
    return await run(command, args)


__all__ = [
    "builder_exists",
    "inspect_builder",
    "parse_inspect_output",
    "reduce_platforms",
    "remove_builder",
]
