"""Builder setup service (main step).

This module sequences the main step:
- Ensure buildx is installed (download a release or build from source)
- Create the builder and append nodes, strictly one command at a time
- Bootstrap and inspect the builder, and publish step outputs
- Record the state the post step needs for cleanup

Every failure here is fatal; there are no retries. A builder left behind
by a failed step is removed by the post step when cleanup is enabled.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from setup_buildx import actions, state
from setup_buildx.builder.commands import (
    TLSMaterial,
    append_args,
    create_args,
    inspect_args,
    resolve_certs_driver_opts,
)
from setup_buildx.builder.inspect import inspect_builder, reduce_platforms
from setup_buildx.builder.schema import BuilderInfo, BuilderInputs, BuilderNode
from setup_buildx.buildx import buildkit, docker
from setup_buildx.buildx.install import (
    build_from_source,
    download_release,
    install_plugin,
    install_standalone,
    is_source_ref,
)
from setup_buildx.buildx.runner import CommandError, run_checked
from setup_buildx.buildx.tool import Buildx
from setup_buildx.config import Settings, get_settings
from setup_buildx.types import CONTAINER_NAME_PREFIX, DriverKind

logger = logging.getLogger(__name__)


class PrerequisiteError(Exception):
    """Raised when an operation needs the Docker CLI in standalone mode."""

    def __init__(
        self,
        message: str,
        code: str = "unavailable_prerequisite",
    ) -> None:
        """Initialize PrerequisiteError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


@dataclass
class SetupResult:
    """Result of the main step.

    Attributes:
        builder: Inspected builder.
        platforms: Deduplicated platforms of all nodes.
        standalone: Whether buildx ran without the Docker CLI.
        tool_path: Installed buildx binary, if one was installed.
        container_name: BuildKit container of the first node, if any.
    """

    builder: BuilderInfo
    platforms: list[str]
    standalone: bool
    tool_path: Path | None = None
    container_name: str | None = None


async def _run_buildx(
    buildx: Buildx, args: list[str], prefix: str | None = None
) -> None:
    command, cmd_args = buildx.get_command(args)
    await run_checked(command, cmd_args, prefix=prefix)


async def ensure_buildx(
    inputs: BuilderInputs,
    buildx: Buildx,
    settings: Settings,
) -> Path | None:
    """Install the requested buildx when needed.

    Builds from source for git references, downloads a release when buildx
    is missing or a version was requested, and otherwise keeps the
    installed one.

    Args:
        inputs: Resolved step configuration.
        buildx: buildx CLI handle.
        settings: Settings with install locations.

    Returns:
        Path of the installed binary, or None if nothing was installed.

    Raises:
        PrerequisiteError: If a source build is requested in standalone mode.
        CommandError: If the source build fails.
        DownloadError: If the release cannot be downloaded.
        InstallError: If the binary cannot be installed.
    """
    standalone = buildx.is_standalone()
    tool_path: Path | None = None

    if is_source_ref(inputs.version):
        if standalone:
            raise PrerequisiteError("Cannot build from source without the Docker CLI")
        with actions.group("Build buildx from source"):
            tool_path = await build_from_source(
                inputs.version, buildx, buildkit.tmp_dir() / "buildx-build"
            )
    elif inputs.version or not await buildx.is_available():
        with actions.group("Download buildx from GitHub Releases"):
            with httpx.Client() as client:
                tool_path = download_release(
                    client,
                    inputs.version or "latest",
                    settings=settings,
                    use_cache=inputs.cache_binary,
                )

    if tool_path is None:
        return None

    with actions.group("Install buildx"):
        if standalone:
            installed = install_standalone(tool_path, settings.cache_dir / "bin")
        else:
            installed = install_plugin(tool_path, settings.plugins_dir)
    buildx.clear_cache()
    return installed


def node_output(node: BuilderNode) -> dict[str, Any]:
    """Render a node for the `nodes` output, platforms comma-joined."""
    data = node.model_dump(by_alias=True, exclude_none=True)
    data.pop("platforms", None)
    if node.platforms:
        data["platforms"] = ",".join(node.platforms)
    return data


def publish_outputs(builder: BuilderInfo, platforms: list[str]) -> None:
    """Publish the inspected builder as step outputs."""
    actions.set_output("driver", builder.driver or "")
    actions.set_output("platforms", ",".join(platforms))
    actions.set_output(
        "nodes",
        json.dumps([node_output(n) for n in builder.nodes], indent=2),
    )
    # Deprecated single-node outputs, mirrored from the first node
    first_node = builder.nodes[0] if builder.nodes else None
    actions.set_output("endpoint", first_node.endpoint if first_node else "")
    actions.set_output("status", first_node.status if first_node else "")
    actions.set_output("flags", first_node.buildkitd_flags if first_node else "")


async def setup_builder(
    inputs: BuilderInputs,
    settings: Settings | None = None,
    buildx: Buildx | None = None,
) -> SetupResult:
    """Run the main step.

    Args:
        inputs: Resolved step configuration.
        settings: Settings; loaded from environment if not provided.
        buildx: buildx CLI handle; detected if not provided.

    Returns:
        SetupResult describing the builder.

    Raises:
        PrerequisiteError: If a step needs the Docker CLI in standalone mode.
        CommandError: If any buildx command fails.
        BuildkitConfigError: If the BuildKit config file does not exist.
        DownloadError: If buildx cannot be downloaded.
        VerificationError: If the download does not match its checksum.
        InstallError: If buildx cannot be installed.
    """
    settings = settings or get_settings()
    buildx = buildx or Buildx()

    state.set_cleanup(inputs.cleanup)
    standalone = buildx.is_standalone()
    state.set_standalone(standalone)

    with actions.group("Docker info"):
        try:
            await docker.print_version()
            await docker.print_info()
        except CommandError as e:
            logger.info("%s", e)

    tool_path = await ensure_buildx(inputs, buildx, settings)

    with actions.group("Buildx version"):
        await buildx.print_version()
    buildx_version = await buildx.version()

    actions.set_output("name", inputs.name)
    state.set_builder_name(inputs.name)
    state.set_builder_driver(inputs.driver)

    certs_dir = settings.certs_dir
    certs_dir.mkdir(parents=True, exist_ok=True)
    state.set_certs_dir(str(certs_dir))

    if inputs.driver != DriverKind.DOCKER.value:
        with actions.group("Creating a new builder instance"):
            certs_driver_opts = resolve_certs_driver_opts(
                inputs.driver, inputs.endpoint, TLSMaterial.from_env(0), certs_dir
            )
            await _run_buildx(
                buildx,
                create_args(inputs, buildx_version, extra_driver_opts=certs_driver_opts),
            )

    if inputs.append:
        with actions.group("Appending node(s) to builder"):
            for index, node in enumerate(inputs.append, start=1):
                certs_driver_opts = resolve_certs_driver_opts(
                    inputs.driver, node.endpoint, TLSMaterial.from_env(index), certs_dir
                )
                label = node.name or node.endpoint or f"#{index}"
                await _run_buildx(
                    buildx,
                    append_args(
                        inputs, node, buildx_version, extra_driver_opts=certs_driver_opts
                    ),
                    prefix=f"Failed to append node {label}",
                )

    with actions.group("Booting builder"):
        await _run_buildx(buildx, inspect_args(inputs.name, buildx_version))

    if inputs.install:
        if standalone:
            raise PrerequisiteError(
                "Cannot set buildx as default builder without the Docker CLI"
            )
        with actions.group("Setting buildx as default builder"):
            await _run_buildx(buildx, ["install"])

    builder = await inspect_builder(buildx, inputs.name)
    platforms = reduce_platforms(builder.nodes)
    first_node = builder.nodes[0] if builder.nodes else None

    with actions.group("Inspect builder"):
        logger.info(
            "%s", builder.model_dump_json(indent=2, by_alias=True, exclude_none=True)
        )
        publish_outputs(builder, platforms)

    container_name: str | None = None
    if (
        not standalone
        and builder.driver == DriverKind.DOCKER_CONTAINER.value
        and first_node is not None
    ):
        container_name = f"{CONTAINER_NAME_PREFIX}{first_node.name}"
        state.set_container_name(container_name)
        with actions.group("BuildKit version"):
            for node in builder.nodes:
                buildkit_version = await buildkit.get_version(node)
                logger.info("%s: %s", node.name, buildkit_version)

    if actions.is_debug() or (
        first_node is not None
        and first_node.buildkitd_flags
        and "--debug" in first_node.buildkitd_flags
    ):
        state.set_debug(True)

    return SetupResult(
        builder=builder,
        platforms=platforms,
        standalone=standalone,
        tool_path=tool_path,
        container_name=container_name,
    )


__all__ = [
    "PrerequisiteError",
    "SetupResult",
    "ensure_buildx",
    "node_output",
    "publish_outputs",
    "setup_builder",
]
