"""Thin CLI wrapper for setup_buildx.

This module provides the command-line interface using Typer.
`main` and `post` are the two steps of the action; `config` and
`inspect` are local helpers. All business logic is delegated to core
modules.
"""

import asyncio
import json
import logging
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console

from setup_buildx import __version__, actions
from setup_buildx.config import get_settings, print_settings_json

app = typer.Typer(
    name="setup-buildx",
    help="Set up buildx - install buildx and manage a builder for CI jobs",
    no_args_is_help=True,
)
console = Console()
logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"setup-buildx version {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Set up buildx - install buildx and manage a builder for CI jobs."""


@app.command("main")
def main_step() -> None:
    """Install buildx, create and bootstrap the builder (main step)."""
    from setup_buildx.builder.inputs import get_inputs
    from setup_buildx.builder.service import PrerequisiteError, setup_builder
    from setup_buildx.buildx.buildkit import BuildkitConfigError
    from setup_buildx.buildx.install import (
        DownloadError,
        InstallError,
        VerificationError,
    )
    from setup_buildx.buildx.runner import CommandError

    settings = get_settings()
    actions.configure_logging(settings.log_level)

    try:
        inputs = get_inputs()
        asyncio.run(setup_builder(inputs, settings=settings))
    except (
        actions.InputError,
        BuildkitConfigError,
        CommandError,
        DownloadError,
        InstallError,
        OSError,
        PrerequisiteError,
        ValidationError,
        VerificationError,
    ) as e:
        actions.set_failed(str(e))
        raise typer.Exit(code=1) from None


@app.command("post")
def post_step() -> None:
    """Dump logs and remove the builder (post step).

    Never fails the job; problems are reported as warnings.
    """
    from setup_buildx.builder.cleanup import run_cleanup

    settings = get_settings()
    actions.configure_logging(settings.log_level)

    try:
        asyncio.run(run_cleanup())
    except Exception as e:
        logger.warning("Cleanup failed: %s", e)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        tmp_dir_display = (
            str(settings.tmp_dir) if settings.tmp_dir else "(system default)"
        )
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Cache directory:     {settings.cache_dir}")
        console.print(f"  Docker config:       {settings.docker_config_dir}")
        console.print(f"  Buildx config:       {settings.buildx_config_dir}")
        console.print(f"  Certs directory:     {settings.certs_dir}")
        console.print(f"  Temp directory:      {tmp_dir_display}")
        console.print()
        console.print("[bold]Releases:[/bold]")
        console.print(f"  Repository:          {settings.buildx_repo}")
        console.print(f"  API URL:             {settings.github_api_url}")
        console.print(f"  Downloads:           {settings.releases_base_url}")
        console.print(f"  Verify checksum:     {settings.verify_checksum}")
        console.print(f"  Download timeout:    {settings.download_timeout}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")


@app.command()
def inspect(
    name: Annotated[str, typer.Argument(help="Builder name to inspect")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Inspect a builder and show its nodes and platforms."""
    from setup_buildx.builder.inspect import inspect_builder, reduce_platforms
    from setup_buildx.buildx.runner import CommandError
    from setup_buildx.buildx.tool import Buildx

    try:
        builder = asyncio.run(inspect_builder(Buildx(), name))
    except CommandError as e:
        console.print(f"[red]Failed to inspect {name}: {e}[/red]")
        raise typer.Exit(code=1) from None

    platforms = reduce_platforms(builder.nodes)

    if json_output:
        output = builder.model_dump(by_alias=True, exclude_none=True)
        output["platforms"] = platforms
        console.print(json.dumps(output, indent=2))
        return

    console.print(f"[bold]Builder {builder.name}[/bold] ({builder.driver})")
    console.print(f"  Platforms: {', '.join(platforms) or '(none)'}")
    console.print()
    for node in builder.nodes:
        status_color = "green" if node.status == "running" else "yellow"
        console.print(f"  [{status_color}]{node.name}[/{status_color}]")
        console.print(f"    Endpoint: {node.endpoint}")
        console.print(f"    Status: {node.status}")
        if node.buildkit:
            console.print(f"    BuildKit: {node.buildkit}")
        if node.buildkitd_flags:
            console.print(f"    Flags: {node.buildkitd_flags}")
        console.print()


if __name__ == "__main__":
    app()
