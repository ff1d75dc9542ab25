"""Process runner for the buildx and docker CLIs.

This module handles:
- Executing a command asynchronously and capturing stdout/stderr
- Echoing the command line and its output to the step log
- The failure rule shared by every external command: a command failed
  only when it wrote to stderr AND exited non-zero
- Extracting the reason from the last non-empty stderr line

Commands run one at a time; there are no retries and no timeouts.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "unknown error"


class CommandError(Exception):
    """Raised when an external command fails or cannot be started."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        command: str | None = None,
        code: str = "command_failed",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.command = command
        self.code = code


@dataclass
class ExecResult:
    """Result of an external command.

    Attributes:
        command: Full argv that was executed.
        exit_code: Process exit code.
        stdout: Decoded standard output.
        stderr: Decoded standard error.
    """

    command: list[str]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def failed(self) -> bool:
        """Whether the command failed.

        Text on stderr alone is not a failure; neither is a non-zero exit
        code with an empty stderr.
        """
        return len(self.stderr) > 0 and self.exit_code != 0

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)


def extract_error(stderr: str) -> str:
    """Return the last non-empty line of stderr, trimmed.

    Args:
        stderr: Captured standard error.

    Returns:
        The failure reason, or 'unknown error' if stderr has no text.
    """
    for line in reversed(stderr.splitlines()):
        if line.strip():
            return line.strip()
    return UNKNOWN_ERROR


def check_result(result: ExecResult, prefix: str | None = None) -> ExecResult:
    """Raise if the result matches the failure rule.

    Args:
        result: Command result.
        prefix: Optional context prepended to the failure reason.

    Returns:
        The result, unchanged, when the command did not fail.

    Raises:
        CommandError: If the command failed.
    """
    if result.failed:
        message = extract_error(result.stderr)
        if prefix:
            message = f"{prefix}: {message}"
        raise CommandError(
            message,
            exit_code=result.exit_code,
            command=result.command_line,
        )
    return result


async def run(
    command: str,
    args: list[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    silent: bool = False,
) -> ExecResult:
    """Execute a command and capture its output.

    The exit code is never checked here; see check_result.

    Args:
        command: Executable name or path.
        args: Command arguments.
        env: Optional full environment for the child process.
        cwd: Optional working directory.
        silent: Do not echo the command and its output to the log.

    Returns:
        ExecResult with exit code and decoded output.

    Raises:
        CommandError: If the executable cannot be started.
    """
    argv = [command, *(args or [])]
    if silent:
        logger.debug("[command]%s", shlex.join(argv))
    else:
        logger.info("[command]%s", shlex.join(argv))

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=dict(env) if env is not None else None,
            cwd=cwd,
        )
    except OSError as e:
        raise CommandError(
            f"Failed to execute {command}: {e}",
            command=shlex.join(argv),
            code="execution_error",
        ) from e

    stdout_b, stderr_b = await process.communicate()
    stdout = stdout_b.decode("utf-8", errors="replace") if stdout_b else ""
    stderr = stderr_b.decode("utf-8", errors="replace") if stderr_b else ""
    exit_code = process.returncode if process.returncode is not None else -1

    if not silent:
        for text in (stdout, stderr):
            if text.strip():
                logger.info("%s", text.rstrip())

    return ExecResult(command=argv, exit_code=exit_code, stdout=stdout, stderr=stderr)


async def run_checked(
    command: str,
    args: list[str] | None = None,
    *,
    prefix: str | None = None,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    silent: bool = False,
) -> ExecResult:
    """Execute a command and raise if it fails.

    Args:
        command: Executable name or path.
        args: Command arguments.
        prefix: Optional context prepended to the failure reason.
        env: Optional full environment for the child process.
        cwd: Optional working directory.
        silent: Do not echo the command and its output to the log.

    Returns:
        ExecResult of the successful command.

    Raises:
        CommandError: If the command cannot be started or fails.
    """
    result = await run(command, args, env=env, cwd=cwd, silent=silent)
    return check_result(result, prefix=prefix)


__all__ = [
    "UNKNOWN_ERROR",
    "CommandError",
    "ExecResult",
    "check_result",
    "extract_error",
    "run",
    "run_checked",
]
