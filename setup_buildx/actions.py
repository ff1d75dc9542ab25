"""GitHub Actions runtime bindings.

This module handles:
- Reading step inputs from INPUT_* environment variables
- Writing step outputs and saved state through the runner's file commands
- Emitting workflow commands (groups, debug, warning, error)
- A logging handler that renders log records as workflow commands

It is the only module that knows how the runner exchanges data with a step.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TextIO

TRUE_VALUES = ("true", "True", "TRUE")
FALSE_VALUES = ("false", "False", "FALSE")


class InputError(Exception):
    """Raised when a step input is missing or malformed."""

    def __init__(
        self,
        message: str,
        name: str | None = None,
        code: str = "invalid_input",
    ) -> None:
        """Initialize InputError.

        Args:
            message: Error description.
            name: Name of the offending input.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.name = name
        self.code = code


def _input_env_name(name: str) -> str:
    return f"INPUT_{name.replace(' ', '_').upper()}"


def get_input(name: str, required: bool = False, trim: bool = True) -> str:
    """Get a step input.

    Args:
        name: Input name as declared by the action (e.g. 'driver-opts').
        required: Raise if the input is empty.
        trim: Strip surrounding whitespace.

    Returns:
        Input value, or an empty string when unset.

    Raises:
        InputError: If the input is required but not supplied.
    """
    value = os.environ.get(_input_env_name(name), "")
    if required and not value:
        raise InputError(f"Input required and not supplied: {name}", name=name)
    return value.strip() if trim else value


def get_boolean_input(name: str, default: bool | None = None) -> bool:
    """Get a boolean step input.

    Only the YAML 1.2 core schema spellings are accepted.

    Args:
        name: Input name.
        default: Value used when the input is empty. None makes it required.

    Returns:
        Parsed boolean.

    Raises:
        InputError: If the value is not a recognized boolean.
    """
    value = get_input(name)
    if not value and default is not None:
        return default
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise InputError(
        f"Input does not meet YAML 1.2 \"Core Schema\" specification: {name}\n"
        "Support boolean input list: `true | True | TRUE | false | False | FALSE`",
        name=name,
    )


def get_input_list(name: str, ignore_comma: bool = False) -> list[str]:
    """Get a list step input.

    Items are separated by newlines and, unless ignore_comma is set, by
    commas. Items are trimmed and empty items dropped.

    Args:
        name: Input name.
        ignore_comma: Keep commas inside items (e.g. for driver options).

    Returns:
        List of items in declaration order.
    """
    items = get_input(name, trim=False)
    if not items:
        return []

    result: list[str] = []
    for line in re.split(r"\r?\n", items):
        parts = [line] if ignore_comma else line.split(",")
        for part in parts:
            part = part.strip()
            if part:
                result.append(part)
    return result


def _to_command_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


def issue_command(
    command: str,
    message: Any = "",
    properties: dict[str, str] | None = None,
    stream: TextIO | None = None,
) -> None:
    """Write a workflow command line to stdout.

    Args:
        command: Command name (e.g. 'warning', 'group').
        message: Command payload.
        properties: Optional command properties.
        stream: Output stream (defaults to the current sys.stdout).
    """
    line = f"::{command}"
    if properties:
        props = ",".join(
            f"{key}={_escape_property(value)}"
            for key, value in properties.items()
            if value
        )
        if props:
            line += f" {props}"
    line += f"::{_escape_data(_to_command_value(message))}"
    out = stream or sys.stdout
    out.write(line + os.linesep)
    out.flush()


def _write_file_command(path: str, key: str, value: Any) -> None:
    """Append a key/value pair to a runner file command in heredoc form."""
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    converted = _to_command_value(value)
    if delimiter in key or delimiter in converted:
        raise ValueError(f"Unexpected input: value contains delimiter {delimiter}")
    with open(path, "a", encoding="utf-8") as fh:
        fh.write(f"{key}<<{delimiter}{os.linesep}")
        fh.write(f"{converted}{os.linesep}")
        fh.write(f"{delimiter}{os.linesep}")


def set_output(name: str, value: Any) -> None:
    """Set a step output."""
    path = os.environ.get("GITHUB_OUTPUT")
    if path:
        _write_file_command(path, name, value)
        return
    sys.stdout.write(os.linesep)
    issue_command("set-output", value, {"name": name})


def save_state(name: str, value: Any) -> None:
    """Save state for the post step of this action."""
    path = os.environ.get("GITHUB_STATE")
    if path:
        _write_file_command(path, name, value)
        return
    issue_command("save-state", value, {"name": name})


def get_state(name: str) -> str:
    """Get state saved by the main step of this action."""
    return os.environ.get(f"STATE_{name}", "")


def add_path(directory: str) -> None:
    """Prepend a directory to PATH for this and later steps."""
    path = os.environ.get("GITHUB_PATH")
    if path:
        with open(path, "a", encoding="utf-8") as fh:
            fh.write(f"{directory}{os.linesep}")
    else:
        issue_command("add-path", directory)
    os.environ["PATH"] = f"{directory}{os.pathsep}{os.environ.get('PATH', '')}"


def is_debug() -> bool:
    """Whether the runner has step debug logging enabled."""
    return os.environ.get("RUNNER_DEBUG") == "1"


@contextmanager
def group(name: str) -> Iterator[None]:
    """Fold the enclosed output into a collapsible log group."""
    issue_command("group", name)
    try:
        yield
    finally:
        issue_command("endgroup")


def set_failed(message: str) -> None:
    """Report a step failure. The caller is responsible for the exit code."""
    issue_command("error", message)


class WorkflowCommandHandler(logging.Handler):
    """Logging handler that renders records as workflow commands.

    DEBUG records become ::debug::, WARNING ::warning::, ERROR and above
    ::error::. INFO records are written as plain lines.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            # Resolve sys.stdout lazily so redirected streams are honored
            stream = self.stream or sys.stdout
            if record.levelno >= logging.ERROR:
                issue_command("error", message, stream=stream)
            elif record.levelno >= logging.WARNING:
                issue_command("warning", message, stream=stream)
            elif record.levelno >= logging.INFO:
                stream.write(message + os.linesep)
                stream.flush()
            else:
                issue_command("debug", message, stream=stream)
        except Exception:
            self.handleError(record)


def configure_logging(level: str = "INFO") -> None:
    """Route the package's log records through workflow commands.

    Args:
        level: Root log level; forced to DEBUG when runner debug is on.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, WorkflowCommandHandler):
            root.removeHandler(handler)
    handler = WorkflowCommandHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if is_debug() else level)


__all__ = [
    "InputError",
    "WorkflowCommandHandler",
    "add_path",
    "configure_logging",
    "get_boolean_input",
    "get_input",
    "get_input_list",
    "get_state",
    "group",
    "is_debug",
    "issue_command",
    "save_state",
    "set_failed",
    "set_output",
]
