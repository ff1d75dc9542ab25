"""Shared fixtures for setup_buildx tests."""

from pathlib import Path

import pytest


def read_file_command(path: Path) -> dict[str, str]:
    """Parse a runner file command (GITHUB_OUTPUT / GITHUB_STATE) into a dict."""
    values: dict[str, str] = {}
    if not path.exists():
        return values
    lines = path.read_text().splitlines()
    i = 0
    while i < len(lines):
        key, _, delimiter = lines[i].partition("<<")
        i += 1
        value_lines = []
        while lines[i] != delimiter:
            value_lines.append(lines[i])
            i += 1
        i += 1
        values[key] = "\n".join(value_lines)
    return values


@pytest.fixture
def runner_files(tmp_path, monkeypatch):
    """Point GITHUB_OUTPUT and GITHUB_STATE at temporary files."""
    output_file = tmp_path / "github_output"
    state_file = tmp_path / "github_state"
    monkeypatch.setenv("GITHUB_OUTPUT", str(output_file))
    monkeypatch.setenv("GITHUB_STATE", str(state_file))
    monkeypatch.delenv("RUNNER_DEBUG", raising=False)
    return output_file, state_file
