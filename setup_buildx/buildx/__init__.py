"""buildx tool module.

This module handles:
- Running the buildx and docker CLIs
- Version detection and feature gating
- Downloading, building and installing buildx
- BuildKit config files and daemon versions
"""

from setup_buildx.buildx.runner import CommandError, ExecResult
from setup_buildx.buildx.tool import Buildx

__all__ = ["Buildx", "CommandError", "ExecResult"]
