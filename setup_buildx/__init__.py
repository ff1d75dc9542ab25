"""setup-buildx - install buildx and provision builder instances for CI jobs.

This package wraps the buildx CLI: it resolves the step inputs, installs
the requested buildx release, creates and bootstraps a builder, publishes
its details as step outputs, and removes it again in the post step.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
