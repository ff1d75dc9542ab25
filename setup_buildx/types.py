"""Shared type definitions for setup_buildx.

This module contains enums and constants shared across subpackages to
avoid circular imports.
"""

from enum import Enum


class DriverKind(str, Enum):
    """Builder drivers known to buildx.

    Custom drivers (e.g. ``cloud``) are passed through as plain strings.
    """

    DOCKER = "docker"
    DOCKER_CONTAINER = "docker-container"
    KUBERNETES = "kubernetes"
    REMOTE = "remote"


# Environment variable prefix for per-node TLS material:
# BUILDER_NODE_<index>_AUTH_TLS_{CACERT,CERT,KEY}
BUILDER_NODE_ENV_PREFIX = "BUILDER_NODE"

# Name prefix of the BuildKit container started by the docker-container driver
CONTAINER_NAME_PREFIX = "buildx_buildkit_"

DEFAULT_BUILDKITD_FLAGS = (
    "--allow-insecure-entitlement security.insecure "
    "--allow-insecure-entitlement network.host"
)


__all__ = [
    "BUILDER_NODE_ENV_PREFIX",
    "CONTAINER_NAME_PREFIX",
    "DEFAULT_BUILDKITD_FLAGS",
    "DriverKind",
]
