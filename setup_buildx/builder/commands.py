"""Argument lists for the buildx builder commands.

This module composes the arguments (without the leading `docker buildx`)
for:
- `create`: a new builder with its first node
- `create --append`: an additional node
- `inspect --bootstrap`: booting the builder
- `rm`: removing it

Flags that older buildx releases do not understand are gated on the
detected version through FEATURE_GATES. Apart from writing BuildKit
config and TLS files to disk, these functions are pure.
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from setup_buildx.builder.schema import BuilderInputs, NodeSpec
from setup_buildx.buildx.buildkit import (
    resolve_config_from_file,
    resolve_config_from_string,
)
from setup_buildx.buildx.tool import satisfies
from setup_buildx.types import BUILDER_NODE_ENV_PREFIX, DriverKind

logger = logging.getLogger(__name__)

# Minimum (or maximum) buildx version for each version-dependent flag
FEATURE_GATES: dict[str, str] = {
    "driver-opt": ">=0.3.0",
    "buildkitd-flags": ">=0.3.0",
    "inspect-builder": ">=0.4.0",
    # Since 0.11.0 buildx names kubernetes nodes itself
    "kubernetes-node-name": "<0.11.0",
}


def feature_enabled(feature: str, buildx_version: str) -> bool:
    """Whether a version-dependent flag may be used.

    Args:
        feature: Key of FEATURE_GATES.
        buildx_version: Detected buildx version.

    Returns:
        True if the version satisfies the gate.
    """
    return satisfies(buildx_version, FEATURE_GATES[feature])


@dataclass(frozen=True)
class TLSMaterial:
    """TLS material of one node, as PEM strings."""

    cacert: str | None = None
    cert: str | None = None
    key: str | None = None

    @classmethod
    def from_env(
        cls, index: int, environ: Mapping[str, str] | None = None
    ) -> TLSMaterial:
        """Read BUILDER_NODE_<index>_AUTH_TLS_{CACERT,CERT,KEY}.

        Args:
            index: Node index (0 for the first node).
            environ: Environment mapping (defaults to os.environ).

        Returns:
            TLSMaterial with unset or empty variables as None.
        """
        env = os.environ if environ is None else environ
        prefix = f"{BUILDER_NODE_ENV_PREFIX}_{index}_AUTH_TLS"
        return cls(
            cacert=env.get(f"{prefix}_CACERT") or None,
            cert=env.get(f"{prefix}_CERT") or None,
            key=env.get(f"{prefix}_KEY") or None,
        )

    def items(self) -> list[tuple[str, str]]:
        """Return the present (kind, pem) pairs in cacert, cert, key order."""
        pairs = [("cacert", self.cacert), ("cert", self.cert), ("key", self.key)]
        return [(kind, pem) for kind, pem in pairs if pem is not None]


def resolve_certs_driver_opts(
    driver: str,
    endpoint: str | None,
    material: TLSMaterial,
    certs_dir: Path,
) -> list[str]:
    """Write a node's TLS material to disk and return matching driver options.

    Only the remote driver on a tcp:// endpoint takes TLS material.

    Args:
        driver: Builder driver.
        endpoint: Node endpoint.
        material: TLS material of the node.
        certs_dir: Directory receiving the PEM files.

    Returns:
        Driver options such as 'cacert=<path>'; empty when not applicable.
    """
    if driver != DriverKind.REMOTE.value or not endpoint:
        return []
    pairs = material.items()
    if not pairs:
        return []

    try:
        url = urlparse(endpoint)
        port = url.port
    except ValueError:
        return []
    if url.scheme != "tcp" or not url.hostname:
        return []

    host = url.hostname
    if port is not None:
        host += f"-{port}"

    certs_dir.mkdir(parents=True, exist_ok=True)
    driver_opts: list[str] = []
    for kind, pem in pairs:
        path = certs_dir / f"{kind}_{host}.pem"
        path.write_text(pem, encoding="utf-8")
        driver_opts.append(f"{kind}={path}")
    logger.debug("Wrote TLS material for %s: %s", endpoint, driver_opts)
    return driver_opts


def create_args(
    inputs: BuilderInputs,
    buildx_version: str,
    extra_driver_opts: Iterable[str] = (),
    config_dir: Path | None = None,
) -> list[str]:
    """Compose `buildx create` arguments for the first node.

    Args:
        inputs: Resolved step configuration.
        buildx_version: Detected buildx version.
        extra_driver_opts: Additional driver options (e.g. TLS material).
        config_dir: Where BuildKit config is materialized.

    Returns:
        Ordered argument list.

    Raises:
        BuildkitConfigError: If the config file does not exist.
    """
    args = ["create", "--name", inputs.name]
    if inputs.driver == DriverKind.KUBERNETES.value and feature_enabled(
        "kubernetes-node-name", buildx_version
    ):
        args.extend(["--node", f"node-{uuid.uuid4()}"])
    args.extend(["--driver", inputs.driver])

    if feature_enabled("driver-opt", buildx_version):
        for driver_opt in (*inputs.driver_opts, *extra_driver_opts):
            args.extend(["--driver-opt", driver_opt])
    if (
        inputs.driver != DriverKind.REMOTE.value
        and inputs.buildkitd_flags
        and feature_enabled("buildkitd-flags", buildx_version)
    ):
        args.extend(["--buildkitd-flags", inputs.buildkitd_flags])

    if inputs.platforms:
        args.extend(["--platform", ",".join(inputs.platforms)])
    if inputs.use:
        args.append("--use")

    if inputs.driver != DriverKind.REMOTE.value:
        if inputs.config:
            args.extend(["--config", resolve_config_from_file(inputs.config, config_dir)])
        elif inputs.config_inline:
            args.extend(
                ["--config", resolve_config_from_string(inputs.config_inline, config_dir)]
            )

    if inputs.endpoint:
        args.append(inputs.endpoint)
    return args


def append_args(
    inputs: BuilderInputs,
    node: NodeSpec,
    buildx_version: str,
    extra_driver_opts: Iterable[str] = (),
) -> list[str]:
    """Compose `buildx create --append` arguments for an additional node.

    Args:
        inputs: Resolved step configuration.
        node: Node to append.
        buildx_version: Detected buildx version.
        extra_driver_opts: Additional driver options (e.g. TLS material).

    Returns:
        Ordered argument list.
    """
    args = ["create", "--name", inputs.name]

    if node.name:
        args.extend(["--node", node.name])
    elif inputs.driver == DriverKind.KUBERNETES.value and feature_enabled(
        "kubernetes-node-name", buildx_version
    ):
        args.extend(["--node", f"node-{uuid.uuid4()}"])

    args.extend(["--driver", inputs.driver])

    if feature_enabled("driver-opt", buildx_version):
        for driver_opt in (*node.driver_opts, *extra_driver_opts):
            args.extend(["--driver-opt", driver_opt])
    if (
        inputs.driver != DriverKind.REMOTE.value
        and node.buildkitd_flags
        and feature_enabled("buildkitd-flags", buildx_version)
    ):
        args.extend(["--buildkitd-flags", node.buildkitd_flags])

    if node.platforms:
        args.extend(["--platform", node.platforms])

    args.append("--append")
    if node.endpoint:
        args.append(node.endpoint)
    return args


def inspect_args(name: str, buildx_version: str) -> list[str]:
    """Compose `buildx inspect --bootstrap` arguments."""
    args = ["inspect", "--bootstrap"]
    if feature_enabled("inspect-builder", buildx_version):
        args.extend(["--builder", name])
    return args


def rm_args(name: str) -> list[str]:
    """Compose `buildx rm` arguments."""
    return ["rm", name]


__all__ = [
    "FEATURE_GATES",
    "TLSMaterial",
    "append_args",
    "create_args",
    "feature_enabled",
    "inspect_args",
    "resolve_certs_driver_opts",
    "rm_args",
]
