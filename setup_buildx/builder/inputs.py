"""Step input resolution.

Reads the declarative step inputs, applies defaults and validates them
into a BuilderInputs record. Configuration errors are terminal.
"""

import logging
import uuid

import yaml
from pydantic import ValidationError

from setup_buildx import actions
from setup_buildx.actions import InputError
from setup_buildx.builder.schema import BuilderInputs, NodeSpec
from setup_buildx.types import DEFAULT_BUILDKITD_FLAGS, DriverKind

logger = logging.getLogger(__name__)


def get_builder_name(driver: str) -> str:
    """Return the default builder name for a driver.

    The docker driver maps to the host's existing 'default' builder; any
    other driver gets a fresh unique name.

    Args:
        driver: Builder driver.

    Returns:
        Builder name.
    """
    if driver == DriverKind.DOCKER.value:
        return "default"
    return f"builder-{uuid.uuid4()}"


def parse_append(content: str) -> tuple[NodeSpec, ...]:
    """Parse the `append` input.

    Args:
        content: YAML list of node specifications.

    Returns:
        Node specifications in declaration order.

    Raises:
        InputError: If the content is not a YAML list of node mappings.
    """
    if not content.strip():
        return ()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise InputError(f"Invalid append input: {e}", name="append") from e

    if data is None:
        return ()
    if not isinstance(data, list):
        raise InputError(
            f"append input must be a YAML list, got {type(data).__name__}",
            name="append",
        )

    nodes: list[NodeSpec] = []
    for index, item in enumerate(data, start=1):
        if not isinstance(item, dict):
            raise InputError(
                f"append node #{index} must be a mapping, got {type(item).__name__}",
                name="append",
            )
        try:
            nodes.append(NodeSpec.model_validate(item))
        except ValidationError as e:
            raise InputError(
                f"Invalid append node #{index}: {e}", name="append"
            ) from e
    return tuple(nodes)


def get_inputs() -> BuilderInputs:
    """Resolve the step inputs.

    Returns:
        Validated, immutable BuilderInputs.

    Raises:
        InputError: If an input is malformed.
    """
    driver = actions.get_input("driver") or DriverKind.DOCKER_CONTAINER.value

    try:
        inputs = BuilderInputs(
            version=actions.get_input("version"),
            name=actions.get_input("name") or get_builder_name(driver),
            driver=driver,
            driver_opts=actions.get_input_list("driver-opts", ignore_comma=True),
            buildkitd_flags=actions.get_input("buildkitd-flags")
            or DEFAULT_BUILDKITD_FLAGS,
            platforms=actions.get_input_list("platforms"),
            install=actions.get_boolean_input("install", default=False),
            use=actions.get_boolean_input("use", default=True),
            endpoint=actions.get_input("endpoint"),
            config=actions.get_input("config"),
            config_inline=actions.get_input("config-inline", trim=False),
            append=parse_append(actions.get_input("append", trim=False)),
            cleanup=actions.get_boolean_input("cleanup", default=True),
            cache_binary=actions.get_boolean_input("cache-binary", default=True),
        )
    except ValidationError as e:
        raise InputError(f"Invalid inputs: {e}") from e

    logger.debug("Resolved inputs: %s", inputs.model_dump_json())
    return inputs


__all__ = ["get_builder_name", "get_inputs", "parse_append"]
