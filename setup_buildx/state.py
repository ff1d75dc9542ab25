"""State shared between the main and post steps.

The main step writes each field once through the runner's state file; the
post step runs as a separate process and reads them back from STATE_*
environment variables. Nothing else crosses the phase boundary.
"""

from dataclasses import dataclass

from setup_buildx import actions

BUILDER_NAME = "builderName"
BUILDER_DRIVER = "builderDriver"
CONTAINER_NAME = "containerName"
CERTS_DIR = "certsDir"
DEBUG = "isDebug"
CLEANUP = "cleanup"
STANDALONE = "standalone"


@dataclass(frozen=True)
class CleanupState:
    """Everything the post step needs to tear the builder down.

    Attributes:
        builder_name: Name of the builder created by the main step.
        builder_driver: Driver of that builder.
        container_name: BuildKit container name (docker-container driver).
        certs_dir: Directory holding node TLS material.
        debug: Whether BuildKit container logs should be dumped.
        cleanup: Whether the builder should be removed.
        standalone: Whether buildx runs without the Docker CLI.
    """

    builder_name: str = ""
    builder_driver: str = ""
    container_name: str = ""
    certs_dir: str = ""
    debug: bool = False
    cleanup: bool = False
    standalone: bool = False


def _as_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def set_builder_name(name: str) -> None:
    actions.save_state(BUILDER_NAME, name)


def set_builder_driver(driver: str) -> None:
    actions.save_state(BUILDER_DRIVER, driver)


def set_container_name(name: str) -> None:
    actions.save_state(CONTAINER_NAME, name)


def set_certs_dir(path: str) -> None:
    actions.save_state(CERTS_DIR, path)


def set_debug(debug: bool) -> None:
    actions.save_state(DEBUG, "true" if debug else "false")


def set_cleanup(cleanup: bool) -> None:
    actions.save_state(CLEANUP, "true" if cleanup else "false")


def set_standalone(standalone: bool) -> None:
    actions.save_state(STANDALONE, "true" if standalone else "false")


def load_state() -> CleanupState:
    """Read the state saved by the main step.

    Fields the main step never reached keep their defaults, so a main step
    that failed early leaves nothing to clean up.

    Returns:
        CleanupState for the post step.
    """
    return CleanupState(
        builder_name=actions.get_state(BUILDER_NAME),
        builder_driver=actions.get_state(BUILDER_DRIVER),
        container_name=actions.get_state(CONTAINER_NAME),
        certs_dir=actions.get_state(CERTS_DIR),
        debug=_as_bool(actions.get_state(DEBUG)),
        cleanup=_as_bool(actions.get_state(CLEANUP)),
        standalone=_as_bool(actions.get_state(STANDALONE)),
    )


__all__ = [
    "CleanupState",
    "load_state",
    "set_builder_driver",
    "set_builder_name",
    "set_certs_dir",
    "set_cleanup",
    "set_container_name",
    "set_debug",
    "set_standalone",
]
