"""Pydantic models for builder configuration and inspection.

This module defines:
- NodeSpec: one entry of the `append` input
- BuilderInputs: the resolved, immutable step configuration
- BuilderNode / BuilderInfo: the parsed output of `buildx inspect`
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from setup_buildx.types import DEFAULT_BUILDKITD_FLAGS, DriverKind


def _as_list(value: object) -> object:
    """Accept a single string where a list of strings is expected."""
    if isinstance(value, str):
        return [value] if value else []
    return value


class NodeSpec(BaseModel):
    """Schema for a node appended to the builder.

    Attributes:
        name: Node name (buildx generates one when omitted).
        endpoint: Node endpoint (context name, docker host or tcp:// URL).
        driver_opts: Driver options for this node.
        buildkitd_flags: BuildKit daemon flags for this node.
        platforms: Fixed platforms for this node, comma-separated.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    name: str | None = Field(default=None, description="Node name")
    endpoint: str | None = Field(default=None, description="Node endpoint")
    driver_opts: tuple[str, ...] = Field(
        default=(), alias="driver-opts", description="Driver options"
    )
    buildkitd_flags: str | None = Field(
        default=None, alias="buildkitd-flags", description="BuildKit daemon flags"
    )
    platforms: str | None = Field(default=None, description="Fixed platforms")

    @field_validator("driver_opts", mode="before")
    @classmethod
    def validate_driver_opts(cls, v: object) -> object:
        """Accept a single driver option as a string."""
        return _as_list(v)

    @field_validator("platforms", mode="before")
    @classmethod
    def validate_platforms(cls, v: object) -> object:
        """Accept platforms as a YAML list."""
        if isinstance(v, list):
            return ",".join(str(p).strip() for p in v if str(p).strip())
        return v


class BuilderInputs(BaseModel):
    """Resolved step configuration.

    Built once at the start of the main step and never modified; steps
    that need extra driver options pass them alongside.

    Attributes:
        version: buildx version, release tag or git source reference.
        name: Builder name.
        driver: Builder driver.
        driver_opts: Driver options for the first node.
        buildkitd_flags: BuildKit daemon flags for the first node.
        platforms: Fixed platforms for the first node.
        install: Make buildx the default `docker build`.
        use: Switch to the new builder.
        endpoint: Endpoint of the first node.
        config: Path to a BuildKit config file.
        config_inline: Inline BuildKit config.
        append: Additional nodes, appended in order.
        cleanup: Remove the builder in the post step.
        cache_binary: Cache downloaded buildx binaries.
    """

    model_config = ConfigDict(frozen=True)

    version: str = ""
    name: str
    driver: str = DriverKind.DOCKER_CONTAINER.value
    driver_opts: tuple[str, ...] = ()
    buildkitd_flags: str = DEFAULT_BUILDKITD_FLAGS
    platforms: tuple[str, ...] = ()
    install: bool = False
    use: bool = True
    endpoint: str = ""
    config: str = ""
    config_inline: str = ""
    append: tuple[NodeSpec, ...] = ()
    cleanup: bool = True
    cache_binary: bool = True

    @field_validator("name", "driver")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Validate name and driver are non-empty."""
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v


class BuilderNode(BaseModel):
    """A node as reported by `buildx inspect`.

    Attributes:
        name: Node name.
        endpoint: Node endpoint.
        driver_opts: Driver options, as key=value strings.
        status: Node status (e.g. 'running', 'inactive').
        buildkitd_flags: BuildKit daemon flags.
        buildkit: BuildKit version, when reported.
        platforms: Platforms the node can build for.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    endpoint: str | None = None
    driver_opts: list[str] | None = Field(default=None, alias="driver-opts")
    status: str | None = None
    buildkitd_flags: str | None = Field(default=None, alias="buildkitd-flags")
    buildkit: str | None = None
    platforms: list[str] = Field(default_factory=list)


class BuilderInfo(BaseModel):
    """A builder as reported by `buildx inspect`.

    Attributes:
        name: Builder name.
        driver: Builder driver.
        last_activity: Last activity timestamp, when reported.
        nodes: Builder nodes in order.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    driver: str | None = None
    last_activity: str | None = Field(default=None, alias="lastActivity")
    nodes: list[BuilderNode] = Field(default_factory=list)


__all__ = ["BuilderInfo", "BuilderInputs", "BuilderNode", "NodeSpec"]
