"""Tests for step input resolution."""

import pytest
from pydantic import ValidationError

from setup_buildx.actions import InputError
from setup_buildx.builder.inputs import get_builder_name, get_inputs, parse_append
from setup_buildx.builder.schema import BuilderInputs, NodeSpec
from setup_buildx.types import DEFAULT_BUILDKITD_FLAGS

INPUT_NAMES = (
    "version",
    "name",
    "driver",
    "driver-opts",
    "buildkitd-flags",
    "platforms",
    "install",
    "use",
    "endpoint",
    "config",
    "config-inline",
    "append",
    "cleanup",
    "cache-binary",
)


@pytest.fixture
def clean_inputs(monkeypatch):
    """Unset every step input."""
    for name in INPUT_NAMES:
        monkeypatch.delenv(f"INPUT_{name.upper()}", raising=False)
    return monkeypatch


class TestGetBuilderName:
    """Tests for get_builder_name."""

    def test_docker_driver(self):
        assert get_builder_name("docker") == "default"

    @pytest.mark.parametrize("driver", ["docker-container", "kubernetes", "remote"])
    def test_other_drivers(self, driver):
        """Non-docker drivers get a fresh name, never 'default'."""
        name = get_builder_name(driver)
        assert name != "default"
        assert name.startswith("builder-")
        assert name != get_builder_name(driver)


class TestParseAppend:
    """Tests for parse_append."""

    def test_empty(self):
        assert parse_append("") == ()
        assert parse_append("  \n") == ()

    def test_nodes_in_order(self):
        content = """
- name: aws_graviton2
  endpoint: ssh://me@graviton2
  driver-opts:
    - image=moby/buildkit:master
  buildkitd-flags: --allow-insecure-entitlement security.insecure
  platforms: linux/arm64
- endpoint: tcp://10.0.0.1:1234
  driver-opts: env.http_proxy=1.2.3.4
  platforms:
    - linux/amd64
    - linux/386
"""
        nodes = parse_append(content)

        assert len(nodes) == 2
        assert nodes[0].name == "aws_graviton2"
        assert nodes[0].driver_opts == ("image=moby/buildkit:master",)
        assert nodes[0].buildkitd_flags == (
            "--allow-insecure-entitlement security.insecure"
        )
        assert nodes[1].name is None
        assert nodes[1].driver_opts == ("env.http_proxy=1.2.3.4",)
        assert nodes[1].platforms == "linux/amd64,linux/386"

    def test_not_a_list(self):
        with pytest.raises(InputError, match="must be a YAML list"):
            parse_append("name: node1")

    def test_item_not_a_mapping(self):
        with pytest.raises(InputError, match="must be a mapping"):
            parse_append("- node1")

    def test_unknown_field(self):
        with pytest.raises(InputError, match="Invalid append node #1"):
            parse_append("- name: node1\n  drivr-opts: []\n")

    def test_invalid_yaml(self):
        with pytest.raises(InputError):
            parse_append("- name: [unclosed")


class TestNodeSpec:
    """Tests for the NodeSpec model."""

    def test_populate_by_name(self):
        node = NodeSpec(name="n1", driver_opts=["a=b"], buildkitd_flags="--debug")
        assert node.driver_opts == ("a=b",)
        assert node.buildkitd_flags == "--debug"

    def test_frozen(self):
        node = NodeSpec(name="n1")
        with pytest.raises(ValidationError):
            node.name = "n2"


class TestGetInputs:
    """Tests for get_inputs."""

    def test_defaults(self, clean_inputs):
        inputs = get_inputs()

        assert inputs.driver == "docker-container"
        assert inputs.name.startswith("builder-")
        assert inputs.buildkitd_flags == DEFAULT_BUILDKITD_FLAGS
        assert inputs.use is True
        assert inputs.install is False
        assert inputs.cleanup is True
        assert inputs.cache_binary is True
        assert inputs.driver_opts == ()
        assert inputs.append == ()

    def test_docker_driver_default_name(self, clean_inputs):
        clean_inputs.setenv("INPUT_DRIVER", "docker")
        assert get_inputs().name == "default"

    def test_all_inputs(self, clean_inputs):
        clean_inputs.setenv("INPUT_VERSION", "v0.11.2")
        clean_inputs.setenv("INPUT_NAME", "mybuilder")
        clean_inputs.setenv("INPUT_DRIVER", "remote")
        clean_inputs.setenv(
            "INPUT_DRIVER-OPTS", "image=moby/buildkit:master\nenv.no_proxy=a,b"
        )
        clean_inputs.setenv("INPUT_BUILDKITD-FLAGS", "--debug")
        clean_inputs.setenv("INPUT_PLATFORMS", "linux/amd64,linux/arm64")
        clean_inputs.setenv("INPUT_INSTALL", "true")
        clean_inputs.setenv("INPUT_USE", "false")
        clean_inputs.setenv("INPUT_ENDPOINT", "tcp://10.0.0.1:1234")
        clean_inputs.setenv("INPUT_CONFIG-INLINE", "debug = true\n")
        clean_inputs.setenv("INPUT_APPEND", "- name: n1\n  endpoint: tcp://10.0.0.2:1234\n")
        clean_inputs.setenv("INPUT_CLEANUP", "false")
        clean_inputs.setenv("INPUT_CACHE-BINARY", "FALSE")

        inputs = get_inputs()

        assert inputs == BuilderInputs(
            version="v0.11.2",
            name="mybuilder",
            driver="remote",
            driver_opts=("image=moby/buildkit:master", "env.no_proxy=a,b"),
            buildkitd_flags="--debug",
            platforms=("linux/amd64", "linux/arm64"),
            install=True,
            use=False,
            endpoint="tcp://10.0.0.1:1234",
            config_inline="debug = true\n",
            append=(NodeSpec(name="n1", endpoint="tcp://10.0.0.2:1234"),),
            cleanup=False,
            cache_binary=False,
        )

    def test_invalid_boolean(self, clean_inputs):
        clean_inputs.setenv("INPUT_USE", "yes")
        with pytest.raises(InputError):
            get_inputs()

    def test_inputs_are_immutable(self, clean_inputs):
        inputs = get_inputs()
        with pytest.raises(ValidationError):
            inputs.name = "other"
