"""Agent identity string tests."""

from __future__ import annotations

import platform
from importlib import metadata as importlib_metadata
from unittest import mock

import pytest

from node_bridge.runtime import metadata
from node_bridge.runtime.metadata import (
    UNKNOWN,
    RuntimeMetadata,
    build_agent_string,
    get_runtime_metadata,
)


class TestRuntimeMetadata:
    """Test the metadata record."""

    def test_defaults_unknown(self):
        record = RuntimeMetadata()
        assert record.framework == UNKNOWN
        assert record.component_version == UNKNOWN

    def test_frozen(self):
        record = RuntimeMetadata("CPython", "1.0.0")
        with pytest.raises(AttributeError):
            record.framework = "PyPy"  # type: ignore[misc]

    def test_lookup(self):
        with mock.patch.object(metadata.importlib_metadata, "version", return_value="1.2.3"):
            record = get_runtime_metadata()

        assert record.framework == platform.python_implementation()
        assert record.component_version == "1.2.3"

    def test_not_installed(self):
        missing = importlib_metadata.PackageNotFoundError("node-bridge")
        with mock.patch.object(metadata.importlib_metadata, "version", side_effect=missing):
            record = get_runtime_metadata()

        assert record.component_version == UNKNOWN


class TestBuildAgentString:
    """Test the JSII_AGENT format."""

    def test_format(self):
        agent = build_agent_string(RuntimeMetadata("CPython", "0.1.0"))
        assert agent == f"Python/{platform.python_version()}/CPython/0.1.0"

    def test_four_segments(self):
        assert len(build_agent_string().split("/")) == 4

    @pytest.mark.parametrize("bad", ["", "  ", "a/b"])
    def test_bad_segments_become_unknown(self, bad: str):
        agent = build_agent_string(RuntimeMetadata(bad, bad))
        segments = agent.split("/")

        assert len(segments) == 4
        assert segments[2:] == [UNKNOWN, UNKNOWN]
