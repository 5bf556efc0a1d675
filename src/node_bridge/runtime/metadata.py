"""Host runtime metadata and the agent identity string.

The agent identity string is handed to the child through ``JSII_AGENT`` and
is only used there for diagnostics. Its shape is a fixed contract with the
runtime:

    Python/<python version>/<framework>/<component version>

Metadata that cannot be determined is reported as ``"Unknown"``; nothing in
this module raises.
"""

from __future__ import annotations

import logging
import platform
from dataclasses import dataclass
from importlib import metadata as importlib_metadata

__all__ = [
    "AGENT_HOST",
    "DISTRIBUTION_NAME",
    "UNKNOWN",
    "RuntimeMetadata",
    "build_agent_string",
    "get_runtime_metadata",
]

logger = logging.getLogger(__name__)

AGENT_HOST = "Python"
DISTRIBUTION_NAME = "node-bridge"
UNKNOWN = "Unknown"

_AGENT_FORMAT = "{host}/{runtime_version}/{framework}/{component_version}"


@dataclass(frozen=True)
class RuntimeMetadata:
    """Framework label and component version of the running host.

    Attributes:
        framework: Interpreter implementation label (e.g. ``CPython``)
        component_version: Installed version of this distribution
    """

    framework: str = UNKNOWN
    component_version: str = UNKNOWN


def _segment(value: str | None) -> str:
    # A segment must be non-empty and must not contain the separator.
    if not value or not value.strip() or "/" in value:
        return UNKNOWN
    return value.strip()


def _component_version() -> str:
    try:
        return _segment(importlib_metadata.version(DISTRIBUTION_NAME))
    except importlib_metadata.PackageNotFoundError:
        logger.debug(f"Distribution {DISTRIBUTION_NAME} is not installed")
        return UNKNOWN


def get_runtime_metadata() -> RuntimeMetadata:
    """Look up the framework label and the component version."""
    return RuntimeMetadata(
        framework=_segment(platform.python_implementation()),
        component_version=_component_version(),
    )


def build_agent_string(metadata: RuntimeMetadata | None = None) -> str:
    """Format the value of ``JSII_AGENT``.

    Args:
        metadata: Metadata to embed (looked up when omitted)

    Returns:
        Four ``/``-separated segments, e.g. ``Python/3.12.4/CPython/0.1.0``
    """
    if metadata is None:
        metadata = get_runtime_metadata()

    return _AGENT_FORMAT.format(
        host=AGENT_HOST,
        runtime_version=_segment(platform.python_version()),
        framework=_segment(metadata.framework),
        component_version=_segment(metadata.component_version),
    )
