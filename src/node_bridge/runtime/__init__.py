"""Runtime module for the supervised jsii runtime process.

This module launches node with the jsii runtime, bridges its stdio streams
to the host and guarantees the child is terminated on disposal or when the
interpreter exits.
"""

from __future__ import annotations

from .metadata import RuntimeMetadata, build_agent_string, get_runtime_metadata
from .process_bridge import BridgeState, ProcessBridge
from .provider import RuntimePathProvider, StaticRuntimePathProvider

__all__ = [
    "BridgeState",
    "ProcessBridge",
    "RuntimeMetadata",
    "RuntimePathProvider",
    "StaticRuntimePathProvider",
    "build_agent_string",
    "get_runtime_metadata",
]
