"""Runtime path providers.

A provider supplies the default location of the jsii runtime entry point.
It is only consulted when ``JSII_RUNTIME`` is not set.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

__all__ = [
    "RuntimePathProvider",
    "StaticRuntimePathProvider",
]


@runtime_checkable
class RuntimePathProvider(Protocol):
    """Anything exposing a read-only ``runtime_path``."""

    @property
    def runtime_path(self) -> str: ...


@dataclass(frozen=True)
class StaticRuntimePathProvider:
    """Provider returning a fixed path.

    Example:
        provider = StaticRuntimePathProvider("/opt/jsii/bin/jsii-runtime.js")
        bridge = ProcessBridge(provider)
    """

    path: str | os.PathLike[str]

    @property
    def runtime_path(self) -> str:
        return os.fspath(self.path)
