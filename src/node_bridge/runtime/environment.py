"""Child environment construction.

The child inherits the host environment. On top of it we merge an overlay
that always carries ``JSII_AGENT`` and, when the host has a non-blank value,
``JSII_DEBUG``. ``JSII_RUNTIME`` is never set on the child: the resolved path
is passed on the command line instead.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from ..config import JSII_AGENT, JSII_DEBUG, BridgeConfig, is_blank
from .provider import RuntimePathProvider

__all__ = [
    "build_child_environment",
    "build_overlay",
    "resolve_runtime_path",
]


def resolve_runtime_path(
    config: BridgeConfig,
    provider: RuntimePathProvider | None,
) -> str:
    """Return the runtime entry point the child should run.

    The override wins when set. Existence is not checked here; a bad path
    surfaces as a launch failure.

    Args:
        config: Configuration read from the environment
        provider: Default path provider (only used without an override)
    """
    if config.runtime_path_override is not None:
        return config.runtime_path_override
    if provider is None:
        return ""
    return provider.runtime_path


def build_overlay(config: BridgeConfig, agent: str) -> dict[str, str]:
    """Build the variables merged into the child environment.

    Args:
        config: Configuration read from the environment
        agent: Agent identity string

    Returns:
        Mapping of variable name to value
    """
    overlay: dict[str, str] = {JSII_AGENT: agent}

    if not is_blank(config.debug) and JSII_DEBUG not in overlay:
        overlay[JSII_DEBUG] = config.debug  # type: ignore[assignment]

    return overlay


def build_child_environment(
    overlay: Mapping[str, str],
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Merge the overlay into a copy of the inherited environment.

    A blank ``JSII_DEBUG`` inherited from the host is dropped so the child
    never sees an empty debug flag.

    Args:
        overlay: Variables to set
        base: Inherited environment (default ``os.environ``)
    """
    env = dict(os.environ if base is None else base)

    if is_blank(env.get(JSII_DEBUG)):
        env.pop(JSII_DEBUG, None)

    env.update(overlay)
    return env
