"""Supervised jsii runtime process with stdio bridging.

node-bridge runtime module

This module provides:
- Launch of the jsii runtime under node with stdin/stdout/stderr redirected
- A controlled child environment (agent identity, debug passthrough)
- Reliable termination (stdin EOF -> timeout -> kill process tree)
- Host-exit cleanup through a class-level atexit registry

Key design points:
- POSIX: start_new_session=True so the child leads its own process group
- Windows: CREATE_NO_WINDOW | CREATE_NEW_PROCESS_GROUP
- Disposal is serialised and idempotent; the atexit path never raises
- Force kill also reaches descendants (process group + psutil sweep)
"""

from __future__ import annotations

import atexit
import logging
import os
import shlex
import signal
import subprocess
import sys
import threading
from collections.abc import Callable, Mapping
from enum import Enum
from typing import IO, Any

import anyio.to_thread
import psutil

from ..config import load_config
from ..errors import BridgeConfigError
from .environment import build_child_environment, build_overlay, resolve_runtime_path
from .metadata import build_agent_string
from .provider import RuntimePathProvider

__all__ = [
    "BridgeState",
    "ProcessBridge",
    "GRACEFUL_EXIT_TIMEOUT",
    "IS_WINDOWS",
]

# Platform detection
IS_WINDOWS = sys.platform == "win32"

GRACEFUL_EXIT_TIMEOUT = 5.0  # seconds to wait after closing stdin
KILL_WAIT_TIMEOUT = 1.0  # seconds to wait for the reap after a kill

MAX_OLD_SPACE_SIZE_FLAG = "--max-old-space-size=4096"
STREAM_ENCODING = "utf-8"

LoggerFactory = Callable[[str], logging.Logger]


class BridgeState(Enum):
    """Disposal progress of a bridge."""

    RUNNING = "running"
    INPUT_CLOSED = "input_closed"
    GRACEFULLY_EXITED = "gracefully_exited"
    FORCE_KILLED = "force_killed"
    RELEASED = "released"


def _build_popen_kwargs() -> dict[str, Any]:
    """Build platform-specific Popen kwargs."""
    kwargs: dict[str, Any] = {}

    if IS_WINDOWS:
        kwargs["creationflags"] = (
            subprocess.CREATE_NO_WINDOW | subprocess.CREATE_NEW_PROCESS_GROUP
        )
    else:
        # Own session: no controlling terminal, and killpg reaches descendants
        kwargs["start_new_session"] = True

    return kwargs


def _format_command(argv: list[str]) -> str:
    if IS_WINDOWS:
        return subprocess.list2cmdline(argv)
    return shlex.join(argv)


class ProcessBridge:
    """Owns one node child process running the jsii runtime.

    The process is started in the constructor. The three stdio streams are
    valid until :meth:`dispose`, which closes stdin, gives the child
    ``GRACEFUL_EXIT_TIMEOUT`` seconds to exit, kills the whole process tree
    otherwise, and releases the handle. Every live bridge is also disposed
    when the interpreter exits.

    Example:
        provider = StaticRuntimePathProvider("/opt/jsii/jsii-runtime.js")
        with ProcessBridge(provider) as bridge:
            bridge.stdin.write(request + "\\n")
            bridge.stdin.flush()
            response = bridge.stdout.readline()
    """

    # Class-level instance tracking for the atexit cleanup
    _instances: list["ProcessBridge"] = []
    _instances_lock = threading.Lock()
    _atexit_registered = False

    def __init__(
        self,
        provider: RuntimePathProvider | None,
        logger_factory: LoggerFactory | None = logging.getLogger,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Launch the runtime.

        Args:
            provider: Supplies the runtime path when JSII_RUNTIME is unset
            logger_factory: Callable returning a logger for a name
            environ: Host environment (default os.environ)

        Raises:
            BridgeConfigError: If logger_factory is None
            OSError: If node cannot be started (FileNotFoundError etc.)
        """
        if logger_factory is None:
            raise BridgeConfigError("logger_factory")
        self._logger = logger_factory(__name__)

        if environ is None:
            environ = os.environ

        config = load_config(environ)
        self._runtime_path = resolve_runtime_path(config, provider)
        self._argv = [config.node_executable, MAX_OLD_SPACE_SIZE_FLAG, self._runtime_path]
        self._overlay = build_overlay(config, build_agent_string())

        self._lock = threading.Lock()
        self._state = BridgeState.RUNNING

        self._logger.debug("Starting jsii runtime...")
        self._logger.debug(_format_command(self._argv))

        self._process: subprocess.Popen[str] = subprocess.Popen(
            self._argv,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=build_child_environment(self._overlay, base=environ),
            encoding=STREAM_ENCODING,
            bufsize=1,
            **_build_popen_kwargs(),
        )

        self._logger.debug(f"Started jsii runtime pid={self._process.pid}")
        self._register()

    # ------------------------------------------------------------------
    # Exit registry
    # ------------------------------------------------------------------

    @classmethod
    def _register_atexit(cls) -> None:
        """Register the global atexit cleanup (once)."""
        if not cls._atexit_registered:
            atexit.register(cls._cleanup_all)
            cls._atexit_registered = True

    @classmethod
    def _cleanup_all(cls) -> None:
        """Dispose every live bridge (atexit callback)."""
        with cls._instances_lock:
            instances = list(cls._instances)
        for instance in instances:
            instance._on_host_exit()

    def _register(self) -> None:
        with ProcessBridge._instances_lock:
            ProcessBridge._register_atexit()
            ProcessBridge._instances.append(self)

    def _unregister(self) -> None:
        with ProcessBridge._instances_lock:
            if self in ProcessBridge._instances:
                ProcessBridge._instances.remove(self)

    def _on_host_exit(self) -> None:
        # Runs during interpreter shutdown: an exception here must not escape.
        try:
            self.dispose()
        except Exception as e:
            message = f"Error cleaning up {type(self).__name__}: {e}"
            try:
                self._logger.error(message)
            except Exception:
                print(message, file=sys.stderr)

    # ------------------------------------------------------------------
    # Streams and state
    # ------------------------------------------------------------------

    @property
    def stdin(self) -> IO[str]:
        """Writable channel to the child's standard input."""
        return self._process.stdin  # type: ignore[return-value]

    @property
    def stdout(self) -> IO[str]:
        """Readable channel from the child's standard output."""
        return self._process.stdout  # type: ignore[return-value]

    @property
    def stderr(self) -> IO[str]:
        """Readable channel from the child's standard error."""
        return self._process.stderr  # type: ignore[return-value]

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    def poll(self) -> int | None:
        """Return the exit code if the child has exited, else None."""
        return self._process.poll()

    @property
    def runtime_path(self) -> str:
        return self._runtime_path

    @property
    def argv(self) -> list[str]:
        return list(self._argv)

    @property
    def environment_overlay(self) -> dict[str, str]:
        """Variables this bridge set on the child."""
        return dict(self._overlay)

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def disposed(self) -> bool:
        return self._state is BridgeState.RELEASED

    # ------------------------------------------------------------------
    # Disposal
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Shut the child down and release the process handle.

        Order: close stdin, wait up to GRACEFUL_EXIT_TIMEOUT, kill the
        process tree, release. Safe to call repeatedly and from several
        threads; only the first call does any work.
        """
        with self._lock:
            if self._state is BridgeState.RELEASED:
                return

            pid = self._process.pid
            try:
                if self._process.poll() is not None:
                    self._logger.debug(
                        f"jsii runtime already exited pid={pid} "
                        f"returncode={self._process.returncode}"
                    )
                    return

                self._close_input()
                self._state = BridgeState.INPUT_CLOSED

                try:
                    self._process.wait(timeout=GRACEFUL_EXIT_TIMEOUT)
                    self._state = BridgeState.GRACEFULLY_EXITED
                    self._logger.debug(
                        f"jsii runtime exited pid={pid} "
                        f"returncode={self._process.returncode}"
                    )
                except subprocess.TimeoutExpired:
                    self._logger.debug(
                        f"jsii runtime did not exit within {GRACEFUL_EXIT_TIMEOUT}s, "
                        f"killing pid={pid}"
                    )
                    self._kill_tree()
                    self._state = BridgeState.FORCE_KILLED
            except (ProcessLookupError, psutil.NoSuchProcess):
                self._logger.debug(f"jsii runtime already exited pid={pid}")
            finally:
                self._release_handle()

    close = dispose

    def _close_input(self) -> None:
        """Close stdin; the child sees EOF."""
        stdin = self._process.stdin
        if stdin is None or stdin.closed:
            return
        try:
            stdin.close()
        except OSError as e:
            # Child is gone (EPIPE, or EINVAL on Windows); the pipe is closed regardless.
            self._logger.debug(f"Closing stdin of pid={self._process.pid} failed: {e}")

    def _kill_tree(self) -> None:
        """Kill the child and every descendant."""
        pid = self._process.pid

        try:
            descendants = psutil.Process(pid).children(recursive=True)
        except psutil.NoSuchProcess:
            descendants = []
        except psutil.AccessDenied as e:
            self._logger.debug(f"Cannot list descendants of pid={pid}: {e}")
            descendants = []

        if IS_WINDOWS:
            self._process.kill()
        else:
            try:
                pgid = os.getpgid(pid)
                os.killpg(pgid, signal.SIGKILL)
                self._logger.debug(f"Sent SIGKILL to process group pgid={pgid}")
            except ProcessLookupError:
                pass
            except OSError as e:
                self._logger.debug(f"killpg failed, falling back to kill: {e}")
                self._process.kill()

        # Descendants that left the process group
        for child in descendants:
            try:
                child.kill()
            except psutil.NoSuchProcess:
                pass
            except psutil.AccessDenied as e:
                self._logger.debug(f"Cannot kill descendant pid={child.pid}: {e}")

    def _release_handle(self) -> None:
        """Reap the child and close all three pipes."""
        try:
            try:
                self._process.wait(timeout=KILL_WAIT_TIMEOUT)
            except subprocess.TimeoutExpired:
                self._logger.warning(
                    f"jsii runtime did not exit after kill pid={self._process.pid}"
                )

            self._close_input()
            for stream in (self._process.stdout, self._process.stderr):
                if stream is not None:
                    stream.close()
        finally:
            self._state = BridgeState.RELEASED
            self._unregister()

    # ------------------------------------------------------------------
    # Scoped use
    # ------------------------------------------------------------------

    def __enter__(self) -> "ProcessBridge":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    async def aclose(self) -> None:
        """Dispose in a worker thread so the event loop keeps running."""
        await anyio.to_thread.run_sync(self.dispose)

    async def __aenter__(self) -> "ProcessBridge":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return (
            f"ProcessBridge(pid={self._process.pid}, "
            f"runtime_path={self._runtime_path!r}, "
            f"state={self._state.value})"
        )
