"""Fake jsii runtime for integration testing.

Run by fake_node.py. Behaviour is selected through the environment, since
the bridge passes no arguments beyond the script path:

    FAKE_RUNTIME_MODE:
        echo      Echo stdin lines as "echo: <line>", exit on EOF (default)
        env       Print one JSON line describing the environment, then echo
        exit      Exit immediately with FAKE_RUNTIME_EXIT_CODE (default 0)
        stubborn  Ignore SIGTERM and keep running after EOF
        spawn     Start a sleeping grandchild, print its pid, then stubborn
    FAKE_RUNTIME_DETACH: "1" puts the grandchild in its own session
    FAKE_RUNTIME_LOG: file receiving one line per lifecycle step
        (start, eof, exit)

On start a line is written to stderr so tests can read the error channel.
"""

from __future__ import annotations

import json
import os
import signal
import subprocess
import sys
import time

_LOG = os.environ.get("FAKE_RUNTIME_LOG")

_REPORTED_VARS = (
    "JSII_AGENT",
    "JSII_DEBUG",
    "FAKE_NODE_FLAGS",
    "FAKE_RUNTIME_MARKER",
)


def log_step(step: str) -> None:
    """Append a lifecycle step to the log file."""
    if _LOG:
        with open(_LOG, "a", encoding="utf-8") as f:
            f.write(step + "\n")
            f.flush()


def emit(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def echo_until_eof() -> None:
    for line in sys.stdin:
        emit(f"echo: {line.rstrip(chr(10))}")
    log_step("eof")


def wait_forever() -> None:
    while True:
        time.sleep(0.1)


def describe_environment() -> dict:
    env = {name: os.environ[name] for name in _REPORTED_VARS if name in os.environ}
    return {"script": sys.argv[0], "env": env}


def spawn_grandchild() -> int:
    kwargs = {}
    if os.environ.get("FAKE_RUNTIME_DETACH") == "1":
        kwargs["start_new_session"] = True
    child = subprocess.Popen(
        [sys.executable, "-c", "import time; time.sleep(300)"],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        **kwargs,
    )
    return child.pid


def main() -> None:
    mode = os.environ.get("FAKE_RUNTIME_MODE", "echo")
    log_step("start")
    sys.stderr.write("fake runtime started\n")
    sys.stderr.flush()

    if mode == "exit":
        log_step("exit")
        sys.exit(int(os.environ.get("FAKE_RUNTIME_EXIT_CODE", "0")))

    if mode in ("stubborn", "spawn"):
        if hasattr(signal, "SIGTERM"):
            signal.signal(signal.SIGTERM, signal.SIG_IGN)
        if mode == "spawn":
            emit(json.dumps({"grandchild": spawn_grandchild()}))
        echo_until_eof()
        wait_forever()

    if mode == "env":
        emit(json.dumps(describe_environment(), ensure_ascii=False))

    echo_until_eof()
    log_step("exit")
    sys.exit(0)


main()
