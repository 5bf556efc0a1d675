"""Pytest 配置和 fixtures。"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent

# 添加 src 目录到 Python 路径
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from node_bridge.runtime import ProcessBridge, StaticRuntimePathProvider  # noqa: E402
from node_bridge.runtime.process_bridge import IS_WINDOWS  # noqa: E402

# 测试替身目录
FIXTURES_DIR = Path(__file__).parent / "fixtures"
FAKE_NODE = FIXTURES_DIR / "fake_node.py"
FAKE_RUNTIME = FIXTURES_DIR / "fake_runtime.py"

# 测试中会影响子进程行为的环境变量
_BRIDGE_VARS = (
    "JSII_RUNTIME",
    "JSII_DEBUG",
    "JSII_AGENT",
    "NODE_BRIDGE_NODE",
    "NODE_BRIDGE_LOG_DEBUG",
    "FAKE_RUNTIME_MODE",
    "FAKE_RUNTIME_LOG",
    "FAKE_RUNTIME_DETACH",
    "FAKE_RUNTIME_EXIT_CODE",
    "FAKE_RUNTIME_MARKER",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """移除所有 bridge 相关环境变量。"""
    for name in _BRIDGE_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_node(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, clean_env: None) -> Path:
    """在 PATH 最前面放一个名为 node 的假可执行文件。"""
    if IS_WINDOWS:
        pytest.skip("fake node wrapper is a POSIX shell script")

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    node = bin_dir / "node"
    node.write_text(
        f'#!/bin/sh\nexec "{sys.executable}" "{FAKE_NODE}" "$@"\n',
        encoding="utf-8",
    )
    node.chmod(0o755)

    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    monkeypatch.setenv("PYTHONIOENCODING", "utf-8")
    return node


@pytest.fixture
def runtime_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """假运行时的生命周期日志文件。"""
    log = tmp_path / "runtime.log"
    monkeypatch.setenv("FAKE_RUNTIME_LOG", str(log))
    return log


@pytest.fixture
def provider() -> StaticRuntimePathProvider:
    """指向假运行时脚本的 provider。"""
    return StaticRuntimePathProvider(FAKE_RUNTIME)


@pytest.fixture
def make_bridge(
    fake_node: Path,
    provider: StaticRuntimePathProvider,
) -> Iterator[Callable[..., ProcessBridge]]:
    """创建 ProcessBridge，测试结束时统一 dispose。"""
    bridges: list[ProcessBridge] = []

    def factory(*args, **kwargs) -> ProcessBridge:
        if not args:
            args = (provider,)
        bridge = ProcessBridge(*args, **kwargs)
        bridges.append(bridge)
        return bridge

    yield factory

    for bridge in bridges:
        bridge.dispose()
