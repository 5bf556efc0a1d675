"""node-bridge 环境变量配置管理。

环境变量:
    JSII_RUNTIME: jsii 运行时入口脚本路径
        - 非空时覆盖 RuntimePathProvider 提供的默认路径
        - 空白字符串视为未设置

    JSII_DEBUG: 调试标志（原样透传给子进程）
        - 非空时传递给子进程
        - 空白/未设置 = 子进程环境中不出现该变量

    NODE_BRIDGE_NODE: node 可执行文件
        - 默认 "node"（通过 PATH 查找）

    NODE_BRIDGE_LOG_DEBUG: 日志调试模式（仅 CLI）
        - true/1/yes/on = 开启 (日志输出到临时文件)
        - false/0/no = 关闭 (默认，日志输出到 stderr)

JSII_AGENT 只写不读：由 ProcessBridge 在子进程环境中设置。
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = [
    "BridgeConfig",
    "load_config",
    "get_config",
    "reload_config",
    "generate_log_file_path",
    "is_blank",
    "JSII_RUNTIME",
    "JSII_DEBUG",
    "JSII_AGENT",
    "NODE_BRIDGE_NODE",
    "NODE_BRIDGE_LOG_DEBUG",
    "DEFAULT_NODE_EXECUTABLE",
]

# 与子进程约定的变量名，不可更改
JSII_RUNTIME = "JSII_RUNTIME"
JSII_DEBUG = "JSII_DEBUG"
JSII_AGENT = "JSII_AGENT"

NODE_BRIDGE_NODE = "NODE_BRIDGE_NODE"
NODE_BRIDGE_LOG_DEBUG = "NODE_BRIDGE_LOG_DEBUG"

DEFAULT_NODE_EXECUTABLE = "node"


def is_blank(value: str | None) -> bool:
    """None、空串或纯空白。"""
    return value is None or not value.strip()


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """解析布尔值环境变量。"""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_optional(value: str | None) -> str | None:
    """空白值归一化为 None，其余原样保留（不 strip）。"""
    if is_blank(value):
        return None
    return value


@dataclass
class BridgeConfig:
    """node-bridge 配置。

    Attributes:
        runtime_path_override: JSII_RUNTIME 的值（空白时为 None）
        debug: JSII_DEBUG 的值（空白时为 None）
        node_executable: node 可执行文件
        log_debug: 日志调试模式（输出到临时文件）
        log_file: 日志文件路径（当 log_debug=True 时自动设置）
    """

    runtime_path_override: str | None = None
    debug: str | None = None
    node_executable: str = DEFAULT_NODE_EXECUTABLE
    log_debug: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"BridgeConfig(runtime_path_override={self.runtime_path_override}, "
            f"debug={'set' if self.debug else 'unset'}, "
            f"node_executable={self.node_executable}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def generate_log_file_path() -> str:
    """生成日志文件路径。

    Returns:
        临时目录下的日志文件绝对路径（目录在配置日志时创建）
    """
    log_dir = Path(tempfile.gettempdir()) / "node-bridge"

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"node_bridge_{timestamp}.log"

    return str(log_file.resolve())


def load_config(environ: Mapping[str, str] | None = None) -> BridgeConfig:
    """从环境变量加载配置。

    Args:
        environ: 环境变量映射（默认 os.environ）
    """
    if environ is None:
        environ = os.environ

    log_debug = _parse_bool(environ.get(NODE_BRIDGE_LOG_DEBUG), default=False)
    log_file = generate_log_file_path() if log_debug else None

    return BridgeConfig(
        runtime_path_override=_parse_optional(environ.get(JSII_RUNTIME)),
        debug=_parse_optional(environ.get(JSII_DEBUG)),
        node_executable=_parse_optional(environ.get(NODE_BRIDGE_NODE)) or DEFAULT_NODE_EXECUTABLE,
        log_debug=log_debug,
        log_file=log_file,
    )


# 全局配置实例（延迟加载）
_config: BridgeConfig | None = None


def get_config() -> BridgeConfig:
    """获取全局配置实例。"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> BridgeConfig:
    """重新加载配置（用于测试）。"""
    global _config
    _config = load_config()
    return _config
