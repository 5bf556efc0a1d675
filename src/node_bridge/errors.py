"""node-bridge 异常类。

启动失败（找不到 node 可执行文件等）不在此层级内，
直接以内置 OSError 子类抛出给调用方。
"""

from __future__ import annotations

__all__ = [
    "BridgeError",
    "BridgeConfigError",
]


class BridgeError(Exception):
    """node-bridge 基础异常。"""
    pass


class BridgeConfigError(BridgeError):
    """配置错误（如缺少 logger_factory）。

    Attributes:
        parameter: 出错的参数名
    """

    def __init__(self, parameter: str, message: str | None = None) -> None:
        self.parameter = parameter
        super().__init__(message or f"{parameter} is required")
