"""node-bridge - 受监管的 jsii 运行时子进程桥接。

环境变量:
    JSII_RUNTIME: 运行时入口脚本路径（覆盖默认值）
    JSII_DEBUG: 调试标志（透传给子进程）
    NODE_BRIDGE_LOG_DEBUG: 日志调试模式 (默认 false)

用法:
    node-bridge --runtime /path/to/jsii-runtime.js
"""

__version__ = "0.1.0"

from .errors import BridgeConfigError, BridgeError
from .runtime import ProcessBridge, RuntimePathProvider, StaticRuntimePathProvider

__all__ = [
    "__version__",
    "BridgeConfigError",
    "BridgeError",
    "ProcessBridge",
    "RuntimePathProvider",
    "StaticRuntimePathProvider",
]
