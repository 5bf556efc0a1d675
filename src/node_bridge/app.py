"""node-bridge 应用入口。

包含日志配置、stdio 中继和主入口点。

中继流程：
- 后台线程：宿主 stdin -> 子进程 stdin，EOF 后关闭子进程 stdin
- 后台线程：子进程 stdout/stderr -> 宿主 stdout/stderr
- 主线程：等待宿主 stdin EOF 或子进程退出（先到者为准），等待输出排空，再 dispose
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import IO

from .config import BridgeConfig, generate_log_file_path, get_config
from .runtime import ProcessBridge, StaticRuntimePathProvider
from .runtime.process_bridge import GRACEFUL_EXIT_TIMEOUT

__all__ = ["configure_logging", "relay", "main"]

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

POLL_INTERVAL = 0.1  # 秒，主线程检查子进程是否退出的间隔


def configure_logging(config: BridgeConfig) -> None:
    """配置日志输出。

    - 默认：stderr，INFO
    - LOG_DEBUG：临时文件，DEBUG
    """
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        # stdout 是子进程输出的中继通道，日志只能走 stderr
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # 配置 root logger（第三方库）为 WARNING，减少噪音
    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    # 只对 node_bridge 命名空间启用详细日志
    logging.getLogger("node_bridge").setLevel(log_level)


def _pump(source: IO[str], sink: IO[str]) -> None:
    """逐行复制 source 到 sink，直到 EOF。"""
    for line in iter(source.readline, ""):
        sink.write(line)
        sink.flush()


def _pump_output(name: str, source: IO[str], sink: IO[str]) -> None:
    """后台线程：中继子进程输出。"""
    try:
        _pump(source, sink)
    except ValueError:
        # dispose 已关闭管道
        logger.debug(f"{name} pump stopped: stream closed")
    logger.debug(f"{name} pump finished")


def _pump_input(source: IO[str], bridge: ProcessBridge, done: threading.Event) -> None:
    """后台线程：中继宿主输入，EOF 后关闭子进程 stdin。"""
    try:
        _pump(source, bridge.stdin)
        bridge.stdin.close()
    except (OSError, ValueError) as e:
        # 子进程已退出或 dispose 已关闭管道
        logger.debug(f"stdin pump stopped: {e}")
    finally:
        done.set()


def _exit_code(returncode: int | None) -> int:
    """把子进程返回码转换为宿主退出码（信号终止 -> 128 + signum）。"""
    if returncode is None:
        return 0
    if returncode < 0:
        return 128 - returncode
    return returncode


def relay(
    bridge: ProcessBridge,
    stdin: IO[str] | None = None,
    stdout: IO[str] | None = None,
    stderr: IO[str] | None = None,
) -> int:
    """在宿主 stdio 和子进程之间中继，直到宿主 stdin EOF 或子进程退出。

    Args:
        bridge: 已启动的 ProcessBridge
        stdin: 宿主输入（默认 sys.stdin）
        stdout: 宿主输出（默认 sys.stdout）
        stderr: 宿主错误输出（默认 sys.stderr）

    Returns:
        宿主退出码
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    pumps = [
        threading.Thread(
            target=_pump_output,
            args=("stdout", bridge.stdout, stdout),
            daemon=True,
        ),
        threading.Thread(
            target=_pump_output,
            args=("stderr", bridge.stderr, stderr),
            daemon=True,
        ),
    ]
    for pump in pumps:
        pump.start()

    # 宿主 stdin 可能永远不到 EOF，不能阻塞主线程
    input_done = threading.Event()
    threading.Thread(
        target=_pump_input,
        args=(stdin, bridge, input_done),
        daemon=True,
    ).start()

    while not input_done.wait(POLL_INTERVAL):
        if bridge.poll() is not None:
            logger.debug(f"jsii runtime exited before host stdin EOF pid={bridge.pid}")
            break

    # 子进程退出后输出管道才会 EOF
    for pump in pumps:
        pump.join(timeout=GRACEFUL_EXIT_TIMEOUT)

    bridge.dispose()

    for pump in pumps:
        pump.join(timeout=1.0)

    logger.debug(f"jsii runtime finished returncode={bridge.returncode}")
    return _exit_code(bridge.returncode)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="node-bridge",
        description="Run the jsii runtime under node and relay stdio to it.",
    )
    parser.add_argument(
        "--runtime",
        metavar="PATH",
        default=None,
        help="Runtime entry point (JSII_RUNTIME takes precedence when set)",
    )
    parser.add_argument(
        "--log-debug",
        action="store_true",
        help="Write debug logs to a temporary file",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """主入口点。"""
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = get_config()
    if args.log_debug and not config.log_debug:
        config = dataclasses.replace(
            config, log_debug=True, log_file=generate_log_file_path()
        )
    configure_logging(config)

    if config.log_file:
        logger.info(f"Debug log: {config.log_file}")

    if args.runtime is None and config.runtime_path_override is None:
        parser.error("--runtime is required when JSII_RUNTIME is not set")

    provider = StaticRuntimePathProvider(args.runtime) if args.runtime else None

    try:
        bridge = ProcessBridge(provider)
    except OSError as e:
        logger.error(f"Failed to start jsii runtime: {e}")
        return 1

    with bridge:
        return relay(bridge)


if __name__ == "__main__":
    sys.exit(main())
