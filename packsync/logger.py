"""
日志配置

控制台输出安装进度；指定日志文件时额外保留一份完整的安装日志，
安装失败后可以据此检查哪些文件已经被修改。
"""

import os
import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

CONSOLE_FORMAT = "{time:HH:mm:ss} | {level: <8} | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} | {message}"


def setup_logger(
    level: Optional[str] = None,
    log_file: Union[str, Path, None] = None,
    sink=sys.stderr,
    enqueue: bool = True,
) -> None:
    """
    配置 packsync 的日志输出

    Args:
        level: 控制台日志级别，未指定时读取 PACKSYNC_DEBUG 环境变量
        log_file: 安装日志文件，总是记录 DEBUG 级别
        sink: 控制台输出目标
        enqueue: 多个下载协程同时写日志时经由队列输出
    """
    if level is None:
        level = "DEBUG" if os.environ.get("PACKSYNC_DEBUG", "0") == "1" else "INFO"
    debug = level == "DEBUG"

    logger.remove()
    logger.add(
        sink=sink,
        format=CONSOLE_FORMAT,
        enqueue=enqueue,
        level=level,
        colorize=True,
        backtrace=debug,
        diagnose=debug,
    )

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            format=FILE_FORMAT,
            enqueue=enqueue,
            level="DEBUG",
            encoding="utf-8",
            rotation="5 MB",
            retention=3,
        )

    if debug:
        logger.debug("DEBUG 模式已启用")


__all__ = ["logger", "setup_logger"]
