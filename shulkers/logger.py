"""
日志配置

命令结果用 click 输出到 stdout，诊断信息经 loguru 写到 stderr。
调试模式下额外显示模块、函数和行号。
"""

import os
import sys
from typing import Optional

from loguru import logger

DEBUG_ENV = "SHULKERS_DEBUG"

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"
DEBUG_FORMAT = (
    "{time:HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"
)


def resolve_level(level: Optional[str] = None) -> str:
    """显式传入的级别优先，其次 SHULKERS_DEBUG=1 时为 DEBUG，默认 INFO"""
    if level:
        return level.upper()
    return "DEBUG" if os.environ.get(DEBUG_ENV) == "1" else "INFO"


def setup_logger(level: Optional[str] = None, sink=None, colorize: Optional[bool] = None) -> int:
    """
    重新配置 loguru，只保留一个输出

    Args:
        level: 日志级别，为空时按环境变量决定
        sink: 输出目标，默认为调用时的 sys.stderr
        colorize: 是否着色，为空时由 loguru 按终端判断

    Returns:
        处理器 ID
    """
    level = resolve_level(level)
    debug = level == "DEBUG"

    logger.remove()
    handler_id = logger.add(
        sys.stderr if sink is None else sink,
        level=level,
        format=DEBUG_FORMAT if debug else LOG_FORMAT,
        colorize=colorize,
        backtrace=debug,
        diagnose=debug,
    )
    logger.debug("调试日志已开启")
    return handler_id


__all__ = ["logger", "setup_logger", "resolve_level"]
