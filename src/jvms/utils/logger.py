"""
日志模块。

提供应用程序日志的配置和管理功能。
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

_logger: Optional[logging.Logger] = None


def get_app_dir() -> Path:
    """
    获取应用程序目录路径。

    优先使用 JVMS_HOME 环境变量；打包后的可执行文件使用其所在目录；
    否则使用用户主目录下的 .jvms。

    返回:
        应用程序数据目录的 Path 对象
    """
    env_home = os.environ.get("JVMS_HOME")
    if env_home:
        return Path(env_home)
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path.home() / ".jvms"


LOG_DIR_NAME = "logs"
LOG_FILE_NAME = "jvms.log"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(module)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5


def setup_logger(
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = True,
    console_level: int = logging.WARNING,
    log_dir: Optional[Path] = None,
    max_bytes: int = MAX_BYTES,
    backup_count: int = BACKUP_COUNT,
    force: bool = False,
) -> logging.Logger:
    """
    配置并初始化日志记录器。

    控制台只输出警告及以上级别，避免与命令输出混在一起；
    详细模式下由调用方把 console_level 调低。

    参数:
        level: 日志级别，默认为 INFO
        log_to_file: 是否输出到文件，默认为 True
        log_to_console: 是否输出到控制台，默认为 True
        console_level: 控制台输出级别，默认为 WARNING
        log_dir: 日志文件目录，默认为调用时应用程序目录下的 logs
        max_bytes: 单个日志文件最大字节数，默认为 5MB
        backup_count: 保留的备份文件数量，默认为 5
        force: 已初始化时是否重新配置

    返回:
        配置好的 Logger 实例
    """
    global _logger

    if _logger is not None and not force:
        return _logger

    logger = logging.getLogger("jvms")
    logger.setLevel(min(level, console_level) if log_to_console else level)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if log_to_file:
        target_dir = log_dir or get_app_dir() / LOG_DIR_NAME
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                target_dir / LOG_FILE_NAME,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            sys.stderr.write(f"无法创建日志文件，仅输出到控制台: {e}\n")
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(console_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """
    获取日志记录器实例。

    如果尚未初始化，则使用默认配置初始化。

    返回:
        Logger 实例
    """
    if _logger is None:
        return setup_logger()
    return _logger

