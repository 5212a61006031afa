"""日志工具模块。

提供统一的日志记录功能，标准化日志格式和配置。
"""

import inspect
import logging
from logging.handlers import RotatingFileHandler
from typing import Any


PACKAGE_LOGGER = "kafunel_optimizer"


def get_logger(name: str | None = None) -> logging.Logger:
    """获取标准化配置的日志记录器。

    Args:
        name: 日志记录器名称，默认使用调用模块的 __name__

    Returns:
        logging.Logger: 配置好的日志记录器
    """
    if name is None:
        # 获取调用者的模块名
        frame = inspect.currentframe()
        if frame and frame.f_back:
            name = frame.f_back.f_globals.get("__name__", "unknown")
        else:
            name = "unknown"

    return logging.getLogger(name)


def configure_logging(logging_defaults: Any) -> logging.Logger:
    """按配置初始化包级日志记录器。

    重复调用是幂等的：已经安装的处理器会先被移除。

    Args:
        logging_defaults: LoggingDefaults 配置对象

    Returns:
        logging.Logger: 包级日志记录器
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging_defaults.LOG_LEVEL)

    for handler in list(logger.handlers):
        if getattr(handler, "_kafunel_handler", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(logging_defaults.LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler._kafunel_handler = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if logging_defaults.ENABLE_FILE_LOGGING:
        file_handler = RotatingFileHandler(
            logging_defaults.LOG_FILE_PATH,
            maxBytes=logging_defaults.LOG_FILE_MAX_SIZE,
            backupCount=logging_defaults.LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler._kafunel_handler = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    return logger
