"""统一配置管理模块。

提供应用程序的全局配置管理，包括默认值、环境变量支持等。
默认值与插件的设置项保持一致。
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .models.constants import ProcessingDefaults as CatalogDefaults


@dataclass(frozen=True)
class OptimizationDefaults:
    """优化相关的默认配置"""

    COMPRESSION_LEVEL: str = "optimal"
    OUTPUT_FORMAT: str = "original"
    AUTO_CONVERT: bool = False

    # 尺寸调整
    RESIZE_ENABLED: bool = False
    RESIZE_WIDTH: int = CatalogDefaults.RESIZE_WIDTH
    RESIZE_HEIGHT: int = CatalogDefaults.RESIZE_HEIGHT

    # 批量处理并发数，1 表示顺序处理
    MAX_WORKERS: int = CatalogDefaults.MAX_WORKERS


@dataclass(frozen=True)
class RemoteDefaults:
    """远程服务相关的默认配置"""

    API_KEY: str = ""
    API_BASE_URL: str = "https://api.kafunel.com/v1"
    TIMEOUT_SECONDS: float = 30.0


@dataclass(frozen=True)
class StorageDefaults:
    """存储相关的默认配置"""

    # 上传根目录，临时目录位于其下
    UPLOAD_ROOT: str = "uploads"
    TEMP_DIR_NAME: str = CatalogDefaults.TEMP_DIR_NAME

    # 元数据存储文件，为空时使用内存存储
    METADATA_FILE: str = ""

    @property
    def temp_dir(self) -> Path:
        return Path(self.UPLOAD_ROOT) / self.TEMP_DIR_NAME


@dataclass(frozen=True)
class LoggingDefaults:
    """日志相关的默认配置"""

    # 日志级别
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # 文件日志
    ENABLE_FILE_LOGGING: bool = False
    LOG_FILE_PATH: str = "kafunel_optimizer.log"
    LOG_FILE_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    LOG_FILE_BACKUP_COUNT: int = 5


def _env_flag(value: str) -> bool:
    return value.lower() in ("true", "1", "yes", "on")


class AppConfig:
    """应用程序配置管理器

    支持环境变量覆盖默认配置
    """

    def __init__(self):
        self.optimization = OptimizationDefaults()
        self.remote = RemoteDefaults()
        self.storage = StorageDefaults()
        self.logging = LoggingDefaults()

        # 从环境变量加载配置
        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        # 优化配置
        if level := os.getenv("KAFUNEL_COMPRESSION_LEVEL"):
            object.__setattr__(self.optimization, "COMPRESSION_LEVEL", level.lower())

        if output_format := os.getenv("KAFUNEL_OUTPUT_FORMAT"):
            object.__setattr__(
                self.optimization, "OUTPUT_FORMAT", output_format.lower()
            )

        if auto_convert := os.getenv("KAFUNEL_AUTO_CONVERT"):
            object.__setattr__(
                self.optimization, "AUTO_CONVERT", _env_flag(auto_convert)
            )

        if resize_enabled := os.getenv("KAFUNEL_RESIZE_ENABLED"):
            object.__setattr__(
                self.optimization, "RESIZE_ENABLED", _env_flag(resize_enabled)
            )

        if resize_width := os.getenv("KAFUNEL_RESIZE_WIDTH"):
            object.__setattr__(self.optimization, "RESIZE_WIDTH", int(resize_width))

        if resize_height := os.getenv("KAFUNEL_RESIZE_HEIGHT"):
            object.__setattr__(self.optimization, "RESIZE_HEIGHT", int(resize_height))

        if max_workers := os.getenv("KAFUNEL_MAX_WORKERS"):
            object.__setattr__(self.optimization, "MAX_WORKERS", int(max_workers))

        # 远程服务配置
        if api_key := os.getenv("KAFUNEL_API_KEY"):
            object.__setattr__(self.remote, "API_KEY", api_key.strip())

        if base_url := os.getenv("KAFUNEL_API_BASE_URL"):
            object.__setattr__(self.remote, "API_BASE_URL", base_url.rstrip("/"))

        if timeout := os.getenv("KAFUNEL_API_TIMEOUT"):
            object.__setattr__(self.remote, "TIMEOUT_SECONDS", float(timeout))

        # 存储配置
        if upload_root := os.getenv("KAFUNEL_UPLOAD_ROOT"):
            object.__setattr__(self.storage, "UPLOAD_ROOT", upload_root)

        if metadata_file := os.getenv("KAFUNEL_METADATA_FILE"):
            object.__setattr__(self.storage, "METADATA_FILE", metadata_file)

        # 日志配置
        if log_level := os.getenv("KAFUNEL_LOG_LEVEL"):
            object.__setattr__(self.logging, "LOG_LEVEL", log_level.upper())

        if enable_file_log := os.getenv("KAFUNEL_ENABLE_FILE_LOGGING"):
            object.__setattr__(
                self.logging, "ENABLE_FILE_LOGGING", _env_flag(enable_file_log)
            )

    def settings(self) -> dict[str, Any]:
        """以设置项字典的形式导出优化配置，供 ConfigBuilder 使用"""
        return {
            "compression_level": self.optimization.COMPRESSION_LEVEL,
            "output_format": self.optimization.OUTPUT_FORMAT,
            "auto_convert": self.optimization.AUTO_CONVERT,
            "resize_enabled": self.optimization.RESIZE_ENABLED,
            "resize_width": self.optimization.RESIZE_WIDTH,
            "resize_height": self.optimization.RESIZE_HEIGHT,
            "api_key": self.remote.API_KEY,
        }


# 全局配置实例
config = AppConfig()


def get_config() -> AppConfig:
    """获取全局配置实例"""
    return config


def reset_config():
    """重置配置（主要用于测试）"""
    global config
    config = AppConfig()
    return config
