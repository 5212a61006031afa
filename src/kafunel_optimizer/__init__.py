"""Kafunel 图片优化库。

按图片标识执行 缩放 → 远程或本地优化 → 格式转换 → 原子替换 的完整流程。
"""

__version__ = "1.0.0"
__description__ = "图片优化引擎，支持远程优化服务和本地 Pillow 回退"

from .engine import BatchOptimizer, ConfigBuilder
from .models import (
    BatchResult,
    CompressionLevel,
    Configuration,
    OptimizationResult,
    OptimizationStatus,
    OutputFormat,
)
from .optimizer import ImageOptimizer


__all__ = [
    "BatchOptimizer",
    "BatchResult",
    "CompressionLevel",
    "ConfigBuilder",
    "Configuration",
    "ImageOptimizer",
    "OptimizationResult",
    "OptimizationStatus",
    "OutputFormat",
    "get_version",
]


def get_version() -> str:
    """获取版本号。"""
    return __version__
