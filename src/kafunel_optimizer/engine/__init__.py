"""图片优化处理引擎模块。

包含批量处理和配置构建等处理逻辑。
"""

from .batch import BatchOptimizer
from .config import ConfigBuilder, build_config


__all__ = [
    "BatchOptimizer",
    "ConfigBuilder",
    "build_config",
]
