"""核心模块包。

编解码、缩放、格式转换、远程委托、优化编排和文件事务。
"""

from .codec import CodecCapabilities, DecodedImage, RasterCodec
from .converter import FormatConverter
from .orchestrator import OptimizationOrchestrator
from .remote import RemoteDelegateClient
from .resizer import Resizer, fit_dimensions
from .strategy import (
    LocalOptimizeStrategy,
    OptimizationStrategy,
    RemoteOptimizeStrategy,
    StrategyOutcome,
    StrategyStatus,
)
from .transaction import CommitResult, FileTransactionManager


__all__ = [
    "CodecCapabilities",
    "CommitResult",
    "DecodedImage",
    "FileTransactionManager",
    "FormatConverter",
    "LocalOptimizeStrategy",
    "OptimizationOrchestrator",
    "OptimizationStrategy",
    "RasterCodec",
    "RemoteDelegateClient",
    "RemoteOptimizeStrategy",
    "Resizer",
    "StrategyOutcome",
    "StrategyStatus",
    "fit_dimensions",
]
