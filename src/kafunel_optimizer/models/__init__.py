"""数据模型包。

定义图片优化相关的数据结构和模型。
"""

from .constants import (
    ImageFormats,
    ProcessingDefaults,
    QualityDefaults,
    get_extension,
    get_file_extension,
    get_format_alias,
    get_mime_type,
    get_png_level_by_level,
    get_quality_by_level,
    is_same_format,
    supports_input_format,
    supports_output_format,
)
from .optimization_config import (
    CompressionLevel,
    Configuration,
    OptimizationRequest,
    OutputFormat,
    ProcessingPlan,
    RemoteFeature,
    ResizeConfig,
)
from .optimization_result import (
    BatchResult,
    ErrorKind,
    OptimizationResult,
    OptimizationStatus,
    PersistedOptimizationRecord,
    RemoteResult,
    calculate_savings_percent,
    format_size,
)


__all__ = [
    # 核心模型
    "BatchResult",
    "CompressionLevel",
    "Configuration",
    "ErrorKind",
    # 常量和工具
    "ImageFormats",
    "OptimizationRequest",
    "OptimizationResult",
    "OptimizationStatus",
    "OutputFormat",
    "PersistedOptimizationRecord",
    "ProcessingDefaults",
    "ProcessingPlan",
    "QualityDefaults",
    "RemoteFeature",
    "RemoteResult",
    "ResizeConfig",
    "calculate_savings_percent",
    "format_size",
    "get_extension",
    "get_file_extension",
    "get_format_alias",
    "get_mime_type",
    "get_png_level_by_level",
    "get_quality_by_level",
    "is_same_format",
    "supports_input_format",
    "supports_output_format",
]
