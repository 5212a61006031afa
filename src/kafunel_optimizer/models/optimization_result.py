"""优化结果模型。

定义单次优化、远程调用、批量处理的结果结构，以及持久化的优化记录。
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from humanize import naturalsize
from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """错误类型枚举"""

    FILE_NOT_FOUND = "FileNotFound"
    UNSUPPORTED_INPUT_FORMAT = "UnsupportedInputFormat"
    UNSUPPORTED_OUTPUT_FORMAT = "UnsupportedOutputFormat"
    DECODE_FAILURE = "DecodeFailure"
    ENCODE_FAILURE = "EncodeFailure"
    REMOTE_UNAVAILABLE = "RemoteUnavailable"
    BACKUP_FAILURE = "BackupFailure"
    COMMIT_FAILURE = "CommitFailure"
    RESIZE_FAILURE = "ResizeFailure"
    VALIDATION = "Validation"


def calculate_savings_percent(original_size: int, new_size: int) -> float:
    """计算节省百分比，原始大小不大于 0 时返回 0"""
    if original_size <= 0:
        return 0.0
    return round((original_size - new_size) / original_size * 100, 2)


def format_size(size_bytes: int) -> str:
    """格式化文件大小为人类可读格式"""
    return naturalsize(size_bytes, binary=True)


class BaseResult(BaseModel):
    """结果基类，包含通用字段"""

    success: bool = Field(description="是否成功")
    error: str | None = Field(None, description="错误信息")


class OptimizationResult(BaseResult):
    """单个图片优化结果"""

    source_path: Path = Field(description="源文件路径")
    optimized_path: Path | None = Field(None, description="优化后的临时文件路径")
    committed_path: Path | None = Field(None, description="提交后的文件路径")
    original_size: int = Field(0, description="原始文件大小（字节）")
    new_size: int = Field(0, description="优化后文件大小（字节）")
    error_kind: ErrorKind | None = Field(None, description="失败时的错误类型")

    # 处理信息
    target_format: str | None = Field(None, description="目标格式")
    quality_used: int | None = Field(None, description="使用的质量参数")
    was_resized: bool = Field(False, description="是否调整了尺寸")
    strategy_used: str | None = Field(None, description="完成优化的策略")

    @property
    def savings_bytes(self) -> int:
        """节省的字节数，可能为负"""
        return self.original_size - self.new_size

    @property
    def savings_percent(self) -> float:
        """节省百分比，保留两位小数"""
        return calculate_savings_percent(self.original_size, self.new_size)

    def get_summary(self) -> str:
        """优化结果摘要"""
        if not self.success:
            return f"失败: {self.error}"

        return (
            f"{format_size(self.original_size)} → {format_size(self.new_size)} "
            f"({self.savings_percent:.2f}% 节省)"
        )

    def to_record(
        self, optimized_timestamp: datetime | None = None
    ) -> "PersistedOptimizationRecord":
        """转换为持久化记录"""
        return PersistedOptimizationRecord(
            original_size=self.original_size,
            new_size=self.new_size,
            savings_bytes=self.savings_bytes,
            savings_percent=self.savings_percent,
            optimized_timestamp=optimized_timestamp or datetime.now(),
        )


class RemoteResult(BaseModel):
    """远程服务返回的结果封装"""

    success: bool = Field(description="是否成功")
    file_path: Path = Field(description="下载到本地的优化文件")
    original_size: int = Field(description="原始文件大小（字节）")
    new_size: int = Field(description="优化后文件大小（字节）")
    savings: int = Field(description="节省的字节数")
    details: dict[str, Any] = Field(default_factory=dict, description="原始响应内容")


class PersistedOptimizationRecord(BaseModel):
    """持久化的优化记录，同一图片只保留最近一次结果"""

    original_size: int = Field(description="原始文件大小（字节）")
    new_size: int = Field(description="优化后文件大小（字节）")
    savings_bytes: int = Field(description="节省的字节数")
    savings_percent: float = Field(description="节省百分比")
    optimized_timestamp: datetime = Field(description="优化时间")


class OptimizationStatus(BaseModel):
    """图片的优化状态"""

    status: str = Field(description="not_optimized 或 optimized")
    message: str = Field(description="状态描述")
    record: PersistedOptimizationRecord | None = Field(None, description="优化记录")
    optimized_date: datetime | None = Field(None, description="优化日期")


class BatchResult(BaseResult):
    """批量优化结果"""

    results: dict[str, OptimizationResult] = Field(
        default_factory=dict, description="按图片标识索引的结果"
    )

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results.values() if r.success)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results.values() if not r.success)

    @property
    def errors(self) -> list[str]:
        """失败的图片标识列表"""
        return [identity for identity, r in self.results.items() if not r.success]

    def get_total_size_saved(self) -> int:
        """总节省大小"""
        return sum(r.savings_bytes for r in self.results.values() if r.success)

    def get_summary(self) -> str:
        """批量处理摘要"""
        if not self.success:
            return f"批量优化失败: {self.error}"

        total = len(self.results)
        return (
            f"优化 {self.success_count}/{total} 张图片, "
            f"总节省 {format_size(self.get_total_size_saved())}"
        )
