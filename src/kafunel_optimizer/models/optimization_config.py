"""优化配置模型。

定义调用方传入的配置值对象、单次优化请求以及派生的处理计划。
"""

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    ProcessingDefaults,
    get_format_alias,
    get_png_level_by_level,
    get_quality_by_level,
)


class CompressionLevel(str, Enum):
    """压缩级别枚举"""

    LOSSLESS = "lossless"
    OPTIMAL = "optimal"
    AGGRESSIVE = "aggressive"
    MAXIMUM = "maximum"

    @classmethod
    def _missing_(cls, value: object) -> "CompressionLevel":
        # 未知级别回退到 optimal，而不是报错
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return cls.OPTIMAL


class OutputFormat(str, Enum):
    """输出格式枚举，ORIGINAL 表示保持源文件格式"""

    ORIGINAL = "original"
    JPEG = "jpeg"
    JPG = "jpg"
    PNG = "png"
    WEBP = "webp"
    AVIF = "avif"
    GIF = "gif"

    @classmethod
    def _missing_(cls, value: object) -> "OutputFormat | None":
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class RemoteFeature(str, Enum):
    """远程服务可选的增强功能"""

    BACKGROUND_REMOVAL = "background_removal"
    UPSCALE = "upscale"


class ResizeConfig(BaseModel):
    """尺寸调整配置"""

    model_config = ConfigDict(frozen=True)

    max_width: int = Field(gt=0, description="最大宽度")
    max_height: int = Field(gt=0, description="最大高度")

    def fits(self, width: int, height: int) -> bool:
        """给定尺寸是否已经在边界之内"""
        return width <= self.max_width and height <= self.max_height


class Configuration(BaseModel):
    """优化配置值对象

    由外部设置层解析后传入引擎，引擎本身不持有可变的全局状态。
    """

    model_config = ConfigDict(frozen=True)

    compression_level: CompressionLevel = Field(
        CompressionLevel.OPTIMAL, description="压缩级别"
    )
    output_format: OutputFormat = Field(OutputFormat.ORIGINAL, description="输出格式")
    auto_convert: bool = Field(False, description="原格式输出时自动转换为 WebP")
    resize_enabled: bool = Field(False, description="启用尺寸调整")
    resize_width: int = Field(
        ProcessingDefaults.RESIZE_WIDTH, gt=0, description="最大宽度"
    )
    resize_height: int = Field(
        ProcessingDefaults.RESIZE_HEIGHT, gt=0, description="最大高度"
    )
    api_key: str = Field("", description="远程服务 API 密钥，为空时仅本地处理")
    remote_features: frozenset[RemoteFeature] = Field(
        default_factory=frozenset, description="请求的远程增强功能"
    )

    @field_validator("compression_level", mode="before")
    @classmethod
    def normalize_compression_level(cls, v: Any) -> CompressionLevel:
        if isinstance(v, CompressionLevel):
            return v
        return CompressionLevel(str(v) if v is not None else "")

    @field_validator("api_key", mode="before")
    @classmethod
    def normalize_api_key(cls, v: Any) -> str:
        return (v or "").strip()

    @property
    def effective_output_format(self) -> OutputFormat:
        """应用 auto_convert 之后的输出格式"""
        if self.auto_convert and self.output_format == OutputFormat.ORIGINAL:
            return OutputFormat.WEBP
        return self.output_format

    @property
    def resize_config(self) -> ResizeConfig | None:
        if not self.resize_enabled:
            return None
        return ResizeConfig(max_width=self.resize_width, max_height=self.resize_height)

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def to_request(self, source_path: str | Path) -> "OptimizationRequest":
        """为指定文件生成一次优化请求"""
        return OptimizationRequest(
            source_path=Path(source_path),
            compression_level=self.compression_level,
            output_format=self.effective_output_format,
            resize=self.resize_config,
            remote_features=self.remote_features,
        )


class OptimizationRequest(BaseModel):
    """单次优化请求，调用期间不可变"""

    model_config = ConfigDict(frozen=True)

    source_path: Path = Field(description="源文件路径")
    compression_level: CompressionLevel = Field(
        CompressionLevel.OPTIMAL, description="压缩级别"
    )
    output_format: OutputFormat = Field(OutputFormat.ORIGINAL, description="输出格式")
    resize: ResizeConfig | None = Field(None, description="尺寸调整边界")
    remote_features: frozenset[RemoteFeature] = Field(
        default_factory=frozenset, description="远程增强功能"
    )

    @field_validator("compression_level", mode="before")
    @classmethod
    def normalize_compression_level(cls, v: Any) -> CompressionLevel:
        if isinstance(v, CompressionLevel):
            return v
        return CompressionLevel(str(v) if v is not None else "")


class ProcessingPlan(BaseModel):
    """由请求派生的处理计划，不持久化"""

    model_config = ConfigDict(frozen=True)

    source_format: str = Field(description="源文件扩展名")
    target_format: str = Field(description="解析后的目标格式（小写扩展名）")
    quality: int = Field(ge=1, le=100, description="有损质量参数")
    png_level: int = Field(ge=0, le=9, description="PNG 压缩级别")
    needs_resize: bool = Field(False, description="是否需要缩放")
    needs_conversion: bool = Field(False, description="是否需要格式转换")

    @classmethod
    def resolve(
        cls, request: OptimizationRequest, dimensions: tuple[int, int] | None = None
    ) -> "ProcessingPlan":
        """解析目标格式和数值参数

        ORIGINAL 解析为源文件自身的扩展名；目标格式与源扩展名不一致
        （不区分大小写，jpg/jpeg 视为同一格式）时需要格式转换。
        """
        source_format = request.source_path.suffix.lstrip(".").lower()
        if request.output_format == OutputFormat.ORIGINAL:
            target_format = source_format
        else:
            target_format = request.output_format.value

        needs_resize = False
        if request.resize is not None and dimensions is not None:
            needs_resize = not request.resize.fits(*dimensions)

        return cls(
            source_format=source_format,
            target_format=target_format,
            quality=get_quality_by_level(request.compression_level),
            png_level=get_png_level_by_level(request.compression_level),
            needs_resize=needs_resize,
            needs_conversion=get_format_alias(source_format)
            != get_format_alias(target_format),
        )

    @property
    def canonical_target(self) -> str:
        """目标格式的标准名称，如 JPEG、PNG"""
        return get_format_alias(self.target_format)

    def quality_for(self, format_str: str) -> int:
        """按目标格式返回编码参数：PNG 使用 0-9 级别，其余使用有损质量"""
        if get_format_alias(format_str) == "PNG":
            return self.png_level
        return self.quality
