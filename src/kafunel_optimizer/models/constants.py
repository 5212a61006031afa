"""图像格式与压缩级别常量定义。

静态的格式目录：支持的输入/输出格式，以及压缩级别到数值参数的映射。
所有表都是只读的，可以在多线程之间安全共享。
"""

from pathlib import Path
from typing import Final


class ImageFormats:
    """支持的图像格式目录"""

    # 用户友好的别名映射
    ALIASES: Final[dict[str, str]] = {
        "JPG": "JPEG",
    }

    # 输入格式（小写扩展名形式）
    INPUT_FORMATS: Final[frozenset[str]] = frozenset(
        {"jpeg", "jpg", "png", "gif", "webp"}
    )

    # 输出格式（小写扩展名形式）
    OUTPUT_FORMATS: Final[frozenset[str]] = frozenset(
        {"jpeg", "jpg", "png", "webp", "avif"}
    )

    # 解码器可识别的容器类型
    DECODABLE_FORMATS: Final[frozenset[str]] = frozenset(
        {"JPEG", "PNG", "GIF", "WEBP", "AVIF"}
    )

    MIME_TYPES: Final[dict[str, str]] = {
        "JPEG": "image/jpeg",
        "PNG": "image/png",
        "GIF": "image/gif",
        "WEBP": "image/webp",
        "AVIF": "image/avif",
    }

    PREFERRED_EXTENSIONS: Final[dict[str, str]] = {
        "JPEG": ".jpg",
        "PNG": ".png",
        "GIF": ".gif",
        "WEBP": ".webp",
        "AVIF": ".avif",
    }

    # 需要在缩放时保留 alpha 通道的格式
    ALPHA_RESIZE_FORMATS: Final[frozenset[str]] = frozenset({"PNG", "GIF"})


class QualityDefaults:
    """压缩级别到编码器参数的映射"""

    DEFAULT_LEVEL: Final[str] = "optimal"

    # 有损质量 (1-100)
    LEVEL_QUALITY: Final[dict[str, int]] = {
        "lossless": 95,
        "optimal": 85,
        "aggressive": 70,
        "maximum": 50,
    }

    # PNG 压缩级别 (0-9)，0 为最佳质量，9 为最小文件
    LEVEL_PNG: Final[dict[str, int]] = {
        "lossless": 0,
        "optimal": 3,
        "aggressive": 6,
        "maximum": 9,
    }

    # 缩放阶段的固定参数，与压缩级别无关
    RESIZE_QUALITY: Final[int] = 90
    RESIZE_PNG_LEVEL: Final[int] = 6

    # 格式转换阶段的固定参数
    CONVERT_QUALITY: Final[int] = 85
    CONVERT_PNG_LEVEL: Final[int] = 6


class ProcessingDefaults:
    """处理相关默认值"""

    # 上传根目录下的共享临时目录名
    TEMP_DIR_NAME: Final[str] = "kafunel_temp"

    # 备份文件后缀
    BACKUP_SUFFIX: Final[str] = ".bak"

    # 默认缩放边界
    RESIZE_WIDTH: Final[int] = 1920
    RESIZE_HEIGHT: Final[int] = 1080

    # 默认并发数（批量处理）
    MAX_WORKERS: Final[int] = 1


# 便捷访问函数
def get_format_alias(format_str: str) -> str:
    """获取格式的标准名称"""
    format_upper = format_str.strip().lstrip(".").upper()
    return ImageFormats.ALIASES.get(format_upper, format_upper)


def get_mime_type(format_str: str) -> str:
    """获取格式的MIME类型"""
    standard_format = get_format_alias(format_str)
    return ImageFormats.MIME_TYPES.get(
        standard_format, f"image/{standard_format.lower()}"
    )


def get_extension(format_str: str) -> str:
    """获取格式的首选扩展名"""
    standard_format = get_format_alias(format_str)
    return ImageFormats.PREFERRED_EXTENSIONS.get(
        standard_format, f".{standard_format.lower()}"
    )


def get_file_extension(file_path: str | Path) -> str:
    """获取文件扩展名（不含点，保持原始大小写）"""
    return Path(file_path).suffix.lstrip(".")


def supports_input_format(format_str: str) -> bool:
    """检查是否为支持的输入格式（不区分大小写）"""
    return format_str.strip().lstrip(".").lower() in ImageFormats.INPUT_FORMATS


def supports_output_format(format_str: str) -> bool:
    """检查是否为支持的输出格式（不区分大小写）"""
    return format_str.strip().lstrip(".").lower() in ImageFormats.OUTPUT_FORMATS


def is_same_format(first: str, second: str) -> bool:
    """比较两个格式名是否指向同一种编码，jpg 与 jpeg 视为相同"""
    return get_format_alias(first) == get_format_alias(second)


def get_quality_by_level(level: str | None) -> int:
    """根据压缩级别获取有损质量值，未知级别回退到 optimal"""
    key = str(getattr(level, "value", level) or "").lower()
    return QualityDefaults.LEVEL_QUALITY.get(
        key, QualityDefaults.LEVEL_QUALITY[QualityDefaults.DEFAULT_LEVEL]
    )


def get_png_level_by_level(level: str | None) -> int:
    """根据压缩级别获取 PNG 压缩级别，未知级别回退到 optimal"""
    key = str(getattr(level, "value", level) or "").lower()
    return QualityDefaults.LEVEL_PNG.get(
        key, QualityDefaults.LEVEL_PNG[QualityDefaults.DEFAULT_LEVEL]
    )
