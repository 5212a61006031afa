"""文件工具函数模块。

提供文件大小、图像尺寸等实用函数。
"""

from pathlib import Path

from PIL import ExifTags, Image

from .logging_helpers import get_logger
from .message_formatter import MessageFormatter


logger = get_logger()


def get_file_size(file_path: str | Path) -> int:
    """获取文件大小，文件不存在时返回 0"""
    try:
        return Path(file_path).stat().st_size
    except OSError:
        return 0


def get_image_dimensions(file_path: str | Path) -> tuple[int, int] | None:
    """只读取图像头部获取尺寸，失败时返回 None

    返回按 EXIF 方向校正后的尺寸，与解码后的像素尺寸一致。
    """
    try:
        with Image.open(file_path) as img:
            width, height = img.size
            orientation = img.getexif().get(ExifTags.Base.Orientation, 1)
    except Exception as e:
        logger.debug(MessageFormatter.operation_failed("读取图像尺寸", file_path, e))
        return None

    # 方向 5-8 需要旋转 90 度，宽高互换
    if orientation in (5, 6, 7, 8):
        return height, width
    return width, height
