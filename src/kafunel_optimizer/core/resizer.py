"""尺寸调整模块。

按比例缩小图片以适应最大宽高，PNG/GIF 保留透明通道。
缩放输出使用固定质量，与压缩级别设置无关。
"""

from pathlib import Path

from PIL import Image

from ..exceptions import EncodeFailureError, ResizeFailureError
from ..models.constants import ImageFormats, QualityDefaults, get_format_alias
from ..models.optimization_config import ResizeConfig
from ..utils.cleanup_helpers import TempFileManager
from ..utils.logging_helpers import get_logger
from .codec import DecodedImage, RasterCodec


logger = get_logger()


def fit_dimensions(
    width: int, height: int, max_width: int, max_height: int
) -> tuple[int, int]:
    """计算保持宽高比的新尺寸

    先按宽度缩放，如果高度仍然超出再按高度缩放。
    """
    new_width, new_height = width, height

    if new_width > max_width:
        new_height = max(1, round(new_height * max_width / new_width))
        new_width = max_width

    if new_height > max_height:
        new_width = max(1, round(new_width * max_height / new_height))
        new_height = max_height

    return new_width, new_height


class Resizer:
    """尺寸调整器"""

    def __init__(self, codec: RasterCodec):
        self.codec = codec

    def resize(
        self, path: Path, bounds: ResizeConfig, temp_files: TempFileManager
    ) -> Path:
        """调整图片尺寸

        Args:
            path: 输入文件
            bounds: 最大宽高
            temp_files: 本次调用的临时文件管理器

        Returns:
            Path: 尺寸已在边界内时返回原路径，否则返回临时目录中的新文件
        """
        with self.codec.decode(path) as decoded:
            width, height = decoded.size
            if bounds.fits(width, height):
                logger.debug(f"尺寸 {width}x{height} 已在边界内，跳过缩放: {path}")
                return path

            new_size = fit_dimensions(width, height, bounds.max_width, bounds.max_height)
            self._resample(decoded, new_size)

            format_name = get_format_alias(path.suffix)
            output_path = temp_files.new_path(path, "resized", path.suffix)
            quality = (
                QualityDefaults.RESIZE_PNG_LEVEL
                if format_name == "PNG"
                else QualityDefaults.RESIZE_QUALITY
            )

            try:
                self.codec.encode(decoded, output_path, format_name, quality)
            except EncodeFailureError as e:
                raise ResizeFailureError(f"写入缩放结果失败: {e.message}", path) from e

        logger.info(
            f"缩放 {path.name}: {width}x{height} → {new_size[0]}x{new_size[1]}"
        )
        return output_path

    @staticmethod
    def _resample(decoded: DecodedImage, new_size: tuple[int, int]) -> None:
        """执行重采样，替换句柄中的缓冲区"""
        try:
            img = decoded.image
            if decoded.format in ImageFormats.ALPHA_RESIZE_FORMATS:
                # 透明画布上直接覆盖像素（不做混合），透明区域保持完全透明
                resized = img.convert("RGBA").resize(new_size, Image.Resampling.LANCZOS)
                canvas = Image.new("RGBA", new_size, (0, 0, 0, 0))
                canvas.paste(resized, (0, 0))
                resized.close()
            else:
                canvas = img.resize(new_size, Image.Resampling.LANCZOS)
        except (OSError, ValueError, MemoryError) as e:
            raise ResizeFailureError(
                f"缩放失败: {decoded.source_path} - {e}", decoded.source_path
            ) from e

        decoded.replace(canvas)
