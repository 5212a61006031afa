"""栅格编解码适配器模块。

在 Pillow 之上提供解码/编码抽象，并负责解码缓冲区的生命周期。
平台能力（是否支持 WebP/AVIF 编码）在构造时探测一次，之后注入使用。
"""

from io import BytesIO
from pathlib import Path
from typing import Any

from PIL import Image, ImageOps, UnidentifiedImageError

from ..exceptions import (
    DecodeFailureError,
    EncodeFailureError,
    OptimizationError,
    SourceNotFoundError,
    UnsupportedInputFormatError,
    UnsupportedOutputFormatError,
    handle_image_errors,
)
from ..models.constants import ImageFormats, get_format_alias, get_mime_type
from ..utils.cleanup_helpers import remove_file
from ..utils.logging_helpers import get_logger


logger = get_logger()


class CodecCapabilities:
    """平台编解码能力查询接口"""

    def __init__(self, decodable: set[str], encodable: set[str]) -> None:
        self.decodable = frozenset(get_format_alias(f) for f in decodable)
        self.encodable = frozenset(get_format_alias(f) for f in encodable)

    @classmethod
    def probe(cls) -> "CodecCapabilities":
        """探测当前 Pillow 构建支持的格式"""
        Image.init()
        decodable = {
            fmt for fmt in ImageFormats.DECODABLE_FORMATS if fmt in Image.OPEN
        }
        encodable = {
            fmt for fmt in ImageFormats.DECODABLE_FORMATS if cls._check_encode(fmt)
        }

        logger.debug(f"可解码格式: {sorted(decodable)}, 可编码格式: {sorted(encodable)}")
        return cls(decodable, encodable)

    @staticmethod
    def _check_encode(format_name: str) -> bool:
        """检查特定格式是否可以编码并重新打开"""
        if format_name not in Image.SAVE:
            return False
        try:
            test_img = Image.new("RGB", (1, 1), color="red")
            buffer = BytesIO()
            test_img.save(buffer, format=format_name)
            buffer.seek(0)
            with Image.open(buffer) as reopened:
                reopened.load()
            return True
        except Exception as e:
            logger.debug(f"格式 {format_name} 不支持编码: {e}")
            return False

    def supports(self, format_name: str) -> bool:
        """是否可以编码为指定格式"""
        return get_format_alias(format_name) in self.encodable

    def can_decode(self, format_name: str) -> bool:
        """是否可以解码指定格式"""
        return get_format_alias(format_name) in self.decodable


class DecodedImage:
    """解码后的图像句柄，拥有底层缓冲区

    可以作为上下文管理器使用，退出时释放缓冲区；重复关闭是安全的。
    """

    def __init__(self, image: Image.Image, format_name: str, source_path: Path):
        self._image: Image.Image | None = image
        self.format = format_name
        self.mime_type = get_mime_type(format_name)
        self.source_path = source_path

    @property
    def image(self) -> Image.Image:
        if self._image is None:
            raise ValueError(f"图像缓冲区已释放: {self.source_path}")
        return self._image

    @property
    def closed(self) -> bool:
        return self._image is None

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def replace(self, image: Image.Image) -> None:
        """用处理后的图像替换缓冲区，旧缓冲区立即释放"""
        old = self._image
        self._image = image
        if old is not None and old is not image:
            old.close()

    def close(self) -> None:
        if self._image is not None:
            self._image.close()
            self._image = None

    def __enter__(self) -> "DecodedImage":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        del exc_type, exc_val, exc_tb
        self.close()


class RasterCodec:
    """基于 Pillow 的解码/编码适配器"""

    def __init__(self, capabilities: CodecCapabilities | None = None) -> None:
        self.capabilities = capabilities or CodecCapabilities.probe()

    def supports(self, format_name: str) -> bool:
        return self.capabilities.supports(format_name)

    @handle_image_errors("图像解码", default=DecodeFailureError)
    def decode(self, path: str | Path) -> DecodedImage:
        """解码图像文件

        按容器声明的类型分发，而不是按文件名。

        Raises:
            SourceNotFoundError: 文件不存在
            UnsupportedInputFormatError: 容器类型不受支持
            DecodeFailureError: 数据损坏或无法读取
        """
        path = Path(path)
        if not path.is_file():
            raise SourceNotFoundError(f"文件不存在: {path}", path)

        try:
            img = Image.open(path)
        except UnidentifiedImageError as e:
            raise DecodeFailureError(f"无法解码图像数据: {path}", path) from e

        format_name = (img.format or "").upper()
        if not self.capabilities.can_decode(format_name):
            img.close()
            raise UnsupportedInputFormatError(
                f"不支持的输入格式 {format_name or 'UNKNOWN'}: {path}", path
            )

        try:
            img.load()
            ImageOps.exif_transpose(img, in_place=True)
        except Exception as e:
            img.close()
            raise DecodeFailureError(f"图像数据损坏: {path} - {e}", path) from e

        return DecodedImage(img, format_name, path)

    def encode(
        self,
        image: DecodedImage,
        destination: str | Path,
        target_format: str,
        quality: int | None = None,
    ) -> Path:
        """编码图像并写入目标路径，无论成功与否都会释放解码缓冲区

        Args:
            image: 解码后的图像句柄
            destination: 目标文件路径
            target_format: 目标格式
            quality: JPEG/WEBP/AVIF 为有损质量 (1-100)，PNG 为压缩级别 (0-9)，
                GIF 忽略该参数

        Returns:
            Path: 写入的文件路径
        """
        destination = Path(destination)
        format_name = get_format_alias(target_format)
        prepared: Image.Image | None = None

        try:
            if not self.capabilities.supports(format_name):
                raise UnsupportedOutputFormatError(
                    f"当前平台不支持编码 {format_name}", destination
                )

            prepared = prepare_for_format(image.image, format_name)
            save_params = get_save_parameters(format_name, quality)

            destination.parent.mkdir(parents=True, exist_ok=True)
            prepared.save(destination, format=format_name, **save_params)

            if not destination.exists() or destination.stat().st_size == 0:
                raise EncodeFailureError(f"编码结果为空: {destination}", destination)

            return destination

        except OptimizationError:
            remove_file(destination)
            raise
        except Exception as e:
            remove_file(destination)
            raise EncodeFailureError(
                f"编码 {format_name} 失败: {destination} - {e}", destination
            ) from e
        finally:
            if prepared is not None and not image.closed and prepared is not image.image:
                prepared.close()
            image.close()


# ============================================================================
# 目标格式的色彩模式准备
# ============================================================================


def prepare_for_format(img: Image.Image, target_format: str) -> Image.Image:
    """为目标格式准备图片

    Args:
        img: PIL图片对象
        target_format: 目标格式（标准名称）

    Returns:
        Image.Image: 处理后的图片对象，可能就是传入的对象
    """
    match target_format:
        case "JPEG":
            return _prepare_for_jpeg(img)
        case "PNG":
            return _prepare_for_png(img)
        case "WEBP" | "AVIF":
            return _prepare_for_modern(img)
        case "GIF":
            return _prepare_for_gif(img)
        case _:
            return img


def _prepare_for_jpeg(img: Image.Image) -> Image.Image:
    """JPEG不支持透明度，透明像素合成到白色背景上"""
    if img.mode == "P":
        if "transparency" not in img.info:
            return img.convert("RGB")
        img = img.convert("RGBA")

    if img.mode in ("RGBA", "LA", "PA"):
        rgba = img.convert("RGBA") if img.mode != "RGBA" else img
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background

    # CMYK 保持原样，Pillow 可以直接写入 CMYK JPEG
    if img.mode in ("RGB", "L", "CMYK"):
        return img

    return img.convert("RGB")


def _prepare_for_png(img: Image.Image) -> Image.Image:
    """PNG支持多种色彩模式，仅转换 PNG 无法表示的模式"""
    if img.mode == "CMYK":
        return img.convert("RGB")
    if img.mode in ("1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"):
        return img
    return img.convert("RGBA")


def _prepare_for_modern(img: Image.Image) -> Image.Image:
    """WebP/AVIF 只接受 RGB 和 RGBA"""
    if img.mode == "P":
        if "transparency" in img.info:
            return img.convert("RGBA")
        return img.convert("RGB")
    if img.mode in ("LA", "PA"):
        return img.convert("RGBA")
    if img.mode in ("RGB", "RGBA"):
        return img
    return img.convert("RGB")


def _prepare_for_gif(img: Image.Image) -> Image.Image:
    """GIF 由 Pillow 在保存时量化为调色板"""
    if img.mode in ("P", "L", "RGB", "RGBA"):
        return img
    if img.mode in ("LA", "PA"):
        return img.convert("RGBA")
    return img.convert("RGB")


# ============================================================================
# 各格式的保存参数
# ============================================================================


def get_save_parameters(format_name: str, quality: int | None) -> dict[str, Any]:
    """获取保存参数

    Args:
        format_name: 目标格式（标准名称）
        quality: 有损格式为 1-100 的质量值，PNG 为 0-9 的压缩级别

    Returns:
        dict: 传给 Image.save 的参数（不包含 format）
    """
    match format_name:
        case "JPEG":
            return get_jpeg_params(quality)
        case "PNG":
            return get_png_params(quality)
        case "WEBP":
            return get_webp_params(quality)
        case "AVIF":
            return get_avif_params(quality)
        case _:
            # GIF 没有质量参数
            return {}


def _clamp_quality(quality: int | None, default: int = 85) -> int:
    return max(1, min(100, quality if quality is not None else default))


def get_jpeg_params(quality: int | None) -> dict[str, Any]:
    """获取JPEG压缩参数

    - optimize: 额外处理以找到最优 Huffman 表
    - subsampling: 高质量使用 4:2:2，其余使用 4:2:0
    """
    jpeg_quality = _clamp_quality(quality)

    params: dict[str, Any] = {
        "quality": jpeg_quality,
        "optimize": True,
    }

    if jpeg_quality >= 85:
        params["subsampling"] = 1  # "4:2:2"
    else:
        params["subsampling"] = 2  # "4:2:0"

    return params


def get_png_params(level: int | None) -> dict[str, Any]:
    """获取PNG压缩参数

    PNG 是无损格式，级别只影响文件大小和编码时间。
    不设置 optimize，否则 Pillow 会把 compress_level 强制为 9。
    """
    compress_level = max(0, min(9, level if level is not None else 6))
    return {"compress_level": compress_level}


def get_webp_params(quality: int | None) -> dict[str, Any]:
    """获取WebP压缩参数

    - method: 0=快速，6=最慢但最佳压缩
    - alpha_quality: 透明通道质量，100为无损
    """
    webp_quality = _clamp_quality(quality)
    params: dict[str, Any] = {
        "quality": webp_quality,
        "method": 6,
    }

    if webp_quality >= 85:
        params["alpha_quality"] = 100
    elif webp_quality >= 70:
        params["alpha_quality"] = min(100, webp_quality + 10)
    else:
        params["alpha_quality"] = webp_quality

    return params


def get_avif_params(quality: int | None) -> dict[str, Any]:
    """获取AVIF压缩参数，速度参数随质量调整 (0=最慢最佳, 10=最快)"""
    avif_quality = _clamp_quality(quality)
    params: dict[str, Any] = {"quality": avif_quality}

    if avif_quality >= 90:
        params["speed"] = 2
    elif avif_quality >= 70:
        params["speed"] = 4
    else:
        params["speed"] = 6

    if avif_quality >= 95:
        params["subsampling"] = "4:4:4"
    elif avif_quality >= 80:
        params["subsampling"] = "4:2:2"
    else:
        params["subsampling"] = "4:2:0"

    return params
