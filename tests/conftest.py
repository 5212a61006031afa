"""测试配置文件。

提供测试所需的fixtures，测试图片全部用 Pillow 现场生成。
"""

import tempfile
from pathlib import Path
from unittest import mock

import pytest
from PIL import Image, ImageDraw

from kafunel_optimizer.core.codec import RasterCodec
from kafunel_optimizer.models import Configuration
from kafunel_optimizer.optimizer import ImageOptimizer
from kafunel_optimizer.storage import InMemoryMetadataStore


def create_noise_image(width: int, height: int) -> Image.Image:
    """生成 RGB 噪声图片，难以压缩"""
    channels = [Image.effect_noise((width, height), 64) for _ in range(3)]
    return Image.merge("RGB", channels)


def create_photo_like_image(width: int, height: int) -> Image.Image:
    """生成带渐变和色块的图片"""
    img = Image.new("RGB", (width, height), color="white")
    draw = ImageDraw.Draw(img)
    for y in range(height):
        shade = int(255 * y / max(1, height - 1))
        draw.line([(0, y), (width, y)], fill=(shade, 128, 255 - shade))
    for i in range(30):
        x, y = (i * 37) % width, (i * 23) % height
        color = (i * 5 % 256, i * 7 % 256, i * 11 % 256)
        draw.rectangle([x, y, x + width // 8, y + height // 8], fill=color)
    return img


def make_response(
    status_code: int = 200,
    json_data: object = None,
    json_error: bool = False,
    content: bytes = b"",
) -> mock.Mock:
    """构造模拟的 requests.Response"""
    response = mock.Mock()
    response.status_code = status_code
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = json_data
    response.iter_content.return_value = [content] if content else []
    return response


@pytest.fixture
def upload_root():
    """上传根目录fixture"""
    with tempfile.TemporaryDirectory() as temp_dir:
        root = Path(temp_dir) / "uploads"
        root.mkdir()
        yield root


@pytest.fixture
def temp_dir(upload_root: Path) -> Path:
    """共享的临时目录"""
    return upload_root / "kafunel_temp"


@pytest.fixture(scope="session")
def codec() -> RasterCodec:
    """编解码适配器，能力探测只做一次"""
    return RasterCodec()


@pytest.fixture
def large_jpeg(upload_root: Path) -> Path:
    """3000x1500 的高质量 JPEG"""
    path = upload_root / "large.jpg"
    create_noise_image(3000, 1500).save(path, "JPEG", quality=100)
    return path


@pytest.fixture
def photo_jpeg(upload_root: Path) -> Path:
    """800x600 的高质量 JPEG"""
    path = upload_root / "photo.jpg"
    create_photo_like_image(800, 600).save(path, "JPEG", quality=98)
    return path


@pytest.fixture
def transparent_png(upload_root: Path) -> Path:
    """左半透明、右半不透明的 800x400 PNG"""
    path = upload_root / "transparent.png"
    img = Image.new("RGBA", (800, 400), color=(0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.rectangle([400, 0, 799, 399], fill=(220, 40, 40, 255))
    img.save(path, "PNG")
    return path


@pytest.fixture
def small_png(upload_root: Path) -> Path:
    """200x150 的 PNG"""
    path = upload_root / "small.png"
    create_photo_like_image(200, 150).save(path, "PNG")
    return path


@pytest.fixture
def metadata_store() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


@pytest.fixture
def make_optimizer(temp_dir: Path, codec: RasterCodec, metadata_store):
    """按配置创建优化器"""

    def _make(**settings) -> ImageOptimizer:
        remote_client_factory = settings.pop("remote_client_factory", None)
        return ImageOptimizer(
            configuration=Configuration(**settings),
            metadata_store=metadata_store,
            temp_dir=temp_dir,
            codec=codec,
            remote_client_factory=remote_client_factory,
        )

    return _make


def list_temp_files(temp_dir: Path) -> list[Path]:
    """临时目录中残留的文件"""
    if not temp_dir.exists():
        return []
    return sorted(p for p in temp_dir.iterdir() if p.is_file())
