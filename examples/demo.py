#!/usr/bin/env python3
"""图片优化演示脚本。

在临时目录中生成几张测试图片，演示：
- 单图优化（缩放 + 本地优化 + 原子替换）
- 转换为 WebP
- 批量优化和状态查询
"""

import tempfile
from pathlib import Path

from PIL import Image, ImageDraw

from kafunel_optimizer import BatchOptimizer, Configuration, ImageOptimizer
from kafunel_optimizer.storage import InMemoryMetadataStore


def create_test_image(path: Path, size: tuple[int, int], fmt: str) -> Path:
    """创建带渐变的测试图片"""
    img = Image.new("RGB", size, "white")
    draw = ImageDraw.Draw(img)
    width, height = size
    for y in range(height):
        shade = int(255 * y / max(1, height - 1))
        draw.line([(0, y), (width, y)], fill=(shade, 120, 255 - shade))
    if fmt == "JPEG":
        img.save(path, fmt, quality=98)
    else:
        img.save(path, fmt)
    return path


def demo_single(upload_root: Path, store: InMemoryMetadataStore) -> None:
    print("🖼️ 单图优化")
    photo = create_test_image(upload_root / "large.jpg", (3000, 1500), "JPEG")

    optimizer = ImageOptimizer(
        configuration=Configuration(
            resize_enabled=True, resize_width=1920, resize_height=1080
        ),
        metadata_store=store,
        temp_dir=upload_root / "kafunel_temp",
    )
    result = optimizer.optimize(str(photo))
    print(f"  {photo.name}: {result.get_summary()}")

    with Image.open(photo) as img:
        print(f"  新尺寸: {img.size[0]}x{img.size[1]}")


def demo_webp(upload_root: Path, store: InMemoryMetadataStore) -> None:
    print("🔄 转换为 WebP")
    png = create_test_image(upload_root / "banner.png", (1200, 400), "PNG")

    optimizer = ImageOptimizer(
        configuration=Configuration(output_format="webp", compression_level="aggressive"),
        metadata_store=store,
        temp_dir=upload_root / "kafunel_temp",
    )
    result = optimizer.optimize(str(png))
    print(f"  {png.name}: {result.get_summary()}")


def demo_batch(upload_root: Path, store: InMemoryMetadataStore) -> None:
    print("📦 批量优化")
    identities = [
        str(create_test_image(upload_root / f"batch_{i}.jpg", (800, 600), "JPEG"))
        for i in range(3)
    ]
    identities.append(str(upload_root / "missing.jpg"))

    optimizer = ImageOptimizer(metadata_store=store, temp_dir=upload_root / "kafunel_temp")
    batch = BatchOptimizer(optimizer, max_workers=2).optimize_all(identities)
    print(f"  {batch.get_summary()}")
    print(f"  失败: {batch.errors}")

    for identity in identities:
        status = optimizer.get_optimization_status(identity)
        print(f"  {Path(identity).name}: {status.message}")


def main() -> None:
    store = InMemoryMetadataStore()
    with tempfile.TemporaryDirectory() as temp:
        upload_root = Path(temp)
        demo_single(upload_root, store)
        demo_webp(upload_root, store)
        demo_batch(upload_root, store)


if __name__ == "__main__":
    main()
