"""图片优化器端到端测试。

覆盖完整流程：缩放、优化、格式转换、提交和元数据记录。
"""

import threading
from datetime import datetime
from pathlib import Path
from unittest import mock

import pytest
from PIL import ExifTags, Image

from kafunel_optimizer.core.codec import CodecCapabilities, RasterCodec
from kafunel_optimizer.models import Configuration, ErrorKind
from kafunel_optimizer.optimizer import ImageOptimizer
from kafunel_optimizer.utils.file_helpers import get_image_dimensions
from tests.conftest import create_photo_like_image, list_temp_files


class TestImageOptimizer:
    """单图优化测试"""

    def test_resize_and_optimize_large_jpeg(
        self, make_optimizer, large_jpeg: Path, temp_dir: Path, metadata_store
    ):
        """大图被缩放到边界内并替换原文件"""
        original_size = large_jpeg.stat().st_size
        optimizer = make_optimizer(
            resize_enabled=True, resize_width=1920, resize_height=1080
        )

        result = optimizer.optimize(str(large_jpeg))

        assert result.success, result.error
        assert result.committed_path == large_jpeg
        assert result.optimized_path is None
        assert result.was_resized
        assert result.quality_used == 85
        assert result.strategy_used == "local"
        assert result.original_size == original_size
        assert result.new_size == large_jpeg.stat().st_size
        assert result.savings_bytes > 0

        with Image.open(large_jpeg) as img:
            assert img.size == (1920, 960)
            assert img.format == "JPEG"

        assert list_temp_files(temp_dir) == []
        assert not large_jpeg.with_name("large.jpg.bak").exists()

        record = metadata_store.get_record(str(large_jpeg))
        assert record is not None
        assert record.original_size == original_size
        assert record.new_size == result.new_size
        assert metadata_store.is_optimized(str(large_jpeg))
        assert metadata_store.get_optimized_date(str(large_jpeg)) is not None

    def test_status_messages(self, make_optimizer, photo_jpeg: Path):
        optimizer = make_optimizer()
        identity = str(photo_jpeg)

        status = optimizer.get_optimization_status(identity)
        assert status.status == "not_optimized"
        assert status.message == "尚未优化"

        optimizer.optimize(identity)

        status = optimizer.get_optimization_status(identity)
        assert status.status == "optimized"
        assert status.message.startswith("已优化: 节省 ")
        assert status.message.endswith("%)")
        assert status.record is not None

    def test_status_without_record(self, make_optimizer, metadata_store):
        metadata_store.mark_optimized("legacy.jpg", datetime(2024, 1, 1))
        status = make_optimizer().get_optimization_status("legacy.jpg")

        assert status.status == "optimized"
        assert status.message == "已优化"
        assert status.optimized_date == datetime(2024, 1, 1)

    def test_webp_target_encoded_directly(
        self, make_optimizer, codec: RasterCodec, photo_jpeg: Path, temp_dir: Path
    ):
        """本地优化直接编码为目标格式，不再单独转换"""
        if not codec.supports("webp"):
            pytest.skip("当前 Pillow 不支持 WebP 编码")

        optimizer = make_optimizer(output_format="webp")
        converter = optimizer.orchestrator.converter

        with mock.patch.object(converter, "convert", wraps=converter.convert) as convert:
            result = optimizer.optimize(str(photo_jpeg))

        assert result.success, result.error
        convert.assert_not_called()
        assert result.target_format == "webp"
        assert result.committed_path == photo_jpeg
        with Image.open(photo_jpeg) as img:
            assert img.format == "WEBP"
        assert list_temp_files(temp_dir) == []

    def test_repeated_optimization_is_stable(self, make_optimizer, photo_jpeg: Path):
        """重复优化不会让文件变大"""
        optimizer = make_optimizer()

        first = optimizer.optimize(str(photo_jpeg))
        second = optimizer.optimize(str(photo_jpeg))

        assert first.success and second.success
        assert second.original_size == first.new_size
        assert second.new_size <= first.new_size
        with Image.open(photo_jpeg) as img:
            img.load()
            assert img.size == (800, 600)

    def test_resize_uses_exif_oriented_size(
        self, make_optimizer, upload_root: Path, temp_dir: Path
    ):
        """带 EXIF 旋转标记的图片按旋转后的尺寸判断是否缩放"""
        path = upload_root / "rotated.jpg"
        exif = Image.Exif()
        exif[ExifTags.Base.Orientation] = 6
        create_photo_like_image(1900, 1000).save(path, "JPEG", quality=95, exif=exif)

        assert get_image_dimensions(path) == (1000, 1900)

        optimizer = make_optimizer(
            resize_enabled=True, resize_width=1920, resize_height=1080
        )
        result = optimizer.optimize(str(path))

        assert result.success, result.error
        assert result.was_resized
        with Image.open(path) as img:
            assert img.size == (568, 1080)
        assert list_temp_files(temp_dir) == []

    def test_gif_source_kept_as_gif(self, make_optimizer, upload_root: Path):
        path = upload_root / "anim.gif"
        Image.new("P", (64, 64), 3).save(path, "GIF")

        result = make_optimizer().optimize(str(path))

        assert result.success, result.error
        assert result.target_format == "gif"
        with Image.open(path) as img:
            assert img.format == "GIF"

    def test_path_resolver(
        self, upload_root: Path, temp_dir: Path, codec: RasterCodec, photo_jpeg: Path
    ):
        """图片标识通过解析器映射到文件路径"""
        optimizer = ImageOptimizer(
            configuration=Configuration(),
            path_resolver=lambda identity: upload_root / identity,
            temp_dir=temp_dir,
            codec=codec,
        )

        result = optimizer.optimize("photo.jpg")

        assert result.success, result.error
        assert result.committed_path == photo_jpeg
        assert optimizer.metadata_store.is_optimized("photo.jpg")


class TestOptimizationErrors:
    """失败路径测试：原文件不变、不写元数据、不留临时文件"""

    def _assert_failed(self, result, kind: ErrorKind, path: Path, before, temp_dir, store):
        assert not result.success
        assert result.error_kind == kind
        assert result.optimized_path is None
        assert result.committed_path is None
        if before is not None:
            assert path.read_bytes() == before
        assert not store.is_optimized(str(path))
        assert list_temp_files(temp_dir) == []

    def test_missing_file(self, make_optimizer, upload_root: Path, temp_dir: Path, metadata_store):
        path = upload_root / "missing.jpg"
        result = make_optimizer().optimize(str(path))

        self._assert_failed(
            result, ErrorKind.FILE_NOT_FOUND, path, None, temp_dir, metadata_store
        )
        assert result.original_size == 0

    def test_unsupported_input_extension(
        self, make_optimizer, upload_root: Path, temp_dir: Path, metadata_store
    ):
        path = upload_root / "image.bmp"
        Image.new("RGB", (20, 20), "blue").save(path, "BMP")
        before = path.read_bytes()

        result = make_optimizer().optimize(str(path))

        self._assert_failed(
            result, ErrorKind.UNSUPPORTED_INPUT_FORMAT, path, before, temp_dir, metadata_store
        )

    def test_corrupt_jpeg(
        self, make_optimizer, upload_root: Path, temp_dir: Path, metadata_store
    ):
        path = upload_root / "corrupt.jpg"
        path.write_bytes(b"\xff\xd8\xff\xe0" + b"garbage" * 50)
        before = path.read_bytes()

        result = make_optimizer().optimize(str(path))

        self._assert_failed(
            result, ErrorKind.DECODE_FAILURE, path, before, temp_dir, metadata_store
        )

    def test_gif_target_from_png(
        self, make_optimizer, small_png: Path, temp_dir: Path, metadata_store
    ):
        """GIF 只能保持原格式输出"""
        before = small_png.read_bytes()

        result = make_optimizer(output_format="gif").optimize(str(small_png))

        self._assert_failed(
            result,
            ErrorKind.UNSUPPORTED_OUTPUT_FORMAT,
            small_png,
            before,
            temp_dir,
            metadata_store,
        )

    def test_missing_encoder_capability(
        self, photo_jpeg: Path, temp_dir: Path, metadata_store
    ):
        codec = RasterCodec(
            CodecCapabilities(decodable={"JPEG", "PNG"}, encodable={"JPEG", "PNG"})
        )
        optimizer = ImageOptimizer(
            configuration=Configuration(output_format="avif"),
            metadata_store=metadata_store,
            temp_dir=temp_dir,
            codec=codec,
        )
        before = photo_jpeg.read_bytes()

        result = optimizer.optimize(str(photo_jpeg))

        self._assert_failed(
            result,
            ErrorKind.UNSUPPORTED_OUTPUT_FORMAT,
            photo_jpeg,
            before,
            temp_dir,
            metadata_store,
        )

    def test_commit_failure(
        self, make_optimizer, photo_jpeg: Path, temp_dir: Path, metadata_store, monkeypatch
    ):
        """提交失败时原文件保持不变，且不记录为已优化"""
        before = photo_jpeg.read_bytes()

        def failing_replace(src, dst):
            raise OSError("device busy")

        monkeypatch.setattr(
            "kafunel_optimizer.core.transaction.os.replace", failing_replace
        )

        result = make_optimizer().optimize(str(photo_jpeg))

        self._assert_failed(
            result, ErrorKind.COMMIT_FAILURE, photo_jpeg, before, temp_dir, metadata_store
        )
        assert metadata_store.get_record(str(photo_jpeg)) is None
        assert not photo_jpeg.with_name("photo.jpg.bak").exists()


class TestConcurrentOptimization:
    """同一标识的并发优化测试"""

    def test_same_identity_is_serialized(self, make_optimizer, photo_jpeg: Path, temp_dir: Path):
        optimizer = make_optimizer()
        active = 0
        overlaps = []
        guard = threading.Lock()
        run = optimizer.orchestrator.run

        def tracking_run(*args, **kwargs):
            nonlocal active
            with guard:
                active += 1
                overlaps.append(active)
            try:
                return run(*args, **kwargs)
            finally:
                with guard:
                    active -= 1

        results = []
        with mock.patch.object(optimizer.orchestrator, "run", side_effect=tracking_run):
            threads = [
                threading.Thread(
                    target=lambda: results.append(optimizer.optimize(str(photo_jpeg)))
                )
                for _ in range(3)
            ]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert max(overlaps) == 1
        assert len(results) == 3
        assert all(r.success for r in results)
        assert list_temp_files(temp_dir) == []
        with Image.open(photo_jpeg) as img:
            img.load()
            assert img.format == "JPEG"
