"""元数据存储测试。"""

from datetime import datetime
from pathlib import Path

import pytest

from kafunel_optimizer.config import AppConfig
from kafunel_optimizer.models import PersistedOptimizationRecord
from kafunel_optimizer.optimizer import create_metadata_store
from kafunel_optimizer.storage import (
    InMemoryMetadataStore,
    JsonFileMetadataStore,
    StoredImageMetadata,
)


def _record(original: int, new: int) -> PersistedOptimizationRecord:
    return PersistedOptimizationRecord(
        original_size=original,
        new_size=new,
        savings_bytes=original - new,
        savings_percent=round((original - new) / original * 100, 2),
        optimized_timestamp=datetime(2024, 5, 1, 12, 30),
    )


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path: Path):
    if request.param == "memory":
        return InMemoryMetadataStore()
    return JsonFileMetadataStore(tmp_path / "meta" / "store.json")


class TestMetadataStore:
    """两种存储的共同行为"""

    def test_empty(self, store):
        assert store.get("a.jpg") is None
        assert store.get_record("a.jpg") is None
        assert not store.is_optimized("a.jpg")
        assert store.get_optimized_date("a.jpg") is None

    def test_record_overwritten(self, store):
        """同一标识只保留最近一次记录"""
        store.save_record("a.jpg", _record(1000, 800))
        store.save_record("a.jpg", _record(800, 700))

        record = store.get_record("a.jpg")
        assert record is not None
        assert record.original_size == 800
        assert record.new_size == 700

    def test_mark_optimized_keeps_record(self, store):
        store.save_record("a.jpg", _record(1000, 800))
        store.mark_optimized("a.jpg", datetime(2024, 5, 2))

        assert store.is_optimized("a.jpg")
        assert store.get_optimized_date("a.jpg") == datetime(2024, 5, 2)
        assert store.get_record("a.jpg").savings_bytes == 200

    def test_delete(self, store):
        store.put("a.jpg", StoredImageMetadata(optimized=True))

        assert store.delete("a.jpg")
        assert not store.delete("a.jpg")
        assert store.get("a.jpg") is None


class TestJsonFileMetadataStore:
    """JSON 文件存储测试"""

    def test_persists_across_instances(self, tmp_path: Path):
        file_path = tmp_path / "store.json"
        first = JsonFileMetadataStore(file_path)
        first.save_record("uploads/a.jpg", _record(2048, 1024))
        first.mark_optimized("uploads/a.jpg", datetime(2024, 5, 2, 8, 0))

        second = JsonFileMetadataStore(file_path)

        assert second.is_optimized("uploads/a.jpg")
        assert second.get_record("uploads/a.jpg") == _record(2048, 1024)
        assert second.get_optimized_date("uploads/a.jpg") == datetime(2024, 5, 2, 8, 0)
        assert not file_path.with_name("store.json.tmp").exists()

    def test_invalid_file_starts_empty(self, tmp_path: Path):
        file_path = tmp_path / "store.json"
        file_path.write_text("{not json")

        store = JsonFileMetadataStore(file_path)
        assert store.get("a.jpg") is None

        store.mark_optimized("a.jpg", datetime(2024, 1, 1))
        assert JsonFileMetadataStore(file_path).is_optimized("a.jpg")


class TestCreateMetadataStore:
    def test_defaults_to_memory(self, monkeypatch):
        monkeypatch.delenv("KAFUNEL_METADATA_FILE", raising=False)
        assert isinstance(create_metadata_store(AppConfig()), InMemoryMetadataStore)

    def test_json_file_from_environment(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("KAFUNEL_METADATA_FILE", str(tmp_path / "meta.json"))

        store = create_metadata_store(AppConfig())

        assert isinstance(store, JsonFileMetadataStore)
        assert store.file_path == tmp_path / "meta.json"
