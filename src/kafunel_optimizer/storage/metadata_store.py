"""优化元数据存储模块。

按图片标识保存最近一次的优化记录、optimized 标记和优化日期。
同一标识的记录会被覆盖，不保留历史。
"""

import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter

from ..models.optimization_result import PersistedOptimizationRecord
from ..utils.cleanup_helpers import ensure_directory, remove_file
from ..utils.logging_helpers import get_logger


logger = get_logger()


class StoredImageMetadata(BaseModel):
    """单个图片标识下保存的全部元数据"""

    record: PersistedOptimizationRecord | None = Field(None, description="优化记录")
    optimized: bool = Field(False, description="是否已优化")
    optimized_date: datetime | None = Field(None, description="优化日期")


class MetadataStore(ABC):
    """元数据存储接口，由调用方持有"""

    @abstractmethod
    def get(self, identity: str) -> StoredImageMetadata | None:
        """读取元数据，不存在时返回 None"""

    @abstractmethod
    def put(self, identity: str, metadata: StoredImageMetadata) -> None:
        """写入元数据（覆盖）"""

    @abstractmethod
    def delete(self, identity: str) -> bool:
        """删除元数据，返回是否存在"""

    def get_record(self, identity: str) -> PersistedOptimizationRecord | None:
        metadata = self.get(identity)
        return metadata.record if metadata else None

    def save_record(self, identity: str, record: PersistedOptimizationRecord) -> None:
        current = self.get(identity) or StoredImageMetadata()
        self.put(identity, current.model_copy(update={"record": record}))

    def mark_optimized(self, identity: str, optimized_date: datetime) -> None:
        current = self.get(identity) or StoredImageMetadata()
        self.put(
            identity,
            current.model_copy(
                update={"optimized": True, "optimized_date": optimized_date}
            ),
        )

    def is_optimized(self, identity: str) -> bool:
        metadata = self.get(identity)
        return bool(metadata and metadata.optimized)

    def get_optimized_date(self, identity: str) -> datetime | None:
        metadata = self.get(identity)
        return metadata.optimized_date if metadata else None


class InMemoryMetadataStore(MetadataStore):
    """内存存储，进程退出即丢失"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: dict[str, StoredImageMetadata] = {}

    def get(self, identity: str) -> StoredImageMetadata | None:
        with self._lock:
            return self._items.get(identity)

    def put(self, identity: str, metadata: StoredImageMetadata) -> None:
        with self._lock:
            self._items[identity] = metadata

    def delete(self, identity: str) -> bool:
        with self._lock:
            return self._items.pop(identity, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


_STORE_ADAPTER = TypeAdapter(dict[str, StoredImageMetadata])


class JsonFileMetadataStore(MetadataStore):
    """JSON 文件存储

    每次写入都会重写整个文件：先写暂存文件，再原子替换。
    """

    def __init__(self, file_path: str | Path):
        self.file_path = Path(file_path)
        self._lock = threading.Lock()
        self._items = self._load()

    def _load(self) -> dict[str, StoredImageMetadata]:
        if not self.file_path.exists():
            return {}
        try:
            return _STORE_ADAPTER.validate_json(self.file_path.read_bytes())
        except ValueError as e:
            logger.warning(f"元数据文件无效，将重新创建 {self.file_path}: {e}")
            return {}

    def _flush(self) -> None:
        ensure_directory(self.file_path.parent)
        staging = self.file_path.with_name(self.file_path.name + ".tmp")
        try:
            staging.write_bytes(_STORE_ADAPTER.dump_json(self._items, indent=2))
            os.replace(staging, self.file_path)
        except OSError:
            remove_file(staging)
            raise

    def get(self, identity: str) -> StoredImageMetadata | None:
        with self._lock:
            return self._items.get(identity)

    def put(self, identity: str, metadata: StoredImageMetadata) -> None:
        with self._lock:
            self._items[identity] = metadata
            self._flush()

    def delete(self, identity: str) -> bool:
        with self._lock:
            existed = self._items.pop(identity, None) is not None
            if existed:
                self._flush()
            return existed
