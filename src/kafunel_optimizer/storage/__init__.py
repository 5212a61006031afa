"""元数据存储包。"""

from .metadata_store import (
    InMemoryMetadataStore,
    JsonFileMetadataStore,
    MetadataStore,
    StoredImageMetadata,
)


__all__ = [
    "InMemoryMetadataStore",
    "JsonFileMetadataStore",
    "MetadataStore",
    "StoredImageMetadata",
]
