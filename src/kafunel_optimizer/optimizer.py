"""图片优化器接口。

按图片标识执行完整的优化流程：编排优化、提交替换原文件、写入元数据。
同一标识的两次优化不会交错执行。
"""

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from .config import AppConfig, get_config
from .core.codec import RasterCodec
from .core.orchestrator import OptimizationOrchestrator, RemoteClientFactory
from .core.remote import RemoteDelegateClient
from .core.transaction import FileTransactionManager
from .engine.config import ConfigBuilder
from .exceptions import ErrorHandler, OptimizationError
from .models import (
    Configuration,
    OptimizationResult,
    OptimizationStatus,
    format_size,
)
from .storage import InMemoryMetadataStore, JsonFileMetadataStore, MetadataStore
from .utils.cleanup_helpers import ensure_directory, remove_file
from .utils.locks import KeyedLock
from .utils.logging_helpers import get_logger


logger = get_logger()

PathResolver = Callable[[str], Path]


def create_metadata_store(app_config: AppConfig | None = None) -> MetadataStore:
    """根据配置创建元数据存储，未配置文件时使用内存存储"""
    app_config = app_config or get_config()
    if app_config.storage.METADATA_FILE:
        return JsonFileMetadataStore(app_config.storage.METADATA_FILE)
    return InMemoryMetadataStore()


class ImageOptimizer:
    """图片优化器

    Args:
        configuration: 优化配置，None 时从全局应用配置构建
        metadata_store: 元数据存储
        path_resolver: 图片标识到文件路径的映射，默认标识即路径
        temp_dir: 临时目录，默认为 <upload_root>/kafunel_temp
        codec: 编解码适配器
        remote_client_factory: 根据 API 密钥创建远程客户端
        keyed_lock: 按标识加锁，多个优化器可以共享
    """

    def __init__(
        self,
        configuration: Configuration | None = None,
        metadata_store: MetadataStore | None = None,
        path_resolver: PathResolver | None = None,
        temp_dir: str | Path | None = None,
        codec: RasterCodec | None = None,
        remote_client_factory: RemoteClientFactory | None = None,
        keyed_lock: KeyedLock | None = None,
    ):
        app_config = get_config()
        self.configuration = configuration or ConfigBuilder().from_app_config(app_config)
        self.metadata_store = metadata_store or create_metadata_store(app_config)
        self.path_resolver = path_resolver or Path
        self.temp_dir = ensure_directory(
            Path(temp_dir) if temp_dir else app_config.storage.temp_dir
        )
        self.codec = codec or RasterCodec()
        self.keyed_lock = keyed_lock or KeyedLock()
        self.transaction_manager = FileTransactionManager()

        if remote_client_factory is None:
            remote = app_config.remote

            def remote_client_factory(api_key: str) -> RemoteDelegateClient:
                return RemoteDelegateClient(
                    api_key,
                    self.temp_dir,
                    base_url=remote.API_BASE_URL,
                    timeout=remote.TIMEOUT_SECONDS,
                )

        self.orchestrator = OptimizationOrchestrator(
            self.codec, self.temp_dir, remote_client_factory
        )

        logger.debug(f"初始化图片优化器，临时目录: {self.temp_dir}")

    def optimize(self, identity: str) -> OptimizationResult:
        """优化指定标识的图片

        成功时原文件已被替换，committed_path 指向它，并写入优化记录；
        失败时原文件保持不变。

        Examples:
            >>> optimizer = ImageOptimizer()
            >>> result = optimizer.optimize("uploads/photo.jpg")
            >>> print(result.get_summary())
        """
        identity = str(identity)
        with self.keyed_lock.hold(identity):
            source = Path(self.path_resolver(identity))
            request = self.configuration.to_request(source)
            result = self.orchestrator.run(request, self.configuration.api_key)
            if not result.success or result.optimized_path is None:
                return result

            try:
                commit = self.transaction_manager.commit(source, result.optimized_path)
            except OptimizationError as e:
                remove_file(result.optimized_path)
                return ErrorHandler.handle_optimization_error(e, source, "提交优化结果")

            committed = result.model_copy(
                update={
                    "optimized_path": None,
                    "committed_path": commit.committed_path,
                    "new_size": commit.new_size,
                }
            )

            optimized_date = datetime.now()
            self.metadata_store.save_record(identity, committed.to_record(optimized_date))
            self.metadata_store.mark_optimized(identity, optimized_date)

            return committed

    def get_optimization_status(self, identity: str) -> OptimizationStatus:
        """查询图片的优化状态"""
        identity = str(identity)
        metadata = self.metadata_store.get(identity)

        if metadata is None or not metadata.optimized:
            return OptimizationStatus(status="not_optimized", message="尚未优化")

        record = metadata.record
        if record is None:
            return OptimizationStatus(
                status="optimized",
                message="已优化",
                optimized_date=metadata.optimized_date,
            )

        return OptimizationStatus(
            status="optimized",
            message=(
                f"已优化: 节省 {format_size(record.savings_bytes)} "
                f"({record.savings_percent}%)"
            ),
            record=record,
            optimized_date=metadata.optimized_date,
        )
