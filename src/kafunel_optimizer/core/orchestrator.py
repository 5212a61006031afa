"""优化编排模块。

按 解析计划 → 缩放 → 远程或本地优化 → 格式转换 的顺序处理单个文件，
返回指向临时文件的优化结果。编排器从不修改原文件。
"""

from collections.abc import Callable
from pathlib import Path

from ..exceptions import (
    EncodeFailureError,
    ErrorHandler,
    OptimizationError,
    SourceNotFoundError,
    UnsupportedInputFormatError,
    UnsupportedOutputFormatError,
)
from ..models.constants import (
    get_file_extension,
    is_same_format,
    supports_input_format,
    supports_output_format,
)
from ..models.optimization_config import OptimizationRequest, ProcessingPlan
from ..models.optimization_result import OptimizationResult
from ..utils.cleanup_helpers import TempFileManager
from ..utils.file_helpers import get_file_size, get_image_dimensions
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .codec import RasterCodec
from .converter import FormatConverter
from .remote import RemoteDelegateClient
from .resizer import Resizer
from .strategy import (
    LocalOptimizeStrategy,
    OptimizationStrategy,
    RemoteOptimizeStrategy,
    StrategyOutcome,
    StrategyStatus,
)


logger = get_logger()

RemoteClientFactory = Callable[[str], RemoteDelegateClient]


class OptimizationOrchestrator:
    """单个文件的优化编排器

    Args:
        codec: 编解码适配器
        temp_dir: 共享的临时目录
        remote_client_factory: 根据 API 密钥创建远程客户端
    """

    def __init__(
        self,
        codec: RasterCodec,
        temp_dir: Path,
        remote_client_factory: RemoteClientFactory | None = None,
    ):
        self.codec = codec
        self.temp_dir = Path(temp_dir)
        self.resizer = Resizer(codec)
        self.converter = FormatConverter(codec)
        self.local_strategy = LocalOptimizeStrategy(codec)
        self.remote_client_factory = remote_client_factory or (
            lambda api_key: RemoteDelegateClient(api_key, self.temp_dir)
        )

    def build_strategies(self, api_key: str) -> list[OptimizationStrategy]:
        """按尝试顺序构建策略列表，配置了密钥时远程优先"""
        strategies: list[OptimizationStrategy] = []
        if api_key:
            strategies.append(RemoteOptimizeStrategy(self.remote_client_factory(api_key)))
        strategies.append(self.local_strategy)
        return strategies

    def run(self, request: OptimizationRequest, api_key: str = "") -> OptimizationResult:
        """执行一次优化

        成功时 optimized_path 指向临时目录中的最终文件，所有权交给调用方；
        其他中间文件在返回前全部删除。失败时不留下任何临时文件。
        """
        source = request.source_path
        try:
            with TempFileManager(self.temp_dir) as temp_files:
                return self._run(request, api_key.strip(), temp_files)
        except OptimizationError as e:
            return ErrorHandler.handle_optimization_error(e, source, "图像优化")

    def _run(
        self, request: OptimizationRequest, api_key: str, temp_files: TempFileManager
    ) -> OptimizationResult:
        source = request.source_path
        self._validate_source(source)
        original_size = get_file_size(source)

        plan = ProcessingPlan.resolve(request, get_image_dimensions(source))
        self._validate_target(plan, source)

        current = source
        if plan.needs_resize and request.resize is not None:
            current = self.resizer.resize(source, request.resize, temp_files)
        was_resized = current != source

        outcome = self._run_strategies(current, plan, request, api_key, temp_files)
        optimized: Path = outcome.output_path  # type: ignore[assignment]

        if not is_same_format(get_file_extension(optimized), plan.target_format):
            converted = self.converter.convert(optimized, plan.target_format, temp_files)
            temp_files.discard(optimized)
            optimized = converted

        final_path = temp_files.release(optimized)
        result = OptimizationResult(
            success=True,
            source_path=source,
            optimized_path=final_path,
            original_size=original_size,
            new_size=get_file_size(final_path),
            target_format=plan.target_format,
            quality_used=plan.quality_for(plan.target_format),
            was_resized=was_resized,
            strategy_used=outcome.strategy,
        )
        logger.info(MessageFormatter.optimization_done(source, result.get_summary()))
        return result

    def _run_strategies(
        self,
        input_path: Path,
        plan: ProcessingPlan,
        request: OptimizationRequest,
        api_key: str,
        temp_files: TempFileManager,
    ) -> StrategyOutcome:
        """依次尝试各策略，只有 FATAL 会终止"""
        last_error: OptimizationError | None = None
        for strategy in self.build_strategies(api_key):
            outcome = strategy.attempt(input_path, plan, request, temp_files)
            match outcome.status:
                case StrategyStatus.OK:
                    return outcome
                case StrategyStatus.RECOVERABLE:
                    last_error = outcome.error
                    continue
                case StrategyStatus.FATAL:
                    raise outcome.error or EncodeFailureError(
                        f"策略 {outcome.strategy} 执行失败", input_path
                    )

        raise EncodeFailureError(
            f"没有可用的优化策略: {last_error.message if last_error else '未知'}",
            input_path,
        )

    @staticmethod
    def _validate_source(source: Path) -> None:
        if not source.is_file():
            raise SourceNotFoundError(MessageFormatter.file_not_found(source), source)

        extension = get_file_extension(source)
        if not supports_input_format(extension):
            raise UnsupportedInputFormatError(
                MessageFormatter.unsupported_format(source, extension or "UNKNOWN"),
                source,
            )

    @staticmethod
    def _validate_target(plan: ProcessingPlan, source: Path) -> None:
        """目标格式必须在输出格式表中，保持源格式（如 GIF）除外"""
        if supports_output_format(plan.target_format):
            return
        if is_same_format(plan.target_format, plan.source_format):
            return
        raise UnsupportedOutputFormatError(
            MessageFormatter.unsupported_format(source, plan.target_format), source
        )
