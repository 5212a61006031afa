"""优化策略模块。

优化步骤建模为按顺序尝试的策略列表，每个策略返回带状态标记的结果：
OK 表示完成，RECOVERABLE 表示交给下一个策略，FATAL 表示终止本次调用。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..exceptions import OptimizationError, RemoteUnavailableError
from ..models.optimization_config import OptimizationRequest, ProcessingPlan
from ..utils.cleanup_helpers import TempFileManager, validate_output_integrity
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .codec import RasterCodec
from .remote import RemoteDelegateClient


logger = get_logger()


class StrategyStatus(str, Enum):
    """策略执行状态"""

    OK = "ok"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


@dataclass(frozen=True)
class StrategyOutcome:
    """策略执行结果"""

    status: StrategyStatus
    strategy: str
    output_path: Path | None = None
    error: OptimizationError | None = None

    @classmethod
    def ok(cls, strategy: str, output_path: Path) -> "StrategyOutcome":
        return cls(StrategyStatus.OK, strategy, output_path=output_path)

    @classmethod
    def recoverable(cls, strategy: str, error: OptimizationError) -> "StrategyOutcome":
        return cls(StrategyStatus.RECOVERABLE, strategy, error=error)

    @classmethod
    def fatal(cls, strategy: str, error: OptimizationError) -> "StrategyOutcome":
        return cls(StrategyStatus.FATAL, strategy, error=error)


class OptimizationStrategy(ABC):
    """优化策略基类"""

    name: str = "base"

    @abstractmethod
    def attempt(
        self,
        input_path: Path,
        plan: ProcessingPlan,
        request: OptimizationRequest,
        temp_files: TempFileManager,
    ) -> StrategyOutcome:
        """尝试优化 input_path，产物登记到 temp_files"""


class RemoteOptimizeStrategy(OptimizationStrategy):
    """委托远程服务优化，失败总是可恢复的"""

    name = "remote"

    def __init__(self, client: RemoteDelegateClient):
        self.client = client

    def attempt(
        self,
        input_path: Path,
        plan: ProcessingPlan,
        request: OptimizationRequest,
        temp_files: TempFileManager,
    ) -> StrategyOutcome:
        del plan
        try:
            result = self.client.optimize_image(
                input_path,
                compression_level=request.compression_level.value,
                output_format=request.output_format.value,
                features=sorted(request.remote_features),
            )
        except RemoteUnavailableError as e:
            logger.warning(MessageFormatter.remote_fallback(input_path, e.message))
            return StrategyOutcome.recoverable(self.name, e)

        temp_files.register_temp_file(result.file_path)
        if not validate_output_integrity(result.file_path):
            temp_files.discard(result.file_path)
            error = RemoteUnavailableError("远程返回的文件无法解码", input_path)
            logger.warning(MessageFormatter.remote_fallback(input_path, error.message))
            return StrategyOutcome.recoverable(self.name, error)

        return StrategyOutcome.ok(self.name, result.file_path)


class LocalOptimizeStrategy(OptimizationStrategy):
    """本地解码后按目标格式和质量直接编码"""

    name = "local"

    def __init__(self, codec: RasterCodec):
        self.codec = codec

    def attempt(
        self,
        input_path: Path,
        plan: ProcessingPlan,
        request: OptimizationRequest,
        temp_files: TempFileManager,
    ) -> StrategyOutcome:
        del request
        output_path = temp_files.new_path(input_path, "optimized", plan.target_format)
        try:
            decoded = self.codec.decode(input_path)
            self.codec.encode(
                decoded,
                output_path,
                plan.canonical_target,
                plan.quality_for(plan.target_format),
            )
        except OptimizationError as e:
            return StrategyOutcome.fatal(self.name, e)

        return StrategyOutcome.ok(self.name, output_path)
