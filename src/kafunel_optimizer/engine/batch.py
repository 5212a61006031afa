"""批量优化模块。

对多张图片逐一调用单图优化，默认顺序执行，也可以按图片并发。
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING

from ..exceptions import ValidationError
from ..models.optimization_result import BatchResult, OptimizationResult
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .concurrent_executor import ConcurrentExecutor


if TYPE_CHECKING:
    from ..optimizer import ImageOptimizer


logger = get_logger()


class BatchOptimizer:
    """批量图片优化器

    重复的标识只处理一次。
    """

    def __init__(self, optimizer: "ImageOptimizer", max_workers: int = 1):
        """初始化批量优化器

        Args:
            optimizer: 单图优化器
            max_workers: 最大并发数，1 表示顺序处理
        """
        if max_workers <= 0:
            raise ValidationError("max_workers 必须大于 0")

        self.optimizer = optimizer
        self.max_workers = max_workers
        self.concurrent_executor = ConcurrentExecutor(max_workers)

    def optimize_all(self, identities: Iterable[str]) -> BatchResult:
        """批量优化

        Returns:
            BatchResult: 成功、失败数量和失败的标识可从结果中读取
        """
        unique = list(dict.fromkeys(str(identity) for identity in identities))
        if not unique:
            return BatchResult(success=True, error=None, results={})

        if self.max_workers == 1 or len(unique) == 1:
            results = self._optimize_sequential(unique)
        else:
            results = self.concurrent_executor.execute_tasks(
                unique, self.optimizer.optimize
            )

        return self._create_batch_result(results)

    def _optimize_sequential(self, identities: list[str]) -> dict[str, OptimizationResult]:
        results: dict[str, OptimizationResult] = {}
        for identity in identities:
            results[identity] = self.optimizer.optimize(identity)
        return results

    def _create_batch_result(self, results: dict[str, OptimizationResult]) -> BatchResult:
        """创建批量处理结果"""
        success_count = sum(1 for r in results.values() if r.success)
        success = success_count > 0

        batch = BatchResult(
            results=results,
            success=success,
            error=None if success else "所有图片优化都失败",
        )
        logger.info(
            MessageFormatter.optimization_done("批量优化", batch.get_summary())
        )
        return batch
