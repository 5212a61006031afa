"""并发执行器模块。

按图片标识并发执行优化任务，每张图片一个任务。
"""

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path

from ..exceptions import ErrorHandler
from ..models.optimization_result import OptimizationResult


logger = logging.getLogger(__name__)

TaskFunction = Callable[[str], OptimizationResult]


class ConcurrentExecutor:
    """基于线程池的并发执行器"""

    def __init__(self, max_workers: int = 4):
        """初始化并发执行器

        Args:
            max_workers: 最大并发数
        """
        self.max_workers = max_workers

    def execute_tasks(
        self, identities: Sequence[str], task_function: TaskFunction
    ) -> dict[str, OptimizationResult]:
        """执行并发任务

        Args:
            identities: 图片标识列表
            task_function: 要执行的任务函数

        Returns:
            dict[str, OptimizationResult]: 按标识索引的结果，顺序与输入一致
        """
        if not identities:
            return {}

        results: dict[str, OptimizationResult] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_identity = self._submit_tasks(
                executor, identities, task_function, results
            )
            self._collect_results(future_to_identity, results)

        return {identity: results[identity] for identity in identities}

    def _submit_tasks(
        self,
        executor: ThreadPoolExecutor,
        identities: Sequence[str],
        task_function: TaskFunction,
        results: dict[str, OptimizationResult],
    ) -> dict[Future[OptimizationResult], str]:
        """提交任务到执行器"""
        future_to_identity = {}

        for identity in identities:
            try:
                future = executor.submit(task_function, identity)
                future_to_identity[future] = identity
            except RuntimeError as e:
                results[identity] = ErrorHandler.handle_with_context(
                    e, Path(identity), "任务提交", log_level="error"
                )

        return future_to_identity

    def _collect_results(
        self,
        future_to_identity: dict[Future[OptimizationResult], str],
        results: dict[str, OptimizationResult],
    ) -> None:
        """收集任务执行结果"""
        for future in as_completed(future_to_identity):
            identity = future_to_identity[future]

            try:
                result = future.result()
            except Exception as e:
                results[identity] = ErrorHandler.handle_optimization_error(
                    e, Path(identity), "并发任务处理"
                )
                continue

            results[identity] = result
            if result.success:
                logger.debug(f"处理成功: {identity}")
            else:
                logger.warning(f"处理失败: {identity} - {result.error}")
