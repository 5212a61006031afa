"""批量优化和按键加锁测试。"""

import threading
import time
from pathlib import Path

import pytest

from kafunel_optimizer.engine import BatchOptimizer
from kafunel_optimizer.engine.concurrent_executor import ConcurrentExecutor
from kafunel_optimizer.exceptions import ValidationError
from kafunel_optimizer.models import ErrorKind, OptimizationResult
from kafunel_optimizer.utils.locks import KeyedLock


class TestBatchOptimizer:
    """批量优化测试"""

    @pytest.mark.parametrize("max_workers", [1, 3])
    def test_mixed_results(
        self,
        make_optimizer,
        photo_jpeg: Path,
        small_png: Path,
        upload_root: Path,
        max_workers: int,
    ):
        """部分失败不影响其他图片"""
        missing = str(upload_root / "missing.png")
        identities = [str(photo_jpeg), missing, str(small_png), str(photo_jpeg)]

        batch = BatchOptimizer(make_optimizer(), max_workers=max_workers)
        result = batch.optimize_all(identities)

        assert result.success
        assert list(result.results) == [str(photo_jpeg), missing, str(small_png)]
        assert result.success_count == 2
        assert result.failed_count == 1
        assert result.errors == [missing]
        assert result.results[missing].error_kind == ErrorKind.FILE_NOT_FOUND
        assert "2/3" in result.get_summary()

    def test_all_failed(self, make_optimizer, upload_root: Path):
        batch = BatchOptimizer(make_optimizer())
        result = batch.optimize_all([str(upload_root / "a.jpg"), str(upload_root / "b.jpg")])

        assert not result.success
        assert result.error == "所有图片优化都失败"
        assert result.failed_count == 2
        assert result.get_total_size_saved() == 0

    def test_empty_batch(self, make_optimizer):
        result = BatchOptimizer(make_optimizer()).optimize_all([])

        assert result.success
        assert result.results == {}

    def test_invalid_worker_count(self, make_optimizer):
        with pytest.raises(ValidationError):
            BatchOptimizer(make_optimizer(), max_workers=0)


class TestConcurrentExecutor:
    def test_task_exception_becomes_failed_result(self):
        def task(identity: str) -> OptimizationResult:
            if identity == "bad.jpg":
                raise OSError("disk error")
            return OptimizationResult(success=True, source_path=Path(identity))

        results = ConcurrentExecutor(max_workers=2).execute_tasks(
            ["good.jpg", "bad.jpg"], task
        )

        assert list(results) == ["good.jpg", "bad.jpg"]
        assert results["good.jpg"].success
        assert not results["bad.jpg"].success
        assert results["bad.jpg"].error_kind == ErrorKind.ENCODE_FAILURE


class TestKeyedLock:
    """按键加锁测试"""

    def test_lock_released_and_reclaimed(self):
        lock = KeyedLock()

        with lock.hold("a.jpg"):
            assert lock.is_locked("a.jpg")
            assert not lock.is_locked("b.jpg")

        assert not lock.is_locked("a.jpg")
        assert lock._locks == {}

    def test_same_key_is_serialized(self):
        lock = KeyedLock()
        active = 0
        peak = 0
        guard = threading.Lock()

        def work():
            nonlocal active, peak
            with lock.hold("same.jpg"):
                with guard:
                    active += 1
                    peak = max(peak, active)
                time.sleep(0.02)
                with guard:
                    active -= 1

        threads = [threading.Thread(target=work) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert peak == 1
        assert lock._locks == {}

    def test_different_keys_do_not_block(self):
        lock = KeyedLock()
        entered = threading.Event()
        release = threading.Event()

        def hold_a():
            with lock.hold("a.jpg"):
                entered.set()
                release.wait(timeout=5)

        thread = threading.Thread(target=hold_a)
        thread.start()
        assert entered.wait(timeout=5)

        acquired = threading.Event()

        def hold_b():
            with lock.hold("b.jpg"):
                acquired.set()

        other = threading.Thread(target=hold_b)
        other.start()
        assert acquired.wait(timeout=5)

        release.set()
        thread.join()
        other.join()
