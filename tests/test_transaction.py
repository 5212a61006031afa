"""原文件替换事务测试。"""

import shutil
import stat
from pathlib import Path

import pytest

from kafunel_optimizer.core.transaction import FileTransactionManager
from kafunel_optimizer.exceptions import BackupFailureError, CommitFailureError
from kafunel_optimizer.models import ErrorKind


def _leftovers(directory: Path, original: Path) -> list[str]:
    """原文件旁残留的备份和暂存文件"""
    return sorted(
        p.name
        for p in directory.iterdir()
        if p != original and p.name.startswith((original.name, f".{original.name}"))
    )


@pytest.fixture
def files(tmp_path: Path) -> tuple[Path, Path]:
    original = tmp_path / "photo.jpg"
    original.write_bytes(b"original-bytes" * 100)
    optimized = tmp_path / "work" / "photo_optimized.jpg"
    optimized.parent.mkdir()
    optimized.write_bytes(b"optimized" * 10)
    return original, optimized


class TestFileTransactionManager:
    """提交和回滚测试"""

    def test_commit_replaces_original(self, files: tuple[Path, Path], tmp_path: Path):
        original, optimized = files
        manager = FileTransactionManager()

        result = manager.commit(original, optimized)

        assert result.committed_path == original
        assert result.new_size == 90
        assert original.read_bytes() == b"optimized" * 10
        assert not optimized.exists()
        assert not manager.backup_path(original).exists()
        assert _leftovers(tmp_path, original) == []

    def test_commit_keeps_file_mode(self, files: tuple[Path, Path]):
        """替换后原文件的权限保持不变"""
        original, optimized = files
        original.chmod(0o664)
        optimized.chmod(0o600)

        FileTransactionManager().commit(original, optimized)

        assert stat.S_IMODE(original.stat().st_mode) == 0o664

    def test_backup_path(self):
        manager = FileTransactionManager(backup_suffix=".orig")
        assert manager.backup_path(Path("/srv/a.png")) == Path("/srv/a.png.orig")

    def test_replace_failure_restores_original(
        self, files: tuple[Path, Path], tmp_path: Path, monkeypatch
    ):
        """替换失败后原文件字节不变，备份和暂存文件都被删除"""
        original, optimized = files
        before = original.read_bytes()

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(
            "kafunel_optimizer.core.transaction.os.replace", failing_replace
        )

        with pytest.raises(CommitFailureError) as exc_info:
            FileTransactionManager().commit(original, optimized)

        assert exc_info.value.kind == ErrorKind.COMMIT_FAILURE
        assert original.read_bytes() == before
        assert _leftovers(tmp_path, original) == []
        # 优化结果仍由调用方负责删除
        assert optimized.exists()

    def test_replace_failure_after_truncation(
        self, files: tuple[Path, Path], tmp_path: Path, monkeypatch
    ):
        """原文件在失败前已被破坏时从备份恢复"""
        original, optimized = files
        before = original.read_bytes()

        def clobbering_replace(src, dst):
            Path(dst).write_bytes(b"")
            raise OSError("interrupted")

        monkeypatch.setattr(
            "kafunel_optimizer.core.transaction.os.replace", clobbering_replace
        )

        with pytest.raises(CommitFailureError):
            FileTransactionManager().commit(original, optimized)

        assert original.read_bytes() == before
        assert _leftovers(tmp_path, original) == []

    def test_backup_failure_leaves_original_untouched(
        self, files: tuple[Path, Path], tmp_path: Path, monkeypatch
    ):
        original, optimized = files
        before = original.read_bytes()

        def failing_copy(src, dst, **kwargs):
            raise PermissionError("read-only directory")

        monkeypatch.setattr(shutil, "copy2", failing_copy)

        with pytest.raises(BackupFailureError) as exc_info:
            FileTransactionManager().commit(original, optimized)

        assert exc_info.value.kind == ErrorKind.BACKUP_FAILURE
        assert original.read_bytes() == before
        assert optimized.exists()
        assert _leftovers(tmp_path, original) == []

    def test_missing_optimized_file(self, files: tuple[Path, Path], tmp_path: Path):
        original, optimized = files
        before = original.read_bytes()
        optimized.unlink()

        with pytest.raises(CommitFailureError):
            FileTransactionManager().commit(original, optimized)

        assert original.read_bytes() == before
        assert _leftovers(tmp_path, original) == []
