"""文件事务模块。

用优化后的文件替换原文件。备份文件就是撤销日志：先复制备份，
再把优化结果写入原文件旁的暂存文件并原子重命名到原文件上。
这是唯一允许修改原文件的组件。
"""

import filecmp
import os
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path

from ..exceptions import BackupFailureError, CommitFailureError
from ..models.constants import ProcessingDefaults
from ..utils.cleanup_helpers import remove_file
from ..utils.logging_helpers import get_logger


logger = get_logger()


@dataclass(frozen=True)
class CommitResult:
    """提交结果"""

    committed_path: Path
    new_size: int


class FileTransactionManager:
    """原文件替换事务管理器"""

    def __init__(self, backup_suffix: str = ProcessingDefaults.BACKUP_SUFFIX):
        self.backup_suffix = backup_suffix

    def backup_path(self, original_path: Path) -> Path:
        return original_path.with_name(original_path.name + self.backup_suffix)

    def commit(self, original_path: Path, optimized_path: Path) -> CommitResult:
        """提交替换

        Raises:
            BackupFailureError: 无法创建备份，原文件未被触及
            CommitFailureError: 替换失败，原文件已恢复且备份已删除
        """
        backup = self.backup_path(original_path)

        try:
            shutil.copy2(original_path, backup)
        except OSError as e:
            remove_file(backup)
            raise BackupFailureError(
                f"无法创建备份 {backup}: {e}", original_path
            ) from e

        staging = original_path.with_name(
            f".{original_path.name}.{uuid.uuid4().hex[:8]}.tmp"
        )
        try:
            shutil.copyfile(optimized_path, staging)
            shutil.copymode(original_path, staging)
            os.replace(staging, original_path)
        except OSError as e:
            remove_file(staging)
            self._rollback(original_path, backup)
            raise CommitFailureError(
                f"替换原文件失败，已从备份恢复 {original_path}: {e}", original_path
            ) from e

        remove_file(backup)
        remove_file(optimized_path)

        new_size = original_path.stat().st_size
        logger.debug(f"已提交 {original_path.name}，新大小 {new_size} 字节")
        return CommitResult(committed_path=original_path, new_size=new_size)

    @staticmethod
    def _rollback(original_path: Path, backup: Path) -> None:
        """从备份恢复原文件；恢复失败时保留备份"""
        try:
            if not original_path.exists() or not filecmp.cmp(
                original_path, backup, shallow=False
            ):
                shutil.copy2(backup, original_path)
        except OSError as e:
            logger.error(f"从备份恢复失败，备份保留在 {backup}: {e}")
            return

        remove_file(backup)
