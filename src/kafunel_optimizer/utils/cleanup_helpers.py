"""清理工具模块。

提供临时文件清理和资源管理功能。所有中间文件都放在共享的临时目录中，
由创建它们的调用独占，并在调用结束时删除。
"""

import uuid
from pathlib import Path
from typing import Any

from PIL import Image

from .logging_helpers import get_logger


logger = get_logger()


def ensure_directory(directory: Path) -> Path:
    """创建目录（已存在时不做任何事），可安全地并发调用"""
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def remove_file(file_path: Path | None) -> bool:
    """删除文件，文件不存在时返回 False"""
    if file_path is None:
        return False
    try:
        file_path.unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"删除文件失败 {file_path}: {e}")
        return False


class TempFileManager:
    """临时文件管理器

    每个实例对应一次优化调用，生成的文件名都带有本次调用的令牌，
    因此多个调用可以共享同一个临时目录而不会冲突。
    """

    def __init__(self, temp_dir: Path):
        self.temp_dir = temp_dir
        self.token = uuid.uuid4().hex[:12]
        self.temp_files: set[Path] = set()

    def new_path(self, source: Path, label: str, extension: str) -> Path:
        """在临时目录中生成新的文件路径并登记

        Args:
            source: 派生该文件的源路径，用于保留可读的文件名
            label: 文件用途标签，如 resized、optimized
            extension: 扩展名（可带或不带点）
        """
        ensure_directory(self.temp_dir)
        ext = extension.lstrip(".")
        stem = source.stem.split(f"_{self.token}")[0]
        path = self.temp_dir / f"{stem}_{self.token}_{label}.{ext}"
        self.register_temp_file(path)
        return path

    def register_temp_file(self, file_path: Path) -> None:
        """注册临时文件"""
        self.temp_files.add(file_path)

    def release(self, file_path: Path) -> Path:
        """把文件的所有权交给调用方，清理时不再删除它"""
        self.temp_files.discard(file_path)
        return file_path

    def discard(self, file_path: Path) -> None:
        """立即删除一个已登记的临时文件"""
        self.temp_files.discard(file_path)
        remove_file(file_path)

    def cleanup_temp_files(self) -> int:
        """清理所有注册的临时文件"""
        cleaned_count = 0
        for file_path in self.temp_files:
            if remove_file(file_path):
                cleaned_count += 1
                logger.debug(f"已清理临时文件: {file_path}")

        self.temp_files.clear()
        return cleaned_count

    def __enter__(self):
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """上下文管理器退出时清理临时文件"""
        del exc_type, exc_val, exc_tb
        self.cleanup_temp_files()


def validate_output_integrity(file_path: Path) -> bool:
    """验证输出文件的完整性

    Args:
        file_path: 文件路径

    Returns:
        bool: 文件存在、非空并且可以被解码
    """
    try:
        if not file_path.exists() or file_path.stat().st_size == 0:
            return False

        with Image.open(file_path) as img:
            img.verify()
        return True

    except Exception as e:
        logger.debug(f"验证文件完整性失败 {file_path}: {e}")
        return False
