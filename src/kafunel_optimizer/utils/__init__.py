"""工具模块包。

提供纯工具函数，不包含业务逻辑。
"""

from .cleanup_helpers import (
    TempFileManager,
    ensure_directory,
    remove_file,
    validate_output_integrity,
)
from .file_helpers import (
    get_file_size,
    get_image_dimensions,
)
from .locks import KeyedLock
from .logging_helpers import configure_logging, get_logger
from .message_formatter import MessageFormatter


__all__ = [
    "KeyedLock",
    "MessageFormatter",
    "TempFileManager",
    "configure_logging",
    "ensure_directory",
    "get_file_size",
    "get_image_dimensions",
    "get_logger",
    "remove_file",
    "validate_output_integrity",
]
