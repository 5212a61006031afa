"""图像优化异常处理模块。

定义统一的异常类和错误处理机制，每种错误类型对应一个异常类。
"""

from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import TypeVar

from PIL.Image import DecompressionBombError, UnidentifiedImageError

from .models.optimization_result import ErrorKind, OptimizationResult
from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()
T = TypeVar("T")


class OptimizationError(Exception):
    """优化相关错误基类"""

    kind: ErrorKind = ErrorKind.ENCODE_FAILURE

    def __init__(self, message: str, input_path: Path | None = None):
        super().__init__(message)
        self.message = message
        self.input_path = input_path


class ValidationError(OptimizationError):
    """参数验证错误"""

    kind = ErrorKind.VALIDATION


class SourceNotFoundError(OptimizationError):
    """源文件不存在"""

    kind = ErrorKind.FILE_NOT_FOUND


class UnsupportedInputFormatError(OptimizationError):
    """不支持的输入格式"""

    kind = ErrorKind.UNSUPPORTED_INPUT_FORMAT


class UnsupportedOutputFormatError(OptimizationError):
    """不支持的输出格式（如平台缺少 AVIF 编码器）"""

    kind = ErrorKind.UNSUPPORTED_OUTPUT_FORMAT


class DecodeFailureError(OptimizationError):
    """图像数据损坏或无法读取"""

    kind = ErrorKind.DECODE_FAILURE


class EncodeFailureError(OptimizationError):
    """编码或写入失败"""

    kind = ErrorKind.ENCODE_FAILURE


class ResizeFailureError(OptimizationError):
    """尺寸调整失败"""

    kind = ErrorKind.RESIZE_FAILURE


class RemoteUnavailableError(OptimizationError):
    """远程服务不可用，总是在本地恢复"""

    kind = ErrorKind.REMOTE_UNAVAILABLE


class BackupFailureError(OptimizationError):
    """无法创建原文件备份"""

    kind = ErrorKind.BACKUP_FAILURE


class CommitFailureError(OptimizationError):
    """替换原文件失败，已从备份恢复"""

    kind = ErrorKind.COMMIT_FAILURE


def handle_image_errors(
    operation_name: str = "图像处理",
    default: type[OptimizationError] = EncodeFailureError,
):
    """统一的图像处理异常处理装饰器

    将 Pillow 和系统异常转换为对应的 OptimizationError 子类，
    已经是 OptimizationError 的异常原样抛出。

    Args:
        operation_name: 操作名称，用于日志记录
        default: 其他 OSError 转换成的异常类型
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except OptimizationError:
                raise
            except UnidentifiedImageError as e:
                logger.error(f"{operation_name} - 无法识别图像格式: {e}")
                raise UnsupportedInputFormatError(f"无法识别的图像格式: {e}") from e
            except DecompressionBombError as e:
                logger.error(f"{operation_name} - 图像过大: {e}")
                raise DecodeFailureError(f"图像文件过大，可能存在安全风险: {e}") from e
            except FileNotFoundError as e:
                logger.error(f"{operation_name} - 文件不存在: {e}")
                raise SourceNotFoundError(f"文件不存在: {e}") from e
            except OSError as e:
                logger.error(f"{operation_name} - 文件操作失败: {e}")
                raise default(f"{operation_name}失败: {e}") from e
            except (ValueError, TypeError, KeyError) as e:
                logger.error(f"{operation_name} - 参数错误: {e}")
                raise default(f"{operation_name}参数错误: {e}") from e

        return wrapper

    return decorator


class ErrorHandler:
    """统一错误处理器

    提供标准化的错误日志记录，并把异常转换为失败的 OptimizationResult。
    """

    @staticmethod
    def _log_error(
        operation: str, path: Path, error: Exception, level: str = "error"
    ) -> None:
        """标准化的错误日志记录"""
        log_msg = MessageFormatter.format_error(operation, path, error)
        getattr(logger, level, logger.error)(log_msg)

    @staticmethod
    def create_error_result(
        source_path: Path,
        error_msg: str,
        error_kind: ErrorKind,
        original_size: int | None = None,
    ) -> OptimizationResult:
        """创建标准化的错误结果，失败结果不携带文件路径"""
        if original_size is None:
            try:
                original_size = (
                    source_path.stat().st_size if source_path.exists() else 0
                )
            except OSError:
                original_size = 0

        return OptimizationResult(
            success=False,
            error=error_msg,
            error_kind=error_kind,
            source_path=source_path,
            optimized_path=None,
            original_size=original_size,
            new_size=original_size,
        )

    @staticmethod
    def handle_with_context(
        error: Exception,
        source_path: Path,
        operation: str = "未知操作",
        error_kind: ErrorKind = ErrorKind.ENCODE_FAILURE,
        log_level: str = "error",
    ) -> OptimizationResult:
        """记录日志并返回失败结果"""
        ErrorHandler._log_error(operation, source_path, error, log_level)
        return ErrorHandler.create_error_result(
            source_path=source_path,
            error_msg=f"{operation}: {error}",
            error_kind=error_kind,
        )

    @staticmethod
    def handle_optimization_error(
        error: Exception, source_path: Path, operation: str = "图像优化"
    ) -> OptimizationResult:
        """统一的优化错误处理，使用 match-case 按错误类型分发"""
        match error:
            case ValidationError() as ve:
                return ErrorHandler.handle_with_context(
                    ve, source_path, f"{operation} - 参数验证", ve.kind, "warning"
                )
            case SourceNotFoundError() | UnsupportedInputFormatError() as oe:
                return ErrorHandler.handle_with_context(
                    oe, source_path, operation, oe.kind, "warning"
                )
            case OptimizationError() as oe:
                return ErrorHandler.handle_with_context(
                    oe, source_path, operation, oe.kind, "error"
                )
            case FileNotFoundError() as fnfe:
                return ErrorHandler.handle_with_context(
                    fnfe, source_path, operation, ErrorKind.FILE_NOT_FOUND, "warning"
                )
            case PermissionError() as pe:
                return ErrorHandler.handle_with_context(
                    pe, source_path, f"{operation} - 权限错误", ErrorKind.ENCODE_FAILURE
                )
            case OSError() as ose:
                return ErrorHandler.handle_with_context(
                    ose, source_path, f"{operation} - 系统错误", ErrorKind.ENCODE_FAILURE
                )
            case _:
                return ErrorHandler.handle_with_context(
                    error, source_path, operation, ErrorKind.ENCODE_FAILURE
                )
