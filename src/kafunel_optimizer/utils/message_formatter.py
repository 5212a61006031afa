"""消息格式化工具模块。

提供统一的错误消息、成功消息格式化功能。
"""

from pathlib import Path
from typing import Any


class MessageFormatter:
    """统一的消息格式化器"""

    @staticmethod
    def file_not_found(file_path: str | Path) -> str:
        """文件不存在错误消息"""
        return f"文件不存在: {file_path}"

    @staticmethod
    def unsupported_format(file_path: str | Path, format_name: str) -> str:
        """不支持的格式错误消息"""
        return f"不支持的格式 {format_name}: {file_path}"

    @staticmethod
    def operation_failed(
        operation: str, target: str | Path, error: Exception | None = None
    ) -> str:
        """操作失败消息"""
        msg = f"{operation}失败: {target}"
        if error:
            msg += f" - {error}"
        return msg

    @staticmethod
    def validation_error(field: str, value: Any, reason: str | None = None) -> str:
        """参数验证错误消息"""
        msg = f"参数验证失败 - {field}: {value}"
        if reason:
            msg += f" ({reason})"
        return msg

    @staticmethod
    def format_error(operation: str, path: str | Path, error: Exception) -> str:
        """格式化通用错误消息"""
        return f"{operation}失败 [{path}]: {error}"

    @staticmethod
    def remote_fallback(path: str | Path, reason: Any) -> str:
        """远程优化失败、回退本地处理的消息"""
        return f"远程优化不可用，回退本地处理 [{path}]: {reason}"

    @staticmethod
    def optimization_done(path: str | Path, summary: str) -> str:
        """优化完成消息"""
        return f"优化完成 [{path}]: {summary}"
