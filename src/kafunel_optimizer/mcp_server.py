"""图片优化 MCP 服务器。

通过 MCP 工具暴露单图优化、批量优化、状态查询和 API 密钥验证。
"""

from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .core.remote import RemoteDelegateClient
from .engine import BatchOptimizer, ConfigBuilder
from .exceptions import RemoteUnavailableError, ValidationError
from .models import BatchResult, OptimizationResult, format_size
from .optimizer import ImageOptimizer
from .utils.logging_helpers import configure_logging
from .utils.message_formatter import MessageFormatter


# MCP 服务器响应类型定义
MCPResponse = dict[str, Any]


class MCPResponseBuilder:
    """MCP 服务器响应构建器"""

    @staticmethod
    def error(
        message: str,
        error_type: str = "general",
        details: dict[str, Any] | None = None,
    ) -> MCPResponse:
        """构建错误结果"""
        result: MCPResponse = {
            "success": False,
            "error": message,
            "error_type": error_type,
        }

        if details:
            result["details"] = details

        return result

    @staticmethod
    def validation_error(message: str, field: str | None = None) -> MCPResponse:
        details = {"field": field} if field else None
        return MCPResponseBuilder.error(message, "validation", details)

    @staticmethod
    def remote_error(message: str) -> MCPResponse:
        return MCPResponseBuilder.error(message, "remote")

    @staticmethod
    def optimization(result: OptimizationResult) -> MCPResponse:
        """单图优化结果"""
        if not result.success:
            return MCPResponseBuilder.error(
                result.error or "优化失败",
                "processing",
                {
                    "source_path": str(result.source_path),
                    "error_kind": result.error_kind.value if result.error_kind else None,
                },
            )

        return {
            "success": True,
            "source_path": str(result.source_path),
            "committed_path": str(result.committed_path or result.source_path),
            "original_size": result.original_size,
            "new_size": result.new_size,
            "savings_bytes": result.savings_bytes,
            "savings_percent": result.savings_percent,
            "target_format": result.target_format,
            "was_resized": result.was_resized,
            "strategy_used": result.strategy_used,
            "summary": result.get_summary(),
        }

    @staticmethod
    def batch(result: BatchResult) -> MCPResponse:
        """批量优化结果"""
        return {
            "success": result.success,
            "error": result.error,
            "success_count": result.success_count,
            "failed_count": result.failed_count,
            "errors": result.errors,
            "total_saved": format_size(result.get_total_size_saved()),
            "summary": result.get_summary(),
        }


logger = configure_logging(get_config().logging)

# 创建MCP应用
mcp: FastMCP[Any] = FastMCP("Kafunel 图片优化服务")

_optimizer: ImageOptimizer | None = None


def get_optimizer() -> ImageOptimizer:
    """全局优化器实例，首次使用时按应用配置创建"""
    global _optimizer
    if _optimizer is None:
        _optimizer = ImageOptimizer()
    return _optimizer


def _optimizer_with_overrides(**overrides: Any) -> ImageOptimizer:
    """按覆盖参数创建共享存储、锁和编解码器的优化器"""
    base = get_optimizer()
    if all(v is None for v in overrides.values()):
        return base

    settings = base.configuration.model_dump()
    configuration = ConfigBuilder().build(settings, **overrides)
    return ImageOptimizer(
        configuration=configuration,
        metadata_store=base.metadata_store,
        temp_dir=base.temp_dir,
        codec=base.codec,
        keyed_lock=base.keyed_lock,
    )


# ============================================================================
# 工具
# ============================================================================


@mcp.tool()
def optimize_image(
    identity: str,
    compression_level: str | None = None,
    output_format: str | None = None,
    resize_width: int | None = None,
    resize_height: int | None = None,
) -> MCPResponse:
    """优化单张图片并替换原文件

    Args:
        identity: 图片标识（默认即文件路径）
        compression_level: lossless / optimal / aggressive / maximum
        output_format: original / jpeg / png / webp / avif
        resize_width: 最大宽度，设置后启用尺寸调整
        resize_height: 最大高度，设置后启用尺寸调整
    """
    resize_enabled = True if resize_width or resize_height else None
    try:
        optimizer = _optimizer_with_overrides(
            compression_level=compression_level,
            output_format=output_format,
            resize_enabled=resize_enabled,
            resize_width=resize_width,
            resize_height=resize_height,
        )
    except ValidationError as e:
        logger.warning(MessageFormatter.validation_error("参数", identity, e.message))
        return MCPResponseBuilder.validation_error(e.message)

    return MCPResponseBuilder.optimization(optimizer.optimize(identity))


@mcp.tool()
def bulk_optimize(identities: list[str], max_workers: int | None = None) -> MCPResponse:
    """批量优化多张图片

    Args:
        identities: 图片标识列表
        max_workers: 并发数，默认使用配置值
    """
    workers = max_workers or get_config().optimization.MAX_WORKERS
    try:
        batch = BatchOptimizer(get_optimizer(), max_workers=workers)
    except ValidationError as e:
        return MCPResponseBuilder.validation_error(e.message, "max_workers")

    return MCPResponseBuilder.batch(batch.optimize_all(identities))


@mcp.tool()
def get_optimization_status(identity: str) -> MCPResponse:
    """查询图片的优化状态"""
    status = get_optimizer().get_optimization_status(identity)
    return {"success": True, **status.model_dump(mode="json")}


@mcp.tool()
def validate_api_key(api_key: str | None = None) -> MCPResponse:
    """验证远程服务 API 密钥，未提供时验证配置中的密钥"""
    optimizer = get_optimizer()
    client = RemoteDelegateClient(
        api_key or optimizer.configuration.api_key,
        optimizer.temp_dir,
        base_url=get_config().remote.API_BASE_URL,
        timeout=get_config().remote.TIMEOUT_SECONDS,
    )
    valid = client.validate_api_key()
    response: MCPResponse = {"success": True, "valid": valid}

    if valid:
        try:
            response["account"] = client.get_account_info()
        except RemoteUnavailableError as e:
            logger.warning(f"获取账户信息失败: {e.message}")

    return response


# ============================================================================
# 应用入口
# ============================================================================


def main() -> None:
    """启动 MCP 服务器"""
    logger.info("启动图片优化 MCP 服务器")
    mcp.run()


if __name__ == "__main__":
    main()
