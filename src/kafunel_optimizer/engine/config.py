"""配置构建器模块。

把设置层提供的松散设置项构建为经过验证的 Configuration 值对象。
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..config import AppConfig, get_config
from ..exceptions import ValidationError as CustomValidationError
from ..models.optimization_config import Configuration, RemoteFeature


logger = logging.getLogger(__name__)


class ConfigBuilder:
    """优化配置构建器

    设置项名称与插件设置保持一致：compression_level、output_format、
    auto_convert、resize_enabled、resize_width、resize_height、api_key。
    """

    def build(
        self, settings: Mapping[str, Any] | None = None, **overrides: Any
    ) -> Configuration:
        """构建配置

        Args:
            settings: 设置项字典
            **overrides: 覆盖设置项的值，None 表示不覆盖

        Returns:
            Configuration: 构建的配置对象

        Raises:
            CustomValidationError: 参数验证失败
        """
        values: dict[str, Any] = dict(settings or {})
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            if "remote_features" in values:
                values["remote_features"] = self._normalize_features(
                    values["remote_features"]
                )
            return Configuration(**values)

        except PydanticValidationError as e:
            error_msg = self._format_validation_error(e)
            raise CustomValidationError(error_msg) from e
        except (ValueError, TypeError) as e:
            raise CustomValidationError(f"配置构建失败: {e!s}") from e

    def from_app_config(self, app_config: AppConfig | None = None, **overrides: Any):
        """从应用配置（含环境变量覆盖）构建"""
        app_config = app_config or get_config()
        return self.build(app_config.settings(), **overrides)

    @staticmethod
    def _normalize_features(
        features: Iterable[RemoteFeature | str] | str,
    ) -> frozenset[RemoteFeature]:
        """接受枚举、字符串或逗号分隔的字符串"""
        if isinstance(features, str):
            features = [f for f in features.split(",") if f.strip()]

        normalized = set()
        for feature in features:
            if isinstance(feature, RemoteFeature):
                normalized.add(feature)
            else:
                normalized.add(RemoteFeature(str(feature).strip().lower()))
        return frozenset(normalized)

    def _format_validation_error(self, error: PydanticValidationError) -> str:
        """格式化验证错误"""
        messages = []
        for err in error.errors():
            field = ".".join(str(loc) for loc in err["loc"])
            msg = err["msg"]
            if field:
                messages.append(f"{field}: {msg}")
            else:
                messages.append(msg)
        return "; ".join(messages)


# 全局配置构建器实例
_default_builder = ConfigBuilder()


def build_config(settings: Mapping[str, Any] | None = None, **overrides: Any):
    """便捷的配置构建函数

    未提供设置项时使用全局应用配置。
    """
    if settings is None:
        return _default_builder.from_app_config(**overrides)
    return _default_builder.build(settings, **overrides)
