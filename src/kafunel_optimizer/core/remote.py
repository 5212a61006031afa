"""远程优化服务客户端模块。

把文件上传到外部优化服务，解析 JSON 结果并下载优化后的文件。
任何传输错误、超时、非 200 响应或格式错误的响应都视为可恢复的失败，
以 RemoteUnavailableError 抛出，由调用方回退到本地处理。
"""

import threading
import uuid
from collections.abc import Iterable
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import requests

from ..config import RemoteDefaults
from ..exceptions import RemoteUnavailableError
from ..models.optimization_config import RemoteFeature
from ..models.optimization_result import RemoteResult
from ..utils.cleanup_helpers import ensure_directory, remove_file
from ..utils.logging_helpers import get_logger


logger = get_logger()

_DEFAULTS = RemoteDefaults()
_DOWNLOAD_CHUNK_SIZE = 8192


class RemoteDelegateClient:
    """远程优化服务客户端

    Args:
        api_key: API 密钥，为空时所有调用直接失败
        temp_dir: 下载文件存放的临时目录
        base_url: 服务地址
        timeout: 单次请求超时（秒）
        session: 可注入的 requests.Session，便于测试
        cancel_event: 设置后不再发出新的请求
    """

    def __init__(
        self,
        api_key: str,
        temp_dir: Path,
        base_url: str = _DEFAULTS.API_BASE_URL,
        timeout: float = _DEFAULTS.TIMEOUT_SECONDS,
        session: requests.Session | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.api_key = (api_key or "").strip()
        self.temp_dir = temp_dir
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.cancel_event = cancel_event

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    def _check_ready(self, operation: str) -> None:
        if not self.api_key:
            raise RemoteUnavailableError(f"{operation}: 未配置 API 密钥")
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise RemoteUnavailableError(f"{operation}: 请求已取消")

    def optimize_image(
        self,
        file_path: Path,
        compression_level: str = "optimal",
        output_format: str = "original",
        features: Iterable[RemoteFeature | str] = (),
        extra_fields: dict[str, Any] | None = None,
    ) -> RemoteResult:
        """上传文件进行远程优化

        Raises:
            RemoteUnavailableError: 任何失败
        """
        self._check_ready("远程优化")

        if not file_path.is_file():
            raise RemoteUnavailableError(f"文件不存在: {file_path}", file_path)

        data: dict[str, Any] = {
            "compression_level": compression_level,
            "output_format": output_format,
            "features": [getattr(f, "value", f) for f in features],
        }
        if extra_fields:
            data.update(extra_fields)

        try:
            with file_path.open("rb") as fh:
                response = self.session.post(
                    f"{self.base_url}/optimize",
                    headers=self._headers(),
                    data=data,
                    files={"file": (file_path.name, fh, "application/octet-stream")},
                    timeout=self.timeout,
                )
        except (requests.RequestException, OSError) as e:
            raise RemoteUnavailableError(f"远程请求失败: {e}", file_path) from e

        result = self._parse_json(response, "远程优化")
        if result.get("success") is not True:
            raise RemoteUnavailableError(f"远程服务返回失败结果: {result}", file_path)

        file_url = result.get("optimized_file_url")
        if not file_url:
            raise RemoteUnavailableError("远程服务未返回优化文件地址", file_path)

        downloaded = self._download_optimized_file(str(file_url))

        original_size = file_path.stat().st_size
        new_size = downloaded.stat().st_size
        return RemoteResult(
            success=True,
            file_path=downloaded,
            original_size=original_size,
            new_size=new_size,
            savings=original_size - new_size,
            details=result,
        )

    def remove_background(self, file_path: Path) -> RemoteResult:
        """远程去除背景，输出 PNG 以保留透明度"""
        return self.optimize_image(
            file_path,
            compression_level="optimal",
            output_format="png",
            features=[RemoteFeature.BACKGROUND_REMOVAL],
        )

    def upscale_image(self, file_path: Path, scale_factor: int = 2) -> RemoteResult:
        """远程放大图片"""
        return self.optimize_image(
            file_path,
            compression_level="optimal",
            output_format="original",
            features=[RemoteFeature.UPSCALE],
            extra_fields={"scale_factor": scale_factor},
        )

    def _download_optimized_file(self, file_url: str) -> Path:
        """下载优化后的文件到临时目录"""
        self._check_ready("下载优化文件")
        ensure_directory(self.temp_dir)

        basename = Path(urlparse(file_url).path).name or "image"
        temp_path = self.temp_dir / f"optimized_{_unique_id()}_{basename}"

        try:
            response = self.session.get(file_url, timeout=self.timeout, stream=True)
            response.raise_for_status()

            with temp_path.open("wb") as f:
                for chunk in response.iter_content(chunk_size=_DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)
        except (requests.RequestException, OSError) as e:
            remove_file(temp_path)
            raise RemoteUnavailableError(f"下载优化文件失败 {file_url}: {e}") from e

        if temp_path.stat().st_size == 0:
            remove_file(temp_path)
            raise RemoteUnavailableError(f"下载的优化文件为空: {file_url}")

        logger.debug(f"已下载远程优化文件: {temp_path.name}")
        return temp_path

    def validate_api_key(self) -> bool:
        """验证 API 密钥，仅当响应为 200 且 valid 字段为 true 时有效"""
        try:
            self._check_ready("验证 API 密钥")
            response = self.session.get(
                f"{self.base_url}/validate", headers=self._headers(), timeout=self.timeout
            )
        except RemoteUnavailableError:
            return False
        except requests.RequestException as e:
            logger.warning(f"API 密钥验证请求失败: {e}")
            return False

        if response.status_code != 200:
            return False

        try:
            result = response.json()
        except ValueError:
            return False

        return isinstance(result, dict) and result.get("valid") is True

    def get_account_info(self) -> dict[str, Any]:
        """获取账户信息和用量统计

        Raises:
            RemoteUnavailableError: 请求失败或响应无效
        """
        self._check_ready("获取账户信息")
        try:
            response = self.session.get(
                f"{self.base_url}/account", headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as e:
            raise RemoteUnavailableError(f"获取账户信息失败: {e}") from e

        return self._parse_json(response, "获取账户信息")

    @staticmethod
    def _parse_json(response: requests.Response, operation: str) -> dict[str, Any]:
        """要求 HTTP 200 且响应体为 JSON 对象"""
        if response.status_code != 200:
            raise RemoteUnavailableError(
                f"{operation}: 服务返回状态码 {response.status_code}"
            )
        try:
            result = response.json()
        except ValueError as e:
            raise RemoteUnavailableError(f"{operation}: 响应不是有效的 JSON") from e

        if not isinstance(result, dict):
            raise RemoteUnavailableError(f"{operation}: 响应格式无效")
        return result


def _unique_id() -> str:
    return uuid.uuid4().hex[:13]
