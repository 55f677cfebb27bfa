"""
PackSync 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
安装入口只向调用方抛出 PackSyncError 及其子类。
"""

from typing import Any, Dict, List, Optional

import aiohttp


class PackSyncError(Exception):
    """PackSync 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(PackSyncError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ConfigParseError(ConfigError):
    """配置解析错误"""

    def _get_default_code(self) -> str:
        return "E101"


class ConfigValidationError(ConfigError):
    """配置验证错误"""

    def _get_default_code(self) -> str:
        return "E102"


class ManifestError(PackSyncError):
    """整合包清单无法读取或格式错误"""

    def _get_default_code(self) -> str:
        return "E150"


class SourceError(ManifestError):
    """整合包来源无法获取（下载失败、不是有效的压缩包等）"""

    def _get_default_code(self) -> str:
        return "E151"


class APIError(PackSyncError):
    """API 相关错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[aiohttp.ClientResponse] = None,
    ):
        super().__init__(message, code, context)
        self.response = response
        if response is not None:
            self.context["status_code"] = response.status
            self.context["url"] = str(response.url)

    def _get_default_code(self) -> str:
        return "E200"


class APINotFoundError(APIError):
    """API 资源不存在"""

    def _get_default_code(self) -> str:
        return "E404"


class APIRateLimitError(APIError):
    """API 速率限制"""

    def _get_default_code(self) -> str:
        return "E429"


class APIServerError(APIError):
    """API 服务器错误"""

    def _get_default_code(self) -> str:
        return "E500"


class MetadataError(PackSyncError):
    """模组文件无法解析为具体版本"""

    def _get_default_code(self) -> str:
        return "E210"


class DownloadError(PackSyncError):
    """下载相关错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        results: Optional[List[Any]] = None,
    ):
        super().__init__(message, code, context)
        # 批量下载时保存每一项的结果
        self.results = results or []

    def _get_default_code(self) -> str:
        return "E300"


class DownloadNetworkError(DownloadError):
    """下载网络错误"""

    def _get_default_code(self) -> str:
        return "E301"


class DownloadFileError(DownloadError):
    """下载文件操作错误"""

    def _get_default_code(self) -> str:
        return "E303"


class ValidationError(PackSyncError):
    """验证相关错误"""

    def _get_default_code(self) -> str:
        return "E520"


class InstallError(PackSyncError):
    """安装过程中的文件系统错误"""

    def _get_default_code(self) -> str:
        return "E600"


class StateError(InstallError):
    """安装记录文件读写错误"""

    def _get_default_code(self) -> str:
        return "E601"


__all__ = [
    # 基础异常
    "PackSyncError",
    # 配置异常
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # 清单异常
    "ManifestError",
    "SourceError",
    # API 异常
    "APIError",
    "APINotFoundError",
    "APIRateLimitError",
    "APIServerError",
    "MetadataError",
    # 下载异常
    "DownloadError",
    "DownloadNetworkError",
    "DownloadFileError",
    # 验证异常
    "ValidationError",
    # 安装异常
    "InstallError",
    "StateError",
]
