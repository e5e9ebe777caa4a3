"""
Shulkers 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, Optional
import aiohttp


class ShulkersError(Exception):
    """Shulkers 基础异常类"""

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


class ConfigError(ShulkersError):
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


class APIError(ShulkersError):
    """仓库 API 相关错误"""

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

    @property
    def status(self) -> Optional[int]:
        """HTTP 状态码（网络错误时为 None）"""
        return self.context.get("status_code")

    def _get_default_code(self) -> str:
        return "E200"


class NotFoundError(APIError):
    """资源、版本或仓库不存在"""

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


class UpstreamUnavailableError(APIError):
    """网络、超时或响应解析失败"""

    def _get_default_code(self) -> str:
        return "E503"


class ResolveError(ShulkersError):
    """解析安装目标相关错误"""

    def _get_default_code(self) -> str:
        return "E600"


class NoFilesFoundError(ResolveError):
    """版本没有可下载的附件"""

    def _get_default_code(self) -> str:
        return "E601"


class UnsupportedSourceError(ResolveError):
    """未知的来源别名或仓库 ID"""

    def _get_default_code(self) -> str:
        return "E602"


class ExternalOrPremiumResourceError(ResolveError):
    """
    外部托管或付费资源

    这不是真正的失败：调用方必须在尝试下载之前停下，并提示用户手动前往资源页面。
    """

    def __init__(
        self,
        message: str,
        url: str = "",
        external: bool = False,
        premium: bool = False,
        code: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            context={"url": url, "external": external, "premium": premium},
        )
        self.url = url
        self.external = external
        self.premium = premium

    def _get_default_code(self) -> str:
        return "E603"


class DownloadError(ShulkersError):
    """下载相关错误"""

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


__all__ = [
    # 基础异常
    "ShulkersError",
    # 配置异常
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # API 异常
    "APIError",
    "NotFoundError",
    "APIRateLimitError",
    "APIServerError",
    "UpstreamUnavailableError",
    # 解析异常
    "ResolveError",
    "NoFilesFoundError",
    "UnsupportedSourceError",
    "ExternalOrPremiumResourceError",
    # 下载异常
    "DownloadError",
    "DownloadNetworkError",
    "DownloadFileError",
]
