"""错误类型定义 - 统一的异常体系。

配置错误、传输错误都收敛到 AIError 子类, 调用方无需了解 SDK 或 HTTP 细节。
流式解码错误在解码器内部恢复, 不会出现在这里。
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """错误代码枚举。"""

    # 认证相关
    AUTH_INVALID_KEY = "AUTH_INVALID_KEY"
    AUTH_MISSING = "AUTH_MISSING"

    # 速率限制与配额
    RATE_LIMIT = "RATE_LIMIT"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"

    # 请求/模型相关
    MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
    INVALID_REQUEST = "INVALID_REQUEST"
    CONTENT_FILTER = "CONTENT_FILTER"

    # 网络/服务相关
    TIMEOUT = "TIMEOUT"
    CONNECTION = "CONNECTION"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # 解析相关
    PARSE_ERROR = "PARSE_ERROR"

    # 配置相关
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"


class AIError(Exception):
    """AI 调用基础异常。

    Attributes:
        code: 错误代码。
        message: 错误消息。
        provider: 提供商名称。
        model: 模型名称。
        request_id: 请求 ID。
        status_code: HTTP 状态码。
        retry_after: 重试等待秒数。
        cause: 原始异常。
        context: 诊断上下文(如 url), 不包含密钥。
    """

    # 子类应重写这些属性
    default_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    default_message: str = "An error occurred"
    user_guide: str = "请检查配置后重试。"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: ErrorCode | None = None,
        provider: str | None = None,
        model: str | None = None,
        request_id: str | None = None,
        status_code: int | None = None,
        retry_after: int | None = None,
        cause: Exception | None = None,
        **context: Any,
    ) -> None:
        self.code = code or self.default_code
        self.message = message or self.default_message
        self.provider = provider
        self.model = model
        self.request_id = request_id
        self.status_code = status_code
        self.retry_after = retry_after
        self.cause = cause
        self.context: dict[str, Any] = context

        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.code.value}]"]

        if self.provider:
            parts.append(f"provider={self.provider}")

        if self.model:
            parts.append(f"model={self.model}")

        if self.status_code:
            parts.append(f"status={self.status_code}")

        parts.append(self.message)

        if self.request_id:
            parts.append(f"(request_id: {self.request_id})")

        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.value!r}, "
            f"message={self.message!r}, "
            f"provider={self.provider!r}, "
            f"status_code={self.status_code})"
        )

    def format(self, *, include_guide: bool = False) -> str:
        """格式化错误信息, 附带上下文。

        Args:
            include_guide: 是否附带用户指南。

        Returns:
            多行错误描述。
        """
        lines = [str(self)]

        if self.retry_after:
            lines.append(f"  重试等待: {self.retry_after} 秒")

        for key, value in self.context.items():
            lines.append(f"  {key}: {value}")

        if include_guide:
            lines.append(f"  建议: {self.user_guide}")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """转换为字典, 便于序列化。"""
        error: dict[str, Any] = {
            "code": self.code.value,
            "type": self.__class__.__name__,
            "message": self.message,
        }

        for key in ("provider", "model", "request_id", "status_code", "retry_after"):
            value = getattr(self, key)
            if value:
                error[key] = value

        if self.context:
            error["context"] = dict(self.context)

        return {"error": error}

    def with_context(self, **kwargs: Any) -> AIError:
        """添加上下文信息并返回 self, 便于链式调用。"""
        self.context.update(kwargs)
        return self


class AuthenticationError(AIError):
    """认证失败(API Key 无效或过期)。"""

    default_code = ErrorCode.AUTH_INVALID_KEY
    default_message = "Authentication failed"
    user_guide = "请检查 API Key 是否正确, 或重新生成 API Key。"


class RateLimitError(AIError):
    """速率限制。"""

    default_code = ErrorCode.RATE_LIMIT
    default_message = "Rate limit exceeded"
    user_guide = "请等待后重试。"


class QuotaExceededError(AIError):
    """配额用尽。"""

    default_code = ErrorCode.QUOTA_EXCEEDED
    default_message = "Quota exceeded"
    user_guide = "API 配额已用尽, 请充值或升级账户。"


class ModelNotFoundError(AIError):
    """模型不存在。"""

    default_code = ErrorCode.MODEL_NOT_FOUND
    default_message = "Model not found"
    user_guide = "请检查模型名称, 本地后端请确认模型已拉取(ollama pull)。"


class InvalidRequestError(AIError):
    """请求参数无效。"""

    default_code = ErrorCode.INVALID_REQUEST
    default_message = "Invalid request"
    user_guide = "请检查请求参数是否符合后端 API 要求。"


class ContentFilterError(AIError):
    """内容过滤触发。"""

    default_code = ErrorCode.CONTENT_FILTER
    default_message = "Content filtered"
    user_guide = "内容触发了安全过滤, 请修改后重试。"


class TimeoutError(AIError):  # noqa: A001
    """请求超时。"""

    default_code = ErrorCode.TIMEOUT
    default_message = "Request timed out"
    user_guide = "请求超时, 请检查网络或调大 timeout。"


class ConnectionError(AIError):  # noqa: A001
    """连接失败。"""

    default_code = ErrorCode.CONNECTION
    default_message = "Connection failed"
    user_guide = "无法连接到服务器, 请确认地址正确且服务已启动。"


class ProviderNotAvailableError(AIError):
    """提供商服务不可用(如 502/503)。"""

    default_code = ErrorCode.SERVICE_UNAVAILABLE
    default_message = "Provider service unavailable"
    user_guide = "服务暂时不可用, 请稍后重试。"


class InternalServerError(AIError):
    """服务器内部错误(如 500)。"""

    default_code = ErrorCode.INTERNAL_ERROR
    default_message = "Internal server error"
    user_guide = "服务器内部错误, 请稍后重试。"


class ResponseParseError(AIError):
    """响应解析失败(非流式响应体无效)。"""

    default_code = ErrorCode.PARSE_ERROR
    default_message = "Failed to parse response"
    user_guide = "响应格式异常, 请确认端点是否正确。"


class ConfigurationError(AIError):
    """配置错误(如缺少必要参数)。"""

    default_code = ErrorCode.CONFIG_MISSING
    default_message = "Configuration error"
    user_guide = "请检查配置是否完整。"


class AuthNotConfiguredError(ConfigurationError):
    """无法解析出任何认证方式。"""

    default_code = ErrorCode.AUTH_MISSING
    default_message = "No authentication method configured"
    user_guide = "请在配置中设置认证方式, 或设置文档列出的环境变量。"


class AuthValidationError(ConfigurationError):
    """认证方式与当前可用凭据不一致。"""

    default_code = ErrorCode.CONFIG_INVALID
    default_message = "Authentication method is not usable"
    user_guide = "请补全该认证方式所需的环境变量。"


__all__ = [
    "AIError",
    "AuthNotConfiguredError",
    "AuthValidationError",
    "AuthenticationError",
    "ConfigurationError",
    "ConnectionError",
    "ContentFilterError",
    "ErrorCode",
    "InternalServerError",
    "InvalidRequestError",
    "ModelNotFoundError",
    "ProviderNotAvailableError",
    "QuotaExceededError",
    "RateLimitError",
    "ResponseParseError",
    "TimeoutError",
]
