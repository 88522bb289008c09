"""适配器基础工具 - 参数校验、消息转换、错误映射等通用功能。"""

from __future__ import annotations

import contextlib
import json
from typing import Any

import httpx

from ..core.config import GenerateConfig, ProviderConfig
from ..core.env import EnvironmentSnapshot
from ..core.error import (
    AIError,
    AuthenticationError,
    ConfigurationError,
    ConnectionError,
    ContentFilterError,
    InternalServerError,
    InvalidRequestError,
    ModelNotFoundError,
    ProviderNotAvailableError,
    QuotaExceededError,
    RateLimitError,
    TimeoutError,
)
from ..core.response import FinishReason
from ..core.types import ImageContent, Message, Role, TextContent

LOCAL_OLLAMA_ADDRESS: str = "localhost:11434"


def is_local_ollama(config: ProviderConfig, env: EnvironmentSnapshot) -> bool:
    """后端是否为本地 Ollama(不支持工具调用)。"""
    return bool(env.ollama_host) or LOCAL_OLLAMA_ADDRESS in (config.base_url or "")


def validate_config(
    config: GenerateConfig,
    provider_name: str,
    *,
    temp_max: float = 2.0,
) -> None:
    """验证配置参数。

    Args:
        config: 生成配置。
        provider_name: 供应商标识。
        temp_max: temperature 最大值。

    Raises:
        ConfigurationError: 配置无效。
    """
    if not config.model:
        raise ConfigurationError(
            "Model name is required",
            provider=provider_name,
        )

    if config.temperature is not None and not 0.0 <= config.temperature <= temp_max:
        raise ConfigurationError(
            f"Temperature must be between 0.0 and {temp_max}, got {config.temperature}",
            provider=provider_name,
        )

    if config.top_p is not None and not 0.0 <= config.top_p <= 1.0:
        raise ConfigurationError(
            f"top_p must be between 0.0 and 1.0, got {config.top_p}",
            provider=provider_name,
        )

    if config.max_tokens is not None and config.max_tokens <= 0:
        raise ConfigurationError(
            f"max_tokens must be positive, got {config.max_tokens}",
            provider=provider_name,
        )


def validate_messages(messages: list[Message], provider_name: str) -> None:
    """消息列表不能为空。"""
    if not messages:
        raise ConfigurationError(
            "Messages list cannot be empty",
            provider=provider_name,
        )


def extract_error_info(error: Exception) -> dict[str, Any]:
    """从 SDK 异常中提取状态码、请求 ID 与 retry-after。"""
    info: dict[str, Any] = {
        "status_code": getattr(error, "status_code", None),
        "request_id": getattr(error, "request_id", None),
        "retry_after": None,
    }

    resp = getattr(error, "response", None)
    headers = getattr(resp, "headers", None)
    if headers is not None:
        ra = headers.get("retry-after")
        if ra:
            with contextlib.suppress(ValueError):
                info["retry_after"] = int(ra)

    return info


_STATUS_ERRORS: dict[int, type[AIError]] = {
    400: InvalidRequestError,
    401: AuthenticationError,
    403: AuthenticationError,
    404: ModelNotFoundError,
    422: InvalidRequestError,
    429: RateLimitError,
    500: InternalServerError,
    502: ProviderNotAvailableError,
    503: ProviderNotAvailableError,
    504: TimeoutError,
}


def map_status_code_to_error(
    status_code: int,
    message: str,
    provider_name: str,
    cause: Exception | None = None,
    **context: Any,
) -> AIError:
    """根据 HTTP 状态码映射到具体错误类型。

    Args:
        status_code: HTTP 状态码。
        message: 错误消息。
        provider_name: 供应商标识。
        cause: 原始异常。
        **context: 诊断上下文(如 url)。

    Returns:
        具体的错误类型实例。
    """
    error_class = _STATUS_ERRORS.get(status_code, InternalServerError)
    return error_class(
        message,
        provider=provider_name,
        status_code=status_code,
        cause=cause,
        **context,
    )


def handle_http_error(
    error: httpx.HTTPError,
    provider_name: str,
    url: str,
) -> AIError:
    """将 httpx 传输异常转换为统一错误类型。"""
    message = f"{type(error).__name__}: {error}"
    if isinstance(error, httpx.TimeoutException):
        return TimeoutError(message, provider=provider_name, cause=error, url=url)
    if isinstance(error, httpx.HTTPStatusError):
        return map_status_code_to_error(
            error.response.status_code, message, provider_name, error, url=url
        )
    return ConnectionError(message, provider=provider_name, cause=error, url=url)


# OpenAI SDK 异常类名 -> 统一错误类型
_OPENAI_ERROR_TYPES: dict[str, type[AIError]] = {
    "AuthenticationError": AuthenticationError,
    "PermissionDeniedError": AuthenticationError,
    "RateLimitError": RateLimitError,
    "BadRequestError": InvalidRequestError,
    "UnprocessableEntityError": InvalidRequestError,
    "NotFoundError": ModelNotFoundError,
    "InternalServerError": InternalServerError,
    "APITimeoutError": TimeoutError,
    "APIConnectionError": ConnectionError,
}


def handle_openai_error(
    error: Exception,
    provider_name: str,
    url: str | None = None,
) -> AIError:
    """处理 OpenAI 格式的错误。

    Args:
        error: 原始异常对象。
        provider_name: 供应商标识。
        url: 请求的端点, 写入诊断上下文。

    Returns:
        具体的错误类型实例。
    """
    error_type: str = type(error).__name__
    error_message: str = str(error)
    info = extract_error_info(error)
    status_code = info["status_code"]

    if "insufficient_quota" in error_message:
        return QuotaExceededError(
            error_message,
            provider=provider_name,
            status_code=status_code,
            cause=error,
            url=url,
        )

    error_class = _OPENAI_ERROR_TYPES.get(error_type)
    if error_class is not None:
        return error_class(
            error_message,
            provider=provider_name,
            status_code=status_code,
            request_id=info["request_id"],
            retry_after=info["retry_after"],
            cause=error,
            url=url,
        )

    if status_code:
        return map_status_code_to_error(
            status_code, error_message, provider_name, error, url=url
        )

    if "Timeout" in error_type or "timeout" in error_message.lower():
        return TimeoutError(error_message, provider=provider_name, cause=error, url=url)

    if "Connection" in error_type:
        return ConnectionError(error_message, provider=provider_name, cause=error, url=url)

    return InternalServerError(
        f"Unexpected error: {error_type}: {error_message}",
        provider=provider_name,
        cause=error,
        url=url,
    ).with_context(original_type=error_type)


def handle_google_error(error: Exception, provider_name: str) -> AIError:
    """处理 Google (Gemini) 格式的错误。

    google-api-core 异常类名即 gRPC 状态, 优先按类名判断, 其次按消息关键词。
    """
    error_type: str = type(error).__name__
    error_message: str = str(error)
    lowered = error_message.lower()

    if "InvalidAPIKey" in error_type or "api key not valid" in lowered:
        return AuthenticationError(error_message, provider=provider_name, cause=error)

    if "ResourceExhausted" in error_type or "429" in error_message:
        if "quota" in lowered:
            return QuotaExceededError(error_message, provider=provider_name, cause=error)
        return RateLimitError(
            error_message, provider=provider_name, status_code=429, cause=error
        )

    if "PermissionDenied" in error_type or "Unauthenticated" in error_type:
        return AuthenticationError(
            f"Access forbidden: {error_message}",
            provider=provider_name,
            status_code=403,
            cause=error,
        )

    if "InvalidArgument" in error_type:
        return InvalidRequestError(
            error_message, provider=provider_name, status_code=400, cause=error
        )

    if "NotFound" in error_type:
        return ModelNotFoundError(
            error_message, provider=provider_name, status_code=404, cause=error
        )

    if "ServiceUnavailable" in error_type or "Unavailable" in error_type:
        return ProviderNotAvailableError(
            error_message, provider=provider_name, status_code=503, cause=error
        )

    if "DeadlineExceeded" in error_type or "timeout" in lowered:
        return TimeoutError(error_message, provider=provider_name, cause=error)

    if "BlockedPrompt" in error_type or "StopCandidate" in error_type:
        return ContentFilterError(error_message, provider=provider_name, cause=error)

    if "InternalServerError" in error_type or "500" in error_message:
        return InternalServerError(
            error_message, provider=provider_name, status_code=500, cause=error
        )

    return InternalServerError(
        f"Unexpected error: {error_type}: {error_message}",
        provider=provider_name,
        cause=error,
    ).with_context(original_type=error_type)


def message_to_openai_format(message: Message) -> dict[str, Any]:
    """将统一消息格式转换为 OpenAI API 格式。

    Args:
        message: 统一消息对象。

    Returns:
        dict[str, Any]: OpenAI API 格式的消息字典。
    """
    result: dict[str, Any] = {"role": message.role.value}

    if message.content is not None:
        if isinstance(message.content, str):
            result["content"] = message.content
        else:
            # 多模态内容
            parts: list[dict[str, Any]] = []
            for part in message.content:
                if isinstance(part, TextContent):
                    parts.append({"type": "text", "text": part.text})
                elif isinstance(part, ImageContent):
                    url = part.image
                    if not url.startswith("http"):
                        mime = part.mime_type or "image/png"
                        url = f"data:{mime};base64,{part.image}"
                    parts.append({"type": "image_url", "image_url": {"url": url}})
            result["content"] = parts

    if message.name:
        result["name"] = message.name

    if message.tool_calls:
        result["tool_calls"] = [
            {
                "id": tc.id,
                "type": "function",
                "function": {
                    "name": tc.name,
                    "arguments": (
                        tc.arguments
                        if isinstance(tc.arguments, str)
                        else json.dumps(tc.arguments)
                    ),
                },
            }
            for tc in message.tool_calls
        ]

    if message.role == Role.TOOL and message.tool_call_id:
        result["tool_call_id"] = message.tool_call_id

    return result


def openai_tool_to_dict(tool: dict[str, Any]) -> dict[str, Any]:
    """将 OpenAI 工具调用格式转换为统一格式。

    参数不是合法 JSON 时保留原始字符串。
    """
    arguments = tool["function"]["arguments"]
    if isinstance(arguments, str):
        with contextlib.suppress(ValueError):
            arguments = json.loads(arguments)

    return {
        "id": tool["id"],
        "name": tool["function"]["name"],
        "arguments": arguments,
    }


_OPENAI_FINISH_REASONS: dict[str, FinishReason] = {
    "stop": FinishReason.STOP,
    "tool_calls": FinishReason.STOP,
    "function_call": FinishReason.STOP,
    "length": FinishReason.MAX_TOKENS,
    "content_filter": FinishReason.OTHER,
}


def map_openai_finish_reason(
    reason: str | None,
    *,
    final: bool,
) -> FinishReason | None:
    """将 OpenAI 结束原因映射到封闭集合。

    Args:
        reason: 原始结束原因。
        final: 是否为完整响应; 完整响应缺少信号时保守地返回 MAX_TOKENS。

    Returns:
        FinishReason | None: 流式中间块返回 None。
    """
    if reason is None:
        return FinishReason.MAX_TOKENS if final else None
    return _OPENAI_FINISH_REASONS.get(reason, FinishReason.OTHER)
