"""认证方式解析 - 从环境快照与配置推导生效的认证方式。

解析本身是纯函数; 唯一的副作用是 validate_non_interactive_auth 末尾的
一次 refresh_auth 调用。
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

import structlog

from .env import EnvironmentSnapshot
from .error import AuthNotConfiguredError, AuthValidationError

_log = structlog.get_logger(__name__)

AUTH_ENV_VARS: tuple[str, ...] = (
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "OLLAMA_HOST",
    "OPENAI_BASE_URL",
    "GOOGLE_GENAI_USE_VERTEXAI",
    "GOOGLE_GENAI_USE_GCA",
)
"""可以决定认证方式的环境变量, 用于错误提示。"""


class AuthType(str, Enum):
    """认证方式枚举。"""

    LOGIN_WITH_GOOGLE = "oauth-personal"
    USE_VERTEX_AI = "vertex-ai"
    USE_GEMINI = "gemini-api-key"
    USE_OPENAI = "openai"


GEMINI_AUTH_TYPES: frozenset[AuthType] = frozenset(
    {AuthType.LOGIN_WITH_GOOGLE, AuthType.USE_VERTEX_AI, AuthType.USE_GEMINI}
)
"""走 Gemini 后端的认证方式。"""


class AuthRefresher(Protocol):
    """认证刷新协作方(由外部配置层实现)。"""

    async def refresh_auth(self, auth_type: AuthType) -> None: ...


def get_auth_type_from_env(env: EnvironmentSnapshot) -> AuthType | None:
    """按固定优先级从环境快照推导认证方式。

    Args:
        env: 环境变量快照。

    Returns:
        AuthType | None: 命中的认证方式, 均未命中时返回 None。
    """
    if env.use_gca:
        return AuthType.LOGIN_WITH_GOOGLE
    if env.use_vertexai:
        return AuthType.USE_VERTEX_AI
    if env.gemini_api_key:
        return AuthType.USE_GEMINI
    # 本地 Ollama 与自定义端点都走 OpenAI 兼容路径, 不要求 OPENAI_API_KEY
    if env.ollama_host:
        return AuthType.USE_OPENAI
    if env.openai_base_url:
        return AuthType.USE_OPENAI
    if env.openai_api_key:
        return AuthType.USE_OPENAI
    return None


def resolve_effective_auth(
    configured: AuthType | None,
    env: EnvironmentSnapshot,
) -> AuthType | None:
    """环境信号优先, 其次使用配置的认证方式。"""
    return get_auth_type_from_env(env) or configured


def validate_auth_method(
    auth_type: AuthType,
    env: EnvironmentSnapshot,
) -> str | None:
    """检查认证方式所需的凭据是否齐全。

    Args:
        auth_type: 待检查的认证方式。
        env: 环境变量快照。

    Returns:
        str | None: 错误描述, 校验通过时返回 None。
    """
    if auth_type == AuthType.LOGIN_WITH_GOOGLE:
        return None

    if auth_type == AuthType.USE_GEMINI:
        if not env.gemini_api_key:
            return (
                "GEMINI_API_KEY environment variable not found. "
                "Add that to your environment and try again."
            )
        return None

    if auth_type == AuthType.USE_VERTEX_AI:
        has_project = bool(env.google_cloud_project and env.google_cloud_location)
        if not has_project and not env.google_api_key:
            return (
                "When using Vertex AI, you must specify either:\n"
                "• GOOGLE_CLOUD_PROJECT and GOOGLE_CLOUD_LOCATION "
                "environment variables.\n"
                "• GOOGLE_API_KEY environment variable (if using express mode).\n"
                "Update your environment and try again."
            )
        return None

    if auth_type == AuthType.USE_OPENAI:
        if env.openai_api_key or env.ollama_host or env.openai_base_url:
            return None
        return (
            "OPENAI_API_KEY environment variable not found. "
            "Set OPENAI_API_KEY, or OLLAMA_HOST / OPENAI_BASE_URL "
            "for a local server, and try again."
        )

    return "Invalid auth method selected."


async def validate_non_interactive_auth(
    configured: AuthType | None,
    use_external_auth: bool,
    env: EnvironmentSnapshot,
    refresher: AuthRefresher,
) -> AuthType:
    """解析、校验认证方式, 并在通过后刷新一次认证。

    Args:
        configured: 配置文件中的认证方式。
        use_external_auth: 凭据由外部(SSO/OAuth)管理时跳过校验。
        env: 环境变量快照。
        refresher: 认证刷新协作方。

    Returns:
        AuthType: 生效的认证方式。

    Raises:
        AuthNotConfiguredError: 没有任何认证方式可用。
        AuthValidationError: 认证方式与可用凭据不一致。
    """
    auth_type = resolve_effective_auth(configured, env)

    if auth_type is None:
        raise AuthNotConfiguredError(
            "Please set an Auth method in your settings or specify one of "
            "the following environment variables before running: "
            + ", ".join(AUTH_ENV_VARS),
        )

    _log.info(
        "auth_resolved",
        auth_type=auth_type.value,
        from_env=get_auth_type_from_env(env) is not None,
    )

    if not use_external_auth:
        error = validate_auth_method(auth_type, env)
        if error is not None:
            raise AuthValidationError(error).with_context(auth_type=auth_type.value)

    await refresher.refresh_auth(auth_type)
    _log.debug("auth_refreshed", auth_type=auth_type.value)
    return auth_type
