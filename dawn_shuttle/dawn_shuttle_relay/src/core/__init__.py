"""Core 模块 - 核心抽象和类型定义。"""

from .auth import (
    AuthRefresher,
    AuthType,
    get_auth_type_from_env,
    resolve_effective_auth,
    validate_auth_method,
    validate_non_interactive_auth,
)
from .config import GenerateConfig, ProviderConfig
from .env import EnvironmentSnapshot
from .error import (
    AIError,
    AuthenticationError,
    AuthNotConfiguredError,
    AuthValidationError,
    ConfigurationError,
    ConnectionError,
    InvalidRequestError,
    ModelNotFoundError,
    ProviderNotAvailableError,
    RateLimitError,
    ResponseParseError,
    TimeoutError,
)
from .generate import generate_text, stream_text
from .generator import ContentGenerator
from .provider import BaseProvider
from .request import GenerateRequest
from .response import (
    Candidate,
    ContentEmbedding,
    CountTokensResponse,
    EmbedContentResponse,
    FinishReason,
    GenerateResponse,
    StreamChunk,
    Usage,
)
from .types import ContentPart, ImageContent, Message, Role, TextContent, ToolCall

__all__ = [
    # 类型定义
    "Message",
    "Role",
    "ContentPart",
    "TextContent",
    "ImageContent",
    "ToolCall",
    # 配置
    "GenerateConfig",
    "ProviderConfig",
    "EnvironmentSnapshot",
    "GenerateRequest",
    # 认证
    "AuthType",
    "AuthRefresher",
    "get_auth_type_from_env",
    "resolve_effective_auth",
    "validate_auth_method",
    "validate_non_interactive_auth",
    # 响应
    "Candidate",
    "FinishReason",
    "GenerateResponse",
    "StreamChunk",
    "Usage",
    "CountTokensResponse",
    "ContentEmbedding",
    "EmbedContentResponse",
    # Provider
    "BaseProvider",
    "ContentGenerator",
    # 错误
    "AIError",
    "AuthenticationError",
    "AuthNotConfiguredError",
    "AuthValidationError",
    "ConfigurationError",
    "RateLimitError",
    "ModelNotFoundError",
    "InvalidRequestError",
    "ResponseParseError",
    "TimeoutError",
    "ConnectionError",
    "ProviderNotAvailableError",
    # 入口函数
    "generate_text",
    "stream_text",
]
