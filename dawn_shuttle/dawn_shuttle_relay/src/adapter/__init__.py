"""Adapter 模块 - 各后端适配器与选择注册表。"""

from .base import is_local_ollama, message_to_openai_format, openai_tool_to_dict
from .deepseek import DeepSeekProvider
from .google import GoogleProvider
from .ndjson import NDJSONDecoder, iter_frames
from .ollama import OllamaProvider
from .openai_compatible import OpenAICompatibleProvider
from .openrouter import OpenRouterProvider
from .registry import PROVIDER_PRIORITY, select_provider, select_provider_class

__all__ = [
    "DeepSeekProvider",
    "GoogleProvider",
    "NDJSONDecoder",
    "OllamaProvider",
    "OpenAICompatibleProvider",
    "OpenRouterProvider",
    "PROVIDER_PRIORITY",
    "is_local_ollama",
    "iter_frames",
    "message_to_openai_format",
    "openai_tool_to_dict",
    "select_provider",
    "select_provider_class",
]
