"""DeepSeek 适配器 - 对接 DeepSeek API。

DeepSeek API 兼容 OpenAI 格式, 但消息内容只接受字符串。
"""

from __future__ import annotations

from typing import Any, ClassVar

from ..core.config import ProviderConfig
from ..core.env import EnvironmentSnapshot
from ..core.types import Message
from .openai_compatible import OpenAICompatibleProvider


class DeepSeekProvider(OpenAICompatibleProvider):
    """DeepSeek API 适配器。"""

    name: str = "deepseek"

    DEFAULT_BASE_URL: ClassVar[str] = "https://api.deepseek.com/v1"

    @classmethod
    def is_applicable(
        cls,
        config: ProviderConfig,
        env: EnvironmentSnapshot,
    ) -> bool:
        return "api.deepseek.com" in (config.base_url or "")

    def _convert_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        converted = super()._convert_messages(messages)
        for message in converted:
            content = message.get("content")
            if isinstance(content, list):
                # 多模态块压平成文本, 非文本块丢弃
                message["content"] = "".join(
                    part.get("text", "") for part in content if part.get("type") == "text"
                )
        return converted
