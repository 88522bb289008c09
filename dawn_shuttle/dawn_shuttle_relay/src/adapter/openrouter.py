"""OpenRouter 适配器 - 对接 OpenRouter 聚合 API。"""

from __future__ import annotations

from typing import ClassVar

from ..core.config import ProviderConfig
from ..core.env import EnvironmentSnapshot
from .openai_compatible import OpenAICompatibleProvider

APP_URL: str = "https://github.com/dawn-shuttle/relay"
APP_TITLE: str = "Dawn Shuttle Relay"


class OpenRouterProvider(OpenAICompatibleProvider):
    """OpenRouter 适配器, 额外发送应用标识请求头用于排行统计。"""

    name: str = "openrouter"

    DEFAULT_BASE_URL: ClassVar[str] = "https://openrouter.ai/api/v1"

    @classmethod
    def is_applicable(
        cls,
        config: ProviderConfig,
        env: EnvironmentSnapshot,
    ) -> bool:
        return "openrouter.ai" in (config.base_url or "")

    def build_headers(self) -> dict[str, str]:
        headers = super().build_headers()
        headers["HTTP-Referer"] = APP_URL
        headers["X-Title"] = APP_TITLE
        return headers
