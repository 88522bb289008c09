"""提供商注册表 - 按固定优先级选择适配器。

选择表是封闭的有序元组, 第一个谓词为真的适配器胜出;
全部不匹配时使用通用的 OpenAI 兼容适配器。
"""

from __future__ import annotations

import structlog

from ..core.config import ProviderConfig
from ..core.env import EnvironmentSnapshot
from ..core.provider import BaseProvider
from .deepseek import DeepSeekProvider
from .google import GoogleProvider
from .ollama import OllamaProvider
from .openai_compatible import OpenAICompatibleProvider
from .openrouter import OpenRouterProvider

_log = structlog.get_logger(__name__)

PROVIDER_PRIORITY: tuple[type[BaseProvider], ...] = (
    GoogleProvider,
    OllamaProvider,
    DeepSeekProvider,
    OpenRouterProvider,
)
"""选择顺序, 越靠前优先级越高。"""

DEFAULT_PROVIDER: type[BaseProvider] = OpenAICompatibleProvider


def select_provider_class(
    config: ProviderConfig,
    env: EnvironmentSnapshot,
) -> type[BaseProvider]:
    """返回第一个匹配的适配器类。"""
    for provider_class in PROVIDER_PRIORITY:
        if provider_class.is_applicable(config, env):
            return provider_class
    return DEFAULT_PROVIDER


def select_provider(
    config: ProviderConfig,
    env: EnvironmentSnapshot | None = None,
) -> BaseProvider:
    """根据配置与环境快照实例化适配器。

    Args:
        config: 只读连接配置。
        env: 环境变量快照, 默认视为空环境。

    Returns:
        BaseProvider: 选中的适配器实例。
    """
    env = env or EnvironmentSnapshot()
    provider_class = select_provider_class(config, env)
    provider = provider_class(config, env)
    _log.debug(
        "provider_selected",
        provider=provider.name,
        auth_type=config.auth_type.value if config.auth_type else None,
        base_url=provider.base_url,
    )
    return provider
