"""配置类 - 生成参数与提供商连接配置。"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .auth import AuthType
    from .env import EnvironmentSnapshot

StopSequences = str | Sequence[str]
"""停止序列类型, 可以是单个字符串或字符串列表。"""

ToolChoice = str | dict[str, Any]
"""工具选择策略类型。"""

DEFAULT_TIMEOUT: float = 120.0
"""默认请求超时(秒)。"""

DEFAULT_MAX_RETRIES: int = 3
"""默认最大重试次数, 由传输层执行。"""


@dataclass
class GenerateConfig:
    """生成配置, 包含所有 AI 调用的通用参数。

    Attributes:
        model: 模型标识(如 "gpt-4o", "gemini-2.0-flash")。
        temperature: 采样温度, 控制输出的随机性。范围 0.0-2.0。
        top_p: Top-p 采样参数, 控制多样性。
        top_k: Top-k 采样参数, 限制候选 token 数量。
        max_tokens: 最大输出 token 数。
        stop: 停止词, 遇到时停止生成。
        stream: 是否启用流式输出。
        tools: 工具定义列表(OpenAI function 格式, 原样透传)。
        tool_choice: 工具选择策略。
        extra: 额外参数, 用于提供商特定选项。
    """

    # 模型标识
    model: str = ""

    # 采样参数
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None

    # 输出控制
    max_tokens: int | None = None
    stop: StopSequences | None = None

    # 流式输出
    stream: bool = False

    # 工具定义
    tools: list[dict[str, Any]] | None = None
    tool_choice: ToolChoice | None = None

    # 额外参数(提供商特定)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """转换为字典, 过滤掉 None 值。

        Returns:
            dict[str, Any]: 不包含 None 值的配置字典。
        """
        result: dict[str, Any] = {}

        if self.model:
            result["model"] = self.model

        # 采样参数
        if self.temperature is not None:
            result["temperature"] = self.temperature
        if self.top_p is not None:
            result["top_p"] = self.top_p
        if self.top_k is not None:
            result["top_k"] = self.top_k

        # 输出控制
        if self.max_tokens is not None:
            result["max_tokens"] = self.max_tokens
        if self.stop is not None:
            if isinstance(self.stop, str):
                result["stop"] = self.stop
            else:
                result["stop"] = list(self.stop)

        if self.tools is not None:
            result["tools"] = self.tools
        if self.tool_choice is not None:
            result["tool_choice"] = self.tool_choice

        # 合并额外参数
        result.update(self.extra)

        return result


@dataclass(frozen=True)
class ProviderConfig:
    """提供商连接配置, 每个会话构建一次, 之后只读。

    Attributes:
        model: 默认模型标识, 请求未指定模型时使用。
        api_key: API 密钥, 本地后端可为空。
        base_url: 自定义 API 端点, 为空时使用适配器默认值。
        timeout: 请求超时(秒), 交给传输层。
        max_retries: 最大重试次数, 交给传输层。
        client_version: 客户端版本号, 写入 User-Agent。
        auth_type: 生效的认证方式。
        embedding_model: 嵌入模型标识(可选)。
    """

    model: str = ""
    api_key: str | None = None
    base_url: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    client_version: str | None = None
    auth_type: AuthType | None = None
    embedding_model: str | None = None

    @classmethod
    def from_env(
        cls,
        env: EnvironmentSnapshot,
        auth_type: AuthType,
        *,
        model: str = "",
        **kwargs: Any,
    ) -> ProviderConfig:
        """根据环境快照和认证方式推导连接配置。

        Args:
            env: 环境变量快照。
            auth_type: 生效的认证方式。
            model: 显式指定的模型, 优先于环境变量。
            **kwargs: 其他字段(timeout, max_retries, client_version 等)。

        Returns:
            ProviderConfig: 只读配置。
        """
        from .auth import AuthType

        if auth_type == AuthType.USE_OPENAI:
            return cls(
                model=model or env.openai_model or "",
                api_key=env.openai_api_key,
                base_url=env.openai_base_url,
                auth_type=auth_type,
                **kwargs,
            )

        api_key = env.gemini_api_key
        if auth_type == AuthType.USE_VERTEX_AI:
            api_key = env.google_api_key
        elif auth_type == AuthType.LOGIN_WITH_GOOGLE:
            api_key = None

        return cls(
            model=model,
            api_key=api_key,
            auth_type=auth_type,
            **kwargs,
        )
