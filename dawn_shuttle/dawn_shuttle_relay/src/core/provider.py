"""Provider 基类 - 定义后端适配器的统一接口。

一个适配器 = 选择谓词(is_applicable) + 请求转换(build_request)
+ 响应归一化(_parse_response / 流式解析)。
"""

from __future__ import annotations

import platform
import sys
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Sequence
from typing import Any, ClassVar

from .config import ProviderConfig
from .env import EnvironmentSnapshot
from .request import GenerateRequest
from .response import (
    CountTokensResponse,
    EmbedContentResponse,
    GenerateResponse,
    StreamChunk,
)
from .tokens import empty_embeddings, estimated_count
from .types import Message

PRODUCT_NAME: str = "DawnShuttleRelay"


def build_user_agent(version: str | None) -> str:
    """产品/版本/平台标识, 例如 ``DawnShuttleRelay/0.1.0 (linux; x86_64)``。"""
    return f"{PRODUCT_NAME}/{version or 'unknown'} ({sys.platform}; {platform.machine()})"


class BaseProvider(ABC):
    """后端适配器基类, 所有适配器必须实现此接口。

    Attributes:
        name: 提供商标识字符串。
        config: 只读连接配置。
        env: 环境变量快照。
    """

    # 提供商标识
    name: str = "base"

    # 默认 API 端点(子类覆盖)
    DEFAULT_BASE_URL: ClassVar[str | None] = None

    def __init__(
        self,
        config: ProviderConfig,
        env: EnvironmentSnapshot | None = None,
    ) -> None:
        """初始化提供商。

        Args:
            config: 连接配置, 适配器不会修改它。
            env: 环境变量快照, 默认视为空环境。
        """
        self.config = config
        self.env = env or EnvironmentSnapshot()
        self._client: Any = None

    @classmethod
    def is_applicable(
        cls,
        config: ProviderConfig,
        env: EnvironmentSnapshot,
    ) -> bool:
        """选择谓词, 默认不匹配; 由注册表按优先级调用。"""
        return False

    @property
    def base_url(self) -> str | None:
        """生效的 API 端点。"""
        return self.config.base_url or self.DEFAULT_BASE_URL

    def resolve_model(self, request: GenerateRequest) -> str:
        """请求模型优先, 其次配置中的默认模型。"""
        return request.model or self.config.model

    def build_headers(self) -> dict[str, str]:
        """默认请求头, 始终包含 User-Agent。"""
        return {"User-Agent": build_user_agent(self.config.client_version)}

    @abstractmethod
    def build_client(self) -> Any:
        """构建底层传输句柄。"""

    def _get_client(self) -> Any:
        """获取传输句柄(延迟初始化)。"""
        if self._client is None:
            self._client = self.build_client()
        return self._client

    @abstractmethod
    def build_request(
        self,
        request: GenerateRequest,
        *,
        stream: bool = False,
    ) -> dict[str, Any]:
        """将统一请求转换为后端原生请求。"""

    @abstractmethod
    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        """生成完整响应(非流式)。"""

    @abstractmethod
    def generate_stream(
        self,
        request: GenerateRequest,
    ) -> AsyncGenerator[StreamChunk, None]:
        """生成流式响应, 按到达顺序产出增量。"""

    async def count_tokens(self, request: GenerateRequest) -> CountTokensResponse:
        """无原生计数接口时按字符数估算。"""
        return estimated_count(request.messages)

    async def embed_content(
        self,
        contents: Sequence[Message],
    ) -> EmbedContentResponse:
        """无嵌入支持时每个输入返回空向量。"""
        return empty_embeddings(contents)

    async def aclose(self) -> None:
        """释放传输句柄。"""
        client, self._client = self._client, None
        if client is None:
            return
        close = getattr(client, "aclose", None) or getattr(client, "close", None)
        if close is not None:
            result = close()
            if hasattr(result, "__await__"):
                await result
