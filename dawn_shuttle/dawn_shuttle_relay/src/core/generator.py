"""ContentGenerator - 组合注册表、请求转换与响应归一化的统一入口。"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator, Sequence
from contextlib import aclosing
from types import TracebackType

import structlog

from .config import ProviderConfig
from .env import EnvironmentSnapshot
from .error import AIError
from .provider import BaseProvider
from .request import GenerateRequest
from .response import (
    CountTokensResponse,
    EmbedContentResponse,
    GenerateResponse,
    StreamChunk,
)
from .types import Message

_log = structlog.get_logger(__name__)


class ContentGenerator:
    """单一入口: 给定统一请求, 返回完整响应或惰性的增量序列。

    Example::

        env = EnvironmentSnapshot.from_environ()
        config = ProviderConfig.from_env(env, AuthType.USE_OPENAI)
        async with ContentGenerator.from_config(config, env) as generator:
            async for chunk in generator.generate_content_stream(request):
                print(chunk.text, end="")
    """

    def __init__(self, provider: BaseProvider) -> None:
        self.provider = provider

    @classmethod
    def from_config(
        cls,
        config: ProviderConfig,
        env: EnvironmentSnapshot | None = None,
    ) -> ContentGenerator:
        """按注册表优先级选择适配器并构建生成器。"""
        from ..adapter.registry import select_provider

        return cls(select_provider(config, env))

    async def __aenter__(self) -> ContentGenerator:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def _bind(self, request: GenerateRequest) -> structlog.typing.FilteringBoundLogger:
        return _log.bind(
            provider=self.provider.name,
            model=self.provider.resolve_model(request),
            prompt_id=request.prompt_id,
        )

    async def generate_content(self, request: GenerateRequest) -> GenerateResponse:
        """生成完整响应。

        Raises:
            AIError: 配置错误或传输错误。
        """
        log = self._bind(request)
        log.info("generate_request_start", stream=False)
        start = time.perf_counter()

        try:
            response = await self.provider.generate(request)
        except AIError as e:
            log.error(
                "generate_request_failed",
                error_type=type(e).__name__,
                error=str(e),
                status_code=e.status_code,
            )
            raise

        log.info(
            "generate_request_complete",
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
            finish_reason=response.finish_reason.value if response.finish_reason else None,
        )
        return response

    async def generate_content_stream(
        self,
        request: GenerateRequest,
    ) -> AsyncGenerator[StreamChunk, None]:
        """生成流式响应, 增量按到达顺序产出。

        调用方可随时停止迭代并 ``aclose()``, 底层读取资源随之释放。
        """
        log = self._bind(request)
        log.info("generate_request_start", stream=True)
        start = time.perf_counter()
        chunks = 0

        try:
            async with aclosing(self.provider.generate_stream(request)) as stream:
                async for chunk in stream:
                    chunks += 1
                    yield chunk
        except AIError as e:
            log.error(
                "generate_request_failed",
                error_type=type(e).__name__,
                error=str(e),
                status_code=e.status_code,
                chunks=chunks,
            )
            raise

        log.info(
            "generate_request_complete",
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
            chunks=chunks,
        )

    async def count_tokens(self, request: GenerateRequest) -> CountTokensResponse:
        """计数 token, 不支持的后端返回估算值。"""
        return await self.provider.count_tokens(request)

    async def embed_content(
        self,
        contents: Sequence[Message],
    ) -> EmbedContentResponse:
        """计算嵌入, 不支持的后端返回空向量。"""
        return await self.provider.embed_content(contents)

    async def aclose(self) -> None:
        await self.provider.aclose()
