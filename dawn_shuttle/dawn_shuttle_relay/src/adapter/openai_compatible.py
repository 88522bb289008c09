"""OpenAI 兼容适配器 - 通用的 OpenAI 兼容 HTTP API 实现。

未命中其他适配器时的默认选择; DeepSeek、OpenRouter 等变体继承此类,
只覆盖请求头或请求转换。
"""

from __future__ import annotations

import inspect
from collections.abc import AsyncGenerator, Sequence
from dataclasses import replace
from typing import TYPE_CHECKING, Any, ClassVar

from ..core.error import ResponseParseError
from ..core.provider import BaseProvider
from ..core.request import GenerateRequest
from ..core.response import (
    ContentEmbedding,
    EmbedContentResponse,
    GenerateResponse,
    StreamChunk,
    Usage,
    text_candidate,
)
from ..core.tokens import empty_embeddings
from ..core.types import Message
from .base import (
    handle_openai_error,
    is_local_ollama,
    map_openai_finish_reason,
    message_to_openai_format,
    openai_tool_to_dict,
    validate_config,
    validate_messages,
)

if TYPE_CHECKING:
    from openai import AsyncOpenAI
    from openai.types.chat import ChatCompletion, ChatCompletionChunk

PLACEHOLDER_API_KEY: str = "ollama"
"""本地 OpenAI 兼容服务不校验密钥, 但 SDK 要求非空。"""


class OpenAICompatibleProvider(BaseProvider):
    """OpenAI 兼容格式的提供商。"""

    name: str = "openai"

    DEFAULT_BASE_URL: ClassVar[str] = "https://api.openai.com/v1"

    def build_client(self) -> AsyncOpenAI:
        """构建 AsyncOpenAI 客户端, 超时与重试交给 SDK。

        Raises:
            ImportError: openai 包未安装。
        """
        try:
            from openai import AsyncOpenAI
        except ImportError as e:
            raise ImportError("openai 包未安装, 请运行: pip install openai") from e

        return AsyncOpenAI(
            api_key=self.config.api_key or PLACEHOLDER_API_KEY,
            base_url=self.base_url,
            timeout=self.config.timeout,
            max_retries=self.config.max_retries,
            default_headers=self.build_headers(),
        )

    def _convert_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        return [message_to_openai_format(m) for m in messages]

    def build_request(
        self,
        request: GenerateRequest,
        *,
        stream: bool = False,
    ) -> dict[str, Any]:
        """构建 chat.completions 请求参数。

        本地 Ollama 上的许多模型不支持工具调用, 此时去掉 tools。
        """
        config = request.config
        params: dict[str, Any] = {
            "model": self.resolve_model(request),
            "messages": self._convert_messages(request.messages),
        }

        if config.temperature is not None:
            params["temperature"] = config.temperature
        if config.top_p is not None:
            params["top_p"] = config.top_p
        if config.max_tokens is not None:
            params["max_tokens"] = config.max_tokens
        if config.stop is not None:
            params["stop"] = config.stop
        if stream:
            params["stream"] = True

        if config.tools and not is_local_ollama(self.config, self.env):
            params["tools"] = config.tools
            if config.tool_choice:
                params["tool_choice"] = config.tool_choice

        params.update(config.extra)

        return params

    def _validate(self, request: GenerateRequest, params: dict[str, Any]) -> None:
        validate_messages(request.messages, self.name)
        validate_config(replace(request.config, model=params["model"]), self.name)

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        """生成文本响应(非流式)。"""
        params = self.build_request(request)
        self._validate(request, params)

        client = self._get_client()
        try:
            response = await client.chat.completions.create(**params)
        except Exception as e:
            raise handle_openai_error(e, self.name, self.base_url) from e

        try:
            return self._parse_response(response)
        except (KeyError, IndexError, AttributeError) as e:
            raise ResponseParseError(
                f"Failed to parse response: {e}",
                provider=self.name,
                url=self.base_url,
            ) from e

    async def generate_stream(
        self,
        request: GenerateRequest,
    ) -> AsyncGenerator[StreamChunk, None]:
        """生成流式响应。"""
        params = self.build_request(request, stream=True)
        self._validate(request, params)

        client = self._get_client()
        try:
            stream = await client.chat.completions.create(**params)
        except Exception as e:
            raise handle_openai_error(e, self.name, self.base_url) from e

        try:
            async for chunk in stream:
                parsed = self._parse_stream_chunk(chunk)
                if parsed is not None:
                    yield parsed
        except (KeyError, IndexError, AttributeError) as e:
            raise ResponseParseError(
                f"Failed to parse stream chunk: {e}",
                provider=self.name,
                url=self.base_url,
            ) from e
        except Exception as e:
            raise handle_openai_error(e, self.name, self.base_url) from e
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                result = close()
                if inspect.isawaitable(result):
                    await result

    async def embed_content(
        self,
        contents: Sequence[Message],
    ) -> EmbedContentResponse:
        """配置了 embedding_model 时使用原生 embeddings 接口。"""
        if not self.config.embedding_model:
            return empty_embeddings(contents)

        client = self._get_client()
        try:
            response = await client.embeddings.create(
                model=self.config.embedding_model,
                input=[m.text for m in contents],
            )
        except Exception as e:
            raise handle_openai_error(e, self.name, self.base_url) from e

        ordered = sorted(response.data, key=lambda item: item.index)
        return EmbedContentResponse(
            embeddings=[ContentEmbedding(values=list(item.embedding)) for item in ordered]
        )

    def _parse_response(self, response: ChatCompletion) -> GenerateResponse:
        """解析 ChatCompletion 为统一格式。"""
        choice = response.choices[0]

        tool_calls: list[dict[str, Any]] = []
        if choice.message.tool_calls:
            tool_calls = [
                openai_tool_to_dict(tc.model_dump())
                for tc in choice.message.tool_calls
            ]

        usage: Usage | None = None
        if response.usage:
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        return GenerateResponse(
            candidates=[
                text_candidate(
                    choice.message.content or "",
                    map_openai_finish_reason(choice.finish_reason, final=True),
                    index=choice.index or 0,
                    tool_calls=tool_calls,
                )
            ],
            usage=usage,
            model=response.model,
            response_id=response.id,
            raw=response,
        )

    def _parse_stream_chunk(
        self,
        chunk: ChatCompletionChunk,
    ) -> StreamChunk | None:
        """解析流式块, 没有 choices 的块(如单独的 usage 块)返回 None。"""
        if not chunk.choices:
            return None

        choice = chunk.choices[0]
        delta = choice.delta

        tool_calls: list[dict[str, Any]] = []
        if delta.tool_calls:
            for tc in delta.tool_calls:
                tool_call: dict[str, Any] = {"id": tc.id or "", "index": tc.index}
                if tc.function:
                    tool_call["name"] = tc.function.name or ""
                    tool_call["arguments"] = tc.function.arguments or ""
                tool_calls.append(tool_call)

        return StreamChunk(
            candidates=[
                text_candidate(
                    delta.content or "",
                    map_openai_finish_reason(choice.finish_reason, final=False),
                    index=choice.index or 0,
                    tool_calls=tool_calls,
                )
            ],
            model=chunk.model,
            response_id=chunk.id,
            raw=chunk,
        )
