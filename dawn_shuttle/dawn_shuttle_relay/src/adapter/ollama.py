"""Ollama 适配器 - 对接本地 Ollama 服务的原生 /api/chat 接口。

Ollama 不提供 token 计数与嵌入接口, 使用基类的降级实现。
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import aclosing
from dataclasses import replace
from typing import Any, ClassVar

import httpx

from ..core.config import ProviderConfig
from ..core.env import EnvironmentSnapshot
from ..core.error import ResponseParseError
from ..core.provider import BaseProvider
from ..core.request import GenerateRequest
from ..core.response import (
    FinishReason,
    GenerateResponse,
    StreamChunk,
    text_candidate,
)
from ..core.types import Role
from .base import (
    handle_http_error,
    map_status_code_to_error,
    validate_config,
    validate_messages,
)
from .ndjson import iter_frames

DEFAULT_TEMPERATURE: float = 0.7
DEFAULT_TOP_P: float = 1.0
DEFAULT_MAX_TOKENS: int = 4096


def _strip_v1(url: str) -> str:
    # OLLAMA_HOST 常被写成 OpenAI 兼容端点, 原生接口不带 /v1
    url = url.rstrip("/")
    if url.endswith("/v1"):
        url = url[: -len("/v1")]
    return url


class OllamaProvider(BaseProvider):
    """Ollama 原生接口适配器。"""

    name: str = "ollama"

    DEFAULT_BASE_URL: ClassVar[str] = "http://localhost:11434"

    DEFAULT_MODEL: ClassVar[str] = "llama3.2:1b"

    CHAT_PATH: ClassVar[str] = "/api/chat"

    @classmethod
    def is_applicable(
        cls,
        config: ProviderConfig,
        env: EnvironmentSnapshot,
    ) -> bool:
        if config.base_url and "ollama" in config.base_url:
            return True
        return bool(env.ollama_host or env.ollama_model)

    @property
    def base_url(self) -> str:
        url = self.config.base_url or self.env.ollama_host or self.DEFAULT_BASE_URL
        return _strip_v1(url)

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}{self.CHAT_PATH}"

    def build_headers(self) -> dict[str, str]:
        headers = super().build_headers()
        headers["Content-Type"] = "application/json"
        # 原生接口不鉴权; config.api_key 可能是 OPENAI_API_KEY, 不能发给本地服务
        return headers

    def build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.build_headers(),
            timeout=self.config.timeout,
            transport=httpx.AsyncHTTPTransport(retries=self.config.max_retries),
        )

    def resolve_model(self, request: GenerateRequest) -> str:
        """OLLAMA_MODEL > 请求模型 > 配置模型 > 内置默认。"""
        return (
            self.env.ollama_model
            or request.model
            or self.config.model
            or self.DEFAULT_MODEL
        )

    def build_request(
        self,
        request: GenerateRequest,
        *,
        stream: bool = False,
    ) -> dict[str, Any]:
        """构建 /api/chat 请求体。

        工具定义不会被发送; 没有文本内容的消息被丢弃。
        """
        messages: list[dict[str, str]] = []
        for message in request.messages:
            if message.role not in (Role.SYSTEM, Role.USER, Role.ASSISTANT):
                continue
            text = message.text
            if not text:
                continue
            messages.append({"role": message.role.value, "content": text})

        config = request.config
        options: dict[str, Any] = {
            "temperature": (
                config.temperature
                if config.temperature is not None
                else DEFAULT_TEMPERATURE
            ),
            "top_p": config.top_p if config.top_p is not None else DEFAULT_TOP_P,
            "max_tokens": config.max_tokens or DEFAULT_MAX_TOKENS,
        }
        if config.top_k is not None:
            options["top_k"] = config.top_k

        return {
            "model": self.resolve_model(request),
            "messages": messages,
            "stream": stream,
            "options": options,
        }

    def _validate(self, request: GenerateRequest, payload: dict[str, Any]) -> None:
        validate_messages(request.messages, self.name)
        # 模型已按优先级解析, 只需校验采样参数
        validate_config(replace(request.config, model=payload["model"]), self.name)

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        """生成文本响应(非流式)。"""
        payload = self.build_request(request, stream=False)
        self._validate(request, payload)

        client = self._get_client()
        try:
            response = await client.post(self.CHAT_PATH, json=payload)
        except httpx.HTTPError as e:
            raise handle_http_error(e, self.name, self.chat_url) from e

        if not response.is_success:
            raise map_status_code_to_error(
                response.status_code,
                f"Ollama API error: {response.status_code} {response.reason_phrase}",
                self.name,
                url=self.chat_url,
                body=response.text[:500],
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ResponseParseError(
                f"Failed to parse response: {e}",
                provider=self.name,
                url=self.chat_url,
            ) from e

        return self._parse_response(data)

    async def generate_stream(
        self,
        request: GenerateRequest,
    ) -> AsyncGenerator[StreamChunk, None]:
        """生成流式响应。

        响应体在 ``async with`` 中读取, 正常结束、出错或调用方提前
        ``aclose()`` 时都会释放连接。
        """
        payload = self.build_request(request, stream=True)
        self._validate(request, payload)

        client = self._get_client()
        try:
            async with client.stream("POST", self.CHAT_PATH, json=payload) as response:
                if not response.is_success:
                    await response.aread()
                    raise map_status_code_to_error(
                        response.status_code,
                        f"Ollama API error: {response.status_code} "
                        f"{response.reason_phrase}",
                        self.name,
                        url=self.chat_url,
                        body=response.text[:500],
                    )

                async with aclosing(iter_frames(response.aiter_bytes())) as frames:
                    async for frame in frames:
                        chunk = self._parse_stream_chunk(frame)
                        if chunk is not None:
                            yield chunk
        except httpx.HTTPError as e:
            raise handle_http_error(e, self.name, self.chat_url) from e

    def _parse_response(self, data: dict[str, Any]) -> GenerateResponse:
        """非流式响应: done=true 为 STOP, 否则保守地视为 MAX_TOKENS。"""
        message = data.get("message")
        if not isinstance(message, dict):
            raise ResponseParseError(
                "Response has no message",
                provider=self.name,
                url=self.chat_url,
            )

        finish_reason = (
            FinishReason.STOP if data.get("done") else FinishReason.MAX_TOKENS
        )
        return GenerateResponse(
            candidates=[text_candidate(message.get("content") or "", finish_reason)],
            model=data.get("model"),
            raw=data,
        )

    def _parse_stream_chunk(self, frame: dict[str, Any]) -> StreamChunk | None:
        """流式帧: 既无 message 也无 response 的帧被忽略。"""
        message = frame.get("message")
        legacy = frame.get("response")
        if message is None and not legacy:
            return None

        text = ""
        if isinstance(message, dict):
            text = message.get("content") or ""
        if not text and isinstance(legacy, str):
            text = legacy

        finish_reason = FinishReason.STOP if frame.get("done") else None
        return StreamChunk(
            candidates=[text_candidate(text, finish_reason)],
            model=frame.get("model"),
            raw=frame,
        )
