"""Google (Gemini) 适配器 - 对接 Google Generative AI API。

用于 LOGIN_WITH_GOOGLE / USE_VERTEX_AI / USE_GEMINI 三种认证方式。
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import AsyncGenerator, Sequence
from dataclasses import replace
from typing import TYPE_CHECKING, Any, ClassVar

from ..core.auth import GEMINI_AUTH_TYPES
from ..core.config import ProviderConfig
from ..core.env import EnvironmentSnapshot
from ..core.error import ResponseParseError
from ..core.provider import BaseProvider
from ..core.request import GenerateRequest
from ..core.response import (
    Candidate,
    ContentEmbedding,
    CountTokensResponse,
    EmbedContentResponse,
    FinishReason,
    GenerateResponse,
    StreamChunk,
    Usage,
    text_candidate,
)
from ..core.types import ImageContent, Message, Role, TextContent
from .base import handle_google_error, validate_config, validate_messages

if TYPE_CHECKING:
    from google.generativeai.types import GenerateContentResponse

DEFAULT_EMBEDDING_MODEL: str = "models/text-embedding-004"

_GEMINI_FINISH_REASONS: dict[str, FinishReason] = {
    "STOP": FinishReason.STOP,
    "MAX_TOKENS": FinishReason.MAX_TOKENS,
    "FINISH_REASON_UNSPECIFIED": FinishReason.UNSPECIFIED,
}


def _enum_name(value: Any) -> str:
    return getattr(value, "name", None) or str(value)


def map_gemini_finish_reason(reason: Any) -> FinishReason:
    """Gemini 结束原因映射, SAFETY / RECITATION 等归为 OTHER。"""
    return _GEMINI_FINISH_REASONS.get(_enum_name(reason), FinishReason.OTHER)


def _rating_to_dict(rating: Any) -> dict[str, Any]:
    return {
        "category": _enum_name(getattr(rating, "category", "")),
        "probability": _enum_name(getattr(rating, "probability", "")),
    }


class GoogleProvider(BaseProvider):
    """Google (Gemini) API 适配器。"""

    name: str = "google"

    DEFAULT_MODEL: ClassVar[str] = "gemini-2.0-flash"

    @classmethod
    def is_applicable(
        cls,
        config: ProviderConfig,
        env: EnvironmentSnapshot,
    ) -> bool:
        return config.auth_type in GEMINI_AUTH_TYPES

    def resolve_model(self, request: GenerateRequest) -> str:
        return request.model or self.config.model or self.DEFAULT_MODEL

    def build_client(self) -> Any:
        """配置 Google SDK 并返回 genai 模块。

        未提供 API Key 时(Google 登录), SDK 使用应用默认凭据。
        """
        try:
            import google.generativeai as genai
            from google.api_core.gapic_v1.client_info import ClientInfo
        except ImportError as e:
            raise ImportError(
                "google-generativeai 包未安装, "
                "请运行: pip install google-generativeai"
            ) from e

        genai.configure(
            api_key=self.config.api_key,
            client_info=ClientInfo(user_agent=self.build_headers()["User-Agent"]),
        )
        return genai

    def _get_model(self, model_name: str, system_instruction: str | None = None) -> Any:
        genai = self._get_client()
        if system_instruction:
            return genai.GenerativeModel(model_name, system_instruction=system_instruction)
        return genai.GenerativeModel(model_name)

    def _convert_parts(self, message: Message) -> list[dict[str, Any]]:
        if message.content is None:
            return []
        if isinstance(message.content, str):
            return [{"text": message.content}]

        parts: list[dict[str, Any]] = []
        for part in message.content:
            if isinstance(part, TextContent):
                parts.append({"text": part.text})
            elif isinstance(part, ImageContent):
                mime_type = part.mime_type or "image/png"
                if part.image.startswith("http"):
                    parts.append(
                        {"file_data": {"file_uri": part.image, "mime_type": mime_type}}
                    )
                    continue
                try:
                    data = base64.b64decode(part.image, validate=True)
                except (binascii.Error, ValueError):
                    data = part.image.encode()
                parts.append({"inline_data": {"mime_type": mime_type, "data": data}})
        return parts

    def build_request(
        self,
        request: GenerateRequest,
        *,
        stream: bool = False,
    ) -> dict[str, Any]:
        """构建 Gemini 请求参数。

        system 消息合并为 system_instruction, assistant 映射为 model 角色。
        """
        contents: list[dict[str, Any]] = []
        system_parts: list[str] = []

        for msg in request.messages:
            if msg.role == Role.SYSTEM:
                if msg.text:
                    system_parts.append(msg.text)
                continue

            role = "model" if msg.role == Role.ASSISTANT else "user"
            parts = self._convert_parts(msg)

            if msg.role == Role.TOOL and msg.tool_call_id:
                parts = [
                    {
                        "function_response": {
                            "name": msg.name or msg.tool_call_id,
                            "response": {"result": msg.text},
                        }
                    }
                ]
            elif msg.tool_calls:
                for tc in msg.tool_calls:
                    args = (
                        tc.arguments
                        if isinstance(tc.arguments, dict)
                        else json.loads(tc.arguments)
                    )
                    parts.append({"function_call": {"name": tc.name, "args": args}})

            contents.append({"role": role, "parts": parts})

        config = request.config
        generation_config: dict[str, Any] = {}
        if config.temperature is not None:
            generation_config["temperature"] = config.temperature
        if config.top_p is not None:
            generation_config["top_p"] = config.top_p
        if config.top_k is not None:
            generation_config["top_k"] = config.top_k
        if config.max_tokens is not None:
            generation_config["max_output_tokens"] = config.max_tokens
        if config.stop is not None:
            generation_config["stop_sequences"] = (
                [config.stop] if isinstance(config.stop, str) else list(config.stop)
            )

        params: dict[str, Any] = {
            "model": self.resolve_model(request),
            "contents": contents,
            "system_instruction": "\n".join(system_parts) or None,
            "generation_config": generation_config,
            "stream": stream,
        }
        if config.tools:
            params["tools"] = self._convert_tools(config.tools)
        return params

    def _convert_tools(self, tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """OpenAI function 格式 -> function_declarations。"""
        declarations = []
        for tool in tools:
            func = tool.get("function", tool)
            declarations.append(
                {
                    "name": func["name"],
                    "description": func.get("description", ""),
                    "parameters": func.get("parameters", {"type": "object"}),
                }
            )
        return [{"function_declarations": declarations}]

    async def _call(self, params: dict[str, Any]) -> Any:
        model = self._get_model(params["model"], params["system_instruction"])
        kwargs: dict[str, Any] = {
            "generation_config": params["generation_config"],
            "stream": params["stream"],
            "request_options": {"timeout": self.config.timeout},
        }
        if "tools" in params:
            kwargs["tools"] = params["tools"]
        try:
            return await model.generate_content_async(params["contents"], **kwargs)
        except Exception as e:
            raise handle_google_error(e, self.name).with_context(
                model=params["model"]
            ) from e

    def _validate(self, request: GenerateRequest) -> None:
        validate_messages(request.messages, self.name)
        validate_config(
            replace(request.config, model=self.resolve_model(request)), self.name
        )

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        """生成文本响应(非流式)。"""
        self._validate(request)
        params = self.build_request(request)
        response = await self._call(params)

        try:
            return self._parse_response(response, params["model"])
        except (KeyError, IndexError, AttributeError, ValueError) as e:
            raise ResponseParseError(
                f"Failed to parse response: {e}",
                provider=self.name,
                model=params["model"],
            ) from e

    async def generate_stream(
        self,
        request: GenerateRequest,
    ) -> AsyncGenerator[StreamChunk, None]:
        """生成流式响应。"""
        self._validate(request)
        params = self.build_request(request, stream=True)
        response = await self._call(params)

        try:
            async for chunk in response:
                parsed = self._parse_stream_chunk(chunk, params["model"])
                if parsed is not None:
                    yield parsed
        except (KeyError, IndexError, AttributeError, ValueError) as e:
            raise ResponseParseError(
                f"Failed to parse stream chunk: {e}",
                provider=self.name,
                model=params["model"],
            ) from e
        except Exception as e:
            raise handle_google_error(e, self.name) from e

    async def count_tokens(self, request: GenerateRequest) -> CountTokensResponse:
        """使用原生 count_tokens 接口。"""
        params = self.build_request(request)
        model = self._get_model(params["model"], params["system_instruction"])
        try:
            result = await model.count_tokens_async(params["contents"])
        except Exception as e:
            raise handle_google_error(e, self.name) from e
        return CountTokensResponse(total_tokens=result.total_tokens)

    async def embed_content(
        self,
        contents: Sequence[Message],
    ) -> EmbedContentResponse:
        """使用原生 embed_content 接口, 每个输入一条向量。"""
        if not contents:
            return EmbedContentResponse()

        genai = self._get_client()
        try:
            result = await genai.embed_content_async(
                model=self.config.embedding_model or DEFAULT_EMBEDDING_MODEL,
                content=[m.text for m in contents],
            )
        except Exception as e:
            raise handle_google_error(e, self.name) from e

        return EmbedContentResponse(
            embeddings=[ContentEmbedding(values=list(v)) for v in result["embedding"]]
        )

    async def aclose(self) -> None:
        # genai 是进程级配置的模块, 没有需要关闭的连接
        self._client = None

    def _candidate_from(self, candidate: Any, index: int, *, final: bool) -> Candidate:
        text = ""
        tool_calls: list[dict[str, Any]] = []
        for part in candidate.content.parts:
            if getattr(part, "text", None):
                text += part.text
            elif getattr(part, "function_call", None):
                fc = part.function_call
                tool_calls.append(
                    {
                        "id": f"call_{fc.name}",
                        "name": fc.name,
                        "arguments": dict(fc.args) if fc.args else {},
                    }
                )

        finish_reason: FinishReason | None = None
        if candidate.finish_reason:
            finish_reason = map_gemini_finish_reason(candidate.finish_reason)
        # 完整响应缺少明确信号时保守地视为 MAX_TOKENS
        if final and finish_reason in (None, FinishReason.UNSPECIFIED):
            finish_reason = FinishReason.MAX_TOKENS

        return text_candidate(
            text,
            finish_reason,
            index=getattr(candidate, "index", index) or index,
            tool_calls=tool_calls,
            safety_ratings=[
                _rating_to_dict(r) for r in getattr(candidate, "safety_ratings", None) or []
            ],
        )

    def _prompt_feedback(self, response: Any) -> dict[str, Any]:
        feedback = getattr(response, "prompt_feedback", None)
        ratings = getattr(feedback, "safety_ratings", None) or []
        return {"safety_ratings": [_rating_to_dict(r) for r in ratings]}

    def _parse_response(
        self,
        response: GenerateContentResponse,
        model: str,
    ) -> GenerateResponse:
        """解析 Google 响应为统一格式。"""
        candidates = [
            self._candidate_from(c, i, final=True)
            for i, c in enumerate(response.candidates)
        ]

        usage: Usage | None = None
        metadata = getattr(response, "usage_metadata", None)
        if metadata:
            usage = Usage(
                prompt_tokens=metadata.prompt_token_count,
                completion_tokens=metadata.candidates_token_count,
                total_tokens=metadata.total_token_count,
            )

        return GenerateResponse(
            candidates=candidates,
            prompt_feedback=self._prompt_feedback(response),
            usage=usage,
            model=model,
            raw=response,
        )

    def _parse_stream_chunk(
        self,
        chunk: GenerateContentResponse,
        model: str,
    ) -> StreamChunk | None:
        """解析流式块, 没有候选的块返回 None。"""
        if not chunk.candidates:
            return None

        return StreamChunk(
            candidates=[
                self._candidate_from(c, i, final=False)
                for i, c in enumerate(chunk.candidates)
            ],
            prompt_feedback=self._prompt_feedback(chunk),
            model=model,
            raw=chunk,
        )
