"""测试 adapter/openai_compatible.py - 通用 OpenAI 兼容适配器。"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from structlog.testing import capture_logs

from dawn_shuttle.dawn_shuttle_relay.src.adapter.openai_compatible import (
    PLACEHOLDER_API_KEY,
    OpenAICompatibleProvider,
)
from dawn_shuttle.dawn_shuttle_relay.src.core.config import GenerateConfig, ProviderConfig
from dawn_shuttle.dawn_shuttle_relay.src.core.env import EnvironmentSnapshot
from dawn_shuttle.dawn_shuttle_relay.src.core.error import (
    ConfigurationError,
    ConnectionError,
    ModelNotFoundError,
)
from dawn_shuttle.dawn_shuttle_relay.src.core.generator import ContentGenerator
from dawn_shuttle.dawn_shuttle_relay.src.core.request import GenerateRequest
from dawn_shuttle.dawn_shuttle_relay.src.core.response import FinishReason
from dawn_shuttle.dawn_shuttle_relay.src.core.types import Message

TOOLS = [{"type": "function", "function": {"name": "get_weather", "parameters": {}}}]


class FakeStream:
    """模拟 SDK 的异步流对象。"""

    def __init__(self, chunks: list[Any], error: Exception | None = None) -> None:
        self.chunks = chunks
        self.error = error
        self.close = AsyncMock()

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


def _completion(content: str = "hi", finish_reason: str | None = "stop") -> Any:
    return SimpleNamespace(
        id="chatcmpl-1",
        model="gpt-4o",
        choices=[
            SimpleNamespace(
                index=0,
                finish_reason=finish_reason,
                message=SimpleNamespace(content=content, tool_calls=None),
            )
        ],
        usage=SimpleNamespace(prompt_tokens=3, completion_tokens=1, total_tokens=4),
    )


def _delta(content: str | None, finish_reason: str | None = None) -> Any:
    return SimpleNamespace(
        id="chatcmpl-1",
        model="gpt-4o",
        choices=[
            SimpleNamespace(
                index=0,
                finish_reason=finish_reason,
                delta=SimpleNamespace(content=content, tool_calls=None),
            )
        ],
    )


def _provider(
    config: ProviderConfig | None = None,
    env: EnvironmentSnapshot | None = None,
) -> OpenAICompatibleProvider:
    provider = OpenAICompatibleProvider(config or ProviderConfig(model="gpt-4o"), env)
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    client.embeddings.create = AsyncMock()
    provider._client = client
    return provider


def _request(**config) -> GenerateRequest:
    return GenerateRequest(messages=[Message.user("hi")], config=GenerateConfig(**config))


class TestOpenAICompatibleSetup:
    """测试端点与客户端构建。"""

    def test_provider_name(self) -> None:
        """测试提供商标识。"""
        assert OpenAICompatibleProvider(ProviderConfig()).name == "openai"

    def test_default_base_url(self) -> None:
        """测试默认端点。"""
        assert (
            OpenAICompatibleProvider(ProviderConfig()).base_url
            == "https://api.openai.com/v1"
        )

    def test_build_client_placeholder_key(self) -> None:
        """测试无密钥时使用占位密钥, 并携带 User-Agent。"""
        provider = OpenAICompatibleProvider(
            ProviderConfig(base_url="http://localhost:8000/v1", timeout=9.0)
        )

        with patch("openai.AsyncOpenAI") as mock_client_class:
            provider.build_client()

        kwargs = mock_client_class.call_args.kwargs
        assert kwargs["api_key"] == PLACEHOLDER_API_KEY
        assert kwargs["base_url"] == "http://localhost:8000/v1"
        assert kwargs["timeout"] == 9.0
        assert kwargs["max_retries"] == 3
        assert kwargs["default_headers"]["User-Agent"].startswith("DawnShuttleRelay/")

    def test_build_client_real_key(self) -> None:
        """测试配置的密钥原样传入。"""
        provider = OpenAICompatibleProvider(ProviderConfig(api_key="sk-test"))

        with patch("openai.AsyncOpenAI") as mock_client_class:
            provider.build_client()

        assert mock_client_class.call_args.kwargs["api_key"] == "sk-test"


class TestOpenAICompatibleBuildRequest:
    """测试请求转换。"""

    def test_basic_params(self) -> None:
        """测试基础参数与额外参数。"""
        params = _provider().build_request(
            _request(temperature=0.3, max_tokens=50, stop=["END"], extra={"seed": 1}),
            stream=True,
        )
        assert params["model"] == "gpt-4o"
        assert params["messages"] == [{"role": "user", "content": "hi"}]
        assert params["temperature"] == 0.3
        assert params["max_tokens"] == 50
        assert params["stop"] == ["END"]
        assert params["stream"] is True
        assert params["seed"] == 1
        assert "top_p" not in params

    def test_tools_kept_for_remote(self) -> None:
        """测试远程端点保留工具定义。"""
        provider = _provider(ProviderConfig(model="m", base_url="https://api.example.com/v1"))
        params = provider.build_request(_request(tools=TOOLS, tool_choice="auto"))
        assert params["tools"] == TOOLS
        assert params["tool_choice"] == "auto"

    def test_tools_stripped_for_local_ollama_url(self) -> None:
        """测试端点指向本地 Ollama 时去掉工具。"""
        provider = _provider(ProviderConfig(model="m", base_url="http://localhost:11434/v1"))
        params = provider.build_request(_request(tools=TOOLS, tool_choice="auto"))
        assert "tools" not in params
        assert "tool_choice" not in params

    def test_tools_stripped_when_ollama_host_set(self) -> None:
        """测试设置 OLLAMA_HOST 时去掉工具。"""
        provider = _provider(
            ProviderConfig(model="m"),
            EnvironmentSnapshot(ollama_host="http://gpu-box:11434"),
        )
        assert "tools" not in provider.build_request(_request(tools=TOOLS))


class TestOpenAICompatibleGenerate:
    """测试非流式生成。"""

    @pytest.mark.asyncio
    async def test_generate(self) -> None:
        """测试解析完整响应。"""
        provider = _provider()
        provider._client.chat.completions.create.return_value = _completion()

        response = await provider.generate(_request())

        assert response.text == "hi"
        assert response.finish_reason == FinishReason.STOP
        assert response.usage is not None
        assert response.usage.total_tokens == 4
        assert response.response_id == "chatcmpl-1"
        provider._client.chat.completions.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_finish_reason(self) -> None:
        """测试完整响应缺少结束原因时视为 MAX_TOKENS。"""
        provider = _provider()
        provider._client.chat.completions.create.return_value = _completion(
            finish_reason=None
        )

        response = await provider.generate(_request())

        assert response.finish_reason == FinishReason.MAX_TOKENS

    @pytest.mark.asyncio
    async def test_tool_calls(self) -> None:
        """测试工具调用解析。"""
        completion = _completion(content="", finish_reason="tool_calls")
        completion.choices[0].message.tool_calls = [
            SimpleNamespace(
                model_dump=lambda: {
                    "id": "call_1",
                    "function": {"name": "get_weather", "arguments": '{"city": "x"}'},
                }
            )
        ]
        provider = _provider()
        provider._client.chat.completions.create.return_value = completion

        response = await provider.generate(_request(tools=TOOLS))

        assert response.finish_reason == FinishReason.STOP
        assert response.tool_calls == [
            {"id": "call_1", "name": "get_weather", "arguments": {"city": "x"}}
        ]

    @pytest.mark.asyncio
    async def test_sdk_error_mapped(self) -> None:
        """测试 SDK 异常映射为统一错误。"""
        not_found = type("NotFoundError", (Exception,), {})("model not found")
        not_found.status_code = 404
        provider = _provider(ProviderConfig(model="m", base_url="http://localhost:8000/v1"))
        provider._client.chat.completions.create.side_effect = not_found

        with pytest.raises(ModelNotFoundError) as exc_info:
            await provider.generate(_request())

        assert exc_info.value.context["url"] == "http://localhost:8000/v1"
        assert exc_info.value.__cause__ is not_found

    @pytest.mark.asyncio
    async def test_model_required(self) -> None:
        """测试缺少模型时不发起请求。"""
        provider = _provider(ProviderConfig())

        with pytest.raises(ConfigurationError):
            await provider.generate(_request())

        provider._client.chat.completions.create.assert_not_awaited()


class TestOpenAICompatibleStream:
    """测试流式生成。"""

    @pytest.mark.asyncio
    async def test_stream(self) -> None:
        """测试增量顺序与结束原因, 结束后关闭流。"""
        stream = FakeStream(
            [
                _delta("hel"),
                _delta("lo"),
                _delta(None, "stop"),
                SimpleNamespace(id="chatcmpl-1", model="gpt-4o", choices=[]),
            ]
        )
        provider = _provider()
        provider._client.chat.completions.create.return_value = stream

        chunks = [c async for c in provider.generate_stream(_request())]

        assert [c.text for c in chunks] == ["hel", "lo", ""]
        assert [c.finish_reason for c in chunks] == [None, None, FinishReason.STOP]
        assert provider._client.chat.completions.create.call_args.kwargs["stream"] is True
        stream.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stream_length(self) -> None:
        """测试 length 映射为 MAX_TOKENS。"""
        provider = _provider()
        provider._client.chat.completions.create.return_value = FakeStream(
            [_delta("x", "length")]
        )

        chunks = [c async for c in provider.generate_stream(_request())]

        assert chunks[-1].finish_reason == FinishReason.MAX_TOKENS


    @pytest.mark.asyncio
    async def test_transport_error_mid_stream(self) -> None:
        """测试流中途的 SDK 异常被转换为统一错误, 已产出的块保留。"""
        reset = type("APIConnectionError", (Exception,), {})("connection reset")
        stream = FakeStream([_delta("hel")], error=reset)
        provider = _provider(ProviderConfig(model="m", base_url="http://localhost:8000/v1"))
        provider._client.chat.completions.create.return_value = stream
        received: list[str] = []

        with pytest.raises(ConnectionError) as exc_info:
            async for chunk in provider.generate_stream(_request()):
                received.append(chunk.text)

        assert received == ["hel"]
        assert exc_info.value.provider == "openai"
        assert exc_info.value.context["url"] == "http://localhost:8000/v1"
        assert exc_info.value.__cause__ is reset
        stream.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_mid_stream_error_logged_by_generator(self) -> None:
        """测试统一入口记录流中途失败。"""
        reset = type("APIConnectionError", (Exception,), {})("connection reset")
        provider = _provider()
        provider._client.chat.completions.create.return_value = FakeStream(
            [_delta("a")], error=reset
        )
        generator = ContentGenerator(provider)

        with capture_logs() as logs, pytest.raises(ConnectionError):
            async for _ in generator.generate_content_stream(_request()):
                pass

        failed = [e for e in logs if e["event"] == "generate_request_failed"]
        assert failed[0]["error_type"] == "ConnectionError"
        assert failed[0]["chunks"] == 1


class TestOpenAICompatibleEmbeddings:
    """测试嵌入。"""

    @pytest.mark.asyncio
    async def test_without_embedding_model(self) -> None:
        """测试未配置嵌入模型时返回空向量。"""
        provider = _provider()
        result = await provider.embed_content([Message.user("a"), Message.user("b")])
        assert [e.values for e in result.embeddings] == [[], []]
        provider._client.embeddings.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_with_embedding_model(self) -> None:
        """测试按 index 排序的原生嵌入。"""
        provider = _provider(ProviderConfig(model="m", embedding_model="text-embedding-3-small"))
        provider._client.embeddings.create.return_value = SimpleNamespace(
            data=[
                SimpleNamespace(index=1, embedding=[0.2]),
                SimpleNamespace(index=0, embedding=[0.1]),
            ]
        )

        result = await provider.embed_content([Message.user("a"), Message.user("b")])

        assert [e.values for e in result.embeddings] == [[0.1], [0.2]]
        kwargs = provider._client.embeddings.create.call_args.kwargs
        assert kwargs == {"model": "text-embedding-3-small", "input": ["a", "b"]}

    @pytest.mark.asyncio
    async def test_count_tokens_estimate(self) -> None:
        """测试 token 计数使用估算。"""
        provider = _provider()
        request = GenerateRequest(messages=[Message.user("a" * 8)])
        assert (await provider.count_tokens(request)).total_tokens == 2
