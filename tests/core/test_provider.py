"""测试 core/provider.py - Provider 基类。"""

from __future__ import annotations

import sys
from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from dawn_shuttle.dawn_shuttle_relay.src.core.config import GenerateConfig, ProviderConfig
from dawn_shuttle.dawn_shuttle_relay.src.core.provider import (
    BaseProvider,
    build_user_agent,
)
from dawn_shuttle.dawn_shuttle_relay.src.core.request import GenerateRequest
from dawn_shuttle.dawn_shuttle_relay.src.core.response import (
    GenerateResponse,
    StreamChunk,
)
from dawn_shuttle.dawn_shuttle_relay.src.core.types import Message


class DummyProvider(BaseProvider):
    """最小实现, 用于测试基类行为。"""

    name = "dummy"
    DEFAULT_BASE_URL = "https://dummy.example/v1"

    def build_client(self) -> Any:
        return MagicMock()

    def build_request(
        self, request: GenerateRequest, *, stream: bool = False
    ) -> dict[str, Any]:
        return {}

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        return GenerateResponse()

    async def generate_stream(
        self, request: GenerateRequest
    ) -> AsyncGenerator[StreamChunk, None]:
        yield StreamChunk()


class TestUserAgent:
    """测试 User-Agent。"""

    def test_with_version(self) -> None:
        """测试包含版本与平台。"""
        agent = build_user_agent("1.2.3")
        assert agent.startswith("DawnShuttleRelay/1.2.3 (")
        assert sys.platform in agent

    def test_without_version(self) -> None:
        """测试缺少版本。"""
        assert build_user_agent(None).startswith("DawnShuttleRelay/unknown ")

    def test_provider_headers(self) -> None:
        """测试基类请求头。"""
        provider = DummyProvider(ProviderConfig(client_version="0.1.0"))
        assert provider.build_headers()["User-Agent"].startswith(
            "DawnShuttleRelay/0.1.0"
        )


class TestBaseProvider:
    """测试基类默认行为。"""

    def test_base_url(self) -> None:
        """测试默认与自定义端点。"""
        assert DummyProvider(ProviderConfig()).base_url == "https://dummy.example/v1"
        custom = DummyProvider(ProviderConfig(base_url="http://custom/v1"))
        assert custom.base_url == "http://custom/v1"

    def test_resolve_model(self) -> None:
        """测试请求模型优先。"""
        provider = DummyProvider(ProviderConfig(model="default"))
        explicit = GenerateRequest([Message.user("x")], GenerateConfig(model="m"))
        assert provider.resolve_model(explicit) == "m"
        assert provider.resolve_model(GenerateRequest([Message.user("x")])) == "default"

    def test_not_applicable_by_default(self, empty_env) -> None:
        """测试默认选择谓词。"""
        assert DummyProvider.is_applicable(ProviderConfig(), empty_env) is False

    def test_lazy_client(self) -> None:
        """测试客户端延迟创建且复用。"""
        provider = DummyProvider(ProviderConfig())
        assert provider._client is None
        client = provider._get_client()
        assert provider._get_client() is client

    @pytest.mark.asyncio
    async def test_count_tokens_estimate(self) -> None:
        """测试默认 token 估算。"""
        provider = DummyProvider(ProviderConfig())
        result = await provider.count_tokens(
            GenerateRequest([Message.user("a" * 400)])
        )
        assert result.total_tokens == 100

    @pytest.mark.asyncio
    async def test_embed_content_empty(self) -> None:
        """测试默认嵌入降级。"""
        provider = DummyProvider(ProviderConfig())
        result = await provider.embed_content([Message.user("a"), Message.user("b")])
        assert [e.values for e in result.embeddings] == [[], []]

    @pytest.mark.asyncio
    async def test_aclose_async_client(self) -> None:
        """测试关闭异步客户端。"""
        provider = DummyProvider(ProviderConfig())
        client = MagicMock()
        client.aclose = AsyncMock()
        provider._client = client

        await provider.aclose()

        client.aclose.assert_awaited_once()
        assert provider._client is None

    @pytest.mark.asyncio
    async def test_aclose_without_client(self) -> None:
        """测试未创建客户端时关闭。"""
        provider = DummyProvider(ProviderConfig())
        await provider.aclose()
        assert provider._client is None
