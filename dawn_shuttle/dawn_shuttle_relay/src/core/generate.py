"""便捷入口函数 - 提供给用户的简洁 API。"""

from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

from .config import GenerateConfig
from .generator import ContentGenerator
from .request import GenerateRequest
from .response import GenerateResponse, StreamChunk
from .types import Message


def _build_request(
    messages: list[Message],
    *,
    model: str,
    temperature: float | None,
    max_tokens: int | None,
    top_p: float | None,
    top_k: int | None,
    stop: list[str] | str | None,
    tools: list[dict] | None,
    stream: bool,
    prompt_id: str,
    extra: dict[str, Any],
) -> GenerateRequest:
    config = GenerateConfig(
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        top_p=top_p,
        top_k=top_k,
        stop=stop,
        tools=tools,
        stream=stream,
        extra=extra,
    )
    return GenerateRequest(messages=messages, config=config, prompt_id=prompt_id)


async def generate_text(
    messages: list[Message],
    generator: ContentGenerator,
    *,
    model: str = "",
    temperature: float | None = None,
    max_tokens: int | None = None,
    top_p: float | None = None,
    top_k: int | None = None,
    stop: list[str] | str | None = None,
    tools: list[dict] | None = None,
    prompt_id: str = "",
    **kwargs,
) -> GenerateResponse:
    """生成文本响应（非流式）。

    Args:
        messages: 消息列表
        generator: 内容生成器
        model: 模型标识, 为空时使用提供商配置的默认模型
        temperature: 采样温度
        max_tokens: 最大输出 token 数
        top_p: Top-p 采样
        top_k: Top-k 采样
        stop: 停止词
        tools: 工具定义
        prompt_id: 请求关联 ID
        **kwargs: 其他参数

    Returns:
        GenerateResponse: 统一格式的响应

    Raises:
        AIError: AI 调用相关错误
    """
    request = _build_request(
        messages,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        top_p=top_p,
        top_k=top_k,
        stop=stop,
        tools=tools,
        stream=False,
        prompt_id=prompt_id,
        extra=kwargs,
    )
    return await generator.generate_content(request)


async def stream_text(
    messages: list[Message],
    generator: ContentGenerator,
    *,
    model: str = "",
    temperature: float | None = None,
    max_tokens: int | None = None,
    top_p: float | None = None,
    top_k: int | None = None,
    stop: list[str] | str | None = None,
    tools: list[dict] | None = None,
    prompt_id: str = "",
    **kwargs,
) -> AsyncIterator[StreamChunk]:
    """生成流式文本响应。

    参数同 generate_text。

    Yields:
        StreamChunk: 流式响应块
    """
    request = _build_request(
        messages,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        top_p=top_p,
        top_k=top_k,
        stop=stop,
        tools=tools,
        stream=True,
        prompt_id=prompt_id,
        extra=kwargs,
    )
    async with aclosing(generator.generate_content_stream(request)) as stream:
        async for chunk in stream:
            yield chunk
