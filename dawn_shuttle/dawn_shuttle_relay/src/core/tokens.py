"""无原生接口时的 token 计数与嵌入降级实现。"""

from __future__ import annotations

import math
from collections.abc import Sequence

from .response import ContentEmbedding, CountTokensResponse, EmbedContentResponse
from .types import Message

CHARS_PER_TOKEN: int = 4


def estimate_tokens(messages: Sequence[Message]) -> int:
    """按每 4 个字符约 1 个 token 估算, 只统计文本块。"""
    total_chars = sum(len(message.text) for message in messages)
    return math.ceil(total_chars / CHARS_PER_TOKEN)


def estimated_count(messages: Sequence[Message]) -> CountTokensResponse:
    return CountTokensResponse(total_tokens=estimate_tokens(messages))


def empty_embeddings(contents: Sequence[object]) -> EmbedContentResponse:
    """每个输入条目返回一个空向量, 调用方应视为"不支持"。"""
    return EmbedContentResponse(embeddings=[ContentEmbedding() for _ in contents])
