"""统一响应格式 - 标准化各后端的返回结果。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .types import Message, Role, TextContent


class FinishReason(str, Enum):
    """结束原因, 封闭集合。"""

    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"
    ABORTED = "ABORTED"
    OTHER = "OTHER"
    UNSPECIFIED = "UNSPECIFIED"


@dataclass
class Usage:
    """Token 使用统计。"""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class Candidate:
    """单个候选结果。"""

    # 生成内容(助手角色)
    content: Message = field(
        default_factory=lambda: Message(role=Role.ASSISTANT, content=[])
    )

    # 流式中间块为 None
    finish_reason: FinishReason | None = None

    index: int = 0

    # 安全评级, 原样透传
    safety_ratings: list[dict[str, Any]] = field(default_factory=list)

    # 工具调用(透传)
    tool_calls: list[dict[str, Any]] = field(default_factory=list)

    @property
    def text(self) -> str:
        return self.content.text


def text_candidate(
    text: str,
    finish_reason: FinishReason | None,
    *,
    index: int = 0,
    tool_calls: list[dict[str, Any]] | None = None,
    safety_ratings: list[dict[str, Any]] | None = None,
) -> Candidate:
    """构建只含一个文本块的候选结果。"""
    return Candidate(
        content=Message(role=Role.ASSISTANT, content=[TextContent(text=text)]),
        finish_reason=finish_reason,
        index=index,
        safety_ratings=safety_ratings or [],
        tool_calls=tool_calls or [],
    )


def _empty_feedback() -> dict[str, Any]:
    return {"safety_ratings": []}


@dataclass
class GenerateResponse:
    """统一生成响应。"""

    candidates: list[Candidate] = field(default_factory=list)

    prompt_feedback: dict[str, Any] = field(default_factory=_empty_feedback)

    usage: Usage | None = None

    # 模型标识
    model: str | None = None

    # 响应 ID(用于追踪)
    response_id: str | None = None

    # 原始响应(提供商特定)
    raw: Any = None

    @property
    def text(self) -> str:
        """第一个候选的文本。"""
        if not self.candidates:
            return ""
        return self.candidates[0].text

    @property
    def finish_reason(self) -> FinishReason | None:
        if not self.candidates:
            return None
        return self.candidates[0].finish_reason

    @property
    def tool_calls(self) -> list[dict[str, Any]]:
        if not self.candidates:
            return []
        return self.candidates[0].tool_calls

    def to_dict(self) -> dict[str, Any]:
        """转换为字典格式。"""
        result: dict[str, Any] = {
            "candidates": [
                {
                    "content": c.content.to_dict(),
                    "finish_reason": c.finish_reason.value if c.finish_reason else None,
                    "index": c.index,
                    "safety_ratings": c.safety_ratings,
                }
                for c in self.candidates
            ],
            "prompt_feedback": self.prompt_feedback,
        }
        if self.usage:
            result["usage"] = {
                "prompt_tokens": self.usage.prompt_tokens,
                "completion_tokens": self.usage.completion_tokens,
                "total_tokens": self.usage.total_tokens,
            }
        if self.model:
            result["model"] = self.model
        if self.response_id:
            result["response_id"] = self.response_id
        return result


@dataclass
class StreamChunk(GenerateResponse):
    """流式响应的单个增量, 终止增量之前 finish_reason 为 None。"""

    @property
    def is_finished(self) -> bool:
        return self.finish_reason is not None


@dataclass
class CountTokensResponse:
    """Token 计数结果。"""

    total_tokens: int = 0


@dataclass
class ContentEmbedding:
    """单条嵌入, 空向量表示后端不支持。"""

    values: list[float] = field(default_factory=list)


@dataclass
class EmbedContentResponse:
    """嵌入结果, 与输入条目一一对应。"""

    embeddings: list[ContentEmbedding] = field(default_factory=list)
