"""统一请求格式。"""

from __future__ import annotations

from dataclasses import dataclass, field

from .config import GenerateConfig
from .types import Message


@dataclass
class GenerateRequest:
    """一次生成调用的完整输入。

    Attributes:
        messages: 有序消息历史。
        config: 模型与采样参数。
        prompt_id: 调用方提供的关联 ID, 用于日志追踪。
    """

    messages: list[Message]
    config: GenerateConfig = field(default_factory=GenerateConfig)
    prompt_id: str = ""

    @property
    def model(self) -> str:
        return self.config.model
