"""测试配置和共享 fixtures。"""

from __future__ import annotations

import pytest

from dawn_shuttle.dawn_shuttle_relay.src.core.config import GenerateConfig
from dawn_shuttle.dawn_shuttle_relay.src.core.env import EnvironmentSnapshot
from dawn_shuttle.dawn_shuttle_relay.src.core.request import GenerateRequest
from dawn_shuttle.dawn_shuttle_relay.src.core.types import Message


@pytest.fixture
def sample_message_dict() -> dict:
    """返回示例消息字典。"""
    return {
        "role": "user",
        "content": "你好",
    }


@pytest.fixture
def empty_env() -> EnvironmentSnapshot:
    """返回空环境快照。"""
    return EnvironmentSnapshot()


@pytest.fixture
def hello_request() -> GenerateRequest:
    """返回只含一条用户消息的请求。"""
    return GenerateRequest(
        messages=[Message.user("hi")],
        config=GenerateConfig(model="test-model"),
        prompt_id="p-1",
    )
