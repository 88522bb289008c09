"""测试 core/error.py - 错误类型。"""

from dawn_shuttle.dawn_shuttle_relay.src.core.error import (
    AIError,
    AuthNotConfiguredError,
    AuthValidationError,
    ConfigurationError,
    ErrorCode,
    ModelNotFoundError,
    RateLimitError,
)


class TestAIError:
    """测试基础异常。"""

    def test_defaults(self) -> None:
        """测试默认代码与消息。"""
        error = AIError()
        assert error.code == ErrorCode.INTERNAL_ERROR
        assert error.message == "An error occurred"
        assert error.context == {}

    def test_str_includes_fields(self) -> None:
        """测试字符串表示。"""
        error = RateLimitError(
            "slow down",
            provider="openai",
            model="gpt-4o",
            status_code=429,
            request_id="req-1",
        )
        text = str(error)
        assert text.startswith("[RATE_LIMIT]")
        assert "provider=openai" in text
        assert "model=gpt-4o" in text
        assert "status=429" in text
        assert "(request_id: req-1)" in text

    def test_context_kwargs(self) -> None:
        """测试诊断上下文。"""
        error = ModelNotFoundError(
            "missing", provider="ollama", url="http://localhost:11434/api/chat"
        )
        assert error.context["url"] == "http://localhost:11434/api/chat"

    def test_with_context_returns_self(self) -> None:
        """测试链式添加上下文。"""
        error = AIError("x")
        assert error.with_context(model="m") is error
        assert error.context == {"model": "m"}

    def test_to_dict(self) -> None:
        """测试序列化。"""
        error = ModelNotFoundError("missing", provider="ollama", status_code=404, url="u")
        assert error.to_dict() == {
            "error": {
                "code": "MODEL_NOT_FOUND",
                "type": "ModelNotFoundError",
                "message": "missing",
                "provider": "ollama",
                "status_code": 404,
                "context": {"url": "u"},
            }
        }

    def test_format_with_guide(self) -> None:
        """测试多行格式化。"""
        error = RateLimitError("slow", retry_after=30, url="u")
        text = error.format(include_guide=True)
        assert "30" in text
        assert "url: u" in text
        assert "建议" in text

    def test_cause_kept(self) -> None:
        """测试保留原始异常。"""
        cause = ValueError("boom")
        error = AIError("wrapped", cause=cause)
        assert error.cause is cause


class TestAuthErrors:
    """测试认证相关错误。"""

    def test_not_configured_is_configuration_error(self) -> None:
        """测试继承关系与代码。"""
        error = AuthNotConfiguredError()
        assert isinstance(error, ConfigurationError)
        assert error.code == ErrorCode.AUTH_MISSING

    def test_validation_error_code(self) -> None:
        """测试校验错误代码。"""
        error = AuthValidationError("bad")
        assert isinstance(error, ConfigurationError)
        assert error.code == ErrorCode.CONFIG_INVALID
