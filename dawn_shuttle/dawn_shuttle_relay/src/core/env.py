"""环境变量快照 - 认证解析与提供商选择唯一读取环境的入口。"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


def _text(value: str | None) -> str | None:
    # 空字符串视为未设置
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """某一时刻的相关环境变量, 构建后不可变。

    Attributes:
        use_gca: GOOGLE_GENAI_USE_GCA == "true"。
        use_vertexai: GOOGLE_GENAI_USE_VERTEXAI == "true"。
        gemini_api_key: GEMINI_API_KEY。
        google_api_key: GOOGLE_API_KEY。
        google_cloud_project: GOOGLE_CLOUD_PROJECT。
        google_cloud_location: GOOGLE_CLOUD_LOCATION。
        ollama_host: OLLAMA_HOST。
        ollama_model: OLLAMA_MODEL。
        openai_base_url: OPENAI_BASE_URL。
        openai_api_key: OPENAI_API_KEY。
        openai_model: OPENAI_MODEL。
    """

    use_gca: bool = False
    use_vertexai: bool = False
    gemini_api_key: str | None = None
    google_api_key: str | None = None
    google_cloud_project: str | None = None
    google_cloud_location: str | None = None
    ollama_host: str | None = None
    ollama_model: str | None = None
    openai_base_url: str | None = None
    openai_api_key: str | None = None
    openai_model: str | None = None

    @classmethod
    def from_environ(
        cls, environ: Mapping[str, str] | None = None
    ) -> EnvironmentSnapshot:
        """从环境变量映射构建快照。

        Args:
            environ: 环境变量映射, 默认使用 os.environ。

        Returns:
            EnvironmentSnapshot: 不可变快照。
        """
        source = os.environ if environ is None else environ
        return cls(
            use_gca=_flag(source.get("GOOGLE_GENAI_USE_GCA")),
            use_vertexai=_flag(source.get("GOOGLE_GENAI_USE_VERTEXAI")),
            gemini_api_key=_text(source.get("GEMINI_API_KEY")),
            google_api_key=_text(source.get("GOOGLE_API_KEY")),
            google_cloud_project=_text(source.get("GOOGLE_CLOUD_PROJECT")),
            google_cloud_location=_text(source.get("GOOGLE_CLOUD_LOCATION")),
            ollama_host=_text(source.get("OLLAMA_HOST")),
            ollama_model=_text(source.get("OLLAMA_MODEL")),
            openai_base_url=_text(source.get("OPENAI_BASE_URL")),
            openai_api_key=_text(source.get("OPENAI_API_KEY")),
            openai_model=_text(source.get("OPENAI_MODEL")),
        )
