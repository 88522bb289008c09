"""换行分隔 JSON (NDJSON) 流解码器。

容错策略: 无法解析的行直接跳过, 不中断整个流。
"""

from __future__ import annotations

import codecs
import json
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

import structlog

_log = structlog.get_logger(__name__)


class NDJSONDecoder:
    """增量解码器, 每个流创建一个, 不可复用。

    字节先经过 UTF-8 增量解码(跨块的多字节字符不会丢失),
    再按换行切分; 最后一段不完整的行保留在缓冲区等待下一块。
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self.skipped = 0

    def feed(self, data: bytes) -> list[dict[str, Any]]:
        """追加一块字节, 返回其中完整的帧。"""
        self._buffer += self._decoder.decode(data)
        *lines, self._buffer = self._buffer.split("\n")

        frames: list[dict[str, Any]] = []
        for line in lines:
            frame = self._parse_line(line)
            if frame is not None:
                frames.append(frame)
        return frames

    def finish(self) -> None:
        """流结束: 丢弃未完成的尾部片段, 不解析。"""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if tail.strip():
            _log.debug("stream_fragment_discarded", length=len(tail))

    def _parse_line(self, line: str) -> dict[str, Any] | None:
        line = line.strip()
        if not line:
            return None
        try:
            frame = json.loads(line)
        except ValueError:
            self.skipped += 1
            _log.debug("stream_frame_skipped", reason="invalid_json", length=len(line))
            return None
        if not isinstance(frame, dict):
            self.skipped += 1
            _log.debug("stream_frame_skipped", reason="not_an_object")
            return None
        return frame


async def iter_frames(chunks: AsyncIterable[bytes]) -> AsyncIterator[dict[str, Any]]:
    """将字节流转换为按到达顺序排列的帧序列。"""
    decoder = NDJSONDecoder()
    async for chunk in chunks:
        for frame in decoder.feed(chunk):
            yield frame
    decoder.finish()
