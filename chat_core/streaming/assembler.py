"""流式响应组装器。

把中继服务返回的字节流（JSON lines 分帧：每行一个独立的 JSON 对象，
可选携带 `response` 文本增量）转换为：

1. 按接收顺序派发给显示端的增量文本；
2. 流结束时的完整助手回答。

状态流转：OPEN -> (AWAITING_CHUNK -> DECODING -> DISPATCHING)* -> CLOSED。

分帧容错：
- 解码使用增量 UTF-8 解码器，跨 chunk 的多字节字符会在下一次读取时拼回。
- 无法解析的行（包括空行）直接丢弃，只记调试日志，不中断流。
- 默认每个 chunk 独立切行，一个 JSON 对象被切到两个 chunk 时两半都会丢弃；
  reassemble_lines=True 时缓存末尾未换行的半行，与下一个 chunk 拼接后再解析。
"""

import codecs
import enum
import json
import logging
from typing import Iterable, List

from chat_core.display.base import DisplaySink
from chat_core.domain.models import StreamStats
from chat_core.infrastructure.logging.logger import logger


DELTA_FIELD = "response"


class AssemblerState(str, enum.Enum):
    OPEN = "open"
    AWAITING_CHUNK = "awaiting_chunk"
    DECODING = "decoding"
    DISPATCHING = "dispatching"
    CLOSED = "closed"


class StreamAssembler:
    """单次流式响应的组装器，一次响应用一个实例。"""

    def __init__(self, sink: DisplaySink, reassemble_lines: bool = False):
        self._sink = sink
        self._reassemble = reassemble_lines
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self._pieces: List[str] = []
        self.stats = StreamStats()
        self.state = AssemblerState.OPEN

    @property
    def text(self) -> str:
        """目前为止累积的回答文本。"""

        return "".join(self._pieces)

    def run(self, chunks: Iterable[bytes]) -> str:
        """消费整个字节流，返回完整回答文本。

        对 chunks 的每次 next() 即一次挂起点；两次读取之间的解码、切行与派发同步完成。
        迭代器抛出的异常（传输失败）原样向上传播。
        """

        iterator = iter(chunks)
        while True:
            self.state = AssemblerState.AWAITING_CHUNK
            try:
                chunk = next(iterator)
            except StopIteration:
                break
            self.feed(chunk)
        return self.close()

    def feed(self, chunk: bytes) -> List[str]:
        """处理一个字节块，返回本次派发的增量（按顺序）。"""

        if self.state == AssemblerState.CLOSED:
            raise RuntimeError("assembler already closed")
        self.stats.chunks += 1
        self.state = AssemblerState.DECODING
        text = self._decoder.decode(chunk)
        if self._reassemble:
            text = self._pending + text
            lines = text.split("\n")
            self._pending = lines.pop()
        else:
            lines = text.split("\n")
        self.state = AssemblerState.DISPATCHING
        deltas = [delta for delta in (self._dispatch(line) for line in lines) if delta]
        self.state = AssemblerState.AWAITING_CHUNK
        return deltas

    def close(self) -> str:
        """结束流：冲刷解码器与缓存的半行，返回完整文本。"""

        if self.state != AssemblerState.CLOSED:
            tail = self._decoder.decode(b"", final=True)
            if self._reassemble:
                rest = self._pending + tail
                self._pending = ""
                if rest:
                    self._dispatch(rest)
            elif tail:
                self._dispatch(tail)
            self.state = AssemblerState.CLOSED
        return self.text

    def _dispatch(self, line: str) -> str:
        """解析一行；若带有 response 增量则累积并立即通知显示端。"""

        self.stats.lines += 1
        try:
            data = json.loads(line)
        except (ValueError, RecursionError) as e:
            # JSONDecodeError 是 ValueError 子类；超长整数与过深嵌套分别抛 ValueError / RecursionError
            self.stats.discarded_lines += 1
            if line.strip():
                logger.log(
                    logging.DEBUG,
                    "Discarded stream fragment",
                    extra={"extra": {"error": str(e), "fragment": line[:200]}},
                )
            return ""
        if not isinstance(data, dict):
            return ""
        delta = data.get(DELTA_FIELD)
        if not isinstance(delta, str) or not delta:
            return ""
        self._pieces.append(delta)
        self.stats.deltas += 1
        self._sink.append_text(delta)
        return delta
