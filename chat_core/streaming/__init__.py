"""流式响应处理：JSON lines 分帧的增量组装。"""

from chat_core.streaming.assembler import AssemblerState, StreamAssembler

__all__ = ["AssemblerState", "StreamAssembler"]
