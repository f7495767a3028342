"""推理后端抽象接口。

会话层不直接依赖具体的 HTTP 实现，而是依赖此协议：

- 输入：完整的消息列表与可选附件。
- 输出：响应体的原始字节块迭代器（分帧由 StreamAssembler 负责）。
- 失败：请求无法发出或状态码非 2xx 时抛出 TransportError 子类；
  流读取过程中的网络中断同样以 NetworkError 抛出。
"""

from typing import Iterator, List, Optional, Protocol

from chat_core.domain.models import Attachment, ChatMessage


class ChatBackend(Protocol):
    """推理后端协议。"""

    name: str

    def stream(self, messages: List[ChatMessage], attachment: Optional[Attachment] = None) -> Iterator[bytes]:
        ...
