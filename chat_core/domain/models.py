"""统一的对话与交换结果数据模型。

本模块定义了客户端内部共享的标准数据结构：

- ChatMessage: 一条对话消息（system/user/assistant）。
- Attachment: 随一次提交发送的二进制附件（目前是图片）。
- StreamStats: 单次流式响应的解析统计，仅用于诊断。
- ExchangeResult: 一次用户提交（请求 + 流式响应）的最终结果。

传输层（providers）、流式解析（streaming）与会话（agents）都只依赖这些模型。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional


# 消息角色（与中继服务端 messages[].role 字段对应）
Role = Literal["system", "user", "assistant"]


@dataclass
class ChatMessage:
    """一条对话消息。

    - role: 消息角色。
    - content: 纯文本内容。
    """

    role: Role
    content: str

    def to_payload(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass
class Attachment:
    """一次提交附带的二进制文件。

    multipart 请求中以 `image` 字段发送，filename/content_type 原样透传。
    """

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class StreamStats:
    """流式响应的解析统计。

    - chunks: 读到的字节块数量。
    - lines: 切分出的候选行数量（含空行）。
    - deltas: 成功派发给显示端的增量数量。
    - discarded_lines: 解析失败被丢弃的行数量（含空行）。
    """

    chunks: int = 0
    lines: int = 0
    deltas: int = 0
    discarded_lines: int = 0


@dataclass
class ExchangeResult:
    """一次提交的结果。

    ok 为 False 时 assistant_message 是兜底错误提示，且不会写入会话历史；
    error_code 为对应 BusinessError 的 code。
    """

    ok: bool
    user_message: ChatMessage
    assistant_message: ChatMessage
    stats: StreamStats = field(default_factory=StreamStats)
    error_code: Optional[str] = None
    trace_id: Optional[str] = None
