from dataclasses import dataclass, field
from typing import List, Optional

from .models import ChatMessage, Role
from chat_core.display.base import DisplaySink


IMAGE_MARKER = "[Image attached]"


@dataclass
class Conversation:
    """按时间顺序排列的消息列表，即发送给模型的上下文。"""

    messages: List[ChatMessage] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.messages)

    def append(self, role: Role, content: str) -> ChatMessage:
        message = ChatMessage(role=role, content=content)
        self.messages.append(message)
        return message

    def has_system_message(self) -> bool:
        return any(m.role == "system" for m in self.messages)


class ConversationTracker:
    """持有会话历史与“请求进行中”标记。

    - 历史只在两处被修改：用户提交（append_user）与流式结束（append_assistant）。
    - in_flight 是协作式的单请求守卫：同一会话同一时刻最多一个未完成的请求。
    - 每次追加都会立即通知显示端，不做批量刷新。
    """

    def __init__(self, sink: DisplaySink, conversation: Optional[Conversation] = None):
        self._sink = sink
        self.conversation = conversation or Conversation()
        self.in_flight = False

    def seed_greeting(self, text: str) -> Optional[ChatMessage]:
        """写入开场白（仅在历史为空时）。"""

        if not text or len(self.conversation):
            return None
        message = self.conversation.append("assistant", text)
        self._sink.render_assistant_turn(text)
        return message

    def append_user(self, text: str, has_attachment: bool = False) -> Optional[ChatMessage]:
        """追加一条用户消息。

        文本为空且没有附件，或已有请求在进行中时为 no-op，返回 None。
        历史中只保存纯文本；带附件时显示端额外看到 "[Image attached]" 标记。
        """

        text = (text or "").strip()
        if (not text and not has_attachment) or self.in_flight:
            return None
        message = self.conversation.append("user", text)
        display_text = text
        if has_attachment:
            display_text = f"{text}\n{IMAGE_MARKER}" if text else IMAGE_MARKER
        self._sink.render_user_turn(display_text)
        return message

    def append_assistant(self, text: str) -> ChatMessage:
        return self.conversation.append("assistant", text)

    def snapshot(self, system_prompt: Optional[str] = None) -> List[ChatMessage]:
        """返回待发送的完整消息列表（副本）。

        system_prompt 非空且历史中没有 system 消息时，在副本最前面补一条；
        会话本身不会被修改。
        """

        messages = [ChatMessage(role=m.role, content=m.content) for m in self.conversation.messages]
        if system_prompt and not self.conversation.has_system_message():
            messages.insert(0, ChatMessage(role="system", content=system_prompt))
        return messages

    def begin(self) -> bool:
        if self.in_flight:
            return False
        self.in_flight = True
        return True

    def finish(self) -> None:
        self.in_flight = False
