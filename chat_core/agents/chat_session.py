"""聊天会话核心模块。

一次用户提交的完整流程：

1. 追加用户消息（空提交或已有请求进行中时直接返回）。
2. 设置 in-flight 守卫，显示“正在输入”，渲染空的助手消息占位。
3. 把会话快照（可选附件）交给后端，得到响应字节流。
4. StreamAssembler 边读边解析，增量实时派发到显示端。
5. 流结束后把完整文本写入会话历史；传输失败则渲染兜底提示，历史不变。
6. 无论成功失败，清除守卫并恢复输入。
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from uuid import uuid4
import time
import logging

from chat_core.config.settings import settings
from chat_core.display.base import DisplaySink
from chat_core.domain.conversation import Conversation, ConversationTracker
from chat_core.domain.exceptions import TransportError
from chat_core.domain.models import Attachment, ChatMessage, ExchangeResult
from chat_core.infrastructure.logging.logger import logger
from chat_core.providers.base import ChatBackend
from chat_core.streaming.assembler import StreamAssembler


@dataclass
class SessionConfig:
    system_prompt: Optional[str] = None
    greeting: str = ""
    fallback_error_text: str = "Sorry, there was an error processing your request."
    reassemble_lines: bool = False

    @classmethod
    def from_settings(cls, cfg=settings) -> "SessionConfig":
        return cls(
            system_prompt=getattr(cfg, "system_prompt", None),
            greeting=getattr(cfg, "greeting", "") or "",
            fallback_error_text=getattr(cfg, "fallback_error_text", cls.fallback_error_text),
            reassemble_lines=bool(getattr(cfg, "stream_reassemble_lines", False)),
        )


@dataclass
class PendingExchange:
    """begin() 已受理、尚未执行的一次提交。"""

    trace_id: str
    user_message: ChatMessage
    attachment: Optional[Attachment]
    started_at: float


class ChatSession:
    def __init__(
        self,
        backend: ChatBackend,
        sink: DisplaySink,
        config: Optional[SessionConfig] = None,
        conversation: Optional[Conversation] = None,
    ):
        self._backend = backend
        self._sink = sink
        self._config = config or SessionConfig.from_settings()
        self.tracker = ConversationTracker(sink, conversation)
        if self._config.greeting:
            self.tracker.seed_greeting(self._config.greeting)

    @property
    def conversation(self) -> Conversation:
        return self.tracker.conversation

    @property
    def in_flight(self) -> bool:
        return self.tracker.in_flight

    def submit(self, text: str, attachment: Optional[Attachment] = None) -> Optional[ExchangeResult]:
        """提交一条消息并同步完成整次交换。

        Returns:
            ExchangeResult；空提交或已有请求进行中时返回 None（不发请求、不报错）。
        """
        pending = self.begin(text, attachment)
        if pending is None:
            return None
        return self.complete(pending)

    def begin(self, text: str, attachment: Optional[Attachment] = None) -> Optional[PendingExchange]:
        """受理一次提交：追加用户消息并占用 in-flight 守卫。

        GUI 在主线程调用本方法，再把 complete() 交给工作线程，
        保证第二次点击在守卫生效之后才会被处理。
        """
        user_message = self.tracker.append_user(text, has_attachment=attachment is not None)
        if user_message is None:
            return None
        self.tracker.begin()
        self._sink.set_busy(True)
        pending = PendingExchange(
            trace_id=f"tr-{uuid4().hex}",
            user_message=user_message,
            attachment=attachment,
            started_at=time.time(),
        )
        self._log(
            logging.INFO,
            "Accepted user message",
            {"trace_id": pending.trace_id},
            message_index=len(self.conversation) - 1,
            has_attachment=attachment is not None,
            attachment_bytes=attachment.size if attachment else 0,
        )
        return pending

    def complete(self, pending: PendingExchange) -> ExchangeResult:
        """执行已受理的提交：请求后端、消费流、提交或兜底。"""
        log_ctx: Dict[str, Any] = {"trace_id": pending.trace_id}
        assembler = StreamAssembler(self._sink, reassemble_lines=self._config.reassemble_lines)
        try:
            self._sink.render_assistant_placeholder()
            messages = self.tracker.snapshot(self._config.system_prompt)
            self._log(
                logging.INFO,
                "Calling backend (stream)",
                log_ctx,
                backend=getattr(self._backend, "name", "unknown"),
                message_count=len(messages),
            )
            text = assembler.run(self._backend.stream(messages, pending.attachment))
            assistant_message = self.tracker.append_assistant(text)
            self._log(
                logging.INFO,
                "Stored assistant message",
                log_ctx,
                chunks=assembler.stats.chunks,
                deltas=assembler.stats.deltas,
                discarded_lines=assembler.stats.discarded_lines,
                length=len(text),
            )
            return ExchangeResult(
                ok=True,
                user_message=pending.user_message,
                assistant_message=assistant_message,
                stats=assembler.stats,
                trace_id=pending.trace_id,
            )
        except TransportError as e:
            self._log(
                logging.ERROR,
                "Exchange failed",
                log_ctx,
                error_code=e.code,
                error=e.message,
                http_status=e.http_status,
                partial_length=len(assembler.text),
            )
            fallback = ChatMessage(role="assistant", content=self._config.fallback_error_text)
            self._sink.render_assistant_turn(fallback.content)
            return ExchangeResult(
                ok=False,
                user_message=pending.user_message,
                assistant_message=fallback,
                stats=assembler.stats,
                error_code=e.code,
                trace_id=pending.trace_id,
            )
        finally:
            self.tracker.finish()
            self._sink.set_busy(False)
            self._log(
                logging.INFO,
                "Completed exchange",
                log_ctx,
                elapsed_seconds=round(time.time() - pending.started_at, 2),
            )

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
