"""对外 API 服务模块。

提供简化的函数接口供上层应用（终端、GUI、脚本）调用。
每次 create_session 都会创建独立的会话，模块内不保存任何会话状态。
"""

import mimetypes
from pathlib import Path
from typing import Any, Dict, Optional, Union

from chat_core.agents.chat_session import ChatSession, SessionConfig
from chat_core.config.settings import settings
from chat_core.display.base import DisplaySink
from chat_core.display.console import ConsoleSink
from chat_core.domain.exceptions import ValidationError
from chat_core.domain.models import Attachment
from chat_core.infrastructure.logging.logger import logger
from chat_core.providers import create_backend
from chat_core.providers.base import ChatBackend


def create_session(
    sink: Optional[DisplaySink] = None,
    backend: Optional[ChatBackend] = None,
    cfg=None,
) -> ChatSession:
    """创建一个新的聊天会话。

    Args:
        sink: 显示端（可选，默认输出到终端）
        backend: 推理后端（可选，默认按配置创建 HTTP 后端）
        cfg: 配置对象（可选，默认全局 settings）
    """
    cfg = cfg or settings
    return ChatSession(
        backend=backend or create_backend(cfg=cfg),
        sink=sink or ConsoleSink(),
        config=SessionConfig.from_settings(cfg),
    )


def load_attachment(path: Union[str, Path]) -> Attachment:
    """读取本地图片文件为 Attachment。

    Raises:
        ValidationError: 文件不存在或无法读取
    """
    p = Path(path).expanduser()
    if not p.is_file():
        raise ValidationError(code="ATTACHMENT_NOT_FOUND", message=f"file not found: {path}")
    try:
        content = p.read_bytes()
    except OSError as e:
        raise ValidationError(code="ATTACHMENT_READ_ERROR", message=str(e))
    content_type = mimetypes.guess_type(p.name)[0] or "application/octet-stream"
    return Attachment(filename=p.name, content=content, content_type=content_type)


def run_chat(
    session: ChatSession,
    user_input: str,
    image_path: Optional[Union[str, Path]] = None,
) -> Optional[Dict[str, Any]]:
    """发送一条消息并返回可序列化的结果。

    Args:
        session: create_session 创建的会话
        user_input: 用户输入内容
        image_path: 图片路径（可选）

    Returns:
        包含 ok、用户消息、助手消息与流统计的字典；空提交或已有请求进行中时返回 None
    """
    attachment = load_attachment(image_path) if image_path else None
    result = session.submit(user_input, attachment)
    if result is None:
        logger.info("Ignored empty or concurrent submission")
        return None
    return {
        "ok": result.ok,
        "trace_id": result.trace_id,
        "error_code": result.error_code,
        "user_message": {
            "role": result.user_message.role,
            "content": result.user_message.content,
        },
        "assistant_message": {
            "role": result.assistant_message.role,
            "content": result.assistant_message.content,
        },
        "stats": {
            "chunks": result.stats.chunks,
            "lines": result.stats.lines,
            "deltas": result.stats.deltas,
            "discarded_lines": result.stats.discarded_lines,
        },
    }


def get_conversation_messages(session: ChatSession) -> list[Dict[str, Any]]:
    """获取会话的所有消息。"""
    return [{"role": m.role, "content": m.content} for m in session.conversation.messages]
