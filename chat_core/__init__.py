"""Chat Core 顶层包。

该包提供流式聊天中继客户端的核心实现，
包括配置加载、领域模型、HTTP 后端适配、
JSON lines 流式组装、会话管理与显示端等能力。
"""

from chat_core.agents.chat_session import ChatSession, SessionConfig
from chat_core.api.service import create_session, run_chat

__all__ = ["ChatSession", "SessionConfig", "create_session", "run_chat"]
