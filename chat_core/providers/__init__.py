"""推理后端集成层。

该包下的模块负责：
- 定义后端抽象接口 (base)。
- 提供 HTTP 中继的具体实现 (http_backend)。
"""

from typing import Optional

from chat_core.config.settings import settings
from chat_core.providers.base import ChatBackend
from chat_core.providers.http_backend import HttpChatBackend


def create_backend(name: Optional[str] = None, cfg=None) -> ChatBackend:
    """根据名称创建后端实例，目前只有 "http"。"""

    backend_name = (name or "http").lower()
    if backend_name != "http":
        raise KeyError(f"Unknown backend: {name!r}")
    return HttpChatBackend(cfg or settings)


__all__ = ["ChatBackend", "HttpChatBackend", "create_backend"]
