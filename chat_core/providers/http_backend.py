"""HTTP 中继后端适配器。

本模块负责：

1. 接收统一的 ChatMessage 列表与可选附件。
2. 按是否带附件选择请求编码：
   - 无附件：JSON 请求体 {"messages": [{role, content}, ...]}。
   - 有附件：multipart，`messages` 字段为 JSON 数组（application/json blob），
     `image` 字段为附件原始字节。
3. 发起流式 POST，检查状态码，并把响应体按原始字节块逐个 yield。

响应体的分帧（JSON lines）不在这里解析，交给 StreamAssembler。
"""

import json
from typing import Any, Dict, Iterator, List, Optional

import httpx

from chat_core.config.settings import settings
from chat_core.domain.exceptions import ApiError, NetworkError, RateLimitError
from chat_core.domain.models import Attachment, ChatMessage


class HttpChatBackend:
    """通过 HTTP 调用聊天中继服务的后端实现。"""

    name = "http"

    def __init__(self, cfg=settings):
        self._settings = cfg

    def stream(self, messages: List[ChatMessage], attachment: Optional[Attachment] = None) -> Iterator[bytes]:
        """发起一次流式请求，逐块产出响应体字节。"""

        url = self._chat_url()
        request_kwargs = self._build_request(messages, attachment)
        try:
            with httpx.Client(timeout=self._timeout(), trust_env=False) as client:
                with client.stream("POST", url, **request_kwargs) as resp:
                    if resp.status_code == 429:
                        raise RateLimitError(code="RATE_LIMIT", message="Chat relay rate limit", http_status=429, url=url)
                    if not 200 <= resp.status_code < 300:
                        resp.read()
                        raise ApiError(
                            code="API_ERROR",
                            message=resp.text or f"HTTP {resp.status_code}",
                            http_status=resp.status_code,
                            url=url,
                        )
                    for chunk in resp.iter_bytes():
                        if chunk:
                            yield chunk
        except (httpx.RequestError, httpx.InvalidURL) as e:
            # 连接失败、读取中断、协议错误等；InvalidURL 不属于 RequestError，需单独捕获
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, url=url)

    def _build_request(self, messages: List[ChatMessage], attachment: Optional[Attachment]) -> Dict[str, Any]:
        """按是否带附件构造 httpx 请求参数，两种编码只取其一。"""

        payload = [m.to_payload() for m in messages]
        if attachment is None:
            return {
                "json": {"messages": payload},
                "headers": {"Content-Type": "application/json"},
            }
        messages_blob = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        return {
            "files": {
                "messages": ("blob", messages_blob, "application/json"),
                "image": (attachment.filename, attachment.content, attachment.content_type),
            },
        }

    def _chat_url(self) -> str:
        base = (getattr(self._settings, "api_base_url", None) or "").rstrip("/")
        path = getattr(self._settings, "chat_path", None) or "/api/chat"
        return f"{base}{path}"

    def _timeout(self) -> httpx.Timeout:
        # 连接/写入使用 http_timeout；读取默认不限时，流式回答可能很慢
        base = getattr(self._settings, "http_timeout", 30.0)
        return httpx.Timeout(base, read=getattr(self._settings, "stream_read_timeout", None))
