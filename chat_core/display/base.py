"""显示端抽象接口。

会话层与流式解析器不直接操作任何 UI，而是依赖此协议：

- 终端、Tk 窗口、测试用记录器各自实现一个 DisplaySink。
- 所有方法都在产生增量的同一顺序中被同步调用。
"""

from typing import Protocol


class DisplaySink(Protocol):
    """显示端协议。

    实现者需要提供：
    - append_text(delta): 把增量文本追加到当前助手消息，一轮回答内会被多次调用。
    - render_user_turn(text): 渲染一条用户消息。
    - render_assistant_placeholder(): 为即将到来的流式回答开一个空的助手消息。
    - render_assistant_turn(text): 渲染一条完整的助手消息（开场白、错误提示）。
    - set_busy(busy): 请求进行中时显示“正在输入”并禁用输入。
    """

    def append_text(self, delta: str) -> None:
        ...

    def render_user_turn(self, text: str) -> None:
        ...

    def render_assistant_placeholder(self) -> None:
        ...

    def render_assistant_turn(self, text: str) -> None:
        ...

    def set_busy(self, busy: bool) -> None:
        ...
