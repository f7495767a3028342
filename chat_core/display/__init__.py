"""显示端：DisplaySink 协议与终端实现。Tk 实现位于 chat_core.gui。"""

from chat_core.display.base import DisplaySink
from chat_core.display.console import ConsoleSink

__all__ = ["DisplaySink", "ConsoleSink"]
