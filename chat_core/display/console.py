"""终端显示端。"""

import sys
from typing import Optional, TextIO


class ConsoleSink:
    """把对话逐字写到文本流（默认 stdout）。"""

    def __init__(self, stream: Optional[TextIO] = None, user_label: str = "You", assistant_label: str = "Assistant"):
        self._stream = stream or sys.stdout
        self._user_label = user_label
        self._assistant_label = assistant_label
        self._open_line = False

    def append_text(self, delta: str) -> None:
        self._stream.write(delta)
        self._stream.flush()
        self._open_line = True

    def render_user_turn(self, text: str) -> None:
        self._end_line()
        self._stream.write(f"{self._user_label}: {text}\n")
        self._stream.flush()

    def render_assistant_placeholder(self) -> None:
        self._end_line()
        self._stream.write(f"{self._assistant_label}: ")
        self._stream.flush()
        self._open_line = True

    def render_assistant_turn(self, text: str) -> None:
        self._end_line()
        self._stream.write(f"{self._assistant_label}: {text}\n")
        self._stream.flush()

    def set_busy(self, busy: bool) -> None:
        if not busy:
            self._end_line()

    def _end_line(self) -> None:
        if self._open_line:
            self._stream.write("\n")
            self._open_line = False
