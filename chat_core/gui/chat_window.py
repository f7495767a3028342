import tkinter as tk
from tkinter import filedialog, scrolledtext
import threading

from chat_core.agents.chat_session import ChatSession
from chat_core.api.service import create_session, load_attachment
from chat_core.domain.exceptions import ValidationError


class TkDisplaySink:
    """Tk 显示端：所有调用都经 root.after 投递到主线程，顺序与调用顺序一致。"""

    def __init__(self, root, chat, status, controls):
        self.root = root
        self.chat = chat
        self.status = status
        self.controls = controls
        # 仅在主线程读写
        self._open_line = False

    def append_text(self, delta):
        self.root.after(0, lambda: self._insert(delta, "assistant", open_line=True))

    def render_user_turn(self, text):
        self.root.after(0, lambda: self._start_line(f"用户: {text}\n", "user"))

    def render_assistant_placeholder(self):
        self.root.after(0, lambda: self._start_line("助手: ", "assistant", open_line=True))

    def render_assistant_turn(self, text):
        self.root.after(0, lambda: self._start_line(f"助手: {text}\n", "assistant"))

    def set_busy(self, busy):
        self.root.after(0, lambda: self._set_busy(busy))

    def _insert(self, text, tag, open_line=False):
        self.chat.insert(tk.END, text, tag)
        self.chat.see(tk.END)
        self._open_line = open_line

    def _start_line(self, text, tag, open_line=False):
        self._end_line()
        self._insert(text, tag, open_line)

    def _end_line(self):
        if self._open_line:
            self.chat.insert(tk.END, "\n")
            self._open_line = False

    def _set_busy(self, busy):
        state = tk.DISABLED if busy else tk.NORMAL
        for widget in self.controls:
            widget.config(state=state)
        if busy:
            self.status.config(text="正在输入...")
        else:
            self._end_line()
            self.status.config(text="准备就绪")
            self.controls[0].focus_set()


class App:
    def __init__(self, root):
        self.root = root
        self.root.title("Chat Console")
        self.image_path = None
        top = tk.Frame(root)
        top.pack(fill=tk.BOTH, expand=True)
        self.chat = scrolledtext.ScrolledText(top, width=80, height=24, wrap=tk.WORD)
        self.chat.pack(fill=tk.BOTH, expand=True)
        self.chat.tag_config("user", foreground="#1a73e8")
        self.chat.tag_config("assistant", foreground="#34a853")
        self.chat.tag_config("system", foreground="#5f6368")
        self.chat.tag_config("error", foreground="#d93025")
        row = tk.Frame(top)
        row.pack(fill=tk.X)
        self.entry = tk.Entry(row)
        self.entry.pack(side=tk.LEFT, fill=tk.X, expand=True)
        self.entry.bind("<Return>", self.on_send_event)
        self.image_btn = tk.Button(row, text="图片", command=self.on_pick_image)
        self.image_btn.pack(side=tk.LEFT)
        self.send_btn = tk.Button(row, text="发送", command=self.on_send)
        self.send_btn.pack(side=tk.LEFT)
        self.status = tk.Label(top, text="准备就绪", anchor=tk.W)
        self.status.pack(fill=tk.X)
        self.sink = TkDisplaySink(root, self.chat, self.status, [self.entry, self.image_btn, self.send_btn])
        self.session: ChatSession = create_session(sink=self.sink)

    def on_pick_image(self):
        path = filedialog.askopenfilename(filetypes=[("Images", "*.png *.jpg *.jpeg *.gif *.webp"), ("All", "*.*")])
        self.image_path = path or None
        self.status.config(text=f"已选择图片: {path}" if path else "准备就绪")

    def on_send(self):
        if self.session.in_flight:
            return
        text = self.entry.get().strip()
        attachment = None
        if self.image_path:
            try:
                attachment = load_attachment(self.image_path)
            except ValidationError as e:
                self.chat.insert(tk.END, f"[系统] {e.message}\n", "system")
                self.image_path = None
                return
        # begin 在主线程执行，守卫先于工作线程生效
        pending = self.session.begin(text, attachment)
        if pending is None:
            return
        self.entry.delete(0, tk.END)
        self.image_path = None
        threading.Thread(target=self.session.complete, args=(pending,), daemon=True).start()

    def on_send_event(self, event):
        self.on_send()
        return "break"


if __name__ == "__main__":
    root = tk.Tk()
    app = App(root)
    root.mainloop()
