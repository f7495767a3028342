"""测试聊天会话的完整交换流程。"""

from chat_core.agents.chat_session import ChatSession, SessionConfig
from chat_core.domain.exceptions import ApiError, NetworkError
from chat_core.domain.models import Attachment


class RecordingSink:
    def __init__(self):
        self.events = []

    def append_text(self, delta):
        self.events.append(("append", delta))

    def render_user_turn(self, text):
        self.events.append(("user", text))

    def render_assistant_placeholder(self):
        self.events.append(("placeholder", None))

    def render_assistant_turn(self, text):
        self.events.append(("assistant", text))

    def set_busy(self, busy):
        self.events.append(("busy", busy))


class FakeBackend:
    """模拟的后端，按预设返回字节块或抛出异常。"""

    name = "fake"

    def __init__(self, chunks=(), error=None, fail_after=None):
        self.chunks = list(chunks)
        self.error = error
        self.fail_after = fail_after
        self.calls = []
        self.in_flight_seen = []

    def stream(self, messages, attachment=None):
        self.calls.append((list(messages), attachment))
        return self._gen()

    def _gen(self):
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i == self.fail_after:
                raise self.error
            yield chunk
        if self.error is not None and self.fail_after is None:
            raise self.error


def _session(backend, sink=None, **config):
    return ChatSession(backend=backend, sink=sink or RecordingSink(), config=SessionConfig(**config))


def test_submit_success_appends_user_then_assistant():
    sink = RecordingSink()
    backend = FakeBackend(chunks=[b'{"response":"Hi"}\n{"response":" there"}\n'])
    session = _session(backend, sink)
    assert session.in_flight is False
    result = session.submit("hello")
    assert result.ok
    assert result.assistant_message.content == "Hi there"
    assert [(m.role, m.content) for m in session.conversation.messages] == [
        ("user", "hello"),
        ("assistant", "Hi there"),
    ]
    assert sink.events == [
        ("user", "hello"),
        ("busy", True),
        ("placeholder", None),
        ("append", "Hi"),
        ("append", " there"),
        ("busy", False),
    ]
    assert session.in_flight is False
    assert result.stats.deltas == 2


def test_submit_sends_history_and_system_prompt():
    backend = FakeBackend(chunks=[b'{"response":"ok"}\n'])
    session = _session(backend, system_prompt="sys", greeting="Hello!")
    session.submit("one")
    session.submit("two")
    sent, attachment = backend.calls[-1]
    assert [(m.role, m.content) for m in sent] == [
        ("system", "sys"),
        ("assistant", "Hello!"),
        ("user", "one"),
        ("assistant", "ok"),
        ("user", "two"),
    ]
    assert attachment is None
    assert session.conversation.messages[0].role == "assistant"


def test_submit_with_attachment_only():
    backend = FakeBackend(chunks=[b'{"response":"an invoice"}\n'])
    sink = RecordingSink()
    session = _session(backend, sink)
    image = Attachment(filename="a.png", content=b"123", content_type="image/png")
    result = session.submit("", image)
    assert result.ok
    assert backend.calls[0][1] is image
    assert result.user_message.content == ""
    assert sink.events[0] == ("user", "[Image attached]")


def test_empty_submission_is_noop():
    backend = FakeBackend()
    sink = RecordingSink()
    session = _session(backend, sink)
    assert session.submit("   ") is None
    assert backend.calls == []
    assert sink.events == []
    assert len(session.conversation) == 0


def test_second_submission_while_in_flight_is_ignored():
    backend = FakeBackend(chunks=[b'{"response":"first"}\n'])
    session = _session(backend)
    pending = session.begin("first")
    assert session.in_flight is True
    assert session.begin("second") is None
    assert session.submit("second") is None
    result = session.complete(pending)
    assert result.ok
    assert session.in_flight is False
    assert [m.content for m in session.conversation.messages] == ["first", "first"]


def test_server_error_surfaces_fallback_and_keeps_history():
    sink = RecordingSink()
    backend = FakeBackend(chunks=[b'{"response":"ok"}\n'])
    session = _session(backend, sink, fallback_error_text="Sorry, there was an error processing your request.")
    session.submit("earlier")
    before = [(m.role, m.content) for m in session.conversation.messages]

    backend.chunks = []
    backend.error = ApiError(code="API_ERROR", message="boom", http_status=500)
    result = session.submit("now")
    assert result.ok is False
    assert result.error_code == "API_ERROR"
    assert result.assistant_message.role == "assistant"
    assert result.assistant_message.content == "Sorry, there was an error processing your request."
    after = [(m.role, m.content) for m in session.conversation.messages]
    assert after[: len(before)] == before
    assert after[len(before):] == [("user", "now")]
    assert sink.events[-2:] == [
        ("assistant", "Sorry, there was an error processing your request."),
        ("busy", False),
    ]
    assert session.in_flight is False


def test_network_failure_mid_stream_does_not_commit_partial_text():
    sink = RecordingSink()
    backend = FakeBackend(
        chunks=[b'{"response":"par"}\n', b'{"response":"tial"}\n'],
        error=NetworkError(code="NETWORK_ERROR", message="reset"),
        fail_after=1,
    )
    session = _session(backend, sink)
    result = session.submit("hi")
    assert result.ok is False
    assert result.error_code == "NETWORK_ERROR"
    assert ("append", "par") in sink.events
    assert [m.role for m in session.conversation.messages] == ["user"]
    assert session.in_flight is False


def test_unexpected_error_still_clears_guard():
    class BrokenBackend:
        name = "broken"

        def stream(self, messages, attachment=None):
            raise ValueError("bad backend")

    session = _session(BrokenBackend())
    try:
        session.submit("hi")
    except ValueError:
        pass
    else:
        raise AssertionError("ValueError should propagate")
    assert session.in_flight is False


def test_reassemble_lines_config():
    backend = FakeBackend(chunks=[b'{"response":"Hel', b'lo"}\n'])
    assert _session(backend).submit("a").assistant_message.content == ""
    backend2 = FakeBackend(chunks=[b'{"response":"Hel', b'lo"}\n'])
    assert _session(backend2, reassemble_lines=True).submit("a").assistant_message.content == "Hello"


def test_unparseable_number_line_does_not_abort_turn():
    backend = FakeBackend(chunks=[b'{"response":"o"}\n{"n": 1' + b"0" * 5000 + b'}\n{"response":"k"}\n'])
    session = _session(backend)
    result = session.submit("hi")
    assert result.ok
    assert result.assistant_message.content == "ok"
    assert result.stats.discarded_lines == 2
    assert session.in_flight is False
