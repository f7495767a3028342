import json

import pytest

from chat_core.streaming.assembler import AssemblerState, StreamAssembler


class RecordingSink:
    def __init__(self):
        self.deltas = []

    def append_text(self, delta):
        self.deltas.append(delta)

    def render_user_turn(self, text):
        pass

    def render_assistant_placeholder(self):
        pass

    def render_assistant_turn(self, text):
        pass

    def set_busy(self, busy):
        pass


def _lines(*deltas):
    return "".join(json.dumps({"response": d}, ensure_ascii=False) + "\n" for d in deltas).encode("utf-8")


def _split(data, size):
    return [data[i : i + size] for i in range(0, len(data), size)]


def test_two_lines_in_one_chunk():
    sink = RecordingSink()
    asm = StreamAssembler(sink)
    text = asm.run([b'{"response":"Hi"}\n{"response":" there"}\n'])
    assert text == "Hi there"
    assert sink.deltas == ["Hi", " there"]
    assert asm.state == AssemblerState.CLOSED


def test_object_split_across_chunks_is_dropped():
    sink = RecordingSink()
    asm = StreamAssembler(sink)
    text = asm.run([b'{"response":"Hel', b'lo"}\n'])
    assert text == ""
    assert sink.deltas == []
    assert asm.stats.deltas == 0
    assert asm.stats.discarded_lines == 3


def test_object_split_across_chunks_is_reassembled_when_enabled():
    sink = RecordingSink()
    asm = StreamAssembler(sink, reassemble_lines=True)
    text = asm.run([b'{"response":"Hel', b'lo"}\n'])
    assert text == "Hello"
    assert sink.deltas == ["Hello"]


def test_malformed_and_irrelevant_lines_are_ignored():
    sink = RecordingSink()
    asm = StreamAssembler(sink)
    body = (
        b'{"response":"a"}\n'
        b"not json\n"
        b"\n"
        b'{"usage":{"total_tokens":3}}\n'
        b"[1, 2]\n"
        b'{"response":""}\n'
        b'{"response":5}\n'
        b'{"response":"b"}\n'
    )
    assert asm.run([body]) == "ab"
    assert sink.deltas == ["a", "b"]
    assert "not json" not in asm.text


def test_oversized_number_line_is_discarded():
    sink = RecordingSink()
    asm = StreamAssembler(sink)
    body = b'{"response":"a"}\n{"n": 1' + b"0" * 5000 + b'}\n{"response":"b"}\n'
    assert asm.run([body]) == "ab"
    assert sink.deltas == ["a", "b"]
    assert asm.stats.discarded_lines == 2


def test_deeply_nested_line_is_discarded():
    sink = RecordingSink()
    asm = StreamAssembler(sink)
    body = b'{"response":"a"}\n' + b"[" * 100000 + b"]" * 100000 + b'\n{"response":"b"}\n'
    assert asm.run([body]) == "ab"
    assert sink.deltas == ["a", "b"]
    assert asm.stats.discarded_lines == 2


def test_feed_returns_deltas_in_order():
    sink = RecordingSink()
    asm = StreamAssembler(sink)
    assert asm.feed(b'{"response":"x"}\n') == ["x"]
    assert asm.state == AssemblerState.AWAITING_CHUNK
    assert asm.feed(b'{"response":"y"}\n{"response":"z"}\n') == ["y", "z"]
    assert asm.close() == "xyz"
    assert asm.stats.chunks == 2


def test_feed_after_close_raises():
    asm = StreamAssembler(RecordingSink())
    asm.close()
    with pytest.raises(RuntimeError):
        asm.feed(b"{}\n")


def test_line_aligned_chunking_is_invariant():
    deltas = ["你好", "，", "世界", " 🌍", "!"]
    raw_lines = [json.dumps({"response": d}, ensure_ascii=False).encode("utf-8") + b"\n" for d in deltas]
    one_chunk = StreamAssembler(RecordingSink()).run([b"".join(raw_lines)])
    per_line_sink = RecordingSink()
    per_line = StreamAssembler(per_line_sink).run(raw_lines)
    assert one_chunk == per_line == "".join(deltas)
    assert per_line_sink.deltas == deltas


@pytest.mark.parametrize("size", [1, 2, 3, 5, 7, 64])
def test_reassembly_is_chunking_invariant(size):
    deltas = ["你好", "，", "世界", " 🌍", "ok"]
    data = _lines(*deltas)
    sink = RecordingSink()
    text = StreamAssembler(sink, reassemble_lines=True).run(_split(data, size))
    assert text == "".join(deltas)
    assert sink.deltas == deltas


def test_reassembly_parses_unterminated_last_line():
    sink = RecordingSink()
    asm = StreamAssembler(sink, reassemble_lines=True)
    assert asm.run([b'{"response":"a"}\n{"response":', b'"b"}']) == "ab"


def test_multibyte_character_split_between_reads():
    data = '{"response":"é"}\n'.encode("utf-8")
    cut = data.index(b"\xc3") + 1
    sink = RecordingSink()
    text = StreamAssembler(sink, reassemble_lines=True).run([data[:cut], data[cut:]])
    assert text == "é"
    assert "�" not in text
