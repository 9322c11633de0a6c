"""Tests for newline framing and the orjson wire codec."""

from __future__ import annotations

import orjson
import pytest

from toolbridge.io.transport import DecodeError, LineFramer, decode, dumps_pretty, encode_line


class TestLineFramer:
    def test_complete_line(self) -> None:
        assert LineFramer().feed('{"id":1}\n') == ['{"id":1}']

    def test_message_split_across_chunks(self) -> None:
        framer = LineFramer()
        assert framer.feed('{"jsonrpc":"2.0","id":7,') == []
        assert framer.pending == '{"jsonrpc":"2.0","id":7,'
        assert framer.feed('"method":"ping"}\n') == ['{"jsonrpc":"2.0","id":7,"method":"ping"}']
        assert framer.pending == ""

    def test_many_lines_in_one_chunk_keep_order(self) -> None:
        framer = LineFramer()
        assert framer.feed("a\nb\nc\nd") == ["a", "b", "c"]
        assert framer.feed("\n") == ["d"]

    def test_blank_and_whitespace_lines_dropped(self) -> None:
        assert LineFramer().feed("\n\n   \nx\n\t\n") == ["x"]

    def test_crlf_stripped(self) -> None:
        assert LineFramer().feed('{"id":1}\r\n{"id":2}\r\n') == ['{"id":1}', '{"id":2}']

    def test_byte_at_a_time(self) -> None:
        framer = LineFramer()
        out: list[str] = []
        for ch in '{"a":1}\n{"b":2}\n':
            out += framer.feed(ch)
        assert out == ['{"a":1}', '{"b":2}']

    def test_empty_chunk_is_noop(self) -> None:
        framer = LineFramer()
        framer.feed("partial")
        assert framer.feed("") == []
        assert framer.pending == "partial"

    def test_close_discards_partial_line(self) -> None:
        framer = LineFramer()
        framer.feed('{"id":1}\n{"id":')
        assert framer.close() == '{"id":'
        assert framer.pending == ""
        assert framer.feed("2}\n") == ["2}"]


class TestCodec:
    def test_decode_roundtrip_shape(self) -> None:
        assert decode('{"jsonrpc":"2.0","id":1,"method":"ping"}') == {"jsonrpc": "2.0", "id": 1, "method": "ping"}

    def test_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            decode("{not json")

    def test_encode_line_is_single_line(self) -> None:
        data = encode_line({"jsonrpc": "2.0", "id": 1, "result": {"text": "a\nb"}})
        assert data.endswith(b"\n")
        assert data.count(b"\n") == 1
        assert orjson.loads(data) == {"jsonrpc": "2.0", "id": 1, "result": {"text": "a\nb"}}

    def test_encode_handles_sets_and_models(self) -> None:
        from toolbridge.foundation.errors import RpcError, RpcErrorCode

        data = orjson.loads(encode_line({"tags": {"x"}, "error": RpcError.create(RpcErrorCode.INTERNAL_ERROR)}))
        assert data["tags"] == ["x"]
        assert data["error"]["code"] == -32603

    def test_encode_rejects_unknown_types(self) -> None:
        with pytest.raises(TypeError):
            encode_line({"x": object()})

    def test_dumps_pretty_is_indented(self) -> None:
        assert dumps_pretty({"a": 1}) == '{\n  "a": 1\n}'
