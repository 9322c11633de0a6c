"""Tests for the stdio transport loop."""

from __future__ import annotations

import asyncio
import os
import sys
from typing import Any

import orjson
import pytest

from toolbridge.foundation.registry import BaseTool, ToolMetadata, ToolParams, ToolRegistry
from toolbridge.runtime.observability import ListRenderer
from toolbridge.runtime.rpc import Dispatcher, JsonRpcServer, run_stdio
from toolbridge.runtime.rpc.server import _read_stdin


class GateTool(BaseTool[ToolParams]):
    """Blocks until released, to hold a request in flight."""

    metadata = ToolMetadata(name="gate", description="Wait for the gate to open")

    def __init__(self) -> None:
        self.opened = asyncio.Event()

    async def invoke(self, params: ToolParams) -> Any:
        await self.opened.wait()
        return {"opened": True}


@pytest.fixture
def gate() -> GateTool:
    return GateTool()


@pytest.fixture
def dispatcher(gate: GateTool) -> Dispatcher:
    return Dispatcher(ToolRegistry([gate]), name="toolbridge-test", version="1.0.0")


@pytest.fixture
def sent() -> list[bytes]:
    return []


@pytest.fixture
def server(dispatcher: Dispatcher, sent: list[bytes]) -> JsonRpcServer:
    return JsonRpcServer(dispatcher, writer=sent.append)


def replies(sent: list[bytes]) -> list[dict[str, Any]]:
    return [orjson.loads(line) for line in sent]


async def until(predicate, attempts: int = 100) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never met")


# ═════════════════════════════════════════════════════════════════════════════
# Framing and Replies
# ═════════════════════════════════════════════════════════════════════════════


class TestServer:
    @pytest.mark.asyncio
    async def test_request_split_across_chunks(self, server: JsonRpcServer, sent: list[bytes]) -> None:
        server.feed('{"jsonrpc":"2.0","id":7,')
        await server.wait_idle()
        assert sent == []

        server.feed('"method":"ping"}\n')
        await server.wait_idle()
        assert sent == [b'{"jsonrpc":"2.0","id":7,"result":{}}\n']

    @pytest.mark.asyncio
    async def test_one_reply_line_per_request(self, server: JsonRpcServer, sent: list[bytes]) -> None:
        server.feed(
            '{"jsonrpc":"2.0","id":1,"method":"ping"}\n'
            '{"jsonrpc":"2.0","method":"notifications/initialized"}\n'
            "not json\n"
            '{"jsonrpc":"2.0","id":2,"method":"tools/list"}\n'
        )
        await server.wait_idle()

        assert all(line.endswith(b"\n") and line.count(b"\n") == 1 for line in sent)
        by_id = {r["id"]: r for r in replies(sent)}
        assert set(by_id) == {1, 2, None}
        assert by_id[None]["error"]["code"] == -32700
        assert by_id[2]["result"]["tools"][0]["name"] == "gate"

    @pytest.mark.asyncio
    async def test_utf8_split_mid_character(self, server: JsonRpcServer, sent: list[bytes]) -> None:
        data = '{"jsonrpc":"2.0","id":3,"method":"café"}\n'.encode()
        cut = data.index("é".encode()) + 1
        server.feed_bytes(data[:cut])
        server.feed_bytes(data[cut:])
        await server.wait_idle()

        assert replies(sent)[0]["error"]["data"] == "Unknown method: café"

    @pytest.mark.asyncio
    async def test_slow_request_does_not_block_later_ones(
        self, server: JsonRpcServer, sent: list[bytes], gate: GateTool,
    ) -> None:
        server.feed('{"jsonrpc":"2.0","id":1,"method":"tools/call","params":{"name":"gate"}}\n')
        server.feed('{"jsonrpc":"2.0","id":2,"method":"ping"}\n')
        await until(lambda: len(sent) == 1 and server.in_flight == 1)

        gate.opened.set()
        await server.wait_idle()
        assert [r["id"] for r in replies(sent)] == [2, 1]
        assert server.in_flight == 0

    @pytest.mark.asyncio
    async def test_closed_output_is_tolerated(self, dispatcher: Dispatcher, logs: ListRenderer) -> None:
        def broken(data: bytes) -> None:
            raise BrokenPipeError("stdout closed")

        server = JsonRpcServer(dispatcher, writer=broken)
        server.feed('{"jsonrpc":"2.0","id":1,"method":"ping"}\n')
        await server.wait_idle()
        assert "output closed" in logs.events("warning")

    @pytest.mark.asyncio
    async def test_partial_line_discarded_on_close(
        self, server: JsonRpcServer, sent: list[bytes], logs: ListRenderer,
    ) -> None:
        server.feed('{"jsonrpc":"2.0","id":1,"method":"ping"}\n{"jsonrpc":"2.0","id":2')
        await server.wait_idle()
        server.close()

        assert [r["id"] for r in replies(sent)] == [1]
        assert "discarding partial line" in logs.events("debug")


# ═════════════════════════════════════════════════════════════════════════════
# Process Loop
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_run_stdio_stops_at_eof_and_cleans_up(
    dispatcher: Dispatcher, sent: list[bytes], monkeypatch: pytest.MonkeyPatch,
) -> None:
    read_fd, write_fd = os.pipe()
    os.write(write_fd, b'{"jsonrpc":"2.0","id":1,"method":"ping"}\n')
    os.close(write_fd)
    stdin = os.fdopen(read_fd, "rb")
    monkeypatch.setattr(sys, "stdin", stdin)
    cleaned = []

    async def cleanup() -> None:
        cleaned.append(True)

    try:
        status = await asyncio.wait_for(run_stdio(dispatcher, cleanup, writer=sent.append), timeout=5)
    finally:
        stdin.close()

    assert status == 0
    assert cleaned == [True]


def test_stdin_reader_stops_quietly_after_loop_closes(dispatcher: Dispatcher, monkeypatch: pytest.MonkeyPatch) -> None:
    read_fd, write_fd = os.pipe()
    os.write(write_fd, b'{"jsonrpc":"2.0","id":1,"method":"ping"}\n')
    os.close(write_fd)
    stdin = os.fdopen(read_fd, "rb")
    monkeypatch.setattr(sys, "stdin", stdin)
    loop = asyncio.new_event_loop()
    loop.close()
    server = JsonRpcServer(dispatcher, writer=lambda data: None)

    try:
        _read_stdin(loop, server, asyncio.Event())
    finally:
        stdin.close()

    assert server.in_flight == 0
