"""Tests for JSON-RPC routing and error mapping."""

from __future__ import annotations

from typing import Any

import httpx
import orjson
import pytest
from pydantic import Field

from toolbridge.foundation.registry import BaseTool, ToolMetadata, ToolParams, ToolRegistry
from toolbridge.foundation.testing import StubBackend
from toolbridge.io.http import RestClient
from toolbridge.runtime.observability import ListRenderer
from toolbridge.runtime.rpc import PROTOCOL_VERSION, Dispatcher, is_notification


class EchoParams(ToolParams):
    text: str = Field(..., description="Text to echo")
    repeat: int = Field(1, ge=1, description="Repetitions")


class EchoTool(BaseTool[EchoParams]):
    metadata = ToolMetadata(name="echo", description="Echo the given text back")
    params_schema = EchoParams

    def __init__(self) -> None:
        self.calls = 0

    async def invoke(self, params: EchoParams) -> Any:
        self.calls += 1
        return {"echo": params.text * params.repeat}


class ExplodingTool(BaseTool[ToolParams]):
    metadata = ToolMetadata(name="explode", description="Always raises an error")

    async def invoke(self, params: ToolParams) -> Any:
        raise RuntimeError("backend exploded")


class OpaqueTool(BaseTool[ToolParams]):
    metadata = ToolMetadata(name="opaque", description="Returns an unserializable value")

    async def invoke(self, params: ToolParams) -> Any:
        return object()


class PageParams(ToolParams):
    page_id: str


class FetchPageTool(BaseTool[PageParams]):
    metadata = ToolMetadata(name="fetch_page", description="Fetch a page from the backend")
    params_schema = PageParams

    def __init__(self, client: RestClient) -> None:
        self.client = client

    async def invoke(self, params: PageParams) -> Any:
        return await self.client.get(f"/content/{params.page_id}")


@pytest.fixture
def echo() -> EchoTool:
    return EchoTool()


@pytest.fixture
def dispatcher(echo: EchoTool) -> Dispatcher:
    registry = ToolRegistry([echo, ExplodingTool(), OpaqueTool()])
    return Dispatcher(registry, name="toolbridge-test", version="1.0.0")


def request(method: str, params: Any = None, id: Any = 1) -> str:  # noqa: A002
    msg: dict[str, Any] = {"jsonrpc": "2.0", "id": id, "method": method}
    if params is not None:
        msg["params"] = params
    return orjson.dumps(msg).decode()


def call(name: str, arguments: Any = None, id: Any = 1) -> str:  # noqa: A002
    params: dict[str, Any] = {"name": name}
    if arguments is not None:
        params["arguments"] = arguments
    return request("tools/call", params, id)


# ═════════════════════════════════════════════════════════════════════════════
# Protocol Methods
# ═════════════════════════════════════════════════════════════════════════════


class TestMethods:
    @pytest.mark.asyncio
    async def test_ping(self, dispatcher: Dispatcher) -> None:
        assert await dispatcher.handle_line(request("ping", id=7)) == {"jsonrpc": "2.0", "id": 7, "result": {}}

    @pytest.mark.asyncio
    async def test_initialize(self, dispatcher: Dispatcher) -> None:
        reply = await dispatcher.handle_line(request("initialize", {"clientInfo": {"name": "cli"}}))
        assert reply["result"] == {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": "toolbridge-test", "version": "1.0.0"},
        }

    @pytest.mark.asyncio
    async def test_tools_list_in_registration_order(self, dispatcher: Dispatcher) -> None:
        reply = await dispatcher.handle_line(request("tools/list"))
        tools = reply["result"]["tools"]
        assert [t["name"] for t in tools] == ["echo", "explode", "opaque"]
        assert tools[0]["description"] == "Echo the given text back"
        schema = tools[0]["inputSchema"]
        assert schema["type"] == "object"
        assert schema["required"] == ["text"]
        assert schema["properties"]["text"]["type"] == "string"
        assert schema["properties"]["repeat"]["default"] == 1

    @pytest.mark.asyncio
    async def test_tools_call_wraps_result_as_text(self, dispatcher: Dispatcher) -> None:
        reply = await dispatcher.handle_line(call("echo", {"text": "hi", "repeat": 2}))
        assert reply == {
            "jsonrpc": "2.0",
            "id": 1,
            "result": {"content": [{"type": "text", "text": '{\n  "echo": "hihi"\n}'}]},
        }

    @pytest.mark.asyncio
    async def test_request_id_echoed_verbatim(self, dispatcher: Dispatcher) -> None:
        assert (await dispatcher.handle_line(request("ping", id="req-abc")))["id"] == "req-abc"
        assert (await dispatcher.handle_line(request("ping", id=0)))["id"] == 0


# ═════════════════════════════════════════════════════════════════════════════
# Error Mapping
# ═════════════════════════════════════════════════════════════════════════════


class TestErrors:
    @pytest.mark.asyncio
    async def test_malformed_json_is_parse_error_with_null_id(self, dispatcher: Dispatcher) -> None:
        reply = await dispatcher.handle_line('{"jsonrpc":"2.0","id":3,')
        assert reply["id"] is None
        assert reply["error"]["code"] == -32700
        assert reply["error"]["message"] == "Parse error"
        assert reply["error"]["data"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("line", ["[1, 2]", '"ping"', '{"jsonrpc":"2.0","id":4}', '{"id":4,"method":9}'])
    async def test_malformed_envelope(self, dispatcher: Dispatcher, line: str) -> None:
        reply = await dispatcher.handle_line(line)
        assert reply["id"] is None
        assert reply["error"]["code"] == -32700

    @pytest.mark.asyncio
    async def test_unknown_method(self, dispatcher: Dispatcher) -> None:
        reply = await dispatcher.handle_line(request("resources/list", id=2))
        assert reply["id"] == 2
        assert reply["error"] == {"code": -32601, "message": "Method not found", "data": "Unknown method: resources/list"}

    @pytest.mark.asyncio
    async def test_unknown_tool(self, dispatcher: Dispatcher) -> None:
        reply = await dispatcher.handle_line(call("nope"))
        assert reply["error"]["code"] == -32601
        assert reply["error"]["data"] == "Unknown tool: nope"

    @pytest.mark.asyncio
    async def test_missing_tool_name(self, dispatcher: Dispatcher) -> None:
        reply = await dispatcher.handle_line(request("tools/call", {"arguments": {}}))
        assert reply["error"]["code"] == -32602
        assert reply["error"]["data"] == "Missing tool name"

    @pytest.mark.asyncio
    async def test_params_must_be_object(self, dispatcher: Dispatcher) -> None:
        reply = await dispatcher.handle_line(request("tools/call", ["echo"]))
        assert reply["error"]["code"] == -32602

    @pytest.mark.asyncio
    @pytest.mark.parametrize("arguments", [{}, {"text": "hi", "repeat": 0}, {"text": "hi", "repeat": "many"}, ["hi"]])
    async def test_invalid_arguments_never_reach_tool(self, dispatcher: Dispatcher, echo: EchoTool, arguments: Any) -> None:
        reply = await dispatcher.handle_line(call("echo", arguments))
        assert reply["error"]["code"] == -32602
        assert "echo" in reply["error"]["data"]
        assert echo.calls == 0

    @pytest.mark.asyncio
    async def test_tool_exception_is_execution_error(self, dispatcher: Dispatcher) -> None:
        reply = await dispatcher.handle_line(call("explode", id=11))
        assert reply["id"] == 11
        assert reply["error"] == {"code": -32000, "message": "Tool execution error", "data": "backend exploded"}

    @pytest.mark.asyncio
    async def test_backend_failure_carries_status_and_body(self) -> None:
        backend = StubBackend(lambda req: httpx.Response(404, text="No content with id 9"))
        async with backend.client(service="Confluence") as client:
            dispatcher = Dispatcher(ToolRegistry([FetchPageTool(client)]), name="t", version="1")
            reply = await dispatcher.handle_line(call("fetch_page", {"pageId": "9"}))

        assert backend.paths() == ["/rest/api/content/9"]
        assert reply["error"]["code"] == -32000
        assert "404" in reply["error"]["data"]
        assert "No content with id 9" in reply["error"]["data"]

    @pytest.mark.asyncio
    async def test_unserializable_result_is_internal_error(self, dispatcher: Dispatcher) -> None:
        reply = await dispatcher.handle_line(call("opaque"))
        assert reply["error"]["code"] == -32603
        assert "not JSON serializable" in reply["error"]["data"]

    @pytest.mark.asyncio
    async def test_failure_logged_with_request_context(self, dispatcher: Dispatcher, logs: ListRenderer) -> None:
        await dispatcher.handle_line(call("explode", id=5))
        entry = next(e for e in logs.entries if e.event == "tool failed")
        assert entry.context["rpc_id"] == 5
        assert entry.context["method"] == "tools/call"
        assert entry.context["tool"] == "explode"


# ═════════════════════════════════════════════════════════════════════════════
# Notifications
# ═════════════════════════════════════════════════════════════════════════════


class TestNotifications:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("line", [
        '{"jsonrpc":"2.0","method":"notifications/initialized"}',
        '{"jsonrpc":"2.0","method":"initialized"}',
        '{"jsonrpc":"2.0","method":"notifications/cancelled","params":{"requestId":3}}',
        '{"jsonrpc":"2.0","method":"no/such/method"}',
        '{"jsonrpc":"2.0","id":null,"method":"tools/call","params":{"name":"explode"}}',
    ])
    async def test_never_answered(self, dispatcher: Dispatcher, line: str) -> None:
        assert await dispatcher.handle_line(line) is None

    @pytest.mark.asyncio
    async def test_notification_with_id_still_silent(self, dispatcher: Dispatcher) -> None:
        assert await dispatcher.handle_line(request("notifications/progress", {}, id=9)) is None

    @pytest.mark.asyncio
    async def test_notification_without_id_still_runs(self, dispatcher: Dispatcher, echo: EchoTool) -> None:
        line = '{"jsonrpc":"2.0","method":"tools/call","params":{"name":"echo","arguments":{"text":"x"}}}'
        assert await dispatcher.handle_line(line) is None
        assert echo.calls == 1

    def test_is_notification(self) -> None:
        assert is_notification("notifications/initialized", {"id": 1})
        assert is_notification("initialized", {"id": 1})
        assert is_notification("ping", {})
        assert not is_notification("ping", {"id": 1})
