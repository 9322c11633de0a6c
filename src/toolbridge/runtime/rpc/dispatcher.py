"""JSON-RPC request dispatcher.

Decodes one framed line, routes it through a method table, and converts every
failure into a structured error reply. Nothing raised while handling a single
message escapes handle_line.

Routing:
    initialize     static capability descriptor
    ping           {}
    tools/list     registry listing, in registration order
    tools/call     validate arguments, invoke tool, wrap result as text content
    notifications/*, initialized
                   processed silently, never answered
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from toolbridge.foundation.errors import JsonDict, RpcError, RpcErrorCode, RpcException
from toolbridge.foundation.registry import ToolRegistry
from toolbridge.io.transport import DecodeError, decode, dumps_pretty
from toolbridge.runtime.observability import get_logger, log_context

from .messages import RpcResponse, text_content

PROTOCOL_VERSION = "2024-11-05"
NOTIFICATION_PREFIX = "notifications/"
HANDSHAKE_ACK = "initialized"

Handler = Callable[[JsonDict], Awaitable[Any]]

log = get_logger("rpc")


def is_notification(method: str, message: JsonDict) -> bool:
    """Reserved namespace, the handshake acknowledgment, or no id at all."""
    return method.startswith(NOTIFICATION_PREFIX) or method == HANDSHAKE_ACK or message.get("id") is None


class Dispatcher:
    """Routes decoded requests to handlers.

    Example:
        >>> dispatcher = Dispatcher(registry, name="confluence", version="2.0.0")
        >>> await dispatcher.handle_line('{"jsonrpc":"2.0","id":1,"method":"ping"}')
        {'jsonrpc': '2.0', 'id': 1, 'result': {}}
    """

    __slots__ = ("_registry", "_name", "_version", "_protocol_version", "_methods", "_listing")

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        name: str,
        version: str,
        protocol_version: str = PROTOCOL_VERSION,
    ) -> None:
        self._registry = registry
        self._name = name
        self._version = version
        self._protocol_version = protocol_version
        self._listing: list[dict[str, object]] | None = None
        self._methods: dict[str, Handler] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def methods(self) -> list[str]:
        return list(self._methods)

    # ─────────────────────────────────────────────────────────────────
    # Entry Points
    # ─────────────────────────────────────────────────────────────────

    async def handle_line(self, line: str) -> dict[str, Any] | None:
        """Handle one framed line. Returns the reply, or None when no reply is owed."""
        try:
            message = decode(line)
        except DecodeError as e:
            log.warning("undecodable message", error=str(e), length=len(line))
            return RpcResponse.failure(None, RpcError.create(RpcErrorCode.PARSE_ERROR, str(e))).to_wire()
        return await self.handle_message(message)

    async def handle_message(self, message: object) -> dict[str, Any] | None:
        if not isinstance(message, dict) or not isinstance(method := message.get("method"), str):
            log.warning("malformed envelope", kind=type(message).__name__)
            return RpcResponse.failure(
                None, RpcError.create(RpcErrorCode.PARSE_ERROR, "Message must be an object with a string 'method'"),
            ).to_wire()

        msg_id = message.get("id")
        silent = is_notification(method, message)
        with log_context(rpc_id=msg_id, method=method):
            try:
                result = await self._route(method, message)
            except RpcException as e:
                error = e.error
                log.info("request failed", code=int(error.code), detail=str(error.data))
            except Exception as e:  # noqa: BLE001
                log.exception("unhandled error")
                error = RpcError.create(RpcErrorCode.INTERNAL_ERROR, f"{type(e).__name__}: {e}")
            else:
                return None if silent else RpcResponse.success(msg_id, result).to_wire()

            if silent:
                return None
            return RpcResponse.failure(msg_id, error).to_wire()

    async def _route(self, method: str, message: JsonDict) -> Any:
        if method.startswith(NOTIFICATION_PREFIX) or method == HANDSHAKE_ACK:
            log.debug("notification received")
            return None
        handler = self._methods.get(method)
        if handler is None:
            raise RpcException.create(RpcErrorCode.METHOD_NOT_FOUND, f"Unknown method: {method}")
        params = message.get("params")
        if params is None:
            params = {}
        elif not isinstance(params, dict):
            raise RpcException.create(RpcErrorCode.INVALID_PARAMS, "params must be an object")
        return await handler(params)

    # ─────────────────────────────────────────────────────────────────
    # Handlers
    # ─────────────────────────────────────────────────────────────────

    async def _initialize(self, params: JsonDict) -> JsonDict:
        if client := params.get("clientInfo"):
            log.info("client connected", client=client.get("name") if isinstance(client, dict) else str(client))
        return {
            "protocolVersion": self._protocol_version,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": self._name, "version": self._version},
        }

    async def _ping(self, params: JsonDict) -> JsonDict:
        return {}

    async def _list_tools(self, params: JsonDict) -> JsonDict:
        if self._listing is None:
            self._listing = self._registry.listing()
        return {"tools": self._listing}

    async def _call_tool(self, params: JsonDict) -> JsonDict:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise RpcException.create(RpcErrorCode.INVALID_PARAMS, "Missing tool name")
        tool = self._registry.get(name)
        if tool is None:
            raise RpcException.create(RpcErrorCode.METHOD_NOT_FOUND, f"Unknown tool: {name}")

        arguments = tool.validate(params.get("arguments"))
        try:
            result = await tool.invoke(arguments)
        except RpcException:
            raise
        except Exception as e:  # noqa: BLE001
            log.warning("tool failed", tool=name, error=str(e), error_type=type(e).__name__)
            raise RpcException.create(RpcErrorCode.TOOL_EXECUTION_ERROR, str(e) or type(e).__name__) from e

        log.debug("tool completed", tool=name)
        return text_content(dumps_pretty(result))
