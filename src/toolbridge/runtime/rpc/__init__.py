"""JSON-RPC dispatch and the stdio server loop."""

from .dispatcher import PROTOCOL_VERSION, Dispatcher, is_notification
from .messages import RpcResponse, text_content
from .server import JsonRpcServer, run_stdio, serve_stdio

__all__ = [
    "Dispatcher", "PROTOCOL_VERSION", "is_notification",
    "RpcResponse", "text_content",
    "JsonRpcServer", "run_stdio", "serve_stdio",
]
