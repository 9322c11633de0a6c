"""Toolbridge - JSON-RPC tool servers bridging stdio clients to REST backends.

Each adapter speaks newline-delimited JSON-RPC 2.0 on stdin/stdout and turns
``tools/call`` requests into calls against one backend (Confluence or Jira).

Quick Start:
    $ export CONFLUENCE_BASE_URL=https://wiki.example.com CONFLUENCE_API_TOKEN=...
    $ toolbridge confluence

Programmatic:
    >>> from toolbridge import Dispatcher, ToolRegistry
    >>> from toolbridge.adapters.confluence import ConfluenceClient, build_registry
    >>> client = ConfluenceClient.from_settings(ConfluenceSettings(), get_settings())
    >>> dispatcher = Dispatcher(build_registry(client), name="confluence", version=__version__)
    >>> await dispatcher.handle_line('{"jsonrpc":"2.0","id":1,"method":"tools/list"}')

Core pieces:
    - LineFramer: splits a chunked stream into newline-terminated messages
    - Dispatcher: decode, route, validate, invoke, encode
    - ToolRegistry / BaseTool: static tool declarations with pydantic schemas
    - ResponseCache: TTL cache for backend reads
    - DocumentNormalizer: storage markup to bounded plain text
    - SearchStrategyChain: ordered fallback over search strategies
"""

from .foundation.config import BridgeSettings, ConfluenceSettings, JiraSettings, get_settings
from .foundation.errors import BackendError, ErrorCode, RpcError, RpcErrorCode, RpcException
from .foundation.registry import BaseTool, EmptyParams, ToolMetadata, ToolParams, ToolRegistry
from .io.cache import ResponseCache
from .io.http import RestClient
from .io.transport import LineFramer
from .runtime.observability import configure_logging, get_logger
from .runtime.rpc import Dispatcher, JsonRpcServer, serve_stdio
from .runtime.search import SearchOutcome, SearchStrategyChain
from .text import DocumentNormalizer

__version__ = "1.0.0"

__all__ = [
    "__version__",
    # Transport & dispatch
    "LineFramer", "Dispatcher", "JsonRpcServer", "serve_stdio",
    # Tools
    "BaseTool", "ToolMetadata", "ToolParams", "EmptyParams", "ToolRegistry",
    # Backend plumbing
    "RestClient", "ResponseCache", "DocumentNormalizer", "SearchStrategyChain", "SearchOutcome",
    # Errors
    "ErrorCode", "RpcErrorCode", "RpcError", "RpcException", "BackendError",
    # Config & logging
    "BridgeSettings", "ConfluenceSettings", "JiraSettings", "get_settings", "configure_logging", "get_logger",
]
