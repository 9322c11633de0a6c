"""Standardized error handling for the bridge.

Two vocabularies live here:
- ErrorCode classifies *why* a backend call failed (drives search fallback decisions).
- RpcErrorCode is the fixed JSON-RPC wire code reported to the client.

RpcError is the wire error object; RpcException carries one through the call stack
until the dispatch boundary turns it into a reply.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum
from functools import lru_cache
from typing import Annotated, Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ErrorCode(StrEnum):
    """Classification of backend and execution failures.

    Used for programmatic error handling and fallback decisions.
    """
    API_KEY_MISSING = "API_KEY_MISSING"
    API_KEY_INVALID = "API_KEY_INVALID"
    RATE_LIMITED = "RATE_LIMITED"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_PARAMS = "INVALID_PARAMS"
    NO_RESULTS = "NO_RESULTS"
    PARSE_ERROR = "PARSE_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN = "UNKNOWN"


# Flattened pattern -> code mapping, checked in insertion order
_PATTERN_CODES: dict[str, ErrorCode] = {
    "timeout": ErrorCode.TIMEOUT,
    "connection": ErrorCode.NETWORK_ERROR,
    "network": ErrorCode.NETWORK_ERROR,
    "rate": ErrorCode.RATE_LIMITED,
    "limit": ErrorCode.RATE_LIMITED,
    "auth": ErrorCode.API_KEY_INVALID,
    "permission": ErrorCode.PERMISSION_DENIED,
    "forbidden": ErrorCode.PERMISSION_DENIED,
    "parse": ErrorCode.PARSE_ERROR,
    "json": ErrorCode.PARSE_ERROR,
    "decode": ErrorCode.PARSE_ERROR,
    "validation": ErrorCode.INVALID_PARAMS,
    "value": ErrorCode.INVALID_PARAMS,
    "notfound": ErrorCode.NOT_FOUND,
}
_PATTERN_KEYS = tuple(_PATTERN_CODES.keys())


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorCode:
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_CODES[pattern]
    return ErrorCode.EXTERNAL_SERVICE_ERROR


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map exception to error code. Exceptions that already carry an ErrorCode keep it."""
    if isinstance(code := getattr(exc, "code", None), ErrorCode):
        return code
    return _classify_cached(f"{type(exc).__name__} {exc}")


def classify_status(status_code: int) -> ErrorCode:
    """Map an HTTP status to an error code. Every 5xx is a server-side error."""
    if status_code >= 500:
        return ErrorCode.SERVER_ERROR
    match status_code:
        case 400 | 422: return ErrorCode.INVALID_PARAMS
        case 401: return ErrorCode.API_KEY_INVALID
        case 403: return ErrorCode.PERMISSION_DENIED
        case 404: return ErrorCode.NOT_FOUND
        case 429: return ErrorCode.RATE_LIMITED
        case _: return ErrorCode.EXTERNAL_SERVICE_ERROR


# ═══════════════════════════════════════════════════════════════════════════════
# JSON-RPC Wire Errors
# ═══════════════════════════════════════════════════════════════════════════════


class RpcErrorCode(IntEnum):
    """Fixed JSON-RPC error codes emitted on the wire."""
    PARSE_ERROR = -32700
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    TOOL_EXECUTION_ERROR = -32000

    @property
    def message(self) -> str:
        return _RPC_MESSAGES[self]


_RPC_MESSAGES: dict[RpcErrorCode, str] = {
    RpcErrorCode.PARSE_ERROR: "Parse error",
    RpcErrorCode.METHOD_NOT_FOUND: "Method not found",
    RpcErrorCode.INVALID_PARAMS: "Invalid params",
    RpcErrorCode.INTERNAL_ERROR: "Internal error",
    RpcErrorCode.TOOL_EXECUTION_ERROR: "Tool execution error",
}


class RpcError(BaseModel):
    """JSON-RPC error object: ``{code, message, data}``.

    Attributes:
        code: One of the fixed RpcErrorCode values
        message: Short, stable description of the code
        data: Free-form detail (decoder message, backend body, validation summary)
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "title": "JSON-RPC Error",
            "examples": [{"code": -32601, "message": "Method not found", "data": "Unknown tool: foo"}],
        },
    )

    code: RpcErrorCode
    message: Annotated[str, Field(min_length=1)]
    data: Any = None

    @field_validator("data", mode="before")
    @classmethod
    def _exception_to_text(cls, v: object) -> object:
        """Accept Exception objects and keep their message."""
        return str(v) if isinstance(v, BaseException) else v

    @classmethod
    def create(cls, code: RpcErrorCode, data: object = None, *, message: str | None = None) -> Self:
        return cls(code=code, message=message or code.message, data=data)

    def to_wire(self) -> dict[str, object]:
        return {"code": int(self.code), "message": self.message, "data": self.data}


class RpcException(Exception):
    """Exception wrapping an RpcError for raising."""

    __slots__ = ("error",)

    def __init__(self, error: RpcError) -> None:
        self.error = error
        super().__init__(f"{error.message}: {error.data}" if error.data is not None else error.message)

    @classmethod
    def create(cls, code: RpcErrorCode, data: object = None, *, message: str | None = None) -> Self:
        return cls(RpcError.create(code, data, message=message))

    @property
    def code(self) -> RpcErrorCode:
        return self.error.code


# ═══════════════════════════════════════════════════════════════════════════════
# Backend Errors
# ═══════════════════════════════════════════════════════════════════════════════


class BackendError(Exception):
    """A REST backend call was attempted and failed.

    Carries the HTTP status (None for transport failures), the raw body,
    and the classified ErrorCode so callers can decide on fallback.
    """

    __slots__ = ("service", "status_code", "body", "code")

    def __init__(
        self,
        message: str,
        *,
        service: str = "backend",
        status_code: int | None = None,
        body: str = "",
        code: ErrorCode | None = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        self.body = body
        self.code = code or (classify_status(status_code) if status_code else ErrorCode.EXTERNAL_SERVICE_ERROR)
        super().__init__(message)

    @classmethod
    def from_response(cls, service: str, status_code: int, body: str) -> Self:
        return cls(f"{service} API Error: {status_code} - {body}", service=service, status_code=status_code, body=body)

    @property
    def is_server_error(self) -> bool:
        return self.code is ErrorCode.SERVER_ERROR


def format_validation_error(exc: ValidationError, *, tool_name: str = "") -> str:
    """Flatten a pydantic ValidationError into one line per failing field."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    prefix = f"Invalid arguments for {tool_name}" if tool_name else "Invalid arguments"
    return f"{prefix}: " + "; ".join(parts)
