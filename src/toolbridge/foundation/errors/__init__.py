"""Unified error handling for toolbridge.

- ErrorCode: classification of backend/execution failures
- RpcErrorCode/RpcError/RpcException: JSON-RPC wire errors
- BackendError: failed REST call with status and body
- Result/Ok/Err: explicit success or failure of a search chain run
- ErrorTrace/ErrorContext: error context stacking and provenance tracking
"""

from .errors import (
    BackendError,
    ErrorCode,
    RpcError,
    RpcErrorCode,
    RpcException,
    classify_exception,
    classify_status,
    format_validation_error,
)
from .result import Err, Ok, Result
from .types import ErrorContext, ErrorTrace, JsonDict, JsonValue, trace, trace_from_exc

__all__ = [
    # Classification
    "ErrorCode", "classify_exception", "classify_status", "format_validation_error",
    # Wire errors
    "RpcErrorCode", "RpcError", "RpcException",
    # Backend
    "BackendError",
    # Result
    "Result", "Ok", "Err",
    # Error context
    "ErrorContext", "ErrorTrace", "trace", "trace_from_exc",
    "JsonDict", "JsonValue",
]
