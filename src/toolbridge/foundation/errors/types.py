"""Type aliases and error context tracking for Result-based error handling.

Uses Pydantic models for validation/serialization. ErrorTrace is the error side
of every Result produced by the search chain.
"""

from __future__ import annotations

from typing import Annotated, Any, Union

from pydantic import BaseModel, ConfigDict, Field

# ═══════════════════════════════════════════════════════════════════════════════
# Type Aliases
# ═══════════════════════════════════════════════════════════════════════════════

JsonPrimitive = Union[str, int, float, bool, None]
JsonValue = Union[JsonPrimitive, list[Any], dict[str, Any]]
JsonDict = dict[str, Any]

_EMPTY_META: JsonDict = {}

# ═══════════════════════════════════════════════════════════════════════════════
# Error Context & Provenance
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorContext(BaseModel):
    """Context for error at a call site. Tracks operation, location, metadata."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid", revalidate_instances="never")

    operation: Annotated[str, Field(min_length=1)]
    location: str = Field(default="", repr=False)
    metadata: JsonDict = Field(default_factory=dict, repr=False)

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        meta = f" ({', '.join(f'{k}={v}' for k, v in self.metadata.items())})" if self.metadata else ""
        return f"{self.operation}{loc}{meta}"

    def __hash__(self) -> int:
        return hash((self.operation, self.location, tuple(sorted(self.metadata.items()))))


_EMPTY_CONTEXTS: tuple[ErrorContext, ...] = ()


class ErrorTrace(BaseModel):
    """Stack of error contexts forming a call chain trace. Immutable; with_* methods return copies."""

    model_config = ConfigDict(
        frozen=True, str_strip_whitespace=True, validate_default=True, extra="forbid",
        revalidate_instances="never",
    )

    message: Annotated[str, Field(min_length=1)]
    contexts: tuple[ErrorContext, ...] = _EMPTY_CONTEXTS
    error_code: str | None = Field(default=None, repr=True)
    recoverable: bool = True
    details: str | None = Field(default=None, repr=False)

    def __hash__(self) -> int:
        return hash((self.message, self.error_code, self.recoverable))

    def _replace(self, **changes: Any) -> ErrorTrace:
        fields = {
            "message": self.message, "contexts": self.contexts, "error_code": self.error_code,
            "recoverable": self.recoverable, "details": self.details,
        }
        return ErrorTrace.model_construct(**{**fields, **changes})

    def with_operation(self, operation: str, location: str = "", **metadata: JsonValue) -> ErrorTrace:
        """Add context with operation info."""
        ctx = ErrorContext.model_construct(operation=operation, location=location, metadata=metadata or _EMPTY_META)
        return self._replace(contexts=(*self.contexts, ctx))

    def as_unrecoverable(self) -> ErrorTrace:
        return self._replace(recoverable=False)

    def __str__(self) -> str:
        code = f" [{self.error_code}]" if self.error_code else ""
        where = f" in {' > '.join(str(ctx) for ctx in self.contexts)}" if self.contexts else ""
        return f"{self.message}{code}{where}"


def trace(message: str, *, code: str | None = None, recoverable: bool = True, details: str | None = None) -> ErrorTrace:
    """Create ErrorTrace concisely (bypasses validation)."""
    return ErrorTrace.model_construct(
        message=message, contexts=_EMPTY_CONTEXTS, error_code=code, recoverable=recoverable, details=details,
    )


def trace_from_exc(exc: BaseException, *, operation: str = "", code: str | None = None) -> ErrorTrace:
    """Create ErrorTrace from exception with optional operation context."""
    t = trace(str(exc) or type(exc).__name__, code=code)
    return t.with_operation(operation) if operation else t
