"""JSON-RPC 2.0 envelopes."""

from __future__ import annotations

from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict, model_validator

from toolbridge.foundation.errors import RpcError

RequestId = Any  # echoed verbatim


class RpcResponse(BaseModel):
    """Reply envelope. Carries exactly one of result or error."""

    model_config = ConfigDict(frozen=True)

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId = None
    result: Any = None
    error: RpcError | None = None

    @model_validator(mode="after")
    def _exclusive(self) -> Self:
        if self.error is not None and self.result is not None:
            raise ValueError("response cannot carry both result and error")
        return self

    @classmethod
    def success(cls, id: RequestId, result: Any) -> Self:  # noqa: A002
        return cls(id=id, result=result)

    @classmethod
    def failure(cls, id: RequestId, error: RpcError) -> Self:  # noqa: A002
        return cls(id=id, error=error)

    def to_wire(self) -> dict[str, Any]:
        if self.error is not None:
            return {"jsonrpc": self.jsonrpc, "id": self.id, "error": self.error.to_wire()}
        return {"jsonrpc": self.jsonrpc, "id": self.id, "result": self.result}


def text_content(text: str) -> dict[str, Any]:
    """tools/call result carrying one text block."""
    return {"content": [{"type": "text", "text": text}]}
