"""orjson wire codec for newline-delimited JSON-RPC."""

from __future__ import annotations

from typing import Any

import orjson

DecodeError = orjson.JSONDecodeError


def decode(line: str | bytes) -> Any:
    """Parse one framed line. Raises DecodeError on malformed input."""
    return orjson.loads(line)


def encode_line(message: dict[str, Any]) -> bytes:
    """Serialize one reply as a single compact line terminated by a newline."""
    return orjson.dumps(message, default=_default, option=orjson.OPT_APPEND_NEWLINE | orjson.OPT_NON_STR_KEYS)


def dumps_pretty(value: Any) -> str:
    """Indented JSON text, used for tool result content blocks."""
    return orjson.dumps(value, default=_default, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS).decode()


def _default(obj: Any) -> Any:
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")
