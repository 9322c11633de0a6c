"""Newline framing for a continuous text stream.

The transport may split input at arbitrary points; the framer rebuilds message
boundaries using only the newline separator.
"""

from __future__ import annotations


class LineFramer:
    """Accumulates chunks and yields complete, non-blank lines.

    Example:
        >>> framer = LineFramer()
        >>> framer.feed('{"id": 1}\\n{"id"')
        ['{"id": 1}']
        >>> framer.feed(': 2}\\n\\n')
        ['{"id": 2}']
    """

    __slots__ = ("_buffer",)

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, chunk: str) -> list[str]:
        """Append a chunk and return every line it completed, in order."""
        if not chunk:
            return []
        *lines, self._buffer = (self._buffer + chunk).split("\n")
        return [line.removesuffix("\r") for line in lines if line.strip()]

    def close(self) -> str:
        """Discard and return the unterminated tail. It is never emitted as a message."""
        tail, self._buffer = self._buffer, ""
        return tail

    @property
    def pending(self) -> str:
        return self._buffer
