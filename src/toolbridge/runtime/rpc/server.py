"""Stdio transport loop.

Input chunks are framed into lines and each line is dispatched as its own
task, so a slow backend call never blocks reading. Replies are written as
single lines in completion order, which may differ from arrival order.
"""

from __future__ import annotations

import asyncio
import codecs
import os
import signal
import sys
import threading
from collections.abc import Awaitable, Callable
from typing import Any

from toolbridge.foundation.errors import RpcError, RpcErrorCode
from toolbridge.io.transport import LineFramer, encode_line
from toolbridge.runtime.observability import get_logger

from .dispatcher import Dispatcher
from .messages import RpcResponse

Writer = Callable[[bytes], None]
Cleanup = Callable[[], Awaitable[None]]

READ_SIZE = 65536

log = get_logger("server")


def stdout_writer(data: bytes) -> None:
    out = sys.stdout.buffer
    out.write(data)
    out.flush()


class JsonRpcServer:
    """Feeds raw input through the framer and writes one reply line per request.

    Example:
        >>> sent: list[bytes] = []
        >>> server = JsonRpcServer(dispatcher, writer=sent.append)
        >>> server.feed('{"jsonrpc":"2.0","id":7,')
        >>> server.feed('"method":"ping"}\\n')
        >>> await server.wait_idle()
        >>> sent
        [b'{"jsonrpc":"2.0","id":7,"result":{}}\\n']
    """

    __slots__ = ("_dispatcher", "_writer", "_framer", "_decoder", "_tasks")

    def __init__(self, dispatcher: Dispatcher, writer: Writer | None = None) -> None:
        self._dispatcher = dispatcher
        self._writer = writer or stdout_writer
        self._framer = LineFramer()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def feed(self, chunk: str) -> None:
        """Frame a text chunk and schedule every completed line. Requires a running loop."""
        for line in self._framer.feed(chunk):
            task = asyncio.get_running_loop().create_task(self._handle(line))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def feed_bytes(self, data: bytes) -> None:
        """Decode raw bytes incrementally; multi-byte sequences may straddle chunks."""
        self.feed(self._decoder.decode(data))

    async def _handle(self, line: str) -> None:
        reply = await self._dispatcher.handle_line(line)
        if reply is None:
            return
        try:
            data = encode_line(reply)
        except TypeError as e:
            log.error("unserializable reply", error=str(e))
            fallback = RpcResponse.failure(reply.get("id"), RpcError.create(RpcErrorCode.INTERNAL_ERROR, str(e)))
            data = encode_line(fallback.to_wire())
        self._write(data)

    def _write(self, data: bytes) -> None:
        try:
            self._writer(data)
        except (BrokenPipeError, ValueError) as e:
            log.warning("output closed", error=str(e))

    async def wait_idle(self) -> None:
        """Wait for every dispatched request, including ones scheduled while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """End of input. An unterminated trailing line is discarded."""
        tail = self._framer.close() + self._decoder.decode(b"", final=True)
        if tail.strip():
            log.debug("discarding partial line", length=len(tail))


# ═══════════════════════════════════════════════════════════════════════════════
# Process Entry
# ═══════════════════════════════════════════════════════════════════════════════


def _read_stdin(loop: asyncio.AbstractEventLoop, server: JsonRpcServer, stop: asyncio.Event) -> None:
    """Blocking reader thread. Hands chunks to the loop; sets stop on EOF."""
    fd = sys.stdin.fileno()
    try:
        while chunk := os.read(fd, READ_SIZE):
            if not _hand_off(loop, server.feed_bytes, chunk):
                return
    except OSError as e:
        log.warning("stdin read failed", error=str(e))
    _hand_off(loop, stop.set)


def _hand_off(loop: asyncio.AbstractEventLoop, callback: Callable[..., object], *args: object) -> bool:
    """Schedule callback on the loop. False once the loop has closed."""
    try:
        loop.call_soon_threadsafe(callback, *args)
    except RuntimeError:
        return False
    return True


async def run_stdio(dispatcher: Dispatcher, cleanup: Cleanup | None = None, *, writer: Writer | None = None) -> int:
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    server = JsonRpcServer(dispatcher, writer)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            log.debug("signal handler unavailable", signal=sig.name)

    reader = threading.Thread(target=_read_stdin, args=(loop, server, stop), name="stdin-reader", daemon=True)
    reader.start()
    log.info("server ready", tools=len(dispatcher.registry))

    await stop.wait()
    server.close()
    if server.in_flight:
        log.info("exiting with requests in flight", pending=server.in_flight)
    if cleanup is not None:
        await cleanup()
    log.info("server stopped")
    return 0


def serve_stdio(dispatcher: Dispatcher, cleanup: Cleanup | None = None, **kwargs: Any) -> int:
    """Run until stdin closes or a termination signal arrives. Returns the exit status."""
    return asyncio.run(run_stdio(dispatcher, cleanup, **kwargs))
