"""Channel lifecycle: the single-shot close hook and a stdio stream channel."""

from __future__ import annotations

import asyncio
import inspect
import threading
from collections.abc import Awaitable, Callable
from typing import TypeAlias

from loguru import logger

from winlaunch.launch_log import LaunchLog
from winlaunch.protocols import ByteReader, ByteWriter, CloseCallback

__all__ = ["CloseHook", "StreamChannel", "StreamChannelFactory"]

_diag = logger.bind(component="channel")

CloseAction: TypeAlias = Callable[[], Awaitable[None] | None]


class CloseHook:
    """Close listener that runs its actions at most once.

    The fired flag is claimed under a lock before any action runs, so two
    signals racing to close the same channel (remote EOF and local shutdown,
    possibly from different threads) release resources exactly once. Every
    action runs even when an earlier one fails.
    """

    __slots__ = ("_actions", "_lock", "_fired")

    def __init__(self, *actions: CloseAction) -> None:
        self._actions = actions
        self._lock = threading.Lock()
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def _claim(self) -> bool:
        with self._lock:
            if self._fired:
                return False
            self._fired = True
            return True

    async def __call__(self) -> None:
        if not self._claim():
            return
        for action in self._actions:
            try:
                result = action()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                _diag.opt(exception=True).warning("Close action {action} failed", action=action)


class StreamChannel:
    """Bidirectional byte channel over a remote process's stdout/stdin.

    Remote EOF and local ``close()`` both end in the same close callback.
    """

    __slots__ = ("_reader", "_writer", "_log", "_on_close", "_closing", "_closed")

    MAX_IO_CHUNK = 64 * 1024

    def __init__(
        self,
        reader: ByteReader,
        writer: ByteWriter,
        log: LaunchLog,
        on_close: CloseCallback,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._log = log
        self._on_close = on_close
        self._closing = False
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closing

    async def send(self, data: bytes) -> None:
        if self._closing:
            raise EOFError("Channel closed")
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (ConnectionError, OSError):
            await self.close()
            raise

    async def receive(self, count: int = MAX_IO_CHUNK) -> bytes:
        """Read up to ``count`` bytes; returns b"" once the remote end is gone."""
        if self._closing:
            return b""
        data = await self._reader.read(count)
        if not data:
            self._log.println("Remote end closed the channel")
            await self.close()
        return data

    async def close(self) -> None:
        if self._closing:
            await self._closed.wait()
            return
        self._closing = True
        try:
            self._writer.close()
        except (ConnectionError, OSError) as e:
            _diag.debug("Ignoring error closing channel writer: {error}", error=e)
        try:
            await self._on_close()
        finally:
            self._closed.set()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def __aenter__(self) -> StreamChannel:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()


class StreamChannelFactory:
    """Builds a StreamChannel from a process's stdio."""

    async def build(
        self,
        reader: ByteReader,
        writer: ByteWriter,
        log: LaunchLog,
        on_close: CloseCallback,
    ) -> StreamChannel:
        return StreamChannel(reader, writer, log, on_close)
