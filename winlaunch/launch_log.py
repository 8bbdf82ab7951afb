"""Operator-facing launch log.

Every state transition of a launch is written as one line to a LaunchLog so
that failures can be diagnosed even when the caller only sees an exception.
"""

from __future__ import annotations

import threading
import traceback
from typing import Protocol, TextIO

from loguru import logger

__all__ = ["LaunchLog", "LoggerLaunchLog", "StreamLaunchLog", "TeeLaunchLog"]


class LaunchLog(Protocol):
    """Append-only line writer."""

    def println(self, line: str) -> None: ...

    def exception(self, line: str) -> None:
        """Write ``line`` followed by the traceback of the active exception."""
        ...


class LoggerLaunchLog:
    """Forwards launch lines to loguru with the node bound."""

    __slots__ = ("_log",)

    def __init__(self, node: str) -> None:
        self._log = logger.bind(component="launch", node=node)

    def println(self, line: str) -> None:
        self._log.info(line)

    def exception(self, line: str) -> None:
        self._log.opt(exception=True).error(line)


class StreamLaunchLog:
    """Writes launch lines to a text stream, e.g. a per-node log file."""

    __slots__ = ("_stream", "_lock")

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    def println(self, line: str) -> None:
        with self._lock:
            self._stream.write(line + "\n")
            self._stream.flush()

    def exception(self, line: str) -> None:
        with self._lock:
            self._stream.write(line + "\n")
            self._stream.write(traceback.format_exc())
            self._stream.flush()


class TeeLaunchLog:
    """Fans every line out to several launch logs."""

    __slots__ = ("_logs",)

    def __init__(self, *logs: LaunchLog) -> None:
        self._logs = logs

    def println(self, line: str) -> None:
        for log in self._logs:
            log.println(line)

    def exception(self, line: str) -> None:
        for log in self._logs:
            log.exception(line)
