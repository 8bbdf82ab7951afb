"""Logging configuration for winlaunch.

Diagnostics and the operator launch log go through loguru. The namespace is
never disabled, so a bare ``LoggerLaunchLog`` reaches loguru's default sink;
``setup_logging`` adds the winlaunch console and file sinks.

Example:
    from winlaunch.logging import LogConfig, setup_logging, teardown_logging

    ids = setup_logging(LogConfig(level="DEBUG", file="winlaunch.log"))
    try:
        await launcher.launch(node)
    finally:
        teardown_logging(ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from loguru import logger

LogLevel: TypeAlias = Literal["DEBUG", "INFO", "WARNING", "ERROR", "TRACE"]

_CONTEXT_KEYS = ("component", "node", "instance_id", "host")


def _format_context(record: Any) -> None:
    extra = record["extra"]
    parts = [f"{k}={extra[k]}" for k in _CONTEXT_KEYS if k in extra]
    extra["_ctx"] = f" [{' '.join(parts)}]" if parts else ""


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>"
    "<dim>{extra[_ctx]}</dim> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line}{extra[_ctx]} - {message}"
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration.

    Attributes:
        level: Minimum log level for the console.
        file: Path to a log file. No file sink when None.
        console: Whether to log to stderr.
        rotation: File rotation policy (e.g., "50 MB", "1 day").
        retention: Number of old log files to keep.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10


def setup_logging(config: LogConfig) -> list[int]:
    """Configure loguru sinks and return handler IDs for cleanup."""
    logger.enable("winlaunch")
    logger.configure(patcher=_format_context)
    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(logger.add(
            sys.stderr,
            level=config.level,
            format=CONSOLE_FORMAT,
            colorize=True,
            filter="winlaunch",
        ))

    if config.file:
        handler_ids.append(logger.add(
            config.file,
            level="DEBUG",  # file always captures everything
            format=FILE_FORMAT,
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            diagnose=False,  # tracebacks may carry credentials
            enqueue=True,
            filter="winlaunch",
        ))

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove the handlers added by ``setup_logging``."""
    for hid in handler_ids:
        logger.remove(hid)
