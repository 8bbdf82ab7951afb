"""Sources for the agent runtime payload uploaded to each node."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

__all__ = ["FileArtifact", "BytesArtifact"]


@dataclass(frozen=True, slots=True)
class FileArtifact:
    """Agent runtime read from a local file on every fetch."""

    path: Path

    async def fetch(self) -> bytes:
        return await asyncio.to_thread(Path(self.path).read_bytes)


@dataclass(frozen=True, slots=True)
class BytesArtifact:
    """Agent runtime already held in memory."""

    data: bytes

    async def fetch(self) -> bytes:
        return self.data
