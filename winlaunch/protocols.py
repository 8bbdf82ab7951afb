"""Collaborator protocols consumed by the connector and bootstrapper."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol, TypeAlias, runtime_checkable

if TYPE_CHECKING:
    from winlaunch.launch_log import LaunchLog
    from winlaunch.types import Credential, InstanceSnapshot

__all__ = [
    "InstanceDescriber",
    "ByteReader",
    "ByteWriter",
    "RemoteProcess",
    "Session",
    "SessionFactory",
    "Channel",
    "ChannelFactory",
    "ArtifactSource",
    "CloseCallback",
]

CloseCallback: TypeAlias = Callable[[], Awaitable[None]]


class InstanceDescriber(Protocol):
    """Reads the current provider-side view of an instance."""

    async def describe(self) -> InstanceSnapshot: ...


class ByteReader(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


class ByteWriter(Protocol):
    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...

    def close(self) -> None: ...


class RemoteProcess(Protocol):
    """A process running on the remote host."""

    @property
    def stdout(self) -> ByteReader: ...

    @property
    def stdin(self) -> ByteWriter: ...

    async def wait(self) -> int:
        """Block until the process exits and return its exit code."""
        ...

    def terminate(self) -> None: ...


@runtime_checkable
class Session(Protocol):
    """An authenticated remote-management connection to one instance.

    Owned by a single launch; closed exactly once.
    """

    async def probe(self) -> bool:
        """Cheap reachability check. Must not raise for plain unreachability."""
        ...

    async def execute(self, command: str, timeout: float | None = None) -> RemoteProcess:
        """Start ``command``; with ``timeout`` it is terminated after that many seconds."""
        ...

    async def put_file(self, path: str, data: bytes) -> None: ...

    async def exists(self, path: str) -> bool: ...

    async def close(self) -> None: ...


class SessionFactory(Protocol):
    def open(self, ip: str, credential: Credential, use_https: bool) -> Session:
        """Create a session candidate addressed at ``ip`` without connecting."""
        ...


class Channel(Protocol):
    """Persistent bidirectional stream used after bootstrap."""

    @property
    def closed(self) -> bool: ...

    async def close(self) -> None: ...


class ChannelFactory(Protocol):
    async def build(
        self,
        reader: ByteReader,
        writer: ByteWriter,
        log: LaunchLog,
        on_close: CloseCallback,
    ) -> Channel: ...


class ArtifactSource(Protocol):
    """Provides the agent runtime payload."""

    async def fetch(self) -> bytes: ...
