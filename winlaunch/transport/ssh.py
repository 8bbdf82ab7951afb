"""Remote-management session over OpenSSH for Windows, using asyncssh.

Service class pattern - host and credential bound at construction, the
connection itself opened lazily by the first probe.
"""

from __future__ import annotations

import asyncio
import contextlib
import re
from dataclasses import dataclass, field

import asyncssh
from loguru import logger

from winlaunch.types import Credential

__all__ = ["SshSessionFactory", "SshSession", "SshProcess", "sftp_path"]

_DRIVE_PATH = re.compile(r"^[A-Za-z]:/")


def sftp_path(path: str) -> str:
    """Convert a Windows path to the form Windows OpenSSH's SFTP server expects.

    >>> sftp_path("C:\\\\Windows\\\\Temp\\\\agent.jar")
    '/C:/Windows/Temp/agent.jar'
    """
    converted = path.replace("\\", "/")
    if _DRIVE_PATH.match(converted):
        converted = "/" + converted
    return converted


class SshProcess:
    """RemoteProcess over an asyncssh client process (binary mode).

    With a ``timeout`` the process is terminated once it has run that many
    seconds, whether or not anyone is waiting on it.
    """

    __slots__ = ("_proc", "_timeout", "_deadline")

    def __init__(self, proc: asyncssh.SSHClientProcess[bytes], timeout: float | None) -> None:
        self._proc = proc
        self._timeout = timeout
        self._deadline: asyncio.TimerHandle | None = None
        if timeout is not None:
            self._deadline = asyncio.get_running_loop().call_later(timeout, self._expire)

    def _expire(self) -> None:
        logger.debug("SSH: process exceeded {timeout}s, terminating", timeout=self._timeout)
        self.terminate()

    def _cancel_deadline(self) -> None:
        if self._deadline is not None:
            self._deadline.cancel()
            self._deadline = None

    @property
    def stdout(self) -> asyncssh.SSHReader[bytes]:
        return self._proc.stdout

    @property
    def stdin(self) -> asyncssh.SSHWriter[bytes]:
        return self._proc.stdin

    async def wait(self) -> int:
        try:
            result = await self._proc.wait()
        finally:
            self._cancel_deadline()
        return result.exit_status if result.exit_status is not None else -1

    def terminate(self) -> None:
        self._cancel_deadline()
        # Windows OpenSSH ignores signals; closing the channel ends the process.
        with contextlib.suppress(OSError, asyncssh.Error):
            self._proc.terminate()
        self._proc.close()


@dataclass
class SshSession:
    """Session implementation over asyncssh.

    Example:
        >>> session = SshSession("10.0.0.5", Credential("Administrator", "..."))
        >>> if await session.probe():
        ...     proc = await session.execute("ver")
        ...     print(await proc.stdout.read())
        >>> await session.close()
    """

    host: str
    credential: Credential
    port: int = 22
    connect_timeout: float = 15.0

    _conn: asyncssh.SSHClientConnection | None = field(default=None, repr=False)

    async def _connect(self) -> asyncssh.SSHClientConnection:
        if self._conn is None:
            logger.debug(
                "SSH: connecting to {host}:{port} ({user})",
                host=self.host, port=self.port, user=self.credential.username,
            )
            self._conn = await asyncssh.connect(
                self.host,
                port=self.port,
                username=self.credential.username,
                password=self.credential.password,
                client_keys=None,
                known_hosts=None,
                connect_timeout=self.connect_timeout,
            )
        return self._conn

    def _require_connection(self) -> asyncssh.SSHClientConnection:
        if self._conn is None:
            raise RuntimeError("Not connected. Call probe() first.")
        return self._conn

    async def probe(self) -> bool:
        try:
            conn = await self._connect()
            result = await conn.run("echo ok", check=False, timeout=self.connect_timeout)
        except (OSError, asyncssh.Error, TimeoutError) as e:
            logger.debug("SSH: probe of {host} failed: {error}", host=self.host, error=e)
            await self.close()
            return False
        return result.exit_status == 0

    async def execute(self, command: str, timeout: float | None = None) -> SshProcess:
        conn = self._require_connection()
        preview = command[:80] + "..." if len(command) > 80 else command
        logger.debug("SSH.execute: {cmd}", cmd=preview)
        proc = await conn.create_process(command, encoding=None, stderr=asyncssh.STDOUT)
        return SshProcess(proc, timeout)

    async def put_file(self, path: str, data: bytes) -> None:
        conn = self._require_connection()
        async with conn.start_sftp_client() as sftp, sftp.open(sftp_path(path), "wb") as f:
            await f.write(data)

    async def exists(self, path: str) -> bool:
        conn = self._require_connection()
        async with conn.start_sftp_client() as sftp:
            return await sftp.exists(sftp_path(path))

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._conn.wait_closed(), timeout=5.0)
            self._conn = None


@dataclass(frozen=True, slots=True)
class SshSessionFactory:
    """Opens SshSession candidates.

    Args:
        port: SSH port on the instance.
        connect_timeout: Timeout for connecting and probing, in seconds.
    """

    port: int = 22
    connect_timeout: float = 15.0

    def open(
        self,
        ip: str,
        credential: Credential,
        use_https: bool,  # noqa: ARG002 - SSH is always encrypted
    ) -> SshSession:
        return SshSession(
            host=ip,
            credential=credential,
            port=self.port,
            connect_timeout=self.connect_timeout,
        )
