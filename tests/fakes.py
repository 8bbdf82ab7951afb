"""In-memory collaborators for connector and bootstrapper tests."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from winlaunch.types import Credential, InstanceSnapshot, Node

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


def make_node(**overrides: object) -> Node:
    defaults: dict[str, object] = {
        "name": "win-1",
        "credential": Credential("Administrator", "s3cret"),
        "launch_timeout": 300.0,
        "boot_delay": 5.0,
    }
    return Node(**{**defaults, **overrides})  # type: ignore[arg-type]


def snapshot(
    *,
    public_dns: str = "",
    public_ip: str = "",
    private_dns: str = "ip-10-0-0-5.ec2.internal",
    private_ip: str = "10.0.0.5",
    age: timedelta = timedelta(seconds=30),
) -> InstanceSnapshot:
    return InstanceSnapshot(
        instance_id="i-0abc",
        private_dns=private_dns,
        private_ip=private_ip,
        public_dns=public_dns,
        public_ip=public_ip,
        vpc_id="vpc-1",
        launched_at=NOW - age,
    )


ZERO = snapshot(private_dns="0.0.0.0", private_ip="0.0.0.0")
VALID = snapshot(public_dns="ec2-54-1-2-3.compute.amazonaws.com", public_ip="54.1.2.3")


class FakeClock:
    """Deterministic monotonic clock; sleeping advances it."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class RecordingLog:
    def __init__(self) -> None:
        self.lines: list[str] = []

    def println(self, line: str) -> None:
        self.lines.append(line)

    def exception(self, line: str) -> None:
        self.lines.append(line)

    def index(self, fragment: str) -> int:
        return next(i for i, line in enumerate(self.lines) if fragment in line)

    def contains(self, fragment: str) -> bool:
        return any(fragment in line for line in self.lines)


class FakeDescriber:
    """Returns scripted snapshots (or raises scripted errors); repeats the last."""

    def __init__(self, *script: InstanceSnapshot | Exception) -> None:
        self._script = list(script)
        self.calls = 0

    async def describe(self) -> InstanceSnapshot:
        item = self._script[min(self.calls, len(self._script) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item


class FakeWriter:
    def __init__(self) -> None:
        self.data = bytearray()
        self.closed = False

    def write(self, data: bytes) -> None:
        self.data.extend(data)

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True


class FakeReader:
    """Byte stream whose reads block until data or EOF arrives."""

    def __init__(self, data: bytes = b"", eof: bool = True) -> None:
        self._buffer = bytearray(data)
        self._eof = eof
        self._ready = asyncio.Event()

    def feed_eof(self) -> None:
        self._eof = True
        self._ready.set()

    def at_eof(self) -> bool:
        return self._eof and not self._buffer

    async def read(self, n: int = -1) -> bytes:
        while not self._buffer and not self._eof:
            self._ready.clear()
            await self._ready.wait()
        if n < 0:
            n = len(self._buffer)
        chunk = bytes(self._buffer[:n])
        del self._buffer[:n]
        return chunk


class FakeProcess:
    def __init__(self, exit_code: int = 0, output: bytes = b"", eof: bool = True) -> None:
        self.exit_code = exit_code
        self.stdout = FakeReader(output, eof)
        self.stdin = FakeWriter()
        self.terminate_calls = 0

    async def wait(self) -> int:
        return self.exit_code

    def terminate(self) -> None:
        self.terminate_calls += 1
        if not self.stdout.at_eof():
            self.stdout.feed_eof()


class FakeSession:
    """Remote host double; ``files`` is the remote filesystem and may be shared."""

    def __init__(
        self,
        ip: str = "10.0.0.5",
        probes: Sequence[bool] = (True,),
        files: dict[str, bytes] | None = None,
        init_process: FakeProcess | None = None,
        agent_process: FakeProcess | None = None,
        fail_upload: str | None = None,
    ) -> None:
        self.ip = ip
        self._probes = list(probes)
        self.probe_calls = 0
        self.files = {} if files is None else files
        self.init_process = init_process or FakeProcess()
        self.agent_process = agent_process or FakeProcess(eof=False)
        self.fail_upload = fail_upload
        self.commands: list[tuple[str, float | None]] = []
        self.uploads: list[str] = []
        self.close_calls = 0

    async def probe(self) -> bool:
        result = self._probes[min(self.probe_calls, len(self._probes) - 1)]
        self.probe_calls += 1
        return result

    async def execute(self, command: str, timeout: float | None = None) -> FakeProcess:
        self.commands.append((command, timeout))
        if command.startswith("cmd /c"):
            return self.init_process
        if command.startswith("java"):
            return self.agent_process
        return FakeProcess()

    async def put_file(self, path: str, data: bytes) -> None:
        if self.fail_upload and path.endswith(self.fail_upload):
            raise OSError(f"upload of {path} failed")
        self.uploads.append(path)
        self.files[path] = data

    async def exists(self, path: str) -> bool:
        return path in self.files

    async def close(self) -> None:
        self.close_calls += 1

    def ran(self, prefix: str) -> int:
        return sum(1 for command, _ in self.commands if command.startswith(prefix))


class FakeSessionFactory:
    """Opens one FakeSession per call, each with the next probe script."""

    def __init__(self, *probe_scripts: Sequence[bool]) -> None:
        self._scripts = list(probe_scripts) or [(True,)]
        self.opened: list[FakeSession] = []

    def open(self, ip: str, credential: Credential, use_https: bool) -> FakeSession:
        script = self._scripts[min(len(self.opened), len(self._scripts) - 1)]
        session = FakeSession(ip=ip, probes=script)
        self.opened.append(session)
        return session

    @property
    def ips(self) -> list[str]:
        return [s.ip for s in self.opened]
