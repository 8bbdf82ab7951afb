"""Turns a ready session into a running agent channel.

Sequence on the remote host:

1. ensure the working directory exists,
2. run the init script once (guarded by a marker file),
3. upload the agent runtime,
4. start it as a long-lived process,
5. hand its stdio to a channel whose close hook terminates the process and
   closes the session together.
"""

from __future__ import annotations

from loguru import logger

from winlaunch.channel import CloseHook
from winlaunch.exceptions import InitScriptFailure, LaunchError
from winlaunch.launch_log import LaunchLog
from winlaunch.protocols import (
    ArtifactSource,
    ByteReader,
    Channel,
    ChannelFactory,
    RemoteProcess,
    Session,
)
from winlaunch.types import Node

__all__ = ["AGENT_TIMEOUT", "MARKER_CONTENT", "Bootstrapper"]

AGENT_TIMEOUT = 24 * 60 * 60
MARKER_CONTENT = b"init ran"

_diag = logger.bind(component="bootstrapper")


class Bootstrapper:
    """Bootstraps the agent runtime over a connected session.

    Session ownership moves into ``launch``: on success it belongs to the
    returned channel's close hook, on any failure or cancellation it is
    closed before the error propagates.
    """

    def __init__(
        self,
        artifacts: ArtifactSource,
        channels: ChannelFactory,
        log: LaunchLog,
    ) -> None:
        self._artifacts = artifacts
        self._channels = channels
        self._log = log

    async def launch(self, node: Node, session: Session) -> Channel:
        """Bootstrap ``node`` over ``session`` and return the agent channel.

        Raises:
            InitScriptFailure: If the init script exits non-zero.
            LaunchError: For any other failure during bootstrap.
        """
        process: RemoteProcess | None = None
        try:
            await self._ensure_tmp_dir(node, session)

            if node.has_init_script and not await session.exists(node.marker_path):
                await self._run_init_script(node, session)

            payload = await self._artifacts.fetch()
            await session.put_file(node.agent_path, payload)
            self._log.println(f"{node.agent_name} sent remotely. Bootstrapping it")

            process = await session.execute(node.agent_command, timeout=AGENT_TIMEOUT)
            on_close = CloseHook(process.terminate, session.close)
            channel = await self._channels.build(process.stdout, process.stdin, self._log, on_close)
        except InitScriptFailure:
            await self._abort(session, None)
            raise
        except Exception as e:
            self._log.exception(f"Launch of {node.name} failed:")
            await self._abort(session, process)
            raise LaunchError(f"Launch of {node.name} failed: {e}") from e
        except BaseException:
            await self._abort(session, process)
            raise

        self._log.println(f"Agent started on {node.name}")
        return channel

    async def _ensure_tmp_dir(self, node: Node, session: Session) -> None:
        self._log.println("Creating tmp directory if it does not exist")
        process = await session.execute(f'if not exist "{node.tmp_dir}" mkdir "{node.tmp_dir}"')
        code = await process.wait()
        if code != 0:
            _diag.debug("mkdir {path} exited with {code}", path=node.tmp_dir, code=code)

    async def _run_init_script(self, node: Node, session: Session) -> None:
        assert node.init_script is not None
        self._log.println("Executing init script")
        await session.put_file(node.init_script_path, node.init_script.encode("utf-8"))

        process = await session.execute(f'cmd /c "{node.init_script_path}"')
        await self._stream_output(process.stdout)

        exit_code = await process.wait()
        if exit_code != 0:
            self._log.println(f"init script failed: exit code={exit_code}")
            raise InitScriptFailure(exit_code)

        await session.put_file(node.marker_path, MARKER_CONTENT)
        self._log.println("init script ran successfully")

    async def _stream_output(self, stream: ByteReader) -> None:
        """Copy process output to the launch log line by line as it arrives."""
        buffer = b""
        while chunk := await stream.read(4096):
            buffer += chunk
            while b"\n" in buffer:
                line, buffer = buffer.split(b"\n", 1)
                self._log.println(line.decode("utf-8", errors="replace").rstrip("\r"))
        if buffer:
            self._log.println(buffer.decode("utf-8", errors="replace").rstrip("\r"))

    async def _abort(self, session: Session, process: RemoteProcess | None) -> None:
        if process is not None:
            try:
                process.terminate()
            except Exception as e:
                _diag.debug("Ignoring error terminating agent process: {error}", error=e)
        try:
            await session.close()
        except Exception as e:
            _diag.debug("Ignoring error closing session: {error}", error=e)
