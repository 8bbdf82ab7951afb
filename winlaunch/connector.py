"""Connection acquisition for freshly started instances.

Boot timing is unpredictable: address assignment, service startup and
service stabilization are independent delays. The connector treats all of
them as "not ready yet" and retries with a fixed backoff until the node's
launch timeout.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from loguru import logger

from winlaunch.exceptions import ConnectTimeout
from winlaunch.launch_log import LaunchLog
from winlaunch.protocols import InstanceDescriber, Session, SessionFactory
from winlaunch.types import (
    ZERO_ADDRESS,
    Attempt,
    Failed,
    InstanceSnapshot,
    Node,
    NotYetReady,
    Ready,
)

__all__ = ["ALREADY_BOOTED_AFTER", "DEFAULT_BACKOFF", "Connector"]

# Instances older than this are assumed to have a settled service.
ALREADY_BOOTED_AFTER = timedelta(minutes=3)
DEFAULT_BACKOFF = 10.0


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class _BootState:
    already_booted: bool | None = None


class Connector:
    """Produces a ready Session for a Node or fails after its launch timeout.

    Args:
        describer: Instance metadata provider, called once per attempt.
        sessions: Session factory.
        log: Launch log receiving every state transition.
        backoff: Seconds to sleep between attempts.
        already_booted_after: Instance age after which the first stabilization
            wait is skipped.
        clock: Monotonic clock used for the deadline.
        now: Wall clock compared against the instance launch time.
        sleep: Awaitable sleep.
    """

    def __init__(
        self,
        describer: InstanceDescriber,
        sessions: SessionFactory,
        log: LaunchLog,
        *,
        backoff: float = DEFAULT_BACKOFF,
        already_booted_after: timedelta = ALREADY_BOOTED_AFTER,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._describer = describer
        self._sessions = sessions
        self._log = log
        self._backoff = backoff
        self._already_booted_after = already_booted_after
        self._clock = clock
        self._now = now
        self._sleep = sleep

    async def connect(self, node: Node) -> Session:
        """Wait for the node's remote-management service and return a session.

        Raises:
            ConnectTimeout: If no session was ready within ``node.launch_timeout``.
        """
        diag = logger.bind(component="connector", node=node.name)
        start = self._clock()
        boot = _BootState()

        while True:
            elapsed = self._clock() - start
            if elapsed > node.launch_timeout:
                self._log.println(
                    f"Timed out after {int(elapsed)} seconds of waiting for "
                    f"the remote-management service on {node.name}"
                )
                raise ConnectTimeout(elapsed)

            match await self._attempt(node, boot):
                case Ready(session=session):
                    self._log.println(f"Connected to {node.name}.")
                    return session
                case NotYetReady(reason=reason):
                    diag.debug("Not ready: {reason}", reason=reason)
                case Failed(error=error):
                    self._log.println(
                        "Waiting for the remote-management service to come up "
                        f"({type(error).__name__}: {error})"
                    )
                    diag.opt(exception=error).debug("Connection attempt failed")

            self._log.println(f"Sleeping {self._backoff:g}s.")
            await self._sleep(self._backoff)

    async def _attempt(self, node: Node, boot: _BootState) -> Attempt:
        session: Session | None = None
        try:
            snapshot = await self._describer.describe()
            if boot.already_booted is None:
                boot.already_booted = self._booted_long_ago(node, snapshot)

            host, ip = snapshot.resolve(node.use_private_address)
            if host == ZERO_ADDRESS:
                self._log.println(
                    f"Invalid host {ZERO_ADDRESS}, your host is most likely "
                    "waiting for an ip address."
                )
                return NotYetReady("no address assigned")

            self._log.println(f"Connecting to {host}({ip}) as {node.credential.username}")
            session = self._sessions.open(ip, node.credential, node.use_https)

            if not await session.probe():
                self._log.println("Waiting for the remote-management service to come up.")
                await self._discard(session)
                return NotYetReady("service unreachable")

            if not boot.already_booted or node.stop_on_terminate:
                self._log.println(
                    "Remote-management service responded. Waiting for it to "
                    f"stabilize on {node.name}"
                )
                await self._sleep(node.boot_delay)
                boot.already_booted = True
                self._log.println(f"Remote-management service should now be ok on {node.name}")
                if not await session.probe():
                    self._log.println("Remote-management service not yet up.")
                    await self._discard(session)
                    return NotYetReady("service not stable")

            return Ready(session)
        except Exception as e:
            if session is not None:
                await self._discard(session)
            return Failed(e)
        except BaseException:
            # cancelled by the caller: the candidate never reaches it
            if session is not None:
                await self._discard(session)
            raise

    def _booted_long_ago(self, node: Node, snapshot: InstanceSnapshot) -> bool:
        if snapshot.launched_at is None:
            return False
        self._log.println(f"{node.name} booted at {snapshot.launched_at.isoformat()}")
        return self._now() - snapshot.launched_at > self._already_booted_after

    async def _discard(self, session: Session) -> None:
        try:
            await session.close()
        except Exception as e:
            logger.bind(component="connector").debug(
                "Ignoring error closing candidate session: {error}", error=e,
            )
