"""Provisioning entry point: connect, then bootstrap."""

from __future__ import annotations

from loguru import logger

from winlaunch.bootstrapper import Bootstrapper
from winlaunch.channel import StreamChannelFactory
from winlaunch.connector import Connector
from winlaunch.exceptions import ConnectTimeout
from winlaunch.launch_log import LaunchLog
from winlaunch.protocols import (
    ArtifactSource,
    Channel,
    ChannelFactory,
    InstanceDescriber,
    SessionFactory,
)
from winlaunch.types import Node

__all__ = ["Launcher"]


class Launcher:
    """Provisions one node into a running agent channel.

    Example:
        >>> launcher = Launcher.create(
        ...     describer=Ec2InstanceDescriber("i-0abc", region="us-east-1"),
        ...     sessions=SshSessionFactory(),
        ...     artifacts=FileArtifact(Path("agent.jar")),
        ...     log=LoggerLaunchLog(node.name),
        ... )
        >>> channel = await launcher.launch(node)
    """

    def __init__(self, connector: Connector, bootstrapper: Bootstrapper, log: LaunchLog) -> None:
        self._connector = connector
        self._bootstrapper = bootstrapper
        self._log = log

    @classmethod
    def create(
        cls,
        describer: InstanceDescriber,
        sessions: SessionFactory,
        artifacts: ArtifactSource,
        log: LaunchLog,
        channels: ChannelFactory | None = None,
    ) -> Launcher:
        connector = Connector(describer, sessions, log)
        bootstrapper = Bootstrapper(artifacts, channels or StreamChannelFactory(), log)
        return cls(connector, bootstrapper, log)

    async def launch(self, node: Node) -> Channel:
        diag = logger.bind(component="launcher", node=node.name)
        diag.info("Launching {node}", node=node.name)

        try:
            session = await self._connector.connect(node)
        except ConnectTimeout as e:
            self._log.println(f"Launch of {node.name} aborted: {e}")
            raise

        channel = await self._bootstrapper.launch(node, session)
        diag.info("{node} is online", node=node.name)
        return channel
