"""winlaunch - provision fresh Windows cloud instances into worker nodes.

Example:

    from winlaunch import Credential, FileArtifact, Launcher, LoggerLaunchLog, Node
    from winlaunch.providers import Ec2InstanceDescriber
    from winlaunch.transport import SshSessionFactory

    node = Node(
        name="win-builder",
        credential=Credential("Administrator", password),
        init_script="choco install -y temurin17",
    )
    launcher = Launcher.create(
        describer=Ec2InstanceDescriber("i-0abc123", region="us-east-1"),
        sessions=SshSessionFactory(),
        artifacts=FileArtifact(Path("agent.jar")),
        log=LoggerLaunchLog(node.name),
    )
    channel = await launcher.launch(node)
"""

from winlaunch.artifacts import BytesArtifact, FileArtifact
from winlaunch.bootstrapper import Bootstrapper
from winlaunch.channel import CloseHook, StreamChannel, StreamChannelFactory
from winlaunch.config import load_config, resolve_node
from winlaunch.connector import ALREADY_BOOTED_AFTER, Connector
from winlaunch.exceptions import (
    ConfigurationError,
    ConnectTimeout,
    InitScriptFailure,
    InstanceNotFoundError,
    LaunchError,
    WinlaunchError,
)
from winlaunch.launch_log import LaunchLog, LoggerLaunchLog, StreamLaunchLog, TeeLaunchLog
from winlaunch.launcher import Launcher
from winlaunch.logging import LogConfig, setup_logging, teardown_logging
from winlaunch.types import Credential, InstanceSnapshot, Node

__all__ = [
    "ALREADY_BOOTED_AFTER",
    "Bootstrapper",
    "BytesArtifact",
    "CloseHook",
    "ConfigurationError",
    "ConnectTimeout",
    "Connector",
    "Credential",
    "FileArtifact",
    "InitScriptFailure",
    "InstanceNotFoundError",
    "InstanceSnapshot",
    "LaunchError",
    "LaunchLog",
    "Launcher",
    "LogConfig",
    "LoggerLaunchLog",
    "Node",
    "StreamChannel",
    "StreamChannelFactory",
    "StreamLaunchLog",
    "TeeLaunchLog",
    "WinlaunchError",
    "load_config",
    "resolve_node",
    "setup_logging",
    "teardown_logging",
]
