"""Core value types for winlaunch.

Node configuration, instance snapshots and the tagged outcome of a single
connection attempt. All types are immutable.
"""

from __future__ import annotations

import ntpath
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from winlaunch.protocols import Session

__all__ = [
    "ZERO_ADDRESS",
    "DEFAULT_TMP_DIR",
    "MARKER_NAME",
    "Credential",
    "Node",
    "InstanceSnapshot",
    "Ready",
    "NotYetReady",
    "Failed",
    "Attempt",
]

ZERO_ADDRESS = "0.0.0.0"
DEFAULT_TMP_DIR = "C:\\Windows\\Temp\\"
MARKER_NAME = ".winlaunch-init"
INIT_SCRIPT_NAME = "init.bat"


@dataclass(frozen=True, slots=True)
class Credential:
    """Administrative credential for the remote-management service."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class Node:
    """Immutable configuration for one Windows worker instance.

    Args:
        name: Display name used in log lines.
        credential: Administrative credential.
        use_private_address: Connect through the private DNS/IP.
        use_https: Use the encrypted transport scheme. Passed to the session
            factory; ``SshSessionFactory`` ignores it since SSH is always
            encrypted.
        tmp_dir: Remote working directory.
        init_script: Batch script run once per instance.
        runtime_options: Options inserted into the agent invocation.
        launch_timeout: Overall connect deadline in seconds.
        boot_delay: Stabilization delay in seconds.
        stop_on_terminate: Node is torn down on disconnect.
        agent_name: File name of the uploaded agent runtime.
    """

    name: str
    credential: Credential
    use_private_address: bool = False
    use_https: bool = False
    tmp_dir: str = DEFAULT_TMP_DIR
    init_script: str | None = None
    runtime_options: str | None = None
    launch_timeout: float = 300.0
    boot_delay: float = 60.0
    stop_on_terminate: bool = False
    agent_name: str = "agent.jar"

    def remote_path(self, name: str) -> str:
        return ntpath.join(self.tmp_dir, name)

    @property
    def marker_path(self) -> str:
        return self.remote_path(MARKER_NAME)

    @property
    def init_script_path(self) -> str:
        return self.remote_path(INIT_SCRIPT_NAME)

    @property
    def agent_path(self) -> str:
        return self.remote_path(self.agent_name)

    @property
    def has_init_script(self) -> bool:
        return bool(self.init_script and self.init_script.strip())

    @property
    def agent_command(self) -> str:
        options = f" {self.runtime_options.strip()}" if self.runtime_options else ""
        return f'java{options} -jar "{self.agent_path}"'


@dataclass(frozen=True, slots=True)
class InstanceSnapshot:
    """Point-in-time network identity of an instance."""

    instance_id: str
    private_dns: str = ""
    private_ip: str = ""
    public_dns: str = ""
    public_ip: str = ""
    vpc_id: str | None = None
    launched_at: datetime | None = None

    def resolve(self, use_private: bool) -> tuple[str, str]:
        """Return ``(host, ip)`` by address preference.

        Public addresses win unless ``use_private`` is set; a missing public
        DNS name falls back to the private pair.
        """
        if use_private or not self.public_dns:
            return self.private_dns, self.private_ip
        return self.public_dns, self.public_ip


@dataclass(frozen=True, slots=True)
class Ready:
    session: Session


@dataclass(frozen=True, slots=True)
class NotYetReady:
    reason: str


@dataclass(frozen=True, slots=True)
class Failed:
    error: Exception


Attempt: TypeAlias = Ready | NotYetReady | Failed
