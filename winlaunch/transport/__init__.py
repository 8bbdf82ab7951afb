"""Remote-management session implementations."""

from winlaunch.transport.ssh import SshProcess, SshSession, SshSessionFactory

__all__ = ["SshProcess", "SshSession", "SshSessionFactory"]
