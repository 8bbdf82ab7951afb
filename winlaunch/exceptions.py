"""Exception hierarchy for winlaunch.

All winlaunch-specific exceptions inherit from WinlaunchError, so callers
can catch every launch failure with a single except clause.
"""

from __future__ import annotations


class WinlaunchError(Exception):
    """Base exception for all winlaunch errors."""


class ConfigurationError(WinlaunchError):
    """Raised for invalid node configuration."""


class ConnectTimeout(WinlaunchError):
    """Raised when the remote-management service is not ready in time."""

    def __init__(self, elapsed: float) -> None:
        self.elapsed = elapsed
        super().__init__(
            f"Timed out after {int(elapsed)} seconds of waiting for the "
            "remote-management service to be connected"
        )


class LaunchError(WinlaunchError):
    """Raised when bootstrapping a connected node fails."""


class InitScriptFailure(LaunchError):
    """Raised when the init script exits with a non-zero code."""

    def __init__(self, exit_code: int) -> None:
        self.exit_code = exit_code
        super().__init__(f"init script failed: exit code={exit_code}")


class InstanceNotFoundError(WinlaunchError):
    """Raised when the cloud provider does not know the instance."""

    def __init__(self, instance_id: str) -> None:
        self.instance_id = instance_id
        super().__init__(f"Instance {instance_id} not found")
