"""Cloud instance metadata providers."""

from winlaunch.providers.aws import Ec2InstanceDescriber

__all__ = ["Ec2InstanceDescriber"]
