"""EC2 instance metadata via aioboto3."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import aioboto3
from botocore.exceptions import ClientError
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from winlaunch.exceptions import InstanceNotFoundError
from winlaunch.types import InstanceSnapshot

__all__ = ["Ec2InstanceDescriber", "parse_instance"]

_THROTTLING_CODES = frozenset({"RequestLimitExceeded", "Throttling", "ThrottlingException"})


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _is_throttled(exc: BaseException) -> bool:
    return isinstance(exc, ClientError) and _error_code(exc) in _THROTTLING_CODES


def parse_instance(raw: dict[str, Any]) -> InstanceSnapshot:
    """Map one ``describe_instances`` instance record to a snapshot."""
    launched_at = raw.get("LaunchTime")
    return InstanceSnapshot(
        instance_id=raw["InstanceId"],
        private_dns=raw.get("PrivateDnsName") or "",
        private_ip=raw.get("PrivateIpAddress") or "",
        public_dns=raw.get("PublicDnsName") or "",
        public_ip=raw.get("PublicIpAddress") or "",
        vpc_id=raw.get("VpcId"),
        launched_at=launched_at if isinstance(launched_at, datetime) else None,
    )


class Ec2InstanceDescriber:
    """Describes one EC2 instance on every call.

    Args:
        instance_id: EC2 instance ID.
        region: AWS region of the instance.
        session: aioboto3 session. A fresh default session when omitted.
    """

    def __init__(
        self,
        instance_id: str,
        region: str = "us-east-1",
        session: aioboto3.Session | None = None,
    ) -> None:
        self.instance_id = instance_id
        self.region = region
        self._session = session or aioboto3.Session()
        self._log = logger.bind(component="aws", instance_id=instance_id)

    async def describe(self) -> InstanceSnapshot:
        response = await self._describe_instances()
        for reservation in response.get("Reservations", []):
            for raw in reservation.get("Instances", []):
                if raw.get("InstanceId") == self.instance_id:
                    return parse_instance(raw)
        raise InstanceNotFoundError(self.instance_id)

    @retry(
        stop=stop_after_attempt(4),
        wait=wait_exponential(multiplier=0.5, max=5),
        retry=retry_if_exception(_is_throttled),
        reraise=True,
    )
    async def _describe_instances(self) -> dict[str, Any]:
        async with self._session.client("ec2", region_name=self.region) as ec2:
            try:
                return await ec2.describe_instances(InstanceIds=[self.instance_id])
            except ClientError as e:
                if _error_code(e) == "InvalidInstanceID.NotFound":
                    # eventual consistency right after launch
                    self._log.debug("Instance not visible yet")
                    raise InstanceNotFoundError(self.instance_id) from e
                raise
