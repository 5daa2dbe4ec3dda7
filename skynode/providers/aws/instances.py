"""EC2 instance lifecycle: observation, termination and ownership tags.

Launching is delegated to a ``FleetLauncher``; this module only describes
the launched instance afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from botocore.exceptions import ClientError
from loguru import logger

from skynode.api.model import Instance, InstanceType, MachineSpec
from skynode.api.provider import FleetLauncher
from skynode.config import Settings
from skynode.constants import CLUSTER_TAG_PREFIX, LIVE_STATES, InstanceState, Label
from skynode.errors import NotFoundError

from .clients import EC2ClientFactory, error_code, throttle_retry
from .config import NodeTemplate

log = logger.bind(provider="aws")

_NOT_FOUND_CODES = frozenset({"InvalidInstanceID.NotFound", "InvalidInstanceID.Malformed"})


def instance_from_ec2(data: Mapping[str, Any]) -> Instance:
    """Build an Instance from a ``DescribeInstances`` entry."""
    launch_time = data.get("LaunchTime")
    match launch_time:
        case datetime():
            pass
        case str():
            launch_time = datetime.fromisoformat(launch_time)
        case _:
            launch_time = datetime.fromtimestamp(0, tz=UTC)

    return Instance(
        id=data["InstanceId"],
        image_id=data.get("ImageId", ""),
        zone=data.get("Placement", {}).get("AvailabilityZone", ""),
        instance_type=data.get("InstanceType", ""),
        launch_time=launch_time,
        private_dns_name=data.get("PrivateDnsName", ""),
        tags=MappingProxyType({t["Key"]: t["Value"] for t in data.get("Tags", [])}),
        lifecycle=data.get("InstanceLifecycle"),
        state=data.get("State", {}).get("Name", InstanceState.RUNNING),
    )


class EC2InstanceProvider:
    """Instance lifecycle backed by the EC2 API."""

    def __init__(
        self,
        ec2: EC2ClientFactory,
        launcher: FleetLauncher[NodeTemplate],
        settings: Settings,
    ) -> None:
        self._ec2 = ec2
        self._launcher = launcher
        self._settings = settings

    @property
    def _cluster_tag(self) -> str:
        return f"{CLUSTER_TAG_PREFIX}{self._settings.cluster_name}"

    async def create(
        self,
        template: NodeTemplate,
        spec: MachineSpec,
        instance_types: Sequence[InstanceType],
    ) -> Instance:
        instance_id = await self._launcher.launch(template, spec, instance_types)
        log.info("Launched {instance_id} for {machine}", instance_id=instance_id, machine=spec.name)
        return await self.get(instance_id)

    @throttle_retry
    async def get(self, instance_id: str) -> Instance:
        """Describe one instance.

        Raises:
            NotFoundError: The instance does not exist or is terminated.
        """
        async with self._ec2() as client:
            try:
                response = await client.describe_instances(InstanceIds=[instance_id])
            except ClientError as e:
                if error_code(e) in _NOT_FOUND_CODES:
                    raise NotFoundError("instance", instance_id) from e
                raise

        instances = [
            instance_from_ec2(i)
            for r in response.get("Reservations", [])
            for i in r.get("Instances", [])
        ]
        live = [i for i in instances if i.state != InstanceState.TERMINATED]
        if not live:
            raise NotFoundError("instance", instance_id)
        return live[0]

    @throttle_retry
    async def list(self) -> list[Instance]:
        """Every live instance owned by a policy in this cluster."""
        filters = [
            {"Name": "tag-key", "Values": [str(Label.POLICY)]},
            {"Name": "tag-key", "Values": [self._cluster_tag]},
            {"Name": "instance-state-name", "Values": [str(s) for s in LIVE_STATES]},
        ]
        instances: list[Instance] = []
        async with self._ec2() as client:
            paginator = client.get_paginator("describe_instances")
            async for page in paginator.paginate(Filters=filters):
                for reservation in page.get("Reservations", []):
                    instances.extend(instance_from_ec2(i) for i in reservation.get("Instances", []))
        log.debug("Listed {n} instances", n=len(instances))
        return instances

    @throttle_retry
    async def delete(self, instance_id: str) -> None:
        async with self._ec2() as client:
            try:
                await client.terminate_instances(InstanceIds=[instance_id])
            except ClientError as e:
                if error_code(e) in _NOT_FOUND_CODES:
                    raise NotFoundError("instance", instance_id) from e
                raise
        log.info("Terminated {instance_id}", instance_id=instance_id)

    @throttle_retry
    async def link(self, instance_id: str) -> None:
        """Tag an instance as managed by this cluster."""
        async with self._ec2() as client:
            try:
                await client.create_tags(
                    Resources=[instance_id],
                    Tags=[{"Key": str(Label.MANAGED_BY), "Value": self._settings.cluster_name}],
                )
            except ClientError as e:
                if error_code(e) in _NOT_FOUND_CODES:
                    raise NotFoundError("instance", instance_id) from e
                raise
        log.debug("Linked {instance_id}", instance_id=instance_id)
