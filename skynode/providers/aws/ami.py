"""AMI resolution for node templates.

Default images come from the public SSM parameters each AMI family
publishes per Kubernetes version, architecture and accelerator. A template
with an ``ami_selector`` bypasses the defaults and selects images through
``DescribeImages`` instead.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import ClientError
from loguru import logger

from skynode.api.model import InstanceType
from skynode.config import Settings
from skynode.constants import RESOURCE_GPU, RESOURCE_NEURON, Label
from skynode.errors import ResolutionError
from skynode.scheduling.requirements import Operator, Requirement, Requirements

from .clients import EC2ClientFactory, SSMClientFactory, error_code, throttle_retry
from .config import AMIFamily, NodeTemplate

log = logger.bind(provider="aws", component="ami")

_AL2_SSM = "/aws/service/eks/optimized-ami/{version}/amazon-linux-2{variant}/recommended/image_id"
_BOTTLEROCKET_SSM = "/aws/service/bottlerocket/aws-k8s-{version}{variant}/{arch}/latest/image_id"
_UBUNTU_SSM = "/aws/service/canonical/ubuntu/eks/20.04/{version}/stable/current/{arch}/hvm/ebs-gp2/ami-id"


@dataclass(frozen=True, slots=True)
class AMI:
    """A resolved image and the instance types it can boot."""

    id: str
    name: str = ""
    source: str = ""
    requirements: Requirements = Requirements()


def _arch(instance_type: InstanceType) -> str:
    values = instance_type.requirements.get_requirement(Label.ARCH).values
    return next(iter(values)) if len(values) == 1 else "amd64"


def _accelerated(instance_type: InstanceType) -> bool:
    return any(instance_type.capacity.get(r, 0) > 0 for r in (RESOURCE_GPU, RESOURCE_NEURON))


def ssm_parameter(family: AMIFamily, kubernetes_version: str, instance_type: InstanceType) -> str | None:
    """SSM parameter publishing the default AMI for an instance type.

    Args:
        family: AMI family of the template.
        kubernetes_version: Cluster version, e.g. "1.29".
        instance_type: Instance type to boot.

    Returns:
        Parameter name, or None for families without defaults (Custom).
    """
    arch = _arch(instance_type)
    accelerated = _accelerated(instance_type)
    match family:
        case AMIFamily.AL2:
            variant = "-gpu" if accelerated else ("-arm64" if arch == "arm64" else "")
            return _AL2_SSM.format(version=kubernetes_version, variant=variant)
        case AMIFamily.BOTTLEROCKET:
            return _BOTTLEROCKET_SSM.format(
                version=kubernetes_version,
                variant="-nvidia" if accelerated else "",
                arch="arm64" if arch == "arm64" else "x86_64",
            )
        case AMIFamily.UBUNTU:
            return _UBUNTU_SSM.format(version=kubernetes_version, arch=arch)
        case _:
            return None


def _selector_request(selector: Mapping[str, str]) -> dict[str, Any]:
    """Translate an AMI selector into ``DescribeImages`` arguments.

    ``aws-ids`` and ``aws::ids`` select by id, ``aws::name`` by name and
    ``aws::owners`` by owner; every other key is a tag filter (``*`` matches
    any value).
    """
    request: dict[str, Any] = {}
    filters: list[dict[str, Any]] = []
    for key, value in sorted(selector.items()):
        values = [v.strip() for v in value.split(",") if v.strip()]
        match key:
            case "aws-ids" | "aws::ids":
                request["ImageIds"] = values
            case "aws::owners":
                request["Owners"] = values
            case "aws::name":
                filters.append({"Name": "name", "Values": values})
            case _ if value == "*":
                filters.append({"Name": "tag-key", "Values": [key]})
            case _:
                filters.append({"Name": f"tag:{key}", "Values": values})
    if filters:
        request["Filters"] = filters
    return request


class SSMAMIResolver:
    """Resolves the AMIs a template implies for a set of instance types."""

    def __init__(self, ssm: SSMClientFactory, ec2: EC2ClientFactory, settings: Settings) -> None:
        self._ssm = ssm
        self._ec2 = ec2
        self._settings = settings

    async def get(
        self,
        template: NodeTemplate,
        instance_types: Sequence[InstanceType],
        family: AMIFamily,
    ) -> dict[str, AMI]:
        """Resolve AMIs keyed by id.

        Args:
            template: Node template; its ``ami_selector`` wins over defaults.
            instance_types: Instance types the AMIs must be able to boot.
            family: AMI family supplying default images.

        Returns:
            Mapping of AMI id to AMI.
        """
        if template.ami_selector:
            return await self._select(template.ami_selector)
        return await self._defaults(family, instance_types)

    async def _defaults(self, family: AMIFamily, instance_types: Sequence[InstanceType]) -> dict[str, AMI]:
        # Instance types sharing a parameter share an AMI
        by_parameter: dict[str, list[InstanceType]] = {}
        for it in instance_types:
            if (param := ssm_parameter(family, self._settings.kubernetes_version, it)) is not None:
                by_parameter.setdefault(param, []).append(it)

        amis: dict[str, AMI] = {}
        for param, types in by_parameter.items():
            ami_id = await self._parameter(param)
            reqs = Requirements.of(
                Requirement.new(Label.INSTANCE_TYPE, Operator.IN, *(t.name for t in types)),
            )
            amis[ami_id] = AMI(id=ami_id, source=param, requirements=reqs)
            log.debug("Resolved {ami_id} from {param}", ami_id=ami_id, param=param)
        return amis

    @throttle_retry
    async def _parameter(self, name: str) -> str:
        async with self._ssm() as client:
            try:
                response = await client.get_parameter(Name=name)
            except ClientError as e:
                if error_code(e) == "ParameterNotFound":
                    raise ResolutionError(f"SSM parameter {name} not found") from e
                raise
        return response["Parameter"]["Value"]

    @throttle_retry
    async def _select(self, selector: Mapping[str, str]) -> dict[str, AMI]:
        request = _selector_request(selector)
        amis: dict[str, AMI] = {}
        async with self._ec2() as client:
            response = await client.describe_images(**request)
        for image in response.get("Images", []):
            ami_id = image["ImageId"]
            amis[ami_id] = AMI(id=ami_id, name=image.get("Name", ""), source="selector")
        log.debug("Selected {n} AMIs", n=len(amis))
        return amis
