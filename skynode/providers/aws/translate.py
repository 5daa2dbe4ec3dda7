"""Translation between EC2 instances and machines.

``instance_to_machine`` is a pure function of the instance, its resolved
instance type and the settings: the same inputs always produce an equal
``Machine``.
"""

from __future__ import annotations

import re

from skynode.api.model import Instance, InstanceType, Machine
from skynode.config import NodeNameConvention, Settings
from skynode.constants import CapacityType, Label
from skynode.errors import InvalidProviderIDError
from skynode.scheduling.resources import positive

_PROVIDER_ID_RE = re.compile(r"^(?P<scheme>[^:/]+):///(?P<zone>[^/]+)/(?P<instance_id>[^/]+)$")

# Tags copied verbatim into labels when present on the instance
_COPIED_TAGS = (Label.POLICY, Label.MANAGED_BY)


def format_provider_id(scheme: str, zone: str, instance_id: str) -> str:
    """Provider id in the form ``<scheme>:///<zone>/<instance-id>``."""
    return f"{scheme}:///{zone}/{instance_id}"


def parse_instance_id(provider_id: str) -> str:
    """Extract the instance id from a provider id.

    Raises:
        InvalidProviderIDError: If the id does not have the expected shape.
    """
    match = _PROVIDER_ID_RE.match(provider_id or "")
    if match is None:
        raise InvalidProviderIDError(provider_id)
    return match.group("instance_id")


def capacity_type(instance: Instance) -> CapacityType:
    return CapacityType.SPOT if instance.lifecycle == "spot" else CapacityType.ON_DEMAND


def machine_name(instance: Instance, convention: NodeNameConvention) -> str:
    if convention == NodeNameConvention.RESOURCE_NAME:
        return instance.id
    return instance.private_dns_name.lower()


def instance_to_machine(
    instance: Instance,
    instance_type: InstanceType | None,
    settings: Settings,
) -> Machine:
    """Project an instance into the scheduler's machine representation.

    Args:
        instance: Observed EC2 instance.
        instance_type: Catalog entry for the instance's type, or None when
            it could not be resolved. Capacity, allocatable and per-dimension
            labels are omitted in that case.
        settings: Naming convention and provider id scheme.

    Returns:
        Machine with only strictly positive capacity and allocatable.
    """
    labels: dict[str, str] = {}
    capacity = allocatable = None

    if instance_type is not None:
        labels.update(instance_type.requirements.labels())
        capacity = positive(instance_type.capacity)
        allocatable = positive(instance_type.allocatable)

    labels[Label.AMI_ID] = instance.image_id
    labels[Label.ZONE] = instance.zone
    labels[Label.CAPACITY_TYPE] = capacity_type(instance)
    for key in _COPIED_TAGS:
        if (value := instance.tags.get(key)) is not None:
            labels[key] = value

    return Machine(
        name=machine_name(instance, settings.node_name_convention),
        provider_id=format_provider_id(settings.provider_id_scheme, instance.zone, instance.id),
        labels={str(k): v for k, v in sorted(labels.items())},
        capacity=capacity or {},
        allocatable=allocatable or {},
        created_at=instance.launch_time,
    )
