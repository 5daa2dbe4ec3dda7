"""Instance type eligibility for a machine.

Filters a catalog down to the entries that can host a machine. Nothing is
ranked: the result keeps catalog order and the selection policy downstream
decides which candidate to prefer.
"""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from skynode.api.model import InstanceType
from skynode.scheduling.offerings import available, compatible_offerings
from skynode.scheduling.requirements import Requirements
from skynode.scheduling.resources import ResourceList, fits

log = logger.bind(component="matcher")


def rejection(
    instance_type: InstanceType,
    requirements: Requirements,
    requests: ResourceList,
) -> str | None:
    """Why ``instance_type`` cannot host the machine, or None if it can."""
    if reasons := requirements.incompatibilities(instance_type.requirements):
        return f"incompatible requirements ({'; '.join(reasons)})"
    if not available(compatible_offerings(instance_type.offerings, requirements)):
        return "no available offering"
    if not fits(requests, instance_type.allocatable):
        return "insufficient allocatable resources"
    return None


def compatible_instance_types(
    requirements: Requirements,
    requests: ResourceList,
    catalog: Iterable[InstanceType],
) -> list[InstanceType]:
    """Catalog entries satisfying requirements, offerings and resource fit.

    Args:
        requirements: The machine's requirements.
        requests: The machine's resource requests.
        catalog: Instance types available to the owning policy.

    Returns:
        Eligible instance types, in catalog order.
    """
    eligible: list[InstanceType] = []
    for instance_type in catalog:
        reason = rejection(instance_type, requirements, requests)
        if reason is None:
            eligible.append(instance_type)
        else:
            log.trace(
                "Rejected {instance_type}: {reason}",
                instance_type=instance_type.name, reason=reason,
            )
    return eligible
