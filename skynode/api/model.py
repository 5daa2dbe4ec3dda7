from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType

from skynode.scheduling.requirements import NodeSelectorRequirement, Requirements
from skynode.scheduling.resources import ResourceList, positive, subtract


def _empty() -> Mapping[str, Decimal]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class Offering:
    """Availability of an instance type in one zone for one capacity type."""
    zone: str
    capacity_type: str
    price: float = 0.0
    available: bool = True


@dataclass(frozen=True, slots=True)
class KubeletConfiguration:
    """Kubelet overrides of an owning policy. Opaque here, consumed by the catalog."""
    max_pods: int | None = None
    system_reserved: Mapping[str, Decimal] = field(default_factory=_empty)
    kube_reserved: Mapping[str, Decimal] = field(default_factory=_empty)
    eviction_hard: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True, slots=True)
class InstanceType:
    """Catalog entry: a class of instance with fixed capacity."""
    name: str
    requirements: Requirements
    offerings: tuple[Offering, ...]
    capacity: ResourceList
    overhead: ResourceList = field(default_factory=_empty)

    @property
    def allocatable(self) -> ResourceList:
        return subtract(self.capacity, self.overhead)


@dataclass(frozen=True, slots=True)
class Instance:
    """Raw EC2 instance as observed through the lifecycle provider."""
    id: str
    image_id: str
    zone: str
    instance_type: str
    launch_time: datetime
    private_dns_name: str = ""
    tags: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    lifecycle: str | None = None
    state: str = "running"


@dataclass(frozen=True, slots=True)
class MachineSpec:
    """A node request produced by a scheduling decision.

    ``template_ref`` and ``provider`` are mutually exclusive; the reference
    wins when both are set.
    """
    name: str
    policy: str
    requirements: tuple[NodeSelectorRequirement, ...] = ()
    requests: ResourceList = field(default_factory=_empty)
    template_ref: str | None = None
    provider: bytes | None = None


@dataclass(frozen=True, slots=True)
class Machine:
    """Scheduler-facing projection of an instance. Recomputed on every call."""
    name: str
    provider_id: str
    labels: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    capacity: ResourceList = field(default_factory=_empty)
    allocatable: ResourceList = field(default_factory=_empty)
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))
        object.__setattr__(self, "capacity", positive(self.capacity))
        object.__setattr__(self, "allocatable", positive(self.allocatable))


@dataclass(frozen=True, slots=True)
class Policy:
    """Owning provisioner: the scheduling rule that requested a machine."""
    name: str
    provider_ref: str | None = None
    provider: bytes | None = None
    kubelet: KubeletConfiguration | None = None
