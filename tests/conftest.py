from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pytest

from skynode.api.model import (
    Instance,
    InstanceType,
    KubeletConfiguration,
    MachineSpec,
    Offering,
    Policy,
)
from skynode.config import Settings
from skynode.constants import CapacityType, Label
from skynode.errors import NotFoundError
from skynode.providers.aws.config import AMIFamily, AWSProvider, NodeTemplate
from skynode.providers.aws.provider import AWSCloudProvider
from skynode.scheduling.requirements import Operator, Requirement, Requirements
from skynode.scheduling.resources import parse_resources

LAUNCH_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def make_instance_type(
    name: str,
    *,
    cpu: str = "2",
    memory: str = "4Gi",
    pods: str | None = None,
    arch: str = "amd64",
    zones: Sequence[str] = ("us-east-1a", "us-east-1b"),
    capacity_types: Sequence[str] = (CapacityType.ON_DEMAND, CapacityType.SPOT),
    available: bool = True,
    overhead: Mapping[str, str] | None = None,
) -> InstanceType:
    capacity = {"cpu": cpu, "memory": memory}
    if pods is not None:
        capacity["pods"] = pods
    return InstanceType(
        name=name,
        requirements=Requirements.of(
            Requirement.new(Label.INSTANCE_TYPE, Operator.IN, name),
            Requirement.new(Label.ARCH, Operator.IN, arch),
            Requirement.new(Label.ZONE, Operator.IN, *zones),
            Requirement.new(Label.CAPACITY_TYPE, Operator.IN, *capacity_types),
        ),
        offerings=tuple(
            Offering(zone=z, capacity_type=ct, available=available)
            for z in zones
            for ct in capacity_types
        ),
        capacity=parse_resources(capacity),
        overhead=parse_resources(overhead or {}),
    )


def make_instance(
    instance_id: str = "i-0123456789abcdef0",
    *,
    instance_type: str = "large",
    zone: str = "us-east-1a",
    image_id: str = "ami-1",
    policy: str | None = "default",
    lifecycle: str | None = None,
    tags: Mapping[str, str] | None = None,
) -> Instance:
    all_tags = dict(tags or {})
    if policy is not None:
        all_tags[Label.POLICY] = policy
    return Instance(
        id=instance_id,
        image_id=image_id,
        zone=zone,
        instance_type=instance_type,
        launch_time=LAUNCH_TIME,
        private_dns_name="IP-10-0-0-1.EC2.INTERNAL",
        tags=all_tags,
        lifecycle=lifecycle,
    )


# =============================================================================
# In-memory collaborators
# =============================================================================


class FakeStore:
    """Object store keyed by ``(kind, name)``."""

    def __init__(self, *objects: Any) -> None:
        self.objects: dict[tuple[type, str], Any] = {}
        self.calls: list[tuple[type, str]] = []
        for obj in objects:
            self.put(obj)

    def put(self, obj: Any) -> None:
        self.objects[(type(obj), obj.name)] = obj

    async def get(self, kind: type, name: str) -> Any:
        self.calls.append((kind, name))
        try:
            return self.objects[(kind, name)]
        except KeyError:
            raise NotFoundError(kind.__name__, name) from None


@dataclass
class FakeCatalog:
    instance_types: list[InstanceType] = field(default_factory=list)
    error: Exception | None = None
    calls: list[tuple[KubeletConfiguration | None, NodeTemplate]] = field(default_factory=list)
    probes: list[Any] = field(default_factory=list)

    async def list(self, kubelet: KubeletConfiguration | None, template: NodeTemplate) -> list[InstanceType]:
        self.calls.append((kubelet, template))
        if self.error is not None:
            raise self.error
        return list(self.instance_types)

    async def liveness_probe(self, request: Any = None) -> None:
        self.probes.append(request)
        if self.error is not None:
            raise self.error


@dataclass
class FakeLifecycle:
    instances: dict[str, Instance] = field(default_factory=dict)
    launch_type: str = "large"
    error: Exception | None = None
    created: list[tuple[NodeTemplate, MachineSpec, list[InstanceType]]] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    linked: list[str] = field(default_factory=list)

    def add(self, *instances: Instance) -> None:
        for instance in instances:
            self.instances[instance.id] = instance

    async def create(
        self, template: NodeTemplate, spec: MachineSpec, instance_types: Sequence[InstanceType],
    ) -> Instance:
        self.created.append((template, spec, list(instance_types)))
        if self.error is not None:
            raise self.error
        instance = make_instance(
            f"i-{len(self.created):017d}", instance_type=self.launch_type, policy=spec.policy,
        )
        self.add(instance)
        return instance

    async def get(self, instance_id: str) -> Instance:
        if instance_id not in self.instances:
            raise NotFoundError("instance", instance_id)
        return self.instances[instance_id]

    async def list(self) -> list[Instance]:
        if self.error is not None:
            raise self.error
        return list(self.instances.values())

    async def delete(self, instance_id: str) -> None:
        if instance_id not in self.instances:
            raise NotFoundError("instance", instance_id)
        self.deleted.append(instance_id)
        del self.instances[instance_id]

    async def link(self, instance_id: str) -> None:
        if instance_id not in self.instances:
            raise NotFoundError("instance", instance_id)
        self.linked.append(instance_id)


@dataclass
class FakeAMIs:
    ami_ids: tuple[str, ...] = ("ami-1",)
    calls: list[tuple[NodeTemplate, list[InstanceType], AMIFamily]] = field(default_factory=list)

    async def get(
        self, template: NodeTemplate, instance_types: Sequence[InstanceType], family: AMIFamily,
    ) -> dict[str, Any]:
        self.calls.append((template, list(instance_types), family))
        return {ami_id: {"id": ami_id} for ami_id in self.ami_ids}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(cluster_name="test-cluster", region="us-east-1")


@pytest.fixture
def small() -> InstanceType:
    return make_instance_type("small", cpu="1", memory="2Gi")


@pytest.fixture
def large() -> InstanceType:
    return make_instance_type("large", cpu="4", memory="16Gi", pods="0")


@pytest.fixture
def template() -> NodeTemplate:
    return NodeTemplate(name="default", provider=AWSProvider(ami_family=AMIFamily.AL2))


@pytest.fixture
def policy() -> Policy:
    return Policy(name="default", provider_ref="default")


@pytest.fixture
def store(template: NodeTemplate, policy: Policy) -> FakeStore:
    return FakeStore(template, policy)


@pytest.fixture
def catalog(small: InstanceType, large: InstanceType) -> FakeCatalog:
    return FakeCatalog([small, large])


@pytest.fixture
def lifecycle() -> FakeLifecycle:
    return FakeLifecycle()


@pytest.fixture
def amis() -> FakeAMIs:
    return FakeAMIs()


@pytest.fixture
def cloud(
    store: FakeStore,
    catalog: FakeCatalog,
    lifecycle: FakeLifecycle,
    amis: FakeAMIs,
    settings: Settings,
) -> AWSCloudProvider:
    return AWSCloudProvider(store, catalog, lifecycle, amis, settings)
