"""Protocols between the adapter, its collaborators and the scheduler core.

``CloudProvider`` is what the scheduler consumes. The remaining protocols
are the collaborators the adapter is built from; implementations are
injected at construction and must be safe for concurrent use.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from skynode.api.model import (
    Instance,
    InstanceType,
    KubeletConfiguration,
    Machine,
    MachineSpec,
    Policy,
)

__all__ = [
    "AMIResolver",
    "CloudProvider",
    "FleetLauncher",
    "InstanceLifecycle",
    "InstanceTypeCatalog",
    "ObjectStore",
]


@runtime_checkable
class CloudProvider(Protocol):
    """Scheduler-facing contract of a cloud provider adapter.

    Implementations are stateless: every call recomputes its result from
    the collaborators, so calls for different machines may run concurrently.
    """

    async def create(self, spec: MachineSpec, *, timeout: float | None = None) -> Machine:
        """Launch an instance satisfying ``spec``.

        Raises
        ------
        InsufficientCapacityError
            No instance type is eligible for the machine.
        """
        ...

    async def get(self, provider_id: str, *, timeout: float | None = None) -> Machine:
        """Machine for the instance behind ``provider_id``.

        Raises
        ------
        NotFoundError
            The id is malformed or the instance no longer exists.
        """
        ...

    async def list(self, *, timeout: float | None = None) -> list[Machine]:
        """Machines for every instance owned by this cluster."""
        ...

    async def delete(self, machine: Machine, *, timeout: float | None = None) -> None:
        """Terminate the instance backing ``machine``."""
        ...

    async def link(self, machine: Machine, *, timeout: float | None = None) -> None:
        """Claim an out-of-band instance for ``machine``."""
        ...

    async def get_instance_types(
        self, policy: Policy, *, timeout: float | None = None,
    ) -> Sequence[InstanceType]:
        """All instance types available to ``policy``, unfiltered."""
        ...

    async def is_drifted(self, machine: Machine, *, timeout: float | None = None) -> bool:
        """True if the running instance no longer matches its template."""
        ...

    def name(self) -> str:
        """Constant provider identifier."""
        ...

    async def liveness_probe(self, request: Any = None) -> None:
        """Raise if the provider cannot serve requests."""
        ...


@runtime_checkable
class ObjectStore(Protocol):
    """Declarative object store holding policies and node templates."""

    async def get[T](self, kind: type[T], name: str) -> T:
        """Fetch an object by name.

        Raises
        ------
        NotFoundError
            No object of ``kind`` is named ``name``.
        """
        ...


@runtime_checkable
class InstanceTypeCatalog[T](Protocol):
    """Instance types with offerings and capacity, per policy and template."""

    async def list(
        self, kubelet: KubeletConfiguration | None, template: T,
    ) -> Sequence[InstanceType]: ...

    async def liveness_probe(self, request: Any = None) -> None: ...


@runtime_checkable
class InstanceLifecycle[T](Protocol):
    """Create, observe and terminate raw cloud instances."""

    async def create(
        self, template: T, spec: MachineSpec, instance_types: Sequence[InstanceType],
    ) -> Instance: ...

    async def get(self, instance_id: str) -> Instance: ...

    async def list(self) -> Sequence[Instance]: ...

    async def delete(self, instance_id: str) -> None: ...

    async def link(self, instance_id: str) -> None: ...


@runtime_checkable
class FleetLauncher[T](Protocol):
    """Bulk launch: tries candidate types until one is fulfilled."""

    async def launch(
        self, template: T, spec: MachineSpec, instance_types: Sequence[InstanceType],
    ) -> str:
        """Launch one instance and return its id."""
        ...


@runtime_checkable
class AMIResolver[T, F](Protocol):
    """AMIs implied by a template for a set of instance types."""

    async def get(
        self, template: T, instance_types: Sequence[InstanceType], family: F,
    ) -> Mapping[str, Any]:
        """Mapping of AMI id to AMI metadata."""
        ...
