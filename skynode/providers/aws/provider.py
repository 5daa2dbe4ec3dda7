"""AWS cloud provider adapter.

Composes the template resolver, the instance type catalog, the constraint
matcher, the EC2 lifecycle provider and the AMI resolver into the
``CloudProvider`` contract consumed by the scheduler.

The adapter holds no mutable state: every call recomputes its result from
the injected collaborators, and machines are never cached.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from skynode.api.model import (
    Instance,
    InstanceType,
    Machine,
    MachineSpec,
    Policy,
)
from skynode.api.provider import (
    AMIResolver,
    InstanceLifecycle,
    InstanceTypeCatalog,
    ObjectStore,
)
from skynode.config import Settings
from skynode.constants import MAX_INSTANCE_TYPES, PROVIDER_NAME, Label
from skynode.errors import (
    InsufficientCapacityError,
    NotFoundError,
    ResolutionError,
    stage,
)
from skynode.scheduling.matcher import compatible_instance_types
from skynode.scheduling.requirements import Requirements

from .config import AMIFamily, NodeTemplate
from .drift import is_ami_drifted
from .nodetemplate import resolve_node_template
from .translate import instance_to_machine, parse_instance_id

log = logger.bind(provider="aws")


# =============================================================================
# Per-instance resolution results
# =============================================================================


@dataclass(frozen=True, slots=True)
class Resolved:
    """Instance whose owning policy was resolved (type may still be None)."""

    instance: Instance
    instance_type: InstanceType | None


@dataclass(frozen=True, slots=True)
class Unresolved:
    """Instance whose owner or instance type could not be determined."""

    instance: Instance
    error: Exception


type Resolution = Resolved | Unresolved


# =============================================================================
# Adapter
# =============================================================================


class AWSCloudProvider:
    """``CloudProvider`` backed by EC2.

    Args:
        store: Object store holding policies and node templates.
        catalog: Instance type catalog.
        instances: Instance lifecycle provider.
        amis: AMI resolver used for drift detection.
        settings: Frozen adapter settings.
    """

    def __init__(
        self,
        store: ObjectStore,
        catalog: InstanceTypeCatalog[NodeTemplate],
        instances: InstanceLifecycle[NodeTemplate],
        amis: AMIResolver[NodeTemplate, AMIFamily],
        settings: Settings,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._instances = instances
        self._amis = amis
        self._settings = settings

    # -------------------------------------------------------------------------
    # Contract
    # -------------------------------------------------------------------------

    async def create(self, spec: MachineSpec, *, timeout: float | None = None) -> Machine:
        async with asyncio.timeout(timeout):
            with stage("resolving node template"):
                template = await resolve_node_template(self._store, spec.provider, spec.template_ref)
            with stage("resolving instance types"):
                policy = await self._store.get(Policy, spec.policy)
                catalog = await self._catalog.list(policy.kubelet, template)

            with stage("parsing requirements"):
                requirements = Requirements.of(
                    *spec.requirements, aliases=self._settings.normalized_labels,
                )
            eligible = compatible_instance_types(requirements, spec.requests, catalog)
            if not eligible:
                raise InsufficientCapacityError(
                    f"no instance type satisfies machine {spec.name!r} "
                    f"({len(catalog)} types considered)"
                )

            candidates = eligible[:MAX_INSTANCE_TYPES]
            log.debug(
                "Creating {machine} from {n} candidate types",
                machine=spec.name, n=len(candidates),
            )
            with stage("creating instance"):
                instance = await self._instances.create(template, spec, candidates)

        instance_type = _find(candidates, instance.instance_type)
        machine = instance_to_machine(instance, instance_type, self._settings)
        log.info(
            "Created {machine} as {instance_id} ({instance_type})",
            machine=spec.name, instance_id=instance.id, instance_type=instance.instance_type,
        )
        return machine

    async def get(self, provider_id: str, *, timeout: float | None = None) -> Machine:
        instance_id = parse_instance_id(provider_id)
        async with asyncio.timeout(timeout):
            with stage("getting instance"):
                instance = await self._instances.get(instance_id)
            instance_type = await self._resolve_instance_type(instance)
        return instance_to_machine(instance, instance_type, self._settings)

    async def list(self, *, timeout: float | None = None) -> list[Machine]:
        async with asyncio.timeout(timeout):
            with stage("listing instances"):
                instances = await self._instances.list()
            results = [await self._resolve(instance) for instance in instances]

        machines: list[Machine] = []
        for result in results:
            match result:
                case Resolved(instance=instance, instance_type=instance_type):
                    machines.append(instance_to_machine(instance, instance_type, self._settings))
                case Unresolved(instance=instance, error=error):
                    log.warning(
                        "Listing {instance_id} without instance type: {error}",
                        instance_id=instance.id, error=error,
                    )
                    machines.append(instance_to_machine(instance, None, self._settings))
        return machines

    async def delete(self, machine: Machine, *, timeout: float | None = None) -> None:
        instance_id = parse_instance_id(machine.provider_id)
        async with asyncio.timeout(timeout):
            with stage("deleting instance"):
                await self._instances.delete(instance_id)
        log.info("Deleted {machine} ({instance_id})", machine=machine.name, instance_id=instance_id)

    async def link(self, machine: Machine, *, timeout: float | None = None) -> None:
        instance_id = parse_instance_id(machine.provider_id)
        async with asyncio.timeout(timeout):
            with stage("linking instance"):
                await self._instances.link(instance_id)
        log.debug("Linked {machine} to {instance_id}", machine=machine.name, instance_id=instance_id)

    async def get_instance_types(
        self, policy: Policy, *, timeout: float | None = None,
    ) -> Sequence[InstanceType]:
        async with asyncio.timeout(timeout):
            return await self._instance_types(policy)

    async def is_drifted(self, machine: Machine, *, timeout: float | None = None) -> bool:
        """True if the machine's instance runs an AMI its template no longer implies.

        Machines without a policy label, owned by a policy without a
        template reference, or whose template is gone are never drifted.
        """
        policy_name = machine.labels.get(Label.POLICY)
        if not policy_name:
            return False

        async with asyncio.timeout(timeout):
            try:
                with stage("getting provisioner"):
                    policy = await self._store.get(Policy, policy_name)
            except NotFoundError:
                return False
            # Inline provider blocks have no stored template to drift from
            if policy.provider_ref is None:
                return False
            try:
                with stage("resolving node template"):
                    template = await self._store.get(NodeTemplate, policy.provider_ref)
            except NotFoundError:
                return False

            return await is_ami_drifted(
                machine,
                policy,
                template,
                catalog=self._catalog,
                amis=self._amis,
                instances=self._instances,
            )

    def name(self) -> str:
        return PROVIDER_NAME

    async def liveness_probe(self, request: Any = None) -> None:
        await self._catalog.liveness_probe(request)

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    async def _instance_types(self, policy: Policy) -> Sequence[InstanceType]:
        with stage("resolving node template"):
            template = await resolve_node_template(self._store, policy.provider, policy.provider_ref)
        with stage("listing instance types"):
            return await self._catalog.list(policy.kubelet, template)

    async def _resolve_policy(self, instance: Instance) -> Policy:
        name = instance.tags.get(Label.POLICY)
        if not name:
            raise ResolutionError(f"instance {instance.id} has no {Label.POLICY} tag")
        try:
            with stage("resolving policy"):
                return await self._store.get(Policy, name)
        except NotFoundError as e:
            raise ResolutionError(f"instance {instance.id} is owned by unknown policy {name!r}") from e

    async def _resolve_instance_type(self, instance: Instance) -> InstanceType | None:
        """Catalog entry for the instance's type, None if the catalog lacks it.

        Raises:
            ResolutionError: The owning policy or its node template cannot be
                determined.
        """
        policy = await self._resolve_policy(instance)
        try:
            instance_types = await self._instance_types(policy)
        except NotFoundError as e:
            raise ResolutionError(
                f"instance {instance.id}: node template of policy {policy.name!r} not found"
            ) from e
        return _find(instance_types, instance.instance_type)

    async def _resolve(self, instance: Instance) -> Resolution:
        try:
            return Resolved(instance, await self._resolve_instance_type(instance))
        except Exception as e:
            return Unresolved(instance, e)


def _find(instance_types: Sequence[InstanceType], name: str) -> InstanceType | None:
    return next((it for it in instance_types if it.name == name), None)


__all__ = ["AWSCloudProvider", "Resolution", "Resolved", "Unresolved"]
