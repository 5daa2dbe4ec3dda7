"""AMI drift between a running instance and its node template."""

from __future__ import annotations

from skynode.api.model import Machine, Policy
from skynode.api.provider import AMIResolver, InstanceLifecycle, InstanceTypeCatalog
from skynode.constants import Label
from skynode.errors import ResolutionError, stage

from .config import AMIFamily, NodeTemplate
from .translate import parse_instance_id


async def is_ami_drifted(
    machine: Machine,
    policy: Policy,
    template: NodeTemplate,
    *,
    catalog: InstanceTypeCatalog[NodeTemplate],
    amis: AMIResolver[NodeTemplate, AMIFamily],
    instances: InstanceLifecycle[NodeTemplate],
) -> bool:
    """True if the machine's running image is not one its template implies.

    Args:
        machine: Machine whose instance is checked.
        policy: Owning policy; its kubelet settings shape the catalog.
        template: Node template governing the machine.
        catalog: Instance type catalog, fetched fresh for the lookup.
        amis: AMI resolver for the template's family.
        instances: Lifecycle provider used to fetch the live instance.

    Raises:
        ResolutionError: The machine's instance type is not in the catalog.
    """
    type_name = machine.labels.get(Label.INSTANCE_TYPE, "")
    with stage("getting instance types"):
        instance_types = await catalog.list(policy.kubelet, template)
    instance_type = next((it for it in instance_types if it.name == type_name), None)
    if instance_type is None:
        raise ResolutionError(f'finding node instance type "{type_name}"')

    # Image selection belongs to the launch template
    if template.launch_template_name is not None:
        return False

    with stage("getting amis"):
        resolved = await amis.get(template, [instance_type], template.ami_family)

    instance_id = parse_instance_id(machine.provider_id)
    with stage("getting instance"):
        instance = await instances.get(instance_id)
    return instance.image_id not in resolved
