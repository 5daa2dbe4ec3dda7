from skynode.api.model import (
    Instance,
    InstanceType,
    KubeletConfiguration,
    Machine,
    MachineSpec,
    Offering,
    Policy,
)
from skynode.api.provider import (
    AMIResolver,
    CloudProvider,
    FleetLauncher,
    InstanceLifecycle,
    InstanceTypeCatalog,
    ObjectStore,
)

__all__ = [
    "AMIResolver",
    "CloudProvider",
    "FleetLauncher",
    "Instance",
    "InstanceLifecycle",
    "InstanceType",
    "InstanceTypeCatalog",
    "KubeletConfiguration",
    "Machine",
    "MachineSpec",
    "ObjectStore",
    "Offering",
    "Policy",
]
