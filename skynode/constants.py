"""Centralized constants and enums for skynode.

Label keys, tag keys and provider limits are defined here so the
translator, matcher and lifecycle provider agree on the same strings.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

# =============================================================================
# Node Labels
# =============================================================================


class Label(StrEnum):
    """Well-known node label keys."""

    ZONE = "topology.kubernetes.io/zone"
    INSTANCE_TYPE = "node.kubernetes.io/instance-type"
    ARCH = "kubernetes.io/arch"
    OS = "kubernetes.io/os"
    CAPACITY_TYPE = "skynode.sh/capacity-type"
    POLICY = "skynode.sh/provisioner-name"
    MANAGED_BY = "skynode.sh/managed-by"
    AMI_ID = "skynode.k8s.aws/instance-ami-id"


class CapacityType(StrEnum):
    """Purchasing model of an instance."""

    SPOT = "spot"
    ON_DEMAND = "on-demand"


# Alternative keys some consumers use for a well-known label
DEFAULT_NORMALIZED_LABELS: Final[dict[str, str]] = {
    "topology.ebs.csi.aws.com/zone": Label.ZONE,
    "beta.kubernetes.io/instance-type": Label.INSTANCE_TYPE,
    "failure-domain.beta.kubernetes.io/zone": Label.ZONE,
    "beta.kubernetes.io/arch": Label.ARCH,
}


# =============================================================================
# EC2 Instance States
# =============================================================================


class InstanceState(StrEnum):
    """EC2 instance state names."""

    RUNNING = "running"
    STOPPED = "stopped"
    PENDING = "pending"
    TERMINATED = "terminated"
    STOPPING = "stopping"
    SHUTTING_DOWN = "shutting-down"


# States in which an instance still belongs to the cluster
LIVE_STATES: Final = (
    InstanceState.PENDING,
    InstanceState.RUNNING,
    InstanceState.STOPPING,
    InstanceState.STOPPED,
)


# =============================================================================
# Provider
# =============================================================================

PROVIDER_NAME: Final = "aws"

# Number of instance type options forwarded to a single fleet request
MAX_INSTANCE_TYPES: Final = 60

# Tag carrying the owning cluster name on every launched instance
CLUSTER_TAG_PREFIX: Final = "kubernetes.io/cluster/"

RESOURCE_GPU: Final = "nvidia.com/gpu"
RESOURCE_NEURON: Final = "aws.amazon.com/neuron"
