"""skynode - reconcile scheduler machines with AWS EC2 instances.

Example:

    from injector import Injector
    from skynode import AdapterModule, load_settings
    from skynode.providers.aws import AWSCloudProvider, AWSModule

    settings = load_settings()
    injector = Injector([AWSModule(), AdapterModule(settings, store, catalog, launcher)])
    cloud = injector.get(AWSCloudProvider)

    machines = await cloud.list(timeout=30)
"""

from loguru import logger

from skynode.api import CloudProvider, Machine, MachineSpec, Policy
from skynode.config import NodeNameConvention, Settings, load_settings
from skynode.errors import (
    CloudProviderError,
    InsufficientCapacityError,
    NotFoundError,
    StageError,
    is_insufficient_capacity,
    is_not_found,
)
from skynode.module import AdapterModule

# Disable by default (library behavior)
logger.disable("skynode")

__all__ = [
    "AdapterModule",
    "CloudProvider",
    "CloudProviderError",
    "InsufficientCapacityError",
    "Machine",
    "MachineSpec",
    "NodeNameConvention",
    "NotFoundError",
    "Policy",
    "Settings",
    "StageError",
    "is_insufficient_capacity",
    "is_not_found",
    "load_settings",
]
