"""AWS EC2 provider for skynode.

Example:
    from injector import Injector
    from skynode.module import AdapterModule
    from skynode.providers.aws import AWSCloudProvider, AWSModule

    injector = Injector([AWSModule(), AdapterModule(settings, store, catalog, launcher)])
    cloud = injector.get(AWSCloudProvider)
    machine = await cloud.create(spec, timeout=60)
"""

from skynode.providers.aws.clients import AWSModule
from skynode.providers.aws.config import AMIFamily, AWSProvider, NodeTemplate
from skynode.providers.aws.provider import AWSCloudProvider

__all__ = ["AMIFamily", "AWSCloudProvider", "AWSModule", "AWSProvider", "NodeTemplate"]
