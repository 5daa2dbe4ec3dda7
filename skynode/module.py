"""Central DI module for skynode.

Binds the host-supplied collaborators (settings, object store, instance
type catalog, fleet launcher) and provides the AWS components built on
top of them. Combine with ``AWSModule`` for the aioboto3 client factories.
"""

from __future__ import annotations

from injector import Binder, Module, provider, singleton

from .api.provider import FleetLauncher, InstanceTypeCatalog, ObjectStore
from .config import Settings
from .providers.aws.ami import SSMAMIResolver
from .providers.aws.clients import EC2ClientFactory, SSMClientFactory
from .providers.aws.instances import EC2InstanceProvider
from .providers.aws.provider import AWSCloudProvider


class AdapterModule(Module):
    """Module wiring the cloud provider adapter.

    Usage:
        injector = Injector([AWSModule(), AdapterModule(settings, store, catalog, launcher)])
        cloud = injector.get(AWSCloudProvider)
    """

    def __init__(
        self,
        settings: Settings,
        store: ObjectStore,
        catalog: InstanceTypeCatalog,
        launcher: FleetLauncher,
    ) -> None:
        self._settings = settings
        self._store = store
        self._catalog = catalog
        self._launcher = launcher

    def configure(self, binder: Binder) -> None:
        """Configure bindings for host-supplied collaborators."""
        binder.bind(Settings, to=self._settings)
        binder.bind(ObjectStore, to=self._store)
        binder.bind(InstanceTypeCatalog, to=self._catalog)
        binder.bind(FleetLauncher, to=self._launcher)

    @singleton
    @provider
    def provide_instances(
        self, ec2: EC2ClientFactory, launcher: FleetLauncher, settings: Settings,
    ) -> EC2InstanceProvider:
        return EC2InstanceProvider(ec2, launcher, settings)

    @singleton
    @provider
    def provide_amis(
        self, ssm: SSMClientFactory, ec2: EC2ClientFactory, settings: Settings,
    ) -> SSMAMIResolver:
        return SSMAMIResolver(ssm, ec2, settings)

    @singleton
    @provider
    def provide_cloud_provider(
        self,
        store: ObjectStore,
        catalog: InstanceTypeCatalog,
        instances: EC2InstanceProvider,
        amis: SSMAMIResolver,
        settings: Settings,
    ) -> AWSCloudProvider:
        """Provide the singleton adapter."""
        return AWSCloudProvider(store, catalog, instances, amis, settings)


__all__ = ["AdapterModule"]
