"""AWS client factories with dependency injection.

Provides typed client factories that can be injected into components,
plus the throttling retry policy shared by every AWS call.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

import aioboto3
from botocore.exceptions import ClientError
from injector import Module, provider, singleton
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from skynode.config import Settings


# =============================================================================
# Client Type
# =============================================================================

type Client[T] = Callable[[], AbstractAsyncContextManager[T]]
"""Factory that returns an async context manager for a client."""

_THROTTLE_CODES = frozenset({
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
})


def is_throttled(exc: BaseException) -> bool:
    """Check if exception is a retriable API throttling error."""
    if isinstance(exc, ClientError):
        return error_code(exc) in _THROTTLE_CODES
    return False


def error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


# Retry policy for read and tag calls against the AWS API
throttle_retry = retry(
    retry=retry_if_exception(is_throttled),
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=0.5, max=8),
    reraise=True,
)


# =============================================================================
# Wrapper Classes for DI (each needs a unique type)
# =============================================================================


class EC2ClientFactory:
    """Wrapper for EC2 client factory."""

    def __init__(self, factory: Callable[[], AbstractAsyncContextManager[Any]]) -> None:
        self._factory = factory

    def __call__(self) -> AbstractAsyncContextManager[Any]:
        return self._factory()


class SSMClientFactory:
    """Wrapper for SSM client factory."""

    def __init__(self, factory: Callable[[], AbstractAsyncContextManager[Any]]) -> None:
        self._factory = factory

    def __call__(self) -> AbstractAsyncContextManager[Any]:
        return self._factory()


# =============================================================================
# AWS Module
# =============================================================================


class AWSModule(Module):
    """DI module that provides AWS client factories.

    Usage:
        >>> from injector import Injector
        >>> from skynode.module import AdapterModule
        >>> from skynode.providers.aws import AWSModule
        >>>
        >>> injector = Injector([AWSModule(), AdapterModule(settings, store, catalog, launcher)])
        >>>
        >>> class MyComponent:
        ...     ec2: EC2ClientFactory
        ...
        ...     async def do_something(self):
        ...         async with self.ec2() as client:
        ...             await client.describe_instances()
    """

    @singleton
    @provider
    def provide_session(self) -> aioboto3.Session:
        """Provide singleton aioboto3 session."""
        return aioboto3.Session()

    @singleton
    @provider
    def provide_ec2(self, session: aioboto3.Session, settings: Settings) -> EC2ClientFactory:
        """Provide EC2 client factory."""
        @asynccontextmanager
        async def factory() -> AsyncIterator[Any]:
            async with session.client("ec2", region_name=settings.region) as client:
                yield client
        return EC2ClientFactory(factory)

    @singleton
    @provider
    def provide_ssm(self, session: aioboto3.Session, settings: Settings) -> SSMClientFactory:
        """Provide SSM client factory."""
        @asynccontextmanager
        async def factory() -> AsyncIterator[Any]:
            async with session.client("ssm", region_name=settings.region) as client:
                yield client
        return SSMClientFactory(factory)


__all__ = [
    "AWSModule",
    "Client",
    "EC2ClientFactory",
    "SSMClientFactory",
    "error_code",
    "is_throttled",
    "throttle_retry",
]
