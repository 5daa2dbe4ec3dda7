"""Error taxonomy for the cloud provider adapter.

``NotFoundError`` is never wrapped so callers can ignore absent objects.
Everything else raised from a collaborator surfaces as a ``StageError``
naming the step that failed, with the original exception chained.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

__all__ = [
    "CloudProviderError",
    "DeserializationError",
    "InsufficientCapacityError",
    "InvalidProviderIDError",
    "NotFoundError",
    "ResolutionError",
    "StageError",
    "is_insufficient_capacity",
    "is_not_found",
    "stage",
]


class CloudProviderError(Exception):
    """Base class for adapter errors."""


class NotFoundError(CloudProviderError):
    """A referenced object or instance does not exist."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"{kind} {name!r} not found" if name else f"{kind} not found")
        self.kind = kind
        self.name = name


class InvalidProviderIDError(NotFoundError):
    """A provider id cannot be parsed, so no instance can be located from it."""

    def __init__(self, provider_id: str) -> None:
        super().__init__("instance", provider_id)
        self.args = (f"parsing instance id from provider id {provider_id!r}",)
        self.provider_id = provider_id


class InsufficientCapacityError(CloudProviderError):
    """No instance type or offering can satisfy a machine."""


class DeserializationError(CloudProviderError):
    """Inline provider configuration is malformed."""


class ResolutionError(CloudProviderError):
    """The owning policy or instance type of an instance cannot be determined."""


class StageError(CloudProviderError):
    """Downstream failure annotated with the stage that produced it."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage}: {cause}")
        self.stage = stage
        self.cause = cause


def _chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__


def is_not_found(exc: BaseException) -> bool:
    return any(isinstance(e, NotFoundError) for e in _chain(exc))


def is_insufficient_capacity(exc: BaseException) -> bool:
    return any(isinstance(e, InsufficientCapacityError) for e in _chain(exc))


@contextmanager
def stage(name: str) -> Iterator[None]:
    """Wrap failures raised inside the block with the stage name.

    Example:
        with stage("creating instance"):
            instance = await lifecycle.create(...)
    """
    try:
        yield
    except NotFoundError:
        raise
    except Exception as e:
        raise StageError(name, e) from e
