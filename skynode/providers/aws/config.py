"""AWS node template configuration.

A node template is stored in the object store and referenced by name, or
embedded inline as the raw JSON ``provider`` block of a machine or policy.
Both forms resolve to the same immutable ``NodeTemplate``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from skynode.errors import DeserializationError


class AMIFamily(StrEnum):
    AL2 = "AL2"
    BOTTLEROCKET = "Bottlerocket"
    UBUNTU = "Ubuntu"
    CUSTOM = "Custom"


def _frozen(mapping: Mapping[str, str] | None = None) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, slots=True)
class AWSProvider:
    """Provider block of a node template.

    Args:
        ami_family: AMI family used to resolve default images. AL2 when None.
        launch_template_name: Pre-existing launch template. When set it owns
            image selection entirely.
        instance_profile: IAM instance profile for launched instances.
        subnet_selector: Tag selector for subnets.
        security_group_selector: Tag selector for security groups.
        tags: Extra tags applied to launched instances.
        context: Reserved capacity context (e.g. an ODCR id).
        metadata_options: IMDS options, forwarded unchanged to the launcher.
    """

    ami_family: AMIFamily | None = None
    launch_template_name: str | None = None
    instance_profile: str | None = None
    subnet_selector: Mapping[str, str] = field(default_factory=_frozen)
    security_group_selector: Mapping[str, str] = field(default_factory=_frozen)
    tags: Mapping[str, str] = field(default_factory=_frozen)
    context: str | None = None
    metadata_options: Mapping[str, Any] = field(default_factory=_frozen)


@dataclass(frozen=True, slots=True)
class NodeTemplate:
    """Canonical provider configuration for launching instances."""

    name: str = ""
    provider: AWSProvider = field(default_factory=AWSProvider)
    user_data: str | None = None
    ami_selector: Mapping[str, str] = field(default_factory=_frozen)

    @property
    def launch_template_name(self) -> str | None:
        return self.provider.launch_template_name

    @property
    def ami_family(self) -> AMIFamily:
        return self.provider.ami_family or AMIFamily.AL2


# JSON key -> field name
_STRING_FIELDS: dict[str, str] = {
    "launchTemplate": "launch_template_name",
    "instanceProfile": "instance_profile",
    "context": "context",
}
_SELECTOR_FIELDS: dict[str, str] = {
    "subnetSelector": "subnet_selector",
    "securityGroupSelector": "security_group_selector",
    "tags": "tags",
}


def _string_map(key: str, value: Any) -> Mapping[str, str]:
    match value:
        case dict() if all(isinstance(k, str) and isinstance(v, str) for k, v in value.items()):
            return _frozen(value)
        case _:
            raise DeserializationError(f"'{key}' must be a mapping of strings, got {value!r}")


def deserialize_provider(raw: bytes | str | None) -> AWSProvider:
    """Parse an inline provider block.

    Args:
        raw: JSON object with camelCase keys. Empty input yields defaults.

    Returns:
        Parsed AWSProvider.

    Raises:
        DeserializationError: If the payload is not a JSON object, contains
            unknown keys, or a value has the wrong type.
    """
    if not raw:
        return AWSProvider()

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DeserializationError(f"invalid provider JSON: {e}") from e

    if not isinstance(data, dict):
        raise DeserializationError(f"provider must be a JSON object, got {type(data).__name__}")

    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        match key:
            case "amiFamily":
                try:
                    kwargs["ami_family"] = AMIFamily(value)
                except ValueError as e:
                    raise DeserializationError(
                        f"unknown amiFamily {value!r}, valid: {', '.join(AMIFamily)}"
                    ) from e
            case k if k in _STRING_FIELDS:
                if not isinstance(value, str):
                    raise DeserializationError(f"'{k}' must be a string, got {value!r}")
                kwargs[_STRING_FIELDS[k]] = value
            case k if k in _SELECTOR_FIELDS:
                kwargs[_SELECTOR_FIELDS[k]] = _string_map(k, value)
            case "metadataOptions":
                if not isinstance(value, dict):
                    raise DeserializationError(f"'metadataOptions' must be an object, got {value!r}")
                kwargs["metadata_options"] = MappingProxyType(value)
            case _:
                raise DeserializationError(f"unknown provider field {key!r}")

    return AWSProvider(**kwargs)
