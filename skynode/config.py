"""TOML-based adapter settings.

Loads ~/.skynode/defaults.toml (global) and skynode.toml (project),
merges them, and builds the immutable ``Settings`` handed to every
component at construction.
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from skynode.constants import DEFAULT_NORMALIZED_LABELS, PROVIDER_NAME

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".skynode" / "defaults.toml"
PROJECT_CONFIG_NAME = "skynode.toml"


class NodeNameConvention(StrEnum):
    """How machines are named after their instance."""

    IP_NAME = "ip-name"
    RESOURCE_NAME = "resource-name"


@dataclass(frozen=True, slots=True)
class Settings:
    """Adapter settings.

    Args:
        cluster_name: Cluster whose instances this adapter owns.
        region: AWS region of the cluster.
        node_name_convention: ``ip-name`` names machines after the private
            DNS name, ``resource-name`` after the instance id.
        provider_id_scheme: Scheme of synthesized provider ids.
        kubernetes_version: Used to resolve EKS optimized AMIs.
        normalized_labels: Alternative label keys and their canonical key.
    """

    cluster_name: str = ""
    region: str = "us-east-1"
    node_name_convention: NodeNameConvention = NodeNameConvention.IP_NAME
    provider_id_scheme: str = PROVIDER_NAME
    kubernetes_version: str = "1.29"
    normalized_labels: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_NORMALIZED_LABELS)),
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "node_name_convention", NodeNameConvention(self.node_name_convention))
        object.__setattr__(self, "normalized_labels", MappingProxyType(dict(self.normalized_labels)))


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    with path.open("rb") as f:
        return tomllib.load(f)


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("settings", {})
    return merged


def build_settings(raw: RawConfig) -> Settings:
    """Build ``Settings`` from a ``[settings]`` table.

    Raises:
        ValueError: On unknown keys or an invalid naming convention.
    """
    raw = dict(raw)
    known = {f.name for f in fields(Settings)}
    if unknown := sorted(raw.keys() - known):
        raise ValueError(f"Unknown settings: {', '.join(unknown)}. Valid: {', '.join(sorted(known))}")

    convention = raw.get("node_name_convention")
    if convention is not None and convention not in NodeNameConvention:
        raise ValueError(
            f"Invalid node_name_convention '{convention}'. "
            f"Valid: {', '.join(NodeNameConvention)}"
        )

    aliases = raw.pop("normalized_labels", None)
    if aliases is not None:
        raw["normalized_labels"] = {**DEFAULT_NORMALIZED_LABELS, **aliases}
    return Settings(**raw)


def load_settings(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> Settings:
    config = load_config(project_dir=project_dir, global_path=global_path)
    return build_settings(config["settings"])
