"""Node selector requirements as intersectable value sets.

A ``Requirement`` is a set of admissible values for one label key, stored
either as the values themselves or as their complement (everything except
the listed values). ``Gt``/``Lt`` add integer bounds on top.

Example:
    >>> machine = Requirements.of(
    ...     NodeSelectorRequirement("kubernetes.io/arch", Operator.IN, ("amd64",)),
    ... )
    >>> machine.compatible(instance_type.requirements)
    True
"""

from __future__ import annotations

import sys
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType

__all__ = [
    "NodeSelectorRequirement",
    "Operator",
    "Requirement",
    "Requirements",
]


class Operator(StrEnum):
    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"
    GT = "Gt"
    LT = "Lt"


@dataclass(frozen=True, slots=True)
class NodeSelectorRequirement:
    """Raw ``(key, operator, values)`` triple as written on a machine."""

    key: str
    operator: Operator
    values: tuple[str, ...] = ()


def _as_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def _within(value: str, greater_than: int | None, less_than: int | None) -> bool:
    if greater_than is None and less_than is None:
        return True
    number = _as_int(value)
    if number is None:
        return False
    if greater_than is not None and number <= greater_than:
        return False
    return not (less_than is not None and number >= less_than)


def _max(a: int | None, b: int | None) -> int | None:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def _min(a: int | None, b: int | None) -> int | None:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


@dataclass(frozen=True, slots=True)
class Requirement:
    """Admissible values for a single key."""

    key: str
    complement: bool
    values: frozenset[str] = frozenset()
    greater_than: int | None = None
    less_than: int | None = None

    @classmethod
    def new(cls, key: str, operator: Operator | str, *values: str) -> Requirement:
        """Build a requirement from a node selector operator.

        Raises:
            ValueError: If the operator is unknown or a bound is not an integer.
        """
        match Operator(operator):
            case Operator.IN:
                return cls(key, complement=False, values=frozenset(values))
            case Operator.NOT_IN:
                return cls(key, complement=True, values=frozenset(values))
            case Operator.EXISTS:
                return cls(key, complement=True)
            case Operator.DOES_NOT_EXIST:
                return cls(key, complement=False)
            case Operator.GT:
                return cls(key, complement=True, greater_than=_bound(key, operator, values))
            case Operator.LT:
                return cls(key, complement=True, less_than=_bound(key, operator, values))

    @property
    def operator(self) -> Operator:
        if self.complement:
            return Operator.NOT_IN if self.values else Operator.EXISTS
        return Operator.IN if self.values else Operator.DOES_NOT_EXIST

    def __len__(self) -> int:
        if self.complement:
            return sys.maxsize - len(self.values)
        return len(self.values)

    def has(self, value: str) -> bool:
        """True if ``value`` is admitted by this requirement."""
        if self.complement:
            return value not in self.values and _within(value, self.greater_than, self.less_than)
        return value in self.values and _within(value, self.greater_than, self.less_than)

    def intersection(self, other: Requirement) -> Requirement:
        complement = self.complement and other.complement
        greater_than = _max(self.greater_than, other.greater_than)
        less_than = _min(self.less_than, other.less_than)
        if greater_than is not None and less_than is not None and greater_than >= less_than:
            return Requirement(self.key, complement=False)

        match (self.complement, other.complement):
            case (True, True):
                values = self.values | other.values
            case (True, False):
                values = other.values - self.values
            case (False, True):
                values = self.values - other.values
            case _:
                values = self.values & other.values

        values = frozenset(v for v in values if _within(v, greater_than, less_than))
        if not complement:
            greater_than, less_than = None, None
        return Requirement(
            self.key,
            complement=complement,
            values=values,
            greater_than=greater_than,
            less_than=less_than,
        )

    def __str__(self) -> str:
        match self.operator:
            case Operator.IN | Operator.NOT_IN:
                return f"{self.key} {self.operator} {sorted(self.values)}"
            case _:
                return f"{self.key} {self.operator}"


def _bound(key: str, operator: str, values: tuple[str, ...]) -> int:
    if len(values) != 1 or _as_int(values[0]) is None:
        raise ValueError(f"{key}: operator {operator} expects a single integer value, got {values!r}")
    return int(values[0])


_NEGATIVE = (Operator.NOT_IN, Operator.DOES_NOT_EXIST)


class Requirements(Mapping[str, Requirement]):
    """Immutable collection of requirements keyed by label."""

    __slots__ = ("_items",)

    def __init__(self, items: Mapping[str, Requirement] | None = None) -> None:
        self._items: Mapping[str, Requirement] = MappingProxyType(dict(items or {}))

    @classmethod
    def of(
        cls,
        *requirements: NodeSelectorRequirement | Requirement,
        aliases: Mapping[str, str] | None = None,
    ) -> Requirements:
        """Build from node selector terms, intersecting repeated keys.

        Args:
            requirements: Raw terms or already-built requirements.
            aliases: Alternative label keys mapped to their canonical key.
        """
        items: dict[str, Requirement] = {}
        for raw in requirements:
            match raw:
                case NodeSelectorRequirement(key=key, operator=op, values=values):
                    key = (aliases or {}).get(key, key)
                    req = Requirement.new(key, op, *values)
                case Requirement():
                    key = (aliases or {}).get(raw.key, raw.key)
                    req = Requirement(
                        key,
                        complement=raw.complement,
                        values=raw.values,
                        greater_than=raw.greater_than,
                        less_than=raw.less_than,
                    )
            items[key] = items[key].intersection(req) if key in items else req
        return cls(items)

    @classmethod
    def from_labels(cls, labels: Mapping[str, str]) -> Requirements:
        return cls({k: Requirement.new(k, Operator.IN, v) for k, v in labels.items()})

    def __getitem__(self, key: str) -> Requirement:
        return self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Requirements({', '.join(str(r) for r in self._items.values())})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Requirements):
            return dict(self._items) == dict(other._items)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._items.items()))

    def get_requirement(self, key: str) -> Requirement:
        """Requirement for ``key``; absent keys admit any value."""
        if (req := self._items.get(key)) is not None:
            return req
        return Requirement(key, complement=True)

    def incompatibilities(self, other: Requirements) -> list[str]:
        """Reasons why ``other`` cannot satisfy these requirements.

        Only keys present on both sides are compared. Two negative
        requirements (``NotIn``/``DoesNotExist``) never conflict.
        """
        reasons: list[str] = []
        for key in self._items.keys() & other.keys():
            existing, incoming = self._items[key], other[key]
            if len(existing.intersection(incoming)) > 0:
                continue
            if incoming.operator in _NEGATIVE and existing.operator in _NEGATIVE:
                continue
            reasons.append(f"key {key}, {incoming} not in {existing}")
        return sorted(reasons)

    def compatible(self, other: Requirements) -> bool:
        return not self.incompatibilities(other)

    def labels(self) -> dict[str, str]:
        """Labels for every key restricted to exactly one value."""
        return {
            key: next(iter(req.values))
            for key, req in self._items.items()
            if not req.complement and len(req.values) == 1
        }
