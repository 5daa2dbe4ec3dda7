"""Resource quantities and resource-list arithmetic.

Quantities use Kubernetes notation: ``"500m"`` (milli), ``"16Gi"`` (binary),
``"2G"`` (decimal), ``"1e3"`` (exponent) or plain numbers.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from types import MappingProxyType

__all__ = [
    "Quantity",
    "ResourceList",
    "fits",
    "parse_quantity",
    "parse_resources",
    "positive",
    "subtract",
]

type Quantity = Decimal
type ResourceList = Mapping[str, Decimal]

_BINARY_SUFFIXES: dict[str, int] = {
    "Ki": 1024,
    "Mi": 1024**2,
    "Gi": 1024**3,
    "Ti": 1024**4,
    "Pi": 1024**5,
    "Ei": 1024**6,
}

_DECIMAL_SUFFIXES: dict[str, Decimal] = {
    "n": Decimal("1e-9"),
    "u": Decimal("1e-6"),
    "m": Decimal("1e-3"),
    "": Decimal(1),
    "k": Decimal("1e3"),
    "M": Decimal("1e6"),
    "G": Decimal("1e9"),
    "T": Decimal("1e12"),
    "P": Decimal("1e15"),
    "E": Decimal("1e18"),
}

_QUANTITY_RE = re.compile(r"^([+-]?(?:\d+\.?\d*|\.\d+))([eE][+-]?\d+|[a-zA-Z]*)$")
_EXPONENT_RE = re.compile(r"^[eE][+-]?\d+$")


def parse_quantity(value: str | int | float | Decimal) -> Decimal:
    """Parse a quantity into a Decimal.

    Args:
        value: Quantity string or number.

    Returns:
        Quantity in base units (cores, bytes, count).

    Raises:
        ValueError: If the string is not a valid quantity.
    """
    match value:
        case bool():
            raise ValueError(f"Invalid quantity: {value!r}")
        case Decimal():
            return value
        case int():
            return Decimal(value)
        case float():
            return Decimal(str(value))
        case str():
            pass
        case _:
            raise ValueError(f"Invalid quantity: {value!r}")

    m = _QUANTITY_RE.match(value.strip())
    if not m:
        raise ValueError(f"Invalid quantity: {value!r}")

    number, suffix = m.groups()
    try:
        base = Decimal(number)
    except InvalidOperation as e:
        raise ValueError(f"Invalid quantity: {value!r}") from e

    if _EXPONENT_RE.match(suffix):
        return base.scaleb(int(suffix[1:]))
    if suffix in _BINARY_SUFFIXES:
        return base * _BINARY_SUFFIXES[suffix]
    if suffix in _DECIMAL_SUFFIXES:
        return base * _DECIMAL_SUFFIXES[suffix]
    raise ValueError(f"Invalid quantity suffix {suffix!r} in {value!r}")


def parse_resources(raw: Mapping[str, str | int | float | Decimal]) -> ResourceList:
    """Parse a mapping of resource name to quantity."""
    return MappingProxyType({name: parse_quantity(q) for name, q in raw.items()})


def subtract(lhs: ResourceList, rhs: ResourceList) -> ResourceList:
    """Subtract ``rhs`` from ``lhs`` for every resource in ``lhs``."""
    return MappingProxyType({
        name: quantity - rhs.get(name, Decimal(0))
        for name, quantity in lhs.items()
    })


def positive(resources: ResourceList) -> ResourceList:
    """Drop every resource whose quantity is not strictly positive."""
    return MappingProxyType({
        name: quantity for name, quantity in resources.items() if quantity > 0
    })


def fits(requests: ResourceList, allocatable: ResourceList) -> bool:
    """True if every requested quantity is within the allocatable amount.

    Resources missing from ``allocatable`` count as zero.
    """
    return all(
        quantity <= allocatable.get(name, Decimal(0))
        for name, quantity in requests.items()
    )
