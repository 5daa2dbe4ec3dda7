"""Offering filters over zone and capacity-type requirements."""

from __future__ import annotations

from collections.abc import Iterable

from skynode.api.model import Offering
from skynode.constants import Label
from skynode.scheduling.requirements import Requirements


def compatible_offerings(
    offerings: Iterable[Offering], requirements: Requirements,
) -> tuple[Offering, ...]:
    """Offerings whose zone and capacity type are admitted by ``requirements``.

    A requirement set without a zone (or capacity-type) key admits every
    zone (or capacity type).
    """
    zones = requirements.get_requirement(Label.ZONE)
    capacity_types = requirements.get_requirement(Label.CAPACITY_TYPE)
    return tuple(
        o for o in offerings
        if zones.has(o.zone) and capacity_types.has(o.capacity_type)
    )


def available(offerings: Iterable[Offering]) -> tuple[Offering, ...]:
    return tuple(o for o in offerings if o.available)
