"""Requirement algebra and resource arithmetic.

The matcher lives in ``skynode.scheduling.matcher``; it depends on the API
model, which in turn depends on the leaf modules exported here.
"""

from skynode.scheduling.requirements import (
    NodeSelectorRequirement,
    Operator,
    Requirement,
    Requirements,
)
from skynode.scheduling.resources import fits, parse_quantity, parse_resources

__all__ = [
    "NodeSelectorRequirement",
    "Operator",
    "Requirement",
    "Requirements",
    "fits",
    "parse_quantity",
    "parse_resources",
]
