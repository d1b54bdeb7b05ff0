"""
CarbonV2 — Supplier / counterparty grouping

Accumulates spend and footprint per counterparty, then assigns a
priority tier from the accumulated footprint.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

from .aggregation import FootprintRecord


HIGH_PRIORITY_ABOVE = 500.0
MEDIUM_PRIORITY_ABOVE = 200.0

RECOMMENDED_STEP = "Engage a science-based reduction trajectory"

UNKNOWN_COUNTERPARTY = "unknown"


@dataclass
class SupplierAggregate:
    name: str
    spend: float = 0.0
    co2: float = 0.0
    priority: str = "low"
    recommended_step: str = RECOMMENDED_STEP

    def to_dict(self) -> dict:
        return asdict(self)


def priority_for(footprint: float) -> str:
    """Step function: > 500 high, > 200 medium, else low."""
    if footprint > HIGH_PRIORITY_ABOVE:
        return "high"
    if footprint > MEDIUM_PRIORITY_ABOVE:
        return "medium"
    return "low"


def supplier_key(record: FootprintRecord) -> str:
    return record.counterparty or record.secondary_key or UNKNOWN_COUNTERPARTY


def group_suppliers(records: Iterable[FootprintRecord]) -> list[SupplierAggregate]:
    """
    Group records by counterparty.  The result does not depend on input
    order (beyond float summation) and is sorted by footprint, largest
    first, then by name.
    """
    groups: dict[str, SupplierAggregate] = {}
    for record in records:
        key = supplier_key(record)
        agg = groups.get(key)
        if agg is None:
            agg = groups[key] = SupplierAggregate(name=key)
        agg.spend += record.amount
        agg.co2 += record.footprint

    for agg in groups.values():
        agg.priority = priority_for(agg.co2)

    return sorted(groups.values(), key=lambda a: (-a.co2, a.name))
