"""
CarbonV2 — Aggregation Engine
==============================
Two aggregation shapes:

  1. Persisted-emission summary — rule-tagged scope totals read back from
     the emissions table (see store/emissions.py for the query).
  2. Derived facts — totals over a bounded window of spend records, each
     carrying a footprint estimate, with a fixed-ratio scope split.

The fixed-ratio split is a presentation heuristic.  It is reported under
its own key and never mixed with the rule-tagged by_scope totals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from .rules import SCOPES, estimate


# ─────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────

FIXED_SCOPE_RATIOS = {
    "scope1": 0.25,
    "scope2": 0.35,
    "scope3": 0.40,
}

SCOPE_METHOD_FIXED_RATIO = "fixed_ratio"


# ─────────────────────────────────────────────
# Data classes
# ─────────────────────────────────────────────

@dataclass
class EmissionSummary:
    """Rule-tagged totals for one tenant."""
    tenant_id: int
    total_tco2e: float = 0.0
    by_scope: dict[str, float] = field(default_factory=dict)
    entries_count: int = 0
    emissions_count: int = 0


@dataclass(frozen=True)
class FootprintRecord:
    """Spend line with a footprint estimate, the input of derived facts."""
    reference: str
    counterparty: str
    amount: float
    footprint: float
    secondary_key: str = ""
    scope: Optional[str] = None


@dataclass
class DerivedTotals:
    record_count: int = 0
    total_spend: float = 0.0
    total_footprint: float = 0.0
    avg_footprint_per_unit: float = 0.0
    scopes: dict[str, float] = field(default_factory=dict)
    scope_method: str = SCOPE_METHOD_FIXED_RATIO


# ─────────────────────────────────────────────
# Persisted-emission summary
# ─────────────────────────────────────────────

def summarize_scope_totals(
    tenant_id: int,
    by_scope: dict[str, float],
    entries_count: int,
    emissions_count: int,
) -> EmissionSummary:
    """Build the summary; the total is the sum of the per-scope totals."""
    clean = {scope: float(value) for scope, value in by_scope.items() if scope in SCOPES}
    return EmissionSummary(
        tenant_id=tenant_id,
        total_tco2e=sum(clean.values()),
        by_scope=clean,
        entries_count=int(entries_count),
        emissions_count=int(emissions_count),
    )


# ─────────────────────────────────────────────
# Derived facts
# ─────────────────────────────────────────────

def safe_divide(a: float, b: float) -> float:
    if b == 0:
        return 0.0
    return a / b


def fixed_ratio_split(total_footprint: float) -> dict[str, float]:
    return {key: total_footprint * ratio for key, ratio in FIXED_SCOPE_RATIOS.items()}


def aggregate_records(records: Sequence[FootprintRecord]) -> DerivedTotals:
    """Sum spend and footprint over the window and derive the fixed split."""
    total_spend = 0.0
    total_footprint = 0.0
    for record in records:
        total_spend += record.amount
        total_footprint += record.footprint

    return DerivedTotals(
        record_count=len(records),
        total_spend=total_spend,
        total_footprint=total_footprint,
        avg_footprint_per_unit=safe_divide(total_footprint, total_spend),
        scopes=fixed_ratio_split(total_footprint),
    )


def footprint_record(entry) -> FootprintRecord:
    """
    Project a stored entry onto a FootprintRecord.

    The footprint is the rule-table estimate in tCO₂e.  The counterparty is
    the entry source, falling back to the category then the type.
    """
    amount = float(entry.amount)
    est = estimate(amount, entry.category, entry.type)
    return FootprintRecord(
        reference=f"entry-{entry.id}",
        counterparty=(entry.source or "").strip(),
        amount=amount,
        footprint=est.tco2e,
        secondary_key=(entry.category or entry.type or "").strip(),
        scope=est.scope,
    )


def footprint_records(entries: Iterable) -> list[FootprintRecord]:
    return [footprint_record(e) for e in entries]
