"""
CarbonV2 — Emission Rule Table + Calculator
============================================
Maps a free-text entry (category + type) to a coarse spend-based emission
factor and a GHG Protocol scope, then converts a monetary amount into
tonnes of CO₂-equivalent.

Factors are kg CO₂e per unit of currency.  Rules are evaluated in table
order and the first match wins; the fallback row guarantees that every
input classifies.

Usage:
    rule = classify("carburant", "fuel")          # EmissionRule(0.5, "1")
    tco2e = compute(1000, rule.factor_kg_per_unit) # 0.5
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional


# ─────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────

SCOPES = ("1", "2", "3")

KG_PER_TONNE = 1000.0


@dataclass(frozen=True)
class EmissionRule:
    """One row of the rule table."""
    name: str
    patterns: tuple[str, ...]
    factor_kg_per_unit: float
    scope: str


# Order matters: first match wins even if a later row would also match.
RULE_TABLE: tuple[EmissionRule, ...] = (
    EmissionRule("air_travel", ("avion", "flight"), 0.6, "3"),
    EmissionRule("rail_travel", ("train",), 0.1, "3"),
    EmissionRule("electricity", ("élec", "electric", "energy"), 0.3, "2"),
    EmissionRule("fuel", ("fuel", "carburant"), 0.5, "1"),
)

FALLBACK_RULE = EmissionRule("generic_spend", (), 0.25, "3")


# ─────────────────────────────────────────────
# Classification
# ─────────────────────────────────────────────

def _normalise(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def classify(category: Optional[str], entry_type: Optional[str]) -> EmissionRule:
    """
    Return the first rule whose pattern appears in the category or the type.

    Matching is case-insensitive substring matching on the trimmed inputs.
    Never fails: unmatched input gets FALLBACK_RULE.
    """
    haystacks = (_normalise(category), _normalise(entry_type))
    for rule in RULE_TABLE:
        for pattern in rule.patterns:
            if any(pattern in h for h in haystacks):
                return rule
    return FALLBACK_RULE


def compute(amount: float, factor_kg_per_unit: float) -> float:
    """Spend × factor (kg) converted to tonnes CO₂e."""
    return float(amount) * factor_kg_per_unit / KG_PER_TONNE


@dataclass(frozen=True)
class EmissionEstimate:
    scope: str
    tco2e: float
    factor_kg_per_unit: float
    rule: str


def estimate(amount: float, category: Optional[str], entry_type: Optional[str]) -> EmissionEstimate:
    """Classify then compute in one step."""
    amount = float(amount)
    if math.isnan(amount) or math.isinf(amount):
        raise ValueError(f"amount must be finite, got {amount!r}")
    rule = classify(category, entry_type)
    return EmissionEstimate(
        scope=rule.scope,
        tco2e=compute(amount, rule.factor_kg_per_unit),
        factor_kg_per_unit=rule.factor_kg_per_unit,
        rule=rule.name,
    )
