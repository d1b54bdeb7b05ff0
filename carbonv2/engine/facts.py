"""
CarbonV2 — Analytics Facts Builder
===================================
Assembles the structured, JSON-serialisable snapshot handed to the
narrative generator: tenant identity, headline metrics, fixed-ratio scope
split, the latest record snapshots and the supplier groups.

Facts are a read-time projection.  They are never stored.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Sequence

from .aggregation import (
    SCOPE_METHOD_FIXED_RATIO,
    DerivedTotals,
    FootprintRecord,
    aggregate_records,
)
from .suppliers import SupplierAggregate, group_suppliers


DEFAULT_LATEST_RECORDS = 10


@dataclass(frozen=True)
class RecordSnapshot:
    """One recent record.  `rule_scope` is the scope its matching rule assigns."""
    reference: str
    supplier: str
    amount: float
    co2: float
    rule_scope: Optional[str] = None


@dataclass(frozen=True)
class FactsMetrics:
    total_spend: float
    total_co2: float
    record_count: int
    avg_co2_per_unit: float


@dataclass
class AnalyticsFacts:
    tenant_id: int
    tenant_name: str
    plan: str
    record_count: int = 0
    total_spend: float = 0.0
    total_co2: float = 0.0
    avg_co2_per_unit: float = 0.0
    latest_records: list[RecordSnapshot] = field(default_factory=list)
    scopes: dict[str, float] = field(default_factory=dict)
    scope_method: str = SCOPE_METHOD_FIXED_RATIO
    suppliers: list[SupplierAggregate] = field(default_factory=list)

    @property
    def metrics(self) -> FactsMetrics:
        return FactsMetrics(
            total_spend=self.total_spend,
            total_co2=self.total_co2,
            record_count=self.record_count,
            avg_co2_per_unit=self.avg_co2_per_unit,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["metrics"] = asdict(self.metrics)
        return data

    def default_findings(self) -> list[str]:
        return [
            f"Total spend analysed: {self.total_spend:.2f}",
            f"Estimated total footprint: {self.total_co2:.2f} tCO2e",
        ]

    def default_recommendations(self) -> list[str]:
        return [
            "Prioritise a mitigation plan on the highest-emitting suppliers",
            "Set up monthly monitoring of scopes 1/2/3",
        ]


def build_analytics_facts(
    tenant_id: int,
    tenant_name: str,
    plan: str,
    records: Sequence[FootprintRecord],
    latest_n: int = DEFAULT_LATEST_RECORDS,
) -> AnalyticsFacts:
    """
    Build facts over `records`, which must already be ordered most recent
    first and bounded to the analytics window.
    """
    totals: DerivedTotals = aggregate_records(records)
    latest = [
        RecordSnapshot(
            reference=r.reference,
            supplier=r.counterparty or r.secondary_key,
            amount=r.amount,
            co2=r.footprint,
            rule_scope=r.scope,
        )
        for r in records[:latest_n]
    ]
    return AnalyticsFacts(
        tenant_id=tenant_id,
        tenant_name=tenant_name,
        plan=plan,
        record_count=totals.record_count,
        total_spend=totals.total_spend,
        total_co2=totals.total_footprint,
        avg_co2_per_unit=totals.avg_footprint_per_unit,
        latest_records=latest,
        scopes=totals.scopes,
        scope_method=totals.scope_method,
        suppliers=group_suppliers(records),
    )


def chat_snapshot(facts: AnalyticsFacts) -> dict[str, Any]:
    """Compact context for the chat assistant."""
    return {
        "tenant": facts.tenant_name,
        "plan": facts.plan,
        "metrics": asdict(facts.metrics),
        "scopes": dict(facts.scopes),
        "scope_method": facts.scope_method,
        "suppliers": [s.to_dict() for s in facts.suppliers],
    }
