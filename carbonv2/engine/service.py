"""
CarbonV2 — Emission Engine Service
===================================
Core operations behind the API.  Each one takes the authenticated
Principal by value and runs the tenant gate before touching the store.

Operations:
  create_entry / import_document / import_csv / list_entries
  compute_emission      entry → rule table → append emission row
  summarize_emissions   rule-tagged scope totals (persisted rows)
  list_emissions        stored rows, most recently computed first
  build_analytics_facts derived facts over a bounded entry window
  group_suppliers       counterparty grouping over the same window
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from ..config import Settings
from ..ingestion.csv_import import ImportResult, parse_csv
from ..store.emissions import EmissionStore
from ..store.entries import EntryStore
from .aggregation import EmissionSummary, footprint_records, summarize_scope_totals
from .entries import NewEntry, entry_from_extraction
from .errors import StoreError
from .facts import AnalyticsFacts, build_analytics_facts
from .principal import Principal, authorize_tenant
from .rules import estimate
from .suppliers import SupplierAggregate, group_suppliers

logger = logging.getLogger("carbonv2.engine")

MAX_LIST_LIMIT = 1000


@dataclass(frozen=True)
class ComputedEmission:
    entry_id: int
    emission_id: int
    scope: str
    tco2e: float
    methodology_version: str


def _bounded(value: Optional[int], default: int, ceiling: int) -> int:
    if value is None:
        return default
    return max(1, min(int(value), ceiling))


class CarbonEngine:
    """Request-scoped operations over the entry and emission stores."""

    def __init__(
        self,
        entries: EntryStore,
        emissions: EmissionStore,
        settings: Settings,
    ) -> None:
        self.entries = entries
        self.emissions = emissions
        self.settings = settings

    # ── Entries ──────────────────────────────────────────────────────────

    async def create_entry(self, principal: Principal, tenant_id: int, draft: NewEntry) -> int:
        tenant_id = authorize_tenant(principal, tenant_id)
        return await self.entries.insert_entry(tenant_id, draft)

    async def import_document(
        self, principal: Principal, tenant_id: int, fields: Mapping[str, Any]
    ) -> int:
        """Create one entry from document extraction fields."""
        tenant_id = authorize_tenant(principal, tenant_id)
        draft = entry_from_extraction(fields)
        return await self.entries.insert_entry(tenant_id, draft)

    async def list_entries(self, principal: Principal, tenant_id: int, limit: Optional[int] = None):
        tenant_id = authorize_tenant(principal, tenant_id)
        return await self.entries.list_entries(tenant_id, _bounded(limit, 100, MAX_LIST_LIMIT))

    async def import_csv(
        self, principal: Principal, tenant_id: int, content: Union[bytes, str]
    ) -> ImportResult:
        """
        Bulk import in one transaction.  Unparseable rows are skipped and
        counted; a commit failure raises StoreError and nothing is inserted.
        """
        tenant_id = authorize_tenant(principal, tenant_id)
        parsed = parse_csv(content)

        try:
            bulk = await self.entries.insert_many(
                tenant_id, parsed.drafts, timeout=self.settings.IMPORT_TIMEOUT_SECONDS,
            )
        except StoreError:
            logger.error("CSV import for tenant %d rolled back — %d rows lost",
                         tenant_id, len(parsed.drafts))
            raise

        result = ImportResult(inserted=bulk.inserted, skipped=parsed.skipped + bulk.failed)
        logger.info("CSV import tenant=%d inserted=%d skipped=%d",
                    tenant_id, result.inserted, result.skipped)
        return result

    # ── Emissions ────────────────────────────────────────────────────────

    async def compute_emission(
        self, principal: Principal, tenant_id: int, entry_id: int
    ) -> ComputedEmission:
        tenant_id = authorize_tenant(principal, tenant_id)
        entry = await self.entries.get_entry(tenant_id, entry_id)

        est = estimate(entry.amount, entry.category, entry.type)
        version = self.settings.METHODOLOGY_VERSION
        row = await self.emissions.insert_emission(entry, est.scope, est.tco2e, version)

        logger.debug("Entry %d classified by rule %s (%.2f kg/unit)",
                     entry.id, est.rule, est.factor_kg_per_unit)
        return ComputedEmission(
            entry_id=entry.id,
            emission_id=row.id,
            scope=row.scope,
            tco2e=row.tco2e,
            methodology_version=version,
        )

    async def summarize_emissions(self, principal: Principal, tenant_id: int) -> EmissionSummary:
        tenant_id = authorize_tenant(principal, tenant_id)
        totals = await self.emissions.scope_totals(tenant_id)
        return summarize_scope_totals(
            tenant_id, totals.by_scope, totals.entries_count, totals.emissions_count,
        )

    async def list_emissions(self, principal: Principal, tenant_id: int, limit: Optional[int] = None):
        tenant_id = authorize_tenant(principal, tenant_id)
        return await self.emissions.list_emissions(tenant_id, _bounded(limit, 100, MAX_LIST_LIMIT))

    # ── Analytics ────────────────────────────────────────────────────────

    async def build_analytics_facts(
        self, principal: Principal, tenant_id: int, window: Optional[int] = None
    ) -> AnalyticsFacts:
        tenant_id = authorize_tenant(principal, tenant_id)
        ceiling = self.settings.ANALYTICS_WINDOW
        window = _bounded(window, ceiling, ceiling)

        tenant = await self.entries.get_tenant(tenant_id)
        entries = await self.entries.recent_entries(tenant_id, window)
        return build_analytics_facts(
            tenant_id=tenant.id,
            tenant_name=tenant.name,
            plan=tenant.plan,
            records=footprint_records(entries),
            latest_n=self.settings.LATEST_RECORDS,
        )

    async def group_suppliers(
        self, principal: Principal, tenant_id: int, window: Optional[int] = None
    ) -> list[SupplierAggregate]:
        tenant_id = authorize_tenant(principal, tenant_id)
        ceiling = self.settings.ANALYTICS_WINDOW
        entries = await self.entries.recent_entries(tenant_id, _bounded(window, ceiling, ceiling))
        return group_suppliers(footprint_records(entries))
