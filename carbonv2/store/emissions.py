"""
CarbonV2 — Emission Store Adapter

Append-only writes of computed emissions and the per-tenant aggregate
reads behind the emission summary.

Several rows may reference one entry (every recomputation appends).  The
summary totals only count the latest row per entry, i.e. the highest id;
the emission count reports every stored row.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import select, text

from .models import Emission, Entry
from .session import store_call

logger = logging.getLogger("carbonv2.store")


@dataclass
class ScopeTotals:
    """Raw aggregate read for one tenant, taken from a single snapshot."""
    by_scope: dict[str, float] = field(default_factory=dict)
    entries_count: int = 0
    emissions_count: int = 0


class EmissionStore:
    """Async database operations for emission rows."""

    def __init__(self, session_factory, timeout: float = 5.0) -> None:
        self._session_factory = session_factory
        self._timeout = timeout

    # ── Write ────────────────────────────────────────────────────────────

    async def insert_emission(
        self,
        entry: Entry,
        scope: str,
        tco2e: float,
        methodology_version: str,
    ) -> Emission:
        """Append one emission row for an entry. Returns the stored row."""
        async def _write() -> Emission:
            async with self._session_factory() as session:
                async with session.begin():
                    row = Emission(
                        entry_id=entry.id,
                        tenant_id=entry.tenant_id,
                        scope=scope,
                        tco2e=tco2e,
                        methodology_version=methodology_version,
                        computed_at=datetime.now(timezone.utc),
                    )
                    session.add(row)
                    await session.flush()
                    return row

        row = await store_call(_write(), self._timeout, "insert emission")
        logger.info(
            "Emission %d stored — entry=%d tenant=%d scope=%s tco2e=%.6f",
            row.id, row.entry_id, row.tenant_id, row.scope, row.tco2e,
        )
        return row

    # ── Read ─────────────────────────────────────────────────────────────

    async def scope_totals(self, tenant_id: int) -> ScopeTotals:
        """
        Grouped sum by scope plus entry/emission counts, all read inside one
        transaction.  On PostgreSQL the transaction runs at REPEATABLE READ
        so the three statements see the same snapshot.
        """
        async def _query() -> ScopeTotals:
            totals = ScopeTotals()
            async with self._session_factory() as session:
                async with session.begin():
                    if session.bind.dialect.name == "postgresql":
                        await session.execute(text("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ"))

                    result = await session.execute(text("""
                        SELECT e.scope, COALESCE(SUM(e.tco2e), 0) AS total
                        FROM emissions e
                        WHERE e.tenant_id = :tenant_id
                          AND e.id = (
                              SELECT MAX(latest.id) FROM emissions latest
                              WHERE latest.tenant_id = e.tenant_id
                                AND latest.entry_id = e.entry_id
                          )
                        GROUP BY e.scope
                    """), {"tenant_id": tenant_id})
                    for row in result.fetchall():
                        totals.by_scope[str(row.scope)] = float(row.total or 0)

                    entries = await session.execute(
                        text("SELECT COUNT(*) FROM entries WHERE tenant_id = :tenant_id"),
                        {"tenant_id": tenant_id},
                    )
                    totals.entries_count = entries.scalar_one()

                    emissions = await session.execute(
                        text("SELECT COUNT(*) FROM emissions WHERE tenant_id = :tenant_id"),
                        {"tenant_id": tenant_id},
                    )
                    totals.emissions_count = emissions.scalar_one()
            return totals

        return await store_call(_query(), self._timeout, "summarize emissions")

    async def list_emissions(self, tenant_id: int, limit: int = 100) -> list[Emission]:
        """All stored rows, most recently computed first."""
        async def _query() -> list[Emission]:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Emission)
                    .where(Emission.tenant_id == tenant_id)
                    .order_by(Emission.computed_at.desc(), Emission.id.desc())
                    .limit(limit)
                )
                return list(result.scalars().all())

        return await store_call(_query(), self._timeout, "list emissions")
