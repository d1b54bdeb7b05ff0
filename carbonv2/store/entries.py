"""
CarbonV2 — Entry Store Adapter

Read/write contract for the entries and tenants tables.  Every query is
filtered by the tenant id taken from the authenticated principal, inside
the same statement that fetches the row.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ..engine.entries import NewEntry
from ..engine.errors import NotFoundError
from .models import Entry, Tenant
from .session import store_call

logger = logging.getLogger("carbonv2.store")


@dataclass
class BulkInsertResult:
    inserted: int = 0
    failed: int = 0


def _entry_row(tenant_id: int, draft: NewEntry, created_at: datetime) -> Entry:
    return Entry(
        tenant_id=tenant_id,
        type=draft.type,
        amount=draft.amount,
        currency=draft.currency,
        date=draft.date,
        category=draft.category,
        source=draft.source,
        created_at=created_at,
    )


class EntryStore:
    """Async database operations for entries and their owning tenant."""

    def __init__(self, session_factory, timeout: float = 5.0) -> None:
        self._session_factory = session_factory
        self._timeout = timeout

    # ── Read ─────────────────────────────────────────────────────────────

    async def get_entry(self, tenant_id: int, entry_id: int) -> Entry:
        """
        Fetch one entry owned by tenant_id.
        Absent and owned-by-another-tenant both raise NotFoundError.
        """
        async def _query() -> Optional[Entry]:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Entry).where(Entry.id == entry_id, Entry.tenant_id == tenant_id)
                )
                return result.scalars().first()

        entry = await store_call(_query(), self._timeout, "fetch entry")
        if entry is None:
            raise NotFoundError("entry not found")
        return entry

    async def list_entries(self, tenant_id: int, limit: int = 100) -> list[Entry]:
        """Most recent business date first, then most recently created."""
        async def _query() -> list[Entry]:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Entry)
                    .where(Entry.tenant_id == tenant_id)
                    .order_by(Entry.date.desc(), Entry.created_at.desc(), Entry.id.desc())
                    .limit(limit)
                )
                return list(result.scalars().all())

        return await store_call(_query(), self._timeout, "list entries")

    async def recent_entries(self, tenant_id: int, window: int) -> list[Entry]:
        """Bounded window of the most recently created entries."""
        async def _query() -> list[Entry]:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Entry)
                    .where(Entry.tenant_id == tenant_id)
                    .order_by(Entry.created_at.desc(), Entry.id.desc())
                    .limit(window)
                )
                return list(result.scalars().all())

        return await store_call(_query(), self._timeout, "load entry window")

    async def count_entries(self, tenant_id: int) -> int:
        async def _query() -> int:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(func.count(Entry.id)).where(Entry.tenant_id == tenant_id)
                )
                return result.scalar_one()

        return await store_call(_query(), self._timeout, "count entries")

    async def get_tenant(self, tenant_id: int) -> Tenant:
        async def _query() -> Optional[Tenant]:
            async with self._session_factory() as session:
                return await session.get(Tenant, tenant_id)

        tenant = await store_call(_query(), self._timeout, "fetch tenant")
        if tenant is None:
            raise NotFoundError("tenant not found")
        return tenant

    # ── Write ────────────────────────────────────────────────────────────

    async def insert_entry(self, tenant_id: int, draft: NewEntry) -> int:
        """Insert a single entry. Returns the new entry ID."""
        async def _write() -> int:
            async with self._session_factory() as session:
                async with session.begin():
                    row = _entry_row(tenant_id, draft, datetime.now(timezone.utc))
                    session.add(row)
                    await session.flush()
                    return row.id

        entry_id = await store_call(_write(), self._timeout, "insert entry")
        logger.info("Entry %d created for tenant %d", entry_id, tenant_id)
        return entry_id

    async def insert_many(
        self,
        tenant_id: int,
        drafts: Iterable[NewEntry],
        timeout: Optional[float] = None,
    ) -> BulkInsertResult:
        """
        Insert a batch in one transaction.

        Each row runs in its own SAVEPOINT: a failing row is rolled back
        and counted, the rest of the batch carries on.  The batch commits
        once; if that commit fails nothing is inserted and StoreError is
        raised by store_call.
        """
        async def _write() -> BulkInsertResult:
            result = BulkInsertResult()
            created_at = datetime.now(timezone.utc)
            async with self._session_factory() as session:
                async with session.begin():
                    for draft in drafts:
                        try:
                            async with session.begin_nested():
                                session.add(_entry_row(tenant_id, draft, created_at))
                        except SQLAlchemyError as e:
                            result.failed += 1
                            logger.warning("Bulk insert row skipped for tenant %d: %s",
                                           tenant_id, e.__class__.__name__)
                            continue
                        result.inserted += 1
            return result

        return await store_call(_write(), timeout or self._timeout, "bulk insert entries")
