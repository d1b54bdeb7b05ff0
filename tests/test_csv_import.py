"""Tests for CSV parsing and the transactional bulk import."""
from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from carbonv2.engine.entries import NewEntry, parse_date
from carbonv2.engine.errors import AuthzError, StoreError, ValidationError
from carbonv2.ingestion.csv_import import parse_csv

from conftest import TENANT_A

HEADER = "type,amount,currency,date,category,source\n"

FIVE_ROWS = HEADER + (
    "fuel,1000,EUR,2024-01-05,carburant,Total\n"
    "travel,500,EUR,2024-01-06,avion,Air France\n"
    "travel,abc,EUR,2024-01-07,train,SNCF\n"
    "utility,200,EUR,2024-01-08,électricité,EDF\n"
    "purchase,80,EUR,2024-01-09,office,Staples\n"
)


class TestParseCsv:
    def test_bad_row_skipped(self):
        """A non-numeric amount skips only that row."""
        parsed = parse_csv(FIVE_ROWS)
        assert len(parsed.drafts) == 4
        assert parsed.skipped == 1
        assert parsed.data_rows == 5

    def test_short_rows_skipped(self):
        """Rows with fewer than four columns are counted as skipped."""
        parsed = parse_csv(HEADER + "fuel,10,EUR\nfuel,10,EUR,2024-01-01\n")
        assert len(parsed.drafts) == 1
        assert parsed.skipped == 1
        assert parsed.drafts[0].category is None

    def test_bytes_with_bom(self):
        """UTF-8 uploads with a BOM decode cleanly."""
        parsed = parse_csv(("\ufeff" + FIVE_ROWS).encode("utf-8"))
        assert len(parsed.drafts) == 4

    def test_header_only_rejected(self):
        """A file without data rows is a validation error."""
        with pytest.raises(ValidationError):
            parse_csv(HEADER)

    def test_non_utf8_rejected(self):
        """Undecodable bytes are a validation error."""
        with pytest.raises(ValidationError):
            parse_csv(b"\xff\xfe\x00bad")


class TestImport:
    async def test_four_of_five_inserted(self, carbon_engine, principal_a):
        """Four valid rows land and show up in the entry listing."""
        result = await carbon_engine.import_csv(principal_a, TENANT_A, FIVE_ROWS.encode())
        assert result.inserted == 4
        assert result.skipped == 1

        entries = await carbon_engine.list_entries(principal_a, TENANT_A)
        assert len(entries) == 4
        assert {e.source for e in entries} == {"Total", "Air France", "EDF", "Staples"}

    async def test_wrong_tenant_rejected(self, carbon_engine, principal_b):
        """Importing into another tenant is forbidden."""
        with pytest.raises(AuthzError):
            await carbon_engine.import_csv(principal_b, TENANT_A, FIVE_ROWS)

    async def test_failed_row_rolled_back_alone(self, entry_store):
        """A row rejected by the store is skipped; the batch still commits."""
        good = NewEntry("fuel", Decimal("10"), "EUR", parse_date("2024-01-01"))
        bad = NewEntry("fuel", Decimal("-5"), "EUR", parse_date("2024-01-01"))
        result = await entry_store.insert_many(TENANT_A, [good, bad, good])
        assert result.inserted == 2
        assert result.failed == 1
        assert await entry_store.count_entries(TENANT_A) == 2

    async def test_commit_failure_inserts_nothing(self, carbon_engine, principal_a, entry_store):
        """If the batch cannot commit, nothing is reported or stored."""
        def fail_outer_commit(session):
            if not session.in_nested_transaction():
                raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        event.listen(Session, "before_commit", fail_outer_commit)
        try:
            with pytest.raises(StoreError):
                await carbon_engine.import_csv(principal_a, TENANT_A, FIVE_ROWS)
        finally:
            event.remove(Session, "before_commit", fail_outer_commit)

        assert await entry_store.count_entries(TENANT_A) == 0
