"""
CarbonV2 — Data Model
======================
SQLAlchemy ORM models for the multi-tenant emission store.

Tables:
  tenants, entries, emissions

Designed for PostgreSQL; the same models run on SQLite for local tests.
"""

from __future__ import annotations

from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    BigInteger, Integer, String, Numeric, Float, Date, DateTime,
    ForeignKey, Index, CheckConstraint, JSON, func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..engine.entries import AMOUNT_PRECISION, AMOUNT_SCALE


# SQLite only autoincrements INTEGER PRIMARY KEY
PK = BigInteger().with_variant(Integer, "sqlite")


# ─────────────────────────────────────────────
# Base
# ─────────────────────────────────────────────

class Base(DeclarativeBase):
    pass


# ─────────────────────────────────────────────
# Models
# ─────────────────────────────────────────────

class Tenant(Base):
    """An isolated customer organisation."""
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    slug: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    plan: Mapped[str] = mapped_column(String(32), server_default="starter")
    status: Mapped[str] = mapped_column(String(32), server_default="active")
    feature_flags: Mapped[Optional[dict]] = mapped_column(
        JSON, nullable=True, comment="Free-form flag bag (boundary only)",
    )
    metadata_json: Mapped[Optional[dict]] = mapped_column(
        "metadata", JSON, nullable=True, comment="Free-form tenant metadata",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} name={self.name!r} plan={self.plan}>"


class Entry(Base):
    """
    One reported activity / spend line.
    Immutable once created; always belongs to exactly one tenant.
    """
    __tablename__ = "entries"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(128), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(AMOUNT_PRECISION, AMOUNT_SCALE), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(
        String(256), nullable=True, comment="manual / csv / document / counterparty name",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_entries_tenant_date", "tenant_id", "date"),
        CheckConstraint("amount >= 0", name="ck_entries_amount_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Entry id={self.id} tenant={self.tenant_id} type={self.type!r} amount={self.amount}>"


class Emission(Base):
    """
    Computed footprint for one entry.  Append-only: recomputing an entry
    adds a row, the highest id per entry is the authoritative one.
    """
    __tablename__ = "emissions"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    entry_id: Mapped[int] = mapped_column(ForeignKey("entries.id"), nullable=False)
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"), nullable=False,
        comment="Denormalised from entries.tenant_id for query locality",
    )
    scope: Mapped[str] = mapped_column(String(1), nullable=False)
    tco2e: Mapped[float] = mapped_column(Float, nullable=False)
    methodology_version: Mapped[str] = mapped_column(String(32), nullable=False)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_emissions_tenant_computed", "tenant_id", "computed_at"),
        Index("ix_emissions_tenant_entry", "tenant_id", "entry_id"),
        CheckConstraint("scope IN ('1', '2', '3')", name="ck_emissions_scope"),
        CheckConstraint("tco2e >= 0", name="ck_emissions_tco2e_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Emission id={self.id} entry={self.entry_id} scope={self.scope} tco2e={self.tco2e}>"
