"""
CarbonV2 API — Request / Response Schemas

Pydantic models for the API contract.  Request bodies stay loosely typed:
entry validation is done by the engine so malformed input maps to a 400
with a single error format.
"""

from datetime import date, datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, Field


# ── Entries ──────────────────────────────────────────────────────────────

class EntryCreate(BaseModel):
    type: Optional[str] = None
    amount: Union[float, str, None] = None
    currency: Optional[str] = None
    date: Optional[str] = None
    category: Optional[str] = None
    source: Optional[str] = None


class DocumentEntryCreate(BaseModel):
    """Structured fields produced by document text extraction."""
    extraction: dict[str, Any] = Field(default_factory=dict)


class EntryCreatedResponse(BaseModel):
    id: int


class EntryResponse(BaseModel):
    id: int
    tenant_id: int
    type: str
    amount: float
    currency: str
    date: date
    category: Optional[str] = None
    source: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ImportResponse(BaseModel):
    inserted: int
    skipped: int


# ── Emissions ────────────────────────────────────────────────────────────

class ComputedEmissionResponse(BaseModel):
    entry_id: int
    emission_id: int
    scope: str
    tco2e: float
    methodology_version: str


class EmissionResponse(BaseModel):
    id: int
    entry_id: int
    scope: str
    tco2e: float
    methodology_version: str
    computed_at: datetime

    model_config = {"from_attributes": True}


class EmissionSummaryResponse(BaseModel):
    tenant_id: int
    total_tco2e: float
    by_scope: dict[str, float]
    entries_count: int
    emissions_count: int


# ── Analytics ────────────────────────────────────────────────────────────

class RecordSnapshotResponse(BaseModel):
    reference: str
    supplier: str
    amount: float
    co2: float
    rule_scope: Optional[str] = None


class SupplierResponse(BaseModel):
    name: str
    spend: float
    co2: float
    priority: str
    recommended_step: str


class FactsMetricsResponse(BaseModel):
    total_spend: float
    total_co2: float
    record_count: int
    avg_co2_per_unit: float


class AnalyticsFactsResponse(BaseModel):
    tenant_id: int
    tenant_name: str
    plan: str
    record_count: int
    total_spend: float
    total_co2: float
    avg_co2_per_unit: float
    latest_records: list[RecordSnapshotResponse]
    scopes: dict[str, float]
    scope_method: str
    suppliers: list[SupplierResponse]
    metrics: FactsMetricsResponse


class AnalyticsInsightsResponse(BaseModel):
    narrative: str
    key_findings: list[str]
    recommendations: list[str]
    facts: AnalyticsFactsResponse


class SupplierInsightsResponse(BaseModel):
    narrative: str
    suppliers: list[SupplierResponse]


class ChatRequest(BaseModel):
    prompt: str = ""


class ChatResponse(BaseModel):
    message: str


class ReportResponse(BaseModel):
    narrative: str
    summary: EmissionSummaryResponse


class AIStatusResponse(BaseModel):
    ready: bool
