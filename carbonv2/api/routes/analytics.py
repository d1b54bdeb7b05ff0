"""
GET  /tenants/{tenant_id}/analytics/facts
GET  /tenants/{tenant_id}/suppliers
GET  /tenants/{tenant_id}/analytics/insights
GET  /tenants/{tenant_id}/suppliers/insights
POST /tenants/{tenant_id}/chat
POST /tenants/{tenant_id}/report

Narrative endpoints answer 503 when the agent is unavailable; the
analytics and supplier variants still carry their structured facts.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...engine.principal import Principal
from ...engine.service import CarbonEngine
from ...narrative.service import NarrativeService
from ..auth import get_principal
from ..deps import get_engine, get_narrative
from ..schemas import (
    AnalyticsFactsResponse,
    AnalyticsInsightsResponse,
    ChatRequest,
    ChatResponse,
    ReportResponse,
    SupplierInsightsResponse,
    SupplierResponse,
)

router = APIRouter()


@router.get("/tenants/{tenant_id}/analytics/facts", response_model=AnalyticsFactsResponse)
async def analytics_facts(
    tenant_id: int,
    window: Optional[int] = Query(None, ge=1, le=200, description="Entries to analyse"),
    principal: Principal = Depends(get_principal),
    engine: CarbonEngine = Depends(get_engine),
):
    facts = await engine.build_analytics_facts(principal, tenant_id, window)
    return facts.to_dict()


@router.get("/tenants/{tenant_id}/suppliers", response_model=list[SupplierResponse])
async def suppliers(
    tenant_id: int,
    principal: Principal = Depends(get_principal),
    engine: CarbonEngine = Depends(get_engine),
):
    groups = await engine.group_suppliers(principal, tenant_id)
    return [g.to_dict() for g in groups]


@router.get("/tenants/{tenant_id}/analytics/insights", response_model=AnalyticsInsightsResponse)
async def analytics_insights(
    tenant_id: int,
    principal: Principal = Depends(get_principal),
    narrative: NarrativeService = Depends(get_narrative),
):
    insights = await narrative.generate_analytics(principal, tenant_id)
    return {
        "narrative": insights.narrative,
        "key_findings": insights.key_findings,
        "recommendations": insights.recommendations,
        "facts": insights.facts.to_dict(),
    }


@router.get("/tenants/{tenant_id}/suppliers/insights", response_model=SupplierInsightsResponse)
async def supplier_insights(
    tenant_id: int,
    principal: Principal = Depends(get_principal),
    narrative: NarrativeService = Depends(get_narrative),
):
    insights = await narrative.generate_supplier_insights(principal, tenant_id)
    return {
        "narrative": insights.narrative,
        "suppliers": [s.to_dict() for s in insights.suppliers],
    }


@router.post("/tenants/{tenant_id}/chat", response_model=ChatResponse)
async def chat(
    tenant_id: int,
    body: ChatRequest,
    principal: Principal = Depends(get_principal),
    narrative: NarrativeService = Depends(get_narrative),
):
    reply = await narrative.chat_with_context(principal, tenant_id, body.prompt)
    return ChatResponse(message=reply.message)


@router.post("/tenants/{tenant_id}/report", response_model=ReportResponse)
async def report(
    tenant_id: int,
    principal: Principal = Depends(get_principal),
    narrative: NarrativeService = Depends(get_narrative),
):
    result = await narrative.generate_report(principal, tenant_id)
    return {"narrative": result.narrative, "summary": result.summary}
