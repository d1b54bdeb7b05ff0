"""
POST /tenants/{tenant_id}/entries/{entry_id}/compute-emission
GET  /tenants/{tenant_id}/emissions/summary
GET  /tenants/{tenant_id}/emissions
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from ...engine.principal import Principal
from ...engine.service import CarbonEngine
from ..auth import get_principal
from ..deps import Pagination, get_engine
from ..schemas import ComputedEmissionResponse, EmissionResponse, EmissionSummaryResponse

router = APIRouter()


@router.post(
    "/tenants/{tenant_id}/entries/{entry_id}/compute-emission",
    response_model=ComputedEmissionResponse,
    status_code=201,
)
async def compute_emission(
    tenant_id: int,
    entry_id: int,
    principal: Principal = Depends(get_principal),
    engine: CarbonEngine = Depends(get_engine),
):
    """Classify one entry and append an emission row."""
    computed = await engine.compute_emission(principal, tenant_id, entry_id)
    return ComputedEmissionResponse(**asdict(computed))


@router.get("/tenants/{tenant_id}/emissions/summary", response_model=EmissionSummaryResponse)
async def emission_summary(
    tenant_id: int,
    principal: Principal = Depends(get_principal),
    engine: CarbonEngine = Depends(get_engine),
):
    summary = await engine.summarize_emissions(principal, tenant_id)
    return EmissionSummaryResponse(**asdict(summary))


@router.get("/tenants/{tenant_id}/emissions", response_model=list[EmissionResponse])
async def list_emissions(
    tenant_id: int,
    page: Pagination = Depends(),
    principal: Principal = Depends(get_principal),
    engine: CarbonEngine = Depends(get_engine),
):
    return await engine.list_emissions(principal, tenant_id, page.limit)
