"""POST/GET /tenants/{tenant_id}/entries, POST /tenants/{tenant_id}/import"""

from fastapi import APIRouter, Depends, File, UploadFile

from ...engine.entries import parse_entry
from ...engine.principal import Principal, authorize_tenant
from ...engine.service import CarbonEngine
from ..auth import get_principal
from ..deps import Pagination, get_engine
from ..schemas import (
    DocumentEntryCreate,
    EntryCreate,
    EntryCreatedResponse,
    EntryResponse,
    ImportResponse,
)

router = APIRouter()


@router.post("/tenants/{tenant_id}/entries", response_model=EntryCreatedResponse, status_code=201)
async def create_entry(
    tenant_id: int,
    body: EntryCreate,
    principal: Principal = Depends(get_principal),
    engine: CarbonEngine = Depends(get_engine),
):
    authorize_tenant(principal, tenant_id)
    draft = parse_entry(body.type, body.amount, body.currency, body.date, body.category, body.source)
    entry_id = await engine.create_entry(principal, tenant_id, draft)
    return EntryCreatedResponse(id=entry_id)


@router.post("/tenants/{tenant_id}/entries/document", response_model=EntryCreatedResponse, status_code=201)
async def create_entry_from_document(
    tenant_id: int,
    body: DocumentEntryCreate,
    principal: Principal = Depends(get_principal),
    engine: CarbonEngine = Depends(get_engine),
):
    """Entry from the structured fields of an extracted invoice."""
    entry_id = await engine.import_document(principal, tenant_id, body.extraction)
    return EntryCreatedResponse(id=entry_id)


@router.get("/tenants/{tenant_id}/entries", response_model=list[EntryResponse])
async def list_entries(
    tenant_id: int,
    page: Pagination = Depends(),
    principal: Principal = Depends(get_principal),
    engine: CarbonEngine = Depends(get_engine),
):
    return await engine.list_entries(principal, tenant_id, page.limit)


@router.post("/tenants/{tenant_id}/import", response_model=ImportResponse)
async def import_csv(
    tenant_id: int,
    file: UploadFile = File(..., description="CSV: type,amount,currency,date,category,source"),
    principal: Principal = Depends(get_principal),
    engine: CarbonEngine = Depends(get_engine),
):
    content = await file.read()
    result = await engine.import_csv(principal, tenant_id, content)
    return ImportResponse(inserted=result.inserted, skipped=result.skipped)
