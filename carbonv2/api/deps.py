"""
CarbonV2 API — Shared Dependencies

FastAPI dependency injection for the engine, the narrative service,
DB sessions and pagination.
"""

from fastapi import Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..engine.service import CarbonEngine
from ..narrative.service import NarrativeService


async def get_db(request: Request) -> AsyncSession:
    """Yield a database session from the pool."""
    async with request.app.state.db_session() as session:
        yield session


def get_engine(request: Request) -> CarbonEngine:
    return request.app.state.carbon_engine


def get_narrative(request: Request) -> NarrativeService:
    return request.app.state.narrative


class Pagination:
    """Standard pagination parameters."""
    def __init__(
        self,
        limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    ):
        self.limit = limit
