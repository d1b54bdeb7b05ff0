"""
CarbonV2 — REST API
====================
FastAPI application exposing the emission engine to tenant dashboards.
Every tenant route checks that the bearer token's tenant matches the
tenant in the path.

Endpoints (prefix /api):
  POST /tenants/{id}/entries
  POST /tenants/{id}/entries/document
  GET  /tenants/{id}/entries?limit=100
  POST /tenants/{id}/import                      (multipart `file`)
  POST /tenants/{id}/entries/{entry_id}/compute-emission
  GET  /tenants/{id}/emissions/summary
  GET  /tenants/{id}/emissions?limit=100
  GET  /tenants/{id}/analytics/facts
  GET  /tenants/{id}/suppliers
  GET  /tenants/{id}/analytics/insights
  GET  /tenants/{id}/suppliers/insights
  POST /tenants/{id}/chat
  POST /tenants/{id}/report
  GET  /health
  GET  /ai/status

Run:
  uvicorn carbonv2.api.app:app --port 8080
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import Settings, settings as default_settings
from ..engine.errors import CarbonError, StoreError, UpstreamError
from ..engine.service import CarbonEngine
from ..narrative.client import NarrativeClient
from ..narrative.service import NarrativeService
from ..store.emissions import EmissionStore
from ..store.entries import EntryStore
from ..store.session import create_engine_from_settings, create_tables, make_session_factory

logger = logging.getLogger("carbonv2.api")

DEFAULT_JWT_SECRET = "changeme-super-secret"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# ── Error mapping ────────────────────────────────────────────────────────

async def carbon_error_handler(request: Request, exc: CarbonError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    # Query details stay in the log
    return JSONResponse(status_code=exc.status_code, content={"error": "internal store error"})


async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    content = {"error": exc.message}
    if exc.partial:
        content.update(exc.partial)
    return JSONResponse(status_code=exc.status_code, content=content)


# ── Lifecycle ────────────────────────────────────────────────────────────

def _lifespan(settings: Settings, narrative_client: Optional[NarrativeClient]):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle — DB pool, stores, narrative client."""
        logger.info("CarbonV2 API starting (env=%s)...", settings.API_ENV)
        if settings.JWT_SECRET == DEFAULT_JWT_SECRET:
            logger.warning("JWT_SECRET is the built-in default — set it before deploying")

        engine = create_engine_from_settings(settings)
        await create_tables(engine)
        session_factory = make_session_factory(engine)
        app.state.db_engine = engine
        app.state.db_session = session_factory

        carbon_engine = CarbonEngine(
            EntryStore(session_factory, timeout=settings.STORE_TIMEOUT_SECONDS),
            EmissionStore(session_factory, timeout=settings.STORE_TIMEOUT_SECONDS),
            settings,
        )
        client = narrative_client or NarrativeClient.from_settings(settings)
        if client is None:
            logger.warning("MISTRAL_API_KEY / MISTRAL_AGENT_ID not set — narrative features disabled")
        app.state.carbon_engine = carbon_engine
        app.state.narrative = NarrativeService(carbon_engine, client)

        logger.info("CarbonV2 API ready — narrative=%s", "on" if client else "off")
        yield

        await app.state.narrative.close()
        await engine.dispose()
        logger.info("CarbonV2 API stopped")

    return lifespan


def create_app(
    settings: Optional[Settings] = None,
    narrative_client: Optional[NarrativeClient] = None,
) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(
        title="CarbonV2 — Emission Engine API",
        description=(
            "Multi-tenant spend-based emission estimates, scope summaries, "
            "supplier grouping and analytics facts for narrative generation."
        ),
        version="0.1.0",
        lifespan=_lifespan(settings, narrative_client),
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Most specific class wins
    app.add_exception_handler(CarbonError, carbon_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)

    from .routes import analytics, emissions, entries, health
    app.include_router(entries.router, prefix="/api", tags=["Entries"])
    app.include_router(emissions.router, prefix="/api", tags=["Emissions"])
    app.include_router(analytics.router, prefix="/api", tags=["Analytics"])
    app.include_router(health.router, tags=["Health"])

    return app


app = create_app()


def main():
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=default_settings.API_PORT)


if __name__ == "__main__":
    main()
