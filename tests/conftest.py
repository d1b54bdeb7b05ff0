"""Shared fixtures: temporary SQLite store, seeded tenants, principals."""
import pytest

from carbonv2.config import Settings
from carbonv2.engine.principal import Principal
from carbonv2.engine.service import CarbonEngine
from carbonv2.store.emissions import EmissionStore
from carbonv2.store.entries import EntryStore
from carbonv2.store.models import Tenant
from carbonv2.store.session import create_engine_from_settings, create_tables, make_session_factory

TENANT_A = 1
TENANT_B = 2


@pytest.fixture
def settings(tmp_path):
    """Test settings on a throwaway SQLite file, narrative disabled."""
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'carbon.db'}",
        JWT_SECRET="test-secret",
        MISTRAL_API_KEY=None,
        MISTRAL_AGENT_ID=None,
        LOG_LEVEL="WARNING",
    )


async def seed_tenants(session_factory):
    async with session_factory() as session:
        async with session.begin():
            session.add_all([
                Tenant(id=TENANT_A, name="Acme Corp", slug="acme", plan="pro", status="active"),
                Tenant(id=TENANT_B, name="Globex", slug="globex", plan="starter", status="active"),
            ])


@pytest.fixture
async def session_factory(settings):
    """Session factory over a fresh schema with two tenants."""
    engine = create_engine_from_settings(settings)
    await create_tables(engine)
    factory = make_session_factory(engine)
    await seed_tenants(factory)
    yield factory
    await engine.dispose()


@pytest.fixture
def entry_store(session_factory, settings):
    return EntryStore(session_factory, timeout=settings.STORE_TIMEOUT_SECONDS)


@pytest.fixture
def emission_store(session_factory, settings):
    return EmissionStore(session_factory, timeout=settings.STORE_TIMEOUT_SECONDS)


@pytest.fixture
def carbon_engine(entry_store, emission_store, settings):
    return CarbonEngine(entry_store, emission_store, settings)


@pytest.fixture
def principal_a():
    return Principal(tenant_id=TENANT_A, user_id=10, role="admin")


@pytest.fixture
def principal_b():
    return Principal(tenant_id=TENANT_B, user_id=20, role="member")
