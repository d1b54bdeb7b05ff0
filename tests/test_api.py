"""Tests for the HTTP surface."""
import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from carbonv2.api.app import create_app
from carbonv2.api.auth import create_access_token
from carbonv2.narrative.client import NarrativeClient
from carbonv2.store.session import create_engine_from_settings, create_tables, make_session_factory

from conftest import TENANT_A, TENANT_B, seed_tenants


async def prepare_database(settings):
    engine = create_engine_from_settings(settings)
    await create_tables(engine)
    await seed_tenants(make_session_factory(engine))
    await engine.dispose()


@pytest.fixture
def prepared_settings(settings):
    asyncio.run(prepare_database(settings))
    return settings


@pytest.fixture
def client(prepared_settings):
    """Test client with narrative disabled."""
    with TestClient(create_app(prepared_settings)) as test_client:
        yield test_client


def auth_headers(settings, tenant_id=TENANT_A, user_id=10, role="admin"):
    token = create_access_token({"tenant_id": tenant_id, "user_id": user_id, "role": role}, settings)
    return {"Authorization": f"Bearer {token}"}


def create_entry(client, headers, tenant_id=TENANT_A, **overrides):
    body = {"type": "fuel", "amount": 1000, "currency": "EUR", "date": "2024-03-01",
            "category": "carburant", "source": "Total"}
    body.update(overrides)
    response = client.post(f"/api/tenants/{tenant_id}/entries", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_health(client):
    """Health reports the database connection."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["db_connected"] is True


def test_ai_status_disabled(client):
    """Narrative is off without credentials."""
    assert client.get("/ai/status").json() == {"ready": False}


def test_missing_token(client):
    """Tenant routes require a bearer token."""
    response = client.get(f"/api/tenants/{TENANT_A}/entries")
    assert response.status_code == 401


def test_bad_token(client):
    """Malformed tokens are rejected."""
    response = client.get(
        f"/api/tenants/{TENANT_A}/entries", headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


def test_create_and_list_entries(client, prepared_settings):
    """Entries are created and listed for the caller's tenant."""
    headers = auth_headers(prepared_settings)
    entry_id = create_entry(client, headers)

    response = client.get(f"/api/tenants/{TENANT_A}/entries", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert [e["id"] for e in data] == [entry_id]
    assert data[0]["currency"] == "EUR"


def test_invalid_entry_is_400(client, prepared_settings):
    """Validation errors map to 400."""
    headers = auth_headers(prepared_settings)
    response = client.post(
        f"/api/tenants/{TENANT_A}/entries",
        json={"type": "fuel", "amount": "abc", "currency": "EUR", "date": "2024-03-01"},
        headers=headers,
    )
    assert response.status_code == 400
    assert "amount" in response.json()["error"]


def test_compute_emission(client, prepared_settings):
    """Computing a fuel entry returns 201 with scope 1."""
    headers = auth_headers(prepared_settings)
    entry_id = create_entry(client, headers)

    response = client.post(
        f"/api/tenants/{TENANT_A}/entries/{entry_id}/compute-emission", headers=headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["entry_id"] == entry_id
    assert data["scope"] == "1"
    assert data["tco2e"] == pytest.approx(0.5)

    summary = client.get(f"/api/tenants/{TENANT_A}/emissions/summary", headers=headers).json()
    assert summary["by_scope"] == {"1": pytest.approx(0.5)}
    assert summary["emissions_count"] == 1

    rows = client.get(f"/api/tenants/{TENANT_A}/emissions", headers=headers).json()
    assert rows[0]["id"] == data["emission_id"]


def test_tenant_mismatch_forbidden(client, prepared_settings):
    """A token for tenant A cannot address tenant B."""
    headers = auth_headers(prepared_settings)
    response = client.get(f"/api/tenants/{TENANT_B}/emissions/summary", headers=headers)
    assert response.status_code == 403


def test_cross_tenant_entry_not_found(client, prepared_settings):
    """Tenant B's entry id looks absent to tenant A."""
    headers_b = auth_headers(prepared_settings, tenant_id=TENANT_B, user_id=20)
    entry_b = create_entry(client, headers_b, tenant_id=TENANT_B)

    headers_a = auth_headers(prepared_settings)
    response = client.post(
        f"/api/tenants/{TENANT_A}/entries/{entry_b}/compute-emission", headers=headers_a,
    )
    assert response.status_code == 404


def test_csv_import(client, prepared_settings):
    """Multipart CSV import reports inserted and skipped rows."""
    headers = auth_headers(prepared_settings)
    csv_body = (
        "type,amount,currency,date,category,source\n"
        "fuel,100,EUR,2024-01-01,fuel,Total\n"
        "travel,oops,EUR,2024-01-02,avion,Air France\n"
        "travel,300,EUR,2024-01-03,train,SNCF\n"
    )
    response = client.post(
        f"/api/tenants/{TENANT_A}/import",
        files={"file": ("entries.csv", csv_body, "text/csv")},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json() == {"inserted": 2, "skipped": 1}


def test_empty_csv_is_400(client, prepared_settings):
    """A header-only file is rejected."""
    headers = auth_headers(prepared_settings)
    response = client.post(
        f"/api/tenants/{TENANT_A}/import",
        files={"file": ("entries.csv", "type,amount,currency,date\n", "text/csv")},
        headers=headers,
    )
    assert response.status_code == 400


def test_analytics_facts(client, prepared_settings):
    """Facts carry the fixed-ratio split under its own method label."""
    headers = auth_headers(prepared_settings)
    create_entry(client, headers)

    response = client.get(f"/api/tenants/{TENANT_A}/analytics/facts", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["tenant_name"] == "Acme Corp"
    assert data["scope_method"] == "fixed_ratio"
    assert data["scopes"]["scope1"] == pytest.approx(0.5 * 0.25)
    assert data["metrics"]["record_count"] == 1
    assert data["latest_records"][0]["rule_scope"] == "1"


def test_suppliers(client, prepared_settings):
    """Supplier groups are returned largest footprint first."""
    headers = auth_headers(prepared_settings)
    create_entry(client, headers, source="Total")
    create_entry(client, headers, source="Shell", amount=5000)

    data = client.get(f"/api/tenants/{TENANT_A}/suppliers", headers=headers).json()
    assert [s["name"] for s in data] == ["Shell", "Total"]


def test_insights_unavailable_still_returns_facts(client, prepared_settings):
    """503 without narrative, facts included."""
    headers = auth_headers(prepared_settings)
    response = client.get(f"/api/tenants/{TENANT_A}/analytics/insights", headers=headers)
    assert response.status_code == 503
    assert response.json()["facts"]["tenant_name"] == "Acme Corp"


def test_chat_empty_prompt_is_400(client, prepared_settings):
    """Empty chat prompts are validation errors."""
    headers = auth_headers(prepared_settings)
    response = client.post(f"/api/tenants/{TENANT_A}/chat", json={"prompt": ""}, headers=headers)
    assert response.status_code == 400


def test_insights_with_narrative(prepared_settings):
    """A configured agent produces the narrative."""
    def handler(request):
        return httpx.Response(200, json={"message": {"content": "All good"}})

    narrative = NarrativeClient("key", "agent", base_url="https://agent.test",
                                transport=httpx.MockTransport(handler))
    with TestClient(create_app(prepared_settings, narrative_client=narrative)) as client:
        headers = auth_headers(prepared_settings)
        assert client.get("/ai/status").json() == {"ready": True}

        response = client.get(f"/api/tenants/{TENANT_A}/analytics/insights", headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["narrative"] == "All good"
        assert data["facts"]["plan"] == "pro"


def test_document_entry(client, prepared_settings):
    """Extracted invoice fields become an entry sourced from the supplier."""
    headers = auth_headers(prepared_settings)
    response = client.post(
        f"/api/tenants/{TENANT_A}/entries/document",
        json={"extraction": {"total_amount": 420.0, "supplier": "SNCF",
                             "category": "train", "invoice_date": "2024-04-02"}},
        headers=headers,
    )
    assert response.status_code == 201

    entries = client.get(f"/api/tenants/{TENANT_A}/entries", headers=headers).json()
    assert entries[0]["source"] == "SNCF"
    assert entries[0]["type"] == "invoice"


def test_cross_tenant_bad_body_is_403(client, prepared_settings):
    """The tenant check runs before the body is validated."""
    headers = auth_headers(prepared_settings)
    response = client.post(
        f"/api/tenants/{TENANT_B}/entries",
        json={"type": "fuel", "amount": "abc", "currency": "EUR", "date": "2024-03-01"},
        headers=headers,
    )
    assert response.status_code == 403


@pytest.mark.parametrize("amount", ["1000000000000", "1000.456"])
def test_unstorable_amount_is_400(client, prepared_settings, amount):
    """Amounts the store cannot hold exactly are rejected before any write."""
    headers = auth_headers(prepared_settings)
    response = client.post(
        f"/api/tenants/{TENANT_A}/entries",
        json={"type": "fuel", "amount": amount, "currency": "EUR", "date": "2024-03-01"},
        headers=headers,
    )
    assert response.status_code == 400
    assert client.get(f"/api/tenants/{TENANT_A}/entries", headers=headers).json() == []
