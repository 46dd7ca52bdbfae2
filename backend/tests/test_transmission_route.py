"""Tests for the transmission lookup and diagnostics endpoints."""
import pytest
from httpx import AsyncClient, ASGITransport

from transfinder.api.routes.diagnostics import get_client
from transfinder.api.routes.transmission import get_lookup
from transfinder.exceptions import CatalogUnavailable
from transfinder.main import app
from transfinder.services.suggestion import LocalSpellCorrector
from transfinder.services.text_completion import LatencyProbe
from transfinder.services.transmission_lookup import TransmissionLookup


class StaticCatalog:
    def __init__(self, records=None, error=None):
        self.records = records
        self.error = error

    async def get(self):
        if self.error:
            raise self.error
        return self.records


@pytest.fixture
def use_lookup():
    """Install a lookup service for the request, bypassing the lifespan wiring."""

    def _install(catalog, client):
        lookup = TransmissionLookup(catalog=catalog, client=client, corrector=LocalSpellCorrector())
        app.dependency_overrides[get_lookup] = lambda: lookup
        return lookup

    yield _install
    app.dependency_overrides.clear()


async def _post(json=None):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post("/api/get-transmission", json=json)


@pytest.mark.asyncio
async def test_lookup_returns_reply(use_lookup, sample_catalog, fake_client_factory):
    use_lookup(StaticCatalog(sample_catalog), fake_client_factory(replies=["- **BAXA**"]))

    response = await _post({"query": "Honda Accord 2000"})

    assert response.status_code == 200
    assert response.json() == {"reply": "- <b>BAXA</b>"}


@pytest.mark.asyncio
async def test_lookup_includes_suggestion(use_lookup, sample_catalog, fake_client_factory):
    use_lookup(StaticCatalog(sample_catalog), fake_client_factory())

    response = await _post({"query": "Honda Acord 2000"})
    data = response.json()

    assert response.status_code == 200
    assert data["suggestion"] == "Honda Accord 2000"
    assert "¿Quisiste decir" in data["reply"]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"query": ""}, {"query": "   "}, {}, None])
async def test_missing_query_is_400(use_lookup, sample_catalog, fake_client_factory, body):
    use_lookup(StaticCatalog(sample_catalog), fake_client_factory())

    response = await _post(body)

    assert response.status_code == 400
    assert response.json() == {"reply": "Escribe un vehículo."}


@pytest.mark.asyncio
async def test_catalog_unavailable_is_503(use_lookup, fake_client_factory):
    use_lookup(StaticCatalog(error=CatalogUnavailable("Catalog download failed: 500")), fake_client_factory())

    response = await _post({"query": "Accord 2000"})

    assert response.status_code == 503
    assert "500" not in response.json()["reply"]


@pytest.mark.asyncio
async def test_options_short_circuits():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.options("/api/get-transmission")
    assert response.status_code == 200
    assert response.content == b""


@pytest.mark.asyncio
async def test_cors_preflight():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.options(
            "/api/get-transmission",
            headers={"Origin": "https://widget.example", "Access-Control-Request-Method": "POST"},
        )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_get_not_allowed():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/get-transmission")
    assert response.status_code == 405


class FakeDiagnosticsClient:
    model = "gemini-test"

    def __init__(self, probe):
        self.probe = probe

    async def list_models(self):
        return ["models/gemini-test"]

    async def probe_latency(self):
        return self.probe


@pytest.mark.asyncio
async def test_list_models_endpoint():
    app.dependency_overrides[get_client] = lambda: FakeDiagnosticsClient(None)
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/list-models")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 200
    assert response.json()["models"] == ["models/gemini-test"]


@pytest.mark.asyncio
async def test_speed_endpoint_reports_failure():
    probe = LatencyProbe(model="gemini-test", success=False, seconds=0.2, error="Gemini API error: HTTP 503")
    app.dependency_overrides[get_client] = lambda: FakeDiagnosticsClient(probe)
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/test-speed")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 502
    assert response.json()["test"] == "FALLIDO"


@pytest.mark.asyncio
async def test_health():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")
    assert response.json() == {"status": "healthy"}
