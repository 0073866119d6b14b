import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import NullPool

from wifimap.api.deps import get_db_session, get_import_service, get_repository
from wifimap.db.init_db import init_db
from wifimap.db.session import make_async_engine, make_session_factory
from wifimap.main import app
from wifimap.services.import_service import ImportService
from wifimap.services.network_repository import NetworkRepository

PAYLOAD = {
    "network": {"bssid": "f0-ee-7a-12-34-56", "ssid": "HomeNet", "encryption": "WPA2", "channel": 6},
    "observation": {
        "latitude": 55.7512,
        "longitude": 37.6175,
        "signal_strength": -60,
        "timestamp": "2024-01-15T10:30:00Z",
    },
}


@pytest.fixture
def client(tmp_path):
    # NullPool: соединения не переживают цикл событий TestClient
    engine = make_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", poolclass=NullPool)
    asyncio.run(init_db(engine))
    session_factory = make_session_factory(engine)
    repository = NetworkRepository(session_factory)

    async def override_db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_import_service] = lambda: ImportService(repository)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/v1/health").json() == {"status": "ok"}
    assert client.get("/v1/health-db").json() == {"db_ok": True}


def test_upsert_and_get_network(client):
    resp = client.post("/v1/networks", json=PAYLOAD)
    assert resp.status_code == 201
    network_id = resp.json()["id"]

    resp = client.get("/v1/networks/F0:EE:7A:12:34:56")
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == network_id
    assert data["bssid"] == "F0:EE:7A:12:34:56"
    assert data["manufacturer"] == "Apple, Inc."
    assert data["type"] == "WIFI"
    assert len(data["observations"]) == 1

    resp = client.get("/v1/networks/f0-ee-7a-12-34-56/observations")
    assert resp.status_code == 200
    assert resp.json()[0]["signal_strength"] == -60


def test_unknown_network_404(client):
    assert client.get("/v1/networks/00:00:00:00:00:01").status_code == 404
    assert client.get("/v1/networks/00:00:00:00:00:01/observations").status_code == 404


def test_invalid_bssid_422(client):
    payload = {**PAYLOAD, "network": {**PAYLOAD["network"], "bssid": "nope"}}
    resp = client.post("/v1/networks", json=payload)
    assert resp.status_code == 422
    assert resp.json()["detail"]["field"] == "bssid"


def test_list_with_filters(client):
    client.post("/v1/networks", json=PAYLOAD)
    other = {**PAYLOAD, "network": {**PAYLOAD["network"], "bssid": "00:11:22:33:44:55", "ssid": "Cafe", "encryption": "Open"}}
    client.post("/v1/networks", json=other)

    assert len(client.get("/v1/networks").json()) == 2
    assert [n["ssid"] for n in client.get("/v1/networks", params={"ssid": "Home"}).json()] == ["HomeNet"]
    assert [n["ssid"] for n in client.get("/v1/networks", params={"encryption": ["Open"]}).json()] == ["Cafe"]

    box = {"north": 56, "south": 55, "east": 38, "west": 37}
    assert len(client.get("/v1/networks", params=box).json()) == 2
    assert len(client.get("/v1/networks", params={**box, "north": 55.5}).json()) == 0


def test_partial_bounds_rejected(client):
    assert client.get("/v1/networks", params={"north": 56, "south": 55}).status_code == 422


def test_limit_capped(client):
    assert client.get("/v1/networks", params={"limit": 10001}).status_code == 422


def test_clear_all(client):
    client.post("/v1/networks", json=PAYLOAD)
    assert client.delete("/v1/admin/networks").status_code == 204
    assert client.get("/v1/networks").json() == []


def test_recalculate_positions(client):
    client.post("/v1/networks", json=PAYLOAD)
    resp = client.post("/v1/admin/recalculate-positions")
    assert resp.status_code == 202
    assert resp.json()["updated"] == 1
