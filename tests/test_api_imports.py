import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import NullPool

from wifimap.api.deps import get_import_service, get_repository
from wifimap.db.init_db import init_db
from wifimap.db.session import make_async_engine, make_session_factory
from wifimap.main import app
from wifimap.services.import_service import ImportService
from wifimap.services.network_repository import NetworkRepository

WIGLE = (
    "WigleWifi-1.4,appRelease=2.53,model=Pixel\n"
    "MAC,SSID,AuthMode,FirstSeen,Channel,RSSI,CurrentLatitude,CurrentLongitude,Type\n"
    "00:11:22:33:44:01,A,[WPA2-PSK-CCMP][ESS],2024-01-15 10:30:00,6,-50,55.0,37.0,WIFI\n"
    "00:11:22:33:44:02,B,[ESS],2024-01-15 10:31:00,11,-70,55.1,37.1,WIFI\n"
)


@pytest.fixture
def client(tmp_path):
    engine = make_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", poolclass=NullPool)
    asyncio.run(init_db(engine))
    repository = NetworkRepository(make_session_factory(engine))
    service = ImportService(repository)

    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_import_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_formats(client):
    resp = client.get("/v1/imports/formats")
    assert resp.json() == {"formats": ["WiGLE CSV", "Kismet CSV", "KML", "SQLite Database"]}


def test_import_and_detect(client, tmp_path):
    path = tmp_path / "WigleWifi_20240115.csv"
    path.write_text(WIGLE, encoding="utf-8")

    resp = client.post("/v1/imports/detect", json={"file_path": str(path)})
    assert resp.json() == {"file_path": str(path), "format_name": "WiGLE CSV"}

    resp = client.post("/v1/imports", json={"file_path": str(path)})
    assert resp.status_code == 200
    assert resp.json() == {
        "networks_imported": 2,
        "networks_updated": 0,
        "observations_added": 2,
        "errors": [],
    }
    assert len(client.get("/v1/networks").json()) == 2


def test_import_errors_are_400(client, tmp_path):
    assert client.post("/v1/imports", json={"file_path": "../secret.csv"}).status_code == 400

    path = tmp_path / "notes.txt"
    path.write_text("hello", encoding="utf-8")
    resp = client.post("/v1/imports", json={"file_path": str(path)})
    assert resp.status_code == 400
    assert "Unsupported file format" in resp.json()["detail"]["message"]


def test_detect_unknown_format(client, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello", encoding="utf-8")
    assert client.post("/v1/imports/detect", json={"file_path": str(path)}).json()["format_name"] is None
