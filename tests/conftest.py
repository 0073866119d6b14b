import pytest

from wifimap.db.init_db import init_db
from wifimap.db.session import make_async_engine, make_session_factory
from wifimap.services.network_repository import NetworkRepository


@pytest.fixture
async def engine(tmp_path):
    # Отдельный файл SQLite на каждый тест
    engine = make_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def repository(session_factory):
    return NetworkRepository(session_factory)
