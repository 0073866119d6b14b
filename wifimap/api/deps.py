# wifimap/api/deps.py

from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from wifimap.db.session import AsyncSessionLocal
from wifimap.services.import_service import ImportService
from wifimap.services.network_repository import NetworkRepository


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Зависимость FastAPI, возвращающая асинхронную сессию SQLAlchemy.
    Сессия автоматически открывается при входе в контекст и закрывается по выходу.
    """
    async with AsyncSessionLocal() as session:
        yield session


@lru_cache
def get_repository() -> NetworkRepository:
    # Один репозиторий на процесс: у него общий кэш вьюпорта
    return NetworkRepository(AsyncSessionLocal)


@lru_cache
def get_import_service() -> ImportService:
    # Общий экземпляр, чтобы блокировка сериализовала все импорты
    return ImportService(get_repository())
