import logging

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine

from wifimap.db.base import Base

logger = logging.getLogger(__name__)


def migrate_network_type(connection) -> bool:
    """
    Добавляет колонку networks.type (DEFAULT 'WIFI') в базы, созданные
    до её появления. Существующие строки получают 'WIFI'.

    Returns:
        True, если миграция была применена.
    """
    columns = {col["name"] for col in inspect(connection).get_columns("networks")}
    if "type" in columns:
        return False
    logger.info("Колонка networks.type отсутствует, применяем миграцию")
    connection.execute(text("ALTER TABLE networks ADD COLUMN type TEXT DEFAULT 'WIFI'"))
    connection.execute(text("CREATE INDEX IF NOT EXISTS idx_networks_type ON networks(type)"))
    return True


def _create_schema(connection) -> None:
    # Сначала мигрируем старую таблицу: create_all не трогает существующие
    # таблицы, но попытается создать индекс по отсутствующей колонке type
    if inspect(connection).has_table("networks"):
        migrate_network_type(connection)
    Base.metadata.create_all(connection)


async def init_db(engine: AsyncEngine) -> None:
    """
    Создаёт таблицы и индексы, затем догоняет схему старых баз.
    """
    async with engine.begin() as conn:
        await conn.run_sync(_create_schema)
    logger.info("Схема базы данных готова")
