from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from wifimap.core.config import settings


def make_async_engine(url: str, **kwargs) -> AsyncEngine:
    """
    Асинхронный движок SQLite.

    Для каждого соединения включаются внешние ключи (ON DELETE CASCADE),
    а управление транзакциями забирается у драйвера pysqlite: иначе
    SAVEPOINT внутри пакетной транзакции не работает.
    """
    engine = create_async_engine(url, echo=False, future=True, **kwargs)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN")

    return engine


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# Асинхронный движок
async_engine = make_async_engine(settings.DATABASE_URL)

AsyncSessionLocal = make_session_factory(async_engine)
