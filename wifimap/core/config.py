from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    DEBUG: bool = Field(
        False,
        description="Turn on debug mode (reload, detailed errors)",
    )

    # Подключение к БД (SQLite через aiosqlite)
    DATABASE_URL: str = Field(
        "sqlite+aiosqlite:///./wigle-data.db",
        description="SQLAlchemy async URL of the network store",
    )

    # Общие параметры API
    API_PREFIX: str = Field(
        "/v1",
        description="Base prefix for all API routes",
    )
    APP_NAME: str = Field(
        "WiFi Map Engine",
        description="Application name for docs/title",
    )

    # Логи
    LOG_LEVEL: str = Field(
        "INFO",
        description="Logging level",
    )
    LOG_DIR: str = Field(
        "logs",
        description="Directory for log files",
    )
    LOG_FILENAME: str = Field(
        "wifimap.log",
        description="Log file name",
    )

    # Импорт и парсинг
    PARSE_CHUNK_SIZE: int = Field(
        1000,
        ge=1,
        description="Records per parser chunk (between cooperative yields)",
    )
    IMPORT_BATCH_SIZE: int = Field(
        1000,
        ge=1,
        description="Records per repository transaction during import",
    )
    DEFAULT_SIGNAL_DBM: int = Field(
        -70,
        description="Signal strength used when a row has none or an invalid one",
    )

    # Запросы и кэш вьюпорта
    DEFAULT_QUERY_LIMIT: int = Field(
        1000,
        ge=1,
        description="Default page size for network queries",
    )
    VIEWPORT_CACHE_TTL: float = Field(
        5.0,
        description="Lifetime of cached bounding-box queries, seconds",
    )
    VIEWPORT_CACHE_SIZE: int = Field(
        10,
        ge=1,
        description="Maximum number of cached bounding-box queries",
    )

    # Планировщик
    SCHEDULER_ENABLED: bool = Field(
        True,
        description="Start the background position recalculation job",
    )

    # Pydantic V2: вместо Config используем model_config
    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()
