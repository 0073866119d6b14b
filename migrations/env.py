from logging.config import fileConfig

from sqlalchemy import engine_from_config
from sqlalchemy import pool
from alembic import context

from wifimap.db.base import Base  # База метаданных
from wifimap.db import models     # ИМПОРТ ВСЕХ МОДЕЛЕЙ для Alembic

from wifimap.core.config import settings

# This is the Alembic Config object
config = context.config

# Alembic работает синхронно: убираем асинхронный драйвер из URL
SYNC_DATABASE_URL = str(settings.DATABASE_URL).replace("+aiosqlite", "")
config.set_main_option('sqlalchemy.url', SYNC_DATABASE_URL)

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Metadata
target_metadata = Base.metadata


def run_migrations_offline():
    context.configure(
        url=SYNC_DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,  # Обязательно для автогенерации изменения типов
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,  # Обязательно для отслеживания типов
            # SQLite не умеет большинство ALTER TABLE
            render_as_batch=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
