import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from wifimap.core.config import settings

# Сторонние логгеры, которые слишком болтливы на уровне INFO/DEBUG
NOISY_LOGGERS = ("aiosqlite", "apscheduler.executors.default", "apscheduler.scheduler")


def setup_logging() -> None:
    """
    Логи импорта и API: ротирующий файл в LOG_DIR + stdout.
    Повторный вызов (перезапуск приложения в тестах) не дублирует обработчики.
    """
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    log_path = os.path.join(settings.LOG_DIR, settings.LOG_FILENAME)

    fmt = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    # до 10 МБ, 5 архивов
    file_handler = RotatingFileHandler(
        filename=log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(fmt)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(fmt)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        handlers=[file_handler, stream_handler],
        force=True,
    )

    # SQL-эхо движка только в режиме отладки
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DEBUG else logging.WARNING
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
