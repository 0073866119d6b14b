from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Импорт моделей, чтобы таблицы создавались автоматически
from wifimap.db.models import (  # noqa: E402,F401
    network,
    observation,
)
