from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wifimap.core.config import settings
from wifimap.core.logging_config import setup_logging
from wifimap.db.init_db import init_db
from wifimap.db.session import async_engine
from wifimap.tasks.scheduler import shutdown_scheduler, start_scheduler

from wifimap.api.routers.health import router as health_router
from wifimap.api.routers.networks import router as networks_router
from wifimap.api.routers.imports import router as imports_router
from wifimap.api.routers.admin import router as admin_router

app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0"
)

# CORS (desktop-клиент ходит с localhost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup():
    setup_logging()
    await init_db(async_engine)
    if settings.SCHEDULER_ENABLED:
        start_scheduler()


@app.on_event("shutdown")
async def on_shutdown():
    shutdown_scheduler()
    await async_engine.dispose()


# Подключаем роутеры
app.include_router(health_router, prefix=settings.API_PREFIX, tags=["health"])
app.include_router(networks_router, prefix=settings.API_PREFIX)
app.include_router(imports_router, prefix=settings.API_PREFIX)
app.include_router(admin_router, prefix=settings.API_PREFIX)
