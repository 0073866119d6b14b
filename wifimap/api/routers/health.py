# wifimap/api/routers/health.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from wifimap.api.deps import get_db_session

router = APIRouter()


@router.get("/health", summary="Health check")
async def health_check():
    return {"status": "ok"}


@router.get("/health-db", summary="Database health check")
async def health_db(db: AsyncSession = Depends(get_db_session)):
    result = await db.execute(text("SELECT 1"))
    return {"db_ok": bool(result.scalar())}
