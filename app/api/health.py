"""Liveness and database readiness endpoint."""
import logging
import time
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db

router = APIRouter()
logger = logging.getLogger(__name__)

_started_at = time.monotonic()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Report healthy when the call session database answers, 503 otherwise."""
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"[HEALTH] Database check failed: {e}")
        database = "unavailable"

    body = {
        "status": "healthy" if database == "ok" else "unhealthy",
        "database": database,
        "uptimeSeconds": round(time.monotonic() - _started_at),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return JSONResponse(status_code=200 if database == "ok" else 503, content=body)
