"""Health checks and monitoring endpoints"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
import logging

from app.config.database import get_db
from app.config.redis import get_redis
from app.config.settings import get_settings

logger = logging.getLogger(__name__)

health_router = APIRouter()


@health_router.get("")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": get_settings().APP_NAME}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Detailed health check with dependencies"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "redis": "unknown",
        "overall": "unknown"
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        checks["database"] = f"unhealthy: {str(e)}"

    # Redis only matters when it backs the booking lock
    if get_settings().BOOKING_LOCK_BACKEND == "redis":
        try:
            get_redis().ping()
            checks["redis"] = "healthy"
        except Exception as e:
            logger.warning(f"Redis health check failed: {e}")
            checks["redis"] = f"unhealthy: {str(e)}"
    else:
        checks["redis"] = "not configured"

    if all(status in ("healthy", "not configured") for key, status in checks.items() if key != "overall"):
        checks["overall"] = "healthy"
    else:
        checks["overall"] = "degraded"

    return checks
