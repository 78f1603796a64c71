"""
Health Check Endpoints

- /health/live  - Basic liveness (app is running)
- /health/ready - Readiness check (database reachable, tables created)
- /health/deep  - Detailed diagnostics (database, email, storage, environment)
"""

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
from typing import Dict, Any
import time

from app.core.config import settings
from app.core.database import get_session_local
from app.core.logging_config import logger


router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_database() -> Dict[str, Any]:
    """Check database connectivity and that the schema exists"""
    start = time.time()
    try:
        session_factory = get_session_local()
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
            try:
                await session.execute(text("SELECT COUNT(*) FROM users"))
                tables_ok = True
            except SQLAlchemyError:
                tables_ok = False

        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "tables_ready": tables_ok,
        }
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "tables_ready": False,
            "error": str(e),
        }


def check_email_config() -> Dict[str, Any]:
    """SMTP credentials present (no connection attempt)"""
    if settings.SMTP_USER and settings.SMTP_PASSWORD:
        return {"status": "healthy", "provider": "smtp", "host": settings.SMTP_HOST}
    return {
        "status": "degraded",
        "provider": "none",
        "message": "SMTP not configured - result emails will not be sent",
    }


def check_storage() -> Dict[str, Any]:
    if settings.STORAGE_MODE == "s3":
        return {
            "status": "healthy" if settings.S3_BUCKET_NAME else "unhealthy",
            "provider": "s3",
            "bucket": settings.S3_BUCKET_NAME,
            "region": settings.AWS_REGION,
        }
    return {"status": "healthy", "provider": "local", "root": settings.UPLOAD_ROOT}


def check_critical_env_vars() -> Dict[str, Any]:
    critical = {
        "DATABASE_URL": settings.DATABASE_URL,
        "SECRET_KEY": settings.SECRET_KEY,
        "JWT_SECRET_KEY": settings.JWT_SECRET_KEY,
    }
    missing = [name for name, value in critical.items() if not value or value == "CHANGE_ME"]
    if missing:
        return {"status": "unhealthy", "missing_critical": missing}
    return {"status": "healthy", "missing_critical": []}


@router.get("")
async def health_check():
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@router.get("/live")
async def liveness_check():
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness probe. Returns 503 unless the database answers and the
    tables exist.
    """
    db_check = await check_database()
    is_ready = db_check["status"] == "healthy" and db_check["tables_ready"]

    response = {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {"database": db_check, "environment": check_critical_env_vars()},
    }
    if not is_ready:
        logger.warning(f"[HealthCheck] Readiness check failed: {response}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=response)
    return response


@router.get("/deep")
async def deep_health_check():
    start_time = time.time()
    checks = {
        "database": await check_database(),
        "email": check_email_config(),
        "storage": check_storage(),
        "environment": check_critical_env_vars(),
    }

    statuses = [c.get("status", "unknown") for c in checks.values()]
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    response = {
        "status": overall,
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.ENVIRONMENT,
        "version": settings.APP_VERSION,
        "total_check_time_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }
    if overall == "unhealthy":
        logger.error(f"[HealthCheck] Deep check unhealthy: {response}")
    return response
