"""
Health Check Endpoints.

Provides liveness, readiness, and detailed health checks.

Endpoints:
- /health: Liveness check (process running)
- /health/ready: Readiness check (database and object storage reachable)
- /health/detailed: Component-by-component status (for debugging)
"""

import asyncio
from typing import Any

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

from notesapp.backend.core.concurrency import get_pool_status
from notesapp.backend.core.config import get_app_config
from notesapp.backend.core.logging import get_logger
from notesapp.backend.core.utils import utc_now

router = APIRouter()
logger = get_logger(__name__)


async def check_database() -> dict[str, Any]:
    """
    Check database connectivity.

    Returns:
        Dict with status, latency, and optional error message
    """
    from notesapp.backend.core.database import get_session_factory

    try:
        start = utc_now()
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
        latency_ms = int((utc_now() - start).total_seconds() * 1000)
        return {"status": "healthy", "latency_ms": latency_ms}
    except Exception as e:
        logger.warning("Database health check failed", extra={"error": str(e)})
        return {"status": "unhealthy", "error": str(e)}


async def check_storage() -> dict[str, Any]:
    """
    Check that the image bucket is reachable.

    Returns:
        Dict with status, latency, and optional error message
    """
    from notesapp.backend.storage import get_object_storage

    try:
        start = utc_now()
        await get_object_storage().check()
        latency_ms = int((utc_now() - start).total_seconds() * 1000)
        return {"status": "healthy", "latency_ms": latency_ms}
    except Exception as e:
        logger.warning("Storage health check failed", extra={"error": str(e)})
        return {"status": "unhealthy", "error": str(e)}


async def _run_checks() -> dict[str, dict[str, Any]]:
    db_result: dict[str, Any] = {"status": "error", "error": "check did not run"}
    storage_result: dict[str, Any] = {"status": "error", "error": "check did not run"}

    try:
        async with asyncio.TaskGroup() as tg:
            db_task = tg.create_task(check_database())
            storage_task = tg.create_task(check_storage())
        db_result = db_task.result()
        storage_result = storage_task.result()
    except* Exception as eg:
        for exc in eg.exceptions:
            logger.warning("Health check task failed", extra={"error": str(exc)})

    return {"database": db_result, "storage": storage_result}


@router.get("/health")
async def health_check() -> dict[str, str]:
    """
    Liveness check.

    Returns 200 if the process is running. No dependency checks.
    """
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check() -> dict[str, Any]:
    """
    Readiness check.

    Checks the database and object storage in parallel.
    Returns 503 if either is unhealthy or the checks time out.
    """
    timeout = get_app_config().observability.health_checks.ready_timeout_seconds

    try:
        async with asyncio.timeout(timeout):
            checks = await _run_checks()
    except TimeoutError:
        checks = {
            "database": {"status": "unhealthy", "error": "timed out"},
            "storage": {"status": "unhealthy", "error": "timed out"},
        }

    unhealthy_checks = [
        name for name, check in checks.items()
        if check.get("status") != "healthy"
    ]

    if unhealthy_checks:
        logger.warning(
            "Readiness check failed",
            extra={"unhealthy": unhealthy_checks, "checks": checks},
        )
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "checks": checks,
                "timestamp": utc_now().isoformat(),
            },
        )

    return {
        "status": "healthy",
        "checks": checks,
        "timestamp": utc_now().isoformat(),
    }


@router.get("/health/detailed")
async def detailed_health_check() -> dict[str, Any]:
    """
    Detailed health check.

    Returns dependency checks, application identity and pool metrics.
    """
    checks = await _run_checks()
    app_settings = get_app_config().application

    statuses = [check.get("status") for check in checks.values()]
    overall_status = "healthy" if all(s == "healthy" for s in statuses) else "unhealthy"

    return {
        "status": overall_status,
        "application": {
            "name": app_settings.name,
            "env": app_settings.environment,
            "debug": app_settings.debug,
            "version": app_settings.version,
        },
        "checks": checks,
        "pools": get_pool_status(),
        "timestamp": utc_now().isoformat(),
    }
