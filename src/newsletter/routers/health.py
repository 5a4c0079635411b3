"""
Liveness and readiness checks
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from ..context import AppContext
from ..dependencies import get_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """Liveness: the process is up and serving requests"""
    return {"status": "ok", "service": "newsletter"}


@router.get("/ready")
async def readiness_check(context: AppContext = Depends(get_context)):
    """Readiness: the key-value store and the subscriber database answer"""
    checks = {"key_value_store": False, "database": False}
    details = {}

    try:
        client = await context.kv_factory.get_client()
        checks["key_value_store"] = bool(await client.ping())
    except Exception as e:
        logger.warning(f"Readiness: key-value store check failed: {e}")
        details["key_value_store"] = {"error": type(e).__name__}

    try:
        async with context.store.session() as session:
            result = await session.execute(text("SELECT 1"))
            checks["database"] = result.scalar() == 1
    except Exception as e:
        logger.warning(f"Readiness: database check failed: {e}")
        details["database"] = {"error": type(e).__name__}

    ready = all(checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "ready": ready,
            "checks": checks,
            "details": details,
            "configuration": {"missing": context.settings.missing_required()}
        }
    )
