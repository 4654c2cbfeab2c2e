"""
Health and diagnostics API.

Lightweight endpoints for operational monitoring without exposing secrets.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from sqlalchemy import text

from solarcal.core.database import get_db_session

logger = logging.getLogger("solarcal")

root_router = APIRouter(tags=["health"])


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    logger.info("health.check")
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz(request: Request):
    """Readiness: the preset store is reachable (SQL) or in-memory."""
    engine = getattr(request.app.state, "db_engine", None)
    computed_at = datetime.now(timezone.utc).isoformat()
    if engine is None:
        return {"ok": True, "store": "memory", "computed_at": computed_at}
    try:
        with get_db_session(engine) as session:
            session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("readyz.db_unreachable", extra={"error_code": type(exc).__name__})
        return {"ok": False, "store": "sql", "computed_at": computed_at}
    return {"ok": True, "store": "sql", "computed_at": computed_at}
