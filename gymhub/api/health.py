"""Liveness and readiness probes."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from gymhub.core.database import check_connection, get_engine, metadata

logger = logging.getLogger("gymhub")

root_router = APIRouter(tags=["health"])


def _not_ready(detail: str) -> JSONResponse:
    return JSONResponse(status_code=503, content={"status": "error", "detail": detail})


@root_router.get("/healthz")
def healthz():
    """Process is up; touches nothing else."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz():
    """Database reachable and every GymHub table created."""
    if not check_connection():
        return _not_ready("database unreachable")

    existing = set(inspect(get_engine()).get_table_names())
    missing = sorted(name for name in metadata.tables if name not in existing)
    if missing:
        logger.warning("readyz: missing tables %s", ", ".join(missing))
        return _not_ready(f"missing tables: {', '.join(missing)}")
    return {"status": "ok"}
