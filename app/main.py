"""FastAPI entrypoint for the fleet administration API."""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1.api import api_router
from app.core.config import settings
from app.db import session as db_session
from app.db.base import AuditBase, Base
from app.db.seed import ensure_seed_data
from app.models import AuditLog

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Request-ID"

app = FastAPI(title=settings.app_name)
app.include_router(api_router, prefix="/api/v1")


@app.middleware("http")
async def request_logging(request: Request, call_next):
    """Stamp a correlation id on the request and log its start and completion."""
    correlation_id = request.headers.get(CORRELATION_HEADER) or uuid4().hex
    request.state.correlation_id = correlation_id
    started = time.perf_counter()
    logger.info("Starting request %s %s %s", correlation_id, request.method, request.url.path)

    response = await call_next(request)

    elapsed_ms = (time.perf_counter() - started) * 1000
    log = logger.warning if response.status_code >= 400 else logger.info
    log(
        "Completed request %s %s %s with status %s in %.0fms",
        correlation_id,
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


@app.exception_handler(SQLAlchemyError)
async def persistence_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    correlation_id = getattr(request.state, "correlation_id", None)
    logger.error("Persistence failure on %s %s (request %s)", request.method, request.url.path, correlation_id, exc_info=exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "The service is temporarily unavailable. Please try again.", "trace_id": correlation_id},
    )


@app.on_event("startup")
def startup() -> None:
    if not os.getenv("JWT_SECRET_KEY"):
        logger.warning("JWT_SECRET_KEY not set; using development fallback secret.")
    Base.metadata.create_all(bind=db_session.engine)
    try:
        AuditBase.metadata.create_all(bind=db_session.audit_engine)
    except SQLAlchemyError:
        logger.warning(
            "[BOOTSTRAP] Audit store unavailable at startup; its tables will be created on the first successful write."
        )
    with db_session.SessionLocal() as session:
        try:
            ensure_seed_data(session)
        except SQLAlchemyError:
            logger.exception("[BOOTSTRAP] Identity seed failed; continuing startup.")


def _check_database(engine, required_table: str | None = None) -> dict[str, str]:
    started = time.perf_counter()
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            if required_table and not inspect(connection).has_table(required_table):
                return {"status": "Unhealthy", "error": f"missing table {required_table}"}
    except SQLAlchemyError as exc:
        return {"status": "Unhealthy", "error": str(exc.__class__.__name__)}
    return {"status": "Healthy", "response_time_ms": f"{(time.perf_counter() - started) * 1000:.0f}"}


@app.get("/health")
def health() -> dict:
    """Report connectivity to the business and audit databases."""
    checks = {
        "database": _check_database(db_session.engine),
        "audit_store": _check_database(db_session.audit_engine, AuditLog.__tablename__),
    }
    # Audit store outages degrade health; only the business database makes it unhealthy.
    overall = "Healthy"
    if checks["database"]["status"] != "Healthy":
        overall = "Unhealthy"
    elif checks["audit_store"]["status"] != "Healthy":
        overall = "Degraded"
    return {
        "status": overall,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.app_env,
        "checks": checks,
    }
