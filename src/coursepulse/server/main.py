import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Dict

import httpx
import structlog
from fastapi import Depends, FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from coursepulse.config import load_settings
from coursepulse.db import connect, initialize_schema
from coursepulse.server.auth import require_claims
from coursepulse.server.errors import install_exception_handlers
from coursepulse.server.routers import (
    ab_tests,
    analytics,
    conversions,
    subscriptions,
    tracking_events,
)


# -------------------------
# Logging configuration
# -------------------------
def configure_logging() -> None:
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_name, logging.INFO)
    json_logs = os.getenv("LOG_JSON", "false").lower() == "true"
    service_name = os.getenv("SERVICE_NAME", "coursepulse")

    logging.basicConfig(level=log_level, stream=sys.stdout)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Bind common fields
    structlog.contextvars.bind_contextvars(service=service_name)


configure_logging()
log = structlog.get_logger()


# -------------------------
# App & instrumentation
# -------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    log.info("service.startup", db_path=settings.db_path)
    app.state.db = connect(settings.db_path)
    created = initialize_schema(app.state.db)
    if created:
        log.info("db.schema.created", tables=created)

    # One client for all outbound relays; forwarders share its connection pool.
    app.state.http_client = httpx.AsyncClient(timeout=settings.forwarder_timeout)
    try:
        yield
    finally:
        await app.state.http_client.aclose()
        log.info("service.shutdown")


app = FastAPI(title=os.getenv("SERVICE_NAME", "coursepulse"), lifespan=lifespan)
install_exception_handlers(app)

# API Routers
app.include_router(tracking_events.router)
app.include_router(ab_tests.router)
app.include_router(conversions.router)
app.include_router(subscriptions.router)
app.include_router(analytics.router)

# Prometheus: exposes /metrics by default
Instrumentator().instrument(app).expose(app)


@app.get("/healthz", tags=["health"])
def healthz():
    return {"status": "ok"}


@app.get("/whoami", tags=["auth"])
def whoami(claims: Dict = Depends(require_claims)):
    return {"claims": claims}


def main():
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("coursepulse.server.main:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
