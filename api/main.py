"""
FastAPI application entry point.

On startup the database schema is created (idempotent).  Every router is
mounted here and every error raised by the core modules is translated into
an HTTP response here; nothing below this layer knows about status codes.

Endpoints:
  GET  /health
  /api/fleet        buses
  /api/routes       routes
  /api/schedules    schedules and delays
  /api/contacts     staff-facing contact records
  /api/support      public inquiry form + inquiry desk
  /api/staff        staff directory
  /api/dashboard    aggregated statistics
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import contacts, dashboard, fleet, inquiries, routes, schedules, staff
from api.deps import get_store
from api.schemas import HealthResponse
from config import API_HOST, API_PORT, APP_ENV, CORS_ORIGINS, DEBUG, LOG_LEVEL
from db.models import Bus, Contact, Route, Schedule
from db.session import init_db
from db.store import EntityStore
from errors import TransportError, ValidationError

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database initialised (env=%s).", APP_ENV)
    yield
    logger.info("Shutting down.")


app = FastAPI(
    title="City Bus Transport Admin",
    description="Fleet, route, schedule, contact and dashboard administration for a municipal bus service.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "%s %s -> %d (%.1f ms) [%s]",
        request.method, request.url.path, response.status_code, elapsed_ms, request_id,
    )
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

@app.exception_handler(TransportError)
async def transport_error_handler(request: Request, exc: TransportError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    content: dict = {"detail": exc.message}
    if isinstance(exc, ValidationError) and exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(p) for p in err["loc"][1:]) or str(err["loc"][0]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Validation error", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = "Internal server error"
    if DEBUG:
        detail = f"{detail}: {exc}"
    return JSONResponse(status_code=500, content={"detail": detail})


for module in (fleet, routes, schedules, contacts, inquiries, staff, dashboard):
    app.include_router(module.router)


@app.get("/health", response_model=HealthResponse)
def health(store: EntityStore = Depends(get_store)) -> HealthResponse:
    """Liveness check with record counts so operators can see the store is reachable."""
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=APP_ENV,
        records={
            "buses": store.count(Bus),
            "routes": store.count(Route),
            "schedules": store.count(Schedule),
            "contacts": store.count(Contact),
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=API_HOST, port=API_PORT, reload=DEBUG)
