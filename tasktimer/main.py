from contextlib import asynccontextmanager
import logging
import time
import uuid

from fastapi import FastAPI, HTTPException, status, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from sqlalchemy import text

from .db import Base, engine
from . import db_models  # noqa: F401  (register tables on Base.metadata)
from .api.errors import register_exception_handlers
from .api.v1.router import api_router
from .config import settings
from .logging_utils import setup_logging
from .migrations import run_startup_migrations
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from .rate_limit import limiter, _rate_limit_exceeded_handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """App startup/shutdown lifecycle."""
    setup_logging()
    if settings.RUN_STARTUP_MIGRATIONS:
        # Create missing tables, then bring older ones up to date (position column + backfill)
        Base.metadata.create_all(bind=engine)
        run_startup_migrations(engine)
    logging.getLogger("tasktimer").info("startup complete database=%s", engine.url.get_backend_name())
    yield


tags_metadata = [
    {"name": "tasks", "description": "Tasks: CRUD, move up/down, bulk reorder."},
]

app = FastAPI(
    title="Task Timer API",
    version="1.0.0",
    description=(
        "Versioned JSON API exposed under /api/v1. "
        "Tasks are returned in canonical order (position, then creation time)."
    ),
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)


@app.get("/health")
def health():
    """Simple healthcheck endpoint."""
    return {"status": "ok"}


# Versioned JSON API
app.include_router(api_router)

# Unified error handlers
register_exception_handlers(app)

# Rate limiting (global middleware + handler)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


# Request ID + access log middleware
@app.middleware("http")
async def request_id_and_logging(request: Request, call_next):
    start = time.perf_counter()
    incoming = request.headers.get(settings.REQUEST_ID_HEADER)
    req_id = incoming or uuid.uuid4().hex
    request.state.request_id = req_id
    response = await call_next(request)
    response.headers.setdefault(settings.REQUEST_ID_HEADER, req_id)
    duration_ms = int((time.perf_counter() - start) * 1000)
    logging.getLogger("tasktimer.request").info(
        "method=%s path=%s status=%s duration_ms=%s request_id=%s",
        request.method,
        request.url.path,
        getattr(response, "status_code", "-"),
        duration_ms,
        req_id,
    )
    return response


# --- Security: CORS and security headers ---

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def security_headers(request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    if settings.SECURITY_CSP:
        csp = settings.SECURITY_CSP
        path = request.url.path
        if path.startswith("/docs") or path.startswith("/redoc"):
            # Swagger/ReDoc need inline scripts and styles + CDN assets
            csp = (
                "default-src 'self'; "
                "script-src 'self' https://cdn.jsdelivr.net 'unsafe-inline'; "
                "style-src 'self' https://cdn.jsdelivr.net 'unsafe-inline'; "
                "img-src 'self' https: data:; "
                "font-src 'self' https://cdn.jsdelivr.net data:; "
                "connect-src 'self'; "
                "frame-ancestors 'none'"
            )
        response.headers["Content-Security-Policy"] = csp
    if settings.SECURITY_ENABLE_HSTS:
        response.headers.setdefault("Strict-Transport-Security", "max-age=15552000; includeSubDomains")
    return response


# --- Observability: liveness, readiness, metrics ---

@app.get("/live")
def live():
    return {"status": "live"}


@app.get("/ready")
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="not ready") from exc


# Expose Prometheus metrics at /metrics
Instrumentator().instrument(app).expose(app, include_in_schema=False)


# --- Legacy routes ----------------------------------------------------------

@app.middleware("http")
async def legacy_api_redirect(request: Request, call_next):
    """Redirect unversioned /tasks paths (the old client's base) to /api/v1 with 308.

    Preserves method and body; keeps query string intact.
    """
    path = request.url.path
    if path.startswith("/tasks") or path.startswith("/api/tasks"):
        successor = "/api/v1" + path.removeprefix("/api")
        if request.url.query:
            successor = successor + "?" + request.url.query
        return RedirectResponse(url=successor, status_code=308)
    return await call_next(request)
