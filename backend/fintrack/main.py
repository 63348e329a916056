"""
Fintrack API entrypoint.

Every /api route except the health check expects a request signed by the
Fintrack frontend; the signed user id scopes all queries.
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

from fintrack.database import engine, Base
from fintrack.db_helpers import (
    authenticate_internal_request_from_headers,
    clear_request_user_id,
    set_request_user_id,
)
from fintrack.routes import api_router

logger = logging.getLogger(__name__)

PUBLIC_API_PATHS = {"/api/health"}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "y", "on")


def _allowed_origins() -> list[str]:
    """CORS_ALLOW_ORIGINS (comma separated), else the frontend URL."""
    configured = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "").split(",") if o.strip()]
    if configured:
        return configured
    frontend_url = os.getenv("FRONTEND_URL") or os.getenv("APP_URL")
    return [frontend_url or "http://localhost:3000"]


def _requires_signature(request: Request) -> bool:
    path = request.url.path
    return (
        request.method != "OPTIONS"
        and path.startswith("/api/")
        and path not in PUBLIC_API_PATHS
    )


def _signed_target(request: Request) -> str:
    if request.url.query:
        return f"{request.url.path}?{request.url.query}"
    return request.url.path


# Local runs only; deployed databases are migrated separately
if _env_bool("AUTO_CREATE_TABLES", default=False):
    logger.warning("AUTO_CREATE_TABLES is enabled; creating tables via SQLAlchemy metadata.")
    Base.metadata.create_all(bind=engine)

docs_enabled = _env_bool("API_DOCS_ENABLED", default=False)

app = FastAPI(
    title="Fintrack API",
    description="Transactions, categories and recurring bills for personal and business accounts",
    version="0.1.0",
    docs_url="/docs" if docs_enabled else None,
    redoc_url="/redoc" if docs_enabled else None,
    openapi_url="/openapi.json" if docs_enabled else None,
)


@app.middleware("http")
async def signed_request_middleware(request: Request, call_next):
    if not _requires_signature(request):
        return await call_next(request)

    try:
        user_id = authenticate_internal_request_from_headers(
            method=request.method,
            path_with_query=_signed_target(request),
            headers=request.headers,
        )
    except HTTPException as exc:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    except Exception:
        logger.exception("Unexpected error verifying request signature")
        return JSONResponse(status_code=500, content={"detail": "Internal authentication failure."})

    token = set_request_user_id(user_id)
    try:
        return await call_next(request)
    finally:
        clear_request_user_id(token)


app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.get("/")
def root():
    payload = {"message": "Fintrack API"}
    if docs_enabled:
        payload["docs"] = "/docs"
    return payload


@app.get("/health")
@app.get("/api/health")
def health():
    return {"status": "healthy"}
