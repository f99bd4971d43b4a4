"""
FastAPI application for the PopCam record store.

Run with: python main.py serve --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.middleware import ApiKeyMiddleware
from src.api.rate_limit import limiter
from src.api.routes import account, credits, health, records, uploads
from src.core.cloudwatch_logging import flush_cloudwatch_logging, setup_cloudwatch_logging
from src.core.config import AppConfig
from src.core.errors import (
    CreditAccountError,
    DuplicateRecordError,
    InsufficientCreditsError,
    NotConfiguredError,
    RecordStorageError,
)
from src.db.engine import close_db, get_session_factory, init_db
from src.services.container import build_services

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

config = AppConfig()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Application starting up...")

    # CloudWatch logging (record store logs only, opt-in via CLOUDWATCH_ENABLED=true)
    setup_cloudwatch_logging()

    if config.storage.validate():
        logger.info("Cloudflare R2 storage configured")
    else:
        logger.warning("R2 storage not configured - cloud media fallback disabled")

    await init_db(config.ledger)
    app.state.services = build_services(config, get_session_factory())

    yield

    # Shutdown: let queued cleanup writes land before the engine goes away
    outcomes = await app.state.services.background.drain()
    failed = [o.name for o in outcomes if not o.ok]
    if failed:
        logger.warning(f"{len(failed)} background task(s) failed during shutdown: {failed}")
    await close_db()
    logger.info("Application shutting down...")
    flush_cloudwatch_logging()


app = FastAPI(
    title="PopCam Record Store API",
    description="""
Local-first store for generated-media records with cloud reconciliation.

## Features
- **Offline-first history** - Records are cached on the device and read back even when the cloud is down
- **Self-healing media refs** - Missing local files fall back to signed object-store URLs
- **Cloud sync** - Ledger entries created on other devices are pulled into the local history
- **Credits** - Per-user generation balance

## Workflow
1. **POST** `/api/v1/uploads` - Back a generated image up to the object store
2. **POST** `/api/v1/records` - Save the generation record locally
3. **GET** `/api/v1/records` - Read the healed history, newest first
4. **POST** `/api/v1/records/sync` - Pull records created elsewhere
    """,
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.state.admin_api_key = config.admin_api_key
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(InsufficientCreditsError)
async def insufficient_credits_handler(request: Request, exc: InsufficientCreditsError):
    return JSONResponse(
        status_code=402,
        content={"detail": str(exc), "balance": exc.balance, "required": exc.required},
    )


@app.exception_handler(CreditAccountError)
async def credit_account_handler(request: Request, exc: CreditAccountError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DuplicateRecordError)
async def duplicate_record_handler(request: Request, exc: DuplicateRecordError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(NotConfiguredError)
async def not_configured_handler(request: Request, exc: NotConfiguredError):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(RecordStorageError)
async def record_storage_handler(request: Request, exc: RecordStorageError):
    logger.error(f"Record storage failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Failed to write local records"})


# Order matters: the last added middleware runs first
app.add_middleware(
    ApiKeyMiddleware,
    api_key=config.api_key,
    exempt_paths={"/", "/api/v1/health", "/docs", "/redoc", "/openapi.json"},
)

# Trusted Host middleware - reject requests with unexpected Host headers
app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=config.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-User-Id", "X-User-Email", "X-Api-Key", "X-Admin-Key"],
)

# Include routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(records.router, prefix="/api/v1")
app.include_router(account.router, prefix="/api/v1")
app.include_router(credits.router, prefix="/api/v1")
app.include_router(uploads.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root():
    """Point to API documentation."""
    return {
        "message": "PopCam Record Store API",
        "docs": "/docs",
        "redoc": "/redoc",
    }
