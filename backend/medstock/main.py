"""
MedStock backend: medicine inventory for one main store and its sub-stores.

ARCHITECTURE:
- Google Sheets: system of record (medicines, stock, stores, transactions, users)
- FastAPI backend: ledger rules, transfers, audit trail, dashboard rollups
- SQLite: local session cache only (token, user, spreadsheet credentials)

Reads are served from the last synced snapshot (POST /sync/refresh).
Writes always go straight to the sheet and leave one audit entry each.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from medstock.api.deps import get_inventory, get_session_store
from medstock.api.routes import auth, dashboard, medicines, stock, sync, transactions, transfers
from medstock.api.routes import settings as settings_routes
from medstock.core.config import settings
from medstock.core.exceptions import (
    AuditWriteFailed,
    BusinessError,
    MedStockError,
    TransferIncompleteError,
)
from medstock.core.logging_config import setup_logging
from medstock.db.init_db import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    1. Logging handlers
    2. Session tables
    3. First sync, if the spreadsheet is already configured
    """
    setup_logging()
    init_db()
    logger.info("Session database initialized")

    api_key, sheet_id = get_session_store().sheets_credentials()
    if api_key and sheet_id:
        try:
            get_inventory().refresh_all_data()
        except MedStockError as e:
            logger.warning(f"Initial sync failed, serving empty snapshot until refresh: {e}")
    else:
        logger.warning("Spreadsheet not configured; POST /settings/sheets first")

    yield

    logger.info("Shutting down")


app = FastAPI(
    title="MedStock API",
    description="Medicine inventory ledger on top of Google Sheets.",
    version="0.1.0",
    lifespan=lifespan,
)

# SECURITY: Restrict CORS to specific methods and headers (not wildcards)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
    ],
    max_age=600,  # Cache preflight for 10 minutes
    expose_headers=["Content-Type"],
)


@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.exception_handler(MedStockError)
async def domain_error_handler(request: Request, exc: MedStockError):
    http_exc = BusinessError.from_domain(exc)
    return JSONResponse(
        status_code=http_exc.status_code,
        content={"detail": http_exc.detail},
        headers=getattr(http_exc, "headers", None),
    )


@app.exception_handler(AuditWriteFailed)
async def audit_write_failed_handler(request: Request, exc: AuditWriteFailed):
    """The change is saved; only its audit entry is missing."""
    logger.error(f"Audit entry missing for {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=207,
        content={
            "detail": "Change saved, but the audit entry could not be written.",
            "audit_missing": True,
            "result": jsonable_encoder(exc.result),
        },
    )


@app.exception_handler(TransferIncompleteError)
async def transfer_incomplete_handler(request: Request, exc: TransferIncompleteError):
    logger.critical(f"Transfer needs manual repair: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Stock was removed from the source but not added to the target. "
                      "Correct the target quantity manually.",
            "transfer_incomplete": True,
            "transfer": jsonable_encoder(exc.transfer),
        },
    )


app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(settings_routes.router, prefix="/settings", tags=["settings"])
app.include_router(sync.router, prefix="/sync", tags=["sync"])
app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
app.include_router(medicines.router, prefix="/medicines", tags=["medicines"])
app.include_router(stock.router, prefix="/stock", tags=["stock"])
app.include_router(transfers.router, prefix="/transfers", tags=["transfers"])
app.include_router(transactions.router, prefix="/transactions", tags=["transactions"])


@app.get("/health")
def health():
    return {"status": "ok"}
