from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.logging import setup_logging
from core.config import settings
from core.errors import AuditPersistenceError
from core.logger import log
from db.session import engine
from models.base import Base

# Import all models to register them with SQLAlchemy BEFORE any queries
from models.invoice import InvoiceSnapshot
from models.verification import VerificationRecord

from controllers.health import router as health_router
from controllers.verification import router as verification_router


setup_logging()

app = FastAPI(title="Trade Invoice Verification API")

# --- CORS middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- DB tables ---
Base.metadata.create_all(bind=engine)

# --- Routers ---
app.include_router(health_router)
app.include_router(verification_router)

# --- Internal in-memory stores ---
# Controllers use: from helpers import cache_get/cache_set, rate_limit_hit
app.state.ttl_cache = {}    # dict[str, (expires_at, data)]
app.state.rate_limits = {}  # dict[str, (window_started_at, hits)]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@app.exception_handler(RequestValidationError)
async def on_validation_error(request: Request, exc: RequestValidationError):
    # malformed input is rejected before the pipeline runs; nothing is persisted
    return JSONResponse(
        status_code=400,
        content={
            "message": "Invalid request data",
            "errors": jsonable_encoder(exc.errors()),
            "timestamp": _now_iso(),
        },
    )


@app.exception_handler(AuditPersistenceError)
async def on_persistence_error(request: Request, exc: AuditPersistenceError):
    log.error("Audit store write failed: %s", exc)
    return JSONResponse(
        status_code=503,
        content={
            "message": "Verification could not be recorded; retry later",
            "verificationId": exc.verification_id,
            "timestamp": _now_iso(),
        },
    )
