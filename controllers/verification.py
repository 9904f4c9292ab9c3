import asyncio
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from core.config import settings
from core.logger import log
from db.session import get_db
from helpers import cache_clear_prefix, cache_get, cache_set, client_key, rate_limit_hit
from queries.verifications import aggregate_stats, get_verdict, list_history
from schemas.invoice import VerificationRequest
from schemas.responses import ApiResponse
from schemas.verification import (
    ErrorEnvelope,
    OraclePayloadOut,
    StatsOut,
    VerdictOut,
    VerifyResponse,
)
from services.oracle import encode_payload
from services.verification import (
    VerificationRun,
    VerificationService,
    VerificationState,
    build_verification_service,
)

router = APIRouter(prefix="/verification", tags=["verification"])

_service = build_verification_service()


def get_verification_service() -> VerificationService:
    return _service


def enforce_rate_limit(request: Request) -> None:
    """
    Per-client ceiling on pipeline runs (default 10/minute).
    """
    store = request.app.state.rate_limits
    allowed, retry_after = rate_limit_hit(
        store,
        f"verify:{client_key(request)}",
        limit=settings.RATE_LIMIT_PER_MINUTE,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail="Too many requests",
            headers={"Retry-After": str(retry_after)},
        )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _run_and_invalidate(request: Request, run_coro) -> VerificationRun:
    run = await run_coro

    # new verdict -> history/stats for this invoice are stale
    cache = request.app.state.ttl_cache
    cache.pop(f"history:{run.request.invoice_id}", None)
    cache_clear_prefix(cache, "stats")
    return run


async def _respond(request: Request, run_coro, started: float):
    """
    Shield the pipeline from client disconnects: the verdict is still
    completed and persisted if the caller goes away.
    """
    task = asyncio.ensure_future(_run_and_invalidate(request, run_coro))
    run = await asyncio.shield(task)
    processing_time = int((time.perf_counter() - started) * 1000)

    if run.failed:
        log.error("Verification failed for invoice %s: %s", run.request.invoice_id, run.error)
        envelope = ErrorEnvelope(
            message="Verification service temporarily unavailable",
            verification_id=run.verification_id,
            timestamp=_now_iso(),
        )
        return JSONResponse(status_code=400, content=envelope.model_dump(by_alias=True))

    out = VerifyResponse.model_validate(run.record)
    out.invoice_details = run.request.invoice_details
    out.processing_time = f"{processing_time}ms"

    run.advance(VerificationState.RESPONDED)
    log.info(
        "Verification completed for invoice %s in %sms",
        run.request.invoice_id,
        processing_time,
    )
    return out


@router.post(
    "/verify-documents",
    response_model=VerifyResponse,
    responses={400: {"model": ErrorEnvelope}, 429: {"description": "Too many requests"}},
    dependencies=[Depends(enforce_rate_limit)],
)
async def verify_documents(
    body: VerificationRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: VerificationService = Depends(get_verification_service),
):
    """
    Full verification: document integrity, sanctions, fraud, commodity /
    geographic / amount risk. Always persists exactly one verdict.
    Internal pipeline failure -> 400 envelope carrying the verificationId.
    """
    log.info("Document verification request for invoice: %s", body.invoice_id)
    started = time.perf_counter()
    return await _respond(request, service.verify(db, body), started)


@router.get("/status/{verification_id}", response_model=VerdictOut)
def verification_status(
    verification_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Persisted verdict by id. Verdicts are immutable, so the TTL cache is safe.
    """
    cache = request.app.state.ttl_cache
    cache_key = f"status:{verification_id}"
    cached = cache_get(cache, cache_key)
    if cached is not None:
        return cached

    record = get_verdict(db, verification_id)
    if not record:
        raise HTTPException(status_code=404, detail=f"Verification record not found: {verification_id}")

    out = VerdictOut.model_validate(record)
    cache_set(cache, cache_key, out, ttl_seconds=settings.STATUS_CACHE_TTL_SECONDS)
    return out


@router.get("/history/{invoice_id}", response_model=list[VerdictOut])
def verification_history(
    invoice_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    All verdicts for an invoice, newest first.
    """
    cache = request.app.state.ttl_cache
    cache_key = f"history:{invoice_id}"
    cached = cache_get(cache, cache_key)
    if cached is not None:
        return cached

    out = [VerdictOut.model_validate(r) for r in list_history(db, invoice_id)]
    cache_set(cache, cache_key, out, ttl_seconds=settings.HISTORY_CACHE_TTL_SECONDS)
    return out


@router.post(
    "/test-verify",
    response_model=VerifyResponse,
    responses={400: {"model": ErrorEnvelope}},
    dependencies=[Depends(enforce_rate_limit)],
)
async def test_verify(
    request: Request,
    db: Session = Depends(get_db),
    service: VerificationService = Depends(get_verification_service),
):
    """
    Smoke test: runs the pipeline on the built-in fixture invoice.
    """
    log.info("Test verification request")
    started = time.perf_counter()
    return await _respond(request, service.verify_test_invoice(db), started)


@router.get("/stats", response_model=ApiResponse[StatsOut])
def verification_stats(request: Request, db: Session = Depends(get_db)):
    """
    Audit analytics: totals, validation rate, average risk, rating distribution.
    """
    cache = request.app.state.ttl_cache
    cached = cache_get(cache, "stats")
    if cached is not None:
        return ApiResponse(data=cached)

    raw = aggregate_stats(db)
    total = raw["total"]
    valid = raw["valid_count"]

    data = StatsOut(
        total=total,
        valid_count=valid,
        invalid_count=total - valid,
        validation_rate=f"{valid / total * 100:.2f}%" if total > 0 else "0%",
        average_risk_score=raw["average_risk_score"],
        rating_distribution=raw["rating_distribution"],
    )

    cache_set(cache, "stats", data, ttl_seconds=settings.HISTORY_CACHE_TTL_SECONDS)
    return ApiResponse(data=data)


@router.get("/oracle/{verification_id}", response_model=OraclePayloadOut)
def oracle_payload(verification_id: str, db: Session = Depends(get_db)):
    """
    Compact payload the on-chain consumer stores:
    "<valid>|<score>|<rating>|<details>|<unix_ts>" within the byte budget.
    """
    record = get_verdict(db, verification_id)
    if not record:
        raise HTTPException(status_code=404, detail=f"Verification record not found: {verification_id}")

    payload = encode_payload(record)
    return OraclePayloadOut(
        verification_id=verification_id,
        payload=payload,
        byte_length=len(payload.encode("utf-8")),
    )
