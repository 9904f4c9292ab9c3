import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from sqlalchemy.orm import Session

from core.config import settings
from core.logger import log
from models.invoice import InvoiceSnapshot
from models.verification import VerificationRecord
from queries.invoices import save_snapshot
from queries.verifications import save_verdict
from schemas.invoice import VerificationRequest
from services.check_result import (
    CheckResult,
    CommodityStatus,
    EntityStatus,
    FraudStatus,
    SanctionsStatus,
)
from services.document import DocumentIntegrityChecker
from services.fraud import FraudHeuristicsService
from services.hasher import input_hash
from services.policy import DEFAULT_POLICY, RiskPolicy, load_policy
from services.risk_engine import (
    BASELINE_RISK_SCORE,
    INVALID_RISK_SCORE,
    RiskAssessmentService,
    credit_rating,
)
from services.sanctions import SanctionsScreeningService


ERROR_RISK_SCORE = 99
ERROR_RATING = "ERROR"

# Synthetic fixture for POST /verification/test-verify
TEST_INVOICE = {
    "invoiceId": "TEST-001",
    "documentHash": "0x1234567890abcdef",
    "invoiceDetails": {
        "commodity": "Electronics",
        "amount": "50000000",
        "supplierCountry": "Singapore",
        "buyerCountry": "United States",
        "exporterName": "Test Exports Ltd",
        "buyerName": "Test Corp USA",
    },
    "metadata": {"test": True},
}


class VerificationState(str, Enum):
    RECEIVED = "RECEIVED"
    SNAPSHOT_STORED = "SNAPSHOT_STORED"
    CHECKS_RUNNING = "CHECKS_RUNNING"
    AGGREGATED = "AGGREGATED"
    PERSISTED = "PERSISTED"
    RESPONDED = "RESPONDED"
    FAILED = "FAILED"


class CheckFailed(RuntimeError):
    """A check component raised; the run cannot be aggregated."""

    def __init__(self, check: str, cause: BaseException) -> None:
        super().__init__(f"{check} check failed: {cause}")
        self.check = check
        self.cause = cause


@dataclass
class VerificationRun:
    verification_id: str
    request: VerificationRequest
    started: float = field(default_factory=time.perf_counter)
    state: VerificationState = VerificationState.RECEIVED
    error: str | None = None
    record: VerificationRecord | None = None

    def advance(self, state: VerificationState) -> None:
        log.debug("verification %s: %s -> %s", self.verification_id, self.state.value, state.value)
        self.state = state

    @property
    def failed(self) -> bool:
        return self.error is not None

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started) * 1000)


@dataclass
class _Check:
    name: str
    fn: Callable[[], CheckResult]


class VerificationService:
    """
    Verification orchestrator.

    RECEIVED -> SNAPSHOT_STORED -> CHECKS_RUNNING -> AGGREGATED -> PERSISTED
    -> RESPONDED, or FAILED from any step after RECEIVED. Every run persists
    exactly one VerificationRecord, written once after aggregation.
    """

    def __init__(
        self,
        policy: RiskPolicy = DEFAULT_POLICY,
        *,
        document: DocumentIntegrityChecker | None = None,
        sanctions: SanctionsScreeningService | None = None,
        fraud: FraudHeuristicsService | None = None,
        risk: RiskAssessmentService | None = None,
        check_timeout: float | None = None,
        error_penalty: int | None = None,
        strict_check_errors: bool | None = None,
    ) -> None:
        self.policy = policy
        self.document = document or DocumentIntegrityChecker(policy)
        self.sanctions = sanctions or SanctionsScreeningService(policy)
        self.fraud = fraud or FraudHeuristicsService(policy)
        self.risk = risk or RiskAssessmentService(policy)

        self.check_timeout = settings.CHECK_TIMEOUT_SECONDS if check_timeout is None else check_timeout
        self.error_penalty = settings.CHECK_ERROR_PENALTY if error_penalty is None else error_penalty
        self.strict_check_errors = (
            settings.STRICT_CHECK_ERRORS if strict_check_errors is None else strict_check_errors
        )

    # --------------------------------------------------
    # Public API
    # --------------------------------------------------
    async def verify(self, db: Session, request: VerificationRequest) -> VerificationRun:
        """
        Run the full pipeline. Returns the run (record persisted, possibly an
        error verdict). Raises AuditPersistenceError only when no verdict
        could be recorded at all.
        """
        run = VerificationRun(verification_id=str(uuid.uuid4()), request=request)
        log.info("Starting verification %s for invoice %s", run.verification_id, request.invoice_id)

        try:
            self._store_snapshot(db, run)
            run.advance(VerificationState.SNAPSHOT_STORED)

            run.advance(VerificationState.CHECKS_RUNNING)
            results = await self._run_checks(request)

            record = self._aggregate(run, results)
            run.advance(VerificationState.AGGREGATED)

        except Exception as e:
            log.exception("Verification failed: %s - %s", run.verification_id, e)
            run.error = str(e)
            run.advance(VerificationState.FAILED)
            record = self._error_record(run)

        # write-after-aggregate: exactly one verdict per run
        run.record = save_verdict(db, record)
        if not run.failed:
            run.advance(VerificationState.PERSISTED)

        log.info(
            "Verification completed: %s - valid=%s risk=%s rating=%s",
            run.verification_id,
            record.is_valid,
            record.risk_score,
            record.credit_rating,
        )
        return run

    async def verify_test_invoice(self, db: Session) -> VerificationRun:
        return await self.verify(db, VerificationRequest.model_validate(TEST_INVOICE))

    # --------------------------------------------------
    # Steps
    # --------------------------------------------------
    def _store_snapshot(self, db: Session, run: VerificationRun) -> None:
        req = run.request
        d = req.invoice_details
        save_snapshot(
            db,
            InvoiceSnapshot(
                verification_id=run.verification_id,
                invoice_id=req.invoice_id,
                document_hash=req.document_hash,
                commodity=d.commodity,
                amount=d.amount,
                supplier_country=d.supplier_country,
                buyer_country=d.buyer_country,
                exporter_name=d.exporter_name,
                buyer_name=d.buyer_name,
                metadata_=req.metadata or {},
                created_at=datetime.now(timezone.utc),
            ),
        )

    def _checks(self, request: VerificationRequest) -> list[_Check]:
        d = request.invoice_details
        amount = d.amount_value
        return [
            _Check("document", lambda: self.document.verify(request.document_hash)),
            _Check(
                "sanctions",
                lambda: self.sanctions.screen(
                    exporter_name=d.exporter_name,
                    buyer_name=d.buyer_name,
                    supplier_country=d.supplier_country,
                    buyer_country=d.buyer_country,
                ),
            ),
            _Check(
                "fraud",
                lambda: self.fraud.detect(
                    exporter_name=d.exporter_name,
                    buyer_name=d.buyer_name,
                    amount=amount,
                    commodity=d.commodity,
                ),
            ),
            _Check("commodity", lambda: self.risk.assess_commodity(commodity=d.commodity, amount=amount)),
            _Check(
                "geography",
                lambda: self.risk.assess_geography(
                    supplier_country=d.supplier_country,
                    buyer_country=d.buyer_country,
                ),
            ),
            _Check("amount", lambda: self.risk.assess_amount(amount)),
        ]

    async def _run_one(self, check: _Check) -> CheckResult:
        return await asyncio.wait_for(asyncio.to_thread(check.fn), timeout=self.check_timeout)

    async def _run_checks(self, request: VerificationRequest) -> dict[str, CheckResult | None]:
        """
        Fan out all checks, fan in once every one has finished. A failing
        check never cancels its siblings. Timeouts (and, in non-strict mode,
        exceptions) resolve to None, i.e. the check's ERROR status.
        """
        checks = self._checks(request)
        outcomes = await asyncio.gather(*(self._run_one(c) for c in checks), return_exceptions=True)

        results: dict[str, CheckResult | None] = {}
        first_failure: CheckFailed | None = None

        for check, outcome in zip(checks, outcomes):
            if isinstance(outcome, CheckResult):
                results[check.name] = outcome
            elif isinstance(outcome, asyncio.TimeoutError):
                log.warning("%s check timed out after %ss", check.name, self.check_timeout)
                results[check.name] = None
            elif isinstance(outcome, Exception):
                if self.strict_check_errors:
                    if first_failure is None:
                        first_failure = CheckFailed(check.name, outcome)
                else:
                    log.error("%s check raised, degrading to ERROR: %s", check.name, outcome)
                    results[check.name] = None
            else:
                # CancelledError and other BaseExceptions are not ours to absorb
                raise outcome

        if first_failure is not None:
            raise first_failure
        return results

    def _aggregate(self, run: VerificationRun, results: dict[str, CheckResult | None]) -> VerificationRecord:
        """
        Sum impacts in a fixed check order so details and score are
        reproducible regardless of completion order.
        """
        score = BASELINE_RISK_SCORE
        details: list[str] = []
        recommendations: list[str] = []
        checks: dict[str, Any] = {
            "documentIntegrity": True,
            "sanctionsCheck": SanctionsStatus.CLEAR.value,
            "fraudCheck": FraudStatus.PASSED.value,
            "commodityCheck": CommodityStatus.APPROVED.value,
            "entityVerification": EntityStatus.VERIFIED.value,
        }
        error_status = {
            "document": ("documentIntegrity", False),
            "sanctions": ("sanctionsCheck", SanctionsStatus.ERROR.value),
            "fraud": ("fraudCheck", FraudStatus.ERROR.value),
            "commodity": ("commodityCheck", CommodityStatus.ERROR.value),
        }

        for name in ("document", "sanctions", "fraud", "commodity", "geography", "amount"):
            result = results.get(name)
            if result is None:
                score += self.error_penalty
                details.append(f"{name.capitalize()} check unavailable (ERROR)")
                if name in error_status:
                    key, value = error_status[name]
                    checks[key] = value
                continue

            score += result.risk_impact
            details.extend(result.details)
            recommendations.extend(result.recommendations)

            if name == "document":
                checks["documentIntegrity"] = result.is_valid
            elif name == "sanctions":
                checks["sanctionsCheck"] = result.status
            elif name == "fraud":
                checks["fraudCheck"] = result.status
            elif name == "commodity":
                checks["commodityCheck"] = result.status

        is_valid = True
        if checks["sanctionsCheck"] == SanctionsStatus.FLAGGED.value:
            is_valid = False
        if checks["fraudCheck"] == FraudStatus.FAILED.value:
            is_valid = False
        if score >= INVALID_RISK_SCORE:
            is_valid = False
            details.append("Transaction rejected due to high risk score")

        return self._record(
            run,
            is_valid=is_valid,
            risk_score=score,
            rating=credit_rating(score),
            checks=checks,
            details=details,
            recommendations=recommendations,
        )

    def _error_record(self, run: VerificationRun) -> VerificationRecord:
        return self._record(
            run,
            is_valid=False,
            risk_score=ERROR_RISK_SCORE,
            rating=ERROR_RATING,
            checks={
                "documentIntegrity": False,
                "sanctionsCheck": SanctionsStatus.ERROR.value,
                "fraudCheck": FraudStatus.ERROR.value,
                "commodityCheck": CommodityStatus.ERROR.value,
                "entityVerification": EntityStatus.ERROR.value,
            },
            details=[f"Verification service error: {run.error}"],
            recommendations=["Manual review required"],
        )

    def _record(
        self,
        run: VerificationRun,
        *,
        is_valid: bool,
        risk_score: int,
        rating: str,
        checks: dict,
        details: list[str],
        recommendations: list[str],
    ) -> VerificationRecord:
        req = run.request
        return VerificationRecord(
            verification_id=run.verification_id,
            invoice_id=req.invoice_id,
            document_hash=req.document_hash,
            is_valid=is_valid,
            risk_score=risk_score,
            credit_rating=rating,
            checks=checks,
            details=details,
            recommendations=recommendations,
            policy_version=self.policy.version,
            input_hash=input_hash(
                req.invoice_id,
                req.document_hash,
                req.invoice_details.model_dump(),
            ),
            metadata_=req.metadata or {},
            processing_time_ms=run.elapsed_ms(),
            verified_at=datetime.now(timezone.utc),
        )


def build_verification_service() -> VerificationService:
    policy = load_policy(settings.POLICY_FILE) if settings.POLICY_FILE else DEFAULT_POLICY
    log.info("Verification policy version %s", policy.version)
    return VerificationService(policy)
