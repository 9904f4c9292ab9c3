from dataclasses import dataclass, field
from enum import Enum


class SanctionsStatus(str, Enum):
    CLEAR = "CLEAR"
    FLAGGED = "FLAGGED"
    ERROR = "ERROR"


class FraudStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    ERROR = "ERROR"


class CommodityStatus(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ERROR = "ERROR"


class EntityStatus(str, Enum):
    VERIFIED = "VERIFIED"
    ERROR = "ERROR"


@dataclass
class CheckResult:
    """Output of one check component. `status` is None for checks without one."""
    risk_impact: int = 0
    details: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    status: str | None = None
    is_valid: bool = True

    def add(self, impact: int, detail: str | None = None) -> None:
        # impacts only ever increase the score
        self.risk_impact += max(0, int(impact))
        if detail:
            self.details.append(detail)
