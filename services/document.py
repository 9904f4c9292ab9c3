import re

from services.check_result import CheckResult
from services.policy import RiskPolicy


_HEX_REF = re.compile(r"^0x[0-9a-fA-F]{8,128}$")
_CID_V0 = re.compile(r"^Qm[1-9A-HJ-NP-Za-km-z]{44}$")
_CID_V1 = re.compile(r"^b[a-z2-7]{58,}$")


class DocumentIntegrityChecker:
    """
    Validates the shape of a document reference. Never raises for bad input:
    a malformed reference yields is_valid=False plus a risk impact.
    """

    def __init__(self, policy: RiskPolicy) -> None:
        self.policy = policy

    def verify(self, document_hash: str | None) -> CheckResult:
        result = CheckResult()
        ref = (document_hash or "").strip()

        if not ref:
            result.is_valid = False
            result.add(self.policy.empty_document_impact, "Document hash missing")
            return result

        if _HEX_REF.match(ref):
            result.add(0, "Document hash format verified")
        elif _CID_V0.match(ref) or _CID_V1.match(ref):
            result.add(0, "Document IPFS reference verified")
        else:
            result.is_valid = False
            result.add(
                self.policy.malformed_document_impact,
                "Document hash format invalid (expected 0x-prefixed hex or IPFS CID)",
            )

        return result
