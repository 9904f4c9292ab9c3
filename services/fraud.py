import re

from services.check_result import CheckResult, FraudStatus
from services.policy import RiskPolicy, normalize_party_name, normalize_text


class FraudHeuristicsService:
    """
    Structural red flags on party/amount/commodity combinations.

    Hard signals (self-dealing, shell-entity names, non-positive amounts)
    fail the check on their own; soft signals fail it once their combined
    impact reaches `fraud_fail_threshold`.
    """

    def __init__(self, policy: RiskPolicy) -> None:
        self.policy = policy
        self._shell = [re.compile(p) for p in policy.shell_entity_patterns]

    def _shell_pattern(self, name: str) -> str | None:
        text = normalize_text(name)
        for rx in self._shell:
            if rx.search(text):
                return rx.pattern
        return None

    def _typical_max(self, commodity: str) -> int:
        rule = self.policy.commodity_rule(commodity)
        if rule is None:
            return self.policy.unknown_commodity_max_amount
        return rule.typical_max_amount

    def detect(self, *, exporter_name: str, buyer_name: str, amount: int, commodity: str) -> CheckResult:
        result = CheckResult(status=FraudStatus.PASSED.value)
        hard = False

        if amount <= 0:
            hard = True
            result.add(self.policy.fraud_hard_impact, "Fraud signal: non-positive invoice amount")

        exporter = normalize_party_name(exporter_name)
        buyer = normalize_party_name(buyer_name)
        if exporter and exporter == buyer:
            hard = True
            result.add(self.policy.fraud_hard_impact, "Fraud signal: exporter and buyer are the same entity")

        for role, name in (("exporter", exporter_name), ("buyer", buyer_name)):
            if self._shell_pattern(name):
                hard = True
                result.add(self.policy.fraud_shell_impact, f"Fraud signal: {role} name '{name}' matches a shell-entity pattern")

        round_unit = 10 ** self.policy.round_amount_trailing_zeros
        if amount >= self.policy.round_amount_min and amount % round_unit == 0:
            result.add(self.policy.fraud_soft_impact, f"Fraud signal: suspiciously round amount {amount}")

        typical_max = self._typical_max(commodity)
        if typical_max > 0 and amount > typical_max * self.policy.implausible_amount_factor:
            result.add(
                self.policy.fraud_soft_impact,
                f"Fraud signal: amount {amount} implausible for commodity '{commodity}'",
            )

        if hard or result.risk_impact >= self.policy.fraud_fail_threshold:
            result.status = FraudStatus.FAILED.value
            result.is_valid = False
            result.details.append("Fraud check failed")
        else:
            result.details.append("Fraud check passed")

        return result
