from services.check_result import CheckResult, CommodityStatus
from services.policy import RiskPolicy


BASELINE_RISK_SCORE = 10
INVALID_RISK_SCORE = 80

# (inclusive upper bound, rating); anything above the last bound is "D"
RATING_BANDS = (
    (15, "AAA"),
    (25, "AA"),
    (40, "A"),
    (55, "BBB"),
    (70, "BB"),
    (85, "B"),
)


def credit_rating(risk_score: int) -> str:
    """
    Deterministic rating ladder:
      <=15 AAA, <=25 AA, <=40 A, <=55 BBB, <=70 BB, <=85 B, else D
    """
    for upper, rating in RATING_BANDS:
        if risk_score <= upper:
            return rating
    return "D"


class RiskAssessmentService:
    """
    Three independent rule-based sub-assessments: commodity, geographic
    corridor, amount magnitude. None of them can invalidate a verdict on
    its own; they only contribute risk and recommendations.
    """

    def __init__(self, policy: RiskPolicy) -> None:
        self.policy = policy

    # -------------------------
    # Commodity
    # -------------------------
    def assess_commodity(self, *, commodity: str, amount: int) -> CheckResult:
        result = CheckResult(status=CommodityStatus.APPROVED.value)
        rule = self.policy.commodity_rule(commodity)

        if rule is None:
            result.add(self.policy.unknown_commodity_impact, f"Commodity '{commodity}' not in risk table")
            result.recommendations.append("Classify commodity before funding")
            typical_max = self.policy.unknown_commodity_max_amount
        elif rule.prohibited:
            result.status = CommodityStatus.REJECTED.value
            result.add(rule.impact, f"Commodity '{commodity}' is prohibited for financing")
            return result
        else:
            result.add(rule.impact, f"Commodity risk assessed: {commodity} (impact {rule.impact})")
            typical_max = rule.typical_max_amount

        if amount > typical_max:
            result.add(
                self.policy.over_typical_amount_impact,
                f"Amount exceeds typical size for {commodity}",
            )

        return result

    # -------------------------
    # Geography
    # -------------------------
    def _country_impact(self, country: str) -> tuple[int, str]:
        tier = self.policy.country_tiers.get(country)
        if tier is None:
            tier = self.policy.unknown_country_tier
        return self.policy.tier_impacts.get(tier, 0), tier

    def assess_geography(self, *, supplier_country: str, buyer_country: str) -> CheckResult:
        result = CheckResult()
        supplier = self.policy.canonical_country(supplier_country)
        buyer = self.policy.canonical_country(buyer_country)

        override = self.policy.corridor_impact(supplier, buyer)
        if override is not None:
            result.add(override, f"High-risk trade corridor: {supplier_country} -> {buyer_country}")
            return result

        s_impact, s_tier = self._country_impact(supplier)
        b_impact, b_tier = self._country_impact(buyer)
        impact = max(s_impact, b_impact)

        if supplier == buyer:
            impact //= 2  # domestic trade

        result.add(
            impact,
            f"Geographic risk: {supplier_country} ({s_tier}) -> {buyer_country} ({b_tier})",
        )
        if s_tier == "high" or b_tier == "high":
            result.recommendations.append("Verify shipping documents for high-risk jurisdiction")

        return result

    # -------------------------
    # Amount
    # -------------------------
    def assess_amount(self, amount: int) -> CheckResult:
        result = CheckResult()

        for upper, impact, recommendation in self.policy.amount_bands:
            if amount < upper:
                if impact:
                    result.add(impact, f"Amount risk: {amount} below {upper} (impact {impact})")
                if recommendation:
                    result.recommendations.append(recommendation)
                return result

        result.add(self.policy.top_band_impact, f"Amount risk: {amount} in top band (impact {self.policy.top_band_impact})")
        if self.policy.top_band_recommendation:
            result.recommendations.append(self.policy.top_band_recommendation)
        return result
