from difflib import SequenceMatcher

from services.check_result import CheckResult, SanctionsStatus
from services.policy import RiskPolicy, normalize_party_name, normalize_text


def similarity(a: str, b: str) -> float:
    if not a or not b:
        return 0.0
    return SequenceMatcher(None, a, b).ratio()


def _contains_tokens(haystack: str, needle: str) -> bool:
    # whole-token containment, e.g. "bank melli iran london branch", "sovcomflot shipping"
    h, n = haystack.split(), needle.split()
    if not n or len(n) > len(h):
        return False
    return any(h[i:i + len(n)] == n for i in range(len(h) - len(n) + 1))


def _token_runs(text: str):
    """Every contiguous run of whole tokens in `text`, longest first."""
    tokens = text.split()
    for size in range(len(tokens), 0, -1):
        for i in range(len(tokens) - size + 1):
            yield " ".join(tokens[i:i + size])


class SanctionsScreeningService:
    """
    Screens party names and countries against the policy's sanctions data.
    Pure function of (inputs, policy.version).
    """

    def __init__(self, policy: RiskPolicy) -> None:
        self.policy = policy
        # pre-normalized once; order preserved so matches are reported deterministically
        self._entities = [(name, normalize_party_name(name)) for name in policy.sanctioned_entities]

    def match_entity(self, party_name: str) -> str | None:
        """Return the sanctioned entity `party_name` matches, if any."""
        candidate = normalize_party_name(party_name)
        if not candidate:
            return None

        for original, normalized in self._entities:
            if candidate == normalized or _contains_tokens(candidate, normalized):
                return original

        best_name, best_score = None, 0.0
        for original, normalized in self._entities:
            score = similarity(candidate, normalized)
            if score > best_score:
                best_name, best_score = original, score

        if best_score >= self.policy.fuzzy_match_threshold:
            return best_name
        return None

    def match_country(self, country: str) -> str | None:
        canonical = self.policy.canonical_country(country)
        if not canonical:
            return None
        for sanctioned in self.policy.sanctioned_countries:
            if canonical == sanctioned or similarity(canonical, sanctioned) >= self.policy.fuzzy_match_threshold:
                return sanctioned

        # "Iran (Islamic Republic of)", "Crimea region": a sanctioned name or alias inside a longer string
        for run in _token_runs(normalize_text(country)):
            sanctioned = self.policy.canonical_country(run)
            if sanctioned in self.policy.sanctioned_countries:
                return sanctioned
        return None

    def screen(
        self,
        *,
        exporter_name: str,
        buyer_name: str,
        supplier_country: str,
        buyer_country: str,
    ) -> CheckResult:
        result = CheckResult(status=SanctionsStatus.CLEAR.value)
        hits: list[str] = []

        for role, name in (("Exporter", exporter_name), ("Buyer", buyer_name)):
            match = self.match_entity(name)
            if match:
                hits.append(f"Sanctions match: {role.lower()} '{name}' matches sanctioned entity '{match}'")

        for role, country in (("Supplier", supplier_country), ("Buyer", buyer_country)):
            match = self.match_country(country)
            if match:
                hits.append(f"Sanctions match: {role.lower()} country '{country}' is sanctioned ({match})")

        if hits:
            result.status = SanctionsStatus.FLAGGED.value
            result.is_valid = False
            result.add(self.policy.sanctions_impact)
            result.details.extend(hits)
            result.recommendations.append("Escalate to compliance: sanctions match requires review")
            return result

        watchlisted = []
        for country in (supplier_country, buyer_country):
            canonical = self.policy.canonical_country(country)
            if canonical in self.policy.watchlist_countries and canonical not in watchlisted:
                watchlisted.append(canonical)

        for canonical in watchlisted:
            result.add(self.policy.watchlist_impact, f"Country on sanctions watchlist: {canonical}")

        result.details.append("Sanctions screening passed: no sanctioned parties or countries")
        return result
