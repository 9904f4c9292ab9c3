import json
import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path


# Legal-form tokens stripped before comparing party names
LEGAL_SUFFIXES = (
    "ltd", "limited", "inc", "incorporated", "corp", "corporation", "co", "company",
    "llc", "plc", "gmbh", "sa", "ag", "bv", "nv", "pte", "pty", "fze", "fzco", "srl", "spa",
)


def normalize_text(value: str | None) -> str:
    """
    Lowercase, drop punctuation, collapse whitespace.
    """
    s = (value or "").casefold()
    s = re.sub(r"[^\w\s]", " ", s)
    return " ".join(s.split())


def normalize_party_name(value: str | None, suffixes: tuple[str, ...] = LEGAL_SUFFIXES) -> str:
    tokens = normalize_text(value).split()
    while tokens and tokens[-1] in suffixes:
        tokens.pop()
    return " ".join(tokens)


@dataclass(frozen=True)
class CommodityRule:
    impact: int
    typical_max_amount: int
    prohibited: bool = False


@dataclass(frozen=True)
class RiskPolicy:
    """
    Versioned policy data for every check component.

    Components receive the policy at construction, so a verdict is a pure
    function of (input, policy.version). Bump `version` whenever any table
    below changes.
    """
    version: str

    # --- sanctions ---
    sanctioned_countries: tuple[str, ...]
    sanctioned_entities: tuple[str, ...]
    watchlist_countries: tuple[str, ...]
    country_aliases: dict[str, str]
    fuzzy_match_threshold: float = 0.88
    sanctions_impact: int = 50
    watchlist_impact: int = 5

    # --- fraud ---
    shell_entity_patterns: tuple[str, ...] = ()
    round_amount_min: int = 1_000_000_000
    round_amount_trailing_zeros: int = 8
    implausible_amount_factor: int = 10
    fraud_hard_impact: int = 30
    fraud_shell_impact: int = 25
    fraud_soft_impact: int = 15
    fraud_fail_threshold: int = 30

    # --- commodity ---
    commodities: dict[str, CommodityRule] = field(default_factory=dict)
    unknown_commodity_impact: int = 10
    unknown_commodity_max_amount: int = 1_000_000_000
    over_typical_amount_impact: int = 5

    # --- geography ---
    country_tiers: dict[str, str] = field(default_factory=dict)
    tier_impacts: dict[str, int] = field(default_factory=dict)
    unknown_country_tier: str = "medium"
    corridor_overrides: dict[tuple[str, str], int] = field(default_factory=dict)

    # --- amount: ascending (upper_bound_exclusive, impact, recommendation) ---
    amount_bands: tuple[tuple[int, int, str], ...] = ()
    top_band_impact: int = 20
    top_band_recommendation: str = ""

    # --- document ---
    empty_document_impact: int = 25
    malformed_document_impact: int = 15

    def canonical_country(self, value: str | None) -> str:
        key = normalize_text(value)
        return self.country_aliases.get(key, key)

    def commodity_rule(self, commodity: str | None) -> CommodityRule | None:
        return self.commodities.get(normalize_text(commodity))

    def corridor_impact(self, a: str, b: str) -> int | None:
        return self.corridor_overrides.get(tuple(sorted((a, b))))


def _corridors(pairs: dict[tuple[str, str], int]) -> dict[tuple[str, str], int]:
    return {tuple(sorted(k)): v for k, v in pairs.items()}


_LOW = (
    "united states", "united kingdom", "germany", "france", "netherlands", "switzerland",
    "singapore", "japan", "south korea", "canada", "australia", "new zealand", "ireland",
    "sweden", "norway", "denmark", "finland", "austria", "belgium", "luxembourg", "hong kong",
    "taiwan", "italy", "spain",
)
_MEDIUM = (
    "china", "india", "brazil", "mexico", "turkey", "south africa", "united arab emirates",
    "vietnam", "indonesia", "thailand", "malaysia", "saudi arabia", "philippines", "egypt",
    "argentina", "chile", "colombia", "peru", "kenya", "morocco", "bangladesh",
)
_HIGH = (
    "russia", "belarus", "venezuela", "myanmar", "afghanistan", "nigeria", "pakistan", "iraq",
    "libya", "yemen", "somalia", "sudan", "south sudan", "lebanon", "haiti", "mali",
)


DEFAULT_POLICY = RiskPolicy(
    version="2025.1",
    sanctioned_countries=("north korea", "iran", "syria", "cuba", "crimea"),
    sanctioned_entities=(
        "Korea Mining Development Trading Corporation",
        "Islamic Revolutionary Guard Corps",
        "Bank Melli Iran",
        "Tornado Cash",
        "Sovcomflot",
        "Blacklist Global Trading LLC",
    ),
    watchlist_countries=("russia", "belarus", "venezuela", "myanmar", "afghanistan"),
    country_aliases={
        "usa": "united states",
        "u s": "united states",
        "u s a": "united states",
        "us": "united states",
        "united states of america": "united states",
        "uk": "united kingdom",
        "great britain": "united kingdom",
        "uae": "united arab emirates",
        "dprk": "north korea",
        "democratic people s republic of korea": "north korea",
        "republic of korea": "south korea",
        "korea": "south korea",
        "russian federation": "russia",
        "islamic republic of iran": "iran",
        "syrian arab republic": "syria",
        "prc": "china",
        "people s republic of china": "china",
        "viet nam": "vietnam",
        "burma": "myanmar",
    },
    shell_entity_patterns=(
        r"\bshell\b",
        r"\bnominee\b",
        r"\bbearer\b",
        r"\boffshore holdings?\b",
        r"\bshelf compan(y|ies)\b",
        r"\bgeneral trading\b.*\b(fze|fzco)\b",
    ),
    commodities={
        "electronics": CommodityRule(impact=5, typical_max_amount=500_000_000),
        "textiles": CommodityRule(impact=5, typical_max_amount=200_000_000),
        "machinery": CommodityRule(impact=5, typical_max_amount=1_000_000_000),
        "food products": CommodityRule(impact=5, typical_max_amount=200_000_000),
        "agricultural products": CommodityRule(impact=8, typical_max_amount=300_000_000),
        "coffee": CommodityRule(impact=8, typical_max_amount=100_000_000),
        "steel": CommodityRule(impact=8, typical_max_amount=1_000_000_000),
        "pharmaceuticals": CommodityRule(impact=10, typical_max_amount=500_000_000),
        "chemicals": CommodityRule(impact=12, typical_max_amount=500_000_000),
        "timber": CommodityRule(impact=12, typical_max_amount=200_000_000),
        "crude oil": CommodityRule(impact=15, typical_max_amount=5_000_000_000),
        "natural gas": CommodityRule(impact=15, typical_max_amount=5_000_000_000),
        "gold": CommodityRule(impact=20, typical_max_amount=1_000_000_000),
        "precious metals": CommodityRule(impact=20, typical_max_amount=1_000_000_000),
        "diamonds": CommodityRule(impact=25, typical_max_amount=500_000_000),
        "weapons": CommodityRule(impact=40, typical_max_amount=0, prohibited=True),
        "arms": CommodityRule(impact=40, typical_max_amount=0, prohibited=True),
        "ammunition": CommodityRule(impact=40, typical_max_amount=0, prohibited=True),
        "narcotics": CommodityRule(impact=40, typical_max_amount=0, prohibited=True),
        "ivory": CommodityRule(impact=40, typical_max_amount=0, prohibited=True),
        "nuclear material": CommodityRule(impact=40, typical_max_amount=0, prohibited=True),
    },
    country_tiers={
        **{c: "low" for c in _LOW},
        **{c: "medium" for c in _MEDIUM},
        **{c: "high" for c in _HIGH},
        # sanctioned jurisdictions are screened separately; geography still scores them
        **{c: "high" for c in ("north korea", "iran", "syria", "cuba", "crimea")},
    },
    tier_impacts={"low": 0, "medium": 5, "high": 15},
    corridor_overrides=_corridors({
        ("turkey", "russia"): 20,
        ("united arab emirates", "russia"): 20,
        ("hong kong", "russia"): 20,
        ("china", "russia"): 20,
        ("united arab emirates", "iran"): 25,
    }),
    amount_bands=(
        (1_000_000, 0, ""),
        (10_000_000, 2, ""),
        (100_000_000, 5, ""),
        (1_000_000_000, 10, "Enhanced due diligence recommended for amounts above 100,000,000"),
    ),
    top_band_impact=20,
    top_band_recommendation="Manual review required for amounts above 1,000,000,000",
)


def load_policy(path: str | Path, base: RiskPolicy = DEFAULT_POLICY) -> RiskPolicy:
    """
    Build a policy from a JSON file. Keys missing from the file keep the
    values of `base`; `version` is mandatory so verdicts stay attributable.
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not raw.get("version"):
        raise ValueError(f"policy file {path} must define a non-empty 'version'")

    known = {f.name for f in fields(RiskPolicy)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"policy file {path} has unknown keys: {sorted(unknown)}")

    overrides: dict = {}
    for key, value in raw.items():
        if key == "commodities":
            value = {normalize_text(k): CommodityRule(**v) for k, v in value.items()}
        elif key == "corridor_overrides":
            # JSON form: [["turkey", "russia", 20], ...]
            value = _corridors({(normalize_text(a), normalize_text(b)): int(v) for a, b, v in value})
        elif key == "amount_bands":
            value = tuple((int(upper), int(impact), str(rec)) for upper, impact, rec in value)
        elif key == "country_tiers":
            value = {normalize_text(k): v for k, v in value.items()}
        elif key == "country_aliases":
            value = {normalize_text(k): normalize_text(v) for k, v in value.items()}
        elif key in ("sanctioned_countries", "watchlist_countries"):
            value = tuple(normalize_text(v) for v in value)
        elif isinstance(value, list):
            value = tuple(value)
        overrides[key] = value

    return replace(base, **overrides)
