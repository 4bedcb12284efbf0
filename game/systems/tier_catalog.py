"""
Static tier tables: search tiers, quality tiers, credit fee bands, inspection tiers.

Design: Local = impatient tax, Regional = smart choice, National = certainty premium.
Search durations are whole days; inspection durations are hours.
"""

from __future__ import annotations

from dataclasses import dataclass

from game.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class TierDefinition:
    tier_id: str
    name: str
    fee_fraction: float
    min_days: int
    max_days: int
    base_success: float
    match_chance: float


@dataclass(frozen=True, slots=True)
class QualityTier:
    quality_id: str
    name: str
    min_condition: float
    max_condition: float
    price_multiplier: float
    success_modifier: float


@dataclass(frozen=True, slots=True)
class CreditBand:
    min_score: int
    modifier: float
    name: str


@dataclass(frozen=True, slots=True)
class InspectionTier:
    tier_id: str
    name: str
    base_cost: int
    percent_cost: float
    max_cost: int
    duration_hours: int

    def cost_for(self, price: float) -> int:
        return int(min(self.base_cost + float(price) * self.percent_cost, self.max_cost))


SEARCH_TIERS: dict[str, TierDefinition] = {
    # Quick answer, poor odds.
    "local": TierDefinition("local", "Local Search", 0.04, 1, 1, 0.25, 0.25),
    "regional": TierDefinition("regional", "Regional Search", 0.06, 1, 2, 0.55, 0.50),
    "national": TierDefinition("national", "National Search", 0.10, 2, 4, 0.80, 0.70),
}

# Lower quality is easier to find and cheaper; pristine stock is scarce.
QUALITY_TIERS: dict[str, QualityTier] = {
    "poor": QualityTier("poor", "Poor Condition", 0.05, 0.30, 0.15, 0.15),
    "any": QualityTier("any", "Any Condition", 0.10, 0.40, 0.30, 0.08),
    "fair": QualityTier("fair", "Fair Condition", 0.40, 0.60, 0.48, 0.00),
    "good": QualityTier("good", "Good Condition", 0.60, 0.80, 0.65, -0.08),
    "excellent": QualityTier("excellent", "Excellent Condition", 0.80, 0.95, 0.80, -0.15),
}

DEFAULT_QUALITY_ID = "any"

# Better credit = cheaper agent services. Checked top-down.
CREDIT_BANDS: tuple[CreditBand, ...] = (
    CreditBand(750, -0.15, "Excellent"),
    CreditBand(700, -0.08, "Good"),
    CreditBand(650, 0.00, "Fair"),
    CreditBand(600, 0.10, "Poor"),
    CreditBand(300, 0.20, "Very Poor"),
)
WORST_CREDIT_MODIFIER = 0.20

INSPECTION_TIERS: dict[str, InspectionTier] = {
    "quick": InspectionTier("quick", "Quick Glance", 1000, 0.02, 2500, 2),
    "standard": InspectionTier("standard", "Standard", 2000, 0.03, 5000, 6),
    "comprehensive": InspectionTier("comprehensive", "Comprehensive", 4000, 0.05, 10000, 12),
}

SUCCESS_FLOOR = 0.05
SUCCESS_CEILING = 0.95


def get_tier(tier_id: str) -> TierDefinition:
    try:
        return SEARCH_TIERS[str(tier_id)]
    except KeyError:
        raise ConfigurationError(f"unknown search tier: {tier_id!r}") from None


def get_quality(quality_id: str) -> QualityTier:
    try:
        return QUALITY_TIERS[str(quality_id)]
    except KeyError:
        raise ConfigurationError(f"unknown quality tier: {quality_id!r}") from None


def get_inspection_tier(tier_id: str) -> InspectionTier:
    try:
        return INSPECTION_TIERS[str(tier_id)]
    except KeyError:
        raise ConfigurationError(f"unknown inspection tier: {tier_id!r}") from None


def effective_success(tier: TierDefinition, quality: QualityTier) -> float:
    """Tier base + quality modifier, clamped to [0.05, 0.95]."""
    return max(SUCCESS_FLOOR, min(SUCCESS_CEILING, tier.base_success + quality.success_modifier))


def credit_band(score: float) -> CreditBand | None:
    for band in CREDIT_BANDS:
        if score >= band.min_score:
            return band
    return None


def credit_fee_modifier(score: float) -> float:
    """Signed fee fraction for a credit score (negative = discount)."""
    band = credit_band(score)
    return WORST_CREDIT_MODIFIER if band is None else band.modifier
