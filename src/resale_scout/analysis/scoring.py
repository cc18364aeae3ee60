"""Opportunity scoring for accepted products.

Score = Momentum Score + Margin Adjustment + Saturation Penalty, clamped 0-100

| Net Margin/Unit | Adjustment |
|-----------------|------------|
| >= 25           | +10        |
| >= 15           | +5         |
| 10-15           | 0          |
| < 10            | -15        |

| Saturation | Penalty |
|------------|---------|
| low        | 0       |
| medium     | -10     |
| high       | -20     |

Tier: >= 80 WINNER, >= 60 POTENTIAL, else RISKY. A momentum estimate made
without a known store age cannot produce a WINNER.

| Saturation                | Ad difficulty |
|---------------------------|---------------|
| low                       | easy          |
| medium                    | medium        |
| high                      | hard          |
| high, >= 6 matched stores | very_hard     |
"""

from decimal import Decimal

from resale_scout.analysis.models import (
    AdDifficulty,
    OpportunityTier,
    SaturationRisk,
    ScoreConfig,
)


def calculate_margin_adjustment(net_margin_per_unit: Decimal, config: ScoreConfig) -> float:
    """Bonus or penalty for the unit margin."""
    if net_margin_per_unit >= config.high_margin:
        return config.high_margin_bonus
    if net_margin_per_unit >= config.good_margin:
        return config.good_margin_bonus
    if net_margin_per_unit < config.thin_margin:
        return config.thin_margin_penalty
    return 0.0


def score_opportunity(
    momentum_score: float,
    net_margin_per_unit: Decimal,
    saturation_risk: SaturationRisk,
    low_confidence: bool = False,
    config: ScoreConfig | None = None,
) -> tuple[float, OpportunityTier]:
    """Combine stage outputs into a ranking score and tier.

    Args:
        momentum_score: Stage 1 score (0-100)
        net_margin_per_unit: Stage 3 unit margin
        saturation_risk: Stage 4 risk band
        low_confidence: Momentum was estimated without a known store age
        config: Score configuration (uses defaults if None)

    Returns:
        Tuple of (score, tier)
    """
    if config is None:
        config = ScoreConfig()

    score = (
        momentum_score
        + calculate_margin_adjustment(net_margin_per_unit, config)
        + config.saturation_penalties.get(saturation_risk, 0.0)
    )
    score = round(min(max(score, 0.0), 100.0), 2)

    if score >= config.winner_threshold and not low_confidence:
        tier = OpportunityTier.WINNER
    elif score >= config.potential_threshold:
        tier = OpportunityTier.POTENTIAL
    else:
        tier = OpportunityTier.RISKY

    return score, tier


def assess_ad_difficulty(
    saturation_risk: SaturationRisk,
    match_count: int,
    config: ScoreConfig | None = None,
) -> AdDifficulty:
    """Expected difficulty of buying traffic against tracked competitors."""
    if config is None:
        config = ScoreConfig()

    if saturation_risk == SaturationRisk.HIGH:
        if match_count >= config.very_hard_at:
            return AdDifficulty.VERY_HARD
        return AdDifficulty.HARD
    if saturation_risk == SaturationRisk.MEDIUM:
        return AdDifficulty.MEDIUM
    return AdDifficulty.EASY
