"""Stage 1: momentum analysis.

Estimates demand velocity from order volume relative to store age:

    Orders/Month = Order Count / max(Store Age Months, 1)

and maps it onto a 0-100 score with three linear bands:

| Band     | Orders/Month | Score  |
|----------|--------------|--------|
| weak     | < 5          | 0-30   |
| moderate | 5-50         | 30-70  |
| strong   | > 50         | 70-100 |

This stage is informational and always passes.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from resale_scout.analysis.models import (
    AnalysisConfig,
    MomentumConfig,
    ProductSnapshot,
    StageName,
    StageResult,
)
from resale_scout.analysis.money import CENT

logger = logging.getLogger(__name__)

LOW_CONFIDENCE = "low-confidence"


def calculate_orders_per_month(snapshot: ProductSnapshot) -> Decimal:
    """Orders per month, treating stores younger than a month as one month old."""
    months = max(snapshot.store_age_months, 1)
    rate = Decimal(snapshot.order_count) / Decimal(months)
    return rate.quantize(CENT, rounding=ROUND_HALF_UP)


def _interpolate(value: Decimal, lo: Decimal, hi: Decimal, score_lo: float, score_hi: float) -> float:
    if hi <= lo:
        return score_hi
    fraction = (value - lo) / (hi - lo)
    return score_lo + float(fraction) * (score_hi - score_lo)


def momentum_band(orders_per_month: Decimal, config: MomentumConfig) -> str:
    """Name of the band an orders/month value falls in."""
    if orders_per_month < config.weak_ceiling:
        return "weak"
    if orders_per_month <= config.strong_floor:
        return "moderate"
    return "strong"


def calculate_momentum_score(orders_per_month: Decimal, config: MomentumConfig) -> float:
    """Map orders/month to a 0-100 score, monotonic non-decreasing.

    Args:
        orders_per_month: Demand velocity
        config: Band boundaries

    Returns:
        Score rounded to 2 decimals
    """
    band = momentum_band(orders_per_month, config)

    if band == "weak":
        score = _interpolate(orders_per_month, Decimal("0"), config.weak_ceiling, 0.0, config.weak_max_score)
    elif band == "moderate":
        score = _interpolate(
            orders_per_month,
            config.weak_ceiling,
            config.strong_floor,
            config.weak_max_score,
            config.moderate_max_score,
        )
    else:
        capped = min(orders_per_month, config.saturation_orders)
        score = _interpolate(
            capped,
            config.strong_floor,
            config.saturation_orders,
            config.moderate_max_score,
            100.0,
        )

    return round(min(max(score, 0.0), 100.0), 2)


def analyze_momentum(
    snapshot: ProductSnapshot,
    config: AnalysisConfig | None = None,
) -> StageResult:
    """Run the momentum stage.

    An unknown store age is annotated as low-confidence rather than
    discarded; it never causes a rejection.
    """
    if config is None:
        config = AnalysisConfig()

    orders_per_month = calculate_orders_per_month(snapshot)
    score = calculate_momentum_score(orders_per_month, config.momentum)
    band = momentum_band(orders_per_month, config.momentum)

    notes = [band]
    if not snapshot.store_age_known:
        notes.append(LOW_CONFIDENCE)

    logger.debug(
        f"Momentum for {snapshot.product_id}: {orders_per_month:.2f} orders/month, "
        f"score {score} ({band})"
    )

    return StageResult(
        stage=StageName.MOMENTUM,
        passed=True,
        metrics={
            "orders_per_month": orders_per_month,
            "momentum_score": score,
            "store_age_months": snapshot.store_age_months,
        },
        notes=tuple(notes),
    )
