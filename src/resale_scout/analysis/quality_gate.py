"""Stage 2: quality gate.

Hard, binary rules. Rules run in a fixed order and the first failure
rejects the product; there is no partial credit. Unknown quality signals
(no rating, no feedback rate) fail the gate.

Rules:
1. Rating < 4.7
2. Positive feedback < 95%
3. Order count < minimum order history (disabled by default)
"""

import logging
from collections.abc import Callable
from typing import Optional

from resale_scout.analysis.models import (
    AnalysisConfig,
    ProductSnapshot,
    QualityGateConfig,
    StageName,
    StageResult,
)

logger = logging.getLogger(__name__)

RATING_MISSING = "rating_missing"
RATING_BELOW_THRESHOLD = "rating_below_threshold"
FEEDBACK_MISSING = "feedback_missing"
FEEDBACK_BELOW_THRESHOLD = "feedback_below_threshold"
INSUFFICIENT_ORDER_HISTORY = "insufficient_order_history"

QualityRule = Callable[[ProductSnapshot, QualityGateConfig], Optional[str]]


def check_rating(snapshot: ProductSnapshot, config: QualityGateConfig) -> Optional[str]:
    """Reject unrated products and ratings below the minimum."""
    if snapshot.rating is None:
        return RATING_MISSING
    if snapshot.rating < config.min_rating:
        return RATING_BELOW_THRESHOLD
    return None


def check_feedback(snapshot: ProductSnapshot, config: QualityGateConfig) -> Optional[str]:
    """Reject sellers with unknown or low positive feedback."""
    if snapshot.feedback_rate is None:
        return FEEDBACK_MISSING
    if snapshot.feedback_rate < config.min_feedback_rate:
        return FEEDBACK_BELOW_THRESHOLD
    return None


def check_order_history(snapshot: ProductSnapshot, config: QualityGateConfig) -> Optional[str]:
    """Reject listings with too few orders (no-op when min_orders is 0)."""
    if config.min_orders and snapshot.order_count < config.min_orders:
        return INSUFFICIENT_ORDER_HISTORY
    return None


QUALITY_RULES: tuple[QualityRule, ...] = (
    check_rating,
    check_feedback,
    check_order_history,
)


def evaluate_quality(
    snapshot: ProductSnapshot,
    config: AnalysisConfig | None = None,
) -> StageResult:
    """Apply the quality rules to a product.

    Args:
        snapshot: Product to evaluate
        config: Analysis configuration (uses defaults if None)

    Returns:
        StageResult; on failure, reason names the first rule that failed
    """
    if config is None:
        config = AnalysisConfig()

    metrics: dict[str, float | int] = {"order_count": snapshot.order_count}
    if snapshot.rating is not None:
        metrics["rating"] = snapshot.rating
    if snapshot.feedback_rate is not None:
        metrics["feedback_rate"] = snapshot.feedback_rate

    for rule in QUALITY_RULES:
        reason = rule(snapshot, config.quality)
        if reason is not None:
            logger.info(f"Quality gate rejected {snapshot.product_id}: {reason}")
            return StageResult(
                stage=StageName.QUALITY_GATE,
                passed=False,
                metrics=metrics,
                reason=reason,
            )

    return StageResult(stage=StageName.QUALITY_GATE, passed=True, metrics=metrics)
