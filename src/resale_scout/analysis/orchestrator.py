"""Analysis orchestrator.

Runs the four stages in order and assembles the AnalysisResult:

    Start → Momentum → Quality Gate → {Reject | Margin} → {Reject | Saturation} → Accept

Stages after a rejecting stage are skipped, not run and discarded, so
their fields stay None on the result. All arithmetic lives in the stage
modules; this module only sequences stages and copies their outputs.
"""

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Any, Optional

from resale_scout.analysis.margin import calculate_margin
from resale_scout.analysis.models import (
    AnalysisConfig,
    AnalysisResult,
    ProductSnapshot,
    SaturationResult,
    StageName,
    StageResult,
    Verdict,
)
from resale_scout.analysis.momentum import LOW_CONFIDENCE, analyze_momentum
from resale_scout.analysis.ports import StageCommentator
from resale_scout.analysis.quality_gate import evaluate_quality
from resale_scout.analysis.saturation import CompetitorMatcher, check_saturation
from resale_scout.analysis.scoring import assess_ad_difficulty, score_opportunity

logger = logging.getLogger(__name__)


def describe_stage(result: StageResult, currency: str) -> str:
    """One human-readable reasoning line for a stage result."""
    m = result.metrics

    if result.stage == StageName.MOMENTUM:
        line = (
            f"Momentum: {m['orders_per_month']} orders/month, "
            f"score {m['momentum_score']} ({result.notes[0]})"
        )
        if LOW_CONFIDENCE in result.notes:
            line += ", store age unknown (low confidence)"
        return line

    if result.stage == StageName.QUALITY_GATE:
        if not result.passed:
            return f"Quality gate: rejected ({result.reason})"
        return f"Quality gate: passed (rating {m['rating']}, feedback {m['feedback_rate']:.0%})"

    if result.stage == StageName.MARGIN:
        if not result.passed:
            return (
                f"Margin: rejected ({result.reason}), {m['net_margin_per_unit']} {currency} "
                f"per unit at {m['suggested_price']} {currency}"
            )
        return (
            f"Margin: sell at {m['suggested_price']} {currency}, "
            f"{m['net_margin_per_unit']} {currency} net per unit "
            f"({m['net_margin_percent']:.1%}), ~{m['projected_monthly_profit']} {currency}/month"
        )

    if isinstance(result, SaturationResult):
        return (
            f"Saturation: {result.risk.value} "
            f"({m['matched_store_count']} of {m['tracked_store_count']} tracked stores)"
        )

    return f"{result.stage.value}: {'passed' if result.passed else result.reason}"


class _Run:
    """Collects stage results and reasoning for one analysis."""

    def __init__(self, snapshot: ProductSnapshot, commentator: Optional[StageCommentator]):
        self.snapshot = snapshot
        self.commentator = commentator
        self.stages: list[StageResult] = []
        self.reasoning: list[str] = []

    def record(self, result: StageResult) -> StageResult:
        self.stages.append(result)
        self.reasoning.append(describe_stage(result, self.snapshot.currency.value))

        if self.commentator is not None:
            try:
                comment = self.commentator.comment(self.snapshot, result)
            except Exception as e:
                logger.warning(
                    f"Commentator failed after {result.stage.value} for {self.snapshot.product_id}: {e}"
                )
            else:
                if comment:
                    self.reasoning.append(comment)
        return result

    def finish(self, **fields: Any) -> AnalysisResult:
        return AnalysisResult(
            product_id=self.snapshot.product_id,
            currency=self.snapshot.currency,
            stages=tuple(self.stages),
            reasoning=tuple(self.reasoning),
            **fields,
        )


def analyze(
    snapshot: ProductSnapshot,
    tracked_stores: Sequence[Any],
    config: AnalysisConfig | None = None,
    matcher: CompetitorMatcher | None = None,
    commentator: StageCommentator | None = None,
) -> AnalysisResult:
    """Evaluate a product as a resale candidate.

    This is the main entry point for analysis. It is synchronous, does no
    I/O and returns equal results for equal inputs.

    Args:
        snapshot: Normalized product
        tracked_stores: The caller's tracked competitor stores
        config: Analysis configuration (uses defaults if None)
        matcher: Competitor matcher for the saturation stage
        commentator: Optional collaborator asked to comment after each stage

    Returns:
        AnalysisResult with a verdict; rejected results name the stage and reason
    """
    if config is None:
        config = AnalysisConfig()

    run = _Run(snapshot, commentator)

    # Stage 1: momentum (informational)
    momentum = run.record(analyze_momentum(snapshot, config))
    orders_per_month: Decimal = momentum.metrics["orders_per_month"]
    low_confidence = LOW_CONFIDENCE in momentum.notes
    fields: dict[str, Any] = {
        "momentum_score": momentum.metrics["momentum_score"],
        "orders_per_month": orders_per_month,
        "momentum_low_confidence": low_confidence,
    }

    # Stage 2: quality gate
    quality = run.record(evaluate_quality(snapshot, config))
    if not quality.passed:
        return run.finish(
            verdict=Verdict.REJECTED,
            rejection_stage=StageName.QUALITY_GATE,
            rejection_reason=quality.reason,
            **fields,
        )

    # Stage 3: margin
    margin = run.record(calculate_margin(snapshot, config, orders_per_month))
    fields.update(
        suggested_price=margin.metrics["suggested_price"],
        net_margin_per_unit=margin.metrics["net_margin_per_unit"],
        net_margin_percent=margin.metrics["net_margin_percent"],
    )
    if not margin.passed:
        return run.finish(
            verdict=Verdict.REJECTED,
            rejection_stage=StageName.MARGIN,
            rejection_reason=margin.reason,
            **fields,
        )
    fields["projected_monthly_profit"] = margin.metrics["projected_monthly_profit"]

    # Stage 4: saturation (advisory)
    saturation = check_saturation(snapshot, tracked_stores, config, matcher)
    run.record(saturation)

    score, tier = score_opportunity(
        momentum_score=fields["momentum_score"],
        net_margin_per_unit=fields["net_margin_per_unit"],
        saturation_risk=saturation.risk,
        low_confidence=low_confidence,
        config=config.score,
    )
    ad_difficulty = assess_ad_difficulty(
        saturation.risk, len(saturation.matched_store_ids), config.score
    )

    logger.debug(f"Accepted {snapshot.product_id}: score {score} ({tier.value})")

    return run.finish(
        verdict=Verdict.ACCEPTED,
        saturation_risk=saturation.risk,
        matched_competitor_store_ids=saturation.matched_store_ids,
        opportunity_score=score,
        opportunity_tier=tier,
        ad_difficulty=ad_difficulty,
        **fields,
    )
