"""Tests for the analysis orchestrator.

Examples 1-4 are the hand-checked reference cases.
"""

from decimal import Decimal

import pytest

from resale_scout.analysis import analyze
from resale_scout.analysis.models import (
    AdDifficulty,
    AnalysisConfig,
    Currency,
    MarginConfig,
    OpportunityTier,
    SaturationResult,
    SaturationRisk,
    StageName,
    Verdict,
)


def flat_markup(multiplier: str) -> AnalysisConfig:
    return AnalysisConfig(margin=MarginConfig(markup_multiplier=Decimal(multiplier)))


class RecordingCommentator:
    """Comments on every stage it sees."""

    def __init__(self):
        self.seen = []

    def comment(self, snapshot, result):
        self.seen.append(result.stage)
        return f"noted {result.stage.value}"


class BrokenCommentator:
    def comment(self, snapshot, result):
        raise RuntimeError("model unavailable")


class TestReferenceExamples:
    """Reference cases."""

    def test_example_1_accepted(self, make_snapshot):
        """Good product at 2.5x markup sells at 30.00 with a positive margin."""
        result = analyze(make_snapshot(), [], flat_markup("2.5"))

        assert result.verdict == Verdict.ACCEPTED
        assert result.accepted is True
        assert result.rejection_stage is None
        assert result.rejection_reason is None
        assert result.suggested_price == Decimal("30.00")
        assert result.net_margin_per_unit == Decimal("1.23")
        assert result.net_margin_percent == Decimal("0.0410")
        assert result.projected_monthly_profit == Decimal("12.30")
        assert result.orders_per_month == Decimal("100.00")
        assert result.momentum_score == 73.33
        assert result.momentum_low_confidence is False
        assert result.opportunity_score == 58.33
        assert result.opportunity_tier == OpportunityTier.RISKY
        assert result.ad_difficulty == AdDifficulty.EASY

    def test_example_2_quality_rejection(self, make_snapshot):
        """Rating 4.5 fails the quality gate; later stages never run."""
        result = analyze(make_snapshot(rating=4.5, feedback_rate=0.99), [])

        assert result.verdict == Verdict.REJECTED
        assert result.rejection_stage == StageName.QUALITY_GATE
        assert result.rejection_reason == "rating_below_threshold"
        assert result.momentum_score is not None
        assert result.suggested_price is None
        assert result.net_margin_per_unit is None
        assert result.saturation_risk is None
        assert result.matched_competitor_store_ids is None
        assert result.opportunity_score is None
        assert result.ad_difficulty is None
        assert [s.stage for s in result.stages] == [StageName.MOMENTUM, StageName.QUALITY_GATE]

    def test_example_3_margin_rejection(self, make_snapshot, blender_competitor):
        """A 1.1x markup cannot cover costs and fees."""
        snapshot = make_snapshot(
            rating=4.8,
            feedback_rate=0.96,
            source_price=Decimal("50.00"),
            shipping_cost=Decimal("10.00"),
        )
        result = analyze(snapshot, [blender_competitor], flat_markup("1.1"))

        assert result.verdict == Verdict.REJECTED
        assert result.rejection_stage == StageName.MARGIN
        assert result.rejection_reason == "negative_margin"
        assert result.suggested_price == Decimal("66.00")
        assert result.net_margin_per_unit == Decimal("-12.53")
        assert result.projected_monthly_profit is None
        assert result.saturation_risk is None
        assert result.matched_competitor_store_ids is None
        assert result.opportunity_tier is None
        assert len(result.stages) == 3

    def test_example_4_no_tracked_stores(self, make_snapshot):
        """No tracked stores means low saturation and an empty match list."""
        result = analyze(make_snapshot(), [])

        assert result.accepted
        assert result.saturation_risk == SaturationRisk.LOW
        assert result.matched_competitor_store_ids == ()


class TestAnalyze:
    """Tests for analyze()."""

    def test_accepted_result_has_every_stage(self, make_snapshot, blender_competitor):
        result = analyze(make_snapshot(), [blender_competitor])

        assert [s.stage for s in result.stages] == [
            StageName.MOMENTUM,
            StageName.QUALITY_GATE,
            StageName.MARGIN,
            StageName.SATURATION,
        ]
        assert isinstance(result.stages[-1], SaturationResult)
        assert result.saturation_risk == SaturationRisk.MEDIUM
        assert result.matched_competitor_store_ids == ("smoothie-co",)
        assert result.ad_difficulty == AdDifficulty.MEDIUM
        assert len(result.reasoning) == 4
        assert result.reasoning[0].startswith("Momentum:")
        assert result.reasoning[-1].startswith("Saturation: medium")

    def test_rejection_reasoning_names_the_reason(self, make_snapshot):
        result = analyze(make_snapshot(feedback_rate=None), [])

        assert result.rejection_reason == "feedback_missing"
        assert result.reasoning[-1] == "Quality gate: rejected (feedback_missing)"

    def test_deterministic(self, make_snapshot, blender_competitor, unrelated_store):
        """Same inputs, same result."""
        snapshot = make_snapshot()
        stores = [blender_competitor, unrelated_store]

        assert analyze(snapshot, stores) == analyze(snapshot, stores)

    def test_inputs_not_modified(self, make_snapshot, blender_competitor):
        snapshot = make_snapshot()
        stores = [blender_competitor]
        before = snapshot.model_copy()

        analyze(snapshot, stores)

        assert snapshot == before
        assert stores == [blender_competitor]

    def test_unknown_store_age_caps_tier(self, make_snapshot):
        """Strong momentum without a store age is potential, not winner."""
        known = make_snapshot(
            source_price=Decimal("30.00"),
            shipping_cost=Decimal("0"),
            order_count=600,
            store_age_months=1,
        )
        unknown = known.model_copy(update={"store_age_months": 0, "store_age_known": False})

        assert analyze(known, []).opportunity_tier == OpportunityTier.WINNER

        result = analyze(unknown, [])
        assert result.accepted
        assert result.momentum_low_confidence is True
        assert result.opportunity_score == 100.0
        assert result.opportunity_tier == OpportunityTier.POTENTIAL
        assert "low confidence" in result.reasoning[0]

    def test_currency_carried_through(self, make_snapshot):
        result = analyze(make_snapshot(currency=Currency.USD), [])
        assert result.currency == Currency.USD
        assert "USD" in result.reasoning[2]

    def test_malformed_tracked_store_is_skipped(self, make_snapshot, blender_competitor):
        result = analyze(make_snapshot(), [{"store_id": "no-domain"}, blender_competitor])

        assert result.accepted
        assert result.matched_competitor_store_ids == ("smoothie-co",)


class TestCommentator:
    def test_comments_follow_each_stage(self, make_snapshot):
        commentator = RecordingCommentator()
        result = analyze(make_snapshot(), [], commentator=commentator)

        assert commentator.seen == [
            StageName.MOMENTUM,
            StageName.QUALITY_GATE,
            StageName.MARGIN,
            StageName.SATURATION,
        ]
        assert result.reasoning[1] == "noted momentum"
        assert len(result.reasoning) == 8

    def test_commentator_failure_does_not_change_verdict(self, make_snapshot):
        plain = analyze(make_snapshot(), [])
        result = analyze(make_snapshot(), [], commentator=BrokenCommentator())

        assert result == plain

    @pytest.mark.parametrize("rating", [4.0, 4.69])
    def test_commentator_cannot_rescue_rejection(self, make_snapshot, rating):
        result = analyze(make_snapshot(rating=rating), [], commentator=RecordingCommentator())
        assert result.verdict == Verdict.REJECTED
