"""Tests for the quality gate."""

import pytest

from resale_scout.analysis.models import AnalysisConfig, QualityGateConfig, StageName
from resale_scout.analysis.quality_gate import (
    FEEDBACK_BELOW_THRESHOLD,
    FEEDBACK_MISSING,
    INSUFFICIENT_ORDER_HISTORY,
    RATING_BELOW_THRESHOLD,
    RATING_MISSING,
    evaluate_quality,
)


class TestEvaluateQuality:
    """Tests for evaluate_quality()."""

    def test_good_product_passes(self, make_snapshot):
        result = evaluate_quality(make_snapshot(rating=4.9, feedback_rate=0.97))

        assert result.stage == StageName.QUALITY_GATE
        assert result.passed is True
        assert result.reason is None
        assert result.metrics["rating"] == 4.9
        assert result.metrics["feedback_rate"] == 0.97

    def test_low_rating_fails(self, make_snapshot):
        """Rating 4.5 < 4.7."""
        result = evaluate_quality(make_snapshot(rating=4.5, feedback_rate=0.99))

        assert result.passed is False
        assert result.reason == RATING_BELOW_THRESHOLD

    def test_missing_rating_fails(self, make_snapshot):
        """Unknown rating is not treated as zero, it fails with its own reason."""
        result = evaluate_quality(make_snapshot(rating=None))

        assert result.passed is False
        assert result.reason == RATING_MISSING
        assert "rating" not in result.metrics

    def test_low_feedback_fails(self, make_snapshot):
        result = evaluate_quality(make_snapshot(feedback_rate=0.90))

        assert result.passed is False
        assert result.reason == FEEDBACK_BELOW_THRESHOLD

    def test_missing_feedback_fails(self, make_snapshot):
        result = evaluate_quality(make_snapshot(feedback_rate=None))

        assert result.passed is False
        assert result.reason == FEEDBACK_MISSING

    def test_first_failing_rule_wins(self, make_snapshot):
        """With both rating and feedback low, the rating rule reports."""
        result = evaluate_quality(make_snapshot(rating=4.0, feedback_rate=0.5))
        assert result.reason == RATING_BELOW_THRESHOLD

    def test_thresholds_are_inclusive(self, make_snapshot):
        """Exactly at the minimum passes."""
        result = evaluate_quality(make_snapshot(rating=4.7, feedback_rate=0.95))
        assert result.passed is True

    def test_order_history_disabled_by_default(self, make_snapshot):
        result = evaluate_quality(make_snapshot(order_count=0))
        assert result.passed is True

    def test_order_history_rule(self, make_snapshot):
        config = AnalysisConfig(quality=QualityGateConfig(min_orders=100))

        assert evaluate_quality(make_snapshot(order_count=50), config).reason == (
            INSUFFICIENT_ORDER_HISTORY
        )
        assert evaluate_quality(make_snapshot(order_count=100), config).passed is True

    @pytest.mark.parametrize("min_rating,passed", [(4.0, True), (4.95, False)])
    def test_configurable_rating(self, make_snapshot, min_rating, passed):
        config = AnalysisConfig(quality=QualityGateConfig(min_rating=min_rating))
        assert evaluate_quality(make_snapshot(rating=4.9), config).passed is passed
