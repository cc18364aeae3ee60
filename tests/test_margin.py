"""Tests for the margin stage.

Hand-calculated with the default fees (2.9% + 2% + 0.30) and a 15.00
acquisition cost per unit.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from resale_scout.analysis.errors import MarginError
from resale_scout.analysis.margin import (
    NEGATIVE_MARGIN,
    calculate_margin,
    calculate_net_margin_percent,
    calculate_platform_fee,
    require_positive_margin,
    select_markup_multiplier,
)
from resale_scout.analysis.models import (
    AnalysisConfig,
    MarginConfig,
    MarkupTier,
    StageName,
)


def flat_markup(multiplier: str, **margin_fields) -> AnalysisConfig:
    return AnalysisConfig(
        margin=MarginConfig(markup_multiplier=Decimal(multiplier), **margin_fields)
    )


class TestMarkupSelection:
    """Tests for select_markup_multiplier()."""

    @pytest.mark.parametrize(
        "price,expected",
        [
            ("5.00", "3.0"),
            ("9.99", "3.0"),
            ("10.00", "2.5"),
            ("24.99", "2.5"),
            ("25.00", "2.0"),
            ("49.99", "2.0"),
            ("50.00", "1.6"),
            ("500.00", "1.6"),
        ],
    )
    def test_default_tiers(self, price, expected):
        """Cheaper products get a higher markup."""
        assert select_markup_multiplier(Decimal(price), MarginConfig()) == Decimal(expected)

    def test_flat_markup_overrides_tiers(self):
        config = MarginConfig(markup_multiplier=Decimal("1.8"))
        assert select_markup_multiplier(Decimal("5.00"), config) == Decimal("1.8")

    def test_tiers_are_sorted(self):
        """Tiers given out of order are applied by price bound."""
        config = MarginConfig(
            markup_tiers=[
                MarkupTier(max_source_price=None, multiplier=Decimal("1.5")),
                MarkupTier(max_source_price=Decimal("20"), multiplier=Decimal("2.2")),
                MarkupTier(max_source_price=Decimal("5"), multiplier=Decimal("4")),
            ]
        )
        assert select_markup_multiplier(Decimal("3"), config) == Decimal("4")
        assert select_markup_multiplier(Decimal("10"), config) == Decimal("2.2")
        assert select_markup_multiplier(Decimal("30"), config) == Decimal("1.5")

    def test_bounded_tiers_only(self):
        """Above every bound, the last tier applies."""
        config = MarginConfig(
            markup_tiers=[MarkupTier(max_source_price=Decimal("10"), multiplier=Decimal("3"))]
        )
        assert select_markup_multiplier(Decimal("99"), config) == Decimal("3")

    def test_empty_tiers_rejected(self):
        with pytest.raises(ValidationError):
            MarginConfig(markup_tiers=[])


class TestFees:
    def test_platform_fee(self):
        """30.00 × 4.9% + 0.30 = 1.77."""
        assert calculate_platform_fee(Decimal("30.00"), MarginConfig()) == Decimal("1.77")

    def test_net_margin_percent(self):
        assert calculate_net_margin_percent(Decimal("1.23"), Decimal("30.00")) == Decimal("0.0410")

    def test_net_margin_percent_zero_price(self):
        assert calculate_net_margin_percent(Decimal("1.00"), Decimal("0")) == Decimal("0.0000")

    def test_require_positive_margin(self):
        with pytest.raises(MarginError) as exc_info:
            require_positive_margin(Decimal("0.00"), MarginConfig())
        assert exc_info.value.reason == NEGATIVE_MARGIN

        require_positive_margin(Decimal("0.01"), MarginConfig())


class TestCalculateMargin:
    """Tests for calculate_margin()."""

    def test_profitable_product(self, make_snapshot):
        """(10 + 2) × 2.5 = 30.00; 30 - 12 - 1.77 - 15 = 1.23."""
        result = calculate_margin(
            make_snapshot(),
            flat_markup("2.5"),
            orders_per_month=Decimal("100.00"),
        )

        assert result.stage == StageName.MARGIN
        assert result.passed is True
        assert result.metrics["suggested_price"] == Decimal("30.00")
        assert result.metrics["platform_fee"] == Decimal("1.77")
        assert result.metrics["net_margin_per_unit"] == Decimal("1.23")
        assert result.metrics["net_margin_percent"] == Decimal("0.0410")
        assert result.metrics["estimated_monthly_units"] == Decimal("10.00")
        assert result.metrics["projected_monthly_profit"] == Decimal("12.30")

    def test_unprofitable_product(self, make_snapshot):
        """(50 + 10) × 1.1 = 66.00; 66 - 60 - 3.53 - 15 = -12.53."""
        snapshot = make_snapshot(source_price=Decimal("50.00"), shipping_cost=Decimal("10.00"))
        result = calculate_margin(snapshot, flat_markup("1.1"), orders_per_month=Decimal("100"))

        assert result.passed is False
        assert result.reason == NEGATIVE_MARGIN
        assert result.metrics["suggested_price"] == Decimal("66.00")
        assert result.metrics["platform_fee"] == Decimal("3.53")
        assert result.metrics["net_margin_per_unit"] == Decimal("-12.53")
        assert "projected_monthly_profit" not in result.metrics

    def test_default_tier_markup(self, make_snapshot):
        """A 30.00 product uses the 2.0 tier: 60 - 30 - 3.24 - 15 = 11.76."""
        snapshot = make_snapshot(source_price=Decimal("30.00"), shipping_cost=Decimal("0"))
        result = calculate_margin(snapshot)

        assert result.metrics["markup_multiplier"] == Decimal("2.0")
        assert result.metrics["suggested_price"] == Decimal("60.00")
        assert result.metrics["net_margin_per_unit"] == Decimal("11.76")

    def test_minimum_margin_is_configurable(self, make_snapshot):
        """1.23 per unit is not enough when the floor is 5.00."""
        config = flat_markup("2.5", min_net_margin_per_unit=Decimal("5.00"))
        result = calculate_margin(make_snapshot(), config)

        assert result.passed is False
        assert result.reason == NEGATIVE_MARGIN

    def test_zero_acquisition_cost(self, make_snapshot):
        config = flat_markup("2.5", acquisition_cost_per_unit=Decimal("0"))
        result = calculate_margin(make_snapshot(), config)

        assert result.metrics["net_margin_per_unit"] == Decimal("16.23")

    def test_no_demand_means_no_projected_profit(self, make_snapshot):
        result = calculate_margin(make_snapshot(), flat_markup("2.5"))
        assert result.metrics["projected_monthly_profit"] == Decimal("0.00")

    def test_money_is_quantized(self, make_snapshot):
        snapshot = make_snapshot(source_price=Decimal("9.99"), shipping_cost=Decimal("1.37"))
        result = calculate_margin(snapshot, orders_per_month=Decimal("33.33"))

        for key in ("suggested_price", "platform_fee", "net_margin_per_unit", "projected_monthly_profit"):
            assert result.metrics[key] == result.metrics[key].quantize(Decimal("0.01"))
