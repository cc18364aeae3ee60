"""Stage 3: margin safety calculations.

Formulas:
    Suggested Price = (Source Price + Shipping Cost) × Markup Multiplier
    Platform Fee = Suggested Price × (Payment Rate + Commission Rate) + Fixed Fee
    Net Margin/Unit = Suggested Price - Source Price - Shipping Cost
                      - Platform Fee - Acquisition Cost
    Net Margin % = Net Margin/Unit / Suggested Price
    Monthly Units = Orders/Month × Conversion Capture Fraction
    Monthly Profit = Net Margin/Unit × Monthly Units

All money is Decimal, quantized to cents.
"""

import logging
from decimal import Decimal

from resale_scout.analysis.errors import MarginError
from resale_scout.analysis.models import (
    AnalysisConfig,
    MarginConfig,
    ProductSnapshot,
    StageName,
    StageResult,
)
from resale_scout.analysis.money import to_money, to_ratio

logger = logging.getLogger(__name__)

NEGATIVE_MARGIN = "negative_margin"


def select_markup_multiplier(source_price: Decimal, config: MarginConfig) -> Decimal:
    """Pick the markup for a source price.

    A flat markup_multiplier wins; otherwise the first tier whose bound is
    above the price applies. Cheaper items get a higher multiplier.
    """
    if config.markup_multiplier is not None:
        return config.markup_multiplier

    for tier in config.markup_tiers:
        if tier.max_source_price is None or source_price < tier.max_source_price:
            return tier.multiplier

    # Every tier is bounded and the price is above all of them
    return config.markup_tiers[-1].multiplier


def calculate_suggested_price(snapshot: ProductSnapshot, config: MarginConfig) -> Decimal:
    """Resale price: landed cost times markup."""
    multiplier = select_markup_multiplier(snapshot.source_price, config)
    return to_money((snapshot.source_price + snapshot.shipping_cost) * multiplier)


def calculate_platform_fee(price: Decimal, config: MarginConfig) -> Decimal:
    """Payment processor plus marketplace commission on a sale at price."""
    rate = config.payment_fee_rate + config.marketplace_commission_rate
    return to_money(price * rate + config.fixed_fee_per_order)


def calculate_net_margin_per_unit(
    snapshot: ProductSnapshot,
    suggested_price: Decimal,
    config: MarginConfig,
) -> Decimal:
    """Profit left on one unit after product, shipping, fees and acquisition."""
    return to_money(
        suggested_price
        - snapshot.source_price
        - snapshot.shipping_cost
        - calculate_platform_fee(suggested_price, config)
        - config.acquisition_cost_per_unit
    )


def calculate_net_margin_percent(net_margin_per_unit: Decimal, suggested_price: Decimal) -> Decimal:
    """Net margin as a fraction of the selling price (0.4100 = 41%)."""
    if suggested_price <= 0:
        return Decimal("0.0000")
    return to_ratio(net_margin_per_unit / suggested_price)


def estimate_monthly_units(orders_per_month: Decimal, config: MarginConfig) -> Decimal:
    """Units we expect to sell: a fraction of the source listing's volume."""
    return to_money(orders_per_month * config.conversion_capture_fraction)


def require_positive_margin(net_margin_per_unit: Decimal, config: MarginConfig) -> None:
    """Raise MarginError when the unit margin is at or below the minimum."""
    if net_margin_per_unit <= config.min_net_margin_per_unit:
        raise MarginError(
            f"Net margin {net_margin_per_unit} <= minimum {config.min_net_margin_per_unit}",
            reason=NEGATIVE_MARGIN,
        )


def calculate_margin(
    snapshot: ProductSnapshot,
    config: AnalysisConfig | None = None,
    orders_per_month: Decimal = Decimal("0"),
) -> StageResult:
    """Run the margin stage.

    Args:
        snapshot: Product that passed the quality gate
        config: Analysis configuration (uses defaults if None)
        orders_per_month: Demand estimate from the momentum stage

    Returns:
        StageResult with pricing metrics; fails with reason "negative_margin"
        when the product cannot be sold at a positive unit margin
    """
    if config is None:
        config = AnalysisConfig()
    margin_config = config.margin

    multiplier = select_markup_multiplier(snapshot.source_price, margin_config)
    suggested_price = calculate_suggested_price(snapshot, margin_config)
    platform_fee = calculate_platform_fee(suggested_price, margin_config)
    net_margin = calculate_net_margin_per_unit(snapshot, suggested_price, margin_config)
    net_margin_percent = calculate_net_margin_percent(net_margin, suggested_price)

    metrics: dict[str, Decimal] = {
        "markup_multiplier": multiplier,
        "suggested_price": suggested_price,
        "platform_fee": platform_fee,
        "net_margin_per_unit": net_margin,
        "net_margin_percent": net_margin_percent,
    }

    try:
        require_positive_margin(net_margin, margin_config)
    except MarginError as e:
        logger.info(f"Margin stage rejected {snapshot.product_id}: {e}")
        return StageResult(
            stage=StageName.MARGIN,
            passed=False,
            metrics=metrics,
            reason=e.reason,
        )

    monthly_units = estimate_monthly_units(orders_per_month, margin_config)
    metrics["estimated_monthly_units"] = monthly_units
    metrics["projected_monthly_profit"] = to_money(net_margin * monthly_units)

    return StageResult(stage=StageName.MARGIN, passed=True, metrics=metrics)
