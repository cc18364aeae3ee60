"""Data models for product analysis."""

from decimal import Decimal
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializeAsAny,
    field_validator,
    model_validator,
)


class Currency(str, Enum):
    """Currencies a marketplace listing can be priced in."""

    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"
    CNY = "CNY"


class StageName(str, Enum):
    """Pipeline stages, in execution order."""

    MOMENTUM = "momentum"
    QUALITY_GATE = "quality_gate"
    MARGIN = "margin"
    SATURATION = "saturation"


class Verdict(str, Enum):
    """Final outcome of an analysis."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SaturationRisk(str, Enum):
    """How crowded the market looks among the caller's tracked stores."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OpportunityTier(str, Enum):
    """Ranking tier for accepted products."""

    WINNER = "winner"
    POTENTIAL = "potential"
    RISKY = "risky"


class AdDifficulty(str, Enum):
    """How hard paid acquisition is likely to be, from market saturation."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    VERY_HARD = "very_hard"


Metric = Union[Decimal, int, float]


class ProductSnapshot(BaseModel):
    """Canonical product record, built once per analysis request."""

    model_config = ConfigDict(frozen=True)

    # Identification
    product_id: Optional[str] = Field(None, description="Marketplace product identifier")
    title: str = Field("", description="Product title")

    # Pricing
    source_price: Decimal = Field(..., gt=0, description="Supplier price per unit")
    shipping_cost: Decimal = Field(Decimal("0"), ge=0, description="Shipping cost per unit")
    currency: Currency = Field(Currency.EUR, description="Currency of all money fields")

    # Quality signals (None = unknown, which fails the quality gate)
    rating: Optional[float] = Field(None, ge=0, le=5, description="Product rating (0-5)")
    feedback_rate: Optional[float] = Field(
        None, ge=0, le=1, description="Fraction of positive seller feedback"
    )

    # Demand
    order_count: int = Field(0, ge=0, description="Orders recorded on the listing")
    store_age_months: int = Field(0, ge=0, description="Age of the source store in months")
    store_age_known: bool = Field(True, description="False when the store age was not supplied")

    # Matching attributes
    categories: frozenset[str] = Field(default_factory=frozenset, description="Lower-cased categories")
    image_fingerprint: Optional[str] = Field(None, description="Perceptual hash of the main image")


class TrackedStore(BaseModel):
    """A competitor store the requesting user is monitoring."""

    model_config = ConfigDict(frozen=True)

    store_id: str = Field(..., description="Tracked store identifier")
    domain: str = Field(..., description="Store domain, e.g. shop.example.com")
    product_categories: frozenset[str] = Field(default_factory=frozenset)
    last_seen_product_ids: frozenset[str] = Field(default_factory=frozenset)
    last_seen_titles: tuple[str, ...] = Field(default_factory=tuple)
    last_seen_image_fingerprints: frozenset[str] = Field(default_factory=frozenset)


class StageResult(BaseModel):
    """Outcome of a single pipeline stage."""

    model_config = ConfigDict(frozen=True)

    stage: StageName
    passed: bool
    metrics: dict[str, Metric] = Field(default_factory=dict)
    reason: Optional[str] = Field(None, description="Machine-readable reason, only when failed")
    notes: tuple[str, ...] = Field(default_factory=tuple)


class SaturationResult(StageResult):
    """Saturation stage outcome, with the competitors it found."""

    stage: Literal[StageName.SATURATION] = StageName.SATURATION
    passed: bool = True
    risk: SaturationRisk = SaturationRisk.LOW
    matched_store_ids: tuple[str, ...] = Field(default_factory=tuple)


class AnalysisResult(BaseModel):
    """The pipeline's single output.

    Fields belonging to stages that never ran are None, never zero.
    """

    model_config = ConfigDict(frozen=True)

    product_id: Optional[str] = None
    currency: Currency
    verdict: Verdict
    rejection_stage: Optional[StageName] = None
    rejection_reason: Optional[str] = None

    # Stage 1
    momentum_score: Optional[float] = None
    orders_per_month: Optional[Decimal] = None
    momentum_low_confidence: Optional[bool] = None

    # Stage 3
    suggested_price: Optional[Decimal] = None
    net_margin_per_unit: Optional[Decimal] = None
    net_margin_percent: Optional[Decimal] = None
    projected_monthly_profit: Optional[Decimal] = None

    # Stage 4
    saturation_risk: Optional[SaturationRisk] = None
    matched_competitor_store_ids: Optional[tuple[str, ...]] = None

    # Ranking (accepted products only)
    opportunity_score: Optional[float] = None
    opportunity_tier: Optional[OpportunityTier] = None
    ad_difficulty: Optional[AdDifficulty] = None

    stages: tuple[SerializeAsAny[StageResult], ...] = Field(default_factory=tuple)
    reasoning: tuple[str, ...] = Field(default_factory=tuple)

    @property
    def accepted(self) -> bool:
        return self.verdict == Verdict.ACCEPTED


# --- Configuration ---


class MomentumConfig(BaseModel):
    """Band boundaries for the momentum score (orders per month)."""

    weak_ceiling: Decimal = Field(Decimal("5"), gt=0, description="Below this = weak band")
    strong_floor: Decimal = Field(Decimal("50"), gt=0, description="Above this = strong band")
    saturation_orders: Decimal = Field(
        Decimal("500"), gt=0, description="Orders/month at which the score reaches 100"
    )
    weak_max_score: float = Field(30.0, description="Score at the top of the weak band")
    moderate_max_score: float = Field(70.0, description="Score at the top of the moderate band")

    @model_validator(mode="after")
    def _check_band_order(self) -> "MomentumConfig":
        if not self.weak_ceiling < self.strong_floor <= self.saturation_orders:
            raise ValueError(
                "momentum bands must satisfy weak_ceiling < strong_floor <= saturation_orders"
            )
        if not 0 <= self.weak_max_score <= self.moderate_max_score <= 100:
            raise ValueError("band scores must satisfy 0 <= weak_max_score <= moderate_max_score <= 100")
        return self


class QualityGateConfig(BaseModel):
    """Hard quality thresholds."""

    min_rating: float = Field(4.7, description="Reject if rating < this")
    min_feedback_rate: float = Field(0.95, description="Reject if positive feedback < this")
    min_orders: int = Field(0, ge=0, description="Reject if orders < this (0 disables)")


class MarkupTier(BaseModel):
    """Markup applied to products whose source price is below max_source_price."""

    max_source_price: Optional[Decimal] = Field(
        None, description="Exclusive upper bound; None = no upper bound"
    )
    multiplier: Decimal = Field(..., gt=0)


DEFAULT_MARKUP_TIERS: list[MarkupTier] = [
    MarkupTier(max_source_price=Decimal("10"), multiplier=Decimal("3.0")),
    MarkupTier(max_source_price=Decimal("25"), multiplier=Decimal("2.5")),
    MarkupTier(max_source_price=Decimal("50"), multiplier=Decimal("2.0")),
    MarkupTier(max_source_price=None, multiplier=Decimal("1.6")),
]


class MarginConfig(BaseModel):
    """Pricing, fee and volume assumptions for the margin stage."""

    markup_multiplier: Optional[Decimal] = Field(
        None, gt=0, description="Flat markup; overrides the tier table when set"
    )
    markup_tiers: list[MarkupTier] = Field(default_factory=lambda: list(DEFAULT_MARKUP_TIERS))

    # Fees (percentage of the selling price plus a fixed amount per order)
    payment_fee_rate: Decimal = Field(Decimal("0.029"), ge=0, description="Payment processor rate")
    marketplace_commission_rate: Decimal = Field(
        Decimal("0.02"), ge=0, description="Storefront platform commission"
    )
    fixed_fee_per_order: Decimal = Field(Decimal("0.30"), ge=0, description="Fixed fee per order")
    acquisition_cost_per_unit: Decimal = Field(
        Decimal("15.00"), ge=0, description="Advertising cost per acquired customer"
    )

    # Volume
    conversion_capture_fraction: Decimal = Field(
        Decimal("0.10"), ge=0, le=1, description="Share of the source volume we expect to capture"
    )

    min_net_margin_per_unit: Decimal = Field(
        Decimal("0"), description="Reject if net margin per unit <= this"
    )

    @field_validator("markup_tiers")
    @classmethod
    def _sort_tiers(cls, tiers: list[MarkupTier]) -> list[MarkupTier]:
        if not tiers:
            raise ValueError("markup_tiers must not be empty")
        bounded = sorted(
            (t for t in tiers if t.max_source_price is not None),
            key=lambda t: t.max_source_price,
        )
        open_ended = [t for t in tiers if t.max_source_price is None]
        return bounded + open_ended[:1]


class SaturationConfig(BaseModel):
    """Competitor matching and risk banding."""

    medium_at: int = Field(1, ge=1, description="Matches needed for medium risk")
    high_at: int = Field(3, ge=1, description="Matches needed for high risk")
    match_on_product_id: bool = Field(True, description="Same product id counts as a match")
    match_on_image: bool = Field(True, description="Same image fingerprint counts as a match")
    require_category_overlap: bool = Field(
        True, description="Title similarity only counts within a shared category"
    )
    keyword_min_length: int = Field(4, ge=1, description="Shortest title word used as a keyword")
    max_keywords: int = Field(5, ge=1, description="Keywords taken from the candidate title")
    min_shared_keywords: int = Field(2, ge=1, description="Shared keywords for a title match")


class ScoreConfig(BaseModel):
    """Opportunity score adjustments for accepted products."""

    high_margin: Decimal = Field(Decimal("25"), description="Net margin for the top bonus")
    good_margin: Decimal = Field(Decimal("15"), description="Net margin for the small bonus")
    thin_margin: Decimal = Field(Decimal("10"), description="Net margin below which we penalize")
    high_margin_bonus: float = 10.0
    good_margin_bonus: float = 5.0
    thin_margin_penalty: float = -15.0
    saturation_penalties: dict[SaturationRisk, float] = Field(
        default_factory=lambda: {
            SaturationRisk.LOW: 0.0,
            SaturationRisk.MEDIUM: -10.0,
            SaturationRisk.HIGH: -20.0,
        }
    )
    winner_threshold: float = Field(80.0, description="Score for WINNER tier")
    potential_threshold: float = Field(60.0, description="Score for POTENTIAL tier")
    very_hard_at: int = Field(
        6, ge=1, description="Matched competitors at which high risk makes advertising very hard"
    )


class AnalysisConfig(BaseModel):
    """All tunable business rules for the pipeline."""

    reference_currency: Currency = Field(
        Currency.EUR, description="Currency assumed when a listing states none"
    )
    momentum: MomentumConfig = Field(default_factory=MomentumConfig)
    quality: QualityGateConfig = Field(default_factory=QualityGateConfig)
    margin: MarginConfig = Field(default_factory=MarginConfig)
    saturation: SaturationConfig = Field(default_factory=SaturationConfig)
    score: ScoreConfig = Field(default_factory=ScoreConfig)
