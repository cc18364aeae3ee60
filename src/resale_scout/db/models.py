"""Database models for tracked stores and saved analyses."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from resale_scout.analysis.models import TrackedStore
from resale_scout.db.base import Base


class TrackedStoreRecord(Base):
    """A competitor store a user tracks (written by the store tracker)."""

    __tablename__ = "tracked_stores"
    __table_args__ = (UniqueConstraint("owner_id", "store_id", name="uq_tracked_store_owner"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    owner_id: Mapped[str] = mapped_column(String(255), index=True)
    store_id: Mapped[str] = mapped_column(String(255))
    domain: Mapped[str] = mapped_column(String(500))

    # Catalog snapshot from the last tracker run
    product_categories: Mapped[list[str]] = mapped_column(JSON, default=list)
    last_seen_product_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    last_seen_titles: Mapped[list[str]] = mapped_column(JSON, default=list)
    last_seen_image_fingerprints: Mapped[list[str]] = mapped_column(JSON, default=list)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def to_domain(self) -> TrackedStore:
        """Convert to the analysis model (raises ValidationError on bad data)."""
        return TrackedStore(
            store_id=self.store_id,
            domain=self.domain,
            product_categories=frozenset(self.product_categories or ()),
            last_seen_product_ids=frozenset(self.last_seen_product_ids or ()),
            last_seen_titles=tuple(self.last_seen_titles or ()),
            last_seen_image_fingerprints=frozenset(self.last_seen_image_fingerprints or ()),
        )

    def __repr__(self) -> str:
        return f"<TrackedStoreRecord {self.owner_id}/{self.store_id}: {self.domain}>"


class ProductAnalysis(Base):
    """Saved result of analyzing a product for a user."""

    __tablename__ = "product_analyses"
    __table_args__ = (UniqueConstraint("owner_id", "product_id", name="uq_analysis_owner_product"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    owner_id: Mapped[str] = mapped_column(String(255), index=True)
    product_id: Mapped[str] = mapped_column(String(255), index=True)
    title: Mapped[str] = mapped_column(Text, default="")
    currency: Mapped[str] = mapped_column(String(3))

    # Verdict
    verdict: Mapped[str] = mapped_column(String(20), index=True)
    rejection_stage: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Stage outputs (NULL when the stage never ran)
    momentum_score: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    suggested_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    net_margin_per_unit: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    net_margin_percent: Mapped[Decimal | None] = mapped_column(Numeric(10, 4), nullable=True)
    projected_monthly_profit: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    saturation_risk: Mapped[str | None] = mapped_column(String(20), nullable=True)
    matched_competitor_store_ids: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    # Ranking
    opportunity_score: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    opportunity_tier: Mapped[str | None] = mapped_column(String(20), nullable=True)
    ad_difficulty: Mapped[str | None] = mapped_column(String(20), nullable=True)

    reasoning: Mapped[list[str]] = mapped_column(JSON, default=list)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<ProductAnalysis {self.product_id}: {self.verdict}>"
