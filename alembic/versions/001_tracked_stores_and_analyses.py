"""Initial migration - tracked stores and product analyses.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create tracked_stores table
    op.create_table(
        "tracked_stores",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", sa.String(255), nullable=False, index=True),
        sa.Column("store_id", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(500), nullable=False),
        # Catalog snapshot
        sa.Column("product_categories", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("last_seen_product_ids", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("last_seen_titles", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("last_seen_image_fingerprints", sa.JSON(), nullable=False, server_default="[]"),
        # Timestamps
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("owner_id", "store_id", name="uq_tracked_store_owner"),
    )

    # Create product_analyses table
    op.create_table(
        "product_analyses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", sa.String(255), nullable=False, index=True),
        sa.Column("product_id", sa.String(255), nullable=False, index=True),
        sa.Column("title", sa.Text(), nullable=False, server_default=""),
        sa.Column("currency", sa.String(3), nullable=False),
        # Verdict
        sa.Column("verdict", sa.String(20), nullable=False, index=True),
        sa.Column("rejection_stage", sa.String(50), nullable=True),
        sa.Column("rejection_reason", sa.String(100), nullable=True),
        # Stage outputs
        sa.Column("momentum_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("suggested_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("net_margin_per_unit", sa.Numeric(10, 2), nullable=True),
        sa.Column("net_margin_percent", sa.Numeric(10, 4), nullable=True),
        sa.Column("projected_monthly_profit", sa.Numeric(12, 2), nullable=True),
        sa.Column("saturation_risk", sa.String(20), nullable=True),
        sa.Column("matched_competitor_store_ids", sa.JSON(), nullable=True),
        # Ranking
        sa.Column("opportunity_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("opportunity_tier", sa.String(20), nullable=True),
        sa.Column("ad_difficulty", sa.String(20), nullable=True),
        sa.Column("reasoning", sa.JSON(), nullable=False, server_default="[]"),
        # Timestamps
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("owner_id", "product_id", name="uq_analysis_owner_product"),
    )


def downgrade() -> None:
    op.drop_table("product_analyses")
    op.drop_table("tracked_stores")
