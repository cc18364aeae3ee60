"""Product analysis API endpoints.

Endpoints:
- POST /analysis - analyze a raw listing against the owner's tracked stores
- GET /analysis - list saved analyses (filterable by verdict)
- GET /analysis/{product_id} - get a saved analysis
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from resale_scout.analysis.errors import NormalizationError
from resale_scout.analysis.models import AnalysisResult, Verdict
from resale_scout.analysis.ports import AnalysisConfigSource
from resale_scout.config import SettingsConfigSource
from resale_scout.db.base import get_db
from resale_scout.db.models import ProductAnalysis
from resale_scout.db.repository import SqlTrackedStoreRepository
from resale_scout.services.analysis import AnalysisService, save_analyses

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analysis", tags=["analysis"])


def get_config_source() -> AnalysisConfigSource:
    """Dependency for the analysis rules."""
    return SettingsConfigSource()


class AnalysisRequest(BaseModel):
    """Request to analyze a marketplace listing."""

    owner_id: str = Field(..., min_length=1, description="User whose tracked stores to check")
    listing: dict[str, Any] = Field(..., description="Raw marketplace listing payload")


class SavedAnalysisResponse(BaseModel):
    """Saved analysis response."""

    id: UUID
    owner_id: str
    product_id: str
    title: str
    currency: str
    verdict: str
    rejection_stage: str | None
    rejection_reason: str | None
    momentum_score: Decimal | None
    suggested_price: Decimal | None
    net_margin_per_unit: Decimal | None
    net_margin_percent: Decimal | None
    projected_monthly_profit: Decimal | None
    saturation_risk: str | None
    matched_competitor_store_ids: list[str] | None
    opportunity_score: Decimal | None
    opportunity_tier: str | None
    ad_difficulty: str | None
    reasoning: list[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SavedAnalysisListResponse(BaseModel):
    """Response for list of saved analyses."""

    items: list[SavedAnalysisResponse]
    total: int
    limit: int
    offset: int


@router.post("", response_model=AnalysisResult)
async def create_analysis(
    request: AnalysisRequest,
    db: AsyncSession = Depends(get_db),
    config_source: AnalysisConfigSource = Depends(get_config_source),
) -> AnalysisResult:
    """Analyze a listing and save the result.

    Returns 422 when the listing is missing its price or rating.
    """
    service = AnalysisService(
        listing_source=None,
        tracked_stores=SqlTrackedStoreRepository(db),
        config_source=config_source,
    )

    try:
        snapshot, result = await service.analyze_raw(request.listing, request.owner_id)
    except NormalizationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Listing cannot be analyzed: {e}",
        )

    await save_analyses([result], db, request.owner_id, [snapshot])
    return result


@router.get("", response_model=SavedAnalysisListResponse)
async def list_analyses(
    owner_id: str = Query(..., description="User the analyses belong to"),
    verdict: Verdict | None = Query(None, description="Filter by verdict"),
    limit: int = Query(20, ge=1, le=100, description="Maximum number of results"),
    offset: int = Query(0, ge=0, description="Number of results to skip"),
    db: AsyncSession = Depends(get_db),
) -> SavedAnalysisListResponse:
    """List saved analyses, best opportunity first."""
    query = select(ProductAnalysis).where(ProductAnalysis.owner_id == owner_id)
    if verdict:
        query = query.where(ProductAnalysis.verdict == verdict.value)

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()

    result = await db.execute(
        query.order_by(
            ProductAnalysis.opportunity_score.desc().nulls_last(),
            ProductAnalysis.product_id,
        )
        .limit(limit)
        .offset(offset)
    )
    items = [SavedAnalysisResponse.model_validate(row) for row in result.scalars().all()]

    return SavedAnalysisListResponse(items=items, total=total, limit=limit, offset=offset)


@router.get("/{product_id}", response_model=SavedAnalysisResponse)
async def get_analysis(
    product_id: str,
    owner_id: str = Query(..., description="User the analysis belongs to"),
    db: AsyncSession = Depends(get_db),
) -> ProductAnalysis:
    """Get the saved analysis for a product."""
    result = await db.execute(
        select(ProductAnalysis).where(
            ProductAnalysis.owner_id == owner_id,
            ProductAnalysis.product_id == product_id,
        )
    )
    analysis = result.scalar_one_or_none()

    if not analysis:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Analysis not found",
        )

    return analysis
