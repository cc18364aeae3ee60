"""Analysis Service - gathers inputs, runs the pipeline, saves results.

Fetches raw listings and the owner's tracked stores through the injected
ports, then hands already-fetched data to the pure pipeline.

Usage:
    service = AnalysisService(listing_source, SqlTrackedStoreRepository(session))
    batch = await service.analyze_many(["1005001", "1005002"], owner_id="user-1")
    print(f"{batch.accepted_count} of {batch.analyzed_count} accepted")
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resale_scout.analysis.errors import NormalizationError
from resale_scout.analysis.models import AnalysisResult, ProductSnapshot
from resale_scout.analysis.normalizer import normalize
from resale_scout.analysis.orchestrator import analyze
from resale_scout.analysis.ports import (
    AnalysisConfigSource,
    ListingSource,
    StageCommentator,
    StaticConfigSource,
    TrackedStoreRepository,
)
from resale_scout.analysis.saturation import CompetitorMatcher
from resale_scout.db.models import ProductAnalysis

logger = logging.getLogger(__name__)


@dataclass
class BatchAnalysis:
    """Result of analyzing several listings."""

    requested_count: int = 0
    analyzed_count: int = 0
    accepted_count: int = 0
    rejected_count: int = 0
    results: list[AnalysisResult] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def acceptance_rate(self) -> float:
        """Share of analyzed products that were accepted."""
        if self.analyzed_count == 0:
            return 0.0
        return self.accepted_count / self.analyzed_count


def rank_results(results: Sequence[AnalysisResult]) -> list[AnalysisResult]:
    """Accepted first, by opportunity score descending; ties by product id."""
    return sorted(
        results,
        key=lambda r: (not r.accepted, -(r.opportunity_score or 0.0), r.product_id or ""),
    )


def _to_decimal(value: Optional[float]) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


async def save_analyses(
    results: Sequence[AnalysisResult],
    session: AsyncSession,
    owner_id: str,
    snapshots: Optional[Sequence[ProductSnapshot]] = None,
) -> list[ProductAnalysis]:
    """Save analysis results to the database.

    Updates the existing row if the owner already analyzed the product
    (upsert behavior). Results without a product id are skipped.

    Args:
        results: Results to save.
        session: Database session.
        owner_id: User the analyses belong to.
        snapshots: Optional snapshots the results came from (for titles).

    Returns:
        List of saved ProductAnalysis records.
    """
    if not results:
        return []

    titles: dict[str, str] = {}
    if snapshots:
        for s in snapshots:
            if s.product_id is not None:
                titles[s.product_id] = s.title

    saved = []

    for result in results:
        if result.product_id is None:
            logger.warning("Not saving analysis without a product id")
            continue

        values: dict[str, Any] = {
            "currency": result.currency.value,
            "verdict": result.verdict.value,
            "rejection_stage": result.rejection_stage.value if result.rejection_stage else None,
            "rejection_reason": result.rejection_reason,
            "momentum_score": _to_decimal(result.momentum_score),
            "suggested_price": result.suggested_price,
            "net_margin_per_unit": result.net_margin_per_unit,
            "net_margin_percent": result.net_margin_percent,
            "projected_monthly_profit": result.projected_monthly_profit,
            "saturation_risk": result.saturation_risk.value if result.saturation_risk else None,
            "matched_competitor_store_ids": (
                list(result.matched_competitor_store_ids)
                if result.matched_competitor_store_ids is not None
                else None
            ),
            "opportunity_score": _to_decimal(result.opportunity_score),
            "opportunity_tier": result.opportunity_tier.value if result.opportunity_tier else None,
            "ad_difficulty": result.ad_difficulty.value if result.ad_difficulty else None,
            "reasoning": list(result.reasoning),
        }
        if result.product_id in titles:
            values["title"] = titles[result.product_id]

        existing = (
            await session.execute(
                select(ProductAnalysis).where(
                    ProductAnalysis.owner_id == owner_id,
                    ProductAnalysis.product_id == result.product_id,
                )
            )
        ).scalar_one_or_none()

        if existing:
            for key, value in values.items():
                setattr(existing, key, value)
            saved.append(existing)
        else:
            record = ProductAnalysis(owner_id=owner_id, product_id=result.product_id, **values)
            session.add(record)
            saved.append(record)

    await session.flush()
    return saved


class AnalysisService:
    """Service for analyzing marketplace listings for one user at a time.

    Orchestrates:
    1. Listing fetch (ListingSource)
    2. Normalization into a ProductSnapshot
    3. Tracked store lookup (TrackedStoreRepository)
    4. The four-stage analysis pipeline
    """

    def __init__(
        self,
        listing_source: Optional[ListingSource],
        tracked_stores: TrackedStoreRepository,
        config_source: Optional[AnalysisConfigSource] = None,
        matcher: Optional[CompetitorMatcher] = None,
        commentator: Optional[StageCommentator] = None,
    ):
        """Initialize analysis service.

        Args:
            listing_source: Marketplace listing fetcher (only needed for
                analyze_listing / analyze_many).
            tracked_stores: Read-only tracked store lookup.
            config_source: Business rules (defaults when None).
            matcher: Competitor matcher override for the saturation stage.
            commentator: Optional reasoning collaborator.
        """
        self.listings = listing_source
        self.tracked_stores = tracked_stores
        self.config_source = config_source or StaticConfigSource()
        self.matcher = matcher
        self.commentator = commentator

    async def analyze_raw(
        self,
        raw_listing: Mapping[str, Any],
        owner_id: str,
    ) -> tuple[ProductSnapshot, AnalysisResult]:
        """Normalize and analyze a listing payload the caller already has.

        Raises:
            NormalizationError: If the listing lacks price or rating.
        """
        config = self.config_source.load()
        snapshot = normalize(raw_listing, reference_currency=config.reference_currency)
        stores = await self.tracked_stores.list_for_owner(owner_id)
        result = analyze(snapshot, stores, config, self.matcher, self.commentator)
        return snapshot, result

    async def analyze_listing(self, listing_id: str, owner_id: str) -> AnalysisResult:
        """Fetch, normalize and analyze one listing."""
        if self.listings is None:
            raise RuntimeError("AnalysisService has no listing source")

        raw = await self.listings.fetch_listing(listing_id)
        _, result = await self.analyze_raw(raw, owner_id)
        return result

    async def analyze_many(self, listing_ids: Sequence[str], owner_id: str) -> BatchAnalysis:
        """Analyze several listings.

        Listings are fetched concurrently. A listing that cannot be fetched
        or normalized is recorded in failures and does not stop the batch.

        Returns:
            BatchAnalysis with results ranked best first.
        """
        if self.listings is None:
            raise RuntimeError("AnalysisService has no listing source")

        batch = BatchAnalysis(requested_count=len(listing_ids))
        if not listing_ids:
            return batch

        config = self.config_source.load()
        stores = await self.tracked_stores.list_for_owner(owner_id)

        logger.info(f"Fetching {len(listing_ids)} listings for {owner_id}")
        fetched = await asyncio.gather(
            *(self.listings.fetch_listing(listing_id) for listing_id in listing_ids),
            return_exceptions=True,
        )

        results: list[AnalysisResult] = []
        for listing_id, raw in zip(listing_ids, fetched):
            if isinstance(raw, BaseException):
                logger.error(f"Failed to fetch listing {listing_id}: {raw}")
                batch.failures[listing_id] = f"fetch failed: {raw}"
                continue
            try:
                snapshot = normalize(raw, reference_currency=config.reference_currency)
            except NormalizationError as e:
                logger.warning(f"Cannot analyze listing {listing_id}: {e}")
                batch.failures[listing_id] = str(e)
                continue
            results.append(analyze(snapshot, stores, config, self.matcher, self.commentator))

        batch.results = rank_results(results)
        batch.analyzed_count = len(results)
        batch.accepted_count = sum(1 for r in results if r.accepted)
        batch.rejected_count = batch.analyzed_count - batch.accepted_count

        logger.info(
            f"Analyzed {batch.analyzed_count} listings: "
            f"{batch.accepted_count} accepted, {batch.rejected_count} rejected, "
            f"{len(batch.failures)} failed"
        )
        return batch
