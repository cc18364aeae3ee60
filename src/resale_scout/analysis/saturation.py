"""Stage 4: market saturation check.

Cross-references the candidate product against the caller's tracked
competitor stores. Saturation is advisory: the stage always passes and
only reports a risk band plus the stores that already sell the product.

How a store "matches" is pluggable. Any object with a
``matches(snapshot, store) -> bool`` method can be passed in; the default
matcher is built from SaturationConfig by build_matcher().
"""

import logging
import re
from collections.abc import Iterable
from typing import Any, Protocol

from pydantic import ValidationError

from resale_scout.analysis.errors import MatcherError
from resale_scout.analysis.models import (
    AnalysisConfig,
    ProductSnapshot,
    SaturationConfig,
    SaturationResult,
    SaturationRisk,
    TrackedStore,
)

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\w+", re.UNICODE)


class CompetitorMatcher(Protocol):
    """Decides whether a tracked store already sells the candidate product."""

    def matches(self, snapshot: ProductSnapshot, store: TrackedStore) -> bool: ...


# --- Matchers ---


class ProductIdMatcher:
    """Store recently listed the exact same marketplace product."""

    def matches(self, snapshot: ProductSnapshot, store: TrackedStore) -> bool:
        return snapshot.product_id is not None and snapshot.product_id in store.last_seen_product_ids


class CategoryOverlapMatcher:
    """Store sells in at least one of the candidate's categories."""

    def matches(self, snapshot: ProductSnapshot, store: TrackedStore) -> bool:
        return bool(snapshot.categories & {c.lower() for c in store.product_categories})


class ImageFingerprintMatcher:
    """Store listed a product with the same main-image fingerprint."""

    def matches(self, snapshot: ProductSnapshot, store: TrackedStore) -> bool:
        return (
            snapshot.image_fingerprint is not None
            and snapshot.image_fingerprint in store.last_seen_image_fingerprints
        )


def extract_keywords(title: str, min_length: int = 4, limit: int = 5) -> list[str]:
    """Distinct lower-cased title words of at least min_length, in order."""
    keywords: list[str] = []
    for word in _WORD_RE.findall(title.lower()):
        if len(word) >= min_length and word not in keywords:
            keywords.append(word)
            if len(keywords) == limit:
                break
    return keywords


class TitleKeywordMatcher:
    """A tracked title shares enough keywords with the candidate title."""

    def __init__(self, min_length: int = 4, max_keywords: int = 5, min_shared: int = 2):
        self.min_length = min_length
        self.max_keywords = max_keywords
        self.min_shared = min_shared

    def matches(self, snapshot: ProductSnapshot, store: TrackedStore) -> bool:
        keywords = set(extract_keywords(snapshot.title, self.min_length, self.max_keywords))
        if not keywords:
            return False
        needed = min(self.min_shared, len(keywords))

        for title in store.last_seen_titles:
            if not isinstance(title, str):
                raise MatcherError(
                    f"Tracked title is not a string: {title!r}",
                    store_id=store.store_id,
                )
            words = set(_WORD_RE.findall(title.lower()))
            if len(keywords & words) >= needed:
                return True
        return False


class AnyOf:
    """Matches when any child matcher does."""

    def __init__(self, *matchers: CompetitorMatcher):
        self.matchers = matchers

    def matches(self, snapshot: ProductSnapshot, store: TrackedStore) -> bool:
        return any(m.matches(snapshot, store) for m in self.matchers)


class AllOf:
    """Matches when every child matcher does."""

    def __init__(self, *matchers: CompetitorMatcher):
        self.matchers = matchers

    def matches(self, snapshot: ProductSnapshot, store: TrackedStore) -> bool:
        return all(m.matches(snapshot, store) for m in self.matchers)


def build_matcher(config: SaturationConfig) -> CompetitorMatcher:
    """Default matcher: same product, same image, or a similar title.

    Title similarity only counts inside a shared category unless
    require_category_overlap is off.
    """
    title_matcher: CompetitorMatcher = TitleKeywordMatcher(
        min_length=config.keyword_min_length,
        max_keywords=config.max_keywords,
        min_shared=config.min_shared_keywords,
    )
    if config.require_category_overlap:
        title_matcher = AllOf(CategoryOverlapMatcher(), title_matcher)

    matchers: list[CompetitorMatcher] = []
    if config.match_on_product_id:
        matchers.append(ProductIdMatcher())
    if config.match_on_image:
        matchers.append(ImageFingerprintMatcher())
    matchers.append(title_matcher)
    return AnyOf(*matchers)


# --- Risk banding ---


def classify_risk(match_count: int, config: SaturationConfig) -> SaturationRisk:
    """Map a competitor count to a risk band (monotonic in the count)."""
    if match_count >= config.high_at:
        return SaturationRisk.HIGH
    if match_count >= config.medium_at:
        return SaturationRisk.MEDIUM
    return SaturationRisk.LOW


def _coerce_store(record: Any) -> TrackedStore:
    if isinstance(record, TrackedStore):
        return record
    try:
        return TrackedStore.model_validate(record)
    except ValidationError as e:
        raise MatcherError(f"Malformed tracked store record: {e.error_count()} errors") from e


def find_competitors(
    snapshot: ProductSnapshot,
    tracked_stores: Iterable[Any],
    matcher: CompetitorMatcher,
) -> list[str]:
    """Ids of tracked stores that already sell the product, in input order.

    A store whose record is malformed, or whose check raises, is logged
    and skipped.
    """
    matched: list[str] = []
    for index, record in enumerate(tracked_stores):
        try:
            store = _coerce_store(record)
            if matcher.matches(snapshot, store) and store.store_id not in matched:
                matched.append(store.store_id)
        except Exception as e:
            logger.warning(f"Skipping tracked store #{index} for {snapshot.product_id}: {e}")
            continue
    return matched


def check_saturation(
    snapshot: ProductSnapshot,
    tracked_stores: Iterable[Any],
    config: AnalysisConfig | None = None,
    matcher: CompetitorMatcher | None = None,
) -> SaturationResult:
    """Run the saturation stage.

    Args:
        snapshot: Product that passed the margin stage
        tracked_stores: The caller's tracked competitor stores (read-only,
            any iterable; it is read once)
        config: Analysis configuration (uses defaults if None)
        matcher: Custom matcher; built from config when None

    Returns:
        SaturationResult (always passed) with the risk band and matched ids
    """
    if config is None:
        config = AnalysisConfig()
    if matcher is None:
        matcher = build_matcher(config.saturation)

    stores = tuple(tracked_stores)
    matched = find_competitors(snapshot, stores, matcher) if stores else []
    risk = classify_risk(len(matched), config.saturation)

    logger.debug(
        f"Saturation for {snapshot.product_id}: {len(matched)}/{len(stores)} "
        f"tracked stores match, risk {risk.value}"
    )

    return SaturationResult(
        metrics={
            "tracked_store_count": len(stores),
            "matched_store_count": len(matched),
        },
        risk=risk,
        matched_store_ids=tuple(matched),
    )
