"""Collaborator interfaces for the analysis pipeline.

The core never fetches or stores anything itself. Callers supply these
ports to the analysis service, which gathers inputs before running the
pure pipeline.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Optional, Protocol

from resale_scout.analysis.models import (
    AnalysisConfig,
    ProductSnapshot,
    StageResult,
    TrackedStore,
)


class ListingSource(Protocol):
    """Fetches raw listing payloads from the marketplace."""

    async def fetch_listing(self, listing_id: str) -> Mapping[str, Any]: ...


class TrackedStoreRepository(Protocol):
    """Read-only access to the stores a user tracks as competitors."""

    async def list_for_owner(self, owner_id: str) -> Sequence[TrackedStore]: ...


class AnalysisConfigSource(Protocol):
    """Supplies the current business rules."""

    def load(self) -> AnalysisConfig: ...


class StageCommentator(Protocol):
    """Optional reasoning step invoked between stages.

    Returns a line to append to the result's reasoning, or None.
    """

    def comment(self, snapshot: ProductSnapshot, result: StageResult) -> Optional[str]: ...


class StaticConfigSource:
    """AnalysisConfigSource that always returns the same configuration."""

    def __init__(self, config: AnalysisConfig | None = None):
        self.config = config or AnalysisConfig()

    def load(self) -> AnalysisConfig:
        return self.config


class InMemoryTrackedStores:
    """TrackedStoreRepository backed by a dict of owner id to stores."""

    def __init__(self, stores_by_owner: Mapping[str, Sequence[TrackedStore]] | None = None):
        self.stores_by_owner = dict(stores_by_owner or {})

    async def list_for_owner(self, owner_id: str) -> Sequence[TrackedStore]:
        return tuple(self.stores_by_owner.get(owner_id, ()))
