"""SQL-backed tracked store repository."""

import logging
from collections.abc import Sequence

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resale_scout.analysis.models import TrackedStore
from resale_scout.db.models import TrackedStoreRecord

logger = logging.getLogger(__name__)


class SqlTrackedStoreRepository:
    """TrackedStoreRepository reading the tracked_stores table.

    Read-only: the analysis never writes tracked stores.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_owner(self, owner_id: str) -> Sequence[TrackedStore]:
        """Tracked stores for an owner, oldest first.

        Rows that do not form a valid TrackedStore are logged and skipped.
        """
        result = await self.session.execute(
            select(TrackedStoreRecord)
            .where(TrackedStoreRecord.owner_id == owner_id)
            .order_by(TrackedStoreRecord.created_at, TrackedStoreRecord.store_id)
        )

        stores: list[TrackedStore] = []
        for record in result.scalars().all():
            try:
                stores.append(record.to_domain())
            except (ValidationError, TypeError) as e:
                logger.warning(f"Skipping malformed tracked store {record.store_id}: {e}")
        return stores
