"""Database module."""

from resale_scout.db.base import get_db
from resale_scout.db.models import ProductAnalysis, TrackedStoreRecord

__all__ = ["get_db", "ProductAnalysis", "TrackedStoreRecord"]
