"""Pytest fixtures for database testing and sample products."""

from collections.abc import AsyncGenerator, Callable
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from resale_scout.analysis.models import ProductSnapshot, TrackedStore
from resale_scout.api.app import app
from resale_scout.db.base import Base, build_engine, build_session_maker, get_db


# Use SQLite in-memory for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_db() -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session with isolated transactions.

    Creates an in-memory SQLite database, creates all tables,
    and yields a session. Overrides app's get_db dependency.
    """
    engine = build_engine(TEST_DATABASE_URL)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with build_session_maker(engine)() as session:
        # Override app's get_db dependency
        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

        app.dependency_overrides[get_db] = override_get_db

        try:
            yield session
        finally:
            # Clean up
            app.dependency_overrides.clear()
            await session.rollback()

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def make_snapshot() -> Callable[..., ProductSnapshot]:
    """Factory for snapshots that pass every stage unless overridden."""

    def _make(**overrides: Any) -> ProductSnapshot:
        fields: dict[str, Any] = {
            "product_id": "1005006123456789",
            "title": "Portable Mini Blender USB Rechargeable Smoothie Cup",
            "source_price": Decimal("10.00"),
            "shipping_cost": Decimal("2.00"),
            "rating": 4.9,
            "feedback_rate": 0.97,
            "order_count": 600,
            "store_age_months": 6,
            "categories": frozenset({"kitchen", "appliances"}),
        }
        fields.update(overrides)
        return ProductSnapshot(**fields)

    return _make


@pytest.fixture
def good_listing() -> dict[str, Any]:
    """Raw marketplace payload for a product that passes every stage.

    No store date, so orders/month equals the order count.
    """
    return {
        "product_id": "1005006123456789",
        "product_title": "Portable Mini Blender USB Rechargeable Smoothie Cup",
        "app_sale_price": "10.00",
        "shipping_cost": "2.00",
        "rating": 4.9,
        "positive_feedback": "97%",
        "orders": 100,
        "categories": ["Kitchen", "Appliances"],
    }


@pytest.fixture
def blender_competitor() -> TrackedStore:
    """A tracked store selling a similar blender in the same category."""
    return TrackedStore(
        store_id="smoothie-co",
        domain="smoothie-co.com",
        product_categories=frozenset({"kitchen"}),
        last_seen_titles=("Mini Blender Smoothie Bottle, Rechargeable",),
    )


@pytest.fixture
def unrelated_store() -> TrackedStore:
    """A tracked store in a different niche."""
    return TrackedStore(
        store_id="trailgear",
        domain="trailgear.store",
        product_categories=frozenset({"outdoor"}),
        last_seen_product_ids=frozenset({"1005004455667788"}),
        last_seen_titles=("Ultralight Camping Hammock with Tree Straps",),
    )
