#!/usr/bin/env python3
"""Seed the database with tracked competitor stores for a demo user."""

import asyncio
import sys

from sqlalchemy import select

from resale_scout.db.base import async_session_maker
from resale_scout.db.models import TrackedStoreRecord

DEMO_OWNER = "demo-user"

SAMPLE_STORES = [
    {
        "store_id": "blendhaus",
        "domain": "blendhaus.shop",
        "product_categories": ["kitchen", "appliances"],
        "last_seen_product_ids": ["1005006123456789"],
        "last_seen_titles": [
            "Portable Blender Cup - USB Rechargeable",
            "Electric Milk Frother Handheld",
        ],
        "last_seen_image_fingerprints": [],
    },
    {
        "store_id": "smoothie-co",
        "domain": "smoothie-co.com",
        "product_categories": ["kitchen"],
        "last_seen_product_ids": [],
        "last_seen_titles": ["Mini Blender Smoothie Bottle, Rechargeable"],
        "last_seen_image_fingerprints": ["f0e1d2c3b4a59687"],
    },
    {
        "store_id": "trailgear",
        "domain": "trailgear.store",
        "product_categories": ["outdoor", "camping"],
        "last_seen_product_ids": ["1005004455667788"],
        "last_seen_titles": ["Ultralight Camping Hammock with Tree Straps"],
        "last_seen_image_fingerprints": [],
    },
]


async def seed_tracked_stores(owner_id: str) -> None:
    """Seed the database with sample tracked stores."""
    async with async_session_maker() as session:
        for store_data in SAMPLE_STORES:
            # Check if store already exists
            result = await session.execute(
                select(TrackedStoreRecord).where(
                    TrackedStoreRecord.owner_id == owner_id,
                    TrackedStoreRecord.store_id == store_data["store_id"],
                )
            )
            existing = result.scalar_one_or_none()

            if existing:
                print(f"Store '{store_data['store_id']}' already tracked, skipping...")
                continue

            session.add(TrackedStoreRecord(owner_id=owner_id, **store_data))
            print(f"Tracking store: {store_data['domain']}")

        await session.commit()
        print("\nSeeding complete!")


if __name__ == "__main__":
    asyncio.run(seed_tracked_stores(sys.argv[1] if len(sys.argv) > 1 else DEMO_OWNER))
