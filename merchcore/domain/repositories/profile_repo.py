# merchcore/domain/repositories/profile_repo.py

from __future__ import annotations
from typing import Optional
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorDatabase
from merchcore.domain.models.profile import PROFILE_HISTORY_LIMIT, PersonalizationProfile

class ProfileRepo:
    """
    Personalization profiles keyed by user_id ('user_profiles' collection).
    Views are applied with server-side operators (record_view), never read-modify-write:
    the dispatcher runs several workers and two views by one user may land together.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "user_profiles"):
        self.col = db[collection_name]

    async def get(self, user_id: str) -> Optional[PersonalizationProfile]:
        doc = await self.col.find_one({"user_id": user_id}, {"_id": 0})
        return PersonalizationProfile.model_validate(doc) if doc else None

    async def save(self, profile: PersonalizationProfile) -> None:
        await self.col.replace_one(
            {"user_id": profile.user_id},
            profile.model_dump(mode="python"),
            upsert=True,
        )

    async def record_view(self, user_id: str, product_id: int, category: str, price: float) -> None:
        """
        Apply one view atomically (profile created on first view).
        $addToSet keeps ids distinct in first-seen order; the second update trims
        the history to the most recent PROFILE_HISTORY_LIMIT ids and is idempotent.
        price_range bounds are only ever written here, so $min never meets a null.
        """
        await self.col.update_one(
            {"user_id": user_id},
            {
                "$addToSet": {"viewed_products": product_id},
                "$inc": {f"viewed_categories.{category}": 1},
                "$min": {"price_range.min": price},
                "$max": {"price_range.max": price},
                "$set": {"last_active": datetime.now(timezone.utc)},
            },
            upsert=True,
        )
        await self.col.update_one(
            {"user_id": user_id, f"viewed_products.{PROFILE_HISTORY_LIMIT}": {"$exists": True}},
            {"$push": {"viewed_products": {"$each": [], "$slice": -PROFILE_HISTORY_LIMIT}}},
        )
