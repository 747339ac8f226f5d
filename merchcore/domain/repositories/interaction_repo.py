# merchcore/domain/repositories/interaction_repo.py

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime
from motor.motor_asyncio import AsyncIOMotorDatabase
from merchcore.domain.models.interaction import Interaction, InteractionType

def _to_doc(interaction: Interaction) -> Dict[str, Any]:
    return {**interaction.model_dump(), "type": interaction.type.value}

class InteractionRepo:
    """
    Append-only interaction log backed by the 'interactions' collection.
    Recommended indexes:
      {product_id: 1, type: 1, timestamp: -1}
      {user_id: 1, timestamp: -1}
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "interactions"):
        self.col = db[collection_name]

    async def append(self, interaction: Interaction) -> Interaction:
        await self.col.insert_one(_to_doc(interaction))
        return interaction

    async def append_many(self, interactions: Iterable[Interaction]) -> List[Interaction]:
        items = list(interactions)
        if items:
            await self.col.insert_many([_to_doc(i) for i in items])
        return items

    async def find(
        self,
        *,
        product_id: Optional[int] = None,
        user_id: Optional[str] = None,
        type: Optional[InteractionType] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> List[Interaction]:
        query: Dict[str, Any] = {}
        if product_id is not None:
            query["product_id"] = product_id
        if user_id is not None:
            query["user_id"] = user_id
        if type is not None:
            query["type"] = InteractionType(type).value
        if since or until:
            ts: Dict[str, datetime] = {}
            if since:
                ts["$gte"] = since
            if until:
                ts["$lte"] = until
            query["timestamp"] = ts

        cursor = self.col.find(query, {"_id": 0})
        if newest_first:
            cursor = cursor.sort([("timestamp", -1)])
        if limit:
            cursor = cursor.limit(limit)
        return [Interaction.model_validate(doc) async for doc in cursor]
