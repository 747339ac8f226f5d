# merchcore/domain/repositories/product_repo.py

from __future__ import annotations
from typing import Optional, List, Tuple
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorDatabase
from merchcore.domain.models.product import Product, ProductFilter
from merchcore.domain.services.filters import SortSpec, build_catalog_query

class ProductRepo:
    """
    Catalog store backed by the 'products' collection.
    The core only ever writes two fields here: popularity and price (targeted $set).
    Text search relies on a text index over name + description:
      db.products.createIndex({name: "text", description: "text"})
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "products"):
        self.col = db[collection_name]

    async def get(self, product_id: int) -> Optional[Product]:
        doc = await self.col.find_one({"id": product_id}, {"_id": 0})
        return Product.model_validate(doc) if doc else None

    async def find(
        self,
        criteria: Optional[ProductFilter] = None,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
    ) -> List[Product]:
        cursor = self.col.find(build_catalog_query(criteria), {"_id": 0})
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return [Product.model_validate(doc) async for doc in cursor]

    async def count(self, criteria: Optional[ProductFilter] = None) -> int:
        return await self.col.count_documents(build_catalog_query(criteria))

    async def text_search(
        self,
        query_text: str,
        criteria: Optional[ProductFilter] = None,
    ) -> List[Tuple[Product, float]]:
        """
        Full-text match via $text; returns (product, textScore) in index fetch order.
        """
        mql = {"$text": {"$search": query_text}, **build_catalog_query(criteria)}
        cursor = self.col.find(mql, {"_id": 0, "score": {"$meta": "textScore"}})
        out: List[Tuple[Product, float]] = []
        async for doc in cursor:
            score = float(doc.pop("score", 0) or 0)
            out.append((Product.model_validate(doc), score))
        return out

    # ----- Targeted writes ---------------------------------------------------

    async def set_popularity(self, product_id: int, popularity: int) -> None:
        await self.col.update_one(
            {"id": product_id},
            {"$set": {"popularity": popularity, "updated_at": datetime.now(timezone.utc)}},
            upsert=False,  # the catalog owns product creation
        )

    async def set_price(self, product_id: int, price: float) -> None:
        await self.col.update_one(
            {"id": product_id},
            {"$set": {"price": price, "updated_at": datetime.now(timezone.utc)}},
            upsert=False,
        )
