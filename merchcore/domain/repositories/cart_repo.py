# merchcore/domain/repositories/cart_repo.py

from __future__ import annotations
from typing import Optional
import pydantic
from motor.motor_asyncio import AsyncIOMotorDatabase
from merchcore.core.errors import InvalidCouponError, ValidationError
from merchcore.domain.models.cart import CartSnapshot

class CartRepo:
    """Read-only view over the 'carts' collection; checkout never writes here."""

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "carts"):
        self.col = db[collection_name]

    async def get(self, user_id: str) -> Optional[CartSnapshot]:
        doc = await self.col.find_one({"user_id": user_id}, {"_id": 0})
        return parse_cart(user_id, doc) if doc else None

def parse_cart(user_id: str, doc: dict) -> CartSnapshot:
    """Validate a stored cart document; shape problems surface as domain ValidationErrors."""
    try:
        return CartSnapshot.model_validate(doc)
    except pydantic.ValidationError as e:
        if any(err["loc"] and err["loc"][0] == "coupon" for err in e.errors()):
            raise InvalidCouponError(user_id, e) from e
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        raise ValidationError(f"Cart for user {user_id} is malformed", details={"errors": errors}) from e
