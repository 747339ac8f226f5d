from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime, timezone

class CartItem(BaseModel):
    product_id: int
    price: float = Field(ge=0)
    quantity: int = Field(default=1, ge=1)

class Coupon(BaseModel):
    code: Optional[str] = None
    discount_percent: float = Field(default=0, ge=0, le=100)
    min_purchase: float = Field(default=0, ge=0)
    expiry_date: Optional[datetime] = None

    @field_validator("expiry_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

class CartSnapshot(BaseModel):
    user_id: str
    items: List[CartItem] = []
    coupon: Optional[Coupon] = None

    model_config = {"frozen": True}  # checkout never mutates the cart

    @property
    def subtotal(self) -> float:
        return sum(item.price * item.quantity for item in self.items)
