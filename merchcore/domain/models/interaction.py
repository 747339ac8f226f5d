from enum import Enum
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime, timezone

class InteractionType(str, Enum):
    VIEW = "view"
    CART_ADD = "cart_add"
    PURCHASE = "purchase"

# Base weight of one interaction in popularity/trending scores
INTERACTION_WEIGHTS = {
    InteractionType.VIEW: 1,
    InteractionType.CART_ADD: 5,
    InteractionType.PURCHASE: 10,
}

def _now() -> datetime:
    return datetime.now(timezone.utc)

class Interaction(BaseModel):
    product_id: int
    user_id: str
    type: InteractionType
    timestamp: datetime = Field(default_factory=_now)

    model_config = {"frozen": True}  # append-only log

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v

    @property
    def weight(self) -> int:
        return INTERACTION_WEIGHTS[self.type]

class InteractionMetadata(BaseModel):
    """
    Optional context sent with an event. category + price on a view feed the taste profile.
    category becomes a profile key, so it cannot contain '.' or start with '$'.
    """
    category: Optional[str] = Field(default=None, pattern=r"^([^$.][^.]*)?$")
    price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)

    model_config = {"extra": "allow"}  # clients may send more context; it is ignored
