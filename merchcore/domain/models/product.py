from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, timezone

class Product(BaseModel):
    id: int
    name: str
    description: str = ""
    category: str
    image: Optional[str] = None
    price: float = Field(ge=0)
    old_price: Optional[float] = Field(default=None, ge=0)
    cost_price: Optional[float] = Field(default=None, ge=0)   # 0/None = unset
    stock: int = Field(default=0, ge=0)
    popularity: float = Field(default=1, ge=1)     # floor 1: every recompute writes >= 1
    rating: float = Field(default=0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)
    tags: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True}  # immuable = safe

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Mongo hands back naive UTC datetimes unless the client is tz-aware
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

class ProductFilter(BaseModel):
    """
    The single filter vocabulary used by every catalog read.
    Rendered to MQL by ProductRepo and evaluated in memory by services.filters.matches.
    """
    categories: Optional[List[str]] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    in_stock: Optional[bool] = None
    min_rating: Optional[float] = None
    has_discount: bool = False
    ids: Optional[List[int]] = None
    exclude_ids: List[int] = []

    model_config = {"frozen": True}

class RankedProduct(BaseModel):
    """A catalog item plus the score that ranked it (similarity, relevance or trend)."""
    product: Product
    score: float = Field(ge=0)
    backfilled: bool = False
    matched_terms: Optional[List[str]] = None
    model_config = {"frozen": True} # immuable = safe

class RecoResult(BaseModel):
    source_product_id: Optional[int] = None
    user_id: Optional[str] = None
    items: List[RankedProduct]
    count: int
    model_config = {"frozen": True} # immuable = safe
