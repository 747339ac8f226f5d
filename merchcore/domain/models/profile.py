from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime, timezone

PROFILE_HISTORY_LIMIT = 50

class PriceRange(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None

class PersonalizationProfile(BaseModel):
    """
    Per-user taste profile built from view events.
    Mutable on purpose: the profile service loads it, applies one view, saves it back.
    """
    user_id: str
    viewed_products: List[int] = []
    viewed_categories: Dict[str, int] = {}
    price_range: PriceRange = Field(default_factory=PriceRange)
    last_active: Optional[datetime] = None

    def add_viewed_product(self, product_id: int, category: str, price: float) -> None:
        # distinct ids, most recent last; oldest evicted past the cap
        if product_id not in self.viewed_products:
            self.viewed_products.append(product_id)
            if len(self.viewed_products) > PROFILE_HISTORY_LIMIT:
                self.viewed_products.pop(0)

        self.viewed_categories[category] = self.viewed_categories.get(category, 0) + 1

        rng = self.price_range
        if rng.min is None or price < rng.min:
            rng.min = price
        if rng.max is None or price > rng.max:
            rng.max = price

        self.last_active = datetime.now(timezone.utc)

    def top_categories(self, limit: int = 3) -> List[str]:
        """Most viewed categories; ties keep the order categories were first seen."""
        ranked = sorted(self.viewed_categories.items(), key=lambda kv: kv[1], reverse=True)
        return [category for category, _ in ranked[:limit]]
