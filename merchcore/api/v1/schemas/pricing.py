# merchcore/api/v1/schemas/pricing.py
from pydantic import BaseModel, Field
from typing import List

class DynamicPricingIn(BaseModel):
    average_stock: float = Field(default=100, gt=0)
    competitor_prices: List[float] = []
    demand_multiplier: float = Field(default=1, ge=0)

class CompetitorPricesIn(BaseModel):
    competitor_prices: List[float] = Field(min_length=1)
