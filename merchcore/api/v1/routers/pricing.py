# merchcore/api/v1/routers/pricing.py
from fastapi import APIRouter, Depends
from typing import Optional

from merchcore.api.deps import products_repo
from merchcore.api.v1.schemas.pricing import CompetitorPricesIn, DynamicPricingIn
from merchcore.domain.services.pricing_svc import adjust_for_competitors, apply_dynamic_pricing

router = APIRouter(prefix="/pricing", tags=["pricing"])

@router.post("/{product_id}/dynamic")
async def dynamic_pricing(
    product_id: int,
    body: Optional[DynamicPricingIn] = None,
    products = Depends(products_repo),
):
    body = body or DynamicPricingIn()  # empty body = defaults
    return await apply_dynamic_pricing(
        products,
        product_id,
        average_stock=body.average_stock,
        competitor_prices=body.competitor_prices,
        demand_multiplier=body.demand_multiplier,
    )

@router.post("/{product_id}/competitors")
async def competitor_pricing(
    product_id: int,
    body: CompetitorPricesIn,
    products = Depends(products_repo),
):
    return await adjust_for_competitors(products, product_id, body.competitor_prices)
