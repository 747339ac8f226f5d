# merchcore/api/v1/routers/cart.py
from fastapi import APIRouter, Depends, Query
from typing import Optional

from merchcore.api.deps import carts_repo
from merchcore.core.config import get_settings
from merchcore.domain.services.pricing_svc import calculate_cart_total

router = APIRouter(prefix="/cart", tags=["cart"])

@router.get("/{user_id}/total")
async def cart_total(
    user_id: str,
    tax_rate: Optional[float] = Query(None, ge=0, le=1),
    carts = Depends(carts_repo),
):
    rate = get_settings().default_tax_rate if tax_rate is None else tax_rate
    return await calculate_cart_total(carts, user_id, tax_rate=rate)
