# merchcore/api/v1/routers/inventory.py
from fastapi import APIRouter, Depends, Query
import logging

from merchcore.api.deps import interactions_repo, products_repo
from merchcore.domain.services.constants import DEFAULT_LEAD_TIME_DAYS, SALES_WINDOW_DAYS
from merchcore.domain.services.inventory_svc import calculate_reorder_point, forecast_demand, get_reorder_alerts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["inventory"])

@router.get("/alerts")
async def reorder_alerts(
    products = Depends(products_repo),
    interactions = Depends(interactions_repo),
):
    alerts = await get_reorder_alerts(products, interactions)
    return {"count": len(alerts), "items": alerts}

@router.get("/{product_id}/reorder")
async def reorder_point(
    product_id: int,
    lead_time_days: int = Query(DEFAULT_LEAD_TIME_DAYS, ge=1, le=90),
    products = Depends(products_repo),
    interactions = Depends(interactions_repo),
):
    return await calculate_reorder_point(products, interactions, product_id, lead_time_days=lead_time_days)

@router.get("/{product_id}/forecast")
async def demand_forecast(
    product_id: int,
    days: int = Query(SALES_WINDOW_DAYS, ge=1, le=365),
    products = Depends(products_repo),
    interactions = Depends(interactions_repo),
):
    return await forecast_demand(products, interactions, product_id, days=days)
