import math
import time
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from merchcore.core.errors import ProductNotFoundError
from merchcore.domain.models.interaction import InteractionType
from merchcore.domain.models.product import Product
from merchcore.domain.services.constants import (
    DEFAULT_LEAD_TIME_DAYS,
    SAFETY_STOCK_DAYS,
    SALES_WINDOW_DAYS,
)
from merchcore.utils.numbers import round2

logger = logging.getLogger(__name__)

# Inventory is read-only here: stock changes belong to the order/catalog services.

def _window_start() -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=SALES_WINDOW_DAYS)

async def _recent_purchase_count(interactions, product_id: int) -> int:
    purchases = await interactions.find(
        product_id=product_id, type=InteractionType.PURCHASE, since=_window_start()
    )
    return len(purchases)

async def _require(products, product_id: int) -> Product:
    product = await products.get(product_id)
    if not product:
        raise ProductNotFoundError(product_id)
    return product

def reorder_info(product: Product, purchases: int, lead_time_days: int = DEFAULT_LEAD_TIME_DAYS) -> Dict[str, Any]:
    """
    reorderPoint = avgDailySales x leadTime + safetyStock, safetyStock = avgDailySales x 7.
    should_reorder compares against the unrounded point.
    """
    avg = purchases / SALES_WINDOW_DAYS
    safety = avg * SAFETY_STOCK_DAYS
    point = avg * lead_time_days + safety
    return {
        "product_id": product.id,
        "current_stock": product.stock,
        "average_daily_sales": round2(avg),
        "safety_stock": round2(safety),
        "reorder_point": math.ceil(point),
        "lead_time_days": lead_time_days,
        "should_reorder": product.stock < point,
    }

def demand_forecast(product: Product, purchases: int, days: int = SALES_WINDOW_DAYS) -> Dict[str, Any]:
    """30-day moving average projected forward; days_until_stockout None = unbounded."""
    avg = purchases / SALES_WINDOW_DAYS
    demand = avg * days
    return {
        "product_id": product.id,
        "product_name": product.name,
        "current_stock": product.stock,
        "average_daily_sales": round2(avg),
        "forecast_period_days": days,
        "forecasted_demand": math.ceil(demand),
        "stock_sufficient": product.stock >= demand,
        "days_until_stockout": math.floor(product.stock / avg) if avg > 0 else None,
    }

async def calculate_reorder_point(products, interactions, product_id: int, lead_time_days: int = DEFAULT_LEAD_TIME_DAYS) -> Dict[str, Any]:
    product = await _require(products, product_id)
    purchases = await _recent_purchase_count(interactions, product_id)
    info = reorder_info(product, purchases, lead_time_days)
    logger.info(
        "reorder_point product_id=%s purchases_30d=%s point=%s should_reorder=%s",
        product_id, purchases, info["reorder_point"], info["should_reorder"],
    )
    return info

async def check_reorder_point(products, interactions, product_id: int) -> bool:
    info = await calculate_reorder_point(products, interactions, product_id)
    return info["should_reorder"]

async def forecast_demand(products, interactions, product_id: int, days: int = SALES_WINDOW_DAYS) -> Dict[str, Any]:
    product = await _require(products, product_id)
    purchases = await _recent_purchase_count(interactions, product_id)
    return demand_forecast(product, purchases, days)

async def get_reorder_alerts(products, interactions) -> List[Dict[str, Any]]:
    """
    Every catalog item below its reorder point, annotated with reorder info + forecast.
    One 30-day purchase scan for the whole catalog; same numbers as per-product scans.
    """
    t0 = time.perf_counter()
    catalog = await products.find()
    recent = await interactions.find(type=InteractionType.PURCHASE, since=_window_start())
    per_product = Counter(i.product_id for i in recent)

    alerts: List[Dict[str, Any]] = []
    for product in catalog:
        info = reorder_info(product, per_product[product.id])
        if info["should_reorder"]:
            alerts.append({
                **product.model_dump(mode="json"),
                "reorder_info": info,
                "forecast": demand_forecast(product, per_product[product.id]),
            })

    logger.info(
        "reorder_alerts done catalog=%s purchases_30d=%s alerts=%s time=%.3fs",
        len(catalog), len(recent), len(alerts), time.perf_counter() - t0,
    )
    return alerts
