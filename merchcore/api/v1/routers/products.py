# merchcore/api/v1/routers/products.py
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
import time
import logging

from merchcore.api.deps import cache_dep, interactions_repo, products_repo
from merchcore.domain.models.product import ProductFilter
from merchcore.domain.services.popularity_svc import get_best_sellers, get_trending_products, update_popularity
from merchcore.domain.services.similar_products_svc import get_similar_products
from merchcore.domain.services.sort_svc import SortField, SortOrder, browse_catalog, discount_percent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])

@router.get("")
async def browse(
    category: Optional[List[str]] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    in_stock: Optional[bool] = Query(None),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    has_discount: bool = Query(False),
    sort: SortField = Query("id"),
    order: SortOrder = Query("asc"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    products = Depends(products_repo),
):
    """Filter the catalog and sort it deterministically (ties by ascending id)."""
    criteria = ProductFilter(
        categories=category,
        min_price=min_price,
        max_price=max_price,
        in_stock=in_stock,
        min_rating=min_rating,
        has_discount=has_discount,
    )
    items = await browse_catalog(products, criteria, field=sort, order=order, limit=limit)
    return {
        "count": len(items),
        "items": [{**p.model_dump(mode="json"), "discount_percent": discount_percent(p)} for p in items],
    }

@router.get("/best-sellers")
async def best_sellers(
    limit: int = Query(10, ge=1, le=100),
    products = Depends(products_repo),
    cache = Depends(cache_dep),
):
    items = await get_best_sellers(products, limit=limit, cache=cache)
    return {"count": len(items), "items": [p.model_dump(mode="json") for p in items]}

@router.get("/trending")
async def trending(
    limit: int = Query(10, ge=1, le=100),
    days: int = Query(7, ge=1, le=90),
    products = Depends(products_repo),
    interactions = Depends(interactions_repo),
    cache = Depends(cache_dep),
):
    items = await get_trending_products(products, interactions, limit=limit, days=days, cache=cache)
    return {"count": len(items), "items": [r.model_dump(mode="json") for r in items]}

@router.post("/{product_id}/popularity")
async def recompute_popularity(
    product_id: int,
    products = Depends(products_repo),
    interactions = Depends(interactions_repo),
    cache = Depends(cache_dep),
):
    """Synchronous recompute (the ingestion path does the same thing in the background)."""
    return await update_popularity(products, interactions, product_id, cache=cache)

@router.get("/{product_id}/similar")
async def similar_products(
    product_id: int,
    limit: int = Query(4, ge=1, le=50),
    products = Depends(products_repo),
):
    logger.info("Request: similar_products product_id=%s, limit=%s", product_id, limit)
    start_time = time.perf_counter()

    res = await get_similar_products(products, product_id, limit=limit)

    elapsed_time = time.perf_counter() - start_time
    logger.info(
        "Response: similar_products product_id=%s, count=%s, elapsed_time=%.4fs",
        product_id, res.count, elapsed_time,
    )
    return res.model_dump(mode="json")
