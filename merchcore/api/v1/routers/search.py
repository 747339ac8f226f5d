# merchcore/api/v1/routers/search.py
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
import logging

from merchcore.api.deps import products_repo
from merchcore.domain.services.search_svc import get_popular_fallback, search, suggest_corrections

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])

@router.get("")
async def search_products(
    q: str = Query(""),
    category: Optional[List[str]] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    products = Depends(products_repo),
):
    """
    Ranked results. On zero hits the response also carries spelling suggestions
    and a popular-products fallback.
    """
    results = await search(products, q, categories=category, min_price=min_price, max_price=max_price)
    suggestions, popular = [], []
    if not results:
        suggestions = suggest_corrections(q)
        popular = await get_popular_fallback(products)
        logger.info("search zero_hits q=%r suggestions=%s", q, suggestions)
    return {
        "results": [r.model_dump(mode="json") for r in results],
        "count": len(results),
        "suggestions": suggestions,
        "popular": [p.model_dump(mode="json") for p in popular],
    }

@router.get("/suggestions")
async def suggestions(q: str = Query(..., min_length=1)):
    return {"query": q, "suggestions": suggest_corrections(q)}
