# merchcore/api/v1/routers/recommendations.py
from fastapi import APIRouter, Depends, Query
import time
import logging

from merchcore.api.deps import cache_dep, products_repo, profiles_repo
from merchcore.domain.services.personalization_svc import (
    get_mixed_recommendations,
    get_personalized_recommendations,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["recommendations"])

@router.get("/{user_id}/recommendations")
async def personalized(
    user_id: str,
    limit: int = Query(10, ge=1, le=50),
    products = Depends(products_repo),
    profiles = Depends(profiles_repo),
    cache = Depends(cache_dep),
):
    """
    Ranked against the user's taste profile; best-sellers for unknown users.
    """
    logger.info("Request: personalized user_id=%s, limit=%s", user_id, limit)
    start_time = time.perf_counter()

    res = await get_personalized_recommendations(products, profiles, user_id, limit=limit, cache=cache)

    logger.info(
        "Response: personalized user_id=%s, count=%s, elapsed_time=%.4fs",
        user_id, res.count, time.perf_counter() - start_time,
    )
    return res.model_dump(mode="json")

@router.get("/{user_id}/recommendations/mixed")
async def mixed(
    user_id: str,
    product_id: int = Query(...),
    limit: int = Query(6, ge=2, le=50),
    products = Depends(products_repo),
    profiles = Depends(profiles_repo),
    cache = Depends(cache_dep),
):
    res = await get_mixed_recommendations(products, profiles, user_id, product_id, limit=limit, cache=cache)
    return res.model_dump(mode="json")
