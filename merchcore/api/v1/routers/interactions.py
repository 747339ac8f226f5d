# merchcore/api/v1/routers/interactions.py
from fastapi import APIRouter, Depends, Query, status
from typing import Optional
from datetime import datetime
import logging

from merchcore.api.deps import cache_dep, dispatcher_dep, interactions_repo, products_repo, profiles_repo
from merchcore.api.v1.schemas.interactions import BulkInteractionsIn, TrackInteractionIn
from merchcore.domain.services.interaction_svc import (
    bulk_track_interactions,
    get_product_stats,
    get_user_interactions,
    track_interaction,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interactions", tags=["interactions"])

@router.post("", status_code=status.HTTP_201_CREATED)
async def track(
    body: TrackInteractionIn,
    products = Depends(products_repo),
    interactions = Depends(interactions_repo),
    profiles = Depends(profiles_repo),
    dispatcher = Depends(dispatcher_dep),
    cache = Depends(cache_dep),
):
    """
    Record one event. Popularity recompute and the profile update run on the
    dispatcher; the response does not wait for them.
    """
    interaction = await track_interaction(
        products=products,
        interactions=interactions,
        profiles=profiles,
        dispatcher=dispatcher,
        product_id=body.product_id,
        user_id=body.user_id,
        type=body.type,
        metadata=body.metadata,
        cache=cache,
    )
    return {"success": True, "interaction": interaction.model_dump(mode="json")}

@router.post("/bulk", status_code=status.HTTP_201_CREATED)
async def track_bulk(
    body: BulkInteractionsIn,
    products = Depends(products_repo),
    interactions = Depends(interactions_repo),
    dispatcher = Depends(dispatcher_dep),
    cache = Depends(cache_dep),
):
    created = await bulk_track_interactions(
        products=products,
        interactions=interactions,
        dispatcher=dispatcher,
        items=[item.model_dump() for item in body.interactions],
        cache=cache,
    )
    return {"success": True, "count": len(created)}

@router.get("/user/{user_id}")
async def user_interactions(
    user_id: str,
    type: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    interactions = Depends(interactions_repo),
):
    items = await get_user_interactions(interactions, user_id, type=type, limit=limit, start=start, end=end)
    return {"user_id": user_id, "count": len(items), "items": [i.model_dump(mode="json") for i in items]}

@router.get("/product/{product_id}/stats")
async def product_stats(
    product_id: int,
    days: int = Query(30, ge=1, le=365),
    interactions = Depends(interactions_repo),
):
    return await get_product_stats(interactions, product_id, days=days)
