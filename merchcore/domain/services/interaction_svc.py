import time
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pydantic

from merchcore.core.errors import InvalidInteractionTypeError, ValidationError
from merchcore.domain.models.interaction import Interaction, InteractionMetadata, InteractionType
from merchcore.domain.repositories.cache_repo import ResultCache
from merchcore.domain.services.personalization_svc import update_user_profile
from merchcore.domain.services.popularity_svc import update_popularity
from merchcore.utils.numbers import round2
from merchcore.workers.dispatcher import TaskDispatcher

logger = logging.getLogger(__name__)

def parse_type(value: Any) -> InteractionType:
    try:
        return InteractionType(value)
    except ValueError:
        raise InvalidInteractionTypeError(value) from None

def parse_metadata(value: Optional[Mapping[str, Any]]) -> InteractionMetadata:
    try:
        return InteractionMetadata.model_validate(value or {})
    except pydantic.ValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        raise ValidationError("Invalid interaction metadata", details={"errors": errors}) from e

def dispatch_popularity(dispatcher: TaskDispatcher, products, interactions, product_id: int, cache: Optional[ResultCache] = None) -> bool:
    """Queue a full popularity recompute; the caller never waits for it."""
    return dispatcher.submit(
        f"popularity:{product_id}", update_popularity, products, interactions, product_id, cache
    )

def dispatch_profile_update(dispatcher: TaskDispatcher, profiles, user_id: str, product_id: int, category: str, price: float) -> bool:
    return dispatcher.submit(
        f"profile:{user_id}", update_user_profile, profiles, user_id, product_id, category, price
    )

async def track_interaction(
    *,
    products,
    interactions,
    profiles,
    dispatcher: TaskDispatcher,
    product_id: int,
    user_id: str,
    type: Any,
    metadata: Optional[Mapping[str, Any]] = None,
    cache: Optional[ResultCache] = None,
) -> Interaction:
    """
    Record one interaction, then fire-and-forget:
      - popularity recompute for the product (always)
      - profile update (view events carrying category + price only)
    """
    itype = parse_type(type)
    meta = parse_metadata(metadata)  # before anything is stored or dispatched
    interaction = await interactions.append(
        Interaction(product_id=product_id, user_id=user_id, type=itype)
    )

    dispatch_popularity(dispatcher, products, interactions, product_id, cache)

    if itype is InteractionType.VIEW and meta.category and meta.price:
        dispatch_profile_update(dispatcher, profiles, user_id, product_id, meta.category, meta.price)

    logger.info("interaction tracked product_id=%s user_id=%s type=%s", product_id, user_id, itype.value)
    return interaction

async def bulk_track_interactions(
    *,
    products,
    interactions,
    dispatcher: TaskDispatcher,
    items: Iterable[Mapping[str, Any]],
    cache: Optional[ResultCache] = None,
) -> List[Interaction]:
    """
    Validate every item first (one bad type rejects the batch), append all,
    then one popularity recompute per distinct product. No profile updates.
    """
    batch = [
        Interaction(
            product_id=item["product_id"],
            user_id=item["user_id"],
            type=parse_type(item["type"]),
            **({"timestamp": item["timestamp"]} if item.get("timestamp") else {}),
        )
        for item in items
    ]
    created = await interactions.append_many(batch)

    for product_id in dict.fromkeys(i.product_id for i in created):
        dispatch_popularity(dispatcher, products, interactions, product_id, cache)

    logger.info("interactions bulk tracked n=%s", len(created))
    return created

async def get_product_stats(interactions, product_id: int, days: int = 30) -> Dict[str, Any]:
    """View/cart/purchase counts over the window plus purchase-per-view conversion (%)."""
    since = datetime.now(timezone.utc) - timedelta(days=days)
    recent = await interactions.find(product_id=product_id, since=since)

    counts = {t: 0 for t in InteractionType}
    for i in recent:
        counts[i.type] += 1

    views = counts[InteractionType.VIEW]
    purchases = counts[InteractionType.PURCHASE]
    return {
        "product_id": product_id,
        "period": f"Last {days} days",
        "views": views,
        "cart_adds": counts[InteractionType.CART_ADD],
        "purchases": purchases,
        "total": len(recent),
        "conversion_rate": round2(purchases / views * 100) if views else 0,
    }

async def get_user_interactions(
    interactions,
    user_id: str,
    type: Optional[Any] = None,
    limit: int = 50,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Interaction]:
    t0 = time.perf_counter()
    items = await interactions.find(
        user_id=user_id,
        type=parse_type(type) if type else None,
        since=start,
        until=end,
        newest_first=True,
        limit=limit,
    )
    logger.info("user_interactions user_id=%s items=%s time=%.3fs", user_id, len(items), time.perf_counter() - t0)
    return items
