import math
import time
import logging
from typing import List, Optional

from merchcore.domain.models.product import ProductFilter, RankedProduct, RecoResult
from merchcore.domain.repositories.cache_repo import ResultCache
from merchcore.domain.services.constants import (
    PERSONAL_PRICE_HIGH,
    PERSONAL_PRICE_LOW,
    TOP_CATEGORIES,
)
from merchcore.domain.services.filters import BEST_SELLER_SORT
from merchcore.domain.services.popularity_svc import get_best_sellers
from merchcore.domain.services.similar_products_svc import get_similar_products

logger = logging.getLogger(__name__)

async def update_user_profile(profiles, user_id: str, product_id: int, category: str, price: float) -> None:
    """
    Apply one view to the user's profile (created on first view).
    Runs on the dispatcher; the ingestion request never waits for it. The store applies
    the view atomically, so concurrent views by the same user are never lost.
    """
    await profiles.record_view(user_id, product_id, category, price)
    logger.debug("profile updated user_id=%s product_id=%s category=%s price=%s", user_id, product_id, category, price)

def _by_popularity(items) -> List[RankedProduct]:
    return [RankedProduct(product=p, score=p.popularity) for p in items]

async def get_personalized_recommendations(
    products,
    profiles,
    user_id: str,
    limit: int = 10,
    cache: Optional[ResultCache] = None,
) -> RecoResult:
    """
    Catalog ranked against the user's taste profile.

    - Cold start (no profile / nothing viewed): best-sellers.
    - Otherwise: top 3 viewed categories, priced within [min x 0.8, max x 1.2],
      not yet viewed, by popularity then rating.
    - Short of `limit`: best-sellers not already selected or viewed.
    """
    t0 = time.perf_counter()
    profile = await profiles.get(user_id)

    if not profile or not profile.viewed_products:
        logger.info("personalized cold_start user_id=%s", user_id)
        items = _by_popularity(await get_best_sellers(products, limit=limit, cache=cache))
        return RecoResult(user_id=user_id, items=items, count=len(items))

    rng = profile.price_range
    categories = profile.top_categories(TOP_CATEGORIES)
    matches = await products.find(
        ProductFilter(
            categories=categories,
            min_price=rng.min * PERSONAL_PRICE_LOW if rng.min is not None else None,
            max_price=rng.max * PERSONAL_PRICE_HIGH if rng.max is not None else None,
            exclude_ids=profile.viewed_products,
        ),
        sort=BEST_SELLER_SORT,
        limit=limit,
    )
    items = _by_popularity(matches)

    if len(items) < limit:
        taken = [*profile.viewed_products, *(p.id for p in matches)]
        backfill = await products.find(
            ProductFilter(exclude_ids=taken),
            sort=BEST_SELLER_SORT,
            limit=limit - len(items),
        )
        items += [RankedProduct(product=p, score=p.popularity, backfilled=True) for p in backfill]

    logger.info(
        "personalized done user_id=%s categories=%s matched=%s items=%s time=%.3fs",
        user_id, categories, len(matches), len(items), time.perf_counter() - t0,
    )
    return RecoResult(user_id=user_id, items=items, count=len(items))

async def get_mixed_recommendations(
    products,
    profiles,
    user_id: str,
    product_id: int,
    limit: int = 6,
    cache: Optional[ResultCache] = None,
) -> RecoResult:
    """'You may also like': half similar-to-this, half personalized, de-duplicated."""
    similar = await get_similar_products(products, product_id, limit=math.ceil(limit / 2))
    personal = await get_personalized_recommendations(
        products, profiles, user_id, limit=limit // 2, cache=cache
    )

    combined = list(similar.items)
    seen = {r.product.id for r in combined}
    for r in personal.items:
        if len(combined) >= limit:
            break
        if r.product.id not in seen:
            combined.append(r)
            seen.add(r.product.id)

    return RecoResult(source_product_id=product_id, user_id=user_id, items=combined, count=len(combined))
