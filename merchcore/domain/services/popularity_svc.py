import time
import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from merchcore.core.config import get_settings
from merchcore.core.errors import ProductNotFoundError
from merchcore.domain.models.interaction import Interaction
from merchcore.domain.models.product import Product, ProductFilter, RankedProduct
from merchcore.domain.repositories.cache_repo import ResultCache, cache_key
from merchcore.domain.services.constants import (
    CACHE_BEST_SELLERS,
    CACHE_TRENDING,
    DECAY_RATE,
    POPULARITY_FLOOR,
    TRENDING_WINDOW_DAYS,
)
from merchcore.domain.services.filters import BEST_SELLER_SORT, POPULARITY_SORT
from merchcore.utils.numbers import round_int

logger = logging.getLogger(__name__)

WEEK = timedelta(weeks=1)

# --- scoring ----------------------------------------------------------------

def weeks_elapsed(ts: datetime, now: datetime) -> int:
    """Whole weeks between ts and now (floor, never rounded)."""
    return int(abs(now - ts) // WEEK)

def decayed_weight(interaction: Interaction, now: datetime) -> float:
    return interaction.weight * DECAY_RATE ** weeks_elapsed(interaction.timestamp, now)

def popularity_score(interactions: Iterable[Interaction], now: Optional[datetime] = None) -> int:
    """
    Sum of base weight x 0.9^weeks over the full history, rounded, floored at 1.
    Pure function of the history: any number of concurrent recomputes agree.
    """
    now = now or datetime.now(timezone.utc)
    total = sum(decayed_weight(i, now) for i in interactions)
    return max(POPULARITY_FLOOR, round_int(total))

async def update_popularity(products, interactions, product_id: int, cache: Optional[ResultCache] = None) -> Dict[str, Any]:
    """
    Full recompute of one product's popularity from its interaction history.
    Zero interactions is not an error: the product gets the floor (skipped=True).
    """
    t0 = time.perf_counter()
    product = await products.get(product_id)
    if not product:
        raise ProductNotFoundError(product_id)

    history = await interactions.find(product_id=product_id)
    skipped = not history
    score = POPULARITY_FLOOR if skipped else popularity_score(history)

    await products.set_popularity(product_id, score)
    if cache is not None and score != product.popularity:  # unchanged score leaves rankings as cached
        await cache.invalidate(CACHE_BEST_SELLERS)

    logger.info(
        "popularity done product_id=%s interactions=%s score=%s skipped=%s time=%.3fs",
        product_id, len(history), score, skipped, time.perf_counter() - t0,
    )
    return {
        "product_id": product_id,
        "previous": product.popularity,
        "popularity": score,
        "interactions": len(history),
        "skipped": skipped,
    }

# --- listings ---------------------------------------------------------------

async def get_best_sellers(products, limit: int = 10, cache: Optional[ResultCache] = None) -> List[Product]:
    """Catalog by popularity desc, rating desc."""
    settings = get_settings()
    key = cache_key(CACHE_BEST_SELLERS, limit=limit)
    if cache is not None and (cached := await cache.get(key)) is not None:
        logger.info("best_sellers cache_hit key=%s items=%s", key, len(cached))
        return [Product.model_validate(d) for d in cached]

    items = await products.find(sort=BEST_SELLER_SORT, limit=limit)
    if cache is not None:
        await cache.set(key, [p.model_dump(mode="json") for p in items], ttl=settings.best_sellers_cache_ttl)
    logger.info("best_sellers done limit=%s items=%s", limit, len(items))
    return items

async def get_popular_products(products, limit: int = 10) -> List[Product]:
    """Catalog by popularity desc only (search fallback ordering)."""
    return await products.find(sort=POPULARITY_SORT, limit=limit)

def trend_scores(recent: Iterable[Interaction]) -> Dict[int, int]:
    """Undecayed weight per product; dict order = first appearance in the window."""
    scores: Dict[int, int] = defaultdict(int)
    for i in recent:
        scores[i.product_id] += i.weight
    return dict(scores)

async def get_trending_products(
    products,
    interactions,
    limit: int = 10,
    days: int = TRENDING_WINDOW_DAYS,
    cache: Optional[ResultCache] = None,
) -> List[RankedProduct]:
    """
    Products with the most weighted activity in the last `days` days.
    Score order is preserved when mapping back to catalog records.
    """
    t0 = time.perf_counter()
    settings = get_settings()
    key = cache_key(CACHE_TRENDING, limit=limit, days=days)
    if cache is not None and (cached := await cache.get(key)) is not None:
        logger.info("trending cache_hit key=%s items=%s", key, len(cached))
        return [RankedProduct.model_validate(d) for d in cached]

    since = datetime.now(timezone.utc) - timedelta(days=days)
    scores = trend_scores(await interactions.find(since=since))
    top = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)[:limit]

    by_id = {p.id: p for p in await products.find(ProductFilter(ids=[pid for pid, _ in top]))} if top else {}
    items = [
        RankedProduct(product=by_id[pid], score=score)
        for pid, score in top
        if pid in by_id  # deleted from the catalog since
    ]

    if cache is not None:
        await cache.set(key, [i.model_dump(mode="json") for i in items], ttl=settings.trending_cache_ttl)
    logger.info(
        "trending done days=%s active_products=%s items=%s time=%.3fs",
        days, len(scores), len(items), time.perf_counter() - t0,
    )
    return items
