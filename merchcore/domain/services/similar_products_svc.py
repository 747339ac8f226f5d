import time
import logging
from typing import List

from merchcore.core.errors import ProductNotFoundError
from merchcore.domain.models.product import Product, ProductFilter, RankedProduct, RecoResult
from merchcore.domain.services.constants import (
    SIMILAR_PRICE_BAND,
    SIMILARITY_CATEGORY_WEIGHT,
    SIMILARITY_PRICE_WEIGHT,
)
from merchcore.domain.services.filters import POPULARITY_SORT
from merchcore.utils.numbers import round2

logger = logging.getLogger(__name__)

def calculate_similarity(a: Product, b: Product) -> float:
    """
    0.6 x category match + 0.4 x price closeness, rounded to 2 decimals.
    price closeness = 1 - |pa - pb| / max(pa, pb)  (1 when both prices are 0)
    """
    category_match = 1 if a.category == b.category else 0
    max_price = max(a.price, b.price)
    closeness = 1 - abs(a.price - b.price) / max_price if max_price > 0 else 1
    return round2(SIMILARITY_CATEGORY_WEIGHT * category_match + SIMILARITY_PRICE_WEIGHT * closeness)

def in_price_band(src: Product, candidate: Product) -> bool:
    low = src.price * (1 - SIMILAR_PRICE_BAND)
    high = src.price * (1 + SIMILAR_PRICE_BAND)
    return low <= candidate.price <= high

async def get_similar_products(products, product_id: int, limit: int = 4) -> RecoResult:
    """
    Same-category substitutes for a product.

    1) Candidates: same category, source excluded.
    2) Keep those priced within ±30% of the source; rank by similarity (stable).
    3) Short of `limit`: backfill with the rest of the category by popularity,
       never repeating an id. The result can be shorter for small categories.
    """
    t0 = time.perf_counter()
    logger.info("similar start product_id=%s limit=%s", product_id, limit)

    src = await products.get(product_id)
    if not src:
        raise ProductNotFoundError(product_id)

    candidates = await products.find(ProductFilter(categories=[src.category], exclude_ids=[src.id]))
    in_band = [p for p in candidates if in_price_band(src, p)]
    ranked = sorted(
        (RankedProduct(product=p, score=calculate_similarity(src, p)) for p in in_band),
        key=lambda r: r.score,
        reverse=True,
    )
    items: List[RankedProduct] = ranked[:limit]

    if len(items) < limit:
        taken = [src.id, *(r.product.id for r in items)]
        backfill = await products.find(
            ProductFilter(categories=[src.category], exclude_ids=taken),
            sort=POPULARITY_SORT,
            limit=limit - len(items),
        )
        items += [
            RankedProduct(product=p, score=calculate_similarity(src, p), backfilled=True)
            for p in backfill
        ]
        logger.debug("similar backfill product_id=%s added=%s", product_id, len(backfill))

    logger.info(
        "similar done product_id=%s candidates=%s in_band=%s items=%s time=%.3fs",
        product_id, len(candidates), len(in_band), len(items), time.perf_counter() - t0,
    )
    return RecoResult(source_product_id=product_id, items=items, count=len(items))
