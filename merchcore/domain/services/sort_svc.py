import time
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence

from merchcore.domain.models.product import Product, ProductFilter
from merchcore.domain.services.pricing_svc import calculate_discount

logger = logging.getLogger(__name__)

SortField = Literal["id", "price", "discount", "popularity", "rating", "name", "newest"]
SortOrder = Literal["asc", "desc"]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

def discount_percent(product: Product) -> int:
    return calculate_discount(product.old_price, product.price)

_KEYS: Dict[str, Callable[[Product], Any]] = {
    "id": lambda p: p.id,
    "price": lambda p: p.price,
    "discount": discount_percent,
    "popularity": lambda p: p.popularity or 0,
    "rating": lambda p: p.rating or 0,
    "name": lambda p: p.name.casefold(),
    "newest": lambda p: p.created_at or _EPOCH,
}

SORT_FIELDS = tuple(_KEYS)

def sort_products(products: Sequence[Product], field: str = "id", order: str = "asc") -> List[Product]:
    """
    Deterministic sort by one key.

    Ties always fall back to ascending id, whatever the order: the list is
    first sorted by id, then stably by the key (reverse=True keeps equal items
    in their id order). 'newest' is always newest-first.
    """
    key = _KEYS.get(field, _KEYS["id"])
    descending = order == "desc" or field == "newest"
    by_id = sorted(products, key=lambda p: p.id)
    return sorted(by_id, key=key, reverse=descending)

def sort_by_discount(products: Sequence[Product], order: str = "desc") -> List[Dict[str, Any]]:
    """Sort by markdown and annotate each item with its discount_percent."""
    return [
        {**p.model_dump(mode="json"), "discount_percent": discount_percent(p)}
        for p in sort_products(products, "discount", order)
    ]

async def browse_catalog(
    products,
    criteria: Optional[ProductFilter] = None,
    field: str = "id",
    order: str = "asc",
    limit: Optional[int] = None,
) -> List[Product]:
    """Filtered catalog page; sorting happens here so ties resolve the same way on every store."""
    t0 = time.perf_counter()
    items = sort_products(await products.find(criteria), field, order)
    if limit:
        items = items[:limit]
    logger.info("browse field=%s order=%s items=%s time=%.3fs", field, order, len(items), time.perf_counter() - t0)
    return items
