from typing import Any, Dict, List, Optional, Tuple
from merchcore.domain.models.product import Product, ProductFilter

# (field, direction) pairs, pymongo style: 1 = ascending, -1 = descending
SortSpec = List[Tuple[str, int]]

BEST_SELLER_SORT: SortSpec = [("popularity", -1), ("rating", -1)]
POPULARITY_SORT: SortSpec = [("popularity", -1)]

def build_catalog_query(criteria: Optional[ProductFilter]) -> Dict[str, Any]:
    """
    Render a ProductFilter as a MongoDB query for the 'products' collection.
    Empty/None filter => {} (whole catalog).
    """
    if criteria is None:
        return {}

    query: Dict[str, Any] = {}

    # Category filter (single or multiple)
    if criteria.categories:
        query["category"] = (
            criteria.categories[0] if len(criteria.categories) == 1 else {"$in": criteria.categories}
        )

    # Price range
    price: Dict[str, float] = {}
    if criteria.min_price is not None:
        price["$gte"] = criteria.min_price
    if criteria.max_price is not None:
        price["$lte"] = criteria.max_price
    if price:
        query["price"] = price

    # Stock availability
    if criteria.in_stock is True:
        query["stock"] = {"$gt": 0}
    elif criteria.in_stock is False:
        query["stock"] = {"$lte": 0}

    if criteria.min_rating is not None:
        query["rating"] = {"$gte": criteria.min_rating}

    # Products currently priced below their reference price
    if criteria.has_discount:
        query["$expr"] = {"$lt": ["$price", "$old_price"]}

    ids: Dict[str, List[int]] = {}
    if criteria.ids is not None:
        ids["$in"] = list(criteria.ids)
    if criteria.exclude_ids:
        ids["$nin"] = list(criteria.exclude_ids)
    if ids:
        query["id"] = ids

    return query

def matches(product: Product, criteria: Optional[ProductFilter]) -> bool:
    """In-memory twin of build_catalog_query (same semantics, evaluated on one product)."""
    if criteria is None:
        return True
    if criteria.categories and product.category not in criteria.categories:
        return False
    if criteria.min_price is not None and product.price < criteria.min_price:
        return False
    if criteria.max_price is not None and product.price > criteria.max_price:
        return False
    if criteria.in_stock is True and product.stock <= 0:
        return False
    if criteria.in_stock is False and product.stock > 0:
        return False
    if criteria.min_rating is not None and product.rating < criteria.min_rating:
        return False
    if criteria.has_discount and not (product.old_price is not None and product.price < product.old_price):
        return False
    if criteria.ids is not None and product.id not in criteria.ids:
        return False
    if product.id in criteria.exclude_ids:
        return False
    return True
