import re
import time
import logging
from typing import Dict, List, Optional

from merchcore.domain.models.product import Product, ProductFilter, RankedProduct
from merchcore.domain.services.constants import (
    EXACT_MATCH_BOOST,
    MAX_POPULARITY,
    MAX_TEXT_SCORE,
    POPULARITY_WEIGHT,
    RATING_WEIGHT,
    TEXT_WEIGHT,
)
from merchcore.domain.services.popularity_svc import get_popular_products
from merchcore.utils.numbers import round2

logger = logging.getLogger(__name__)

# Query expansion: a term pulls in its synonyms, never the other way round
SYNONYMS: Dict[str, List[str]] = {
    "shirt": ["blouse", "top", "tee"],
    "blouse": ["shirt", "top"],
    "jacket": ["coat", "blazer"],
    "coat": ["jacket"],
    "pants": ["trousers", "jeans"],
    "trousers": ["pants"],
    "dress": ["gown", "frock"],
    "shoes": ["footwear", "sneakers"],
    "kids": ["children", "kid", "boys", "girls"],
    "men": ["male", "mens", "man"],
    "women": ["female", "womens", "woman", "ladies"],
}

# Common misspellings seen in the search logs
CORRECTIONS: Dict[str, str] = {
    "jaket": "jacket",
    "shrt": "shirt",
    "pant": "pants",
    "shose": "shoes",
    "womn": "women",
    "mn": "men",
    "kid": "kids",
}

_NON_WORD = re.compile(r"[^\w\s]")
_SPACES = re.compile(r"\s+")

def normalize_query(query: str) -> str:
    q = _NON_WORD.sub("", query.lower().strip())
    return _SPACES.sub(" ", q).strip()

def expand_query(normalized: str) -> str:
    terms = normalized.split()
    expanded = dict.fromkeys(terms)  # ordered set
    for term in terms:
        for synonym in SYNONYMS.get(term, []):
            expanded.setdefault(synonym)
    return " ".join(expanded)

def matched_terms(product: Product, normalized: str) -> List[str]:
    text = f"{product.name} {product.description or ''}".lower()
    return [t for t in normalized.split() if t in text]

def calculate_relevance(product: Product, text_score: float, normalized: str) -> float:
    """
    0-100 relevance:
      50% text match (textScore/10) + 30% popularity (/10000) + 20% rating (/5),
      + up to 20 points for query terms found verbatim in the name; capped at 100.
    """
    text = min(text_score / MAX_TEXT_SCORE * 100, 100)
    popularity = min(product.popularity / MAX_POPULARITY * 100, 100)
    rating = product.rating / 5 * 100

    terms = normalized.split()
    name = product.name.lower()
    exact = sum(1 for t in terms if t in name)
    boost = exact / len(terms) * EXACT_MATCH_BOOST if terms else 0

    base = text * TEXT_WEIGHT + popularity * POPULARITY_WEIGHT + rating * RATING_WEIGHT
    return round2(min(base + boost, 100))

async def search(
    products,
    query: Optional[str],
    categories: Optional[List[str]] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> List[RankedProduct]:
    """
    Ranked full-text search. A blank query short-circuits to the whole catalog at score 0.
    Zero hits is a normal outcome; callers use suggest_corrections/get_popular_fallback.
    """
    t0 = time.perf_counter()
    if not query or not query.strip():
        catalog = await products.find()
        logger.info("search empty_query items=%s", len(catalog))
        return [RankedProduct(product=p, score=0) for p in catalog]

    normalized = normalize_query(query)
    if not normalized:
        logger.info("search no_terms query=%r", query)
        return []
    expanded = expand_query(normalized)
    criteria = ProductFilter(categories=categories or None, min_price=min_price, max_price=max_price)
    logger.debug("search query=%r normalized=%r expanded=%r", query, normalized, expanded)

    hits = await products.text_search(expanded, criteria)
    ranked = [
        RankedProduct(
            product=p,
            score=calculate_relevance(p, text_score, normalized),
            matched_terms=matched_terms(p, normalized),
        )
        for p, text_score in hits
    ]
    ranked.sort(key=lambda r: r.score, reverse=True)

    logger.info("search done query=%r hits=%s time=%.3fs", normalized, len(ranked), time.perf_counter() - t0)
    return ranked

def suggest_corrections(query: str) -> List[str]:
    """Corrected phrase when any term is a known misspelling, else []."""
    terms = query.lower().split()
    corrected = [CORRECTIONS.get(t, t) for t in terms]
    return [" ".join(corrected)] if corrected != terms else []

async def get_popular_fallback(products, limit: int = 10) -> List[Product]:
    return await get_popular_products(products, limit=limit)
