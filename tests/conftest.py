"""Shared fixtures: in-memory doubles for the Mongo-backed repositories.

The doubles implement the same async contracts as ProductRepo, InteractionRepo,
ProfileRepo and CartRepo, so services run unchanged against them.
"""

import asyncio
import re
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from merchcore.domain.models.interaction import Interaction, InteractionType
from merchcore.domain.models.product import Product, ProductFilter
from merchcore.domain.models.profile import PersonalizationProfile
from merchcore.domain.repositories.cache_repo import MemoryResultCache
from merchcore.domain.repositories.cart_repo import parse_cart
from merchcore.domain.services.filters import SortSpec, matches

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

_WORD = re.compile(r"\w+")


def apply_sort(products: List[Product], sort: Optional[SortSpec]) -> List[Product]:
    """Stable multi-key sort following a pymongo-style sort spec."""
    out = list(products)
    for field, direction in reversed(sort or []):
        out.sort(key=lambda p: getattr(p, field) or 0, reverse=direction < 0)
    return out


class FakeProductRepo:
    def __init__(self, products=()):
        self.items: Dict[int, Product] = {p.id: p for p in products}
        self.price_writes: List[int] = []

    async def get(self, product_id):
        return self.items.get(product_id)

    async def find(self, criteria: Optional[ProductFilter] = None, sort=None, limit=None):
        out = apply_sort([p for p in self.items.values() if matches(p, criteria)], sort)
        return out[:limit] if limit else out

    async def count(self, criteria=None):
        return len(await self.find(criteria))

    async def text_search(self, query_text, criteria=None):
        """Score = number of query-term occurrences in name + description."""
        terms = set(query_text.split())
        out = []
        for p in await self.find(criteria):
            tokens = _WORD.findall(f"{p.name} {p.description}".lower())
            score = sum(1 for t in tokens if t in terms)
            if score:
                out.append((p, float(score)))
        return out

    async def set_popularity(self, product_id, popularity):
        self.items[product_id] = self.items[product_id].model_copy(update={"popularity": popularity})

    async def set_price(self, product_id, price):
        self.price_writes.append(product_id)
        self.items[product_id] = self.items[product_id].model_copy(update={"price": price})


class FakeInteractionRepo:
    def __init__(self, interactions=()):
        self.items: List[Interaction] = list(interactions)

    async def append(self, interaction):
        self.items.append(interaction)
        return interaction

    async def append_many(self, interactions):
        batch = list(interactions)
        self.items.extend(batch)
        return batch

    async def find(self, *, product_id=None, user_id=None, type=None, since=None, until=None,
                   newest_first=False, limit=None):
        out = [
            i for i in self.items
            if (product_id is None or i.product_id == product_id)
            and (user_id is None or i.user_id == user_id)
            and (type is None or i.type == InteractionType(type))
            and (since is None or i.timestamp >= since)
            and (until is None or i.timestamp <= until)
        ]
        if newest_first:
            out.sort(key=lambda i: i.timestamp, reverse=True)
        return out[:limit] if limit else out


class FakeProfileRepo:
    """Yields on every call the way a Motor round trip does."""

    def __init__(self):
        self.items: Dict[str, PersonalizationProfile] = {}

    async def get(self, user_id):
        await asyncio.sleep(0)
        profile = self.items.get(user_id)
        return profile.model_copy(deep=True) if profile else None

    async def save(self, profile):
        await asyncio.sleep(0)
        self.items[profile.user_id] = profile.model_copy(deep=True)

    async def record_view(self, user_id, product_id, category, price):
        await asyncio.sleep(0)
        # no await between read and write: same guarantee as a single update_one
        profile = self.items.setdefault(user_id, PersonalizationProfile(user_id=user_id))
        profile.add_viewed_product(product_id, category, price)


class FakeCartRepo:
    def __init__(self, docs=None):
        self.docs = dict(docs or {})

    async def get(self, user_id):
        doc = self.docs.get(user_id)
        return parse_cart(user_id, doc) if doc else None


def make_product(id, category="shirts", price=100.0, **kw):
    return Product(id=id, name=kw.pop("name", f"Product {id}"), category=category, price=price, **kw)


def make_interaction(product_id, type="view", user_id="u1", timestamp=None):
    return Interaction(
        product_id=product_id,
        user_id=user_id,
        type=InteractionType(type),
        timestamp=timestamp or datetime.now(timezone.utc),
    )


def weeks_ago(n: int, now: datetime = NOW) -> datetime:
    return now - timedelta(weeks=n)


@pytest.fixture
def catalog():
    return [
        make_product(1, "shirts", 100, name="Classic Shirt", description="cotton shirt", popularity=50, rating=4.5, stock=40),
        make_product(2, "shirts", 110, name="Linen Shirt", description="summer top", popularity=30, rating=4.0, stock=3),
        make_product(3, "shirts", 200, name="Silk Blouse", description="evening blouse", popularity=80, rating=4.8, stock=10),
        make_product(4, "jackets", 250, name="Denim Jacket", description="blue denim jacket", popularity=70, rating=4.2, stock=5, old_price=300),
        make_product(5, "jackets", 240, name="Rain Coat", description="waterproof coat", popularity=20, rating=3.9, stock=90),
        make_product(6, "shoes", 80, name="Running Shoes", description="light sneakers", popularity=90, rating=4.6, stock=0, old_price=100),
    ]


@pytest.fixture
def products(catalog):
    return FakeProductRepo(catalog)


@pytest.fixture
def interactions():
    return FakeInteractionRepo()


@pytest.fixture
def profiles():
    return FakeProfileRepo()


@pytest.fixture
def cache():
    return MemoryResultCache()
