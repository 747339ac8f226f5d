"""Tests for interaction ingestion and the updates it dispatches."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_interaction
from merchcore.core.errors import InvalidInteractionTypeError, ValidationError
from merchcore.domain.models.interaction import InteractionType
from merchcore.domain.services.interaction_svc import (
    bulk_track_interactions,
    get_product_stats,
    get_user_interactions,
    track_interaction,
)
from merchcore.workers.dispatcher import TaskDispatcher


def _run_with_dispatcher(fn):
    """Run fn(dispatcher) with a live dispatcher, then wait for dispatched work."""
    async def scenario():
        dispatcher = TaskDispatcher(maxsize=100, workers=2)
        await dispatcher.start()
        result = await fn(dispatcher)
        await dispatcher.stop()
        return result, dispatcher
    return asyncio.run(scenario())


def test_view_with_metadata_updates_popularity_and_profile(products, interactions, profiles):
    async def track(dispatcher):
        return await track_interaction(
            products=products, interactions=interactions, profiles=profiles, dispatcher=dispatcher,
            product_id=2, user_id="u1", type="view", metadata={"category": "shirts", "price": 110},
        )

    interaction, dispatcher = _run_with_dispatcher(track)

    assert interaction.type is InteractionType.VIEW
    assert interactions.items == [interaction]
    assert products.items[2].popularity == 1
    assert profiles.items["u1"].viewed_products == [2]
    assert dispatcher.stats()["completed"] == 2


def test_purchase_does_not_touch_profile(products, interactions, profiles):
    async def track(dispatcher):
        return await track_interaction(
            products=products, interactions=interactions, profiles=profiles, dispatcher=dispatcher,
            product_id=2, user_id="u1", type="purchase", metadata={"category": "shirts", "price": 110},
        )

    _, dispatcher = _run_with_dispatcher(track)
    assert products.items[2].popularity == 10
    assert profiles.items == {}
    assert dispatcher.stats()["completed"] == 1


def test_unknown_type_is_rejected_before_anything_is_stored(products, interactions, profiles):
    with pytest.raises(InvalidInteractionTypeError) as exc:
        _run_with_dispatcher(lambda d: track_interaction(
            products=products, interactions=interactions, profiles=profiles, dispatcher=d,
            product_id=1, user_id="u1", type="wishlist",
        ))
    assert exc.value.details["allowed"] == ["view", "cart_add", "purchase"]
    assert interactions.items == []


@pytest.mark.parametrize("metadata", [
    {"category": "shirts", "price": "abc"},
    {"category": "shirts", "price": -5},
    {"category": "shirts", "price": "nan"},
    {"category": "men.shirts", "price": 10},
    {"category": "$where", "price": 10},
    {"category": 42, "price": 10},
])
def test_bad_metadata_is_rejected_before_anything_is_stored(products, interactions, profiles, metadata):
    with pytest.raises(ValidationError) as exc:
        _run_with_dispatcher(lambda d: track_interaction(
            products=products, interactions=interactions, profiles=profiles, dispatcher=d,
            product_id=1, user_id="u1", type="view", metadata=metadata,
        ))
    assert exc.value.status_code == 422
    assert exc.value.details["errors"]
    assert interactions.items == []
    assert profiles.items == {}
    assert products.items[1].popularity == 50


def test_numeric_string_price_and_extra_metadata_are_accepted(products, interactions, profiles):
    _, dispatcher = _run_with_dispatcher(lambda d: track_interaction(
        products=products, interactions=interactions, profiles=profiles, dispatcher=d,
        product_id=1, user_id="u1", type="view",
        metadata={"category": "shirts", "price": "99.5", "source": "homepage"},
    ))
    assert profiles.items["u1"].price_range.min == 99.5
    assert dispatcher.stats()["completed"] == 2


def test_failed_recompute_does_not_fail_ingestion(products, interactions, profiles):
    """Unknown product: the event is stored; the background recompute fails quietly."""
    interaction, dispatcher = _run_with_dispatcher(lambda d: track_interaction(
        products=products, interactions=interactions, profiles=profiles, dispatcher=d,
        product_id=999, user_id="u1", type="view",
    ))
    assert interaction.product_id == 999
    assert dispatcher.stats()["failed"] == 1


def test_bulk_recomputes_each_product_once(products, interactions):
    items = [
        {"product_id": 1, "user_id": "a", "type": "view"},
        {"product_id": 1, "user_id": "b", "type": "purchase"},
        {"product_id": 3, "user_id": "a", "type": "cart_add"},
    ]
    created, dispatcher = _run_with_dispatcher(lambda d: bulk_track_interactions(
        products=products, interactions=interactions, dispatcher=d, items=items,
    ))
    assert len(created) == 3
    assert dispatcher.stats()["submitted"] == 2
    assert products.items[1].popularity == 11
    assert products.items[3].popularity == 5


def test_bulk_rejects_whole_batch_on_one_bad_type(products, interactions):
    items = [
        {"product_id": 1, "user_id": "a", "type": "view"},
        {"product_id": 2, "user_id": "a", "type": "like"},
    ]
    with pytest.raises(InvalidInteractionTypeError):
        _run_with_dispatcher(lambda d: bulk_track_interactions(
            products=products, interactions=interactions, dispatcher=d, items=items,
        ))
    assert interactions.items == []


def test_product_stats_and_conversion(interactions):
    old = datetime.now(timezone.utc) - timedelta(days=60)
    interactions.items += [make_interaction(1, "view") for _ in range(3)] + [
        make_interaction(1, "cart_add"),
        make_interaction(1, "purchase"),
        make_interaction(1, "purchase", timestamp=old),
        make_interaction(2, "view"),
    ]
    stats = asyncio.run(get_product_stats(interactions, 1))
    assert stats == {
        "product_id": 1,
        "period": "Last 30 days",
        "views": 3,
        "cart_adds": 1,
        "purchases": 1,
        "total": 5,
        "conversion_rate": 33.33,
    }
    assert asyncio.run(get_product_stats(interactions, 2))["conversion_rate"] == 0


def test_user_history_newest_first_with_filters(interactions):
    now = datetime.now(timezone.utc)
    interactions.items += [
        make_interaction(1, "view", timestamp=now - timedelta(hours=3)),
        make_interaction(2, "purchase", timestamp=now - timedelta(hours=1)),
        make_interaction(3, "view", timestamp=now - timedelta(hours=2)),
        make_interaction(4, "view", user_id="someone-else"),
    ]
    items = asyncio.run(get_user_interactions(interactions, "u1"))
    assert [i.product_id for i in items] == [2, 3, 1]

    views = asyncio.run(get_user_interactions(interactions, "u1", type="view", limit=1))
    assert [i.product_id for i in views] == [3]

    with pytest.raises(InvalidInteractionTypeError):
        asyncio.run(get_user_interactions(interactions, "u1", type="nope"))
