"""Tests for reorder points, demand forecasts and reorder alerts."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_interaction, make_product
from merchcore.core.errors import ProductNotFoundError
from merchcore.domain.services.inventory_svc import (
    calculate_reorder_point,
    check_reorder_point,
    demand_forecast,
    forecast_demand,
    get_reorder_alerts,
    reorder_info,
)


def _purchases(product_id, n, days_ago=1):
    ts = datetime.now(timezone.utc) - timedelta(days=days_ago)
    return [make_interaction(product_id, "purchase", timestamp=ts) for _ in range(n)]


def test_reorder_point_from_moving_average():
    """30 purchases in 30 days: avg 1/day, safety 7, point 1 x 7 + 7 = 14."""
    info = reorder_info(make_product(1, stock=13), purchases=30)
    assert info["average_daily_sales"] == 1
    assert info["safety_stock"] == 7
    assert info["reorder_point"] == 14
    assert info["should_reorder"] is True


def test_reorder_point_rounds_up_but_compares_unrounded():
    """10 purchases: point = 10/30 x 14 = 4.67, shown as 5; stock 5 is above it."""
    info = reorder_info(make_product(1, stock=5), purchases=10)
    assert info["reorder_point"] == 5
    assert info["should_reorder"] is False


def test_forecast_with_no_sales_is_unbounded():
    forecast = demand_forecast(make_product(1, stock=0), purchases=0)
    assert forecast["forecasted_demand"] == 0
    assert forecast["stock_sufficient"] is True
    assert forecast["days_until_stockout"] is None


def test_forecast_projects_average_forward():
    forecast = demand_forecast(make_product(1, stock=20), purchases=15, days=60)
    assert forecast["average_daily_sales"] == 0.5
    assert forecast["forecasted_demand"] == 30
    assert forecast["stock_sufficient"] is False
    assert forecast["days_until_stockout"] == 40


def test_calculate_reorder_point_counts_recent_purchases_only(products, interactions):
    interactions.items += _purchases(2, 30) + _purchases(2, 30, days_ago=45) + [make_interaction(2, "view")]
    info = asyncio.run(calculate_reorder_point(products, interactions, 2))

    assert info["average_daily_sales"] == 1
    assert info["current_stock"] == 3
    assert info["should_reorder"] is True
    assert asyncio.run(check_reorder_point(products, interactions, 2)) is True


def test_forecast_demand_unknown_product(products, interactions):
    with pytest.raises(ProductNotFoundError):
        asyncio.run(forecast_demand(products, interactions, 42))


def test_reorder_alerts_match_per_product_checks(products, interactions):
    interactions.items += _purchases(2, 30) + _purchases(4, 6) + _purchases(5, 3)

    async def scenario():
        alerts = await get_reorder_alerts(products, interactions)
        singles = {
            pid: await calculate_reorder_point(products, interactions, pid)
            for pid in products.items
        }
        return alerts, singles

    alerts, singles = asyncio.run(scenario())

    # 2: stock 3 < 14; 4: stock 5 < 2.8 is false; 6: stock 0 < 0 is false
    assert [a["id"] for a in alerts] == [2]
    assert alerts[0]["reorder_info"] == singles[2]
    assert alerts[0]["forecast"]["days_until_stockout"] == 3
    flagged = sorted(pid for pid, info in singles.items() if info["should_reorder"])
    assert flagged == [a["id"] for a in alerts]
