"""Tests for cart totals, coupons and dynamic pricing."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeCartRepo, FakeProductRepo, make_product
from merchcore.core.errors import InvalidCouponError, ProductNotFoundError, ValidationError
from merchcore.domain.models.cart import Coupon
from merchcore.domain.services.pricing_svc import (
    REASON_COMPETITOR,
    REASON_GLUT,
    REASON_NONE,
    REASON_SCARCE,
    adjust_for_competitors,
    apply_dynamic_pricing,
    calculate_cart_total,
    calculate_discount,
    dynamic_price,
    format_discount,
    validate_coupon,
)

NEXT_YEAR = (datetime.now(timezone.utc) + timedelta(days=365)).isoformat()
LAST_YEAR = (datetime.now(timezone.utc) - timedelta(days=365)).isoformat()


def _cart(coupon=None, items=None):
    return {
        "user_id": "u1",
        "items": items or [
            {"product_id": 1, "price": 400, "quantity": 2},
            {"product_id": 2, "price": 200, "quantity": 1},
        ],
        "coupon": coupon,
    }


def _total(doc, tax_rate=0.1):
    return asyncio.run(calculate_cart_total(FakeCartRepo({"u1": doc}), "u1", tax_rate=tax_rate))


def test_discount_helpers():
    assert calculate_discount(100, 80) == 20
    assert calculate_discount(300, 250) == 17
    assert calculate_discount(100, 100) == 0
    assert calculate_discount(None, 80) == 0
    assert format_discount(20) == "20% OFF"
    assert format_discount(0) == ""


def test_coupon_discount_applies_before_tax():
    coupon = {"code": "SAVE10", "discount_percent": 10, "min_purchase": 500, "expiry_date": NEXT_YEAR}
    total = _total(_cart(coupon), tax_rate=0.15)

    assert total["subtotal"] == 1000
    assert total["discount"] == 100
    assert total["discounted_subtotal"] == 900
    assert total["tax"] == 135
    assert total["total"] == 1035
    assert total["coupon_code"] == "SAVE10"
    assert len(total["items"]) == 2


def test_expired_coupon_never_reduces_total():
    coupon = {"code": "OLD", "discount_percent": 50, "expiry_date": LAST_YEAR}
    total = _total(_cart(coupon))
    assert total["discount"] == 0
    assert total["total"] == 1100


def test_coupon_below_minimum_purchase_is_ignored():
    coupon = {"code": "BIG", "discount_percent": 20, "min_purchase": 5000}
    assert _total(_cart(coupon))["discount"] == 0


def test_zero_tax_total_equals_subtotal():
    total = _total(_cart(), tax_rate=0)
    assert total["tax"] == 0
    assert total["total"] == total["subtotal"] == 1000


def test_negative_tax_rate_rejected():
    with pytest.raises(ValidationError):
        _total(_cart(), tax_rate=-0.1)


def test_missing_or_empty_cart_totals_to_zero():
    carts = FakeCartRepo({"u2": {"user_id": "u2", "items": []}})
    for user_id in ("u2", "ghost"):
        total = asyncio.run(calculate_cart_total(carts, user_id))
        assert total["total"] == 0
        assert total["items"] == []


def test_malformed_coupon_is_an_invalid_coupon_error():
    with pytest.raises(InvalidCouponError) as exc:
        _total(_cart({"code": "X", "discount_percent": 150}))
    assert exc.value.status_code == 422


def test_malformed_items_are_a_validation_error():
    with pytest.raises(ValidationError) as exc:
        _total(_cart(items=[{"product_id": 1, "price": 10, "quantity": 0}]))
    assert not isinstance(exc.value, InvalidCouponError)
    assert exc.value.details["errors"]


def test_validate_coupon_rules():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert validate_coupon(Coupon(code="A"), 10, now=now)
    assert not validate_coupon(Coupon(code=None), 10, now=now)
    assert not validate_coupon(None, 10, now=now)
    assert not validate_coupon(Coupon(code="A", expiry_date=now - timedelta(seconds=1)), 10, now=now)
    assert validate_coupon(Coupon(code="A", min_purchase=10), 10, now=now)


def test_scarce_stock_raises_price():
    assert dynamic_price(make_product(1, price=100, stock=5)) == 120
    assert dynamic_price(make_product(1, price=100, stock=5), demand_multiplier=2) == 130


def test_glut_stock_cuts_price():
    assert dynamic_price(make_product(1, price=100, stock=90)) == 72


def test_price_never_below_cost():
    assert dynamic_price(make_product(1, price=100, stock=200)) == 60          # 60% default floor
    assert dynamic_price(make_product(1, price=100, stock=200, cost_price=80)) == 80
    # rounding must not undercut a fractional cost
    assert dynamic_price(make_product(1, price=50, stock=200, cost_price=33.333)) == 33.34


def test_competitor_clamp():
    product = make_product(1, price=100, stock=50)
    assert dynamic_price(product, competitor_prices=[80, 80]) == 84
    assert dynamic_price(product, competitor_prices=[120]) == 114
    assert dynamic_price(product, competitor_prices=[102]) == 100


def test_apply_dynamic_pricing_persists_changes():
    products = FakeProductRepo([make_product(1, price=100, stock=5)])
    result = asyncio.run(apply_dynamic_pricing(products, 1))

    assert result == {
        "product_id": 1,
        "old_price": 100,
        "new_price": 120,
        "price_changed": True,
        "reason": REASON_SCARCE,
    }
    assert products.items[1].price == 120


def test_apply_dynamic_pricing_skips_write_when_unchanged():
    products = FakeProductRepo([make_product(1, price=100, stock=50)])
    result = asyncio.run(apply_dynamic_pricing(products, 1))

    assert result["price_changed"] is False
    assert result["reason"] == REASON_NONE
    assert products.price_writes == []


def test_reasons_follow_thresholds():
    glut = FakeProductRepo([make_product(1, price=100, stock=90)])
    assert asyncio.run(apply_dynamic_pricing(glut, 1))["reason"] == REASON_GLUT

    normal = FakeProductRepo([make_product(1, price=100, stock=50)])
    result = asyncio.run(adjust_for_competitors(normal, 1, [80]))
    assert result["reason"] == REASON_COMPETITOR
    assert result["new_price"] == 84


def test_pricing_options_are_validated():
    products = FakeProductRepo([make_product(1)])
    with pytest.raises(ValidationError):
        asyncio.run(apply_dynamic_pricing(products, 1, average_stock=0))
    with pytest.raises(ValidationError):
        asyncio.run(apply_dynamic_pricing(products, 1, competitor_prices=[10, -1]))
    with pytest.raises(ValidationError):
        asyncio.run(adjust_for_competitors(products, 1, []))
    with pytest.raises(ProductNotFoundError):
        asyncio.run(apply_dynamic_pricing(products, 9))
