import math
import time
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from merchcore.core.errors import ProductNotFoundError, ValidationError
from merchcore.domain.models.cart import Coupon
from merchcore.domain.models.product import Product
from merchcore.domain.services.constants import (
    COMPETITOR_BAND,
    DEFAULT_COST_RATIO,
    GLUT_STOCK_RATIO,
    SCARCE_STOCK_RATIO,
)
from merchcore.utils.numbers import round2, round_int

logger = logging.getLogger(__name__)

REASON_SCARCE = "High demand - low stock"
REASON_GLUT = "Low demand - high stock"
REASON_COMPETITOR = "Competitive pricing adjustment"
REASON_NONE = "No change"

# --- discount helpers ---------------------------------------------------------

def calculate_discount(old_price: Optional[float], new_price: Optional[float]) -> int:
    """Whole-percent markdown from old to new; 0 when there is no markdown."""
    if not old_price or not new_price or old_price <= new_price:
        return 0
    return round_int((old_price - new_price) / old_price * 100)

def format_discount(percentage: int) -> str:
    return f"{percentage}% OFF" if percentage > 0 else ""

def apply_tax(amount: float, tax_rate: float) -> float:
    return round2(amount * tax_rate)

# --- checkout -----------------------------------------------------------------

def validate_coupon(coupon: Optional[Coupon], subtotal: float, now: Optional[datetime] = None) -> bool:
    """Usable iff it has a code, has not expired and the subtotal meets min_purchase."""
    if not coupon or not coupon.code:
        return False
    now = now or datetime.now(timezone.utc)
    if coupon.expiry_date and coupon.expiry_date < now:
        return False
    if coupon.min_purchase and subtotal < coupon.min_purchase:
        return False
    return True

def _empty_total(tax_rate: float) -> Dict[str, Any]:
    return {
        "subtotal": 0,
        "discount": 0,
        "discount_percent": 0,
        "discounted_subtotal": 0,
        "tax": 0,
        "tax_rate": tax_rate,
        "total": 0,
        "items": [],
        "coupon_code": None,
    }

async def calculate_cart_total(carts, user_id: str, tax_rate: float = 0.1) -> Dict[str, Any]:
    """
    subtotal -> coupon discount (pre-tax) -> tax on the discounted amount -> total.
    The order matters: tax is never charged on the discounted-away part.
    """
    if tax_rate < 0:
        raise ValidationError("tax_rate must be >= 0", details={"tax_rate": tax_rate})

    cart = await carts.get(user_id)
    if not cart or not cart.items:
        logger.info("cart_total empty user_id=%s", user_id)
        return _empty_total(tax_rate)

    subtotal = cart.subtotal
    discount_percent = 0.0
    if validate_coupon(cart.coupon, subtotal):
        discount_percent = cart.coupon.discount_percent
    discount = subtotal * discount_percent / 100
    discounted = subtotal - discount
    tax = discounted * tax_rate
    total = discounted + tax

    logger.info(
        "cart_total user_id=%s items=%s subtotal=%.2f discount=%.2f total=%.2f",
        user_id, len(cart.items), subtotal, discount, total,
    )
    return {
        "subtotal": round2(subtotal),
        "discount": round2(discount),
        "discount_percent": discount_percent,
        "discounted_subtotal": round2(discounted),
        "tax": round2(tax),
        "tax_rate": tax_rate,
        "total": round2(total),
        "items": [item.model_dump() for item in cart.items],
        "coupon_code": cart.coupon.code if cart.coupon else None,
    }

# --- dynamic pricing ------------------------------------------------------------

def pricing_reason(stock: int, average_stock: float, competitor_prices: Sequence[float]) -> str:
    """Re-derived from the same thresholds as the adjustment, not from which branch ran."""
    if stock < average_stock * SCARCE_STOCK_RATIO:
        return REASON_SCARCE
    if stock > average_stock * GLUT_STOCK_RATIO:
        return REASON_GLUT
    if competitor_prices:
        return REASON_COMPETITOR
    return REASON_NONE

def dynamic_price(
    product: Product,
    average_stock: float = 100,
    competitor_prices: Sequence[float] = (),
    demand_multiplier: float = 1,
) -> float:
    """
    Rule-based price for one product:
      1) scarce stock (< 20% of average)  -> raise by 10% + demand x 10%
      2) glut stock (> 80% of average)    -> cut by 10% + 20% x stock/average
      3) competitors                      -> clamp into mean ±5%
      4) cost floor (cost_price or 60% of current) wins over everything
    """
    current = product.price
    price = current
    if product.stock < average_stock * SCARCE_STOCK_RATIO:
        price = current * (1 + 0.1 + demand_multiplier * 0.1)
    elif product.stock > average_stock * GLUT_STOCK_RATIO:
        price = current * (1 - (0.1 + 0.2 * product.stock / average_stock))

    if competitor_prices:
        mean = sum(competitor_prices) / len(competitor_prices)
        if abs(price - mean) > mean * COMPETITOR_BAND:
            price = mean * (1 + COMPETITOR_BAND) if price > mean else mean * (1 - COMPETITOR_BAND)

    cost = product.cost_price or current * DEFAULT_COST_RATIO
    if price < cost:
        price = cost

    price = round2(price)
    if price < cost:  # rounding must not undercut the floor
        price = math.ceil(cost * 100) / 100
    return price

def _validate_pricing_options(average_stock: float, competitor_prices: Sequence[float]) -> None:
    if average_stock <= 0:
        raise ValidationError("average_stock must be > 0", details={"average_stock": average_stock})
    if any(p <= 0 for p in competitor_prices):
        raise ValidationError(
            "competitor prices must be > 0", details={"competitor_prices": list(competitor_prices)}
        )

async def apply_dynamic_pricing(
    products,
    product_id: int,
    average_stock: float = 100,
    competitor_prices: Optional[List[float]] = None,
    demand_multiplier: float = 1,
) -> Dict[str, Any]:
    """Compute the dynamic price and persist it only when it actually changed."""
    t0 = time.perf_counter()
    competitor_prices = list(competitor_prices or [])
    _validate_pricing_options(average_stock, competitor_prices)

    product = await products.get(product_id)
    if not product:
        raise ProductNotFoundError(product_id)

    new_price = dynamic_price(product, average_stock, competitor_prices, demand_multiplier)
    changed = new_price != product.price
    if changed:
        await products.set_price(product_id, new_price)

    reason = pricing_reason(product.stock, average_stock, competitor_prices)
    logger.info(
        "dynamic_pricing product_id=%s stock=%s old=%.2f new=%.2f changed=%s reason=%r time=%.3fs",
        product_id, product.stock, product.price, new_price, changed, reason, time.perf_counter() - t0,
    )
    return {
        "product_id": product_id,
        "old_price": product.price,
        "new_price": new_price,
        "price_changed": changed,
        "reason": reason,
    }

async def adjust_for_competitors(products, product_id: int, competitor_prices: List[float]) -> Dict[str, Any]:
    if not competitor_prices:
        raise ValidationError("No competitor prices provided", details={"product_id": product_id})
    return await apply_dynamic_pricing(products, product_id, competitor_prices=competitor_prices)
