# merchcore/core/errors.py
"""
Domain errors raised by the merchandising services.

Each error carries an HTTP-friendly status code and a details dict; the API layer
renders them as-is (see merchcore.main). Services never catch these themselves.
"""
from typing import Any, Dict, Optional


class MerchandisingError(Exception):
    """Base class for every error surfaced by merchcore."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(MerchandisingError):
    """A required product/user id does not exist."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=404, details=details)


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: int):
        super().__init__(
            message=f"Product {product_id} not found",
            details={"product_id": product_id},
        )


class ValidationError(MerchandisingError):
    """Malformed input: bad interaction type, bad coupon shape, bad pricing options."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=422, details=details)


class InvalidInteractionTypeError(ValidationError):
    def __init__(self, interaction_type: Any):
        super().__init__(
            message=f"Invalid interaction type: {interaction_type}",
            details={"type": interaction_type, "allowed": ["view", "cart_add", "purchase"]},
        )


class InvalidCouponError(ValidationError):
    def __init__(self, user_id: str, error: Exception):
        super().__init__(
            message=f"Cart for user {user_id} has an invalid coupon: {error}",
            details={"user_id": user_id, "error": str(error)},
        )
