"""Error types and user-facing messages for the checkout gate."""

from typing import Optional


class errmsg:
    """Message constants surfaced to shoppers and logs."""

    LOGIN_TO_CHECKOUT = "Please log in to complete your purchase."
    LOGIN_TO_NUDGE = "Please log in to use nudges or continue with purchases."
    ORDER_PLACED = "🎉 Thank you! Your order has been placed."
    ORDER_NOT_PLACED = "We couldn't place your order. Please try again."
    CATALOG_UNAVAILABLE = "Catalog lookup unavailable"
    QUANTITY_POSITIVE = "Quantity must be at least 1"
    PRICE_NON_NEGATIVE = "Price cannot be negative"
    SLUG_REQUIRED = "Slug is required"
    ITEM_NOT_IN_CART = "Item not in cart"
    DURATION_POSITIVE = "Block duration must be a positive number of seconds"
    UNKNOWN_OUTCOME = "Unknown nudge outcome"


class NudgeGateError(Exception):
    """Base class for checkout gate errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message


class IdentityMissingError(NudgeGateError):
    """No authenticated shopper is present."""

    def __init__(self, message: str = errmsg.LOGIN_TO_CHECKOUT):
        super().__init__(message)


class LookupUnavailableError(NudgeGateError):
    """The catalog source could not be queried."""

    def __init__(self, cause: Optional[Exception] = None):
        super().__init__(errmsg.CATALOG_UNAVAILABLE, cause)


class OrderPersistError(NudgeGateError):
    """The order could not be written to the order store."""

    def __init__(self, order_id: str, cause: Optional[Exception] = None):
        super().__init__(f"failed to persist order {order_id}", cause)
        self.order_id = order_id


class OrderStoreReadError(NudgeGateError):
    """Stored orders could not be read back."""

    def __init__(self, path: str, cause: Optional[Exception] = None):
        super().__init__(f"failed to read orders from {path}", cause)
        self.path = path


class InvalidQuantityError(NudgeGateError):
    """A cart line quantity below 1 was supplied."""

    def __init__(self, quantity: int):
        super().__init__(f"{errmsg.QUANTITY_POSITIVE} (got {quantity})")
        self.quantity = quantity
