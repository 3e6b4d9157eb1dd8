"""Validation helpers for precondition checks at the cart boundary.

Eliminates repeated validation boilerplate across the models and the cart.
"""

from decimal import Decimal

from .errors import InvalidQuantityError


def require_not_empty(value: str, error_msg: str) -> None:
    """Require that a string field is non-empty."""
    if not value:
        raise ValueError(error_msg)


def require_quantity(quantity: int) -> None:
    """Require a whole quantity of at least one."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantityError(quantity)


def require_positive(value: int, error_msg: str) -> None:
    """Require that an integer is greater than zero."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(error_msg)


def require_non_negative(value: Decimal, error_msg: str) -> None:
    """Require that an amount is zero or greater."""
    if value < 0:
        raise ValueError(error_msg)


def to_decimal(value) -> Decimal:
    """Coerce a price-like value to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)
