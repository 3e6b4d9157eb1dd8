"""Cart collaborator interface and an in-memory implementation."""

import threading
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from .errors import errmsg
from .models import CartLine, cart_total
from .validation import require_quantity

logger = structlog.get_logger()


class Cart(ABC):
    """Line items keyed by slug.

    Implementations guarantee slug uniqueness and reject quantities below 1.
    """

    @abstractmethod
    def items(self) -> tuple[CartLine, ...]:
        pass

    @abstractmethod
    def add_item(self, line: CartLine) -> None:
        pass

    @abstractmethod
    def remove_item(self, slug: str) -> None:
        pass

    @abstractmethod
    def update_quantity(self, slug: str, quantity: int) -> None:
        pass

    @abstractmethod
    def clear_cart(self) -> None:
        pass

    def total(self) -> Decimal:
        return cart_total(self.items())

    def is_empty(self) -> bool:
        return not self.items()


class InMemoryCart(Cart):
    """Single-writer cart; every mutation holds the lock, as does reading."""

    def __init__(self, lines: Optional[Iterable[CartLine]] = None):
        self._lock = threading.RLock()
        self._lines: dict[str, CartLine] = {}
        for line in lines or ():
            self.add_item(line)

    def items(self) -> tuple[CartLine, ...]:
        with self._lock:
            return tuple(self._lines.values())

    def total(self) -> Decimal:
        with self._lock:
            return cart_total(tuple(self._lines.values()))

    def add_item(self, line: CartLine) -> None:
        with self._lock:
            existing = self._lines.get(line.slug)
            if existing is not None:
                line = existing.with_quantity(existing.quantity + line.quantity)
            self._lines[line.slug] = line
        logger.debug("cart_item_added", slug=line.slug, quantity=line.quantity)

    def remove_item(self, slug: str) -> None:
        with self._lock:
            if self._lines.pop(slug, None) is None:
                logger.debug("cart_item_missing", slug=slug, reason=errmsg.ITEM_NOT_IN_CART)
                return
        logger.debug("cart_item_removed", slug=slug)

    def update_quantity(self, slug: str, quantity: int) -> None:
        require_quantity(quantity)
        with self._lock:
            line = self._lines.get(slug)
            if line is None:
                raise KeyError(f"{errmsg.ITEM_NOT_IN_CART}: {slug}")
            self._lines[slug] = line.with_quantity(quantity)
        logger.debug("cart_quantity_updated", slug=slug, quantity=quantity)

    def clear_cart(self) -> None:
        with self._lock:
            self._lines.clear()
        logger.debug("cart_cleared")
