"""Cheaper-alternative catalog lookup."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence

import structlog

from .errors import LookupUnavailableError
from .models import DEFAULT_CATEGORY, PLACEHOLDER_IMAGE, AlternativeLookupResult, CartLine
from .validation import to_decimal

logger = structlog.get_logger()


@dataclass(frozen=True)
class Product:
    """A catalog entry that can be offered as an alternative."""

    slug: str
    name: str
    price: Decimal
    category: str = DEFAULT_CATEGORY
    image: str = PLACEHOLDER_IMAGE

    def __post_init__(self):
        object.__setattr__(self, "price", to_decimal(self.price))


class CatalogSource(ABC):
    """Abstract base class for catalog data sources."""

    @abstractmethod
    async def products_in_category(self, category: str) -> Sequence[Product]:
        """Return every product in the category, or an empty sequence if unknown."""
        pass


class InMemoryCatalog(CatalogSource):
    """Catalog held in a dict keyed by category.

    Setting ``available`` to False makes every query raise
    LookupUnavailableError, which is how tests exercise the fail-safe path.
    """

    def __init__(self, products: Optional[Iterable[Product]] = None):
        self._by_category: dict[str, list[Product]] = {}
        self.available = True
        for product in products or ():
            self.add(product)

    def add(self, product: Product) -> None:
        self._by_category.setdefault(product.category, []).append(product)

    async def products_in_category(self, category: str) -> Sequence[Product]:
        if not self.available:
            raise LookupUnavailableError()
        return tuple(self._by_category.get(category, ()))


class CatalogLookup:
    """Finds the cheapest same-category product priced below a cart line."""

    def __init__(self, source: CatalogSource):
        self._source = source

    async def find_cheaper_alternative(self, item: CartLine) -> AlternativeLookupResult:
        """Return the cheapest strictly cheaper product in ``item.category``.

        Falls back to the item itself (is_already_cheapest=True) when the
        category is unknown or nothing in it undercuts the item's price.

        Raises:
            LookupUnavailableError: the catalog source failed.
        """
        try:
            candidates = await self._source.products_in_category(item.category)
        except LookupUnavailableError:
            raise
        except Exception as e:
            raise LookupUnavailableError(e) from e

        cheaper = [p for p in candidates if p.slug != item.slug and p.price < item.price]
        if not cheaper:
            logger.debug("catalog_already_cheapest", slug=item.slug, category=item.category)
            return AlternativeLookupResult.already_cheapest(item)

        best = min(cheaper, key=lambda p: (p.price, p.slug))
        logger.debug(
            "catalog_alternative_found",
            slug=item.slug,
            alternative=best.slug,
            price=str(best.price),
        )
        return AlternativeLookupResult(
            name=best.name,
            price=best.price,
            slug=best.slug,
            image=best.image,
            category=best.category,
            is_already_cheapest=False,
        )
