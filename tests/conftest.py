"""Shared fixtures: in-memory collaborators wired into a checkout gate."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from nudgegate import (
    CartLine,
    CatalogLookup,
    CheckoutGate,
    InMemoryCart,
    InMemoryCatalog,
    InMemoryInteractionSink,
    InMemoryOrderStore,
    NudgeDecisionEngine,
    NudgeInteractionRecorder,
    NudgePolicy,
    Product,
    StaticIdentity,
    User,
)

FIXED_NOW = datetime(2024, 5, 17, 12, 30, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_line(slug: str = "a", price="10", quantity: int = 1, category: str = "jackets", title: str = "") -> CartLine:
    return CartLine(
        slug=slug,
        title=title or slug.replace("-", " ").title(),
        price=Decimal(price),
        quantity=quantity,
        image=f"/images/products/{slug}.jpg",
        category=category,
    )


@pytest.fixture
def products():
    return [
        Product("premium-jacket", "Premium Jacket", Decimal("50"), "jackets", "/images/products/premium-jacket.jpg"),
        Product("basic-jacket", "Basic Jacket", Decimal("30"), "jackets", "/images/products/basic-jacket.jpg"),
        Product("mid-jacket", "Mid Jacket", Decimal("40"), "jackets", "/images/products/mid-jacket.jpg"),
        Product("sneakers", "Sneakers", Decimal("60"), "shoes", "/images/products/sneakers.jpg"),
    ]


@pytest.fixture
def catalog(products):
    return InMemoryCatalog(products)


@pytest.fixture
def lookup(catalog):
    return CatalogLookup(catalog)


@pytest.fixture
def policy():
    return NudgePolicy(
        block_total_threshold=Decimal("500"),
        alternative_total_threshold=Decimal("200"),
        gentle_total_threshold=Decimal("50"),
        gentle_item_threshold=5,
    )


@pytest.fixture
def engine(lookup, policy):
    return NudgeDecisionEngine(lookup, policy, clock=fixed_clock)


@pytest.fixture
def cart():
    return InMemoryCart()


@pytest.fixture
def user():
    return User("shopper@example.com", "Shopper")


@pytest.fixture
def identity(user):
    return StaticIdentity(user)


@pytest.fixture
def sink():
    return InMemoryInteractionSink()


@pytest.fixture
def recorder(sink):
    return NudgeInteractionRecorder(sink, clock=fixed_clock)


@pytest.fixture
def order_store():
    return InMemoryOrderStore()


@pytest.fixture
def gate(cart, identity, engine, recorder, order_store):
    return CheckoutGate(cart, identity, engine, recorder, order_store, clock=fixed_clock)
