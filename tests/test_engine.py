"""Tests for the nudge decision engine."""

import asyncio
from decimal import Decimal

import pytest

from nudgegate import (
    CatalogLookup,
    InMemoryCart,
    InMemoryCatalog,
    NudgeDecisionEngine,
    NudgePolicy,
    NudgeResponse,
    NudgeType,
    cart_total,
)
from nudgegate.engine import GENTLE_PLACEHOLDER_TITLE

from tests.conftest import fixed_clock, make_line


def _evaluate(engine, lines):
    return engine.evaluate(lines, cart_total(lines))


# =============================================================================
# evaluate()
# =============================================================================


class TestEvaluate:
    def test_empty_cart_needs_no_nudge(self, engine):
        assert engine.evaluate([], Decimal("0")).is_none

    def test_below_every_threshold(self, engine):
        assert _evaluate(engine, [make_line("a", "10", 1)]).type is NudgeType.NONE

    def test_thresholds_are_strict(self, engine):
        assert _evaluate(engine, [make_line("a", "50", 1)]).type is NudgeType.NONE

    def test_gentle_on_total(self, engine):
        response = _evaluate(engine, [make_line("a", "60", 1, title="Denim Jacket")])
        assert response.type is NudgeType.GENTLE
        assert response.get("productTitle") == "Denim Jacket"

    def test_gentle_on_item_count(self, engine):
        response = _evaluate(engine, [make_line("a", "1", 6)])
        assert response.type is NudgeType.GENTLE

    def test_alternative_carries_current_product(self, engine):
        response = _evaluate(engine, [make_line("premium-jacket", "50", 5, title="Premium Jacket")])

        assert response.type is NudgeType.ALTERNATIVE
        assert response.get("currentSlug") == "premium-jacket"
        assert response.get("currentProduct") == "Premium Jacket"
        assert response.get("currentPrice") == Decimal("50")
        assert response.get("currentQuantity") == 5

    @pytest.mark.parametrize(
        "lines",
        [
            [make_line("a", "501", 1)],
            [make_line("a", "100", 6)],
            [make_line("a", "250", 1), make_line("b", "300", 1)],
        ],
    )
    def test_block_takes_precedence(self, engine, lines):
        response = _evaluate(engine, lines)
        assert response.type is NudgeType.BLOCK
        assert response.get("duration") == 15

    def test_block_duration_comes_from_policy(self, lookup):
        engine = NudgeDecisionEngine(lookup, NudgePolicy(block_duration_seconds=30))
        assert _evaluate(engine, [make_line("a", "1000", 1)]).get("duration") == 30

    def test_disabled_thresholds_fall_through(self, lookup):
        policy = NudgePolicy(block_total_threshold=None, alternative_total_threshold=None)
        engine = NudgeDecisionEngine(lookup, policy)
        assert _evaluate(engine, [make_line("a", "1000", 1)]).type is NudgeType.GENTLE

    def test_all_disabled(self, lookup):
        policy = NudgePolicy(
            block_total_threshold=None,
            alternative_total_threshold=None,
            gentle_total_threshold=None,
            gentle_item_threshold=None,
        )
        engine = NudgeDecisionEngine(lookup, policy)
        assert _evaluate(engine, [make_line("a", "1000", 99)]).is_none

    def test_accepts_numeric_total(self, engine):
        assert engine.evaluate([make_line("a", "600", 1)], 600).type is NudgeType.BLOCK


# =============================================================================
# Explicit constructors
# =============================================================================


class TestBuildGentleNudge:
    def test_uses_first_line_title(self, engine):
        response = engine.build_gentle_nudge([make_line("a", title="Alpha"), make_line("b", title="Beta")])
        assert response.type is NudgeType.GENTLE
        assert response.data == {"productTitle": "Alpha"}

    def test_empty_cart_uses_placeholder(self, engine):
        response = engine.build_gentle_nudge([])
        assert response.get("productTitle") == GENTLE_PLACEHOLDER_TITLE


class TestBuildBlockNudge:
    def test_default_duration(self, engine):
        assert engine.build_block_nudge().data == {"duration": 15}

    def test_custom_duration(self, engine):
        assert engine.build_block_nudge(60).get("duration") == 60

    @pytest.mark.parametrize("duration", [0, -5, 1.5, True])
    def test_rejects_non_positive_duration(self, engine, duration):
        with pytest.raises(ValueError):
            engine.build_block_nudge(duration)


class TestBuildAlternativeNudge:
    def test_cheaper_alternative(self, engine):
        item = make_line("premium-jacket", "50", 2, title="Premium Jacket")
        response = asyncio.run(engine.build_alternative_nudge(item))

        assert response.type is NudgeType.ALTERNATIVE
        assert response.get("isAlreadyCheapest") is False
        assert response.get("currentProduct") == "Premium Jacket"
        assert response.get("currentPrice") == Decimal("50")
        assert response.get("alternativeProduct") == "Basic Jacket"
        assert response.get("alternativePrice") == Decimal("30")
        assert response.get("alternativeSlug") == "basic-jacket"
        assert response.get("alternativeCategory") == "jackets"
        assert response.get("priceDelta") == Decimal("20")
        assert response.get("alternativePrice") < response.get("currentPrice")

    def test_already_cheapest(self, engine):
        item = make_line("basic-jacket", "30")
        response = asyncio.run(engine.build_alternative_nudge(item))

        assert response.get("isAlreadyCheapest") is True
        assert response.get("alternativePrice") == item.price
        assert response.get("priceDelta") == Decimal("0")

    def test_lookup_outage_degrades_to_already_cheapest(self, engine, catalog):
        catalog.available = False
        item = make_line("premium-jacket", "50")
        response = asyncio.run(engine.build_alternative_nudge(item))

        assert response.type is NudgeType.ALTERNATIVE
        assert response.get("isAlreadyCheapest") is True
        assert response.get("alternativePrice") == Decimal("50")


# =============================================================================
# accept_alternative()
# =============================================================================


class TestAcceptAlternative:
    def test_swaps_line_keeping_quantity(self, engine):
        cart = InMemoryCart([make_line("premium-jacket", "50", 3)])
        nudge = asyncio.run(engine.build_alternative_nudge(cart.items()[0]))

        outcome = engine.accept_alternative(cart, nudge)

        lines = cart.items()
        assert [line.slug for line in lines] == ["basic-jacket"]
        assert lines[0].quantity == 3
        assert lines[0].price == Decimal("30")
        assert outcome.removed.slug == "premium-jacket"
        assert outcome.added.slug == "basic-jacket"
        assert outcome.saved == Decimal("20")
        assert outcome.message == "Switched to Basic Jacket! You saved €20.00."

    def test_targets_nudged_line_not_first_line(self, engine):
        cart = InMemoryCart([make_line("sneakers", "60", category="shoes"), make_line("premium-jacket", "50")])
        nudge = asyncio.run(engine.build_alternative_nudge(cart.items()[1]))

        engine.accept_alternative(cart, nudge)

        assert sorted(line.slug for line in cart.items()) == ["basic-jacket", "sneakers"]

    def test_already_cheapest_removes_line(self, engine):
        cart = InMemoryCart([make_line("basic-jacket", "30", 2, title="Basic Jacket")])
        nudge = asyncio.run(engine.build_alternative_nudge(cart.items()[0]))

        outcome = engine.accept_alternative(cart, nudge)

        assert cart.items() == ()
        assert outcome.added is None
        assert outcome.saved == Decimal("60")
        assert outcome.message == '💰 Great thinking! You saved €60.00 by removing "Basic Jacket" from your cart.'

    def test_missing_alternative_fields_fall_back(self, engine):
        cart = InMemoryCart([make_line("premium-jacket", "50", 1, category="jackets")])
        nudge = NudgeResponse(
            NudgeType.ALTERNATIVE,
            {
                "currentSlug": "premium-jacket",
                "currentPrice": Decimal("50"),
                "alternativeProduct": "House Jacket",
                "alternativePrice": Decimal("25"),
                "isAlreadyCheapest": False,
            },
        )

        outcome = engine.accept_alternative(cart, nudge)

        expected_slug = f"alternative-{int(fixed_clock().timestamp() * 1000)}"
        assert outcome.added.slug == expected_slug
        assert outcome.added.image == "/images/products/placeholder.jpg"
        assert outcome.added.category == "jackets"

    def test_empty_cart_is_a_no_op(self, engine):
        cart = InMemoryCart()
        nudge = NudgeResponse(NudgeType.ALTERNATIVE, {"currentSlug": "gone", "isAlreadyCheapest": True})
        outcome = engine.accept_alternative(cart, nudge)
        assert not outcome.changed

    def test_non_alternative_nudge_is_a_no_op(self, engine):
        cart = InMemoryCart([make_line("a")])
        outcome = engine.accept_alternative(cart, engine.build_gentle_nudge(cart.items()))
        assert not outcome.changed
        assert len(cart.items()) == 1

    def test_catalog_has_no_side_effects_until_accepted(self, products):
        catalog = InMemoryCatalog(products)
        engine = NudgeDecisionEngine(CatalogLookup(catalog))
        cart = InMemoryCart([make_line("premium-jacket", "50")])

        asyncio.run(engine.build_alternative_nudge(cart.items()[0]))

        assert [line.slug for line in cart.items()] == ["premium-jacket"]
