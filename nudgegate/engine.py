"""Nudge decision engine.

Automatic nudges are chosen by fixed precedence, highest severity first:

    block > alternative > gentle

so a cart that crosses several thresholds at once always gets the most
severe nudge it qualifies for. The explicit ``build_*`` constructors bypass
the thresholds entirely; they back the shopper-triggered nudge buttons.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional, Sequence

import structlog

from .cart import Cart
from .catalog import CatalogLookup
from .config import NudgePolicy
from .errors import LookupUnavailableError, errmsg
from .models import (
    DEFAULT_CATEGORY,
    PLACEHOLDER_IMAGE,
    AlternativeLookupResult,
    CartLine,
    NudgeResponse,
    NudgeType,
    item_count,
)
from .validation import require_positive, to_decimal

logger = structlog.get_logger()

GENTLE_PLACEHOLDER_TITLE = "this item"
DEFAULT_BLOCK_SECONDS = 15


@dataclass(frozen=True)
class AlternativeOutcome:
    """Cart changes made by accepting an alternative nudge."""

    removed: Optional[CartLine] = None
    added: Optional[CartLine] = None
    saved: Decimal = Decimal("0")
    message: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.removed is not None


def _exceeds(value, threshold) -> bool:
    return threshold is not None and value > threshold


def _current_fields(item: CartLine) -> dict:
    return {
        "currentProduct": item.title,
        "currentPrice": item.price,
        "currentSlug": item.slug,
        "currentQuantity": item.quantity,
    }


class NudgeDecisionEngine:
    def __init__(
        self,
        catalog: CatalogLookup,
        policy: Optional[NudgePolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.catalog = catalog
        self.policy = policy or NudgePolicy()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def evaluate(self, cart_lines: Sequence[CartLine], total) -> NudgeResponse:
        """Decide which automatic nudge, if any, the cart must see.

        An alternative decision only carries the current-product fields; call
        build_alternative_nudge() to attach the catalog lookup.
        """
        if not cart_lines:
            return NudgeResponse.none()

        total = to_decimal(total)
        policy = self.policy

        if _exceeds(total, policy.block_total_threshold):
            decision = self.build_block_nudge(policy.block_duration_seconds)
        elif _exceeds(total, policy.alternative_total_threshold):
            decision = NudgeResponse(NudgeType.ALTERNATIVE, _current_fields(cart_lines[0]))
        elif _exceeds(total, policy.gentle_total_threshold) or _exceeds(
            item_count(cart_lines), policy.gentle_item_threshold
        ):
            decision = self.build_gentle_nudge(cart_lines)
        else:
            decision = NudgeResponse.none()

        logger.info(
            "nudge_evaluated",
            nudge_type=decision.type.value,
            total=str(total),
            lines=len(cart_lines),
        )
        return decision

    def build_gentle_nudge(self, cart_lines: Sequence[CartLine]) -> NudgeResponse:
        title = cart_lines[0].title if cart_lines and cart_lines[0].title else GENTLE_PLACEHOLDER_TITLE
        return NudgeResponse(NudgeType.GENTLE, {"productTitle": title})

    async def build_alternative_nudge(self, item: CartLine) -> NudgeResponse:
        """Look up a cheaper same-category product for ``item``.

        A catalog outage is reported as "already cheapest" so the shopper is
        never stuck behind a failed lookup.
        """
        try:
            alternative = await self.catalog.find_cheaper_alternative(item)
        except LookupUnavailableError as e:
            logger.warning("catalog_lookup_unavailable", slug=item.slug, error=str(e))
            alternative = AlternativeLookupResult.already_cheapest(item)

        data = _current_fields(item)
        data.update(
            {
                "alternativeProduct": alternative.name,
                "alternativePrice": alternative.price,
                "alternativeSlug": alternative.slug,
                "alternativeImage": alternative.image,
                "alternativeCategory": alternative.category,
                "isAlreadyCheapest": alternative.is_already_cheapest,
                "priceDelta": item.price - alternative.price,
            }
        )
        return NudgeResponse(NudgeType.ALTERNATIVE, data)

    def build_block_nudge(self, duration_seconds: int = DEFAULT_BLOCK_SECONDS) -> NudgeResponse:
        require_positive(duration_seconds, errmsg.DURATION_POSITIVE)
        return NudgeResponse(NudgeType.BLOCK, {"duration": duration_seconds})

    def accept_alternative(self, cart: Cart, nudge: NudgeResponse) -> AlternativeOutcome:
        """Apply an accepted alternative nudge to the cart.

        Swaps the nudged line for the alternative at the same quantity, or just
        drops the line when it was already the cheapest option.
        """
        if nudge.type is not NudgeType.ALTERNATIVE or not nudge.data:
            return AlternativeOutcome()

        lines = cart.items()
        original = next((line for line in lines if line.slug == nudge.get("currentSlug")), None)
        if original is None and lines:
            original = lines[0]
        if original is None:
            return AlternativeOutcome()

        if nudge.get("isAlreadyCheapest"):
            saved = original.price * original.quantity
            cart.remove_item(original.slug)
            logger.info("alternative_removed_item", slug=original.slug, saved=str(saved))
            return AlternativeOutcome(
                removed=original,
                saved=saved,
                message=(
                    f"💰 Great thinking! You saved €{saved:.2f} by removing "
                    f'"{original.title}" from your cart.'
                ),
            )

        name = nudge.get("alternativeProduct")
        price = nudge.get("alternativePrice")
        if not name or price is None:
            return AlternativeOutcome()

        replacement = CartLine(
            slug=nudge.get("alternativeSlug") or f"alternative-{int(self._clock().timestamp() * 1000)}",
            title=name,
            price=to_decimal(price),
            quantity=original.quantity,
            image=nudge.get("alternativeImage") or PLACEHOLDER_IMAGE,
            category=nudge.get("alternativeCategory") or original.category or DEFAULT_CATEGORY,
        )
        saved = to_decimal(nudge.get("currentPrice", original.price)) - replacement.price

        cart.remove_item(original.slug)
        cart.add_item(replacement)
        logger.info(
            "alternative_swapped",
            removed=original.slug,
            added=replacement.slug,
            quantity=replacement.quantity,
            saved=str(saved),
        )
        return AlternativeOutcome(
            removed=original,
            added=replacement,
            saved=saved,
            message=f"Switched to {name}! You saved €{saved:.2f}.",
        )
