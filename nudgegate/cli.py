#!/usr/bin/env python3
"""Walk one checkout attempt through the gate against a demo catalog."""

import argparse
import asyncio
import sys
from dataclasses import replace
from decimal import Decimal
from pathlib import Path

from .cart import InMemoryCart
from .catalog import CatalogLookup, InMemoryCatalog, Product
from .config import Settings
from .engine import NudgeDecisionEngine
from .gate import CheckoutGate, GateResult, GateState, NudgeOutcome
from .identity import StaticIdentity
from .log import configure_logging
from .models import CartLine, User
from .orders import JsonFileOrderStore
from .recorder import NudgeInteractionRecorder

DEMO_PRODUCTS = [
    Product("denim-jacket", "Denim Jacket", Decimal("89.99"), "jackets", "/images/products/denim-jacket.jpg"),
    Product("rain-jacket", "Rain Jacket", Decimal("49.99"), "jackets", "/images/products/rain-jacket.jpg"),
    Product("leather-jacket", "Leather Jacket", Decimal("249.00"), "jackets", "/images/products/leather-jacket.jpg"),
    Product("canvas-sneakers", "Canvas Sneakers", Decimal("39.00"), "shoes", "/images/products/canvas-sneakers.jpg"),
    Product("running-shoes", "Running Shoes", Decimal("129.00"), "shoes", "/images/products/running-shoes.jpg"),
    Product("wool-beanie", "Wool Beanie", Decimal("19.50"), "accessories", "/images/products/wool-beanie.jpg"),
]


def _parse_item(spec: str) -> tuple[str, int]:
    slug, _, qty = spec.partition(":")
    return slug, int(qty) if qty else 1


def _build_cart(items: list[str]) -> InMemoryCart:
    by_slug = {p.slug: p for p in DEMO_PRODUCTS}
    cart = InMemoryCart()
    for spec in items:
        slug, qty = _parse_item(spec)
        product = by_slug.get(slug)
        if product is None:
            raise SystemExit(f"unknown product {slug!r}; choose from {', '.join(sorted(by_slug))}")
        cart.add_item(CartLine(product.slug, product.name, product.price, qty, product.image, product.category))
    return cart


def _print_result(label: str, result: GateResult) -> None:
    print(f"[{label}] state={result.state.value}")
    if result.nudge is not None:
        print(f"  nudge={result.nudge.type.value} data={dict(result.nudge.data or {})}")
    if result.notification is not None:
        print(f"  {result.notification.type.value}: {result.notification.message}")
    if result.order is not None:
        print(f"  order={result.order.id} total=€{result.order.total:.2f}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run a checkout attempt through the nudge gate")
    parser.add_argument("--user", default="shopper@example.com", help="Signed-in email (empty for signed out)")
    parser.add_argument(
        "--item",
        action="append",
        default=[],
        help="Cart line as SLUG[:QTY]; repeatable (default: denim-jacket:2)",
    )
    parser.add_argument(
        "--answer",
        choices=["accept", "reject", "complete", "abandon"],
        default="reject",
        help="How the shopper answers an open nudge (default: reject)",
    )
    parser.add_argument("--block-total", type=Decimal, help="Override the block nudge threshold")
    parser.add_argument("--alternative-total", type=Decimal, help="Override the alternative nudge threshold")
    parser.add_argument("--gentle-total", type=Decimal, help="Override the gentle nudge threshold")
    parser.add_argument("--orders", type=Path, help="Order store file")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level)

    overrides = {}
    if args.block_total is not None:
        overrides["block_total_threshold"] = args.block_total
    if args.alternative_total is not None:
        overrides["alternative_total_threshold"] = args.alternative_total
    if args.gentle_total is not None:
        overrides["gentle_total_threshold"] = args.gentle_total
    policy = replace(settings.policy, **overrides)

    gate = CheckoutGate(
        cart=_build_cart(args.item or ["denim-jacket:2"]),
        identity=StaticIdentity(User(args.user) if args.user else None),
        engine=NudgeDecisionEngine(CatalogLookup(InMemoryCatalog(DEMO_PRODUCTS)), policy),
        recorder=NudgeInteractionRecorder(),
        order_store=JsonFileOrderStore(args.orders or settings.order_store_path),
    )

    result = asyncio.run(gate.request_checkout())
    _print_result("checkout", result)

    if result.state in (GateState.NUDGE_OPEN, GateState.BLOCKED):
        if args.answer == "abandon":
            result = gate.abandon()
        elif args.answer == "complete" or (result.state is GateState.BLOCKED and args.answer == "accept"):
            gate.tick(gate.block_remaining)
            result = gate.complete_block()
        else:
            result = gate.resolve_nudge(NudgeOutcome(args.answer))
        _print_result(args.answer, result)

    return 0 if result.state in (GateState.COMMITTED, GateState.IDLE) else 1


if __name__ == "__main__":
    sys.exit(main())
