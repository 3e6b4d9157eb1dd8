"""Nudge decision and checkout gating engine."""

from .cart import Cart, InMemoryCart
from .catalog import CatalogLookup, CatalogSource, InMemoryCatalog, Product
from .config import NudgePolicy, Settings
from .engine import AlternativeOutcome, NudgeDecisionEngine
from .errors import (
    IdentityMissingError,
    InvalidQuantityError,
    LookupUnavailableError,
    NudgeGateError,
    OrderPersistError,
    OrderStoreReadError,
    errmsg,
)
from .gate import CheckoutAttempt, CheckoutGate, GateResult, GateState, NudgeOutcome
from .identity import Identity, StaticIdentity
from .log import configure_logging
from .models import (
    AlternativeLookupResult,
    CartLine,
    Notification,
    NotificationType,
    NudgeInteraction,
    NudgeResponse,
    NudgeType,
    Order,
    User,
    cart_total,
)
from .orders import InMemoryOrderStore, JsonFileOrderStore, OrderStore
from .recorder import InMemoryInteractionSink, InteractionSink, NudgeInteractionRecorder

__all__ = [
    # Gate
    "CheckoutGate",
    "CheckoutAttempt",
    "GateResult",
    "GateState",
    "NudgeOutcome",
    # Engine
    "NudgeDecisionEngine",
    "AlternativeOutcome",
    # Catalog
    "CatalogLookup",
    "CatalogSource",
    "InMemoryCatalog",
    "Product",
    # Recorder
    "NudgeInteractionRecorder",
    "InteractionSink",
    "InMemoryInteractionSink",
    # Collaborators
    "Cart",
    "InMemoryCart",
    "Identity",
    "StaticIdentity",
    "OrderStore",
    "InMemoryOrderStore",
    "JsonFileOrderStore",
    # Models
    "AlternativeLookupResult",
    "CartLine",
    "Notification",
    "NotificationType",
    "NudgeInteraction",
    "NudgeResponse",
    "NudgeType",
    "Order",
    "User",
    "cart_total",
    # Config
    "NudgePolicy",
    "Settings",
    "configure_logging",
    # Errors
    "NudgeGateError",
    "IdentityMissingError",
    "LookupUnavailableError",
    "OrderPersistError",
    "OrderStoreReadError",
    "InvalidQuantityError",
    "errmsg",
]
