"""Checkout gate: the state machine between "Buy Now" and a recorded order.

One gate serves one shopper. It runs a single checkout attempt at a time:

    Idle -> AwaitingIdentity -> AwaitingNudgeDecision -> NudgeOpen | Blocked
         -> Committing -> Committed

Every host-facing call returns a GateResult instead of firing callbacks, so
the presentation layer renders whatever the result carries (a nudge to show,
a notification toast, the placed order) and the machine can be driven
synchronously in tests. Faults are converted into notifications at this
boundary; nothing is raised to the host except misuse (an unknown outcome).
"""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

import structlog

from .cart import Cart
from .engine import DEFAULT_BLOCK_SECONDS, NudgeDecisionEngine
from .errors import IdentityMissingError, OrderPersistError, errmsg
from .identity import Identity
from .models import CartLine, Notification, NudgeResponse, NudgeType, Order, User, cart_total
from .orders import OrderStore
from .recorder import NudgeInteractionRecorder

logger = structlog.get_logger()


class GateState(Enum):
    IDLE = "idle"
    AWAITING_IDENTITY = "awaiting_identity"
    AWAITING_NUDGE_DECISION = "awaiting_nudge_decision"
    NUDGE_OPEN = "nudge_open"
    BLOCKED = "blocked"
    COMMITTING = "committing"
    COMMITTED = "committed"


# States in which a new checkout request or manual nudge is ignored.
BUSY_STATES = (
    GateState.AWAITING_NUDGE_DECISION,
    GateState.NUDGE_OPEN,
    GateState.BLOCKED,
    GateState.COMMITTING,
)

# States reset to Idle when the cart empties underneath them.
PRE_COMMIT_STATES = (
    GateState.AWAITING_IDENTITY,
    GateState.AWAITING_NUDGE_DECISION,
    GateState.NUDGE_OPEN,
    GateState.BLOCKED,
)


class NudgeOutcome(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


@dataclass(frozen=True)
class GateResult:
    """What the presentation layer should render after a gate call."""

    state: GateState
    nudge: Optional[NudgeResponse] = None
    notification: Optional[Notification] = None
    order: Optional[Order] = None

    @property
    def committed(self) -> bool:
        return self.order is not None


@dataclass
class CheckoutAttempt:
    """Per-attempt flags, discarded on commit or abandonment."""

    attempt_id: str
    nudge: Optional[NudgeResponse] = None
    can_proceed_with_checkout: bool = False
    block_remaining: int = 0


class CheckoutGate:
    def __init__(
        self,
        cart: Cart,
        identity: Identity,
        engine: NudgeDecisionEngine,
        recorder: NudgeInteractionRecorder,
        order_store: OrderStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._cart = cart
        self._identity = identity
        self._engine = engine
        self._recorder = recorder
        self._orders = order_store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = asyncio.Lock()
        self._state = GateState.IDLE
        self._attempt: Optional[CheckoutAttempt] = None
        self.notifications: list[Notification] = []

    # ------------------------------------------------------------------
    # Read access for UI binding
    # ------------------------------------------------------------------

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def current_nudge(self) -> Optional[NudgeResponse]:
        return self._attempt.nudge if self._attempt else None

    @property
    def can_proceed_with_checkout(self) -> bool:
        return bool(self._attempt and self._attempt.can_proceed_with_checkout)

    @property
    def block_remaining(self) -> int:
        if self._state is not GateState.BLOCKED or self._attempt is None:
            return 0
        return self._attempt.block_remaining

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    async def request_checkout(self) -> GateResult:
        """Start (or resume) a checkout attempt."""
        if self._lock.locked() or self._state in BUSY_STATES:
            logger.info("checkout_request_ignored", state=self._state.value)
            return self._result()

        async with self._lock:
            if self._state is GateState.COMMITTED:
                self._state = GateState.IDLE
            if self._cart.is_empty():
                logger.info("checkout_request_empty_cart")
                self._end_attempt()
                return self._result()

            attempt = self._attempt or self._start_attempt()
            self._transition(GateState.AWAITING_IDENTITY)
            try:
                user = self._require_user()
            except IdentityMissingError as e:
                self._end_attempt()
                return self._result(notification=self._notify(Notification.warning(e.message)))

            if attempt.can_proceed_with_checkout:
                return self._commit(user)

            self._transition(GateState.AWAITING_NUDGE_DECISION)
            lines = self._cart.items()
            decision = self._engine.evaluate(lines, cart_total(lines))
            if decision.is_none:
                return self._commit(user)

            if decision.type is NudgeType.ALTERNATIVE:
                decision = await self._engine.build_alternative_nudge(
                    self._nudged_line(lines, decision)
                )
                if self._lookup_outdated(attempt) or self.sync_with_cart():
                    return self._result()

            return self._open_nudge(decision)

    def resolve_nudge(self, outcome) -> GateResult:
        """Apply the shopper's answer to the open nudge.

        Rejecting a gentle or block nudge means "proceed anyway" and commits;
        rejecting an alternative only closes it. Accepting gentle abandons the
        attempt, accepting an alternative rewrites the cart and ends it.
        """
        outcome = NudgeOutcome(outcome)
        if self.sync_with_cart():
            return self._result()

        nudge = self.current_nudge
        if nudge is None or self._state not in (GateState.NUDGE_OPEN, GateState.BLOCKED):
            logger.info("nudge_resolution_ignored", state=self._state.value, outcome=outcome.value)
            return self._result()

        if nudge.type is NudgeType.BLOCK and outcome is NudgeOutcome.ACCEPT:
            # Only the countdown finishing (complete_block) accepts a block.
            logger.info("block_accept_ignored", remaining=self.block_remaining)
            return self._result()

        accepted = outcome is NudgeOutcome.ACCEPT
        self._recorder.record(nudge.type, accepted)
        logger.info("nudge_resolved", nudge_type=nudge.type.value, outcome=outcome.value)

        if not accepted and nudge.type in (NudgeType.GENTLE, NudgeType.BLOCK):
            return self._proceed_anyway()

        if accepted and nudge.type is NudgeType.ALTERNATIVE:
            change = self._engine.accept_alternative(self._cart, nudge)
            self._end_attempt()
            if change.message:
                return self._result(notification=self._notify(Notification.success(change.message)))
            return self._result()

        self._end_attempt()
        return self._result()

    def complete_block(self) -> GateResult:
        """Called by the block nudge when its countdown has run out."""
        if self.sync_with_cart():
            return self._result()
        nudge = self.current_nudge
        if self._state is not GateState.BLOCKED or nudge is None or nudge.type is not NudgeType.BLOCK:
            logger.info("block_completion_ignored", state=self._state.value)
            return self._result()

        self._recorder.record(NudgeType.BLOCK, True)
        return self._proceed_anyway()

    def tick(self, seconds: int = 1) -> int:
        """Advance the visible block countdown; returns the seconds left."""
        if self._state is GateState.BLOCKED and self._attempt is not None:
            self._attempt.block_remaining = max(0, self._attempt.block_remaining - seconds)
        return self.block_remaining

    def abandon(self) -> GateResult:
        """Close an open nudge without answering it, or leave the page."""
        if self._state in (GateState.NUDGE_OPEN, GateState.BLOCKED):
            logger.info("checkout_abandoned", nudge_type=self.current_nudge.type.value)
            self._end_attempt()
        return self._result()

    def sync_with_cart(self) -> bool:
        """Reset to Idle if the cart emptied before commit. Returns True on reset."""
        if self._state in PRE_COMMIT_STATES and self._cart.is_empty():
            logger.info("checkout_reset_empty_cart", state=self._state.value)
            self._end_attempt()
            return True
        return False

    # ------------------------------------------------------------------
    # Shopper-triggered nudges
    # ------------------------------------------------------------------

    def trigger_gentle_nudge(self) -> GateResult:
        refused = self._refuse_manual_nudge()
        if refused is not None:
            return refused
        self._attempt = self._attempt or self._start_attempt()
        return self._open_nudge(self._engine.build_gentle_nudge(self._cart.items()))

    async def trigger_alternative_nudge(self) -> GateResult:
        refused = self._refuse_manual_nudge()
        if refused is not None:
            return refused
        async with self._lock:
            attempt = self._attempt or self._start_attempt()
            self._transition(GateState.AWAITING_NUDGE_DECISION)
            decision = await self._engine.build_alternative_nudge(self._cart.items()[0])
            if self._lookup_outdated(attempt) or self.sync_with_cart():
                return self._result()
            return self._open_nudge(decision)

    def trigger_block_nudge(self, duration_seconds: int = DEFAULT_BLOCK_SECONDS) -> GateResult:
        refused = self._refuse_manual_nudge()
        if refused is not None:
            return refused
        nudge = self._engine.build_block_nudge(duration_seconds)
        self._attempt = self._attempt or self._start_attempt()
        return self._open_nudge(nudge)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _refuse_manual_nudge(self) -> Optional[GateResult]:
        if self._lock.locked() or self._state in BUSY_STATES:
            logger.info("manual_nudge_ignored", state=self._state.value)
            return self._result()
        if self._identity.current_user() is None:
            return self._result(notification=self._notify(Notification.warning(errmsg.LOGIN_TO_NUDGE)))
        if self._cart.is_empty():
            logger.info("manual_nudge_ignored", reason="empty_cart")
            return self._result()
        if self._state is GateState.COMMITTED:
            self._state = GateState.IDLE
        return None

    def _lookup_outdated(self, attempt: CheckoutAttempt) -> bool:
        # The host may have reset the gate while the lookup was suspended.
        if self._attempt is attempt and self._state is GateState.AWAITING_NUDGE_DECISION:
            return False
        logger.info("alternative_lookup_discarded", state=self._state.value)
        return True

    def _require_user(self) -> User:
        user = self._identity.current_user()
        if user is None:
            logger.warning("checkout_identity_missing")
            raise IdentityMissingError()
        return user

    def _nudged_line(self, lines: tuple[CartLine, ...], decision: NudgeResponse) -> CartLine:
        slug = decision.get("currentSlug")
        return next((line for line in lines if line.slug == slug), lines[0])

    def _open_nudge(self, nudge: NudgeResponse) -> GateResult:
        self._attempt.nudge = nudge
        if nudge.type is NudgeType.BLOCK:
            self._attempt.block_remaining = nudge.get("duration", DEFAULT_BLOCK_SECONDS)
            self._transition(GateState.BLOCKED)
        else:
            self._transition(GateState.NUDGE_OPEN)
        logger.info("nudge_opened", attempt_id=self._attempt.attempt_id, nudge_type=nudge.type.value)
        return self._result()

    def _proceed_anyway(self) -> GateResult:
        self._attempt.nudge = None
        self._attempt.block_remaining = 0
        self._attempt.can_proceed_with_checkout = True
        try:
            user = self._require_user()
        except IdentityMissingError as e:
            self._transition(GateState.IDLE)
            return self._result(notification=self._notify(Notification.warning(e.message)))
        return self._commit(user)

    def _commit(self, user: User) -> GateResult:
        if self._cart.is_empty():
            self._end_attempt()
            return self._result()

        self._transition(GateState.COMMITTING)
        lines = self._cart.items()
        now = self._clock()
        order = Order(
            id=str(int(now.timestamp() * 1000)),
            items=lines,
            total=cart_total(lines),
            timestamp=now,
            user_email=user.email,
        )

        try:
            self._orders.append_order(order)
        except OrderPersistError as e:
            return self._persist_failed(order, e)
        except Exception as e:
            return self._persist_failed(order, OrderPersistError(order.id, e))

        self._cart.clear_cart()
        self._attempt = None
        self._transition(GateState.COMMITTED)
        logger.info(
            "checkout_committed",
            order_id=order.id,
            total=str(order.total),
            lines=len(order.items),
            user_email=order.user_email,
        )
        return self._result(
            notification=self._notify(Notification.success(errmsg.ORDER_PLACED)),
            order=order,
        )

    def _persist_failed(self, order: Order, error: OrderPersistError) -> GateResult:
        # The attempt keeps its bypass so a retry commits without re-nudging.
        logger.error("order_persist_failed", order_id=order.id, error=str(error))
        self._transition(GateState.IDLE)
        return self._result(notification=self._notify(Notification.error(errmsg.ORDER_NOT_PLACED)))

    def _start_attempt(self) -> CheckoutAttempt:
        self._attempt = CheckoutAttempt(attempt_id=uuid.uuid4().hex)
        logger.debug("checkout_attempt_started", attempt_id=self._attempt.attempt_id)
        return self._attempt

    def _end_attempt(self) -> None:
        self._attempt = None
        self._transition(GateState.IDLE)

    def _transition(self, state: GateState) -> None:
        if state is not self._state:
            logger.debug("gate_transition", from_state=self._state.value, to_state=state.value)
        self._state = state

    def _notify(self, notification: Notification) -> Notification:
        self.notifications.append(notification)
        logger.info("notification", type=notification.type.value, message=notification.message)
        return notification

    def _result(
        self,
        notification: Optional[Notification] = None,
        order: Optional[Order] = None,
    ) -> GateResult:
        return GateResult(
            state=self._state,
            nudge=self.current_nudge,
            notification=notification,
            order=order,
        )
