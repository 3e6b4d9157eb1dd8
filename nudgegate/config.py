"""Nudge policy thresholds and runtime settings.

Environment variables:
    NUDGE_BLOCK_TOTAL: cart total above which a block nudge fires (default 500)
    NUDGE_ALTERNATIVE_TOTAL: cart total above which an alternative nudge fires (default 200)
    NUDGE_GENTLE_TOTAL: cart total above which a gentle nudge fires (default 50)
    NUDGE_GENTLE_ITEMS: item count above which a gentle nudge fires (default 5)
    NUDGE_BLOCK_SECONDS: block nudge cooldown in seconds (default 15)
    NUDGEGATE_ORDERS_PATH: order store file (default ~/.nudgegate/orders.json)
    LOG_LEVEL: structlog filtering level (default info)

Any threshold set to "off" is disabled.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Mapping, Optional

from .errors import errmsg
from .validation import require_positive

DISABLED = "off"


def _env_decimal(env: Mapping[str, str], name: str, default: Optional[Decimal]) -> Optional[Decimal]:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    if raw.lower() == DISABLED:
        return None
    return Decimal(raw)


def _env_int(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    if raw.lower() == DISABLED:
        return None
    return int(raw)


@dataclass(frozen=True)
class NudgePolicy:
    """Thresholds driving automatic nudges.

    A threshold of None disables that condition. Conditions are strict
    (greater than), so a cart exactly at a threshold does not trigger it.
    """

    block_total_threshold: Optional[Decimal] = Decimal("500")
    alternative_total_threshold: Optional[Decimal] = Decimal("200")
    gentle_total_threshold: Optional[Decimal] = Decimal("50")
    gentle_item_threshold: Optional[int] = 5
    block_duration_seconds: int = 15

    def __post_init__(self):
        require_positive(self.block_duration_seconds, errmsg.DURATION_POSITIVE)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "NudgePolicy":
        env = os.environ if env is None else env
        defaults = cls()
        block_seconds = _env_int(env, "NUDGE_BLOCK_SECONDS", defaults.block_duration_seconds)
        return cls(
            block_total_threshold=_env_decimal(env, "NUDGE_BLOCK_TOTAL", defaults.block_total_threshold),
            alternative_total_threshold=_env_decimal(
                env, "NUDGE_ALTERNATIVE_TOTAL", defaults.alternative_total_threshold
            ),
            gentle_total_threshold=_env_decimal(env, "NUDGE_GENTLE_TOTAL", defaults.gentle_total_threshold),
            gentle_item_threshold=_env_int(env, "NUDGE_GENTLE_ITEMS", defaults.gentle_item_threshold),
            block_duration_seconds=(
                defaults.block_duration_seconds if block_seconds is None else block_seconds
            ),
        )


def _default_orders_path() -> Path:
    return Path.home() / ".nudgegate" / "orders.json"


@dataclass(frozen=True)
class Settings:
    policy: NudgePolicy = field(default_factory=NudgePolicy)
    order_store_path: Path = field(default_factory=_default_orders_path)
    log_level: str = "info"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        orders_path = env.get("NUDGEGATE_ORDERS_PATH")
        return cls(
            policy=NudgePolicy.from_env(env),
            order_store_path=Path(orders_path).expanduser() if orders_path else _default_orders_path(),
            log_level=env.get("LOG_LEVEL", "info").lower(),
        )
