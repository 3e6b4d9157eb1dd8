"""Value objects shared by the nudge engine, the gate and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from .errors import errmsg
from .validation import require_non_negative, require_not_empty, require_quantity, to_decimal

PLACEHOLDER_IMAGE = "/images/products/placeholder.jpg"
DEFAULT_CATEGORY = "general"


class NudgeType(str, Enum):
    """Nudge variants, ordered by severity in SEVERITY."""

    GENTLE = "gentle"
    ALTERNATIVE = "alternative"
    BLOCK = "block"
    NONE = "none"

    @property
    def severity(self) -> int:
        return SEVERITY[self]


SEVERITY = {
    NudgeType.NONE: 0,
    NudgeType.GENTLE: 1,
    NudgeType.ALTERNATIVE: 2,
    NudgeType.BLOCK: 3,
}


class NotificationType(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class CartLine:
    slug: str
    title: str
    price: Decimal
    quantity: int = 1
    image: str = PLACEHOLDER_IMAGE
    category: str = DEFAULT_CATEGORY

    def __post_init__(self):
        require_not_empty(self.slug, errmsg.SLUG_REQUIRED)
        object.__setattr__(self, "price", to_decimal(self.price))
        require_non_negative(self.price, errmsg.PRICE_NON_NEGATIVE)
        require_quantity(self.quantity)

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    def with_quantity(self, quantity: int) -> CartLine:
        return CartLine(
            slug=self.slug,
            title=self.title,
            price=self.price,
            quantity=quantity,
            image=self.image,
            category=self.category,
        )

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "title": self.title,
            "price": str(self.price),
            "quantity": self.quantity,
            "image": self.image,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CartLine:
        return cls(
            slug=data["slug"],
            title=data.get("title", ""),
            price=to_decimal(data["price"]),
            quantity=int(data.get("quantity", 1)),
            image=data.get("image", PLACEHOLDER_IMAGE),
            category=data.get("category", DEFAULT_CATEGORY),
        )


def cart_total(lines: Sequence[CartLine]) -> Decimal:
    """Sum of price x quantity over the given lines."""
    return sum((line.subtotal for line in lines), Decimal("0"))


def item_count(lines: Sequence[CartLine]) -> int:
    return sum(line.quantity for line in lines)


@dataclass(frozen=True)
class NudgeResponse:
    """A nudge decision handed to the presentation layer.

    ``data`` uses the camelCase payload keys the nudge widgets expect.
    """

    type: NudgeType
    data: Optional[Mapping[str, Any]] = None

    @classmethod
    def none(cls) -> NudgeResponse:
        return cls(NudgeType.NONE)

    @property
    def is_none(self) -> bool:
        return self.type is NudgeType.NONE

    def get(self, key: str, default: Any = None) -> Any:
        if not self.data:
            return default
        return self.data.get(key, default)


@dataclass(frozen=True)
class AlternativeLookupResult:
    name: str
    price: Decimal
    slug: str
    image: str
    category: str
    is_already_cheapest: bool

    @classmethod
    def already_cheapest(cls, item: CartLine) -> AlternativeLookupResult:
        return cls(
            name=item.title,
            price=item.price,
            slug=item.slug,
            image=item.image,
            category=item.category,
            is_already_cheapest=True,
        )


@dataclass(frozen=True)
class User:
    email: str
    name: str = ""


@dataclass(frozen=True)
class Notification:
    type: NotificationType
    message: str

    @classmethod
    def success(cls, message: str) -> Notification:
        return cls(NotificationType.SUCCESS, message)

    @classmethod
    def warning(cls, message: str) -> Notification:
        return cls(NotificationType.WARNING, message)

    @classmethod
    def error(cls, message: str) -> Notification:
        return cls(NotificationType.ERROR, message)


@dataclass(frozen=True)
class Order:
    id: str
    items: tuple[CartLine, ...]
    total: Decimal
    timestamp: datetime
    user_email: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": [line.to_dict() for line in self.items],
            "total": str(self.total),
            "date": self.timestamp.isoformat(),
            "userEmail": self.user_email,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Order:
        return cls(
            id=str(data["id"]),
            items=tuple(CartLine.from_dict(item) for item in data.get("items", [])),
            total=to_decimal(data["total"]),
            timestamp=datetime.fromisoformat(data["date"]),
            user_email=data.get("userEmail", ""),
        )


@dataclass(frozen=True)
class NudgeInteraction:
    nudge_type: NudgeType
    accepted: bool
    recorded_at: Optional[datetime] = field(default=None, compare=False)
