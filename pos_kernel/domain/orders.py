"""
Orders -- order records and the order status state machine.

Responsibility:
    Immutable Order / OrderItem value objects and the transition table
    that decides which status changes are legal.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - net_total == total_price - gp_deduction.
    - OrderItem.quantity >= 1.
    - completed and cancelled accept no forward transitions; cancelled
      is reachable from every other status.

Failure modes:
    - ValueError on construction of an Order or OrderItem that breaks the
      invariants above.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class OrderStatus(str, Enum):
    """Lifecycle status of an order."""

    PENDING = "pending"
    COOKING = "cooking"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


_STATUS_RANK: dict[OrderStatus, int] = {
    OrderStatus.PENDING: 0,
    OrderStatus.COOKING: 1,
    OrderStatus.SERVED: 2,
    OrderStatus.COMPLETED: 3,
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """
    Whether an order may move from ``current`` to ``target``.

    Forward skips (pending -> completed) are allowed; backward moves are
    not.  Voiding is allowed from any status except cancelled itself.
    """
    if target == OrderStatus.CANCELLED:
        return current != OrderStatus.CANCELLED
    if current.is_terminal:
        return False
    return _STATUS_RANK[target] > _STATUS_RANK[current]


class PaymentMethod(str, Enum):
    CASH = "cash"
    TRANSFER = "transfer"
    DELIVERY = "delivery"


DINE_IN = "Dine-In"
TAKE_AWAY = "Take-Away"


@dataclass(frozen=True, slots=True)
class SelectedTopping:
    id: str
    name: str
    price: Decimal = Decimal("0")
    ref_id: str | None = None


@dataclass(frozen=True, slots=True)
class OrderItem:
    """
    One cart/order line.

    ``price`` is the unit price with topping surcharges already included.
    """

    id: str
    menu_id: str
    name: str
    price: Decimal
    quantity: int = 1
    modifiers: frozenset[str] = frozenset()
    toppings: tuple[SelectedTopping, ...] = ()
    note: str | None = None
    image: str | None = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"Order item quantity must be >= 1: {self.id}")

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @property
    def merge_key(self) -> tuple:
        """Lines with equal keys are the same dish and merge in the cart."""
        return (
            self.menu_id,
            (self.note or "").strip(),
            tuple(sorted(self.modifiers)),
            tuple(sorted(t.id for t in self.toppings)),
        )


@dataclass(frozen=True, slots=True)
class Order:
    """
    A committed order.

    ``timestamp`` is ``YYYY-MM-DDTHH:MM:SS`` in local shop time; its date
    component is the shift date, which may differ from the wall-clock
    date for shifts that run past midnight.
    """

    id: str
    queue_number: int
    timestamp: str
    status: OrderStatus
    items: tuple[OrderItem, ...]
    total_price: Decimal
    net_total: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    channel: str = TAKE_AWAY
    gp_deduction: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if not 1 <= self.queue_number <= 99:
            raise ValueError(f"Queue number out of range: {self.queue_number}")
        if self.net_total != self.total_price - self.gp_deduction:
            raise ValueError(
                f"Order {self.id}: net_total {self.net_total} != "
                f"total {self.total_price} - gp {self.gp_deduction}"
            )

    @property
    def shift_date(self) -> date:
        return date.fromisoformat(self.timestamp[:10])

    @property
    def hour(self) -> int:
        return int(self.timestamp[11:13])

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED


def items_total(items: tuple[OrderItem, ...] | list[OrderItem]) -> Decimal:
    return sum((item.line_total for item in items), Decimal("0"))
