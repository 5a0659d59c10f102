"""
Order Module Models (``pos_modules.orders.models``).

Request/result value objects exchanged between the order lifecycle
manager and its caller.  The order records themselves live in
``pos_kernel.domain.orders``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from pos_engines.stock_ledger import StockApplyResult, StockOutcome
from pos_kernel.domain.ledger import LedgerItem
from pos_kernel.domain.orders import DINE_IN, TAKE_AWAY, Order, PaymentMethod
from pos_kernel.domain.state import ShopState


@dataclass(frozen=True)
class PaymentDetails:
    """
    How a bill is paid.

    ``channel`` names the delivery platform for delivery payments.
    ``fee_percent`` is the platform commission; when None the configured
    fee for the channel is used.
    """

    method: PaymentMethod = PaymentMethod.CASH
    channel: str | None = None
    fee_percent: Decimal | None = None
    dine_in: bool = False

    @property
    def is_delivery(self) -> bool:
        return self.method == PaymentMethod.DELIVERY

    def channel_label(self) -> str:
        if self.is_delivery:
            return self.channel or "Delivery"
        return DINE_IN if self.dine_in else TAKE_AWAY


@dataclass(frozen=True)
class FulfillmentRequest:
    """Handed to the ``send_to_fulfillment`` capability."""

    order: Order
    stock: StockApplyResult


@dataclass(frozen=True)
class PaymentRequest:
    """
    Handed to the ``collect_payment`` capability.

    ``is_new`` is True for instant pay, where the order has not been
    stored before; ``stock`` is only set in that case.
    """

    order: Order
    entries: tuple[LedgerItem, ...]
    is_new: bool = False
    stock: StockApplyResult | None = None


@dataclass(frozen=True)
class TransitionResult:
    state: ShopState
    order: Order
    entries: tuple[LedgerItem, ...] = ()
    stock: StockApplyResult | None = None
    changed: bool = True

    @property
    def stock_outcome(self) -> StockOutcome | None:
        return self.stock.outcome if self.stock is not None else None
