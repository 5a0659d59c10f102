"""
Order Lifecycle Manager (``pos_modules.orders.service``).

Responsibility
--------------
Drives an order from cart to payment: builds the order from the cart,
sends it to the kitchen (deducting stock), settles the bill (writing
income and platform-fee ledger entries), and voids it.

Architecture
------------
Layer: **Modules** -- orchestration.  Composes the pure
``StockLedgerEngine`` with caller-granted ``Capabilities``.  Every
operation returns a ``TransitionResult`` carrying the next ``ShopState``;
the input state is never modified.

Invariants
----------
- Capabilities are checked before any computation.
- Queue number = (highest queue number of the shift % 99) + 1.
- net_total = total - gp_deduction, gp = ceil(total * fee% / 100) for
  delivery payments only.
- Settling an order emits exactly one income entry, plus one expense entry
  for the platform fee when it is positive.
- Voiding never restores stock.

Failure Modes
-------------
- ``EmptyCartError``, ``OrderAlreadyExistsError``, ``OrderNotFoundError``,
  ``InvalidOrderTransitionError``, ``MissingCapabilityError``.
- ``StaleInventoryVersionError`` propagated from the stock ledger.

Usage::

    manager = OrderLifecycleManager(capabilities, config, clock)
    order = manager.create_order(state.orders, cart.lines, shift_date)
    result = manager.send_to_fulfillment(state, order)
    result = manager.collect_payment(result.state, order, PaymentDetails())
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pos_config.schema import ShopConfig
from pos_engines.stock_ledger import StockIntent, StockLedgerEngine
from pos_kernel.domain.clock import Clock, SystemClock
from pos_kernel.domain.ledger import ExpenseCategory, LedgerChannel, LedgerItem, LedgerType
from pos_kernel.domain.orders import (
    DINE_IN,
    Order,
    OrderItem,
    OrderStatus,
    can_transition,
    items_total,
)
from pos_kernel.domain.state import ShopState
from pos_kernel.exceptions import (
    EmptyCartError,
    InvalidOrderTransitionError,
    OrderAlreadyExistsError,
    OrderNotFoundError,
)
from pos_kernel.logging_config import LogContext, get_logger
from pos_modules.capabilities import Capabilities
from pos_modules.orders.helpers import (
    gp_deduction,
    income_category_for,
    kitchen_reason,
    ledger_channel_for,
    next_queue_number,
    order_deductions,
    shift_timestamp,
)
from pos_modules.orders.models import (
    FulfillmentRequest,
    PaymentDetails,
    PaymentRequest,
    TransitionResult,
)

logger = get_logger("modules.orders.service")


class OrderLifecycleManager:
    """
    Order state machine over an immutable ShopState.

    Contract:
        Receives Capabilities, ShopConfig and Clock via constructor
        injection.  Never writes to storage except through capabilities.
    """

    def __init__(
        self,
        capabilities: Capabilities,
        config: ShopConfig | None = None,
        clock: Clock | None = None,
        stock_engine: StockLedgerEngine | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self._caps = capabilities
        self._config = config or ShopConfig()
        self._clock = clock or SystemClock()
        self._stock = stock_engine or StockLedgerEngine()
        self._new_id = id_factory or (lambda: str(uuid4()))

    # =========================================================================
    # Creation
    # =========================================================================

    def create_order(
        self,
        orders: Iterable[Order],
        lines: Iterable[OrderItem],
        shift_date: date,
        *,
        status: OrderStatus = OrderStatus.PENDING,
        payment: PaymentDetails | None = None,
        order_id: str | None = None,
    ) -> Order:
        """
        Build an order snapshot from cart lines.

        Raises:
            EmptyCartError: no lines.
        """
        items = tuple(lines)
        if not items:
            raise EmptyCartError()

        payment = payment or PaymentDetails()
        total = items_total(items)
        gp = gp_deduction(total, payment.method, self._fee_percent(payment))
        order = Order(
            id=order_id or self._new_id(),
            queue_number=next_queue_number(orders, shift_date),
            timestamp=shift_timestamp(shift_date, self._clock.now()),
            status=status,
            items=items,
            total_price=total,
            net_total=total - gp,
            payment_method=payment.method,
            channel=payment.channel_label(),
            gp_deduction=gp,
        )
        logger.info(
            "order_created",
            extra={
                "order_id": order.id,
                "queue_number": order.queue_number,
                "shift_date": shift_date.isoformat(),
                "total": str(total),
                "line_count": len(items),
            },
        )
        return order

    # =========================================================================
    # Kitchen
    # =========================================================================

    def send_to_fulfillment(self, state: ShopState, order: Order) -> TransitionResult:
        """
        Send a new order to the kitchen and deduct its ingredients.

        Postconditions:
            Order stored with status cooking; inventory reduced by the
            recipe quantities of every line and linked topping.
        """
        self._caps.require("send_to_fulfillment", operation="send_to_fulfillment")
        if state.find_order(order.id) is not None:
            raise OrderAlreadyExistsError(order.id)

        with LogContext.bind(order_id=order.id, shift_date=order.timestamp[:10]):
            cooking = replace(order, status=OrderStatus.COOKING)
            stock = self._deduct_for(state, cooking)
            self._caps.send_to_fulfillment(FulfillmentRequest(order=cooking, stock=stock))

            next_state = state.with_inventory(stock.snapshot).with_order(cooking)
            logger.info(
                "order_sent_to_fulfillment",
                extra={
                    "queue_number": cooking.queue_number,
                    "stock_outcome": stock.outcome.value,
                    "skipped": list(stock.skipped),
                },
            )
            return TransitionResult(state=next_state, order=cooking, stock=stock)

    def advance_status(
        self, state: ShopState, order_id: str, status: OrderStatus
    ) -> TransitionResult:
        """Move a kitchen order forward (e.g. cooking -> served)."""
        self._caps.require("update_order_status", operation="advance_status")
        order = self._get(state, order_id)
        if not can_transition(order.status, status):
            raise InvalidOrderTransitionError(order_id, order.status.value, status.value)

        updated = replace(order, status=status)
        self._caps.update_order_status(order_id, status)
        logger.info(
            "order_status_changed",
            extra={
                "order_id": order_id,
                "from_status": order.status.value,
                "to_status": status.value,
            },
        )
        return TransitionResult(state=state.with_order(updated), order=updated)

    # =========================================================================
    # Payment
    # =========================================================================

    def collect_payment(
        self,
        state: ShopState,
        order: Order,
        payment: PaymentDetails | None = None,
    ) -> TransitionResult:
        """
        Settle a bill.

        An order already in ``state`` is settled in place with the lines of
        ``order`` (no stock movement; the kitchen already deducted it).  An
        order not yet in ``state`` is instant pay: it is stored directly as
        completed and its stock is deducted in the same request.

        Raises:
            InvalidOrderTransitionError: the stored order is completed or
                cancelled.
        """
        self._caps.require("collect_payment", operation="collect_payment")
        payment = payment or PaymentDetails(
            method=order.payment_method,
            channel=order.channel,
            dine_in=order.channel == DINE_IN,
        )
        stored = state.find_order(order.id)
        if stored is not None and stored.status.is_terminal:
            raise InvalidOrderTransitionError(
                order.id, stored.status.value, OrderStatus.COMPLETED.value
            )

        # A stored bill keeps its identity; lines and totals come from the
        # bill being settled, which may have grown since the kitchen saw it.
        base = order if stored is None else replace(stored, items=order.items)
        with LogContext.bind(order_id=base.id, shift_date=base.timestamp[:10]):
            total = items_total(base.items)
            gp = gp_deduction(total, payment.method, self._fee_percent(payment))
            completed = replace(
                base,
                status=OrderStatus.COMPLETED,
                total_price=total,
                net_total=total - gp,
                payment_method=payment.method,
                channel=payment.channel_label(),
                gp_deduction=gp,
            )
            entries = self._payment_entries(completed)

            stock = None
            next_state = state
            if stored is None:
                stock = self._deduct_for(state, completed)
                next_state = next_state.with_inventory(stock.snapshot)

            self._caps.collect_payment(
                PaymentRequest(
                    order=completed,
                    entries=entries,
                    is_new=stored is None,
                    stock=stock,
                )
            )
            next_state = next_state.with_order(completed).with_entries(entries)
            logger.info(
                "order_payment_collected",
                extra={
                    "instant_pay": stored is None,
                    "payment_method": payment.method.value,
                    "total": str(total),
                    "gp_deduction": str(gp),
                    "entry_count": len(entries),
                },
            )
            return TransitionResult(
                state=next_state, order=completed, entries=entries, stock=stock
            )

    # =========================================================================
    # Void
    # =========================================================================

    def void_order(self, state: ShopState, order_id: str) -> TransitionResult:
        """
        Cancel an order from any status.  Stock is not restored.

        Voiding an already-cancelled order is a no-op.
        """
        self._caps.require("update_order_status", operation="void_order")
        order = self._get(state, order_id)
        if order.status == OrderStatus.CANCELLED:
            return TransitionResult(state=state, order=order, changed=False)

        cancelled = replace(order, status=OrderStatus.CANCELLED)
        self._caps.update_order_status(order_id, OrderStatus.CANCELLED)
        logger.warning(
            "order_voided",
            extra={
                "order_id": order_id,
                "from_status": order.status.value,
                "total": str(order.total_price),
            },
        )
        return TransitionResult(state=state.with_order(cancelled), order=cancelled)

    # =========================================================================
    # Internals
    # =========================================================================

    def _get(self, state: ShopState, order_id: str) -> Order:
        order = state.find_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def _fee_percent(self, payment: PaymentDetails) -> Decimal | None:
        if payment.fee_percent is not None:
            return payment.fee_percent
        if payment.is_delivery and payment.channel:
            return self._config.fee_for(payment.channel)
        return None

    def _deduct_for(self, state: ShopState, order: Order):
        return self._stock.apply_deductions(
            state.inventory,
            order_deductions(order),
            intent=StockIntent.SALE,
            menu=state.menu_by_id(),
            effective_date=order.shift_date,
            stamped_at=self._clock.now(),
            reason=kitchen_reason(order),
            ref_id=order.id,
        )

    def _payment_entries(self, order: Order) -> tuple[LedgerItem, ...]:
        recorded_at = self._clock.now()
        entries: list[LedgerItem] = []
        if order.total_price > 0:
            entries.append(
                LedgerItem(
                    id=self._new_id(),
                    date=order.shift_date,
                    type=LedgerType.INCOME,
                    title=f"Order #{order.queue_number} ({order.payment_method.value})",
                    amount=order.total_price,
                    category=income_category_for(order.payment_method).value,
                    channel=ledger_channel_for(order.payment_method),
                    note=f"Queue: {order.queue_number}",
                    transaction_id=f"{order.id}:income",
                    recorded_at=recorded_at,
                )
            )
        if order.gp_deduction > 0:
            entries.append(
                LedgerItem(
                    id=self._new_id(),
                    date=order.shift_date,
                    type=LedgerType.EXPENSE,
                    title=f"GP fee ({order.channel}) - Order #{order.queue_number}",
                    amount=order.gp_deduction,
                    category=ExpenseCategory.GENERAL.value,
                    channel=LedgerChannel.DELIVERY,
                    note=f"Queue: {order.queue_number}",
                    transaction_id=f"{order.id}:gp-fee",
                    recorded_at=recorded_at,
                )
            )
        return tuple(entries)
