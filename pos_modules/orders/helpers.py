"""
Order helpers -- pure functions behind the order lifecycle.

Queue numbering, shift timestamps, platform (GP) fees and the stock
deductions an order triggers in the kitchen.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from decimal import ROUND_CEILING, Decimal

from pos_engines.stock_ledger import DeductionTarget, StockDeduction, StockDirection
from pos_kernel.domain.ledger import IncomeCategory, LedgerChannel
from pos_kernel.domain.orders import Order, PaymentMethod

MAX_QUEUE_NUMBER = 99


def next_queue_number(orders: Iterable[Order], shift_date: date) -> int:
    """
    Next queue number for ``shift_date``: (last % 99) + 1.

    ``last`` is the highest queue number among that shift's orders, or 0.
    The sequence wraps from 99 back to 1.
    """
    prefix = shift_date.isoformat()
    last = max(
        (o.queue_number for o in orders if o.timestamp.startswith(prefix)),
        default=0,
    )
    return (last % MAX_QUEUE_NUMBER) + 1


def shift_timestamp(shift_date: date, now: datetime) -> str:
    """Shift date joined with the wall-clock time of day."""
    return f"{shift_date.isoformat()}T{now.strftime('%H:%M:%S')}"


def gp_deduction(
    total: Decimal, method: PaymentMethod, fee_percent: Decimal | None
) -> Decimal:
    """Platform commission on a delivery bill, rounded up to a whole unit."""
    if method != PaymentMethod.DELIVERY or not fee_percent:
        return Decimal("0")
    fee = total * fee_percent / Decimal("100")
    return fee.to_integral_value(rounding=ROUND_CEILING)


def ledger_channel_for(method: PaymentMethod) -> LedgerChannel:
    return LedgerChannel(method.value)


def income_category_for(method: PaymentMethod) -> IncomeCategory:
    if method == PaymentMethod.DELIVERY:
        return IncomeCategory.DELIVERY
    return IncomeCategory.SALES


def kitchen_reason(order: Order) -> str:
    return f"Kitchen: Order #{order.queue_number}"


def order_deductions(order: Order) -> tuple[StockDeduction, ...]:
    """
    Stock consumed by cooking an order.

    One menu deduction per line (expanded into ingredients by the stock
    ledger) and one explicit stock-out per topping linked to a stock row.
    """
    deductions: list[StockDeduction] = []
    for item in order.items:
        quantity = Decimal(item.quantity)
        deductions.append(
            StockDeduction(
                target=DeductionTarget.MENU,
                ref_id=item.menu_id,
                quantity=quantity,
                direction=StockDirection.OUT,
            )
        )
        for topping in item.toppings:
            if topping.ref_id:
                deductions.append(
                    StockDeduction(
                        target=DeductionTarget.INVENTORY,
                        ref_id=topping.ref_id,
                        quantity=quantity,
                        direction=StockDirection.OUT,
                    )
                )
    return tuple(deductions)
