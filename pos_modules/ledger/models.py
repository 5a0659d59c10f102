"""
Ledger Module Models (``pos_modules.ledger.models``).

Drafts entered on the transaction form and the checkout result.

A ``TransactionDraft`` with lines is a basket: each line is a stock item,
a menu item, or a plain service charge.  Lines are grouped by ledger
category and each group becomes one ledger entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from pos_engines.stock_ledger import (
    NEW_ITEM_REF,
    DeductionTarget,
    StockApplyResult,
    StockDeduction,
    StockDirection,
    StockOutcome,
)
from pos_kernel.domain.inventory import ItemType
from pos_kernel.domain.ledger import LedgerChannel, LedgerItem, LedgerType
from pos_kernel.domain.state import ShopState


class LineKind(str, Enum):
    INVENTORY = "inventory"
    MENU = "menu"
    SERVICE = "service"  # no stock effect


@dataclass(frozen=True)
class DraftLine:
    """
    One basket line.

    ``category`` is the ledger category the line is booked under;
    ``item_category`` is the inventory category used when the line creates
    a new row (``ref_id == "new-item"``).
    """

    kind: LineKind
    name: str
    quantity: Decimal
    unit_cost: Decimal
    ref_id: str | None = None
    category: str | None = None
    item_category: str | None = None
    unit: str | None = None
    direction: StockDirection | None = None
    item_type: ItemType | None = None
    min_level: Decimal | None = None
    lifespan_days: int | None = None
    salvage_price: Decimal | None = None
    expected_version: int | None = None

    @property
    def amount(self) -> Decimal:
        return self.unit_cost * self.quantity

    @property
    def is_stock(self) -> bool:
        return self.kind in (LineKind.INVENTORY, LineKind.MENU)

    @property
    def creates_item(self) -> bool:
        return self.kind == LineKind.INVENTORY and self.ref_id == NEW_ITEM_REF

    def to_deduction(self) -> StockDeduction:
        return StockDeduction(
            target=DeductionTarget.MENU if self.kind == LineKind.MENU else DeductionTarget.INVENTORY,
            ref_id=self.ref_id or "",
            quantity=self.quantity,
            direction=self.direction,
            unit_cost=self.unit_cost if self.kind == LineKind.INVENTORY else None,
            name=self.name,
            category=self.item_category,
            unit=self.unit,
            item_type=self.item_type,
            min_level=self.min_level,
            lifespan_days=self.lifespan_days,
            salvage_price=self.salvage_price,
            expected_version=self.expected_version,
        )


@dataclass(frozen=True)
class TransactionDraft:
    """
    A transaction as entered.  Without lines, ``amount`` is booked as a
    single entry.
    """

    date: date
    type: LedgerType
    title: str = ""
    category: str | None = None
    channel: LedgerChannel | None = None
    lines: tuple[DraftLine, ...] = ()
    amount: Decimal | None = None
    slip_image: str | None = None
    note: str | None = None
    transaction_id: str | None = None


@dataclass(frozen=True)
class CheckoutResult:
    state: ShopState
    entries: tuple[LedgerItem, ...] = ()
    stock: StockApplyResult | None = None

    @property
    def outcome(self) -> StockOutcome:
        if self.stock is None:
            return StockOutcome.APPLIED
        return self.stock.outcome

    @property
    def total(self) -> Decimal:
        return sum((e.amount for e in self.entries), Decimal("0"))
