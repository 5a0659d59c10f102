"""
Ledger -- income and expense book entries.

Every monetary event of the stall (sales, delivery payouts, purchases,
fixed costs, platform fees) is one LedgerItem.  Entries are append-only in
practice; the only supported change is a field edit that keeps the id.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class LedgerType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class IncomeCategory(str, Enum):
    SALES = "sales"
    DELIVERY = "delivery"
    OTHER = "other"


class ExpenseCategory(str, Enum):
    RAW_MATERIAL = "raw_material"
    PACKAGING = "packaging"
    EQUIPMENT = "equipment"
    ASSET = "asset"
    UTILITIES = "utilities"
    RENT = "rent"
    LABOR = "labor"
    GENERAL = "general"


CATEGORIES: dict[LedgerType, frozenset[str]] = {
    LedgerType.INCOME: frozenset(c.value for c in IncomeCategory),
    LedgerType.EXPENSE: frozenset(c.value for c in ExpenseCategory),
}


def is_valid_category(entry_type: LedgerType, category: str) -> bool:
    return category in CATEGORIES[entry_type]


class LedgerChannel(str, Enum):
    CASH = "cash"
    TRANSFER = "transfer"
    DELIVERY = "delivery"


@dataclass(frozen=True, slots=True)
class LedgerItem:
    """
    One book entry.

    ``transaction_id`` is the client-side idempotency key used to recognise
    the change-feed echo of an entry this client wrote itself.
    ``split_group`` is shared by every entry produced by one split-bill
    checkout.
    """

    id: str
    date: date
    type: LedgerType
    title: str
    amount: Decimal
    category: str
    channel: LedgerChannel | None = None
    slip_image: str | None = None
    note: str | None = None
    transaction_id: str | None = None
    split_group: str | None = None
    recorded_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"Ledger amount must be > 0: {self.id} = {self.amount}")

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type == LedgerType.INCOME else -self.amount

    @property
    def is_split(self) -> bool:
        return self.split_group is not None
