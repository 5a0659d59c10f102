"""
Ledger Module Service (``pos_modules.ledger.service``).

Responsibility
--------------
Books transactions entered by hand or folded from scanned receipts:

1. ``submit_transaction`` -- splits a basket by ledger category into one
   entry per category and applies its stock lines once through
   ``StockLedgerEngine``.
2. ``edit_entry`` -- replaces the fields of a single, non-split entry.
3. ``log_daily_fixed_costs`` -- books the day's rent, labor, utilities and
   depreciation lines from ``CostAllocationEngine``, at most once per day.

Invariants
----------
- Capabilities are checked first, then every field is validated, and only
  then is anything computed or written.
- The entries of one split checkout sum to the basket total and share a
  ``split_group``.
- Stock deductions of a checkout are applied exactly once, however many
  entries it produces.
- An entry belonging to a split group is never edited.

Failure Modes
-------------
- ``MissingFieldError``, ``InvalidAmountError``, ``InvalidQuantityError``,
  ``InvalidCategoryError`` on a bad draft.
- ``SplitBillEditError`` when editing a split entry.
- ``LedgerEntryNotFoundError`` when editing an unknown entry.
- ``MissingCapabilityError`` when a needed capability is absent.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pos_engines.cost_allocation import CostAllocationEngine, has_logged_fixed_costs
from pos_engines.stock_ledger import StockApplyResult, StockIntent, StockLedgerEngine
from pos_kernel.domain.clock import Clock, SystemClock
from pos_kernel.domain.ledger import (
    ExpenseCategory,
    LedgerItem,
    LedgerType,
    is_valid_category,
)
from pos_kernel.domain.settings import FixedCosts
from pos_kernel.domain.state import ShopState
from pos_kernel.exceptions import (
    InvalidAmountError,
    InvalidCategoryError,
    InvalidQuantityError,
    LedgerEntryNotFoundError,
    MissingFieldError,
    SplitBillEditError,
)
from pos_kernel.logging_config import LogContext, get_logger
from pos_modules.capabilities import Capabilities
from pos_modules.ledger.models import CheckoutResult, DraftLine, LineKind, TransactionDraft

logger = get_logger("modules.ledger.service")

TITLE_NAMES_LIMIT = 30
DEFAULT_CATEGORY = ExpenseCategory.GENERAL.value


def names_title(lines: tuple[DraftLine, ...] | list[DraftLine]) -> str:
    """Line names joined for a title, cut at 30 characters."""
    joined = ", ".join(line.name.strip() for line in lines if line.name.strip())
    if len(joined) > TITLE_NAMES_LIMIT:
        return joined[:TITLE_NAMES_LIMIT] + "..."
    return joined


def group_lines(draft: TransactionDraft) -> dict[str, list[DraftLine]]:
    """Lines keyed by ledger category, in order of first appearance."""
    groups: dict[str, list[DraftLine]] = {}
    for line in draft.lines:
        key = line.category or draft.category or DEFAULT_CATEGORY
        groups.setdefault(key, []).append(line)
    return groups


def group_title(draft: TransactionDraft, category: str, lines: list[DraftLine], split: bool) -> str:
    fallback = "Income" if draft.type == LedgerType.INCOME else "Expense"
    if split:
        base = draft.title.strip() or names_title(lines) or fallback
        return f"{base} ({category})"
    return draft.title.strip() or names_title(lines) or fallback


class LedgerService:
    def __init__(
        self,
        capabilities: Capabilities,
        clock: Clock | None = None,
        stock_engine: StockLedgerEngine | None = None,
        cost_engine: CostAllocationEngine | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self._caps = capabilities
        self._clock = clock or SystemClock()
        self._new_id = id_factory or (lambda: str(uuid4()))
        self._stock = stock_engine or StockLedgerEngine(id_factory=self._new_id)
        self._costs = cost_engine or CostAllocationEngine()

    # =========================================================================
    # Submit
    # =========================================================================

    def submit_transaction(self, state: ShopState, draft: TransactionDraft) -> CheckoutResult:
        """
        Book a transaction, splitting it by category when needed.

        Postconditions:
            Sum of returned entry amounts equals the basket total (or
            ``draft.amount`` when the draft has no lines).
        """
        stock_lines = [line for line in draft.lines if line.is_stock]
        required = ["add_ledger_entry"]
        if any(line.creates_item for line in stock_lines):
            required.append("add_inventory_item")
        if any(not line.creates_item for line in stock_lines):
            required.append("update_inventory_batch")
        self._caps.require(*required, operation="submit_transaction")

        self._validate(draft)

        tx = draft.transaction_id or self._new_id()
        with LogContext.bind(transaction_id=tx):
            recorded_at = self._clock.now()
            entries: list[LedgerItem] = []
            if draft.lines:
                groups = group_lines(draft)
                split = len(groups) > 1
                for category, lines in groups.items():
                    entries.append(
                        self._entry(
                            draft,
                            title=group_title(draft, category, lines, split),
                            amount=sum((line.amount for line in lines), Decimal("0")),
                            category=category,
                            transaction_id=f"{tx}:{category}" if split else tx,
                            split_group=tx if split else None,
                            recorded_at=recorded_at,
                        )
                    )
            else:
                entries.append(
                    self._entry(
                        draft,
                        title=draft.title.strip(),
                        amount=draft.amount,
                        category=draft.category,
                        transaction_id=tx,
                        split_group=None,
                        recorded_at=recorded_at,
                    )
                )

            stock: StockApplyResult | None = None
            next_state = state
            if stock_lines:
                stock = self._stock.apply_deductions(
                    state.inventory,
                    [line.to_deduction() for line in stock_lines],
                    intent=StockIntent(draft.type.value),
                    menu=state.menu_by_id(),
                    transaction_category=draft.category,
                    effective_date=draft.date,
                    stamped_at=recorded_at,
                    reason=f"Ledger: {entries[0].title}",
                    ref_id=tx,
                )
                for item in stock.created:
                    self._caps.add_inventory_item(item)
                if stock.updated:
                    self._caps.update_inventory_batch(stock.updated)
                next_state = next_state.with_inventory(stock.snapshot)

            for entry in entries:
                self._caps.add_ledger_entry(entry)

            result = CheckoutResult(
                state=next_state.with_entries(entries),
                entries=tuple(entries),
                stock=stock,
            )
            logger.info(
                "transaction_submitted",
                extra={
                    "entry_type": draft.type.value,
                    "entry_count": len(entries),
                    "split": len(entries) > 1,
                    "total": str(result.total),
                    "stock_outcome": result.outcome.value,
                    "stock_skipped": list(stock.skipped) if stock else [],
                },
            )
            return result

    # =========================================================================
    # Edit
    # =========================================================================

    def edit_entry(
        self, state: ShopState, entry_id: str, draft: TransactionDraft
    ) -> CheckoutResult:
        """
        Replace the fields of one entry, keeping its id.  Stock is not
        touched by edits.

        Raises:
            SplitBillEditError: the entry came from a split checkout, or the
                edit would itself split into several categories.
        """
        self._caps.require("update_ledger_entry", operation="edit_entry")
        entry = state.find_entry(entry_id)
        if entry is None:
            raise LedgerEntryNotFoundError(entry_id)
        if entry.is_split:
            logger.warning(
                "split_entry_edit_rejected",
                extra={"entry_id": entry_id, "split_group": entry.split_group},
            )
            raise SplitBillEditError(entry_id, entry.split_group)

        if draft.lines:
            groups = group_lines(draft)
            if len(groups) > 1:
                raise SplitBillEditError(entry_id, None)
            self._validate(draft)
            category, lines = next(iter(groups.items()))
            amount = sum((line.amount for line in lines), Decimal("0"))
            title = group_title(draft, category, lines, split=False)
        else:
            draft = replace(
                draft,
                title=draft.title or entry.title,
                category=draft.category or entry.category,
            )
            self._validate(draft)
            category = draft.category
            amount = draft.amount
            title = draft.title.strip()

        updated = replace(
            entry,
            date=draft.date,
            type=draft.type,
            title=title,
            amount=amount,
            category=category,
            channel=draft.channel,
            slip_image=draft.slip_image,
            note=draft.note,
        )
        self._caps.update_ledger_entry(updated)
        logger.info(
            "ledger_entry_edited",
            extra={"entry_id": entry_id, "amount": str(amount), "category": category},
        )
        return CheckoutResult(state=state.with_entry_replaced(updated), entries=(updated,))

    # =========================================================================
    # Fixed costs
    # =========================================================================

    def log_daily_fixed_costs(
        self,
        state: ShopState,
        fixed_costs: FixedCosts,
        target_date: date,
    ) -> CheckoutResult:
        """Book the day's fixed costs unless they are already in the ledger."""
        self._caps.require("add_ledger_entry", operation="log_daily_fixed_costs")
        if has_logged_fixed_costs(state.ledger, target_date):
            logger.info(
                "fixed_costs_already_logged",
                extra={"target_date": target_date.isoformat()},
            )
            return CheckoutResult(state=state)

        schedule = self._costs.daily_fixed_costs(
            fixed_costs, state.equipment, state.inventory, target_date=target_date
        )
        recorded_at = self._clock.now()
        entries = tuple(
            LedgerItem(
                id=self._new_id(),
                date=line.date,
                type=LedgerType.EXPENSE,
                title=line.title,
                amount=line.amount,
                category=line.category.value,
                note=line.note,
                transaction_id=f"fixed-cost:{line.date.isoformat()}:{line.category.value}",
                recorded_at=recorded_at,
            )
            for line in schedule.lines
        )
        for entry in entries:
            self._caps.add_ledger_entry(entry)
        logger.info(
            "fixed_costs_logged",
            extra={
                "target_date": target_date.isoformat(),
                "entry_count": len(entries),
                "total": str(schedule.total),
            },
        )
        return CheckoutResult(state=state.with_entries(entries), entries=entries)

    # =========================================================================
    # Internals
    # =========================================================================

    def _validate(self, draft: TransactionDraft) -> None:
        if not draft.lines:
            if not draft.title or not draft.title.strip():
                raise MissingFieldError("title", "transaction")
            if draft.amount is None or draft.amount <= 0:
                raise InvalidAmountError(draft.amount)
            if not draft.category:
                raise MissingFieldError("category", "transaction")
            if not is_valid_category(draft.type, draft.category):
                raise InvalidCategoryError(draft.category, draft.type.value)
            return

        for line in draft.lines:
            if not line.name or not line.name.strip():
                raise MissingFieldError("name", "transaction line")
            if line.quantity is None or line.quantity <= 0:
                raise InvalidQuantityError(line.quantity, line.ref_id)
            if line.unit_cost is None or line.unit_cost < 0:
                raise InvalidAmountError(line.unit_cost, "unit_cost")
            if line.is_stock and not line.ref_id:
                raise MissingFieldError("ref_id", f"stock line {line.name}")
            if line.kind == LineKind.MENU and line.creates_item:
                raise MissingFieldError("ref_id", f"menu line {line.name}")

        for category, lines in group_lines(draft).items():
            if not is_valid_category(draft.type, category):
                raise InvalidCategoryError(category, draft.type.value)
            total = sum((line.amount for line in lines), Decimal("0"))
            if total <= 0:
                raise InvalidAmountError(total, f"amount[{category}]")

    def _entry(
        self,
        draft: TransactionDraft,
        *,
        title: str,
        amount: Decimal,
        category: str,
        transaction_id: str,
        split_group: str | None,
        recorded_at,
    ) -> LedgerItem:
        return LedgerItem(
            id=self._new_id(),
            date=draft.date,
            type=draft.type,
            title=title,
            amount=amount,
            category=category,
            channel=draft.channel,
            slip_image=draft.slip_image,
            note=draft.note,
            transaction_id=transaction_id,
            split_group=split_group,
            recorded_at=recorded_at,
        )
