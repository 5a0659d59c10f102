"""
Receipt Import Service (``pos_modules.receipts.service``).

Responsibility
--------------
Folds the guesses of the external receipt scanner into ledger drafts and
books them through ``LedgerService``.  The scanner returns either
``{name, price}`` (equipment purchases) or
``{name, quantity, unit, totalPrice}`` (stock purchases).

Invariants
----------
- Scanner output is untrusted: every line passes the same checks as a
  manual entry.  A line that fails is reported in ``rejected`` and never
  reaches the ledger.
- Each accepted line becomes its own purchase draft.
- A stock line whose name matches an existing item (trimmed,
  case-insensitive) restocks it at ``totalPrice / quantity`` per unit;
  otherwise a new item is created.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from pos_engines.stock_ledger import NEW_ITEM_REF, StockDirection
from pos_kernel.domain.inventory import InventorySnapshot, ItemType
from pos_kernel.domain.ledger import ExpenseCategory, LedgerChannel, LedgerType
from pos_kernel.domain.state import ShopState
from pos_kernel.exceptions import ScannedLineError
from pos_kernel.logging_config import get_logger
from pos_modules.ledger.models import CheckoutResult, DraftLine, LineKind, TransactionDraft
from pos_modules.ledger.service import LedgerService
from pos_modules.receipts.models import (
    FoldedReceipt,
    RejectedLine,
    ScannedEquipmentLine,
    ScannedStockLine,
)

logger = get_logger("modules.receipts.service")

PURCHASE_TITLE = "Purchase: {name}"


def _decimal(raw: Mapping[str, Any], *keys: str) -> Decimal:
    for key in keys:
        if key in raw and raw[key] is not None:
            value = raw[key]
            if isinstance(value, bool):
                raise ScannedLineError(f"{key} is not a number", key)
            try:
                parsed = Decimal(str(value).strip().replace(",", ""))
            except InvalidOperation as exc:
                raise ScannedLineError(f"{key} is not a number: {value!r}", key) from exc
            if not parsed.is_finite():
                raise ScannedLineError(f"{key} is not finite", key)
            return parsed
    raise ScannedLineError(f"missing {keys[0]}", keys[0])


def _name(raw: Mapping[str, Any]) -> str:
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ScannedLineError("missing name", "name")
    return name.strip()


def parse_stock_line(raw: Mapping[str, Any]) -> ScannedStockLine:
    if not isinstance(raw, Mapping):
        raise ScannedLineError("not an object")
    line = ScannedStockLine(
        name=_name(raw),
        quantity=_decimal(raw, "quantity", "qty"),
        unit=str(raw.get("unit") or "unit").strip() or "unit",
        total_price=_decimal(raw, "totalPrice", "total_price", "price"),
    )
    if line.quantity <= 0:
        raise ScannedLineError("quantity must be positive", "quantity")
    if line.total_price <= 0:
        raise ScannedLineError("total price must be positive", "total_price")
    return line


def parse_equipment_line(raw: Mapping[str, Any]) -> ScannedEquipmentLine:
    if not isinstance(raw, Mapping):
        raise ScannedLineError("not an object")
    line = ScannedEquipmentLine(name=_name(raw), price=_decimal(raw, "price"))
    if line.price <= 0:
        raise ScannedLineError("price must be positive", "price")
    return line


class ReceiptFolder:
    """Turns scanner guesses into ledger drafts and books them."""

    def __init__(self, ledger_service: LedgerService):
        self._ledger = ledger_service

    def stock_purchase_draft(
        self,
        line: ScannedStockLine,
        inventory: InventorySnapshot,
        *,
        on_date: date,
        channel: LedgerChannel | None = LedgerChannel.CASH,
        slip_image: str | None = None,
    ) -> TransactionDraft:
        unit_cost = line.total_price / line.quantity
        existing = inventory.find_by_name(line.name)
        draft_line = DraftLine(
            kind=LineKind.INVENTORY,
            name=line.name,
            quantity=line.quantity,
            unit_cost=unit_cost,
            ref_id=existing.id if existing else NEW_ITEM_REF,
            category=ExpenseCategory.RAW_MATERIAL.value,
            item_category=None if existing else "ingredient",
            unit=line.unit,
            direction=StockDirection.IN,
            item_type=ItemType.STOCK,
        )
        return TransactionDraft(
            date=on_date,
            type=LedgerType.EXPENSE,
            title=PURCHASE_TITLE.format(name=line.name),
            category=ExpenseCategory.RAW_MATERIAL.value,
            channel=channel,
            lines=(draft_line,),
            slip_image=slip_image,
        )

    def equipment_purchase_draft(
        self,
        line: ScannedEquipmentLine,
        *,
        on_date: date,
        channel: LedgerChannel | None = LedgerChannel.CASH,
        slip_image: str | None = None,
    ) -> TransactionDraft:
        draft_line = DraftLine(
            kind=LineKind.INVENTORY,
            name=line.name,
            quantity=Decimal("1"),
            unit_cost=line.price,
            ref_id=NEW_ITEM_REF,
            category=ExpenseCategory.EQUIPMENT.value,
            item_category=ExpenseCategory.EQUIPMENT.value,
            direction=StockDirection.IN,
            item_type=ItemType.ASSET,
        )
        return TransactionDraft(
            date=on_date,
            type=LedgerType.EXPENSE,
            title=PURCHASE_TITLE.format(name=line.name),
            category=ExpenseCategory.EQUIPMENT.value,
            channel=channel,
            lines=(draft_line,),
            slip_image=slip_image,
        )

    def fold_stock_receipt(
        self,
        raw_lines: Iterable[Any],
        inventory: InventorySnapshot,
        *,
        on_date: date,
        slip_image: str | None = None,
    ) -> FoldedReceipt:
        drafts: list[TransactionDraft] = []
        rejected: list[RejectedLine] = []
        for raw in raw_lines:
            try:
                line = parse_stock_line(raw)
            except ScannedLineError as exc:
                rejected.append(RejectedLine(raw=raw, reason=str(exc)))
                continue
            drafts.append(
                self.stock_purchase_draft(
                    line, inventory, on_date=on_date, slip_image=slip_image
                )
            )
        return FoldedReceipt(drafts=tuple(drafts), rejected=tuple(rejected))

    def fold_equipment_receipt(
        self,
        raw_lines: Iterable[Any],
        *,
        on_date: date,
        slip_image: str | None = None,
    ) -> FoldedReceipt:
        drafts: list[TransactionDraft] = []
        rejected: list[RejectedLine] = []
        for raw in raw_lines:
            try:
                line = parse_equipment_line(raw)
            except ScannedLineError as exc:
                rejected.append(RejectedLine(raw=raw, reason=str(exc)))
                continue
            drafts.append(
                self.equipment_purchase_draft(line, on_date=on_date, slip_image=slip_image)
            )
        return FoldedReceipt(drafts=tuple(drafts), rejected=tuple(rejected))

    def import_stock_receipt(
        self,
        state: ShopState,
        raw_lines: Iterable[Any],
        *,
        on_date: date,
        slip_image: str | None = None,
    ) -> tuple[ShopState, tuple[CheckoutResult, ...], FoldedReceipt]:
        """
        Book every accepted stock line.  Lines are folded against the
        inventory as it stood before the import.
        """
        folded = self.fold_stock_receipt(
            raw_lines, state.inventory, on_date=on_date, slip_image=slip_image
        )
        return self._book(state, folded, "stock")

    def import_equipment_receipt(
        self,
        state: ShopState,
        raw_lines: Iterable[Any],
        *,
        on_date: date,
        slip_image: str | None = None,
    ) -> tuple[ShopState, tuple[CheckoutResult, ...], FoldedReceipt]:
        folded = self.fold_equipment_receipt(
            raw_lines, on_date=on_date, slip_image=slip_image
        )
        return self._book(state, folded, "equipment")

    def _book(
        self, state: ShopState, folded: FoldedReceipt, flow: str
    ) -> tuple[ShopState, tuple[CheckoutResult, ...], FoldedReceipt]:
        results: list[CheckoutResult] = []
        for draft in folded.drafts:
            result = self._ledger.submit_transaction(state, draft)
            state = result.state
            results.append(result)
        logger.info(
            "receipt_imported",
            extra={
                "flow": flow,
                "booked": len(results),
                "rejected": len(folded.rejected),
                "rejected_reasons": [r.reason for r in folded.rejected],
            },
        )
        return state, tuple(results), folded
