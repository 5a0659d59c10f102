"""
pos_engines.stock_ledger -- Weighted-average stock ledger.

Responsibility:
    Apply a batch of stock deductions to an inventory snapshot: stock-in
    at weighted-average cost, stock-out clamped at zero, menu items
    expanded into their recipe ingredients, and new inventory rows (stock
    or assets) created from purchase lines.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports only pos_kernel domain values, exceptions and logging.
    Timestamps and dates are passed in; the engine never reads a clock.

Invariants enforced:
    - Quantity never goes negative: stock-out is ``max(0, qty - consumed)``.
    - Stock-out never changes cost_per_unit.
    - Weighted average: new_cost = (q0*c0 + q1*c1) / (q0 + q1), guarded to
      zero when the resulting quantity is zero.
    - Every touched row gets version + 1 and a fresh last_updated.
    - Validation happens before any change: a bad quantity or a stale
      expected_version rejects the whole batch.

Failure modes:
    - InvalidQuantityError if a deduction quantity is not > 0.
    - InvalidAmountError if a unit cost is negative.
    - MissingFieldError if a new item has no name.
    - StaleInventoryVersionError if expected_version does not match.
    - Unresolvable references are NOT errors: they are listed in
      ``skipped`` and the outcome becomes PARTIAL.

Audit relevance:
    Each quantity change is recorded as a StockMovement (direction,
    delta, resulting balance, reason, source reference) for the kitchen
    and purchase logs.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pos_engines.tracer import traced_engine
from pos_kernel.domain.inventory import InventoryItem, InventorySnapshot, ItemType
from pos_kernel.domain.menu import MenuItem
from pos_kernel.exceptions import (
    InvalidAmountError,
    InvalidQuantityError,
    MissingFieldError,
    StaleInventoryVersionError,
)
from pos_kernel.logging_config import get_logger

logger = get_logger("engines.stock_ledger")

NEW_ITEM_REF = "new-item"

DEFAULT_STOCK_MIN_LEVEL = Decimal("5")
DEFAULT_ASSET_LIFESPAN_DAYS = 365

_ZERO = Decimal("0")
_ASSET_CATEGORIES = frozenset({"asset", "equipment"})


class DeductionTarget(str, Enum):
    """What a deduction's ``ref_id`` points at."""

    INVENTORY = "inventory"
    MENU = "menu"


class StockDirection(str, Enum):
    IN = "in"
    OUT = "out"


class StockIntent(str, Enum):
    """Why stock is moving; used to infer direction when none is given."""

    EXPENSE = "expense"  # purchase, stock comes in
    INCOME = "income"
    SALE = "sale"  # kitchen consumption


class StockOutcome(str, Enum):
    APPLIED = "applied"
    PARTIAL = "partial"


@dataclass(frozen=True)
class StockDeduction:
    """
    One requested stock change.

    ``direction`` should be set explicitly.  When it is None it is inferred
    from the batch intent (expense means stock-in, anything else means
    stock-out), which is wrong for mixed batches such as a purchase that
    also writes off spoiled stock.

    Fields ``unit_cost`` onwards are used for stock-in cost and, when
    ``ref_id`` is ``new-item``, to build the new row.
    """

    target: DeductionTarget
    ref_id: str
    quantity: Decimal
    direction: StockDirection | None = None
    unit_cost: Decimal | None = None
    name: str | None = None
    category: str | None = None
    unit: str | None = None
    item_type: ItemType | None = None
    min_level: Decimal | None = None
    lifespan_days: int | None = None
    salvage_price: Decimal | None = None
    expected_version: int | None = None

    @property
    def creates_item(self) -> bool:
        return self.target == DeductionTarget.INVENTORY and self.ref_id == NEW_ITEM_REF


@dataclass(frozen=True, slots=True)
class StockMovement:
    """One line of the stock log."""

    item_id: str
    item_name: str
    direction: StockDirection
    quantity: Decimal
    balance_after: Decimal
    unit_cost: Decimal
    reason: str = ""
    ref_id: str | None = None


@dataclass(frozen=True)
class StockApplyResult:
    """
    Outcome of one apply_deductions call.

    ``requested`` counts deductions passed in; ``applied`` counts the ones
    that resolved (a menu deduction counts only when every one of its
    ingredients resolved; the ones that did are still deducted).
    """

    snapshot: InventorySnapshot
    requested: int
    applied: int
    created: tuple[InventoryItem, ...] = ()
    updated: tuple[InventoryItem, ...] = ()
    movements: tuple[StockMovement, ...] = ()
    skipped: tuple[str, ...] = ()

    @property
    def outcome(self) -> StockOutcome:
        if self.applied < self.requested:
            return StockOutcome.PARTIAL
        return StockOutcome.APPLIED

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated)


# =============================================================================
# Pure helpers
# =============================================================================


def weighted_average_cost(
    old_quantity: Decimal,
    old_cost: Decimal,
    added_quantity: Decimal,
    added_cost: Decimal,
) -> Decimal:
    """
    Weighted-average unit cost after receiving ``added_quantity``.

    Returns 0 when the resulting quantity is not positive.
    """
    new_quantity = old_quantity + added_quantity
    if new_quantity <= 0:
        return _ZERO
    return (old_quantity * old_cost + added_quantity * added_cost) / new_quantity


def stock_in(
    item: InventoryItem,
    quantity: Decimal,
    unit_cost: Decimal | None = None,
) -> InventoryItem:
    """Receive stock; a missing unit cost means "same as current cost"."""
    cost = item.cost_per_unit if unit_cost is None else unit_cost
    return replace(
        item,
        quantity=item.quantity + quantity,
        cost_per_unit=weighted_average_cost(
            item.quantity, item.cost_per_unit, quantity, cost
        ),
    )


def stock_out(item: InventoryItem, quantity: Decimal) -> InventoryItem:
    """Consume stock, clamping at zero.  Cost is untouched."""
    return replace(item, quantity=max(_ZERO, item.quantity - quantity))


def resolve_direction(deduction: StockDeduction, intent: StockIntent) -> StockDirection:
    if deduction.target == DeductionTarget.MENU:
        return StockDirection.OUT
    if deduction.direction is not None:
        return deduction.direction
    if intent == StockIntent.EXPENSE:
        return StockDirection.IN
    return StockDirection.OUT


def _default_id() -> str:
    return str(uuid4())


# =============================================================================
# Engine
# =============================================================================


class StockLedgerEngine:
    """
    Applies stock deductions to an InventorySnapshot.

    Contract:
        Stateless apart from the id factory used for newly created rows.
        Returns a StockApplyResult carrying the next snapshot; the input
        snapshot is never modified.
    """

    def __init__(self, id_factory: Callable[[], str] | None = None):
        self._new_id = id_factory or _default_id

    @traced_engine(
        "stock_ledger",
        "1.0",
        fingerprint_fields=("intent", "transaction_category", "effective_date", "ref_id"),
    )
    def apply_deductions(
        self,
        snapshot: InventorySnapshot,
        deductions: Iterable[StockDeduction],
        *,
        intent: StockIntent,
        menu: Mapping[str, MenuItem] | Sequence[MenuItem] = (),
        transaction_category: str | None = None,
        effective_date: date | None = None,
        stamped_at: datetime | None = None,
        reason: str = "",
        ref_id: str | None = None,
    ) -> StockApplyResult:
        """
        Apply ``deductions`` to ``snapshot`` and return the next snapshot.

        Preconditions:
            Deductions carry positive quantities.
        Postconditions:
            ``result.snapshot.version == snapshot.version + 1`` when
            anything changed, otherwise the same snapshot is returned.

        Raises:
            InvalidQuantityError, InvalidAmountError, MissingFieldError,
            StaleInventoryVersionError -- all before any change is made.
        """
        batch = tuple(deductions)
        self._validate(snapshot, batch)

        menu_index = menu if isinstance(menu, Mapping) else {m.id: m for m in menu}
        working: dict[str, InventoryItem] = {}
        created: list[InventoryItem] = []
        movements: list[StockMovement] = []
        skipped: list[str] = []
        applied = 0

        def current(item_id: str) -> InventoryItem | None:
            return working.get(item_id) or snapshot.get(item_id)

        def move(before: InventoryItem, after: InventoryItem, direction: StockDirection) -> None:
            working[after.id] = after
            movements.append(
                StockMovement(
                    item_id=after.id,
                    item_name=after.name,
                    direction=direction,
                    quantity=abs(after.quantity - before.quantity),
                    balance_after=after.quantity,
                    unit_cost=after.cost_per_unit,
                    reason=reason,
                    ref_id=ref_id,
                )
            )

        for deduction in batch:
            if deduction.target == DeductionTarget.MENU:
                menu_item = menu_index.get(deduction.ref_id)
                if menu_item is None:
                    skipped.append(f"menu:{deduction.ref_id}")
                    logger.warning(
                        "stock_menu_item_not_found",
                        extra={"menu_id": deduction.ref_id, "ref_id": ref_id},
                    )
                    continue
                fully_resolved = True
                for ingredient in menu_item.ingredients:
                    found = snapshot.resolve_ingredient(ingredient)
                    if found is None:
                        fully_resolved = False
                        skipped.append(f"ingredient:{ingredient.name}")
                        logger.warning(
                            "stock_ingredient_not_found",
                            extra={
                                "menu_id": menu_item.id,
                                "ingredient": ingredient.name,
                                "master_id": ingredient.master_id,
                            },
                        )
                        continue
                    consumed = ingredient.consumed_per_unit * deduction.quantity
                    if consumed <= 0:
                        continue
                    before = current(found.id)
                    move(before, stock_out(before, consumed), StockDirection.OUT)
                if fully_resolved:
                    applied += 1
                continue

            if deduction.creates_item:
                rows = self._new_items(
                    deduction, transaction_category, effective_date, stamped_at
                )
                created.extend(rows)
                for row in rows:
                    movements.append(
                        StockMovement(
                            item_id=row.id,
                            item_name=row.name,
                            direction=StockDirection.IN,
                            quantity=row.quantity,
                            balance_after=row.quantity,
                            unit_cost=row.cost_per_unit,
                            reason=reason,
                            ref_id=ref_id,
                        )
                    )
                applied += 1
                continue

            item = current(deduction.ref_id)
            if item is None:
                skipped.append(f"inventory:{deduction.ref_id}")
                logger.warning(
                    "stock_item_not_found",
                    extra={"item_id": deduction.ref_id, "ref_id": ref_id},
                )
                continue
            direction = resolve_direction(deduction, intent)
            if direction == StockDirection.IN:
                after = stock_in(item, deduction.quantity, deduction.unit_cost)
            else:
                after = stock_out(item, deduction.quantity)
            move(item, after, direction)
            applied += 1

        updated = tuple(snapshot.bump(item, stamped_at) for item in working.values())
        if updated or created:
            next_snapshot = snapshot.with_changes(updated=updated, created=created)
        else:
            next_snapshot = snapshot

        result = StockApplyResult(
            snapshot=next_snapshot,
            requested=len(batch),
            applied=applied,
            created=tuple(created),
            updated=updated,
            movements=tuple(movements),
            skipped=tuple(skipped),
        )

        logger.info(
            "stock_deductions_applied",
            extra={
                "intent": intent.value,
                "requested": result.requested,
                "applied": result.applied,
                "created_count": len(result.created),
                "updated_count": len(result.updated),
                "skipped": list(result.skipped),
                "outcome": result.outcome.value,
                "snapshot_version": next_snapshot.version,
            },
        )
        return result

    def _validate(
        self, snapshot: InventorySnapshot, batch: tuple[StockDeduction, ...]
    ) -> None:
        for deduction in batch:
            if deduction.quantity is None or deduction.quantity <= 0:
                logger.error(
                    "stock_invalid_quantity",
                    extra={"ref_id": deduction.ref_id, "quantity": str(deduction.quantity)},
                )
                raise InvalidQuantityError(deduction.quantity, deduction.ref_id)
            if deduction.unit_cost is not None and deduction.unit_cost < 0:
                raise InvalidAmountError(deduction.unit_cost, "unit_cost")
            if deduction.creates_item and not (deduction.name or "").strip():
                raise MissingFieldError("name", "new inventory item")
            if (
                deduction.expected_version is not None
                and deduction.target == DeductionTarget.INVENTORY
                and not deduction.creates_item
            ):
                stored = snapshot.get(deduction.ref_id)
                if stored is not None and stored.version != deduction.expected_version:
                    logger.warning(
                        "stock_version_conflict",
                        extra={
                            "item_id": stored.id,
                            "expected_version": deduction.expected_version,
                            "actual_version": stored.version,
                        },
                    )
                    raise StaleInventoryVersionError(
                        stored.id, deduction.expected_version, stored.version
                    )

    def _new_items(
        self,
        deduction: StockDeduction,
        transaction_category: str | None,
        effective_date: date | None,
        stamped_at: datetime | None,
    ) -> list[InventoryItem]:
        """Build the rows for a ``new-item`` deduction."""
        item_type = deduction.item_type
        if item_type is None:
            is_asset = (deduction.category in _ASSET_CATEGORIES) or (
                transaction_category in _ASSET_CATEGORIES
            )
            item_type = ItemType.ASSET if is_asset else ItemType.STOCK

        name = (deduction.name or "").strip()
        cost = deduction.unit_cost if deduction.unit_cost is not None else _ZERO

        if item_type == ItemType.STOCK:
            return [
                InventoryItem(
                    id=self._new_id(),
                    name=name,
                    quantity=deduction.quantity,
                    unit=deduction.unit or "unit",
                    min_level=(
                        deduction.min_level
                        if deduction.min_level is not None
                        else DEFAULT_STOCK_MIN_LEVEL
                    ),
                    cost_per_unit=cost,
                    category=deduction.category or "ingredient",
                    type=ItemType.STOCK,
                    last_updated=stamped_at,
                )
            ]

        # Assets are tracked one row per physical unit.
        quantity = deduction.quantity
        if quantity > 1 and quantity == quantity.to_integral_value():
            unit_quantities = [Decimal("1")] * int(quantity)
        else:
            unit_quantities = [quantity]
        return [
            InventoryItem(
                id=self._new_id(),
                name=name,
                quantity=q,
                unit=deduction.unit or "unit",
                min_level=deduction.min_level if deduction.min_level is not None else _ZERO,
                cost_per_unit=cost,
                category=deduction.category or "asset",
                type=ItemType.ASSET,
                last_updated=stamped_at,
                lifespan_days=(
                    deduction.lifespan_days
                    if deduction.lifespan_days is not None
                    else DEFAULT_ASSET_LIFESPAN_DAYS
                ),
                salvage_price=(
                    deduction.salvage_price
                    if deduction.salvage_price is not None
                    else _ZERO
                ),
                purchase_date=effective_date,
            )
            for q in unit_quantities
        ]
