"""
pos_engines.cost_allocation -- Daily fixed-cost and depreciation schedule.

Responsibility:
    Turn the shop's configured fixed running costs and its asset base into
    the per-day cost lines that are booked to the ledger once per day, and
    into the per-day fixed-cost figure the dashboard subtracts from sales.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Straight-line depreciation: (purchase - salvage) / lifespan_days.
      A non-positive lifespan contributes 0.
    - Legacy equipment mirrored in inventory as ``asset-<id>`` (or under its
      own id) is counted once, from the inventory row.
    - The booked depreciation line is rounded to 2 dp and only emitted
      when positive.

Failure modes:
    None -- all divisions are guarded.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from pos_engines.tracer import traced_engine
from pos_kernel.domain.inventory import Equipment, InventoryItem, InventorySnapshot
from pos_kernel.domain.ledger import ExpenseCategory, LedgerItem
from pos_kernel.domain.settings import FixedCosts
from pos_kernel.logging_config import get_logger

logger = get_logger("engines.cost_allocation")

FIXED_COST_MARKER = "Daily fixed cost"
DEPRECIATION_NOTE = "Auto-calculated from Assets"
DEFAULT_ASSET_LIFESPAN_DAYS = 365

_ZERO = Decimal("0")
_CENT = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class DailyCostLine:
    """One expense line to book for the day."""

    date: date
    title: str
    amount: Decimal
    category: ExpenseCategory
    note: str | None = None


@dataclass(frozen=True)
class DailyCostSchedule:
    date: date
    lines: tuple[DailyCostLine, ...] = ()

    @property
    def total(self) -> Decimal:
        return sum((line.amount for line in self.lines), _ZERO)

    @property
    def is_empty(self) -> bool:
        return not self.lines


def equipment_daily_depreciation(equipment: Equipment) -> Decimal:
    """Straight-line daily depreciation of a legacy equipment record."""
    if equipment.lifespan_days <= 0:
        return _ZERO
    value = (equipment.purchase_price - equipment.resale_price) / equipment.lifespan_days
    return max(_ZERO, value)


def asset_daily_depreciation(item: InventoryItem) -> Decimal:
    """
    Daily depreciation of an inventory asset row.

    An explicit ``daily_depreciation`` wins.  Otherwise
    (cost - salvage) / lifespan per unit, times quantity (at least 1).
    """
    if item.daily_depreciation is not None:
        return item.daily_depreciation
    lifespan = (
        item.lifespan_days
        if item.lifespan_days is not None
        else DEFAULT_ASSET_LIFESPAN_DAYS
    )
    if lifespan <= 0:
        return _ZERO
    salvage = item.salvage_price or _ZERO
    per_unit = (item.cost_per_unit - salvage) / lifespan
    return max(_ZERO, per_unit * item.asset_units)


def _unmirrored(
    equipment: Iterable[Equipment], inventory: InventorySnapshot
) -> list[Equipment]:
    return [
        eq for eq in equipment
        if eq.inventory_id not in inventory and eq.id not in inventory
    ]


class CostAllocationEngine:
    """Computes daily fixed costs and depreciation.  Stateless."""

    def total_depreciation(
        self,
        equipment: Sequence[Equipment],
        inventory: InventorySnapshot,
    ) -> Decimal:
        """Unrounded daily depreciation over legacy equipment and assets."""
        legacy = sum(
            (equipment_daily_depreciation(eq) for eq in _unmirrored(equipment, inventory)),
            _ZERO,
        )
        assets = sum(
            (asset_daily_depreciation(item) for item in inventory.assets()),
            _ZERO,
        )
        return legacy + assets

    @traced_engine("cost_allocation", "1.0", fingerprint_fields=("target_date",))
    def daily_fixed_costs(
        self,
        fixed_costs: FixedCosts,
        equipment: Sequence[Equipment],
        inventory: InventorySnapshot,
        *,
        target_date: date,
    ) -> DailyCostSchedule:
        """
        Build the expense lines to book for ``target_date``.

        Postconditions:
            One line per positive rent, labor and utilities amount, plus one
            depreciation line when the rounded depreciation is positive.
            Every line is dated ``target_date``.
        """
        lines: list[DailyCostLine] = []
        configured = (
            (fixed_costs.rent, "booth rent", ExpenseCategory.RENT),
            (fixed_costs.labor, "owner labor", ExpenseCategory.LABOR),
            (fixed_costs.electricity, "utilities", ExpenseCategory.UTILITIES),
        )
        for amount, label, category in configured:
            if amount > 0:
                lines.append(
                    DailyCostLine(
                        date=target_date,
                        title=f"{FIXED_COST_MARKER}: {label}",
                        amount=amount,
                        category=category,
                    )
                )

        depreciation = self.total_depreciation(equipment, inventory).quantize(
            _CENT, rounding=ROUND_HALF_UP
        )
        if depreciation > 0:
            lines.append(
                DailyCostLine(
                    date=target_date,
                    title=f"{FIXED_COST_MARKER}: equipment depreciation",
                    amount=depreciation,
                    category=ExpenseCategory.EQUIPMENT,
                    note=DEPRECIATION_NOTE,
                )
            )

        schedule = DailyCostSchedule(date=target_date, lines=tuple(lines))
        logger.info(
            "daily_fixed_costs_computed",
            extra={
                "target_date": target_date.isoformat(),
                "line_count": len(schedule.lines),
                "total": str(schedule.total),
                "depreciation": str(depreciation),
            },
        )
        return schedule

    def total_fixed_cost_per_day(
        self,
        fixed_costs: FixedCosts,
        equipment: Sequence[Equipment],
        inventory: InventorySnapshot,
    ) -> Decimal:
        """Rent + transport + utilities + labor + unrounded depreciation."""
        return (
            fixed_costs.rent
            + fixed_costs.transport
            + fixed_costs.electricity
            + fixed_costs.labor
            + self.total_depreciation(equipment, inventory)
        )

    def total_investment(
        self,
        equipment: Sequence[Equipment],
        inventory: InventorySnapshot,
    ) -> Decimal:
        """Purchase value of the whole asset base (zero-count asset rows count once)."""
        legacy = sum(
            (eq.purchase_price for eq in _unmirrored(equipment, inventory)), _ZERO
        )
        assets = sum((item.asset_value for item in inventory.assets()), _ZERO)
        return legacy + assets


def has_logged_fixed_costs(ledger: Iterable[LedgerItem], on_date: date) -> bool:
    """Whether the day's fixed costs are already in the books."""
    for entry in ledger:
        if entry.date != on_date:
            continue
        if entry.category in (ExpenseCategory.RENT.value, ExpenseCategory.LABOR.value):
            return True
        if FIXED_COST_MARKER in entry.title:
            return True
    return False
