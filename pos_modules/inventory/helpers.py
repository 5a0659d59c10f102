"""
Inventory Helpers (``pos_modules.inventory.helpers``).

Responsibility
--------------
Pure functions over inventory rows: mirroring the legacy equipment list
into the unified inventory, and asset book value after straight-line
depreciation.

Invariants enforced
-------------------
* All numeric inputs and outputs use ``Decimal``.
* A legacy equipment record is mirrored at most once, as ``asset-<id>``.
* Book value never drops below salvage value.

Failure modes
-------------
* Zero or negative lifespan  -> no depreciation, book value stays at cost.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from pos_engines.cost_allocation import asset_daily_depreciation
from pos_kernel.domain.inventory import (
    Equipment,
    InventoryItem,
    InventorySnapshot,
    ItemType,
)


def equipment_as_item(equipment: Equipment) -> InventoryItem:
    """Legacy equipment record as a one-unit asset row."""
    return InventoryItem(
        id=equipment.inventory_id,
        name=equipment.name,
        quantity=Decimal("1"),
        unit="unit",
        min_level=Decimal("0"),
        cost_per_unit=equipment.purchase_price,
        category=equipment.category,
        type=ItemType.ASSET,
        lifespan_days=equipment.lifespan_days,
        salvage_price=equipment.resale_price,
    )


def unified_inventory(
    snapshot: InventorySnapshot, equipment: Iterable[Equipment]
) -> InventorySnapshot:
    """
    Inventory with legacy equipment appended as asset rows.

    Records already present (under ``asset-<id>`` or their own id) are
    skipped.  The snapshot version is unchanged: this is a view.
    """
    mirrored = [
        equipment_as_item(eq)
        for eq in equipment
        if eq.inventory_id not in snapshot and eq.id not in snapshot
    ]
    if not mirrored:
        return snapshot
    return InventorySnapshot(items=snapshot.items + tuple(mirrored), version=snapshot.version)


def asset_book_value(item: InventoryItem, as_of: date) -> Decimal:
    """
    Remaining value of an asset row on ``as_of``.

    Preconditions:
        ``item`` is an asset.  Without a purchase date the row is valued
        at cost.
    Postconditions:
        Quantized to 0.01; never below salvage value times quantity.
    """
    cost = item.asset_value
    floor = (item.salvage_price or Decimal("0")) * item.asset_units
    if item.purchase_date is None or as_of <= item.purchase_date:
        return cost.quantize(Decimal("0.01"))
    days = (as_of - item.purchase_date).days
    value = cost - asset_daily_depreciation(item) * days
    return max(value, floor).quantize(Decimal("0.01"))
