"""
Inventory Module Service (``pos_modules.inventory.service``).

Responsibility
--------------
Manual inventory maintenance from the stock screen: adding stock items
and assets, correcting or restocking a row, registering suppliers, and
listing the asset register.  All quantity and cost changes go through
``StockLedgerEngine`` so weighted-average costing and versioning apply
exactly as they do for purchases and kitchen orders.

Invariants
----------
- Capabilities are checked before any computation.
- Adjustments with ``expected_version`` fail with
  ``StaleInventoryVersionError`` instead of overwriting newer stock.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pos_engines.cost_allocation import asset_daily_depreciation
from pos_engines.stock_ledger import (
    NEW_ITEM_REF,
    DeductionTarget,
    StockDeduction,
    StockDirection,
    StockIntent,
    StockLedgerEngine,
)
from pos_kernel.domain.clock import Clock, SystemClock
from pos_kernel.domain.inventory import ItemType
from pos_kernel.domain.state import ShopState
from pos_kernel.exceptions import MissingFieldError
from pos_kernel.logging_config import get_logger
from pos_modules.capabilities import Capabilities
from pos_modules.inventory.helpers import asset_book_value, unified_inventory
from pos_modules.inventory.models import AssetRegisterLine, InventoryChange, Supplier

logger = get_logger("modules.inventory.service")


class InventoryService:
    def __init__(
        self,
        capabilities: Capabilities,
        clock: Clock | None = None,
        stock_engine: StockLedgerEngine | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self._caps = capabilities
        self._clock = clock or SystemClock()
        self._new_id = id_factory or (lambda: str(uuid4()))
        self._stock = stock_engine or StockLedgerEngine(id_factory=self._new_id)

    def add_item(
        self,
        state: ShopState,
        *,
        name: str,
        quantity: Decimal,
        unit_cost: Decimal,
        unit: str = "unit",
        category: str | None = None,
        item_type: ItemType = ItemType.STOCK,
        min_level: Decimal | None = None,
        lifespan_days: int | None = None,
        salvage_price: Decimal | None = None,
        purchase_date: date | None = None,
    ) -> InventoryChange:
        """
        Add a new row.  Assets bought in quantity N become N rows of one.
        """
        self._caps.require("add_inventory_item", operation="add_item")
        stock = self._stock.apply_deductions(
            state.inventory,
            [
                StockDeduction(
                    target=DeductionTarget.INVENTORY,
                    ref_id=NEW_ITEM_REF,
                    quantity=quantity,
                    direction=StockDirection.IN,
                    unit_cost=unit_cost,
                    name=name,
                    category=category,
                    unit=unit,
                    item_type=item_type,
                    min_level=min_level,
                    lifespan_days=lifespan_days,
                    salvage_price=salvage_price,
                )
            ],
            intent=StockIntent.EXPENSE,
            effective_date=purchase_date or self._clock.today(),
            stamped_at=self._clock.now(),
            reason="Manual add",
        )
        for item in stock.created:
            self._caps.add_inventory_item(item)
        logger.info(
            "inventory_item_added",
            extra={
                "item_name": name,
                "item_type": item_type.value,
                "rows": len(stock.created),
            },
        )
        return InventoryChange(state=state.with_inventory(stock.snapshot), stock=stock)

    def adjust_stock(
        self,
        state: ShopState,
        item_id: str,
        quantity: Decimal,
        direction: StockDirection,
        *,
        unit_cost: Decimal | None = None,
        expected_version: int | None = None,
        reason: str = "Manual adjustment",
    ) -> InventoryChange:
        """Restock (weighted average) or write off a single row."""
        self._caps.require("update_inventory_batch", operation="adjust_stock")
        stock = self._stock.apply_deductions(
            state.inventory,
            [
                StockDeduction(
                    target=DeductionTarget.INVENTORY,
                    ref_id=item_id,
                    quantity=quantity,
                    direction=direction,
                    unit_cost=unit_cost,
                    expected_version=expected_version,
                )
            ],
            intent=StockIntent.EXPENSE if direction == StockDirection.IN else StockIntent.SALE,
            stamped_at=self._clock.now(),
            reason=reason,
        )
        if stock.updated:
            self._caps.update_inventory_batch(stock.updated)
        return InventoryChange(state=state.with_inventory(stock.snapshot), stock=stock)

    def register_supplier(
        self, name: str, phone: str | None = None, note: str | None = None
    ) -> Supplier:
        self._caps.require("add_supplier", operation="register_supplier")
        if not name or not name.strip():
            raise MissingFieldError("name", "supplier")
        supplier = Supplier(id=self._new_id(), name=name.strip(), phone=phone, note=note)
        self._caps.add_supplier(supplier)
        logger.info("supplier_registered", extra={"supplier_id": supplier.id})
        return supplier

    def asset_register(self, state: ShopState, as_of: date) -> tuple[AssetRegisterLine, ...]:
        """Every asset, legacy equipment included, with its current value."""
        view = unified_inventory(state.inventory, state.equipment)
        return tuple(
            AssetRegisterLine(
                item=item,
                daily_depreciation=asset_daily_depreciation(item),
                book_value=asset_book_value(item, as_of),
                as_of=as_of,
            )
            for item in view.assets()
        )
