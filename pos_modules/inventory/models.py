"""
Inventory Module Models (``pos_modules.inventory.models``).

Value objects owned by the inventory module.  Inventory rows themselves
live in ``pos_kernel.domain.inventory``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from pos_engines.stock_ledger import StockApplyResult
from pos_kernel.domain.inventory import InventoryItem
from pos_kernel.domain.state import ShopState


@dataclass(frozen=True, slots=True)
class Supplier:
    id: str
    name: str
    phone: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class InventoryChange:
    state: ShopState
    stock: StockApplyResult


@dataclass(frozen=True, slots=True)
class AssetRegisterLine:
    item: InventoryItem
    daily_depreciation: Decimal
    book_value: Decimal
    as_of: date
