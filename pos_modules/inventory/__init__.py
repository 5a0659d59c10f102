"""
Inventory Module (``pos_modules.inventory``).

Manual stock maintenance, suppliers and the asset register.  Weighted
average costing and versioning come from ``pos_engines.stock_ledger``.
"""

from pos_modules.inventory.helpers import asset_book_value, equipment_as_item, unified_inventory
from pos_modules.inventory.models import AssetRegisterLine, InventoryChange, Supplier
from pos_modules.inventory.service import InventoryService

__all__ = [
    "AssetRegisterLine",
    "InventoryChange",
    "InventoryService",
    "Supplier",
    "asset_book_value",
    "equipment_as_item",
    "unified_inventory",
]
