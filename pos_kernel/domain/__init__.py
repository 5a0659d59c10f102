"""Pure domain records of the point-of-sale kernel -- zero I/O."""

from pos_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from pos_kernel.domain.inventory import (
    Equipment,
    InventoryItem,
    InventorySnapshot,
    ItemType,
)
from pos_kernel.domain.ledger import (
    ExpenseCategory,
    IncomeCategory,
    LedgerChannel,
    LedgerItem,
    LedgerType,
)
from pos_kernel.domain.menu import Ingredient, MenuItem, ToppingOption
from pos_kernel.domain.orders import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    SelectedTopping,
    can_transition,
)
from pos_kernel.domain.settings import FixedCosts, HiddenCosts
from pos_kernel.domain.state import ShopState

__all__ = [
    "Clock",
    "DeterministicClock",
    "Equipment",
    "ExpenseCategory",
    "FixedCosts",
    "HiddenCosts",
    "IncomeCategory",
    "Ingredient",
    "InventoryItem",
    "InventorySnapshot",
    "ItemType",
    "LedgerChannel",
    "LedgerItem",
    "LedgerType",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "SelectedTopping",
    "ShopState",
    "SystemClock",
    "ToppingOption",
    "can_transition",
]
