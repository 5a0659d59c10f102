"""
ShopState -- the in-memory snapshot every operation transforms.

Operations take a ShopState and return a new one; nothing is mutated in
place.  Orders and ledger entries are held newest first, the way the shop
screen lists them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from collections.abc import Iterable

from pos_kernel.domain.inventory import Equipment, InventorySnapshot
from pos_kernel.domain.ledger import LedgerItem
from pos_kernel.domain.menu import MenuItem
from pos_kernel.domain.orders import Order


@dataclass(frozen=True)
class ShopState:
    orders: tuple[Order, ...] = ()
    ledger: tuple[LedgerItem, ...] = ()
    inventory: InventorySnapshot = field(default_factory=InventorySnapshot)
    menu: tuple[MenuItem, ...] = ()
    equipment: tuple[Equipment, ...] = ()

    def find_order(self, order_id: str) -> Order | None:
        for order in self.orders:
            if order.id == order_id:
                return order
        return None

    def find_entry(self, entry_id: str) -> LedgerItem | None:
        for entry in self.ledger:
            if entry.id == entry_id:
                return entry
        return None

    def menu_by_id(self) -> dict[str, MenuItem]:
        return {item.id: item for item in self.menu}

    def with_order(self, order: Order) -> ShopState:
        """Replace the order with the same id, or prepend it."""
        if self.find_order(order.id) is None:
            return replace(self, orders=(order, *self.orders))
        return replace(
            self,
            orders=tuple(order if o.id == order.id else o for o in self.orders),
        )

    def with_entries(self, entries: Iterable[LedgerItem]) -> ShopState:
        return replace(self, ledger=(*entries, *self.ledger))

    def with_entry_replaced(self, entry: LedgerItem) -> ShopState:
        return replace(
            self,
            ledger=tuple(entry if e.id == entry.id else e for e in self.ledger),
        )

    def with_inventory(self, inventory: InventorySnapshot) -> ShopState:
        return replace(self, inventory=inventory)
