"""Kernel services: change feed and remote-change folding."""

from pos_kernel.services.change_feed import (
    ChangeEntity,
    ChangeEvent,
    ChangeFeed,
    ChangeKind,
    LedgerEchoFilter,
    apply_inventory_change,
    apply_ledger_change,
    apply_order_change,
)

__all__ = [
    "ChangeEntity",
    "ChangeEvent",
    "ChangeFeed",
    "ChangeKind",
    "LedgerEchoFilter",
    "apply_inventory_change",
    "apply_ledger_change",
    "apply_order_change",
]
