"""
Caller capabilities (``pos_modules.capabilities``).

Responsibility
--------------
Services never write to storage themselves.  The caller hands them a
``Capabilities`` bundle of callables; each operation checks, before doing
any work, that every capability it will need is present.

Failure Modes
-------------
- ``MissingCapabilityError`` when a required callable is ``None``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

from pos_kernel.exceptions import MissingCapabilityError
from pos_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from pos_kernel.domain.inventory import InventoryItem
    from pos_kernel.domain.ledger import LedgerItem
    from pos_kernel.domain.orders import OrderStatus
    from pos_modules.inventory.models import Supplier
    from pos_modules.orders.models import FulfillmentRequest, PaymentRequest

logger = get_logger("modules.capabilities")


@dataclass(frozen=True)
class Capabilities:
    """Side-effect callables granted by the caller.  Absent means not allowed."""

    send_to_fulfillment: Callable[[FulfillmentRequest], Any] | None = None
    collect_payment: Callable[[PaymentRequest], Any] | None = None
    add_inventory_item: Callable[[InventoryItem], Any] | None = None
    update_inventory_batch: Callable[[tuple[InventoryItem, ...]], Any] | None = None
    add_ledger_entry: Callable[[LedgerItem], Any] | None = None
    update_ledger_entry: Callable[[LedgerItem], Any] | None = None
    update_order_status: Callable[[str, OrderStatus], Any] | None = None
    add_supplier: Callable[[Supplier], Any] | None = None

    def granted(self) -> frozenset[str]:
        return frozenset(f.name for f in fields(self) if getattr(self, f.name) is not None)

    def require(self, *names: str, operation: str = "") -> None:
        """Raise MissingCapabilityError for the first absent capability."""
        for name in names:
            if getattr(self, name, None) is None:
                logger.error(
                    "capability_missing",
                    extra={"capability": name, "operation": operation},
                )
                raise MissingCapabilityError(name, operation)
