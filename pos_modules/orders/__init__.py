"""
Orders Module (``pos_modules.orders``).

Responsibility
--------------
Cart editing and the order lifecycle: creation with a cyclic queue
number, sending to the kitchen, status changes, payment and void.  Stock
deduction is delegated to ``pos_engines.stock_ledger``; ledger entries are
built here and handed to the caller through capabilities.

Architecture
------------
Layer: **Modules**.  Imports from ``pos_engines``, ``pos_kernel`` and
``pos_config`` but never the reverse.
"""

from pos_modules.orders.cart import Cart
from pos_modules.orders.models import (
    FulfillmentRequest,
    PaymentDetails,
    PaymentRequest,
    TransitionResult,
)
from pos_modules.orders.service import OrderLifecycleManager

__all__ = [
    "Cart",
    "FulfillmentRequest",
    "OrderLifecycleManager",
    "PaymentDetails",
    "PaymentRequest",
    "TransitionResult",
]
