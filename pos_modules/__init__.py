"""
POS Modules.

Thin orchestration layers over the POS kernel and engines.  Each module
validates its inputs, checks caller capabilities, delegates computation to
``pos_engines`` and hands every side effect back to the caller.

Modules:
- Orders: cart, order lifecycle, kitchen and payment
- Ledger: manual transactions, split-bill checkout, daily fixed costs
- Inventory: manual stock maintenance, suppliers, asset register
- Receipts: folding scanned purchase receipts into the ledger
- Menu: menu persistence

``pos_modules.store`` persists all of them through SQLAlchemy.
"""

from pos_modules import inventory, ledger, menu, orders, receipts

__all__ = ["inventory", "ledger", "menu", "orders", "receipts"]
