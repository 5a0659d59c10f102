"""
POS Kernel - shared core of the stall point-of-sale books.

- Typed exceptions with machine-readable codes
- Structured JSON logging with shift-scoped context
- Injectable clock
- Immutable domain records (orders, ledger, inventory, menu)
- SQLAlchemy persistence and change feed
"""

__version__ = "0.1.0"
