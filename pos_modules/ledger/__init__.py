"""
Ledger Module (``pos_modules.ledger``).

Manual income and expense entry, split-bill checkout by category, entry
edits and the once-a-day fixed-cost booking.
"""

from pos_modules.ledger.models import CheckoutResult, DraftLine, LineKind, TransactionDraft
from pos_modules.ledger.service import LedgerService

__all__ = [
    "CheckoutResult",
    "DraftLine",
    "LedgerService",
    "LineKind",
    "TransactionDraft",
]
