"""
Receipt Models (``pos_modules.receipts.models``).

Lines read off a scanned purchase receipt.  Values come from an untrusted
source and are parsed before any of them reaches a ledger draft.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from pos_modules.ledger.models import TransactionDraft


@dataclass(frozen=True, slots=True)
class ScannedStockLine:
    name: str
    quantity: Decimal
    unit: str
    total_price: Decimal


@dataclass(frozen=True, slots=True)
class ScannedEquipmentLine:
    name: str
    price: Decimal


@dataclass(frozen=True, slots=True)
class RejectedLine:
    raw: Any
    reason: str


@dataclass(frozen=True)
class FoldedReceipt:
    """Drafts ready for ``LedgerService.submit_transaction``, one per line."""

    drafts: tuple[TransactionDraft, ...]
    rejected: tuple[RejectedLine, ...] = ()
