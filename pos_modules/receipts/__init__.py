"""Receipt import: scanner guesses folded into purchase transactions."""

from pos_modules.receipts.models import (
    FoldedReceipt,
    RejectedLine,
    ScannedEquipmentLine,
    ScannedStockLine,
)
from pos_modules.receipts.service import ReceiptFolder

__all__ = [
    "FoldedReceipt",
    "ReceiptFolder",
    "RejectedLine",
    "ScannedEquipmentLine",
    "ScannedStockLine",
]
