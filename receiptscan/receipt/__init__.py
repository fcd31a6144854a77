from receiptscan.receipt.base import Expense, LegacyExpense, ReceiptExtractor, ReceiptModel
from receiptscan.receipt.errors import ExtractionError
from receiptscan.receipt.factory import get_receipt_extractor

__all__ = [
    "Expense",
    "ExtractionError",
    "LegacyExpense",
    "ReceiptExtractor",
    "ReceiptModel",
    "get_receipt_extractor",
]
