"""
Expense Uploader

Turns OCR text from photographed receipts into (description, amount) expense
rows using a sequence-scoring model with heuristic fallbacks.
"""

__version__ = "1.0.0"
__author__ = "Expense Uploader Contributors"

from expense_uploader.core.models import Expense, ExtractionResult
from expense_uploader.core.processor import ReceiptProcessor, process_receipt

__all__ = ["Expense", "ExtractionResult", "ReceiptProcessor", "process_receipt"]
