"""
Utility functions and constants for receipt processing.
"""

import re
import datetime as dt
from pathlib import Path
from typing import Iterable, List

# File type constants
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".webp"}
PDF_EXTS = {".pdf"}

DEFAULT_MODEL_FILE = "mobilebert-tflite-default-v1.tflite"

# Sentinels returned instead of raising
FALLBACK_DESCRIPTION = "Receipt Item"
EMPTY_TEXT_DESCRIPTION = "No text found in image"
ERROR_DESCRIPTION = "Error processing image"

# Extraction / normalization tuning
DESCRIPTION_WINDOW = 20
MAX_DESCRIPTION_LENGTH = 50
MAX_AMOUNT = 99999
RELIABILITY_THRESHOLD = 0.3

# Pattern constants for parsing
DISALLOWED_CHARS_RE = re.compile(r"[^a-z0-9\s.,€$]")
WHITESPACE_RE = re.compile(r"\s+")
AMOUNT_CANDIDATE_RE = re.compile(r"[0-9]+[.,][0-9]{1,2}")   # 12,5 / 12.50
AMOUNT_SHAPE_RE = re.compile(r"[0-9]+[.,][0-9]{2}")         # exactly two decimals
DECIMAL_RE = re.compile(r"[0-9]+\.[0-9]{1,2}")
INTEGER_RE = re.compile(r"[0-9]+")
ONLY_NUMERIC_RE = re.compile(r"^[\d.,]+$")
DESCRIPTION_NOISE_RE = re.compile(r"[*#@€$]+")
DATE_LIKE_RE = re.compile(r"\b\d{1,4}[-/.]\d{1,2}[-/.]\d{2,4}\b")

# Order matters: the first keyword line wins
TOTAL_KEYWORDS = [
    "TOTALE COMPLESSIVO",
    "Pagamento",
    "TOTALE",
    "IMPORTO",
    "TOTALE(EUR)",
    "TOTALE PAGATO",
    "PAGATO",
    "PAGAMENTO",
    "IMPORTO TOTALE",
    "TOT.",
]

RECEIPT_KEYWORDS = [
    "total", "totale", "receipt", "scontrino", "€", "$",
    "tax", "iva", "payment", "pagamento", "cash", "card",
]

EXPENSE_COLUMNS = ["date", "description", "amount", "currency", "category", "method"]


def collapse_whitespace(s: str) -> str:
    """Collapse whitespace runs to one space and trim."""
    return WHITESPACE_RE.sub(" ", s).strip()


def split_lines(text: str) -> List[str]:
    """Split OCR text into stripped, non-empty lines."""
    return [ln.strip() for ln in text.splitlines() if ln.strip()]


def discover_files(paths: Iterable[Path]) -> List[Path]:
    """Expand files and directories into a sorted list of receipt files."""
    exts = IMAGE_EXTS.union(PDF_EXTS)
    files = []
    for p in paths:
        if p.is_dir():
            files.extend(c for c in p.iterdir() if c.suffix.lower() in exts)
        else:
            files.append(p)
    return sorted(files, key=lambda p: p.name)


def today_parts() -> List[str]:
    """Return today's date as [year, month, day] strings."""
    today = dt.date.today()
    return [str(today.year), str(today.month), str(today.day)]


def money_fmt(amount: str, currency: str = "EUR") -> str:
    """Format a cleaned amount for console output."""
    if not amount:
        return "(none)"
    symbol = {"EUR": "€", "USD": "$"}.get(currency.upper(), currency + " ")
    return f"{symbol}{amount}"
