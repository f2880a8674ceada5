"""
Cleanup of extracted description and amount strings.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from .utils import (DECIMAL_RE, INTEGER_RE, ONLY_NUMERIC_RE, DESCRIPTION_NOISE_RE,
                    WHITESPACE_RE, FALLBACK_DESCRIPTION, MAX_DESCRIPTION_LENGTH,
                    MAX_AMOUNT)


def clean_description(raw: str) -> str:
    """
    Turn a raw extracted span into a presentable description.

    Strips OCR artifacts and currency symbols, drops purely numeric spans and
    falls back to "Receipt Item" when nothing readable is left.
    """
    cleaned = DESCRIPTION_NOISE_RE.sub("", (raw or "").strip())
    cleaned = WHITESPACE_RE.sub(" ", cleaned)
    cleaned = ONLY_NUMERIC_RE.sub("", cleaned).strip()

    if len(cleaned) < 2 or not any(c.isalpha() for c in cleaned):
        return FALLBACK_DESCRIPTION

    # "ß".upper() is "SS"; keep one char for one
    first = cleaned[0].upper()
    if len(first) != 1:
        first = cleaned[0]
    return (first + cleaned[1:])[:MAX_DESCRIPTION_LENGTH]


def _in_range(s: str) -> Optional[Decimal]:
    try:
        value = Decimal(s)
    except InvalidOperation:
        return None
    if 0 < value <= MAX_AMOUNT:
        return value
    return None


def clean_amount(raw: str) -> str:
    """Normalize an amount to a two-decimal string, or "" if it is not valid."""
    if not raw or not raw.strip():
        return ""

    cleaned = raw.replace(",", ".").strip()

    match = DECIMAL_RE.search(cleaned)
    if match:
        value = _in_range(match.group(0))
        if value is not None:
            return f"{value:.2f}"

    # e.g. "12" -> "12.00"
    match = INTEGER_RE.search(cleaned)
    if match:
        value = _in_range(match.group(0))
        if value is not None:
            return f"{value:.2f}"

    return ""
