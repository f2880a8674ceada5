"""
Model-independent heuristics over raw receipt text.
"""

from typing import List, Optional

from .utils import (AMOUNT_SHAPE_RE, DATE_LIKE_RE, ONLY_NUMERIC_RE, TOTAL_KEYWORDS,
                    RECEIPT_KEYWORDS, RELIABILITY_THRESHOLD)


def _has_keyword(line: str, keywords: List[str]) -> bool:
    line_lower = line.lower()
    return any(k.lower() in line_lower for k in keywords)


def extract_total_from_lines(lines: List[str]) -> str:
    """
    Extract the receipt total from OCR lines.

    The first line containing a total keyword (TOTALE, IMPORTO, PAGATO, ...)
    is taken as a label and the value is read from the line after it. When
    that yields nothing, the largest "12,34"-shaped number anywhere wins.

    Returns:
        The amount as a string, or "" if nothing looks like an amount
    """
    total_index = next(
        (i for i, line in enumerate(lines) if _has_keyword(line, TOTAL_KEYWORDS)), -1)

    if total_index != -1 and total_index + 1 < len(lines):
        candidate = lines[total_index + 1].replace(",", ".")
        candidate = "".join(c for c in candidate if c.isdecimal() or c == ".")
        if candidate:
            return candidate

    numbers = []
    for line in lines:
        for m in AMOUNT_SHAPE_RE.finditer(line):
            numbers.append(float(m.group(0).replace(",", ".")))

    return str(max(numbers)) if numbers else ""


def is_receipt_like(text: str) -> bool:
    """Quick check for receipt-like content: a keyword and an amount."""
    has_keyword = _has_keyword(text, RECEIPT_KEYWORDS)
    has_amount = AMOUNT_SHAPE_RE.search(text) is not None
    return has_keyword and has_amount


def is_extraction_reliable(debug_info) -> bool:
    """Both score arrays must have peaked above the reliability threshold."""
    return (debug_info.max_description_confidence > RELIABILITY_THRESHOLD
            and debug_info.max_amount_confidence > RELIABILITY_THRESHOLD)


def guess_description_line(lines: List[str]) -> Optional[str]:
    """
    Pick the line most likely to name the merchant or item.

    Merchant names sit near the top of a receipt, so the first line with a few
    letters that is not a total label, an amount or a date is used.
    """
    for ln in lines[:10]:
        letters = sum(c.isalpha() for c in ln)
        if letters < 3:
            continue
        if _has_keyword(ln, TOTAL_KEYWORDS):
            continue
        if ONLY_NUMERIC_RE.match(ln) or DATE_LIKE_RE.search(ln) or AMOUNT_SHAPE_RE.search(ln):
            continue
        return ln
    return None
