"""
Character-level tokenizer for OCR text.

The vocabulary is closed and tiny: digits, lowercase ASCII letters, space and
the four symbols ``.``, ``,``, ``€`` and ``$``. Anything else is mapped to a
space before tokenization, so every output id is deterministic.
"""

from typing import List, Optional, Tuple

from .utils import DISALLOWED_CHARS_RE, collapse_whitespace

PAD_ID = 0
SPACE_ID = 1
DIGIT_OFFSET = 10
LETTER_OFFSET = 36

SYMBOL_IDS = {
    " ": SPACE_ID,
    ".": 2,
    ",": 3,
    "€": 4,
    "$": 5,
}


def _check_length(max_len: int):
    if not isinstance(max_len, int) or max_len <= 0:
        raise ValueError(f"max_len must be a positive integer, got {max_len!r}")


def normalize_text(text: str, max_len: Optional[int] = None) -> str:
    """Lower-case, drop out-of-vocabulary chars, collapse spaces, truncate."""
    normalized = collapse_whitespace(DISALLOWED_CHARS_RE.sub(" ", text.lower()))
    if max_len is not None:
        normalized = normalized[:max_len]
    return normalized


def char_to_id(ch: str) -> int:
    """Map one normalized character to its token id."""
    if "0" <= ch <= "9":
        return DIGIT_OFFSET + ord(ch) - ord("0")
    if "a" <= ch <= "z":
        return LETTER_OFFSET + ord(ch) - ord("a")
    return SYMBOL_IDS.get(ch, PAD_ID)


def tokenize(text: str, max_len: int) -> List[int]:
    """Tokenize text into exactly max_len ids, zero-padded on the right."""
    _check_length(max_len)
    ids = [char_to_id(ch) for ch in normalize_text(text, max_len)]
    return ids + [PAD_ID] * (max_len - len(ids))


def attention_mask(text: str, max_len: int) -> List[int]:
    """1 for positions holding real characters, 0 for padding."""
    _check_length(max_len)
    used = len(normalize_text(text, max_len))
    return [1] * used + [0] * (max_len - used)


def encode(text: str, max_len: int) -> Tuple[List[int], List[int]]:
    """Return (tokens, mask) for text."""
    return tokenize(text, max_len), attention_mask(text, max_len)
