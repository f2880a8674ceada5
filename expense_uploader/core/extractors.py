"""
Turn per-position model scores into description and amount strings, and the
extraction strategies built on top of them.

Two strategies share one capability, ``extract(ocr_text) -> ExtractionResult``:
``ModelExtractor`` scores the text with the sequence model and
``HeuristicExtractor`` reads keywords and amount patterns directly.
``CombinedExtractor`` uses one as a cross-check for the other.
"""

from typing import Optional, Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .models import ExtractionResult, ScorePair
from .normalizers import clean_amount, clean_description
from .parsers import extract_total_from_lines, guess_description_line
from .utils import AMOUNT_CANDIDATE_RE, DESCRIPTION_WINDOW, FALLBACK_DESCRIPTION, split_lines


def extract_description(original_text: str, description_scores: Sequence[float],
                        window: int = DESCRIPTION_WINDOW) -> str:
    """
    Return the window-sized span of text with the highest mean description score.

    Ties go to the earliest window. When the text or the score array is not
    longer than the window, no span qualifies and "Receipt Item" is returned.
    """
    scores = np.asarray(description_scores, dtype=np.float64)
    n_windows = min(len(scores), len(original_text)) - window
    if n_windows <= 0:
        return FALLBACK_DESCRIPTION

    means = sliding_window_view(scores[:n_windows + window - 1], window).mean(axis=1)
    best_start = int(np.argmax(means))  # first maximum

    end = min(best_start + window, len(original_text))
    extracted = original_text[best_start:end].strip()
    return extracted or FALLBACK_DESCRIPTION


def _span_confidence(scores: np.ndarray, start: int, end: int) -> float:
    in_bounds = scores[start:min(end, len(scores))]
    if in_bounds.size == 0:
        return 0.0
    return float(in_bounds.mean())


def extract_amount(original_text: str, amount_scores: Sequence[float]) -> str:
    """
    Return the amount-shaped match with the highest mean amount score.

    Scores past the end of the array are ignored; a match entirely outside it
    has confidence 0. Ties go to the leftmost match. Decimal commas are
    returned as dots.
    """
    scores = np.asarray(amount_scores, dtype=np.float64)
    best_value = ""
    best_conf = None
    for m in AMOUNT_CANDIDATE_RE.finditer(original_text):
        conf = _span_confidence(scores, m.start(), m.end())
        if best_conf is None or conf > best_conf:
            best_conf = conf
            best_value = m.group(0).replace(",", ".")
    return best_value


def extract_from_scores(output: ScorePair) -> ExtractionResult:
    """Raw (uncleaned) description and amount from one ScorePair."""
    return ExtractionResult(
        extract_description(output.original_text, output.description_scores),
        extract_amount(output.original_text, output.amount_scores),
    )


class ModelExtractor:
    """Extraction through the sequence-scoring model."""

    name = "model"

    def __init__(self, handle):
        self.handle = handle

    def extract(self, ocr_text: str) -> ExtractionResult:
        raw = extract_from_scores(self.handle.process_text(ocr_text))
        return ExtractionResult(clean_description(raw.description), clean_amount(raw.amount))


class HeuristicExtractor:
    """Keyword and regex extraction; never touches the model."""

    name = "heuristic"

    def extract(self, ocr_text: str) -> ExtractionResult:
        lines = split_lines(ocr_text)
        description = clean_description(guess_description_line(lines) or "")
        amount = clean_amount(extract_total_from_lines(lines))
        return ExtractionResult(description, amount)


class CombinedExtractor:
    """
    Primary strategy with gaps filled from a fallback strategy.

    An empty primary amount is replaced by the fallback amount, and the
    "Receipt Item" placeholder by a real fallback description. When both
    strategies find different amounts the primary one is kept and reported.
    """

    name = "combined"

    def __init__(self, primary, fallback, verbose: bool = False):
        self.primary = primary
        self.fallback = fallback
        self.verbose = verbose
        self.last_disagreement: Optional[tuple] = None

    def extract(self, ocr_text: str) -> ExtractionResult:
        first = self.primary.extract(ocr_text)
        second = self.fallback.extract(ocr_text)

        description = first.description
        if description == FALLBACK_DESCRIPTION and second.description != FALLBACK_DESCRIPTION:
            description = second.description

        amount = first.amount or second.amount
        self.last_disagreement = None
        if first.amount and second.amount and first.amount != second.amount:
            self.last_disagreement = (first.amount, second.amount)
            if self.verbose:
                print(f"  [DEBUG] {self.primary.name} amount {first.amount} differs from "
                      f"{self.fallback.name} amount {second.amount}")

        return ExtractionResult(description, amount)
