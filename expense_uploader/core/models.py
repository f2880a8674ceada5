"""
Data models for receipt processing.
"""

from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional

import numpy as np

from .utils import today_parts


class ExtractionResult(NamedTuple):
    """Clean (description, amount) pair for one receipt."""
    description: str
    amount: str


class BatchItem(NamedTuple):
    """Result of one image in a batch; error is None on success."""
    image: object
    description: str
    amount: str
    error: Optional[str] = None


@dataclass(frozen=True)
class ScorePair:
    """Raw per-position model output for one receipt."""
    original_text: str
    description_scores: np.ndarray
    amount_scores: np.ndarray
    tokenized_input: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class DebugInfo:
    """Confidence summary of a single inference call."""
    scores: ScorePair
    tokenized_length: int
    description_confidence_avg: float
    amount_confidence_avg: float
    max_description_confidence: float
    max_amount_confidence: float
    extracted_description: str
    extracted_amount: str

    @property
    def original_text(self) -> str:
        return self.scores.original_text

    @property
    def reliable(self) -> bool:
        from .parsers import is_extraction_reliable
        return is_extraction_reliable(self)


@dataclass
class Expense:
    """Represents a single expense entry."""
    year: str
    month: str
    day: str
    description: str
    amount: str
    currency: str
    category: str
    method: str

    @classmethod
    def from_result(cls, result: ExtractionResult, date: Optional[str] = None,
                    currency: str = "EUR", category: str = "",
                    method: str = "") -> "Expense":
        """
        Build an expense from an extraction result.

        Args:
            result: Cleaned (description, amount)
            date: "YYYY-MM-DD"; today when not given
            currency: Currency code
            category: Caller-supplied category column
            method: Caller-supplied payment method column
        """
        if date:
            year, month, day = date.split("-")
        else:
            year, month, day = today_parts()
        return cls(year, month, day, result.description, result.amount,
                   currency, category, method)

    def to_row(self) -> List[str]:
        """Convert to the ordered column list expected by row sinks."""
        return [
            f"{self.year}-{self.month}-{self.day}",
            self.description,
            self.amount,
            self.currency,
            self.category,
            self.method,
        ]
