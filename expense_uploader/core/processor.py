"""
Main receipt processing orchestration.
"""

from typing import Callable, Iterable, List, Optional

import numpy as np

from .errors import ModelLoadError
from .extractors import (CombinedExtractor, HeuristicExtractor, ModelExtractor,
                         extract_from_scores)
from .models import BatchItem, DebugInfo, ExtractionResult
from .ocr import perform_ocr
from .parsers import is_receipt_like
from .utils import EMPTY_TEXT_DESCRIPTION, ERROR_DESCRIPTION

STRATEGIES = ("model", "heuristic", "combined")

ProgressCallback = Callable[[int, int], None]


def _stat(values: np.ndarray, fn) -> float:
    return float(fn(values)) if len(values) else 0.0


class ReceiptProcessor:
    """Runs OCR text through the selected extraction strategy."""

    def __init__(self, handle=None, strategy: str = "model",
                 ocr: Callable[[object], str] = perform_ocr,
                 verbose: bool = False):
        """
        Initialize receipt processor.

        Args:
            handle: ModelHandle for the scoring model (required unless strategy is "heuristic")
            strategy: "model", "heuristic" or "combined"
            ocr: Callable turning an image reference into text
            verbose: Whether to show verbose debugging output
        """
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy '{strategy}'. Must be one of: {', '.join(STRATEGIES)}")
        if strategy != "heuristic" and handle is None:
            raise ValueError(f"Strategy '{strategy}' needs a model handle")

        self.handle = handle
        self.strategy = strategy
        self.ocr = ocr
        self.verbose = verbose
        self.extractor = self._create_extractor()

    def _create_extractor(self):
        if self.strategy == "heuristic":
            return HeuristicExtractor()
        model = ModelExtractor(self.handle)
        if self.strategy == "model":
            return model
        return CombinedExtractor(model, HeuristicExtractor(), verbose=self.verbose)

    def process_receipt(self, ocr_text: str) -> ExtractionResult:
        """Extract a clean (description, amount) pair from OCR text."""
        if not ocr_text or not ocr_text.strip():
            return ExtractionResult(EMPTY_TEXT_DESCRIPTION, "")

        result = self.extractor.extract(ocr_text)

        if self.verbose:
            print(f"  [DEBUG] Strategy: {self.strategy}")
            print(f"  [DEBUG] Description: '{result.description}'")
            print(f"  [DEBUG] Amount: {result.amount or '(none)'}")
            if not result.amount:
                print(f"  [WARN] Could not extract amount. Check OCR quality.")
        return result

    def process_batch(self, images: Iterable,
                      progress_callback: Optional[ProgressCallback] = None) -> List[BatchItem]:
        """
        Process images one at a time.

        A failing item becomes an error entry and the batch continues; only a
        model that cannot be loaded stops the batch.

        Returns:
            One BatchItem per image, in input order
        """
        images = list(images)
        total = len(images)
        results = []

        for index, image in enumerate(images):
            try:
                text = self.ocr(image)
                description, amount = self.process_receipt(text)
                results.append(BatchItem(image, description, amount))
            except ModelLoadError:
                raise
            except Exception as e:
                print(f"[ERROR] Failed {image}: {e}")
                results.append(BatchItem(image, ERROR_DESCRIPTION, "", str(e)))
            if progress_callback is not None:
                progress_callback(index + 1, total)

        return results

    def debug_info(self, ocr_text: str) -> DebugInfo:
        """Score OCR text and summarize model confidence."""
        if self.handle is None:
            raise ValueError("Debug info needs a model handle")
        output = self.handle.process_text(ocr_text)
        raw = extract_from_scores(output)
        desc = output.description_scores
        amt = output.amount_scores
        return DebugInfo(
            scores=output,
            tokenized_length=len(output.tokenized_input),
            description_confidence_avg=_stat(desc, np.mean),
            amount_confidence_avg=_stat(amt, np.mean),
            max_description_confidence=_stat(desc, np.max),
            max_amount_confidence=_stat(amt, np.max),
            extracted_description=raw.description,
            extracted_amount=raw.amount,
        )

    def is_receipt(self, ocr_text: str) -> bool:
        return is_receipt_like(ocr_text)


def process_receipt(ocr_text: str, handle) -> ExtractionResult:
    """Model-based extraction of (description, amount) from OCR text."""
    return ReceiptProcessor(handle).process_receipt(ocr_text)
