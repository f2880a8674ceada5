"""
Scoring model adapter over a LiteRT (TFLite) interpreter.

The model takes two ``[1, L]`` integer tensors (token ids and attention mask)
and returns two ``[1, L_out]`` float tensors: per-position scores for
"part of the description" and "part of the amount". ``L`` and both output
lengths are read from the interpreter at load time.
"""

import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import numpy as np

from .errors import InferenceError, ModelLoadError
from .models import ScorePair
from .tokenizer import encode


def _default_interpreter_factory(model_path: Path):
    """Create and allocate a LiteRT interpreter (lazy import)."""
    from ai_edge_litert.interpreter import Interpreter
    interpreter = Interpreter(model_path=model_path.as_posix())
    interpreter.allocate_tensors()
    return interpreter


def _trailing_dim(shape) -> int:
    shape = [int(d) for d in shape]
    if not shape:
        raise ModelLoadError("Tensor has no dimensions")
    return shape[-1]


class ScoringModel:
    """A loaded scoring model with its discovered tensor layout."""

    def __init__(self, interpreter):
        self.interpreter = interpreter
        self.input_details = list(interpreter.get_input_details())
        self.output_details = list(interpreter.get_output_details())

        if len(self.input_details) != 2:
            raise ModelLoadError(
                f"Expected 2 input tensors (ids, mask), found {len(self.input_details)}")
        if len(self.output_details) < 2:
            raise ModelLoadError(
                f"Expected 2 output tensors (description, amount), found {len(self.output_details)}")

        self.ids_detail, self.mask_detail = self._split_inputs(self.input_details)
        self.description_detail, self.amount_detail = self.output_details[:2]

        self.max_sequence_length = _trailing_dim(self.ids_detail["shape"])
        if _trailing_dim(self.mask_detail["shape"]) != self.max_sequence_length:
            raise ModelLoadError("Token id and attention mask inputs differ in length")
        self.description_length = _trailing_dim(self.description_detail["shape"])
        self.amount_length = _trailing_dim(self.amount_detail["shape"])

    @staticmethod
    def _split_inputs(details):
        """Pick (ids, mask) by tensor name, falling back to declared order."""
        masks = [d for d in details if "mask" in str(d.get("name", "")).lower()]
        if len(masks) == 1:
            ids = [d for d in details if d is not masks[0]][0]
            return ids, masks[0]
        return details[0], details[1]

    def describe(self) -> List[str]:
        """Human-readable summary of the model's tensors."""
        lines = [f"Input tensor count: {len(self.input_details)}",
                 f"Output tensor count: {len(self.output_details)}"]
        for kind, details in (("Input", self.input_details), ("Output", self.output_details)):
            for i, d in enumerate(details):
                shape = [int(x) for x in d["shape"]]
                dtype = getattr(d.get("dtype"), "__name__", d.get("dtype"))
                lines.append(f"{kind} {i}: {d.get('name', '')}, shape: {shape}, type: {dtype}")
        return lines

    def _as_input(self, values: Sequence[int], detail) -> np.ndarray:
        if len(values) != self.max_sequence_length:
            raise InferenceError(
                f"Input length {len(values)} does not match model length {self.max_sequence_length}")
        dtype = detail.get("dtype") or np.int32
        return np.asarray(values, dtype=dtype).reshape(1, self.max_sequence_length)

    def _read_output(self, detail, expected: int) -> np.ndarray:
        raw = np.asarray(self.interpreter.get_tensor(detail["index"]))
        if raw.ndim == 0 or raw.shape[-1] != expected:
            raise InferenceError(
                f"Output '{detail.get('name', detail['index'])}' has shape {raw.shape}, "
                f"expected trailing length {expected}")
        return raw.reshape(-1, expected)[0].astype(np.float32)

    def score(self, tokens: Sequence[int], mask: Sequence[int],
              original_text: str = "") -> ScorePair:
        """
        Run one inference call.

        Args:
            tokens: Token ids, exactly max_sequence_length long
            mask: Attention mask of the same length
            original_text: OCR text the tokens were computed from

        Returns:
            ScorePair with description and amount scores
        """
        ids_tensor = self._as_input(tokens, self.ids_detail)
        mask_tensor = self._as_input(mask, self.mask_detail)
        try:
            self.interpreter.set_tensor(self.ids_detail["index"], ids_tensor)
            self.interpreter.set_tensor(self.mask_detail["index"], mask_tensor)
            self.interpreter.invoke()
            description_scores = self._read_output(self.description_detail, self.description_length)
            amount_scores = self._read_output(self.amount_detail, self.amount_length)
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"Model invocation failed: {e}") from e

        return ScorePair(
            original_text=original_text,
            description_scores=description_scores,
            amount_scores=amount_scores,
            tokenized_input=list(tokens),
        )

    def process_text(self, text: str) -> ScorePair:
        """Tokenize text with the model's sequence length and score it."""
        tokens, mask = encode(text, self.max_sequence_length)
        return self.score(tokens, mask, original_text=text)

    def close(self):
        """Drop the interpreter; LiteRT frees its buffers on collection."""
        close = getattr(self.interpreter, "close", None)
        if callable(close):
            close()
        self.interpreter = None


class ModelHandle:
    """
    Owns the lifetime of one ScoringModel.

    Loading is lazy and happens at most once: concurrent first callers block on
    the same lock and reuse the loaded model. Inference goes through the same
    lock, so one handle runs one call at a time.
    """

    def __init__(self, model_path, interpreter_factory: Optional[Callable] = None):
        self.model_path = Path(model_path)
        self.interpreter_factory = interpreter_factory or _default_interpreter_factory
        self._lock = threading.Lock()
        self._model: Optional[ScoringModel] = None
        self.load_count = 0

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def _load(self) -> ScoringModel:
        if not self.model_path.is_file():
            raise ModelLoadError(f"Model file not found: {self.model_path}")
        try:
            interpreter = self.interpreter_factory(self.model_path)
        except Exception as e:
            raise ModelLoadError(f"Could not load model {self.model_path.name}: {e}") from e
        try:
            model = ScoringModel(interpreter)
        except Exception as e:
            close = getattr(interpreter, "close", None)
            if callable(close):
                close()
            if isinstance(e, ModelLoadError):
                raise
            raise ModelLoadError(f"Could not load model {self.model_path.name}: {e}") from e
        self.load_count += 1
        return model

    def _ensure_loaded(self) -> ScoringModel:
        if self._model is None:
            self._model = self._load()
        return self._model

    def acquire(self) -> ScoringModel:
        """Return the loaded model, loading it on first use."""
        with self._lock:
            return self._ensure_loaded()

    def release(self):
        """Free the model; the next acquire() loads it again."""
        with self._lock:
            if self._model is not None:
                self._model.close()
            self._model = None

    def score(self, tokens: Sequence[int], mask: Sequence[int],
              original_text: str = "") -> ScorePair:
        with self._lock:
            return self._ensure_loaded().score(tokens, mask, original_text)

    def process_text(self, text: str) -> ScorePair:
        with self._lock:
            return self._ensure_loaded().process_text(text)

    def __enter__(self) -> "ModelHandle":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
