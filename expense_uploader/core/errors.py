"""
Exceptions raised by the receipt pipeline.
"""


class ExpenseUploaderError(Exception):
    """Base class for pipeline errors."""


class ModelLoadError(ExpenseUploaderError):
    """The scoring model is missing, unreadable or has an unexpected signature."""


class InferenceError(ExpenseUploaderError):
    """A scoring call could not complete (shape mismatch or backend failure)."""
