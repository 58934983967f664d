"""
Custom exceptions for the electricity price inference pipeline.

Every error is terminal for a run and carries the stage it was raised in,
so a failure can be diagnosed without re-deriving intermediate tables.
"""

from typing import Iterable, Optional


class PriceInferenceError(Exception):
    """Base exception for the price inference pipeline."""

    def __init__(self, message: str, stage: Optional[str] = None):
        self.stage = stage
        if stage:
            message = f"[{stage}] {message}"
        super().__init__(message)


class SourceReadError(PriceInferenceError):
    """Raised when an input source is absent, malformed or empty."""

    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot read source '{self.path}': {reason}", stage="load")


class DataValidationError(PriceInferenceError):
    """Raised when a loaded or intermediate table violates a data invariant."""
    pass


class AlignmentError(PriceInferenceError):
    """Raised when per-city weather tables disagree on their timestamp domain."""

    def __init__(self, city: str, missing: int, extra: int, reference_city: str,
                 stage: str = "aggregate_weather"):
        self.city = city
        self.missing = missing
        self.extra = extra
        self.reference_city = reference_city
        super().__init__(
            f"City '{city}' does not share the timestamp domain of '{reference_city}': "
            f"{missing} timestamps missing, {extra} unexpected",
            stage=stage,
        )


class ExcessiveMissingnessError(PriceInferenceError):
    """Raised when missing values exceed the configured threshold."""

    def __init__(self, missing: int, total: int, threshold: float, stage: str = "filter_rows"):
        self.missing = missing
        self.total = total
        self.threshold = threshold
        fraction = missing / total if total else 0.0
        super().__init__(
            f"{missing} of {total} rows ({fraction:.2%}) contain missing values, "
            f"above the allowed {threshold:.2%}",
            stage=stage,
        )


class SchemaMismatchError(PriceInferenceError):
    """Raised when a configured column reference is absent from the table."""

    def __init__(self, columns: Iterable[str], stage: str, available: Optional[Iterable[str]] = None):
        self.columns = list(columns)
        self.available = list(available) if available is not None else []
        message = f"Columns not found in table: {self.columns}"
        if self.available:
            message += f" (available: {self.available})"
        super().__init__(message, stage=stage)


class ModelTrainingError(PriceInferenceError):
    """Exception raised during model fitting or scoring."""

    def __init__(self, message: str, model_name: Optional[str] = None):
        self.model_name = model_name
        super().__init__(message, stage=f"fit:{model_name}" if model_name else "fit")
