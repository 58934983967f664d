"""
Scoring utilities for the price regressors.
"""

from typing import Dict, List, Optional
import numpy as np
import logging
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def mse(predictions, actual) -> float:
    """Mean of (actual - predictions)^2."""
    predictions = np.asarray(predictions, dtype=float)
    actual = np.asarray(actual, dtype=float)
    if predictions.shape != actual.shape:
        raise ValueError(f"Shape mismatch: {predictions.shape} predictions vs {actual.shape} actual values")
    if actual.size == 0:
        raise ValueError("Cannot score an empty prediction set")
    return float(mean_squared_error(actual, predictions))


class ModelEvaluator:
    """
    Model evaluation with regression metrics.
    """

    def __init__(self):
        """Initialize the model evaluator."""
        self.metrics_registry = {
            'mse': self._mean_squared_error,
            'rmse': self._root_mean_squared_error,
            'mae': self._mean_absolute_error,
            'r2': self._r_squared,
            'bias': self._bias,
        }

    def evaluate_model(self,
                       y_true: np.ndarray,
                       y_pred: np.ndarray,
                       metrics: Optional[List[str]] = None) -> Dict[str, float]:
        """
        Evaluate model performance using multiple metrics.

        Args:
            y_true: True values
            y_pred: Predicted values
            metrics: List of metrics to compute (if None, uses all)

        Returns:
            Dictionary of metric names and values
        """
        if metrics is None:
            metrics = list(self.metrics_registry.keys())

        unknown = [m for m in metrics if m not in self.metrics_registry]
        if unknown:
            raise ValueError(f"Unknown metrics: {unknown}. Available: {list(self.metrics_registry)}")

        y_true = np.asarray(y_true, dtype=float)
        y_pred = np.asarray(y_pred, dtype=float)

        results = {}
        for metric in metrics:
            results[metric] = float(self.metrics_registry[metric](y_true, y_pred))

        return results

    # Metric implementations
    def _mean_squared_error(self, y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """Calculate Mean Squared Error."""
        return mse(y_pred, y_true)

    def _root_mean_squared_error(self, y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """Calculate Root Mean Squared Error."""
        return np.sqrt(mse(y_pred, y_true))

    def _mean_absolute_error(self, y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """Calculate Mean Absolute Error."""
        return mean_absolute_error(y_true, y_pred)

    def _r_squared(self, y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """Calculate R-squared."""
        if len(y_true) < 2:
            return np.nan
        return r2_score(y_true, y_pred)

    def _bias(self, y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """Calculate prediction bias (mean of residuals)."""
        return np.mean(y_pred - y_true)
