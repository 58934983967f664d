"""
Base model interface for the price inference regressors.
Provides the common fit/predict/importance contract shared by every model.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Any, Optional, Tuple
import pandas as pd
import numpy as np
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class BaseRegressor(ABC):
    """
    Abstract base class for all price regressors.
    Defines the common interface that all models must implement.
    """

    # Whether the model must be fed z-score normalized features
    requires_scaling = False

    def __init__(self, model_name: str, model_type: str, **kwargs):
        """
        Initialize the base regressor.

        Args:
            model_name: Human-readable name for the model
            model_type: Type category (e.g., 'linear', 'tree', 'ensemble')
            **kwargs: Additional model-specific parameters
        """
        self.model_name = model_name
        self.model_type = model_type
        self.parameters = kwargs
        self.is_fitted = False
        self.feature_names = []
        self.target_name = ""

        # Hyper-parameters chosen during fitting (e.g. by cross-validation)
        self.selected_parameters = {}
        self.training_metrics = {}
        self.test_metrics = {}

        logger.info(f"Initialized {self.model_type} model: {self.model_name}")

    @abstractmethod
    def fit(self, X: pd.DataFrame, y: pd.Series, **kwargs) -> 'BaseRegressor':
        """
        Train the model on the provided data.

        Args:
            X: Feature matrix
            y: Target variable
            **kwargs: Additional training parameters

        Returns:
            Self for method chaining
        """
        pass

    @abstractmethod
    def predict(self, X: pd.DataFrame, **kwargs) -> np.ndarray:
        """
        Generate predictions using the trained model.

        Args:
            X: Feature matrix for prediction
            **kwargs: Additional prediction parameters

        Returns:
            Array of predictions
        """
        pass

    @abstractmethod
    def get_feature_importance(self) -> Optional[Dict[str, float]]:
        """
        Get feature importance scores.

        Returns:
            Dictionary mapping feature names to importance scores, or None if unfitted
        """
        pass

    def ranked_feature_importance(self) -> List[Tuple[str, float]]:
        """Feature importances sorted from most to least important."""
        importance = self.get_feature_importance()
        if not importance:
            return []
        return sorted(importance.items(), key=lambda item: abs(item[1]), reverse=True)

    def get_model_parameters(self) -> Dict[str, Any]:
        """
        Get model parameters and hyperparameters.

        Returns:
            Dictionary of configured and selected parameters
        """
        parameters = self.parameters.copy()
        parameters.update(self.selected_parameters)
        return parameters

    def _check_fitted(self) -> None:
        if not self.is_fitted:
            raise ValueError("Model must be fitted before prediction")

    def _record_fit(self, X: pd.DataFrame, y: pd.Series) -> None:
        self.feature_names = list(X.columns)
        self.target_name = y.name or 'target'
        self.is_fitted = True

    def validate_input(self, X: pd.DataFrame, y: Optional[pd.Series] = None) -> None:
        """
        Validate input data format and consistency.

        Args:
            X: Feature matrix
            y: Target variable (optional)

        Raises:
            ValueError: If input data is invalid
        """
        if not isinstance(X, pd.DataFrame):
            raise ValueError("X must be a pandas DataFrame")

        if X.empty:
            raise ValueError("X cannot be empty")

        if X.isnull().values.any():
            raise ValueError("X cannot contain null values")

        if y is not None:
            if not isinstance(y, pd.Series):
                raise ValueError("y must be a pandas Series")

            if len(X) != len(y):
                raise ValueError("X and y must have the same number of samples")

            if y.isnull().any():
                raise ValueError("y cannot contain null values")

        # Check for required features if model is fitted
        if self.is_fitted and self.feature_names:
            missing_features = set(self.feature_names) - set(X.columns)
            if missing_features:
                raise ValueError(f"Missing required features: {missing_features}")

    def __str__(self) -> str:
        """String representation of the model."""
        return f"{self.model_type.title()}Model({self.model_name})"

    def __repr__(self) -> str:
        """Detailed string representation of the model."""
        return f"{self.__class__.__name__}(name='{self.model_name}', type='{self.model_type}', fitted={self.is_fitted})"
