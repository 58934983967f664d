"""
Model training orchestrator for the price inference analysis.
Fits every model on every variable subset and collects test MSE and
ranked feature importance.
"""

from typing import Dict, List, Any, Optional, Tuple, Union
import pandas as pd
import numpy as np
from datetime import datetime
import logging
from pathlib import Path
import json

from .base_model import BaseRegressor
from .regressors import REGRESSION_MODELS, create_regressor, model_kwargs_from_config, available_models
from .validation import ModelEvaluator
from ..features.split_scale import scale_split
from ..features.subsets import VARIABLE_SUBSETS, subset_columns
from ..models.data_models import AnalysisReport, ModelResult, ScaledView, SplitDatasets
from ..utils.config import PipelineConfig
from ..utils.exceptions import DataValidationError, ModelTrainingError

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ModelTrainer:
    """
    Orchestrates the model x variable-subset comparison.
    Each fit works on its own copies of the Train/Test tables.
    """

    def __init__(self,
                 config: Optional[PipelineConfig] = None,
                 model_types: Optional[List[str]] = None,
                 subsets: Optional[List[str]] = None):
        """
        Initialize the model trainer.

        Args:
            config: Pipeline configuration supplying model settings
            model_types: Registry names of the models to fit (all by default)
            subsets: Variable subsets to compare (all by default)
        """
        self.config = config or PipelineConfig()
        self.model_types = model_types or available_models()
        self.subsets = subsets or list(VARIABLE_SUBSETS)
        self.evaluator = ModelEvaluator()

        for model_type in self.model_types:
            if model_type not in REGRESSION_MODELS:
                raise ValueError(f"Unknown model type: {model_type}")
        for subset in self.subsets:
            if subset not in VARIABLE_SUBSETS:
                raise ValueError(f"Unknown variable subset: {subset}")

        # Training history
        self.training_history = []
        self.trained_models: Dict[Tuple[str, str], BaseRegressor] = {}

        logger.info(f"ModelTrainer initialized: models={self.model_types}, subsets={self.subsets}")

    def train_single_model(self,
                           model: BaseRegressor,
                           X_train: pd.DataFrame,
                           y_train: pd.Series,
                           X_test: pd.DataFrame,
                           y_test: pd.Series,
                           subset: str = 'all') -> ModelResult:
        """
        Fit one model and score it on the test set.

        Args:
            model: Model instance to train
            X_train: Training features
            y_train: Training target
            X_test: Test features
            y_test: Test target
            subset: Name of the variable subset the features belong to

        Returns:
            ModelResult with test MSE and ranked importances

        Raises:
            ModelTrainingError: If fitting or prediction rejects the data
        """
        logger.info(f"Training {model.model_name} on '{subset}' variables ({X_train.shape[1]} features)")
        training_start = datetime.now()

        try:
            model.fit(X_train, y_train)
            y_test_pred = model.predict(X_test)
        except Exception as e:
            logger.error(f"{model.model_name} on '{subset}' failed: {e}")
            self.training_history.append({
                'model_name': model.model_name,
                'subset': subset,
                'training_start': training_start,
                'error': str(e),
                'success': False,
            })
            if isinstance(e, ValueError):
                raise ModelTrainingError(f"'{subset}' variables: {e}", model.model_name) from e
            raise

        test_metrics = self.evaluator.evaluate_model(y_test.values, y_test_pred, ['mse', 'rmse', 'r2'])
        model.test_metrics = test_metrics
        training_duration = (datetime.now() - training_start).total_seconds()

        result = ModelResult(
            model_name=model.model_name,
            subset=subset,
            test_mse=test_metrics['mse'],
            train_mse=float(model.training_metrics.get('mse', np.nan)),
            feature_importance=model.ranked_feature_importance(),
            n_train=len(X_train),
            n_test=len(X_test),
            parameters=model.get_model_parameters(),
        )

        self.trained_models[(model.model_name, subset)] = model
        self.training_history.append({
            'model_name': model.model_name,
            'subset': subset,
            'training_start': training_start,
            'training_duration_seconds': training_duration,
            'test_metrics': test_metrics,
            'success': True,
        })

        logger.info(f"{model.model_name} on '{subset}': test MSE {result.test_mse:.4f} "
                    f"in {training_duration:.2f} seconds")
        return result

    def run(self,
            split: SplitDatasets,
            scaled: Optional[Tuple[ScaledView, ScaledView]] = None) -> AnalysisReport:
        """
        Fit every configured model on every variable subset.

        Args:
            split: Unscaled Train/Test tables
            scaled: Independently scaled Train/Test views; computed if None

        Returns:
            AnalysisReport with one ModelResult per model x subset
        """
        target = self.config.target_column
        if scaled is None and any(REGRESSION_MODELS[m]['class'].requires_scaling for m in self.model_types):
            scaled = scale_split(split, target)

        report = AnalysisReport(n_train=len(split.train), n_test=len(split.test))

        for subset in self.subsets:
            try:
                columns = subset_columns(split.train, subset, target)
            except ValueError as e:
                raise DataValidationError(str(e), stage=f"subset:{subset}") from e

            for model_type in self.model_types:
                model = create_regressor(model_type, **model_kwargs_from_config(model_type, self.config))
                X_train, y_train, X_test, y_test = self._model_data(model, split, scaled, columns)
                report.results.append(
                    self.train_single_model(model, X_train, y_train, X_test, y_test, subset)
                )

        return report

    def _model_data(self, model: BaseRegressor, split: SplitDatasets,
                    scaled: Optional[Tuple[ScaledView, ScaledView]], columns: List[str]):
        """Private copies of the features and targets a model is fitted on."""
        target = self.config.target_column
        if model.requires_scaling:
            train_view, test_view = scaled
            return (train_view.features[columns].copy(), train_view.target.copy(),
                    test_view.features[columns].copy(), test_view.target.copy())
        return (split.train[columns].copy(), split.train[target].copy(),
                split.test[columns].copy(), split.test[target].copy())

    def get_model_comparison(self, report: AnalysisReport) -> pd.DataFrame:
        """
        Compare test MSE of all fitted models.

        Returns:
            DataFrame with one row per model x subset, best first within each subset
        """
        rows = [{
            'model': r.model_name,
            'subset': r.subset,
            'test_mse': r.test_mse,
            'train_mse': r.train_mse,
            'top_features': ', '.join(r.top_features(3)),
        } for r in report.results]

        df = pd.DataFrame(rows)
        if df.empty:
            return df
        return df.sort_values(['subset', 'test_mse']).reset_index(drop=True)

    def export_report(self, report: AnalysisReport, filepath: Union[str, Path]) -> None:
        """
        Export the analysis report to a JSON file.

        Args:
            report: Report to export
            filepath: Path to save the report
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        payload = report.to_dict()
        payload['training_history'] = [
            {k: v.isoformat() if isinstance(v, datetime) else v for k, v in record.items()}
            for record in self.training_history
        ]

        with open(filepath, 'w') as f:
            json.dump(payload, f, indent=2, default=str)

        logger.info(f"Analysis report exported to {filepath}")

    def get_training_summary(self) -> Dict[str, Any]:
        """
        Get summary of training activities.

        Returns:
            Dictionary with training summary
        """
        successful = [h for h in self.training_history if h.get('success', False)]

        summary = {
            'total_trainings': len(self.training_history),
            'successful_trainings': len(successful),
            'failed_trainings': len(self.training_history) - len(successful),
            'trained_models': len(self.trained_models),
        }

        if successful:
            durations = [h['training_duration_seconds'] for h in successful]
            summary['total_training_time'] = float(np.sum(durations))

        return summary
