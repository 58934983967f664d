"""
Regression models used to rank price predictors.
Implements a cross-validated Lasso, a cost-complexity-pruned decision tree
and a bagged ensemble of trees, all backed by scikit-learn.
"""

import numpy as np
import pandas as pd
from typing import Dict, List, Any, Optional
import logging
from sklearn.ensemble import RandomForestRegressor
from sklearn.inspection import permutation_importance
from sklearn.linear_model import LassoCV
from sklearn.metrics import mean_squared_error
from sklearn.model_selection import KFold, cross_val_score
from sklearn.tree import DecisionTreeRegressor

from .base_model import BaseRegressor
from ..utils.exceptions import ModelTrainingError

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class LassoRegressor(BaseRegressor):
    """
    L1-penalized linear model.
    The penalty strength is chosen by k-fold cross-validation over a path of
    candidate values; features must be scaled beforehand.
    """

    requires_scaling = True

    def __init__(self,
                 cv_folds: int = 5,
                 max_iter: int = 10000,
                 random_state: Optional[int] = 1,
                 n_jobs: Optional[int] = None,
                 **kwargs):
        """
        Initialize the Lasso model.

        Args:
            cv_folds: Number of cross-validation folds for the penalty search
            max_iter: Maximum coordinate descent iterations
            random_state: Seed for fold shuffling
            n_jobs: Parallel jobs for the path search
        """
        super().__init__("Lasso", "linear", cv_folds=cv_folds, max_iter=max_iter, **kwargs)
        self.cv_folds = cv_folds
        self.max_iter = max_iter
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.model = None

    def fit(self, X: pd.DataFrame, y: pd.Series, **kwargs) -> 'LassoRegressor':
        """Fit the Lasso path and keep the CV-selected penalty."""
        self.validate_input(X, y)

        folds = KFold(n_splits=self.cv_folds, shuffle=True, random_state=self.random_state)
        self.model = LassoCV(
            cv=folds,
            max_iter=self.max_iter,
            n_jobs=self.n_jobs,
            random_state=self.random_state,
        )

        try:
            self.model.fit(X.values, y.values)
        except ValueError as e:
            logger.error(f"Lasso fitting failed: {e}")
            raise ModelTrainingError(str(e), self.model_name) from e

        self._record_fit(X, y)
        self.selected_parameters = {
            'alpha': float(self.model.alpha_),
            'n_nonzero': int(np.count_nonzero(self.model.coef_)),
        }
        self.training_metrics = {'mse': mean_squared_error(y.values, self.model.predict(X.values))}

        logger.info(
            f"Lasso selected alpha={self.model.alpha_:.6f} by {self.cv_folds}-fold CV, "
            f"{self.selected_parameters['n_nonzero']}/{X.shape[1]} non-zero coefficients"
        )
        return self

    def predict(self, X: pd.DataFrame, **kwargs) -> np.ndarray:
        """Predict with the CV-selected penalty."""
        self._check_fitted()
        self.validate_input(X)
        return self.model.predict(X[self.feature_names].values)

    def get_coefficients(self) -> Optional[Dict[str, float]]:
        """Fitted coefficients at the selected penalty."""
        if not self.is_fitted:
            return None
        return dict(zip(self.feature_names, self.model.coef_.astype(float)))

    def get_feature_importance(self) -> Optional[Dict[str, float]]:
        """Coefficients on standardized features; ranked by magnitude."""
        return self.get_coefficients()


class PrunedTreeRegressor(BaseRegressor):
    """
    Single regression tree pruned by cost-complexity.
    The pruning strength (and hence the leaf count) is chosen by
    k-fold cross-validation along the tree's pruning path.
    """

    def __init__(self,
                 cv_folds: int = 5,
                 max_candidates: int = 30,
                 min_samples_split: int = 10,
                 min_samples_leaf: int = 5,
                 random_state: Optional[int] = 1,
                 n_jobs: Optional[int] = None,
                 **kwargs):
        """
        Initialize the pruned tree.

        Args:
            cv_folds: Number of cross-validation folds
            max_candidates: Maximum number of pruning strengths evaluated
            min_samples_split: Minimum node size eligible for splitting
            min_samples_leaf: Minimum observations per leaf
            random_state: Seed for tree building and fold shuffling
            n_jobs: Parallel jobs for cross-validation
        """
        super().__init__("PrunedTree", "tree", cv_folds=cv_folds, max_candidates=max_candidates,
                         min_samples_split=min_samples_split, min_samples_leaf=min_samples_leaf,
                         **kwargs)
        self.cv_folds = cv_folds
        self.max_candidates = max_candidates
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.model = None
        self.cv_results = []

    def _build_tree(self, ccp_alpha: float = 0.0) -> DecisionTreeRegressor:
        return DecisionTreeRegressor(
            min_samples_split=self.min_samples_split,
            min_samples_leaf=self.min_samples_leaf,
            ccp_alpha=ccp_alpha,
            random_state=self.random_state,
        )

    def _candidate_alphas(self, X: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Evenly spaced subset of the effective alphas along the pruning path."""
        path = self._build_tree().cost_complexity_pruning_path(X, y)
        # the last alpha prunes the tree down to its root
        alphas = np.unique(np.clip(path.ccp_alphas[:-1], 0.0, None))
        if len(alphas) == 0:
            return np.array([0.0])
        if len(alphas) > self.max_candidates:
            positions = np.linspace(0, len(alphas) - 1, self.max_candidates).round().astype(int)
            alphas = alphas[np.unique(positions)]
        return alphas

    def fit(self, X: pd.DataFrame, y: pd.Series, **kwargs) -> 'PrunedTreeRegressor':
        """Grow the tree, select the pruning strength by CV and refit."""
        self.validate_input(X, y)

        try:
            X_values, y_values = X.values, y.values
            alphas = self._candidate_alphas(X_values, y_values)
            folds = KFold(n_splits=self.cv_folds, shuffle=True, random_state=self.random_state)

            self.cv_results = []
            for alpha in alphas:
                scores = cross_val_score(self._build_tree(alpha), X_values, y_values, cv=folds,
                                         scoring='neg_mean_squared_error', n_jobs=self.n_jobs)
                self.cv_results.append({'ccp_alpha': float(alpha), 'cv_mse': float(-scores.mean())})

            # ties go to the stronger pruning, i.e. the smaller tree
            best = min(self.cv_results, key=lambda r: (r['cv_mse'], -r['ccp_alpha']))

            self.model = self._build_tree(best['ccp_alpha'])
            self.model.fit(X_values, y_values)
        except ValueError as e:
            logger.error(f"Pruned tree fitting failed: {e}")
            raise ModelTrainingError(str(e), self.model_name) from e

        self._record_fit(X, y)
        self.selected_parameters = {
            'ccp_alpha': best['ccp_alpha'],
            'n_leaves': int(self.model.get_n_leaves()),
            'depth': int(self.model.get_depth()),
            'cv_mse': best['cv_mse'],
        }
        self.training_metrics = {'mse': mean_squared_error(y_values, self.model.predict(X_values))}

        logger.info(
            f"Pruned tree selected ccp_alpha={best['ccp_alpha']:.6g} from {len(alphas)} candidates: "
            f"{self.selected_parameters['n_leaves']} leaves, CV MSE {best['cv_mse']:.4f}"
        )
        return self

    def predict(self, X: pd.DataFrame, **kwargs) -> np.ndarray:
        """Predict with the pruned tree."""
        self._check_fitted()
        self.validate_input(X)
        return self.model.predict(X[self.feature_names].values)

    def get_feature_importance(self) -> Optional[Dict[str, float]]:
        """Impurity reduction contributed by each feature in the pruned tree."""
        if not self.is_fitted:
            return None
        return dict(zip(self.feature_names, self.model.feature_importances_.astype(float)))


class BaggedTreesRegressor(BaseRegressor):
    """
    Bagged ensemble of regression trees.
    Every tree sees a bootstrap sample and considers all features at every
    split; predictions are averaged.
    """

    def __init__(self,
                 n_estimators: int = 500,
                 importance_type: str = 'impurity',
                 n_repeats: int = 5,
                 random_state: Optional[int] = 1,
                 n_jobs: Optional[int] = None,
                 **kwargs):
        """
        Initialize the bagged ensemble.

        Args:
            n_estimators: Number of bootstrap trees
            importance_type: 'impurity' for mean impurity decrease, or
                'permutation' for the MSE increase when a feature is shuffled
            n_repeats: Shuffles per feature for permutation importance
            random_state: Seed for bootstrap sampling
            n_jobs: Parallel jobs for tree building
        """
        if importance_type not in ('impurity', 'permutation'):
            raise ValueError(f"Unknown importance type: {importance_type}")
        super().__init__("BaggedTrees", "ensemble", n_estimators=n_estimators,
                         importance_type=importance_type, **kwargs)
        self.n_estimators = n_estimators
        self.importance_type = importance_type
        self.n_repeats = n_repeats
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.model = None
        self._importance = {}

    def fit(self, X: pd.DataFrame, y: pd.Series, **kwargs) -> 'BaggedTreesRegressor':
        """Fit the bootstrap trees."""
        self.validate_input(X, y)

        # max_features=None makes the forest plain bagging
        self.model = RandomForestRegressor(
            n_estimators=self.n_estimators,
            max_features=None,
            bootstrap=True,
            oob_score=True,
            random_state=self.random_state,
            n_jobs=self.n_jobs,
        )

        try:
            self.model.fit(X.values, y.values)
        except ValueError as e:
            logger.error(f"Bagged trees fitting failed: {e}")
            raise ModelTrainingError(str(e), self.model_name) from e

        self._record_fit(X, y)

        if self.importance_type == 'permutation':
            result = permutation_importance(
                self.model, X.values, y.values,
                scoring='neg_mean_squared_error',
                n_repeats=self.n_repeats,
                random_state=self.random_state,
                n_jobs=self.n_jobs,
            )
            scores = result.importances_mean
        else:
            scores = self.model.feature_importances_
        self._importance = dict(zip(self.feature_names, scores.astype(float)))

        self.selected_parameters = {'oob_r2': float(self.model.oob_score_)}
        self.training_metrics = {'mse': mean_squared_error(y.values, self.model.predict(X.values))}

        logger.info(f"Bagged {self.n_estimators} trees on {X.shape[1]} features, OOB R^2 {self.model.oob_score_:.4f}")
        return self

    def predict(self, X: pd.DataFrame, **kwargs) -> np.ndarray:
        """Average the predictions of all trees."""
        self._check_fitted()
        self.validate_input(X)
        return self.model.predict(X[self.feature_names].values)

    def get_feature_importance(self) -> Optional[Dict[str, float]]:
        """Impurity or permutation importance, depending on configuration."""
        if not self.is_fitted:
            return None
        return dict(self._importance)


# Factory function for creating regression models
def create_regressor(model_type: str, **kwargs) -> BaseRegressor:
    """
    Factory function to create regression models.

    Args:
        model_type: Type of model to create
        **kwargs: Model-specific parameters

    Returns:
        Regressor instance
    """
    models = {name: entry['class'] for name, entry in REGRESSION_MODELS.items()}

    if model_type.lower() not in models:
        available = ', '.join(models.keys())
        raise ValueError(f"Unknown model type: {model_type}. Available: {available}")

    return models[model_type.lower()](**kwargs)


# Registry of available regression models
REGRESSION_MODELS = {
    'lasso': {
        'class': LassoRegressor,
        'description': 'Lasso with cross-validated penalty'
    },
    'pruned_tree': {
        'class': PrunedTreeRegressor,
        'description': 'Regression tree with cost-complexity pruning'
    },
    'bagged_trees': {
        'class': BaggedTreesRegressor,
        'description': 'Bootstrap aggregated regression trees'
    },
}


def available_models() -> List[str]:
    """Names accepted by create_regressor."""
    return list(REGRESSION_MODELS.keys())


def describe_models() -> str:
    """One-line description of every registered model, for help text."""
    return "; ".join(f"{name}: {entry['description']}" for name, entry in REGRESSION_MODELS.items())


def model_kwargs_from_config(model_type: str, config: Any) -> Dict[str, Any]:
    """Constructor arguments for ``model_type`` taken from a PipelineConfig."""
    common = {'random_state': config.random_seed, 'n_jobs': config.n_jobs}
    if model_type == 'lasso':
        return {**common, 'cv_folds': config.cv_folds}
    if model_type == 'pruned_tree':
        return {**common, 'cv_folds': config.cv_folds, 'max_candidates': config.max_pruning_candidates}
    if model_type == 'bagged_trees':
        return {**common, 'n_estimators': config.n_bagged_trees, 'importance_type': config.importance_type}
    raise ValueError(f"Unknown model type: {model_type}")
