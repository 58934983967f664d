"""
Data models for the price inference pipeline.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from sklearn.preprocessing import StandardScaler


@dataclass
class StageRecord:
    """Shape of the table produced by one pipeline stage."""
    stage: str
    rows: int
    columns: int
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StageReport:
    """Ordered record of every stage executed in a run."""
    records: List[StageRecord] = field(default_factory=list)

    def add(self, stage: str, table: pd.DataFrame, **details) -> None:
        self.records.append(StageRecord(stage, len(table), table.shape[1], details))

    def get(self, stage: str) -> Optional[StageRecord]:
        for record in self.records:
            if record.stage == stage:
                return record
        return None

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([
            {'stage': r.stage, 'rows': r.rows, 'columns': r.columns, **r.details}
            for r in self.records
        ])


@dataclass
class FusionResult:
    """Fused analysis table plus configured names that matched nothing."""
    table: pd.DataFrame
    unmatched_columns: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class SplitDatasets:
    """Disjoint Train/Test partitions of the analysis table."""
    train: pd.DataFrame
    test: pd.DataFrame
    train_fraction: float
    seed: int

    @property
    def train_share(self) -> float:
        total = len(self.train) + len(self.test)
        return len(self.train) / total if total else 0.0


@dataclass
class ScaledView:
    """Z-score normalized features of one dataset, target carried unscaled."""
    features: pd.DataFrame
    target: pd.Series
    scaler: StandardScaler

    @property
    def means(self) -> pd.Series:
        return pd.Series(self.scaler.mean_, index=self.features.columns)

    @property
    def stds(self) -> pd.Series:
        return pd.Series(self.scaler.scale_, index=self.features.columns)

    def inverse_transform(self) -> pd.DataFrame:
        """Recover the unscaled feature values."""
        restored = self.scaler.inverse_transform(self.features.values)
        return pd.DataFrame(restored, index=self.features.index, columns=self.features.columns)


@dataclass
class ModelResult:
    """Outcome of fitting one model on one variable subset."""
    model_name: str
    subset: str
    test_mse: float
    train_mse: float
    feature_importance: List[Tuple[str, float]]
    n_train: int
    n_test: int
    parameters: Dict[str, Any] = field(default_factory=dict)

    def top_features(self, n: int = 5) -> List[str]:
        return [name for name, _ in self.feature_importance[:n]]


@dataclass
class AnalysisReport:
    """Test MSE and ranked importances for every model x variable subset."""
    results: List[ModelResult] = field(default_factory=list)
    stage_report: Optional[StageReport] = None
    n_train: int = 0
    n_test: int = 0

    def get(self, model_name: str, subset: str) -> Optional[ModelResult]:
        for result in self.results:
            if result.model_name == model_name and result.subset == subset:
                return result
        return None

    def best_model(self, subset: str = 'all') -> Optional[ModelResult]:
        candidates = [r for r in self.results if r.subset == subset]
        if not candidates:
            return None
        return min(candidates, key=lambda r: r.test_mse)

    def to_frame(self) -> pd.DataFrame:
        """MSE table with one row per model and one column per subset."""
        rows = [{'model': r.model_name, 'subset': r.subset, 'test_mse': r.test_mse}
                for r in self.results]
        if not rows:
            return pd.DataFrame()
        frame = pd.DataFrame(rows)
        return frame.pivot(index='model', columns='subset', values='test_mse')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'n_train': self.n_train,
            'n_test': self.n_test,
            'results': [
                {
                    'model': r.model_name,
                    'subset': r.subset,
                    'test_mse': r.test_mse,
                    'train_mse': r.train_mse,
                    'n_train': r.n_train,
                    'n_test': r.n_test,
                    'parameters': r.parameters,
                    'feature_importance': [[name, score] for name, score in r.feature_importance],
                }
                for r in self.results
            ],
            'stages': self.stage_report.to_frame().to_dict(orient='records') if self.stage_report else [],
        }
