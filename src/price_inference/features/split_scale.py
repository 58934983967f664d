"""
Train/Test partitioning and z-score scaling of the analysis table.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd
from sklearn.preprocessing import StandardScaler

from ..models.data_models import ScaledView, SplitDatasets
from ..utils.exceptions import DataValidationError

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def split_train_test(data: pd.DataFrame, train_fraction: float = 0.7, seed: int = 1) -> SplitDatasets:
    """
    Assign each row independently to Train with probability ``train_fraction``.

    This is a Bernoulli assignment, so the Train share only approaches
    ``train_fraction`` as the number of rows grows. Row labels are preserved.

    Args:
        data: Analysis table
        train_fraction: Probability of a row landing in Train, in (0, 1)
        seed: Seed of the assignment generator

    Returns:
        SplitDatasets with disjoint Train and Test tables covering every row
    """
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")

    rng = np.random.default_rng(seed)
    in_train = rng.random(len(data)) < train_fraction

    split = SplitDatasets(
        train=data.loc[in_train].copy(),
        test=data.loc[~in_train].copy(),
        train_fraction=train_fraction,
        seed=seed,
    )
    logger.info(
        f"Split {len(data)} rows into {len(split.train)} train / {len(split.test)} test "
        f"(train share {split.train_share:.3f}, p={train_fraction}, seed={seed})"
    )
    return split


def scale_dataset(data: pd.DataFrame, target_column: Optional[str] = 'Price') -> ScaledView:
    """
    Z-score normalize every numeric non-target column of one dataset.

    Mean and sample standard deviation come from ``data`` itself, matching
    R's ``scale()``. The target is returned unscaled.

    Args:
        data: Train or Test table
        target_column: Column carried through unscaled (None if absent)

    Returns:
        ScaledView holding scaled features, the raw target and the fitted scaler
    """
    if len(data) < 2:
        raise DataValidationError(f"Cannot scale a dataset with {len(data)} rows; need at least 2", stage="scale")

    features = data.drop(columns=[target_column]) if target_column in data.columns else data
    numeric_columns = features.select_dtypes(include=[np.number]).columns.tolist()
    skipped = [c for c in features.columns if c not in numeric_columns]
    if skipped:
        logger.warning(f"Non-numeric columns left out of scaling: {skipped}")
    if not numeric_columns:
        raise DataValidationError("No numeric columns found for normalization", stage="scale")

    values = features[numeric_columns].astype(float).values
    scaler = StandardScaler().fit(values)
    # sample standard deviation (n - 1 denominator); constant columns keep scale 1
    correction = len(values) / (len(values) - 1)
    scaler.var_ = scaler.var_ * correction
    scaler.scale_ = np.where(scaler.var_ > 0, np.sqrt(scaler.var_), 1.0)
    scaled = scaler.transform(values)

    target = data[target_column].copy() if target_column in data.columns else pd.Series(
        index=data.index, dtype=float, name=target_column)

    logger.info(f"Normalized {len(numeric_columns)} features over {len(data)} rows")
    return ScaledView(
        features=pd.DataFrame(scaled, index=data.index, columns=numeric_columns),
        target=target,
        scaler=scaler,
    )


def scale_split(split: SplitDatasets, target_column: str = 'Price'):
    """
    Scale Train and Test independently, each with its own mean and std.

    Test is not scaled with Train statistics.

    Returns:
        Tuple of (train ScaledView, test ScaledView)
    """
    return scale_dataset(split.train, target_column), scale_dataset(split.test, target_column)
