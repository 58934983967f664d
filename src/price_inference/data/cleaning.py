"""
Cleaning stages for the raw energy and weather tables.

Each function takes a table and returns a new one; inputs are never modified.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..utils.exceptions import ExcessiveMissingnessError
from ..utils.schema import resolve_columns

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def deduplicate_weather(df: pd.DataFrame,
                        time_column: str = 'time',
                        city_column: str = 'city_name') -> pd.DataFrame:
    """
    Keep the first row encountered for every (city, timestamp) pair.

    Works on the full weather table or on a single-city partition (where the
    city column may be absent). Applying it twice gives the same table as once.

    Args:
        df: Weather table
        time_column: Name of the timestamp column
        city_column: Name of the city column

    Returns:
        Weather table with one row per timestamp within each city
    """
    keys = [city_column, time_column] if city_column in df.columns else [time_column]
    deduplicated = df.drop_duplicates(subset=keys, keep='first').reset_index(drop=True)

    removed = len(df) - len(deduplicated)
    if removed:
        if city_column in df.columns:
            per_city = df[df.duplicated(subset=keys, keep='first')][city_column].value_counts()
            logger.info(f"Removed {removed} duplicate weather rows: {per_city.to_dict()}")
        else:
            logger.info(f"Removed {removed} duplicate weather rows")

    return deduplicated


def split_by_city(df: pd.DataFrame,
                  cities: Iterable[str],
                  city_column: str = 'city_name') -> Dict[str, pd.DataFrame]:
    """
    Partition the weather table into one table per configured city.

    A configured city with no rows yields an empty table; rows for cities that
    are not configured are ignored.

    Returns:
        Dictionary mapping city name to its rows, without the city column,
        in configured order
    """
    cities = list(cities)
    unknown = sorted(set(df[city_column].unique()) - set(cities))
    if unknown:
        logger.warning(f"Ignoring weather rows for unconfigured cities: {unknown}")

    tables = {}
    for city in cities:
        city_rows = df[df[city_column] == city].drop(columns=[city_column]).reset_index(drop=True)
        if city_rows.empty:
            logger.warning(f"No weather rows for city '{city}'")
        tables[city] = city_rows

    logger.info(f"Split weather table into {len(tables)} cities: "
                f"{ {city: len(t) for city, t in tables.items()} }")
    return tables


def prune_energy_columns(df: pd.DataFrame,
                         missing_threshold: float = 0.9,
                         exclude: Tuple[str, ...] = ('time',)) -> Tuple[pd.DataFrame, Dict[str, str]]:
    """
    Drop energy columns carrying no usable information.

    Rules, applied in order:
        1. the fraction of missing values exceeds ``missing_threshold``
        2. the column is numeric and all of its values are identical

    Args:
        df: Energy table
        missing_threshold: Maximum tolerated fraction of missing values
        exclude: Columns never considered for dropping

    Returns:
        Tuple of (pruned table, mapping of dropped column to reason)
    """
    candidates = [c for c in df.columns if c not in exclude]

    missing_fraction = df[candidates].isna().mean()
    sparse = [c for c in candidates if missing_fraction[c] > missing_threshold]

    remaining = [c for c in candidates if c not in sparse]
    numeric = [c for c in remaining if pd.api.types.is_numeric_dtype(df[c])]
    # sample std of a column with one distinct value is exactly zero
    constant = [c for c in numeric if df[c].nunique(dropna=True) == 1]

    dropped = {c: f"missing fraction {missing_fraction[c]:.2%}" for c in sparse}
    dropped.update({c: "zero variance" for c in constant})

    if sparse:
        logger.info(f"Dropping {len(sparse)} mostly empty energy columns: {sparse}")
    if constant:
        logger.info(f"Dropping {len(constant)} zero-variance energy columns: {constant}")

    return df.drop(columns=sparse + constant), dropped


def prune_weather_columns(df: pd.DataFrame,
                          drop_columns: Iterable[str],
                          schema_policy: str = 'warn') -> pd.DataFrame:
    """Drop the categorical and descriptive weather fields."""
    present, _ = resolve_columns(df, drop_columns, stage='prune_weather_columns', policy=schema_policy)
    return df.drop(columns=present)


def count_missing_rows(df: pd.DataFrame) -> int:
    """Number of rows with at least one missing value."""
    return int(df.isna().any(axis=1).sum())


def filter_missing_rows(df: pd.DataFrame,
                        max_missing_fraction: float = 0.01,
                        imputer: Optional[Callable[[pd.DataFrame], pd.DataFrame]] = None,
                        stage: str = 'filter_rows') -> pd.DataFrame:
    """
    Drop rows containing missing values when they are a negligible share.

    Args:
        df: Table after column pruning
        max_missing_fraction: Largest share of incomplete rows that may be dropped
        imputer: Optional callable used instead of failing when the share is larger
        stage: Stage name used in error messages

    Returns:
        Table without missing values

    Raises:
        ExcessiveMissingnessError: If too many rows are incomplete and no imputer
            is configured, or the imputer leaves missing values behind
    """
    total = len(df)
    missing = count_missing_rows(df)
    fraction = missing / total if total else 0.0

    if fraction <= max_missing_fraction:
        if missing:
            logger.info(f"Dropping {missing} of {total} rows ({fraction:.2%}) with missing values")
        return df.dropna().reset_index(drop=True)

    if imputer is None:
        raise ExcessiveMissingnessError(missing, total, max_missing_fraction, stage=stage)

    logger.warning(f"{missing} of {total} rows ({fraction:.2%}) incomplete; applying imputer")
    imputed = imputer(df.copy())
    still_missing = count_missing_rows(imputed)
    if still_missing:
        raise ExcessiveMissingnessError(still_missing, len(imputed), 0.0, stage=f"{stage}:impute")
    return imputed.reset_index(drop=True)


def missing_summary(df: pd.DataFrame) -> List[Tuple[str, int]]:
    """Missing value counts per column, largest first, zero counts omitted."""
    counts = df.isna().sum()
    counts = counts[counts > 0].sort_values(ascending=False)
    return [(c, int(v)) for c, v in counts.items()]


def interpolate_imputer(df: pd.DataFrame) -> pd.DataFrame:
    """Linear interpolation of numeric gaps, usable as the row filter's imputer."""
    imputed = df.copy()
    numeric = imputed.select_dtypes(include=[np.number]).columns
    imputed[numeric] = imputed[numeric].interpolate(method='linear', limit_direction='both')
    return imputed
