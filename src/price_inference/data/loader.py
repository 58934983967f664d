"""
Load the hourly generation/price table and the hourly per-city weather table.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Union

import pandas as pd

from ..utils.exceptions import DataValidationError, SourceReadError

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TIME_COLUMN = "time"
CITY_COLUMN = "city_name"


def _read_source(path: Union[str, Path]) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise SourceReadError(path, "file does not exist")

    try:
        df = pd.read_csv(path)
    except pd.errors.EmptyDataError as e:
        raise SourceReadError(path, "file is empty") from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise SourceReadError(path, f"malformed delimited file ({e})") from e

    if df.empty:
        raise SourceReadError(path, "source has zero rows")

    return df


def _parse_time(df: pd.DataFrame, path: Union[str, Path]) -> pd.DataFrame:
    """Parse the time column as UTC; offsets in the source change with DST."""
    if TIME_COLUMN not in df.columns:
        raise SourceReadError(path, f"no '{TIME_COLUMN}' column (columns: {list(df.columns)})")

    parsed = pd.to_datetime(df[TIME_COLUMN], utc=True, errors='coerce')
    bad = int(parsed.isna().sum())
    if bad:
        raise SourceReadError(path, f"{bad} values in '{TIME_COLUMN}' are not timestamps")

    df = df.copy()
    df[TIME_COLUMN] = parsed
    return df


def load_energy_data(path: Union[str, Path]) -> pd.DataFrame:
    """Load hourly generation, load and price records.

    Args:
        path: CSV file whose first column is the hourly timestamp.

    Returns:
        DataFrame with a UTC ``time`` column and one column per measurement.

    Raises:
        SourceReadError: If the file is absent, malformed or has no rows.
        DataValidationError: If an hour appears more than once.
    """
    df = _read_source(path)
    df.columns = [str(c).strip() for c in df.columns]
    df = df.rename(columns={df.columns[0]: TIME_COLUMN})
    df = _parse_time(df, path)

    repeated = int(df[TIME_COLUMN].duplicated().sum())
    if repeated:
        raise DataValidationError(
            f"{repeated} repeated timestamps in energy source '{path}'; expected one row per hour",
            stage="load",
        )

    logger.info(f"Loaded {len(df)} energy records with {df.shape[1] - 1} measurements from {path}")
    return df


def load_weather_data(path: Union[str, Path]) -> pd.DataFrame:
    """Load hourly per-city weather observations.

    The first column of the raw file carries the timestamp but has no usable
    label, so it is always renamed to ``time``. City names are stripped of
    surrounding whitespace.

    Raises:
        SourceReadError: If the file is absent, malformed, has no rows or no
            city column.
    """
    df = _read_source(path)
    df.columns = [str(c).strip() for c in df.columns]
    df = df.rename(columns={df.columns[0]: TIME_COLUMN})
    df = _parse_time(df, path)

    if CITY_COLUMN not in df.columns:
        raise SourceReadError(path, f"no '{CITY_COLUMN}' column")
    df[CITY_COLUMN] = df[CITY_COLUMN].astype(str).str.strip()

    logger.info(
        f"Loaded {len(df)} weather records for {df[CITY_COLUMN].nunique()} cities from {path}"
    )
    return df


def get_source_summary(df: pd.DataFrame) -> Dict[str, Any]:
    """Get summary statistics for a loaded source."""
    null_counts = df.isnull().sum()
    return {
        'total_records': len(df),
        'date_range': (df[TIME_COLUMN].min(), df[TIME_COLUMN].max()) if TIME_COLUMN in df.columns else None,
        'columns': list(df.columns),
        'missing_values': {c: int(v) for c, v in null_counts.items() if v > 0},
    }
