"""
Fuse the cleaned energy table with the aggregated weather table.

The fused table is the unit the models consume: human-readable labels, no
forecast-derived or demand-proxy fields, redundant generation categories
merged, and the target as the last column.
"""

import logging
from typing import Dict, List, Mapping, Sequence, Tuple, Union

import pandas as pd

from ..models.data_models import FusionResult
from ..utils.config import PipelineConfig
from ..utils.exceptions import DataValidationError, SchemaMismatchError
from ..utils.schema import resolve_columns

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def join_on_time(energy: pd.DataFrame, weather: pd.DataFrame, time_column: str = 'time') -> pd.DataFrame:
    """Inner-join energy and weather rows sharing a timestamp."""
    for name, table in (('energy', energy), ('weather', weather)):
        if time_column not in table.columns:
            raise SchemaMismatchError([time_column], stage=f"join:{name}", available=table.columns)
        repeated = int(table[time_column].duplicated().sum())
        if repeated:
            raise DataValidationError(f"{repeated} repeated timestamps in the {name} table", stage="join")

    merged = pd.merge(energy, weather, on=time_column, how='inner', validate='one_to_one')
    merged = merged.sort_values(time_column).reset_index(drop=True)

    logger.info(
        f"Joined {len(energy)} energy rows with {len(weather)} weather rows: "
        f"{len(merged)} rows kept, {len(energy) - len(merged)} energy rows without weather"
    )
    return merged


def drop_time(df: pd.DataFrame, time_column: str = 'time') -> pd.DataFrame:
    """Drop the timestamp once rows are aligned; it is not a model feature."""
    return df.drop(columns=[time_column])


def rename_columns(df: pd.DataFrame, labels: Union[Sequence[str], Mapping[str, str]]) -> pd.DataFrame:
    """
    Apply human-readable labels.

    Args:
        df: Joined table without the timestamp
        labels: Either an ordered label list applied positionally, or a mapping
            from current to new names

    Raises:
        SchemaMismatchError: If a label list does not match the column count,
            or a mapping names absent columns
    """
    if isinstance(labels, Mapping):
        missing = [c for c in labels if c not in df.columns]
        if missing:
            raise SchemaMismatchError(missing, stage='rename', available=df.columns)
        return df.rename(columns=dict(labels))

    labels = list(labels)
    if len(labels) != df.shape[1]:
        raise SchemaMismatchError(
            labels[df.shape[1]:] if len(labels) > df.shape[1] else list(df.columns[len(labels):]),
            stage=f"rename: {len(labels)} labels for {df.shape[1]} columns",
            available=df.columns,
        )
    if len(set(labels)) != len(labels):
        raise ValueError("Column labels must be unique")

    renamed = df.copy()
    renamed.columns = labels
    return renamed


def drop_columns(df: pd.DataFrame,
                 columns: Sequence[str],
                 stage: str,
                 schema_policy: str = 'warn') -> Tuple[pd.DataFrame, List[str]]:
    """Drop configured columns; returns the new table and names that matched nothing."""
    present, missing = resolve_columns(df, columns, stage=stage, policy=schema_policy)
    if present:
        logger.info(f"[{stage}] dropping {present}")
    return df.drop(columns=present), missing


def merge_columns(df: pd.DataFrame,
                  groups: Mapping[str, Sequence[str]],
                  schema_policy: str = 'warn') -> Tuple[pd.DataFrame, List[str]]:
    """
    Replace each group of columns with a single column holding their sum.

    Args:
        df: Labelled table
        groups: New column name -> columns summed into it
        schema_policy: How to treat groups naming absent columns

    Returns:
        Tuple of (new table, column names that matched nothing). A group with
        absent members is left unmerged.
    """
    merged = df.copy()
    unmatched = []
    for new_column, members in groups.items():
        present, missing = resolve_columns(merged, members, stage=f"merge:{new_column}",
                                           policy=schema_policy)
        if missing:
            unmatched.extend(missing)
            continue
        merged[new_column] = merged[list(members)].sum(axis=1, min_count=len(members))
        merged = merged.drop(columns=list(members))
        logger.info(f"Merged {list(members)} into '{new_column}'")
    return merged, unmatched


def move_to_end(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """Place ``column`` last so the target has a fixed position."""
    if column not in df.columns:
        raise SchemaMismatchError([column], stage='move_target', available=df.columns)
    order = [c for c in df.columns if c != column] + [column]
    return df[order]


def fuse_energy_weather(energy: pd.DataFrame,
                        weather: pd.DataFrame,
                        config: PipelineConfig = None) -> FusionResult:
    """
    Build the analysis table from cleaned energy rows and aggregated weather.

    Steps: inner join on time, drop time, rename, drop forecast fields, merge
    coal and "other" categories, drop the demand proxy, move the target last.

    Args:
        energy: Energy table after column pruning and row filtering
        weather: Aggregated weather table
        config: Pipeline configuration (defaults used if None)

    Returns:
        FusionResult with the analysis table and any configured names that
        matched no column, keyed by stage
    """
    config = config or PipelineConfig()
    policy = config.schema_policy
    unmatched: Dict[str, List[str]] = {}

    fused = join_on_time(energy, weather, config.time_column)
    fused = drop_time(fused, config.time_column)
    fused = rename_columns(fused, config.column_labels)

    fused, missing = drop_columns(fused, config.forecast_drop_columns, 'drop_forecasts', policy)
    if missing:
        unmatched['drop_forecasts'] = missing

    fused, missing = merge_columns(fused, config.merge_groups, policy)
    if missing:
        unmatched['merge'] = missing

    fused, missing = drop_columns(fused, config.demand_proxy_columns, 'drop_demand_proxy', policy)
    if missing:
        unmatched['drop_demand_proxy'] = missing

    fused = move_to_end(fused, config.target_column)

    logger.info(f"Analysis table: {len(fused)} rows, {fused.shape[1] - 1} features + '{config.target_column}'")
    return FusionResult(table=fused, unmatched_columns=unmatched)
