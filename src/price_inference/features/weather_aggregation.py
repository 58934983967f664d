"""
Composite weather features built from the per-city weather tables.

Most fields are averaged across cities. Temperature extremes keep the most
extreme city instead: the minimum temperature is the lowest city minimum and
the maximum temperature the highest city maximum, so heat and cold spikes are
not smoothed away.
"""

import logging
from typing import Dict, List, Mapping, Optional

import pandas as pd

from ..utils.config import AGGREGATIONS
from ..utils.exceptions import AlignmentError, SchemaMismatchError
from ..utils.schema import resolve_columns

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def check_alignment(city_tables: Mapping[str, pd.DataFrame], time_column: str = 'time') -> None:
    """
    Verify that every city table covers exactly the same timestamps.

    Raises:
        AlignmentError: If a city's timestamp set differs from the first city's
        ValueError: If a city table still holds duplicate timestamps
    """
    if not city_tables:
        raise ValueError("No city tables to align")

    reference_city = next(iter(city_tables))
    reference = set(city_tables[reference_city][time_column])

    for city, table in city_tables.items():
        if table[time_column].duplicated().any():
            raise ValueError(f"Weather table for '{city}' has duplicate timestamps; deduplicate first")

        timestamps = set(table[time_column])
        if timestamps != reference:
            raise AlignmentError(
                city=city,
                missing=len(reference - timestamps),
                extra=len(timestamps - reference),
                reference_city=reference_city,
            )


def build_aggregation_plan(fields: List[str],
                           rules: Optional[Mapping[str, str]] = None,
                           default: str = 'mean',
                           schema_policy: str = 'warn') -> Dict[str, str]:
    """
    Map every weather field to its cross-city aggregation.

    Args:
        fields: Weather fields to aggregate, in output order
        rules: Field-specific aggregations overriding the default
        default: Aggregation for fields without a rule
        schema_policy: How to treat rules naming absent fields

    Returns:
        Ordered mapping of field name to aggregation name
    """
    rules = dict(rules or {})
    for aggregation in list(rules.values()) + [default]:
        if aggregation not in AGGREGATIONS:
            raise ValueError(f"Unknown aggregation '{aggregation}', expected one of {AGGREGATIONS}")

    present, _ = resolve_columns(pd.DataFrame(columns=fields), rules.keys(),
                                 stage='aggregate_weather', policy=schema_policy)
    return {f: rules[f] if f in present else default for f in fields}


def aggregate_city_weather(city_tables: Mapping[str, pd.DataFrame],
                           rules: Optional[Mapping[str, str]] = None,
                           default: str = 'mean',
                           time_column: str = 'time',
                           schema_policy: str = 'warn') -> pd.DataFrame:
    """
    Merge per-city weather tables into one composite row per timestamp.

    Args:
        city_tables: Deduplicated weather table per city, without city column
        rules: Field-specific aggregation, e.g. {'temp_min': 'min'}
        default: Aggregation for every other field
        time_column: Name of the timestamp column
        schema_policy: How to treat rules naming absent fields

    Returns:
        DataFrame with one row per timestamp, sorted by time

    Raises:
        AlignmentError: If the city tables disagree on their timestamp domain
        SchemaMismatchError: If the city tables do not share the same fields
    """
    check_alignment(city_tables, time_column)

    reference_city = next(iter(city_tables))
    fields = [c for c in city_tables[reference_city].columns if c != time_column]
    for city, table in city_tables.items():
        absent = [f for f in fields if f not in table.columns]
        if absent:
            raise SchemaMismatchError(absent, stage=f"aggregate_weather:{city}", available=table.columns)

    plan = build_aggregation_plan(fields, rules, default, schema_policy)

    stacked = pd.concat([table[[time_column] + fields] for table in city_tables.values()],
                        ignore_index=True)
    aggregated = (
        stacked.groupby(time_column, sort=True)
        .agg(plan)
        .reset_index()
    )

    non_default = {f: a for f, a in plan.items() if a != default}
    logger.info(
        f"Aggregated {len(city_tables)} cities into {len(aggregated)} hourly rows "
        f"({default} by default, overrides: {non_default})"
    )
    return aggregated[[time_column] + fields]
