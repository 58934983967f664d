"""
Column-reference checks shared by the cleaning and fusion stages.
"""

import logging
from typing import Iterable, List, Tuple

import pandas as pd

from .exceptions import SchemaMismatchError

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SCHEMA_POLICIES = ('warn', 'raise')


def resolve_columns(df: pd.DataFrame,
                    columns: Iterable[str],
                    stage: str,
                    policy: str = 'warn') -> Tuple[List[str], List[str]]:
    """
    Split configured column names into those present in the table and those absent.

    Args:
        df: Table the names refer to
        columns: Configured column names
        stage: Pipeline stage, used in the report
        policy: 'raise' to fail on absent names, 'warn' to log them

    Returns:
        Tuple of (present, missing) column names, in configured order

    Raises:
        SchemaMismatchError: If names are absent and the policy is 'raise'
    """
    if policy not in SCHEMA_POLICIES:
        raise ValueError(f"Unknown schema policy: {policy}")

    columns = list(columns)
    present = [c for c in columns if c in df.columns]
    missing = [c for c in columns if c not in df.columns]

    if missing:
        if policy == 'raise':
            raise SchemaMismatchError(missing, stage=stage, available=df.columns)
        logger.warning(f"[{stage}] configured columns not found and left untouched: {missing}")

    return present, missing
