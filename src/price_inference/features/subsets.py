"""
Variable subsets the models are compared on.
"""

from typing import Dict, List, Optional

import pandas as pd

PRODUCTION_FEATURES = [
    "Biomass", "Coal", "Gas", "Oil",
    "Hydro Pumped", "Hydro River", "Hydro Reservoir",
    "Nuclear", "Others", "Solar", "Waste", "Wind",
]

WEATHER_FEATURES = [
    "Avg. Temp", "Min Temp", "Max Temp", "Pressure", "Humidity",
    "Wind Speed", "Rain1h", "Rain3h", "Snow", "Clouds",
]

# None selects every feature
VARIABLE_SUBSETS: Dict[str, Optional[List[str]]] = {
    'all': None,
    'production': PRODUCTION_FEATURES,
    'weather': WEATHER_FEATURES,
}


def subset_columns(data: pd.DataFrame, subset: str, target_column: str = 'Price') -> List[str]:
    """
    Feature columns of ``data`` belonging to a variable subset.

    Raises:
        ValueError: If the subset is unknown or none of its members are present
    """
    if subset not in VARIABLE_SUBSETS:
        raise ValueError(f"Unknown variable subset: {subset}. Available: {', '.join(VARIABLE_SUBSETS)}")

    features = [c for c in data.columns if c != target_column]
    members = VARIABLE_SUBSETS[subset]
    if members is not None:
        features = [c for c in features if c in members]

    if not features:
        raise ValueError(f"No columns of subset '{subset}' present in data")
    return features


def select_subset(data: pd.DataFrame, subset: str, target_column: str = 'Price') -> pd.DataFrame:
    """Restrict ``data`` to the features of a variable subset (target excluded)."""
    return data[subset_columns(data, subset, target_column)]
