import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import pandas as pd
from dotenv import load_dotenv

load_dotenv()


# Cities reported by the weather source, in the order they are aggregated
DEFAULT_CITIES = ["Valencia", "Madrid", "Bilbao", "Barcelona", "Seville"]

# Categorical / descriptive weather fields excluded from the analysis
DEFAULT_WEATHER_DROP_COLUMNS = [
    "wind_deg",
    "weather_id",
    "weather_main",
    "weather_description",
    "weather_icon",
]

# Cross-city aggregation per weather field; fields not listed use the default rule
AGGREGATIONS = ("mean", "min", "max", "median")

DEFAULT_AGGREGATION_RULES = {
    "temp_min": "min",
    "temp_max": "max",
}

# Human-readable labels applied positionally to the fused table
DEFAULT_COLUMN_LABELS = [
    "Biomass", "Brown coal", "Gas", "Hard coal", "Oil",
    "Hydro Pumped", "Hydro River", "Hydro Reservoir", "Nuclear",
    "Other", "Other Renewable", "Solar", "Waste", "Wind",
    "Forecast Solar", "Forecast Wind", "Total Load Forecast", "Total Load",
    "Price Forecast", "Price",
    "Avg. Temp", "Min Temp", "Max Temp", "Pressure", "Humidity",
    "Wind Speed", "Rain1h", "Rain3h", "Snow", "Clouds",
]

# "Rain 1h" is kept verbatim: it does not match the "Rain1h" label above
DEFAULT_FORECAST_DROP_COLUMNS = [
    "Forecast Solar",
    "Forecast Wind",
    "Total Load Forecast",
    "Price Forecast",
    "Rain 1h",
]

DEFAULT_MERGE_GROUPS = {
    "Coal": ("Brown coal", "Hard coal"),
    "Others": ("Other", "Other Renewable"),
}

# Demand proxy collinear with the target
DEFAULT_DEMAND_PROXY_COLUMNS = ["Total Load"]


class Config:
    ENERGY_DATA_PATH = os.getenv('PRICE_INFERENCE_ENERGY_PATH', 'data/energy_dataset.csv')
    WEATHER_DATA_PATH = os.getenv('PRICE_INFERENCE_WEATHER_PATH', 'data/weather_features.csv')
    LOG_LEVEL = os.getenv('PRICE_INFERENCE_LOG_LEVEL', 'INFO')
    RANDOM_SEED = int(os.getenv('PRICE_INFERENCE_SEED', 1))
    TRAIN_FRACTION = float(os.getenv('PRICE_INFERENCE_TRAIN_FRACTION', 0.7))
    SCHEMA_POLICY = os.getenv('PRICE_INFERENCE_SCHEMA_POLICY', 'warn')
    N_JOBS = int(os.getenv('PRICE_INFERENCE_N_JOBS', 1))

    @classmethod
    def validate(cls):
        """Validate environment-provided settings"""
        if not 0.0 < cls.TRAIN_FRACTION < 1.0:
            raise ValueError("PRICE_INFERENCE_TRAIN_FRACTION must be in (0, 1)")
        if cls.SCHEMA_POLICY not in ('warn', 'raise'):
            raise ValueError("PRICE_INFERENCE_SCHEMA_POLICY must be 'warn' or 'raise'")


@dataclass
class PipelineConfig:
    """Tunable settings for one analysis run."""
    cities: List[str] = field(default_factory=lambda: list(DEFAULT_CITIES))
    time_column: str = "time"
    city_column: str = "city_name"
    target_column: str = "Price"

    # Cleaning
    column_missing_threshold: float = 0.9
    row_missing_threshold: float = 0.01
    imputer: Optional[Callable[[pd.DataFrame], pd.DataFrame]] = None
    weather_drop_columns: List[str] = field(default_factory=lambda: list(DEFAULT_WEATHER_DROP_COLUMNS))

    # Aggregation and fusion
    aggregation_rules: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_AGGREGATION_RULES))
    default_aggregation: str = "mean"
    column_labels: List[str] = field(default_factory=lambda: list(DEFAULT_COLUMN_LABELS))
    forecast_drop_columns: List[str] = field(default_factory=lambda: list(DEFAULT_FORECAST_DROP_COLUMNS))
    merge_groups: Dict[str, Tuple[str, str]] = field(default_factory=lambda: dict(DEFAULT_MERGE_GROUPS))
    demand_proxy_columns: List[str] = field(default_factory=lambda: list(DEFAULT_DEMAND_PROXY_COLUMNS))
    schema_policy: str = "warn"

    # Split and models
    train_fraction: float = 0.7
    random_seed: int = 1
    cv_folds: int = 5
    n_bagged_trees: int = 500
    max_pruning_candidates: int = 30
    importance_type: str = "impurity"
    n_jobs: int = 1

    def __post_init__(self):
        if not 0.0 < self.train_fraction < 1.0:
            raise ValueError(f"train_fraction must be in (0, 1), got {self.train_fraction}")
        if self.schema_policy not in ("warn", "raise"):
            raise ValueError(f"Unknown schema policy: {self.schema_policy}")
        if self.importance_type not in ("impurity", "permutation"):
            raise ValueError(f"Unknown importance type: {self.importance_type}")
        if not 0.0 <= self.column_missing_threshold <= 1.0:
            raise ValueError("column_missing_threshold must be in [0, 1]")
        if not 0.0 <= self.row_missing_threshold <= 1.0:
            raise ValueError("row_missing_threshold must be in [0, 1]")
        if len(set(self.cities)) != len(self.cities) or not self.cities:
            raise ValueError("cities must be a non-empty list of distinct names")
        for aggregation in list(self.aggregation_rules.values()) + [self.default_aggregation]:
            if aggregation not in AGGREGATIONS:
                raise ValueError(f"Unknown aggregation '{aggregation}', expected one of {AGGREGATIONS}")
        labels = list(self.column_labels.values()) if isinstance(self.column_labels, dict) else list(self.column_labels)
        if len(set(labels)) != len(labels):
            raise ValueError("column_labels must be unique")

    @classmethod
    def from_env(cls, **overrides) -> 'PipelineConfig':
        """Build a config from environment settings, then apply overrides."""
        Config.validate()
        settings = {
            'random_seed': Config.RANDOM_SEED,
            'train_fraction': Config.TRAIN_FRACTION,
            'schema_policy': Config.SCHEMA_POLICY,
            'n_jobs': Config.N_JOBS,
        }
        settings.update(overrides)
        return cls(**settings)
