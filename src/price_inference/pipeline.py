"""
End-to-end price inference run: load, clean, aggregate, fuse, split, fit, score.
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from .data.cleaning import (deduplicate_weather, filter_missing_rows, missing_summary,
                            prune_energy_columns, prune_weather_columns, split_by_city)
from .data.loader import load_energy_data, load_weather_data
from .features.fusion import fuse_energy_weather
from .features.split_scale import split_train_test
from .features.weather_aggregation import aggregate_city_weather
from .model.regressors import available_models, describe_models
from .model.trainer import ModelTrainer
from .features.subsets import VARIABLE_SUBSETS
from .models.data_models import AnalysisReport, StageReport
from .utils.config import Config, PipelineConfig
from .utils.exceptions import PriceInferenceError

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Analysis table plus what each stage did to produce it."""
    table: pd.DataFrame
    stage_report: StageReport
    dropped_energy_columns: Dict[str, str] = field(default_factory=dict)
    unmatched_columns: Dict[str, List[str]] = field(default_factory=dict)


def build_analysis_table(energy: pd.DataFrame,
                         weather: pd.DataFrame,
                         config: Optional[PipelineConfig] = None) -> PipelineResult:
    """
    Run the cleaning and fusion stages on already-loaded tables.

    Args:
        energy: Raw energy table with a UTC ``time`` column
        weather: Raw per-city weather table with a UTC ``time`` column
        config: Pipeline configuration (defaults used if None)

    Returns:
        PipelineResult with the analysis table and per-stage counts
    """
    config = config or PipelineConfig()
    report = StageReport()
    report.add('load_energy', energy)
    report.add('load_weather', weather)

    weather = deduplicate_weather(weather, config.time_column, config.city_column)
    report.add('deduplicate_weather', weather)

    city_tables = split_by_city(weather, config.cities, config.city_column)
    city_tables = {
        city: prune_weather_columns(table, config.weather_drop_columns, config.schema_policy)
        for city, table in city_tables.items()
    }

    energy, dropped = prune_energy_columns(energy, config.column_missing_threshold,
                                           exclude=(config.time_column,))
    report.add('prune_energy_columns', energy, dropped=sorted(dropped))

    incomplete = missing_summary(energy)
    if incomplete:
        logger.info(f"Missing values per energy column: {incomplete}")
    energy = filter_missing_rows(energy, config.row_missing_threshold, config.imputer)
    report.add('filter_energy_rows', energy)

    aggregated = aggregate_city_weather(city_tables, config.aggregation_rules,
                                        config.default_aggregation, config.time_column,
                                        config.schema_policy)
    report.add('aggregate_weather', aggregated, cities=len(city_tables))

    fusion = fuse_energy_weather(energy, aggregated, config)
    report.add('fuse', fusion.table, unmatched=fusion.unmatched_columns)

    return PipelineResult(
        table=fusion.table,
        stage_report=report,
        dropped_energy_columns=dropped,
        unmatched_columns=fusion.unmatched_columns,
    )


def prepare_analysis_table(energy_path: Union[str, Path],
                           weather_path: Union[str, Path],
                           config: Optional[PipelineConfig] = None) -> PipelineResult:
    """Load both sources and build the analysis table."""
    energy = load_energy_data(energy_path)
    weather = load_weather_data(weather_path)
    return build_analysis_table(energy, weather, config)


def run_analysis(energy_path: Union[str, Path],
                 weather_path: Union[str, Path],
                 config: Optional[PipelineConfig] = None,
                 model_types: Optional[List[str]] = None,
                 subsets: Optional[List[str]] = None,
                 trainer: Optional[ModelTrainer] = None) -> AnalysisReport:
    """
    Full run: build the analysis table, split it, fit and score every model.

    Args:
        energy_path: Hourly generation/price CSV
        weather_path: Hourly per-city weather CSV
        config: Pipeline configuration (defaults used if None)
        model_types: Models to fit when no trainer is given
        subsets: Variable subsets to compare when no trainer is given
        trainer: Preconfigured trainer, kept by the caller for export

    Returns:
        AnalysisReport with test MSE and ranked importances per model x subset
    """
    config = config or PipelineConfig()
    prepared = prepare_analysis_table(energy_path, weather_path, config)

    split = split_train_test(prepared.table, config.train_fraction, config.random_seed)
    prepared.stage_report.add('split_train', split.train)
    prepared.stage_report.add('split_test', split.test)

    trainer = trainer or ModelTrainer(config, model_types=model_types, subsets=subsets)
    report = trainer.run(split)
    report.stage_report = prepared.stage_report
    return report


def format_report(report: AnalysisReport, top_n: int = 5) -> str:
    """Render the MSE table and ranked importances as text."""
    lines = [f"Train rows: {report.n_train}   Test rows: {report.n_test}", "", "Test MSE"]
    lines.append(report.to_frame().to_string(float_format=lambda v: f"{v:.4f}"))

    for result in report.results:
        lines.append("")
        lines.append(f"{result.model_name} / {result.subset}: test MSE {result.test_mse:.4f}")
        for rank, (name, score) in enumerate(result.feature_importance[:top_n], start=1):
            lines.append(f"  {rank:2}. {name:20} {score: .4f}")
    return "\n".join(lines)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Rank predictors of Spanish electricity prices from generation and weather data",
    )
    parser.add_argument('--energy', default=Config.ENERGY_DATA_PATH, help="Hourly generation/price CSV")
    parser.add_argument('--weather', default=Config.WEATHER_DATA_PATH, help="Hourly per-city weather CSV")
    parser.add_argument('--models', nargs='+', choices=available_models(), default=None,
                        help=f"Models to fit (default: all). {describe_models()}")
    parser.add_argument('--subsets', nargs='+', choices=list(VARIABLE_SUBSETS), default=None,
                        help="Variable subsets to compare (default: all)")
    parser.add_argument('--seed', type=int, default=Config.RANDOM_SEED, help="Train/Test assignment seed")
    parser.add_argument('--train-fraction', type=float, default=Config.TRAIN_FRACTION)
    parser.add_argument('--trees', type=int, default=500, help="Number of bagged trees")
    parser.add_argument('--importance', choices=['impurity', 'permutation'], default='impurity')
    parser.add_argument('--schema-policy', choices=['warn', 'raise'], default=Config.SCHEMA_POLICY,
                        help="How to treat configured columns absent from a table")
    parser.add_argument('--n-jobs', type=int, default=Config.N_JOBS)
    parser.add_argument('--top', type=int, default=5, help="Importances shown per model")
    parser.add_argument('--report-json', default=None, help="Write the full report to this JSON file")
    parser.add_argument('--log-level', type=str.upper, default=Config.LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        logging.getLogger().setLevel(args.log_level)
        config = PipelineConfig(
            random_seed=args.seed,
            train_fraction=args.train_fraction,
            n_bagged_trees=args.trees,
            importance_type=args.importance,
            schema_policy=args.schema_policy,
            n_jobs=args.n_jobs,
        )
        trainer = ModelTrainer(config, model_types=args.models, subsets=args.subsets)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    try:
        report = run_analysis(args.energy, args.weather, config, trainer=trainer)
    except PriceInferenceError as e:
        logger.error(f"Analysis aborted: {e}")
        return 1

    print(format_report(report, top_n=args.top))

    if args.report_json:
        trainer.export_report(report, args.report_json)

    return 0


if __name__ == "__main__":
    sys.exit(main())
