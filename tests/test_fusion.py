"""
Unit tests for fusing the energy and weather tables.
"""

import unittest
import pandas as pd
import numpy as np
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
sys.path.insert(0, os.path.dirname(__file__))

from price_inference.features.fusion import (
    fuse_energy_weather, join_on_time, rename_columns, merge_columns, move_to_end, drop_columns
)
from price_inference.features.weather_aggregation import aggregate_city_weather
from price_inference.data.cleaning import prune_energy_columns, prune_weather_columns, split_by_city
from price_inference.utils.config import (
    PipelineConfig, DEFAULT_AGGREGATION_RULES, DEFAULT_WEATHER_DROP_COLUMNS, DEFAULT_COLUMN_LABELS
)
from price_inference.utils.exceptions import SchemaMismatchError, DataValidationError
from sample_data import make_energy_frame, make_weather_frame

EXPECTED_COLUMNS = [
    'Biomass', 'Gas', 'Oil', 'Hydro Pumped', 'Hydro River', 'Hydro Reservoir', 'Nuclear',
    'Solar', 'Waste', 'Wind', 'Avg. Temp', 'Min Temp', 'Max Temp', 'Pressure', 'Humidity',
    'Wind Speed', 'Rain1h', 'Rain3h', 'Snow', 'Clouds', 'Coal', 'Others', 'Price',
]


def aggregated_weather(cities, n_hours, start='2015-01-01'):
    weather = make_weather_frame(cities, n_hours=n_hours, start=start)
    tables = {
        city: prune_weather_columns(table, DEFAULT_WEATHER_DROP_COLUMNS)
        for city, table in split_by_city(weather, cities).items()
    }
    return aggregate_city_weather(tables, DEFAULT_AGGREGATION_RULES)


class TestFuseEnergyWeather(unittest.TestCase):
    """Test cases for the complete fusion step."""

    def setUp(self):
        """Set up cleaned energy and aggregated weather tables."""
        self.energy, _ = prune_energy_columns(make_energy_frame(n_hours=50))
        self.weather = aggregated_weather(['Madrid', 'Bilbao'], n_hours=60)

    def test_final_columns(self):
        """Labels applied, forecasts and demand proxy dropped, target last."""
        result = fuse_energy_weather(self.energy, self.weather)

        self.assertEqual(list(result.table.columns), EXPECTED_COLUMNS)
        self.assertEqual(result.table.columns[-1], 'Price')
        for column in ['Total Load', 'Forecast Solar', 'Forecast Wind',
                       'Total Load Forecast', 'Price Forecast', 'time']:
            self.assertNotIn(column, result.table.columns)

    def test_join_keeps_shared_timestamps(self):
        """Weather covering extra hours does not add rows."""
        result = fuse_energy_weather(self.energy, self.weather)
        self.assertEqual(len(result.table), 50)

    def test_energy_hours_without_weather_dropped(self):
        """Only hours present in both tables survive."""
        weather = aggregated_weather(['Madrid'], n_hours=60, start='2015-01-01 10:00')
        result = fuse_energy_weather(self.energy, weather)
        self.assertEqual(len(result.table), 40)

    def test_price_carried_from_energy_rows(self):
        """Every fused Price equals the price of the matching energy row."""
        result = fuse_energy_weather(self.energy, self.weather)

        np.testing.assert_array_equal(result.table['Price'].values,
                                      self.energy['price actual'].values)

    def test_repeated_hour_rejected(self):
        """A table listing an hour twice cannot be joined one-to-one."""
        energy = pd.concat([self.energy, self.energy.iloc[[3]]], ignore_index=True)

        with self.assertRaises(DataValidationError) as ctx:
            fuse_energy_weather(energy, self.weather)
        self.assertEqual(ctx.exception.stage, 'join')
        self.assertIn('energy table', str(ctx.exception))

    def test_merged_columns_conserve_totals(self):
        """Merged columns hold the sum of their members."""
        result = fuse_energy_weather(self.energy, self.weather)

        coal = (self.energy['generation fossil brown coal/lignite']
                + self.energy['generation fossil hard coal'])
        others = self.energy['generation other'] + self.energy['generation other renewable']
        np.testing.assert_array_almost_equal(result.table['Coal'].values, coal.values)
        np.testing.assert_array_almost_equal(result.table['Others'].values, others.values)

    def test_rain_label_mismatch_warns(self):
        """The drop list's 'Rain 1h' matches nothing and Rain1h stays."""
        result = fuse_energy_weather(self.energy, self.weather)

        self.assertIn('Rain1h', result.table.columns)
        self.assertEqual(result.unmatched_columns, {'drop_forecasts': ['Rain 1h']})

    def test_rain_label_mismatch_raises(self):
        """Under the 'raise' policy the mismatch aborts the run."""
        config = PipelineConfig(schema_policy='raise')

        with self.assertRaises(SchemaMismatchError) as ctx:
            fuse_energy_weather(self.energy, self.weather, config)
        self.assertEqual(ctx.exception.columns, ['Rain 1h'])
        self.assertEqual(ctx.exception.stage, 'drop_forecasts')

    def test_matching_label_drops_rain(self):
        """With a matching label the field is removed."""
        config = PipelineConfig(forecast_drop_columns=['Forecast Solar', 'Forecast Wind',
                                                       'Total Load Forecast', 'Price Forecast',
                                                       'Rain1h'])
        result = fuse_energy_weather(self.energy, self.weather, config)

        self.assertNotIn('Rain1h', result.table.columns)
        self.assertEqual(result.unmatched_columns, {})

    def test_label_count_mismatch(self):
        """A label list of the wrong length is rejected."""
        config = PipelineConfig(column_labels=DEFAULT_COLUMN_LABELS[:-1])

        with self.assertRaises(SchemaMismatchError):
            fuse_energy_weather(self.energy, self.weather, config)


class TestFusionSteps(unittest.TestCase):
    """Test cases for the individual fusion helpers."""

    def setUp(self):
        """Set up a small labelled table."""
        self.df = pd.DataFrame({
            'a': [1.0, 2.0], 'b': [3.0, np.nan], 'Price': [10.0, 11.0], 'c': [5.0, 6.0],
        })

    def test_rename_by_mapping(self):
        """A mapping renames by current name."""
        renamed = rename_columns(self.df, {'a': 'A'})
        self.assertEqual(list(renamed.columns), ['A', 'b', 'Price', 'c'])

        with self.assertRaises(SchemaMismatchError):
            rename_columns(self.df, {'z': 'Z'})

    def test_rename_duplicate_labels(self):
        """Positional labels must be unique."""
        with self.assertRaises(ValueError):
            rename_columns(self.df, ['x', 'x', 'y', 'z'])

    def test_merge_keeps_missing(self):
        """A missing member makes the merged value missing."""
        merged, unmatched = merge_columns(self.df, {'ab': ('a', 'b')})

        self.assertEqual(unmatched, [])
        self.assertEqual(merged['ab'].iloc[0], 4.0)
        self.assertTrue(np.isnan(merged['ab'].iloc[1]))
        self.assertNotIn('a', merged.columns)

    def test_merge_group_with_absent_member(self):
        """A group naming an absent column is skipped."""
        merged, unmatched = merge_columns(self.df, {'az': ('a', 'z')})

        self.assertEqual(unmatched, ['z'])
        self.assertIn('a', merged.columns)
        self.assertNotIn('az', merged.columns)

    def test_move_to_end(self):
        """The target becomes the last column."""
        moved = move_to_end(self.df, 'Price')
        self.assertEqual(list(moved.columns), ['a', 'b', 'c', 'Price'])

        with self.assertRaises(SchemaMismatchError):
            move_to_end(self.df, 'Target')

    def test_drop_columns_reports_missing(self):
        """Absent names are returned rather than dropped."""
        dropped, missing = drop_columns(self.df, ['c', 'd'], stage='drop_test')

        self.assertEqual(list(dropped.columns), ['a', 'b', 'Price'])
        self.assertEqual(missing, ['d'])

    def test_join_requires_time(self):
        """Both tables need the time column."""
        with self.assertRaises(SchemaMismatchError):
            join_on_time(self.df, self.df)


if __name__ == '__main__':
    unittest.main()
