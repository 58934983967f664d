"""
Unit tests for the cross-city weather aggregation.
"""

import unittest
import pandas as pd
import numpy as np
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
sys.path.insert(0, os.path.dirname(__file__))

from price_inference.features.weather_aggregation import (
    aggregate_city_weather, check_alignment, build_aggregation_plan
)
from price_inference.data.cleaning import split_by_city, prune_weather_columns
from price_inference.utils.config import DEFAULT_AGGREGATION_RULES, DEFAULT_WEATHER_DROP_COLUMNS
from price_inference.utils.exceptions import AlignmentError, SchemaMismatchError
from sample_data import hourly_index, make_weather_frame


class TestWeatherAggregation(unittest.TestCase):
    """Test cases for aggregate_city_weather."""

    def setUp(self):
        """Set up three small city tables sharing one timestamp."""
        time = hourly_index(1)
        self.city_tables = {
            'Madrid': pd.DataFrame({'time': time, 'temp': [10.0], 'temp_min': [5.0], 'temp_max': [12.0]}),
            'Bilbao': pd.DataFrame({'time': time, 'temp': [20.0], 'temp_min': [-3.0], 'temp_max': [18.0]}),
            'Seville': pd.DataFrame({'time': time, 'temp': [30.0], 'temp_min': [2.0], 'temp_max': [25.0]}),
        }

    def test_extremes_and_mean(self):
        """Min and max keep the most extreme city; other fields are averaged."""
        aggregated = aggregate_city_weather(self.city_tables, DEFAULT_AGGREGATION_RULES)

        self.assertEqual(len(aggregated), 1)
        self.assertEqual(aggregated['temp_min'].iloc[0], -3.0)
        self.assertEqual(aggregated['temp_max'].iloc[0], 25.0)
        self.assertAlmostEqual(aggregated['temp'].iloc[0], 20.0)

    def test_column_order_preserved(self):
        """Output keeps the time column first and the field order of the inputs."""
        aggregated = aggregate_city_weather(self.city_tables, DEFAULT_AGGREGATION_RULES)
        self.assertEqual(list(aggregated.columns), ['time', 'temp', 'temp_min', 'temp_max'])

    def test_median_default(self):
        """The default aggregation is configurable."""
        aggregated = aggregate_city_weather(self.city_tables, {}, default='median')
        self.assertEqual(aggregated['temp_min'].iloc[0], 2.0)

    def test_one_row_per_timestamp(self):
        """Aggregating real-shaped city tables gives one row per hour."""
        weather = make_weather_frame(['Madrid', 'Bilbao', 'Seville'], n_hours=50)
        tables = {
            city: prune_weather_columns(table, DEFAULT_WEATHER_DROP_COLUMNS)
            for city, table in split_by_city(weather, ['Madrid', 'Bilbao', 'Seville']).items()
        }

        aggregated = aggregate_city_weather(tables, DEFAULT_AGGREGATION_RULES)

        self.assertEqual(len(aggregated), 50)
        self.assertTrue(aggregated['time'].is_monotonic_increasing)
        self.assertEqual(aggregated.shape[1], 11)

        per_hour = weather.groupby('time')['temp_min'].min().values
        np.testing.assert_array_almost_equal(aggregated['temp_min'].values, per_hour)

    def test_misaligned_city_raises(self):
        """A city missing a timestamp fails with AlignmentError."""
        time = hourly_index(3)
        tables = {
            'Madrid': pd.DataFrame({'time': time, 'temp': [1.0, 2.0, 3.0]}),
            'Bilbao': pd.DataFrame({'time': time[:2], 'temp': [1.0, 2.0]}),
        }

        with self.assertRaises(AlignmentError) as ctx:
            aggregate_city_weather(tables)
        self.assertEqual(ctx.exception.city, 'Bilbao')
        self.assertEqual(ctx.exception.missing, 1)
        self.assertEqual(ctx.exception.extra, 0)

    def test_empty_city_raises(self):
        """A configured city without rows cannot be aligned."""
        tables = dict(self.city_tables)
        tables['Valencia'] = self.city_tables['Madrid'].iloc[0:0]

        with self.assertRaises(AlignmentError):
            aggregate_city_weather(tables)

    def test_duplicate_timestamps_rejected(self):
        """Tables must be deduplicated before aggregation."""
        tables = {'Madrid': pd.concat([self.city_tables['Madrid']] * 2, ignore_index=True)}

        with self.assertRaises(ValueError):
            check_alignment(tables)

    def test_no_tables(self):
        """Aggregating nothing is an error."""
        with self.assertRaises(ValueError):
            aggregate_city_weather({})

    def test_unknown_aggregation(self):
        """Only the supported aggregations are accepted."""
        with self.assertRaises(ValueError):
            build_aggregation_plan(['temp'], {'temp': 'mode'})
        with self.assertRaises(ValueError):
            build_aggregation_plan(['temp'], default='sum')

    def test_rule_for_absent_field(self):
        """A rule naming an absent field is reported under the 'raise' policy."""
        plan = build_aggregation_plan(['temp'], {'temp_min': 'min'}, schema_policy='warn')
        self.assertEqual(plan, {'temp': 'mean'})

        with self.assertRaises(SchemaMismatchError):
            build_aggregation_plan(['temp'], {'temp_min': 'min'}, schema_policy='raise')

    def test_field_missing_in_one_city(self):
        """All cities must carry the same weather fields."""
        tables = dict(self.city_tables)
        tables['Seville'] = tables['Seville'].drop(columns=['temp_max'])

        with self.assertRaises(SchemaMismatchError) as ctx:
            aggregate_city_weather(tables)
        self.assertEqual(ctx.exception.columns, ['temp_max'])


if __name__ == '__main__':
    unittest.main()
