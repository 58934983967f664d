"""
Unit tests for the Train/Test split and z-score scaling.
"""

import unittest
import pandas as pd
import numpy as np
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
sys.path.insert(0, os.path.dirname(__file__))

from price_inference.features.split_scale import split_train_test, scale_dataset, scale_split
from price_inference.features.subsets import subset_columns, select_subset, PRODUCTION_FEATURES
from price_inference.utils.exceptions import DataValidationError
from sample_data import make_analysis_frame


class TestSplitTrainTest(unittest.TestCase):
    """Test cases for the Bernoulli Train/Test split."""

    def setUp(self):
        """Set up test fixtures."""
        self.data = make_analysis_frame(n_rows=500)

    def test_disjoint_and_covering(self):
        """Every row lands in exactly one partition with its label intact."""
        split = split_train_test(self.data, 0.7, seed=1)

        self.assertEqual(len(split.train) + len(split.test), len(self.data))
        self.assertEqual(len(split.train.index.intersection(split.test.index)), 0)
        self.assertEqual(sorted(split.train.index.append(split.test.index)), list(self.data.index))
        pd.testing.assert_frame_equal(split.train, self.data.loc[split.train.index])

    def test_train_share_approaches_p(self):
        """The Train share is close to p for a large table."""
        large = pd.DataFrame({'x': np.arange(20000), 'Price': np.zeros(20000)})
        split = split_train_test(large, 0.7, seed=3)
        self.assertAlmostEqual(split.train_share, 0.7, delta=0.02)

    def test_same_seed_same_split(self):
        """A fixed seed reproduces the assignment."""
        first = split_train_test(self.data, 0.7, seed=11)
        second = split_train_test(self.data, 0.7, seed=11)
        other = split_train_test(self.data, 0.7, seed=12)

        self.assertEqual(list(first.train.index), list(second.train.index))
        self.assertNotEqual(list(first.train.index), list(other.train.index))

    def test_invalid_fraction(self):
        """p must lie strictly between 0 and 1."""
        for p in (0.0, 1.0, -0.1, 1.5):
            with self.assertRaises(ValueError):
                split_train_test(self.data, p)


class TestScaleDataset(unittest.TestCase):
    """Test cases for z-score scaling."""

    def setUp(self):
        """Set up test fixtures."""
        self.split = split_train_test(make_analysis_frame(n_rows=400), 0.7, seed=1)

    def test_zero_mean_unit_std(self):
        """Scaled features have mean 0 and sample std 1."""
        view = scale_dataset(self.split.train)

        np.testing.assert_array_almost_equal(view.features.mean().values, 0.0)
        np.testing.assert_array_almost_equal(view.features.std(ddof=1).values, 1.0)
        self.assertNotIn('Price', view.features.columns)

    def test_target_unscaled(self):
        """The target is carried through unchanged."""
        view = scale_dataset(self.split.train)
        pd.testing.assert_series_equal(view.target, self.split.train['Price'])

    def test_inverse_transform(self):
        """Scaling is reversible with the stored statistics."""
        view = scale_dataset(self.split.train)
        restored = view.inverse_transform()
        original = self.split.train.drop(columns=['Price'])

        np.testing.assert_array_almost_equal(restored.values, original.values)
        pd.testing.assert_series_equal(view.means, original.mean(), check_names=False)
        pd.testing.assert_series_equal(view.stds, original.std(ddof=1), check_names=False)

    def test_independent_statistics(self):
        """Train and Test are each scaled with their own statistics."""
        train_view, test_view = scale_split(self.split)

        np.testing.assert_array_almost_equal(test_view.features.mean().values, 0.0)
        self.assertFalse(np.allclose(train_view.means.values, test_view.means.values))
        self.assertEqual(list(test_view.features.index), list(self.split.test.index))

    def test_too_few_rows(self):
        """Empty and single-row datasets have no sample std."""
        with self.assertRaises(DataValidationError) as ctx:
            scale_dataset(self.split.train.iloc[0:0])
        self.assertEqual(ctx.exception.stage, 'scale')

        with self.assertRaises(DataValidationError):
            scale_dataset(self.split.train.iloc[0:1])

    def test_constant_column(self):
        """A constant column scales to zeros instead of dividing by zero."""
        data = self.split.train.copy()
        data['Flat'] = 3.0
        view = scale_dataset(data)

        self.assertTrue((view.features['Flat'] == 0.0).all())
        np.testing.assert_array_almost_equal(view.inverse_transform()['Flat'].values, 3.0)

    def test_no_numeric_columns(self):
        """A table with only the target has nothing to scale."""
        with self.assertRaises(DataValidationError):
            scale_dataset(self.split.train[['Price']])


class TestSubsets(unittest.TestCase):
    """Test cases for variable subset selection."""

    def setUp(self):
        """Set up test fixtures."""
        self.data = make_analysis_frame(n_rows=10)

    def test_all_excludes_target(self):
        """The 'all' subset is every column but the target."""
        columns = subset_columns(self.data, 'all')
        self.assertEqual(len(columns), self.data.shape[1] - 1)
        self.assertNotIn('Price', columns)

    def test_production_and_weather(self):
        """Named subsets keep only their present members."""
        production = subset_columns(self.data, 'production')
        weather = subset_columns(self.data, 'weather')

        self.assertEqual(production, ['Biomass', 'Gas', 'Nuclear', 'Solar', 'Wind', 'Coal', 'Others'])
        self.assertTrue(set(production).issubset(PRODUCTION_FEATURES))
        self.assertEqual(set(production) & set(weather), set())
        self.assertEqual(list(select_subset(self.data, 'weather').columns), weather)

    def test_unknown_subset(self):
        """Unknown subset names are rejected."""
        with self.assertRaises(ValueError):
            subset_columns(self.data, 'market')

    def test_empty_subset(self):
        """A subset with no present members is rejected."""
        with self.assertRaises(ValueError):
            subset_columns(self.data[['Gas', 'Price']], 'weather')


if __name__ == '__main__':
    unittest.main()
