"""
Tests for stratified splitting.
"""
import numpy as np
import pandas as pd
import pytest

from lassotune.data import Dataset, make_strata, stratified_split, summarize_strata
from lassotune.exceptions import ConfigurationError


@pytest.fixture
def skewed_dataset() -> Dataset:
    """500 rows with a right-skewed outcome."""
    np.random.seed(42)
    n = 500
    x = np.random.randn(n)
    y = np.exp(x + np.random.randn(n) * 0.3)
    return Dataset(pd.DataFrame({"x": x, "y": y}), outcome="y")


class TestMakeStrata:
    """Tests for outcome binning."""

    def test_quantile_bins_are_balanced(self):
        y = np.arange(200, dtype=float)
        strata = make_strata(y, n_bins=4)
        assert sorted(np.unique(strata)) == [0, 1, 2, 3]
        np.testing.assert_array_equal(np.bincount(strata), [50, 50, 50, 50])

    def test_strata_follow_outcome_order(self):
        y = np.arange(200, dtype=float)
        strata = make_strata(y, n_bins=4)
        assert np.all(np.diff(strata) >= 0)

    def test_too_few_rows_uses_single_stratum(self):
        strata = make_strata(np.arange(30, dtype=float), n_bins=4)
        assert set(strata) == {0}

    def test_bins_reduced_for_small_data(self):
        strata = make_strata(np.arange(60, dtype=float), n_bins=4)
        assert len(np.unique(strata)) == 3

    def test_small_strata_are_pooled(self):
        # Four 25% bins fall below a 30% pooling threshold
        strata = make_strata(np.arange(200, dtype=float), n_bins=4, pool=0.3)
        np.testing.assert_array_equal(np.bincount(strata), [100, 100])


class TestStratifiedSplit:
    """Tests for stratified_split."""

    def test_partitions_are_disjoint_and_cover_source(self, skewed_dataset):
        result = stratified_split(skewed_dataset, split_fraction=0.75, n_bins=4, rng=1)
        combined = np.concatenate([result.train_positions, result.test_positions])
        assert len(np.intersect1d(result.train_positions, result.test_positions)) == 0
        np.testing.assert_array_equal(np.sort(combined), np.arange(skewed_dataset.n_rows))

    def test_train_size_is_floor_per_stratum(self, skewed_dataset):
        result = stratified_split(skewed_dataset, split_fraction=0.75, n_bins=4, rng=1)
        expected = sum(
            int(np.floor(count * 0.75)) for count in np.bincount(result.strata)
        )
        assert result.train.n_rows == expected

    def test_stratum_shares_preserved(self, skewed_dataset):
        result = stratified_split(skewed_dataset, split_fraction=0.7, n_bins=5, rng=3)
        shares = summarize_strata(result.strata, result.train_positions, result.test_positions)
        assert len(shares) == 5
        assert (abs(shares["train"] - shares["source"]) < 0.05).all()
        assert (abs(shares["test"] - shares["source"]) < 0.05).all()

    def test_reproducible_for_seed(self, skewed_dataset):
        a = stratified_split(skewed_dataset, rng=42)
        b = stratified_split(skewed_dataset, rng=42)
        c = stratified_split(skewed_dataset, rng=43)
        np.testing.assert_array_equal(a.train_positions, b.train_positions)
        assert not np.array_equal(a.train_positions, c.train_positions)

    def test_invalid_fraction_raises(self, skewed_dataset):
        with pytest.raises(ConfigurationError, match="split_fraction"):
            stratified_split(skewed_dataset, split_fraction=1.0)

    def test_ids_survive_split(self, linear_dataset):
        result = stratified_split(linear_dataset, n_bins=2, rng=0)
        assert set(result.train.ids) | set(result.test.ids) == set(linear_dataset.ids)
