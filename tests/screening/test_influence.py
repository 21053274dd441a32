"""
Tests for influence screening.
"""
import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm
from statsmodels.stats.outliers_influence import OLSInfluence

from lassotune.data import Dataset
from lassotune.exceptions import ConfigurationError, NumericalFailure
from lassotune.screening import (
    InfluenceScreener,
    compute_influence,
    influence_threshold,
)


@pytest.fixture
def dataset_with_outlier(linear_frame) -> Dataset:
    """Linear data with one high-leverage, badly fitting observation."""
    frame = linear_frame.copy()
    frame.loc["obs050", ["x1", "x3", "y"]] = [6.0, 6.0, 40.0]
    return Dataset(frame, outcome="y")


class TestComputeInfluence:
    """Tests for Cook's distance computation."""

    def test_matches_statsmodels(self, linear_dataset):
        influence = compute_influence(linear_dataset)

        X = sm.add_constant(linear_dataset.X.to_numpy())
        expected = OLSInfluence(sm.OLS(linear_dataset.y.to_numpy(), X).fit()).cooks_distance[0]
        np.testing.assert_allclose(influence.to_numpy(), expected)
        assert list(influence.index) == list(linear_dataset.ids)

    def test_categorical_predictors_are_encoded(self, mixed_dataset):
        influence = compute_influence(mixed_dataset, outcome_transform="sqrt")
        assert len(influence) == mixed_dataset.n_rows
        assert np.isfinite(influence).all()

    def test_rank_deficient_raises(self, linear_frame):
        frame = linear_frame.assign(x5=2.0 * linear_frame["x1"])
        with pytest.raises(NumericalFailure, match="rank deficient"):
            compute_influence(Dataset(frame, outcome="y"))

    def test_too_few_rows_raises(self, linear_dataset):
        with pytest.raises(NumericalFailure, match="observations"):
            compute_influence(linear_dataset.subset(np.arange(5)))

    def test_removing_top_row_does_not_raise_influence(self, dataset_with_outlier):
        before = compute_influence(dataset_with_outlier)
        top = before.idxmax()
        after = compute_influence(dataset_with_outlier.drop_ids([top]))

        assert top == "obs050"
        assert top not in after.index
        assert after.max() <= before[top]
        assert after.sum() < before.sum()

    def test_threshold_is_multiple_of_mean(self):
        stat = np.array([0.1, 0.2, 0.3, np.nan])
        assert influence_threshold(stat, 4.0) == pytest.approx(0.8)


class TestInfluenceScreener:
    """Tests for InfluenceScreener.screen."""

    def test_removes_outlier(self, dataset_with_outlier):
        result = InfluenceScreener(multiplier=4.0).screen(dataset_with_outlier)
        assert "obs050" in result.removed_ids
        assert "obs050" not in result.dataset.ids
        assert result.dataset.n_rows == dataset_with_outlier.n_rows - result.n_removed

    def test_threshold_is_four_times_mean(self, dataset_with_outlier):
        result = InfluenceScreener(multiplier=4.0).screen(dataset_with_outlier)
        assert result.threshold == pytest.approx(4.0 * result.influence.mean())
        removed = result.influence[result.influence > result.threshold].index
        assert sorted(removed) == sorted(result.removed_ids)

    def test_single_pass(self, dataset_with_outlier):
        first = InfluenceScreener().screen(dataset_with_outlier)
        # Only observations above the first threshold are removed, even if
        # a refit on the reduced data would flag more
        assert first.n_removed == int((first.influence > first.threshold).sum())

    def test_no_outliers_returns_dataset_unchanged(self, linear_dataset):
        result = InfluenceScreener(multiplier=1000.0).screen(linear_dataset)
        assert result.n_removed == 0
        assert result.dataset is linear_dataset

    def test_invalid_multiplier(self):
        with pytest.raises(ConfigurationError, match="multiplier"):
            InfluenceScreener(multiplier=0)

    def test_to_dict(self, dataset_with_outlier):
        summary = InfluenceScreener().screen(dataset_with_outlier).to_dict()
        assert summary["n_removed"] >= 1
        assert "obs050" in summary["removed_ids"]
