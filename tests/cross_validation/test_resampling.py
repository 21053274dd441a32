"""
Tests for stratified bootstrap and k-fold resampling.
"""
import numpy as np
import pytest

from lassotune.config import LassoConfig
from lassotune.cross_validation import Resample, Resampler, ResamplingSet
from lassotune.exceptions import ConfigurationError


class TestBootstrap:
    """Tests for stratified bootstrap resamples."""

    def test_ids_and_count(self, train_dataset):
        resamples = Resampler("bootstrap", n_resamples=10, seed=1).resample(train_dataset)
        assert isinstance(resamples, ResamplingSet)
        assert len(resamples) == 10
        assert resamples.ids[0] == "Bootstrap01"
        assert resamples.ids[-1] == "Bootstrap10"

    def test_analysis_size_matches_source(self, train_dataset):
        resamples = Resampler("bootstrap", n_resamples=5, seed=1).resample(train_dataset)
        for resample in resamples:
            assert len(resample.analysis) == train_dataset.n_rows

    def test_assessment_is_out_of_bag(self, train_dataset):
        resamples = Resampler("bootstrap", n_resamples=5, seed=1).resample(train_dataset)
        for resample in resamples:
            assert len(resample.assessment) > 0
            assert len(np.intersect1d(resample.analysis, resample.assessment)) == 0
            covered = np.union1d(resample.analysis, resample.assessment)
            np.testing.assert_array_equal(covered, np.arange(train_dataset.n_rows))

    def test_draws_within_strata(self, train_dataset):
        resampler = Resampler("bootstrap", n_resamples=3, n_bins=4, seed=1)
        resamples = resampler.resample(train_dataset)
        counts = np.bincount(resamples.strata)
        for resample in resamples:
            drawn = np.bincount(resamples.strata[resample.analysis], minlength=len(counts))
            np.testing.assert_array_equal(drawn, counts)

    def test_reproducible(self, train_dataset):
        a = Resampler("bootstrap", n_resamples=4, seed=42).resample(train_dataset)
        b = Resampler("bootstrap", n_resamples=4, seed=42).resample(train_dataset)
        for ra, rb in zip(a, b):
            np.testing.assert_array_equal(ra.analysis, rb.analysis)
            np.testing.assert_array_equal(ra.assessment, rb.assessment)

    def test_different_seed_differs(self, train_dataset):
        a = Resampler("bootstrap", n_resamples=1, seed=1).resample(train_dataset)
        b = Resampler("bootstrap", n_resamples=1, seed=2).resample(train_dataset)
        assert not np.array_equal(a[0].analysis, b[0].analysis)


class TestKFold:
    """Tests for stratified k-fold resamples."""

    def test_folds_partition_the_data(self, train_dataset):
        resamples = Resampler("kfold", n_resamples=5, seed=3).resample(train_dataset)
        assert resamples.ids == ["Fold01", "Fold02", "Fold03", "Fold04", "Fold05"]

        assessed = np.concatenate([r.assessment for r in resamples])
        np.testing.assert_array_equal(np.sort(assessed), np.arange(train_dataset.n_rows))
        for resample in resamples:
            assert len(np.intersect1d(resample.analysis, resample.assessment)) == 0
            assert len(resample.analysis) + len(resample.assessment) == train_dataset.n_rows

    def test_fold_sizes_balanced(self, train_dataset):
        resamples = Resampler("kfold", n_resamples=6, seed=3).resample(train_dataset)
        sizes = [len(r.assessment) for r in resamples]
        assert max(sizes) - min(sizes) <= 1

    def test_too_many_folds_raises(self, train_dataset):
        small = train_dataset.subset(np.arange(4))
        with pytest.raises(ConfigurationError, match="n_resamples"):
            Resampler("kfold", n_resamples=5, n_bins=1).resample(small)

    def test_one_fold_rejected(self):
        with pytest.raises(ConfigurationError, match="at least 2 folds"):
            Resampler("kfold", n_resamples=1)


class TestResampler:
    """Tests shared by both strategies."""

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError, match="Unknown resample strategy"):
            Resampler("jackknife")

    def test_from_config(self):
        config = LassoConfig(resample_strategy="vfold", resample_count=7, stratify_bins=3,
                             seed=5)
        resampler = Resampler.from_config(config)
        assert resampler.strategy == "kfold"
        assert resampler.n_resamples == 7
        assert resampler.n_bins == 3
        assert resampler.seed == 5

    def test_empty_assessment_dropped(self, train_dataset):
        # With two rows about half of the draws cover both, leaving no out-of-bag row
        tiny = train_dataset.subset([0, 1])
        resamples = Resampler("bootstrap", n_resamples=20, n_bins=1, seed=0).resample(tiny)
        assert len(resamples) + resamples.n_dropped == 20
        assert resamples.n_dropped > 0
        assert all(len(r.assessment) > 0 for r in resamples)

    def test_split_materializes_datasets(self, train_dataset):
        resample = Resample("Fold01", np.array([0, 0, 1]), np.array([2, 3]))
        analysis, assessment = resample.split(train_dataset)
        assert analysis.n_rows == 3
        assert assessment.n_rows == 2
