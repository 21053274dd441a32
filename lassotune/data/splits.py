"""
Stratified splitting on a binned continuous outcome.

The outcome is cut into quantile bins; every split draws from each bin
separately so the outcome distribution is preserved on both sides.
Randomness always comes from an explicit numpy Generator.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
import pandas as pd

from lassotune.exceptions import ConfigurationError

from .dataset import Dataset

logger = logging.getLogger(__name__)

# Minimum rows per bin before bins are reduced
MIN_ROWS_PER_BIN = 20


def make_strata(
    y: pd.Series | np.ndarray,
    n_bins: int = 4,
    pool: float = 0.1,
) -> np.ndarray:
    """
    Assign each observation to a quantile bin of the outcome.

    Args:
        y: Continuous outcome values
        n_bins: Number of quantile bins requested
        pool: Bins holding less than this fraction of rows are merged
            into their smaller neighbour

    Returns:
        Integer stratum labels 0..k-1, shape (n,)
    """
    values = np.asarray(y, dtype=np.float64)
    n = len(values)

    if n == 0:
        return np.zeros(0, dtype=np.int64)
    if n_bins < 2:
        return np.zeros(n, dtype=np.int64)

    if n // n_bins < MIN_ROWS_PER_BIN:
        reduced = max(n // MIN_ROWS_PER_BIN, 1)
        if reduced < 2:
            logger.warning(
                f"Too little data to stratify ({n} rows for {n_bins} bins); "
                f"using a single stratum"
            )
            return np.zeros(n, dtype=np.int64)
        logger.warning(
            f"Reducing stratification bins from {n_bins} to {reduced} "
            f"({n} rows, need {MIN_ROWS_PER_BIN} per bin)"
        )
        n_bins = reduced

    strata = pd.qcut(values, q=n_bins, labels=False, duplicates="drop")
    strata = np.asarray(strata, dtype=np.int64)

    return _pool_small_strata(strata, pool)


def _pool_small_strata(strata: np.ndarray, pool: float) -> np.ndarray:
    """Merge strata smaller than ``pool`` of the rows into adjacent strata."""
    n = len(strata)
    labels = list(np.unique(strata))
    counts = {s: int((strata == s).sum()) for s in labels}
    result = strata.copy()

    while len(labels) > 1:
        smallest = min(labels, key=lambda s: counts[s])
        if counts[smallest] / n >= pool:
            break
        pos = labels.index(smallest)
        if pos == 0:
            target = labels[1]
        elif pos == len(labels) - 1:
            target = labels[-2]
        else:
            left, right = labels[pos - 1], labels[pos + 1]
            target = left if counts[left] <= counts[right] else right
        result[result == smallest] = target
        counts[target] += counts.pop(smallest)
        labels.remove(smallest)

    # Relabel to consecutive integers preserving order
    _, relabeled = np.unique(result, return_inverse=True)
    return relabeled.astype(np.int64)


@dataclass
class SplitResult:
    """Train/test partition of one source dataset."""

    train: Dataset
    test: Dataset
    train_positions: np.ndarray
    test_positions: np.ndarray
    strata: np.ndarray

    def to_dict(self) -> Dict[str, int]:
        return {
            "total_samples": int(len(self.strata)),
            "train_samples": int(len(self.train_positions)),
            "test_samples": int(len(self.test_positions)),
            "n_strata": int(len(np.unique(self.strata))) if len(self.strata) else 0,
        }


def stratified_split(
    dataset: Dataset,
    split_fraction: float = 0.75,
    n_bins: int = 4,
    rng: Optional[np.random.Generator | int] = None,
    pool: float = 0.1,
) -> SplitResult:
    """
    Split a dataset into disjoint train/test partitions stratified by outcome bins.

    Within each stratum ``floor(n_stratum * split_fraction)`` rows are drawn
    into the training partition; the remainder forms the test partition.

    Args:
        dataset: Source dataset
        split_fraction: Fraction of rows assigned to training, in (0, 1)
        n_bins: Number of outcome quantile bins
        rng: numpy Generator or integer seed
        pool: Small-stratum pooling threshold (see make_strata)

    Returns:
        SplitResult with train and test datasets

    Raises:
        ConfigurationError: If split_fraction is outside (0, 1) or a partition is empty
    """
    if not 0 < split_fraction < 1:
        raise ConfigurationError(f"split_fraction must be in (0, 1), got {split_fraction}")
    if dataset.n_rows == 0:
        raise ConfigurationError("Dataset is empty - cannot create splits")

    rng = np.random.default_rng(rng)
    strata = make_strata(dataset.y, n_bins=n_bins, pool=pool)

    train_parts = []
    for stratum in np.unique(strata):
        members = np.flatnonzero(strata == stratum)
        n_train = int(np.floor(len(members) * split_fraction))
        train_parts.append(rng.permutation(members)[:n_train])

    train_positions = np.sort(np.concatenate(train_parts))
    test_positions = np.setdiff1d(np.arange(dataset.n_rows), train_positions)

    if len(train_positions) == 0 or len(test_positions) == 0:
        raise ConfigurationError(
            f"Split produced an empty partition (train={len(train_positions)}, "
            f"test={len(test_positions)}); adjust split_fraction or provide more data"
        )

    logger.info(
        f"Stratified split: train={len(train_positions):,} "
        f"({len(train_positions) / dataset.n_rows:.1%}), test={len(test_positions):,}, "
        f"strata={len(np.unique(strata))}"
    )

    return SplitResult(
        train=dataset.subset(train_positions),
        test=dataset.subset(test_positions),
        train_positions=train_positions,
        test_positions=test_positions,
        strata=strata,
    )


def summarize_strata(
    strata: np.ndarray,
    train_positions: np.ndarray,
    test_positions: np.ndarray,
) -> pd.DataFrame:
    """
    Per-stratum share of rows in the source, train and test partitions.

    Returns:
        DataFrame indexed by stratum with columns source, train, test
    """
    labels = np.unique(strata)
    source = pd.Series(strata).value_counts(normalize=True)
    train = pd.Series(strata[train_positions]).value_counts(normalize=True)
    test = pd.Series(strata[test_positions]).value_counts(normalize=True)

    return pd.DataFrame(
        {
            "source": source.reindex(labels, fill_value=0.0),
            "train": train.reindex(labels, fill_value=0.0),
            "test": test.reindex(labels, fill_value=0.0),
        },
        index=pd.Index(labels, name="stratum"),
    )


__all__ = [
    "MIN_ROWS_PER_BIN",
    "SplitResult",
    "make_strata",
    "stratified_split",
    "summarize_strata",
]
