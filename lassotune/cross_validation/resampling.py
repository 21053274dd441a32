"""
Stratified resampling of the training partition.

Two strategies are supported:

- bootstrap: within each outcome stratum, draw as many rows as the
  stratum holds, with replacement. The assessment set is every row that
  was never drawn (out-of-bag).
- kfold: within each outcome stratum, permute the rows and deal them to
  folds round-robin. Each resample holds out one fold.

All randomness flows from a single ``numpy.random.default_rng(seed)``
consumed in a fixed order, so partitions never depend on how many
workers later evaluate them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

import numpy as np

from lassotune.data.dataset import Dataset
from lassotune.data.splits import make_strata
from lassotune.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

STRATEGIES = ("bootstrap", "kfold")


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class Resample:
    """
    One analysis/assessment partition, as positions into the training dataset.

    Attributes:
        id: Resample label (e.g. ``Bootstrap03``, ``Fold05``)
        analysis: Positions used to learn the pipeline and fit (may repeat)
        assessment: Positions used to score (never in analysis)
    """
    id: str
    analysis: np.ndarray
    assessment: np.ndarray

    def split(self, dataset: Dataset) -> Tuple[Dataset, Dataset]:
        """Materialize (analysis, assessment) datasets."""
        return dataset.subset(self.analysis), dataset.subset(self.assessment)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "n_analysis": int(len(self.analysis)),
            "n_assessment": int(len(self.assessment)),
        }


@dataclass
class ResamplingSet:
    """Ordered collection of resamples drawn from one training dataset."""
    resamples: List[Resample]
    strategy: str
    seed: int
    n_bins: int
    n_dropped: int = 0
    strata: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))

    def __iter__(self) -> Iterator[Resample]:
        return iter(self.resamples)

    def __len__(self) -> int:
        return len(self.resamples)

    def __getitem__(self, index: int) -> Resample:
        return self.resamples[index]

    @property
    def ids(self) -> List[str]:
        return [r.id for r in self.resamples]

    def to_dict(self) -> Dict[str, object]:
        return {
            "strategy": self.strategy,
            "seed": self.seed,
            "n_bins": self.n_bins,
            "n_resamples": len(self.resamples),
            "n_dropped": self.n_dropped,
            "resamples": [r.to_dict() for r in self.resamples],
        }


# =============================================================================
# RESAMPLER
# =============================================================================

class Resampler:
    """
    Generate stratified bootstrap or k-fold resamples.

    Example:
        >>> resampler = Resampler("bootstrap", n_resamples=25, n_bins=4, seed=42)
        >>> resamples = resampler.resample(train)
        >>> resamples[0].id
        'Bootstrap01'
    """

    def __init__(
        self,
        strategy: str = "bootstrap",
        n_resamples: int = 25,
        n_bins: int = 4,
        pool: float = 0.1,
        seed: int = 42,
    ) -> None:
        if strategy not in STRATEGIES:
            raise ConfigurationError(
                f"Unknown resample strategy {strategy!r}; expected one of {STRATEGIES}"
            )
        if n_resamples < 1:
            raise ConfigurationError(f"n_resamples must be >= 1, got {n_resamples}")
        if strategy == "kfold" and n_resamples < 2:
            raise ConfigurationError(f"kfold needs at least 2 folds, got {n_resamples}")
        self.strategy = strategy
        self.n_resamples = n_resamples
        self.n_bins = n_bins
        self.pool = pool
        self.seed = seed

    @classmethod
    def from_config(cls, config) -> "Resampler":
        """Build from a LassoConfig."""
        return cls(
            strategy=config.resample_strategy,
            n_resamples=config.resample_count,
            n_bins=config.stratify_bins,
            pool=config.strata_pool,
            seed=config.seed,
        )

    def resample(self, dataset: Dataset) -> ResamplingSet:
        """
        Draw resamples from ``dataset``.

        Raises:
            ConfigurationError: If the dataset is too small for the strategy
                or no resample has a non-empty assessment set
        """
        n = dataset.n_rows
        if n < 2:
            raise ConfigurationError(f"Need at least 2 rows to resample, got {n}")

        rng = np.random.default_rng(self.seed)
        strata = make_strata(dataset.y, n_bins=self.n_bins, pool=self.pool)
        groups = [np.flatnonzero(strata == s) for s in np.unique(strata)]

        if self.strategy == "bootstrap":
            candidates = self._bootstrap(n, groups, rng)
        else:
            if self.n_resamples > n:
                raise ConfigurationError(
                    f"kfold needs n_resamples <= number of rows ({self.n_resamples} > {n})"
                )
            candidates = self._kfold(n, groups, rng)

        resamples = []
        for resample in candidates:
            if len(resample.assessment) == 0:
                logger.warning(f"Dropping {resample.id}: empty assessment set")
                continue
            resamples.append(resample)

        n_dropped = len(candidates) - len(resamples)
        if not resamples:
            raise ConfigurationError(
                f"All {len(candidates)} {self.strategy} resamples had empty assessment sets"
            )

        logger.info(
            f"Generated {len(resamples)} {self.strategy} resamples over {n:,} rows "
            f"({len(groups)} strata, {n_dropped} dropped)"
        )
        return ResamplingSet(
            resamples=resamples,
            strategy=self.strategy,
            seed=self.seed,
            n_bins=self.n_bins,
            n_dropped=n_dropped,
            strata=strata,
        )

    def _bootstrap(
        self,
        n: int,
        groups: List[np.ndarray],
        rng: np.random.Generator,
    ) -> List[Resample]:
        resamples = []
        all_positions = np.arange(n)
        for i in range(self.n_resamples):
            drawn = np.concatenate(
                [rng.choice(members, size=len(members), replace=True) for members in groups]
            )
            analysis = np.sort(drawn)
            assessment = np.setdiff1d(all_positions, analysis)
            resamples.append(Resample(_resample_id("Bootstrap", i, self.n_resamples),
                                      analysis, assessment))
        return resamples

    def _kfold(
        self,
        n: int,
        groups: List[np.ndarray],
        rng: np.random.Generator,
    ) -> List[Resample]:
        v = self.n_resamples
        fold_of = np.empty(n, dtype=np.int64)
        # Dealing continues across strata so fold sizes differ by at most one
        offset = 0
        for members in groups:
            permuted = rng.permutation(members)
            fold_of[permuted] = (offset + np.arange(len(permuted))) % v
            offset = (offset + len(permuted)) % v

        resamples = []
        for fold in range(v):
            assessment = np.flatnonzero(fold_of == fold)
            analysis = np.flatnonzero(fold_of != fold)
            resamples.append(Resample(_resample_id("Fold", fold, v), analysis, assessment))
        return resamples

    def __repr__(self) -> str:
        return (
            f"Resampler(strategy={self.strategy!r}, n_resamples={self.n_resamples}, "
            f"n_bins={self.n_bins}, seed={self.seed})"
        )


def _resample_id(prefix: str, index: int, total: int) -> str:
    width = max(2, len(str(total)))
    return f"{prefix}{index + 1:0{width}d}"


__all__ = [
    "STRATEGIES",
    "Resample",
    "ResamplingSet",
    "Resampler",
]
