"""
Penalty tuning over resamples.

For every resample, the preprocessing recipe is learned on the analysis
subset only, the full penalty grid is fitted as one warm-started path,
and every candidate is scored on the assessment subset after the
outcome transform is inverted. One task per resample is dispatched
through joblib; aggregation and selection only run after every task
has returned.

States:
    IDLE -> DISPATCH -> COLLECTING -> AGGREGATED -> SELECTED -> TERMINAL
    (COLLECTING -> FAILED when every candidate failed)
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from scipy import stats

from lassotune.config.lasso_config import LassoConfig
from lassotune.data.dataset import Dataset
from lassotune.exceptions import NumericalFailure, ResamplingExhaustion
from lassotune.models.lasso import CoordinateDescentSolver
from lassotune.models.metrics import (
    DEFAULT_METRICS,
    METRIC_DIRECTIONS,
    compute_regression_metrics,
    resolve_metric,
)
from lassotune.preprocessing.pipeline import PreprocessingPipeline

from .resampling import Resample, ResamplingSet

logger = logging.getLogger(__name__)


class TuningState(Enum):
    """Lifecycle of one tuning run."""

    IDLE = "idle"
    DISPATCH = "dispatch"
    COLLECTING = "collecting"
    AGGREGATED = "aggregated"
    SELECTED = "selected"
    TERMINAL = "terminal"
    FAILED = "failed"


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class CandidateEvaluation:
    """
    Score of one penalty candidate on one resample.

    Attributes:
        resample_id: Resample the candidate was evaluated on
        penalty: Lambda value
        metrics: Metric key -> value on the original outcome scale
        converged: Whether the solver converged at this penalty. A
            non-converged fit is still scored from its last iterate.
        error: Failure description, None when the candidate was scored
    """
    resample_id: str
    penalty: float
    metrics: Dict[str, float] = field(default_factory=dict)
    converged: bool = True
    error: Optional[str] = None

    @property
    def usable(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resample_id": self.resample_id,
            "penalty": self.penalty,
            **self.metrics,
            "converged": self.converged,
            "error": self.error,
        }


@dataclass(frozen=True)
class MetricRecord:
    """Aggregate of one metric for one penalty across resamples."""
    penalty: float
    metric: str
    mean: float
    std_err: float
    n: int
    n_nonconverged: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "penalty": self.penalty,
            "metric": self.metric,
            "mean": self.mean,
            "std_err": self.std_err,
            "n": self.n,
            "n_nonconverged": self.n_nonconverged,
        }


@dataclass
class TuningResult:
    """
    Outcome of a tuning run.

    Attributes:
        best_penalty: Selected lambda
        metric: Metric key used for selection
        rule: Selection rule ("best" or "one_se")
        records: Aggregated metric records for candidates that converged
            on at least one resample
        evaluations: Every per-resample evaluation
        failed_candidates: Penalty -> failure reasons, for candidates
            with no converged evaluation
        elapsed: Wall time in seconds
    """
    best_penalty: float
    metric: str
    rule: str
    records: List[MetricRecord]
    evaluations: List[CandidateEvaluation]
    failed_candidates: Dict[float, List[str]] = field(default_factory=dict)
    elapsed: float = 0.0

    def metrics_frame(self) -> pd.DataFrame:
        """Mean and standard error per penalty and metric."""
        frame = pd.DataFrame(
            [r.to_dict() for r in self.records],
            columns=["penalty", "metric", "mean", "std_err", "n", "n_nonconverged"],
        )
        return frame.sort_values(["metric", "penalty"]).reset_index(drop=True)

    def evaluations_frame(self) -> pd.DataFrame:
        return pd.DataFrame([e.to_dict() for e in self.evaluations])

    def best_record(self) -> MetricRecord:
        for record in self.records:
            if record.metric == self.metric and record.penalty == self.best_penalty:
                return record
        raise KeyError(f"No {self.metric} record for penalty {self.best_penalty}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best_penalty": self.best_penalty,
            "metric": self.metric,
            "rule": self.rule,
            "records": [r.to_dict() for r in self.records],
            "failed_candidates": {str(p): reasons for p, reasons in self.failed_candidates.items()},
            "n_evaluations": len(self.evaluations),
            "elapsed_seconds": self.elapsed,
        }


# =============================================================================
# PER-RESAMPLE EVALUATION
# =============================================================================

def evaluate_resample(
    resample: Resample,
    train: Dataset,
    recipe: PreprocessingPipeline,
    penalties: Sequence[float],
    solver_params: Dict[str, Any],
    metrics: Sequence[str] = DEFAULT_METRICS,
) -> List[CandidateEvaluation]:
    """
    Score every penalty candidate on one resample.

    The recipe is learned on the analysis subset only. Failures are
    returned as evaluations with ``error`` set, never raised. A fit that
    did not converge is scored from its last iterate and keeps
    ``converged=False``.

    Args:
        resample: Analysis/assessment partition of ``train``
        train: Training dataset the resample indexes into
        recipe: Unlearned preprocessing pipeline
        penalties: Candidate lambda values
        solver_params: Keyword arguments for CoordinateDescentSolver
        metrics: Metrics to compute

    Returns:
        One CandidateEvaluation per penalty, in ``penalties`` order
    """
    penalties = [float(p) for p in penalties]
    try:
        analysis, assessment = resample.split(train)
        learned = recipe.learn(analysis)
        X_fit, y_fit = learned.design_matrix(analysis)
        X_assess, _ = learned.design_matrix(assessment)
        observed = assessment.y.to_numpy(dtype=np.float64)

        solver = CoordinateDescentSolver(**solver_params)
        path = solver.fit_path(X_fit, y_fit, penalties, feature_names=learned.feature_names)
    except Exception as e:
        reason = f"{type(e).__name__}: {e}"
        logger.warning(f"{resample.id}: all candidates failed ({reason})")
        return [
            CandidateEvaluation(resample.id, p, converged=False, error=reason)
            for p in penalties
        ]

    evaluations = []
    for penalty in penalties:
        fit = path[penalty]
        predicted = learned.invert_outcome(fit.predict(X_assess))
        try:
            scores = compute_regression_metrics(observed, predicted, metrics)
        except ValueError as e:
            evaluations.append(CandidateEvaluation(
                resample.id, penalty, converged=fit.converged, error=f"ValueError: {e}",
            ))
            continue
        evaluations.append(CandidateEvaluation(
            resample.id,
            penalty,
            metrics=scores,
            converged=fit.converged,
        ))

    logger.debug(
        f"{resample.id}: {len(analysis)} analysis / {len(assessment)} assessment rows, "
        f"{len(learned.feature_names)} features"
    )
    return evaluations


# =============================================================================
# AGGREGATION AND SELECTION
# =============================================================================

def aggregate_metrics(evaluations: Sequence[CandidateEvaluation]) -> List[MetricRecord]:
    """
    Mean and standard error per (penalty, metric) over scored evaluations.

    Non-converged fits are scored from their last iterate and count in
    the aggregate; ``n_nonconverged`` flags how many of them there were.
    Penalties without a single converged evaluation produce no records
    (see ``collect_failures``). Non-finite metric values are left out of
    that metric's aggregate.
    """
    failed = set(collect_failures(evaluations))
    grouped: Dict[float, Dict[str, List[float]]] = {}
    nonconverged: Dict[float, int] = {}
    for evaluation in evaluations:
        if not evaluation.usable or evaluation.penalty in failed:
            continue
        per_metric = grouped.setdefault(evaluation.penalty, {})
        for name, value in evaluation.metrics.items():
            per_metric.setdefault(name, []).append(value)
        if not evaluation.converged:
            nonconverged[evaluation.penalty] = nonconverged.get(evaluation.penalty, 0) + 1

    records = []
    for penalty in sorted(grouped):
        for name, values in grouped[penalty].items():
            finite = np.asarray([v for v in values if np.isfinite(v)], dtype=np.float64)
            if finite.size == 0:
                mean, std_err = float("nan"), float("nan")
            elif finite.size == 1:
                mean, std_err = float(finite[0]), float("nan")
            else:
                mean, std_err = float(finite.mean()), float(stats.sem(finite))
            records.append(MetricRecord(
                penalty, name, mean, std_err, int(finite.size), nonconverged.get(penalty, 0),
            ))
    return records


def collect_failures(evaluations: Sequence[CandidateEvaluation]) -> Dict[float, List[str]]:
    """Failure reasons for every penalty with no converged, scored evaluation."""
    ok = {e.penalty for e in evaluations if e.usable and e.converged}
    failures: Dict[float, List[str]] = {}
    for evaluation in evaluations:
        if evaluation.penalty in ok:
            continue
        reason = evaluation.error or "did not converge"
        failures.setdefault(evaluation.penalty, []).append(f"{evaluation.resample_id}: {reason}")
    return failures


def select_best(
    records: Sequence[MetricRecord],
    metric: str = "rmse",
    rule: str = "best",
) -> float:
    """
    Choose the penalty with the best mean metric.

    Error metrics are minimized and goodness-of-fit metrics maximized.
    Exact ties go to the larger penalty (the sparser model). With
    ``rule="one_se"`` the largest penalty whose mean is within one
    standard error of the best is chosen instead.

    Raises:
        NumericalFailure: If no record has a finite mean for ``metric``
        ValueError: If ``rule`` is unknown
    """
    key = resolve_metric(metric)
    candidates = [r for r in records if r.metric == key and np.isfinite(r.mean)]
    if not candidates:
        raise NumericalFailure(f"No finite '{key}' values to select a penalty from")

    minimize = METRIC_DIRECTIONS[key] == "minimize"
    sign = 1.0 if minimize else -1.0
    best = min(candidates, key=lambda r: (sign * r.mean, -r.penalty))

    if rule == "best":
        return best.penalty
    if rule != "one_se":
        raise ValueError(f"Unknown selection rule {rule!r}; expected 'best' or 'one_se'")

    std_err = best.std_err if np.isfinite(best.std_err) else 0.0
    limit = best.mean + sign * std_err
    within = [r for r in candidates if sign * r.mean <= sign * limit]
    return max(r.penalty for r in within)


# =============================================================================
# ENGINE
# =============================================================================

class TuningEngine:
    """
    Grid search of the penalty over resamples.

    Example:
        >>> engine = TuningEngine(config)
        >>> result = engine.tune(train, resamples)
        >>> result.best_penalty
        0.01
    """

    def __init__(self, config: LassoConfig, n_jobs: Optional[int] = None) -> None:
        self.config = config
        self.n_jobs = config.n_jobs if n_jobs is None else n_jobs
        self.metric = resolve_metric(config.selection_metric)
        self.state = TuningState.IDLE
        self.history: List[TuningState] = [TuningState.IDLE]

    def _transition(self, state: TuningState) -> None:
        logger.debug(f"Tuning state: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def tune(
        self,
        train: Dataset,
        resamples: ResamplingSet | Sequence[Resample],
        recipe: Optional[PreprocessingPipeline] = None,
    ) -> TuningResult:
        """
        Evaluate every penalty on every resample and select one.

        Raises:
            ResamplingExhaustion: If every candidate failed on every resample
        """
        if recipe is None:
            recipe = PreprocessingPipeline.default(
                self.config.outcome_transform, self.config.zv_tolerance
            )
        if self.state is not TuningState.IDLE:
            self.state = TuningState.IDLE
            self.history.append(TuningState.IDLE)

        penalties = list(self.config.penalty_grid)
        resamples = list(resamples)
        solver_params = self.config.solver_params()
        start = time.time()

        self._transition(TuningState.DISPATCH)
        logger.info(
            f"Tuning {len(penalties)} penalties x {len(resamples)} resamples "
            f"(n_jobs={self.n_jobs})"
        )
        tasks = [
            delayed(evaluate_resample)(
                resample, train, recipe, penalties, solver_params, DEFAULT_METRICS
            )
            for resample in resamples
        ]

        self._transition(TuningState.COLLECTING)
        # Threads share the datasets; the solver kernel runs without the GIL
        results = Parallel(n_jobs=self.n_jobs, prefer="threads")(tasks)
        evaluations = [e for batch in results for e in batch]

        failures = collect_failures(evaluations)
        if len(failures) == len(set(penalties)):
            self._transition(TuningState.FAILED)
            raise ResamplingExhaustion(failures)
        if failures:
            logger.warning(
                f"{len(failures)} penalty candidates failed on every resample: "
                f"{sorted(failures)}"
            )

        records = aggregate_metrics(evaluations)
        nonconverged = sorted({r.penalty for r in records if r.n_nonconverged})
        if nonconverged:
            logger.warning(
                f"Penalties scored from non-converged fits on some resamples: {nonconverged}"
            )
        self._transition(TuningState.AGGREGATED)

        best_penalty = select_best(records, self.metric, self.config.selection_rule)
        self._transition(TuningState.SELECTED)

        elapsed = time.time() - start
        result = TuningResult(
            best_penalty=best_penalty,
            metric=self.metric,
            rule=self.config.selection_rule,
            records=records,
            evaluations=evaluations,
            failed_candidates=failures,
            elapsed=elapsed,
        )
        best = result.best_record()
        logger.info(
            f"Selected penalty {best_penalty:g} ({self.metric}={best.mean:.4f} "
            f"+/- {best.std_err:.4f}, rule={self.config.selection_rule}) in {elapsed:.1f}s"
        )
        self._transition(TuningState.TERMINAL)
        return result


__all__ = [
    "CandidateEvaluation",
    "MetricRecord",
    "TuningEngine",
    "TuningResult",
    "TuningState",
    "aggregate_metrics",
    "collect_failures",
    "evaluate_resample",
    "select_best",
]
