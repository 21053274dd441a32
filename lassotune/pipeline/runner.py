"""
Workflow Runner - end-to-end orchestration.

Stages run in a fixed order, each timed and logged:

    screen -> split -> resample -> tune -> finalize

The screen stage is skipped when ``screen_outliers`` is off. Any stage
failure is recorded on the stage list and re-raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from lassotune.config.lasso_config import LassoConfig
from lassotune.config.serialization import save_config
from lassotune.cross_validation.resampling import Resampler, ResamplingSet
from lassotune.cross_validation.tuning import TuningEngine, TuningResult
from lassotune.data.dataset import Dataset
from lassotune.data.splits import SplitResult, stratified_split, summarize_strata
from lassotune.models.final import FinalAssembler, FinalModel
from lassotune.preprocessing.pipeline import PreprocessingPipeline
from lassotune.screening.influence import InfluenceScreener, ScreeningResult

from .utils import StageResult, StageStatus, finish_stage, write_json

logger = logging.getLogger(__name__)


@dataclass
class WorkflowResult:
    """Everything produced by one workflow run."""
    config: LassoConfig
    screening: Optional[ScreeningResult]
    split: SplitResult
    resamples: ResamplingSet
    tuning: TuningResult
    final: FinalModel
    stages: List[StageResult] = field(default_factory=list)

    @property
    def best_penalty(self) -> float:
        return self.tuning.best_penalty

    def summary(self) -> Dict[str, Any]:
        return {
            "best_penalty": self.tuning.best_penalty,
            "selection_metric": self.tuning.metric,
            "selection_rule": self.tuning.rule,
            "test_metrics": dict(self.final.test_metrics),
            "n_nonzero": self.final.fit.n_nonzero,
            "n_features": len(self.final.fit.coef),
            "screening": self.screening.to_dict() if self.screening else None,
            "split": self.split.to_dict(),
            "resamples": self.resamples.to_dict(),
            "tuning": self.tuning.to_dict(),
            "final": self.final.to_dict(),
            "stages": [s.to_dict() for s in self.stages],
        }

    def save(self, output_dir: Path | str) -> Dict[str, Path]:
        """
        Write run artifacts for reporting.

        Files:
            summary.json, config.yaml, tuning_metrics.csv,
            tuning_evaluations.csv, coefficients.csv (non-zero terms),
            coefficients_all.csv, importance.csv, predictions.csv

        Returns:
            Artifact name -> path
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        paths = {
            "summary": write_json(self.summary(), output_dir / "summary.json"),
            "config": save_config(self.config, output_dir / "config.yaml"),
        }
        tables = {
            "tuning_metrics": self.tuning.metrics_frame(),
            "tuning_evaluations": self.tuning.evaluations_frame(),
            "coefficients": self.final.nonzero_coefficients,
            "coefficients_all": self.final.coefficients,
            "importance": self.final.importance,
            "predictions": self.final.predictions,
        }
        for name, frame in tables.items():
            path = output_dir / f"{name}.csv"
            frame.to_csv(path, index=False)
            paths[name] = path

        logger.info(f"Saved {len(paths)} artifacts to {output_dir}")
        return paths


class LassoWorkflow:
    """
    Screening, splitting, tuning and the final fit for one dataset.

    Example:
        >>> workflow = LassoWorkflow(LassoConfig(resample_count=10))
        >>> result = workflow.run(Dataset(df, outcome="price"))
        >>> result.final.test_metrics["rmse"]
    """

    def __init__(
        self,
        config: Optional[LassoConfig] = None,
        recipe: Optional[PreprocessingPipeline] = None,
    ) -> None:
        self.config = config or LassoConfig()
        self.recipe = recipe or PreprocessingPipeline.default(
            self.config.outcome_transform, self.config.zv_tolerance
        )
        self.stages: List[StageResult] = []

    def _run_stage(self, name: str, func: Callable[[], Any]) -> Any:
        stage = StageResult(stage_name=name, status=StageStatus.PENDING,
                            start_time=datetime.now())
        self.stages.append(stage)
        logger.info(f"Stage '{name}' started")
        try:
            output = func()
        except Exception as e:
            finish_stage(stage, StageStatus.FAILED, error=f"{type(e).__name__}: {e}")
            logger.error(f"Stage '{name}' failed after {stage.duration_seconds:.2f}s: {e}")
            raise
        finish_stage(stage, StageStatus.COMPLETED)
        logger.info(f"Stage '{name}' completed in {stage.duration_seconds:.2f}s")
        return output

    def _skip_stage(self, name: str, reason: str) -> None:
        stage = StageResult(stage_name=name, status=StageStatus.PENDING,
                            start_time=datetime.now())
        self.stages.append(finish_stage(stage, StageStatus.SKIPPED,
                                        metadata={"reason": reason}))
        logger.info(f"Stage '{name}' skipped: {reason}")

    def run(self, dataset: Dataset) -> WorkflowResult:
        """
        Run every stage on ``dataset``.

        Raises:
            NumericalFailure: If influence screening cannot fit its OLS model
            ResamplingExhaustion: If no penalty candidate could be evaluated
            ConfigurationError: On invalid data for any stage
        """
        config = self.config
        self.stages = []
        logger.info(
            f"Workflow on {dataset.n_rows:,} rows x {len(dataset.predictors)} predictors "
            f"(outcome '{dataset.outcome}', transform={config.outcome_transform})"
        )

        screening: Optional[ScreeningResult] = None
        if config.screen_outliers:
            screener = InfluenceScreener(config.influence_multiplier, config.outcome_transform)
            screening = self._run_stage("screen", lambda: screener.screen(dataset))
            cleaned = screening.dataset
        else:
            self._skip_stage("screen", "screen_outliers is disabled")
            cleaned = dataset

        split = self._run_stage("split", lambda: stratified_split(
            cleaned,
            split_fraction=config.split_fraction,
            n_bins=config.stratify_bins,
            rng=config.seed,
            pool=config.strata_pool,
        ))
        logger.debug(
            "Stratum shares:\n"
            f"{summarize_strata(split.strata, split.train_positions, split.test_positions)}"
        )

        resampler = Resampler.from_config(config)
        resamples = self._run_stage("resample", lambda: resampler.resample(split.train))

        engine = TuningEngine(config)
        tuning = self._run_stage(
            "tune", lambda: engine.tune(split.train, resamples, self.recipe)
        )

        assembler = FinalAssembler(config)
        final = self._run_stage("finalize", lambda: assembler.assemble(
            split.train, split.test, tuning.best_penalty, recipe=self.recipe,
        ))

        return WorkflowResult(
            config=config,
            screening=screening,
            split=split,
            resamples=resamples,
            tuning=tuning,
            final=final,
            stages=list(self.stages),
        )


__all__ = [
    "LassoWorkflow",
    "WorkflowResult",
]
