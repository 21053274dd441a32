"""
CLI Commands - run and show-config.

CSV ingestion is intentionally thin: the file is read with pandas, the
optional id column becomes the observation index, and column types are
taken from pandas' inference.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd
import typer
from rich.table import Table

from .utils import (
    configure_logging,
    console,
    parse_penalties,
    show_error,
    show_info,
    show_success,
    show_warning,
)


def _cli_overrides(
    transform: Optional[str],
    penalties: Optional[str],
    resamples: Optional[int],
    strategy: Optional[str],
    bins: Optional[int],
    split: Optional[float],
    metric: Optional[str],
    rule: Optional[str],
    seed: Optional[int],
    screen: Optional[bool],
    n_jobs: Optional[int],
) -> Dict[str, Any]:
    return {
        "outcome_transform": transform,
        "penalty_grid": parse_penalties(penalties),
        "resample_count": resamples,
        "resample_strategy": strategy,
        "stratify_bins": bins,
        "split_fraction": split,
        "selection_metric": metric,
        "selection_rule": rule,
        "seed": seed,
        "screen_outliers": screen,
        "n_jobs": n_jobs,
    }


def _config_table(config) -> Table:
    table = Table(title="Configuration", show_header=True)
    table.add_column("Option", style="cyan")
    table.add_column("Value", style="white")
    for key, value in config.to_dict().items():
        if key == "penalty_grid":
            value = f"{len(value)} values, {min(value):g} .. {max(value):g}"
        table.add_row(key, str(value))
    return table


def _tuning_table(tuning) -> Table:
    frame = tuning.metrics_frame()
    frame = frame[frame["metric"] == tuning.metric].sort_values("penalty")

    table = Table(title=f"Tuning grid ({tuning.metric}, rule={tuning.rule})", show_header=True)
    table.add_column("Penalty", style="cyan", justify="right")
    table.add_column("Mean", style="white", justify="right")
    table.add_column("Std. err", style="white", justify="right")
    table.add_column("n", style="dim", justify="right")
    table.add_column("Not converged", style="yellow", justify="right")
    for row in frame.itertuples(index=False):
        marker = " [bold green]*[/bold green]" if row.penalty == tuning.best_penalty else ""
        table.add_row(
            f"{row.penalty:.3g}{marker}",
            f"{row.mean:.4f}",
            f"{row.std_err:.4f}",
            str(row.n),
            str(row.n_nonconverged),
        )
    for penalty in sorted(tuning.failed_candidates):
        table.add_row(f"{penalty:.3g}", "[red]failed[/red]", "", "0", "")
    return table


def _coefficient_table(final) -> Table:
    table = Table(title=f"Non-zero coefficients (penalty {final.penalty:.3g})", show_header=True)
    table.add_column("Term", style="cyan")
    table.add_column("Estimate", style="white", justify="right")
    for row in final.nonzero_coefficients.itertuples(index=False):
        table.add_row(row.term, f"{row.estimate:.4f}")
    return table


def _importance_table(final) -> Table:
    table = Table(title="Variable importance", show_header=True)
    table.add_column("Variable", style="cyan")
    table.add_column("Importance", style="white", justify="right")
    table.add_column("Sign", style="yellow")
    for row in final.importance.itertuples(index=False):
        table.add_row(row.variable, f"{row.importance:.4f}", row.sign)
    return table


def _metrics_table(final) -> Table:
    table = Table(title="Test metrics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    for name, value in final.test_metrics.items():
        table.add_row(name, f"{value:.4f}")
    return table


def run_command(
    data: Path = typer.Argument(
        ...,
        help="CSV file with predictors and the outcome column",
        exists=True,
        dir_okay=False,
    ),
    outcome: str = typer.Option(
        ...,
        "--outcome",
        "-y",
        help="Outcome column name"
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file"
    ),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory for JSON/CSV artifacts"
    ),
    id_column: Optional[str] = typer.Option(
        None,
        "--id-column",
        help="Column holding observation ids (default: row number)"
    ),
    transform: Optional[str] = typer.Option(
        None,
        "--transform",
        help="Outcome transform: identity or sqrt"
    ),
    penalties: Optional[str] = typer.Option(
        None,
        "--penalties",
        help="Comma-separated penalty grid (e.g. 0,0.01,0.1,1)"
    ),
    resamples: Optional[int] = typer.Option(
        None,
        "--resamples",
        help="Number of bootstrap resamples or folds"
    ),
    strategy: Optional[str] = typer.Option(
        None,
        "--strategy",
        help="Resampling strategy: bootstrap or kfold"
    ),
    bins: Optional[int] = typer.Option(
        None,
        "--bins",
        help="Outcome quantile bins for stratification"
    ),
    split: Optional[float] = typer.Option(
        None,
        "--split",
        help="Training fraction of the train/test split"
    ),
    metric: Optional[str] = typer.Option(
        None,
        "--metric",
        help="Selection metric: rmse, r_squared or mae"
    ),
    rule: Optional[str] = typer.Option(
        None,
        "--rule",
        help="Selection rule: best or one_se"
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Random seed"
    ),
    screen: Optional[bool] = typer.Option(
        None,
        "--screen/--no-screen",
        help="Remove high-influence observations before splitting"
    ),
    n_jobs: Optional[int] = typer.Option(
        None,
        "--n-jobs",
        help="Parallel workers for tuning (-1 for all cores)"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Debug logging"
    ),
) -> None:
    """
    Screen, split, tune the lasso penalty and evaluate on the test set.

    Examples:
        lassotune run homes.csv -y price
        lassotune run homes.csv -y price --transform sqrt --strategy kfold --resamples 10
        lassotune run homes.csv -y price -c lasso.yaml -o runs/homes
    """
    from lassotune.config import build_config
    from lassotune.data import Dataset
    from lassotune.exceptions import (
        ConfigurationError,
        NumericalFailure,
        ResamplingExhaustion,
        SchemaMismatch,
    )
    from lassotune.pipeline import LassoWorkflow

    configure_logging(verbose)

    try:
        overrides = _cli_overrides(transform, penalties, resamples, strategy, bins,
                                   split, metric, rule, seed, screen, n_jobs)
        config = build_config(cli_args=overrides, config_file=config_file)
    except (ConfigurationError, ValueError) as e:
        show_error(str(e))
        raise typer.Exit(1)

    frame = pd.read_csv(data)
    if id_column is not None:
        if id_column not in frame.columns:
            show_error(f"Id column '{id_column}' not found in {data}")
            raise typer.Exit(1)
        frame = frame.set_index(id_column)

    try:
        dataset = Dataset(frame, outcome=outcome)
    except ConfigurationError as e:
        show_error(str(e))
        raise typer.Exit(1)

    show_info(f"Loaded {dataset.n_rows:,} rows x {len(dataset.predictors)} predictors from {data}")

    try:
        result = LassoWorkflow(config).run(dataset)
    except (ConfigurationError, SchemaMismatch) as e:
        show_error(str(e))
        raise typer.Exit(1)
    except (NumericalFailure, ResamplingExhaustion) as e:
        show_error(str(e))
        raise typer.Exit(2)

    if result.screening is not None and result.screening.n_removed:
        show_warning(
            f"Influence screen removed {result.screening.n_removed} observations "
            f"(threshold {result.screening.threshold:.4g})"
        )

    console.print()
    console.print(_tuning_table(result.tuning))
    console.print(_coefficient_table(result.final))
    console.print(_importance_table(result.final))
    console.print(_metrics_table(result.final))

    if output_dir is not None:
        paths = result.save(output_dir)
        show_success(f"Saved {len(paths)} artifacts to {output_dir}")

    show_success(f"Selected penalty {result.best_penalty:.4g}")


def show_config_command(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file"
    ),
    transform: Optional[str] = typer.Option(None, "--transform"),
    penalties: Optional[str] = typer.Option(None, "--penalties"),
    resamples: Optional[int] = typer.Option(None, "--resamples"),
    strategy: Optional[str] = typer.Option(None, "--strategy"),
    metric: Optional[str] = typer.Option(None, "--metric"),
    rule: Optional[str] = typer.Option(None, "--rule"),
    seed: Optional[int] = typer.Option(None, "--seed"),
) -> None:
    """
    Print the resolved configuration (defaults < YAML file < options).

    Examples:
        lassotune show-config
        lassotune show-config -c lasso.yaml --metric r_squared
    """
    from lassotune.config import build_config
    from lassotune.exceptions import ConfigurationError

    try:
        overrides = _cli_overrides(transform, penalties, resamples, strategy, None,
                                   None, metric, rule, seed, None, None)
        config = build_config(cli_args=overrides, config_file=config_file)
    except (ConfigurationError, ValueError) as e:
        show_error(str(e))
        raise typer.Exit(1)

    console.print(_config_table(config))


__all__ = [
    "run_command",
    "show_config_command",
]
