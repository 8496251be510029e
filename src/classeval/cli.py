"""Command-line interface for the classeval pipeline."""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from classeval.config.settings import PipelineConfig
    from classeval.errors import ClassevalError

app = typer.Typer(
    name="classeval",
    help="Stratified train/test evaluation of LDA, k-NN and logistic regression.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration YAML file.",
        exists=True,
        dir_okay=False,
    ),
]
ModelOption = Annotated[
    list[str] | None,
    typer.Option(
        "--model",
        "-m",
        help="Configured model to run (repeatable). Runs all if not specified.",
    ),
]


@app.callback()
def main(
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)."),
    ] = "WARNING",
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Emit logs as JSON lines."),
    ] = False,
) -> None:
    """Configure logging for every command."""
    from classeval.utils.logging import configure_logging

    configure_logging(level=log_level, json_output=json_logs)


def _load(config: Path) -> "PipelineConfig":
    from pydantic import ValidationError

    from classeval.config.loader import load_config

    console.print(f"[blue]Loading configuration from {config}[/blue]")
    try:
        return load_config(config)
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from e


def _report_failure(error: "ClassevalError") -> None:
    stage = error.stage or "pipeline"
    console.print(
        f"[red]Stage '{stage}' failed with {error.kind}: {error.message}[/red]"
    )


@app.command()
def evaluate(
    config: ConfigOption,
    model: ModelOption = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output directory. Default: ./output/{project}.",
        ),
    ] = None,
    save_models: Annotated[
        bool,
        typer.Option("--save-models", help="Persist fitted models with joblib."),
    ] = False,
    plots: Annotated[
        bool,
        typer.Option("--plots/--no-plots", help="Write ROC and confusion plots."),
    ] = True,
    track: Annotated[
        bool,
        typer.Option("--track", help="Log the run to MLflow (overrides config)."),
    ] = False,
) -> None:
    """Fit each configured model on a stratified split and evaluate it."""
    from classeval.errors import ClassevalError
    from classeval.evaluation.report import confusion_table, metrics_table
    from classeval.pipeline import run_evaluation, write_outputs

    pipeline_config = _load(config)
    console.print(
        f"[dim]Dataset: {pipeline_config.dataset.path} "
        f"(label: {pipeline_config.dataset.label_column})[/dim]"
    )
    console.print(
        f"[dim]Split: {pipeline_config.split.train_fraction:.0%} train, "
        f"seed {pipeline_config.split.random_state}[/dim]"
    )

    try:
        run = run_evaluation(pipeline_config, model_names=model)
    except ClassevalError as e:
        _report_failure(e)
        raise typer.Exit(code=1) from e
    except (FileNotFoundError, KeyError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print()
    split_table = Table(title="Split Summary")
    split_table.add_column("Class", style="cyan")
    split_table.add_column("Train", style="green")
    split_table.add_column("Test", style="green")
    for cls, row in run.split.class_counts().iterrows():
        split_table.add_row(str(cls), str(row["train"]), str(row["test"]))
    console.print(split_table)

    if run.normalization is not None and run.normalization.passthrough:
        console.print(
            "[yellow]⚠ Zero-variance features left unscaled: "
            f"{', '.join(run.normalization.passthrough)}[/yellow]"
        )

    results = {name: e.metrics for name, e in run.evaluations.items()}
    console.print(metrics_table(results, title="Test Set Results"))
    for name, evaluation in run.evaluations.items():
        console.print(confusion_table(evaluation.confusion, title=f"{name} confusion"))

    written = write_outputs(
        run,
        pipeline_config,
        output_dir=output,
        save_models=save_models,
        plots=plots,
    )
    for path in written:
        console.print(f"[dim]Wrote {path}[/dim]")

    if track or pipeline_config.tracking.enabled:
        from classeval.evaluation.tracking import EvaluationTracker

        try:
            with EvaluationTracker(pipeline_config) as tracker:
                for name, evaluation in run.evaluations.items():
                    tracker.log_model_result(
                        name, evaluation.model.params, evaluation.metrics
                    )
        except Exception as e:
            console.print(f"[yellow]MLflow logging failed: {e}[/yellow]")
        else:
            console.print(
                f"[green]Logged to MLflow experiment "
                f"'{pipeline_config.experiment_name}'[/green]"
            )


@app.command("cross-validate")
def cross_validate_command(
    config: ConfigOption,
    model: ModelOption = None,
    folds: Annotated[
        int | None,
        typer.Option("--folds", "-k", help="Number of folds. Default: from config."),
    ] = None,
) -> None:
    """Stratified k-fold cross-validated accuracy per model."""
    from classeval.errors import ClassevalError
    from classeval.pipeline import cross_validate

    pipeline_config = _load(config)

    try:
        results = cross_validate(pipeline_config, n_splits=folds, model_names=model)
    except ClassevalError as e:
        _report_failure(e)
        raise typer.Exit(code=1) from e
    except (FileNotFoundError, KeyError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    n_folds = folds or pipeline_config.split.cv_folds
    table = Table(title=f"{n_folds}-Fold Cross-Validation")
    table.add_column("Model", style="cyan")
    table.add_column("Mean accuracy", style="green")
    table.add_column("Std", style="yellow")
    table.add_column("Folds", style="dim")
    for name, result in results.items():
        table.add_row(
            name,
            f"{result.mean:.4f}",
            f"{result.std:.4f}",
            ", ".join(f"{a:.3f}" for a in result.fold_accuracies),
        )
    console.print(table)


@app.command()
def models() -> None:
    """List available classifiers."""
    from classeval.modeling.classifiers import CLASSIFIER_REGISTRY

    table = Table(title="Classifiers")
    table.add_column("Name", style="cyan")
    table.add_column("Adapter", style="green")
    table.add_column("Required params", style="yellow")
    for name, adapter in CLASSIFIER_REGISTRY.items():
        required = "k" if name == "knn" else "-"
        table.add_row(name, adapter.__name__, required)
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from classeval import __version__

    console.print(f"classeval version {__version__}")


if __name__ == "__main__":
    app()
