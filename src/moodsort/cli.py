"""moodsort command-line interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from . import __version__
from .cleaner import clean_records
from .config import Config, ConfigError, load_config
from .dataset import DataError, load_records
from .evaluation import evaluate as evaluate_model
from .logging import configure_logging
from .pipeline import TrainedModel
from .service import ModelHolder, PredictionInputError, PredictionService
from .store import ModelLoadError, ModelStore, PredictionLogger
from .trainer import ModelTrainer
from .trainers import default_catalog

app = typer.Typer(help="Train and query the mental-health statement classifier.")
LOGGER = logging.getLogger(__name__)


@dataclass
class CLIState:
    """Stores shared CLI options."""

    config_path: Path | None


@app.callback()
def _moodsort(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option(
            "-c",
            "--config",
            help="Path to config (env MOODSORT_CONFIG or ~/.config/moodsort/config.yaml).",
        ),
    ] = None,
) -> None:
    """Capture global CLI options."""

    resolved = config.expanduser() if config else None
    ctx.obj = CLIState(config_path=resolved)


@app.command()
def train(
    ctx: typer.Context,
    data: Annotated[
        Path | None,
        typer.Option("--data", help="Override the labelled CSV file."),
    ] = None,
    model: Annotated[
        Path | None,
        typer.Option("--model", help="Override where the trained model is written."),
    ] = None,
) -> None:
    """Select, train, evaluate and save a model."""

    config = _load_environment(_state(ctx), data=data, model=model)
    try:
        report = ModelTrainer(config).run()
    except DataError as exc:
        _failure(f"Training data error: {exc}", code=1, exc=exc)

    typer.echo(f"Best trainer: {report.best_name}")
    typer.echo(f"Train/test records: {report.train_size}/{report.test_size}")
    if report.metrics is not None:
        _echo_metrics(report.metrics.as_dict())
    typer.echo(f"Sample prediction: {report.sample_prediction.label}")
    typer.echo(f"Model saved to {report.model_path}")


@app.command()
def evaluate(
    ctx: typer.Context,
    data: Annotated[
        Path | None,
        typer.Option("--data", help="Labelled CSV file to score (defaults to data_path)."),
    ] = None,
) -> None:
    """Score the saved model against a labelled file."""

    config = _load_environment(_state(ctx), data=data)
    trained = _load_model(config.model_path)
    try:
        records = clean_records(load_records(config.data_path))
        metrics = evaluate_model(trained, records, top_k=config.training.top_k)
    except DataError as exc:
        _failure(f"Evaluation data error: {exc}", code=1, exc=exc)
    typer.echo(f"Model: {trained.trainer_name}")
    _echo_metrics(metrics.as_dict())


@app.command()
def predict(
    ctx: typer.Context,
    statement: Annotated[str, typer.Argument(..., help="Statement to classify.")],
) -> None:
    """Predict the status of a single statement."""

    config = _load_environment(_state(ctx))
    try:
        holder = ModelHolder(config.model_path)
    except ModelLoadError as exc:
        _failure(f"Model load error: {exc}", code=1, exc=exc)
    prediction_logger = None
    if config.predictions_log:
        prediction_logger = PredictionLogger(config.root_dir / "logs" / "predictions.log")
    service = PredictionService(holder, prediction_logger=prediction_logger)
    try:
        result = service.analyze(statement)
    except PredictionInputError as exc:
        _failure(str(exc), code=1, exc=exc)
    finally:
        if prediction_logger is not None:
            prediction_logger.close()

    typer.echo(f"Statement: {result.statement}")
    typer.echo(f"Predicted status: {result.predicted_status}")
    typer.echo("Scores:")
    for label, score in zip(holder.current.labels, result.scores):
        typer.echo(f"  {label}: {score:.4f}")


@app.command()
def candidates(ctx: typer.Context) -> None:
    """List the trainer candidates the model search would evaluate."""

    config = _load_environment(_state(ctx))
    catalog = default_catalog(max_iter=config.training.max_iter, random_state=config.training.seed)
    for candidate in catalog.candidates(config.training.l2_grid, config.training.trainers):
        typer.echo(candidate.name)


@app.command()
def info(ctx: typer.Context) -> None:
    """Show configuration paths and the saved model's manifest."""

    state = _state(ctx)
    config = _load_environment(state)
    typer.echo(f"Version: {__version__}")
    typer.echo(f"Root dir: {config.root_dir}")
    typer.echo(f"Data path: {config.data_path}")
    typer.echo(f"Model path: {config.model_path}")
    try:
        manifest = ModelStore(config.model_path).read_manifest()
    except ModelLoadError as exc:
        typer.echo(f"Model: unavailable ({exc})")
        return
    typer.echo(f"Model trainer: {manifest.get('trainer')}")
    typer.echo(f"Labels: {', '.join(manifest.get('labels', []))}")
    typer.echo(f"Created at: {manifest.get('created_at')}")


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise RuntimeError("CLI state missing from context.")
    return state


def _load_environment(
    state: CLIState,
    *,
    data: Path | None = None,
    model: Path | None = None,
) -> Config:
    try:
        config = load_config(state.config_path)
    except ConfigError as exc:  # pragma: no cover - exercised via CLI tests
        _failure(f"Configuration error: {exc}", code=2, exc=exc)
    if data is not None:
        config = replace(config, data_path=data.expanduser())
    if model is not None:
        config = replace(config, model_path=model.expanduser())
    try:
        configure_logging(config.logging, config.root_dir)
    except ConfigError as exc:
        _failure(f"Configuration error: {exc}", code=2, exc=exc)
    LOGGER.debug("Using data %s and model %s", config.data_path, config.model_path)
    return config


def _load_model(path: Path) -> TrainedModel:
    try:
        return ModelStore(path).load()
    except ModelLoadError as exc:
        _failure(f"Model load error: {exc}", code=1, exc=exc)


def _echo_metrics(metrics: dict[str, float]) -> None:
    typer.echo(f"Log Loss: {metrics['log_loss']:.4f}")
    typer.echo(f"Log Loss Reduction: {metrics['log_loss_reduction']:.4f}")
    typer.echo(f"Macro Average Accuracy: {metrics['macro_accuracy']:.4f}")
    typer.echo(f"Micro Average Accuracy: {metrics['micro_accuracy']:.4f}")
    typer.echo(f"Top {int(metrics['top_k'])} Accuracy: {metrics['top_k_accuracy']:.4f}")


def _failure(message: str, *, code: int, exc: Exception) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code) from exc


def main() -> None:  # pragma: no cover - delegated to Typer
    app()


__all__ = ["app", "main"]
