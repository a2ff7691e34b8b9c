"""Console display of predictions and evaluation metrics."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from rich.console import Console
from rich.table import Table

from transfer_classifier.schemas.metrics import MulticlassMetrics
from transfer_classifier.schemas.records import ImagePrediction


def format_prediction(prediction: ImagePrediction) -> str:
    """One-line summary: image file name, predicted label, top score."""
    return (
        f"Image: {Path(prediction.image_path).name} "
        f"predicted as: {prediction.predicted_label} "
        f"with score: {prediction.max_score}"
    )


def display_results(
    predictions: Iterable[ImagePrediction], console: Console | None = None
) -> None:
    """Print one line per prediction."""
    console = console or Console()
    for prediction in predictions:
        console.print(format_prediction(prediction), markup=False, highlight=False)


def display_metrics(metrics: MulticlassMetrics, console: Console | None = None) -> None:
    """Print log loss lines followed by an accuracy table.

    Log loss should be as close to zero as possible.
    """
    console = console or Console()
    per_class = " , ".join(str(v) for v in metrics.per_class_log_loss)
    console.print(f"LogLoss is: {metrics.log_loss}", markup=False, highlight=False)
    console.print(f"PerClassLogLoss is: {per_class}", markup=False, highlight=False)

    table = Table(title="Evaluation")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Micro accuracy", f"{metrics.micro_accuracy:.4f}")
    table.add_row("Macro accuracy", f"{metrics.macro_accuracy:.4f}")
    table.add_row("Log loss reduction", f"{metrics.log_loss_reduction:.4f}")
    console.print(table)
