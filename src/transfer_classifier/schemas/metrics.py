"""Multiclass evaluation metrics schema."""

from __future__ import annotations

from pydantic import BaseModel


class MulticlassMetrics(BaseModel, frozen=True):
    """Aggregate and per-class metrics for a held-out evaluation pass.

    ``per_class_log_loss`` and the confusion matrix rows follow the order of
    ``class_names`` (the class key order fixed at training time).  Classes
    absent from the evaluated set get ``NaN`` per-class log loss.
    """

    class_names: list[str]
    log_loss: float
    per_class_log_loss: list[float]
    log_loss_reduction: float
    micro_accuracy: float
    macro_accuracy: float
    confusion_matrix: list[list[int]]
