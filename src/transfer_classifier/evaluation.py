"""Multiclass evaluation of a trained model on held-out records."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import NamedTuple

import torch
from loguru import logger
from torchmetrics.classification import MulticlassAccuracy, MulticlassConfusionMatrix

from transfer_classifier.errors import (
    EmptyDatasetError,
    MalformedRecordError,
    UnseenLabelError,
)
from transfer_classifier.pipeline import TrainedModel
from transfer_classifier.schemas.metrics import MulticlassMetrics
from transfer_classifier.schemas.records import ImageData, ImagePrediction

# Probabilities are clamped before the log so a confident miss stays finite.
LOG_LOSS_EPSILON = 1e-15


class EvaluationResult(NamedTuple):
    predictions: list[ImagePrediction]
    metrics: MulticlassMetrics


def compute_metrics(
    predictions: Sequence[ImagePrediction], class_names: Sequence[str]
) -> MulticlassMetrics:
    """Log loss, accuracy and confusion matrix for labelled predictions.

    Args:
        predictions: Predictions whose ``label`` is the ground truth and
            whose ``score`` follows ``class_names``.
        class_names: Class labels in key order.

    Raises:
        EmptyDatasetError: ``predictions`` is empty.
        MalformedRecordError: A prediction has no ground-truth label.
        UnseenLabelError: A ground-truth label is not in ``class_names``.
    """
    if not predictions:
        msg = "Cannot compute metrics on an empty prediction set"
        raise EmptyDatasetError(msg)
    class_to_idx = {name: i for i, name in enumerate(class_names)}
    num_classes = len(class_names)

    truth: list[str] = []
    for p in predictions:
        if p.label is None:
            msg = f"Prediction has no ground-truth label: {p.image_path}"
            raise MalformedRecordError(msg)
        truth.append(p.label)
    unseen = sorted({label for label in truth if label not in class_to_idx})
    if unseen:
        raise UnseenLabelError(unseen)

    target = torch.tensor([class_to_idx[label] for label in truth], dtype=torch.long)
    probs = torch.tensor([p.score for p in predictions], dtype=torch.float64)

    p_true = probs.gather(1, target.unsqueeze(1)).squeeze(1)
    instance_loss = -torch.log(p_true.clamp(min=LOG_LOSS_EPSILON))
    log_loss = instance_loss.mean().item()

    per_class: list[float] = []
    for c in range(num_classes):
        mask = target == c
        per_class.append(instance_loss[mask].mean().item() if mask.any() else math.nan)

    # Reduction relative to always predicting the label prior of this set.
    prior = torch.bincount(target, minlength=num_classes).double() / len(target)
    prior = prior[prior > 0]
    prior_log_loss = -(prior * prior.log()).sum().item()
    reduction = (
        (prior_log_loss - log_loss) / prior_log_loss if prior_log_loss > 0 else math.nan
    )

    micro = MulticlassAccuracy(num_classes=num_classes, top_k=1, average="micro")
    macro = MulticlassAccuracy(num_classes=num_classes, top_k=1, average="macro")
    confusion = MulticlassConfusionMatrix(num_classes=num_classes)
    preds = probs.float()
    micro.update(preds, target)
    macro.update(preds, target)
    confusion.update(preds, target)

    return MulticlassMetrics(
        class_names=list(class_names),
        log_loss=log_loss,
        per_class_log_loss=per_class,
        log_loss_reduction=reduction,
        micro_accuracy=micro.compute().item(),
        macro_accuracy=macro.compute().item(),
        confusion_matrix=confusion.compute().tolist(),
    )


def evaluate(
    model: TrainedModel, records: Iterable[ImageData], batch_size: int = 16
) -> EvaluationResult:
    """Apply ``model`` to held-out records and compute metrics.

    Labels are checked against the training classes before any image is
    scored.

    Raises:
        EmptyDatasetError: No records.
        MalformedRecordError: A record has no label.
        UnseenLabelError: A record's label was never seen in training.
    """
    records = list(records)
    if not records:
        msg = "Evaluation dataset is empty"
        raise EmptyDatasetError(msg)
    for record in records:
        if record.label is None:
            msg = f"Evaluation record has no label: {record.image_path}"
            raise MalformedRecordError(msg)
    unseen = model.key_mapper.unseen(r.label for r in records if r.label is not None)
    if unseen:
        raise UnseenLabelError(unseen)

    predictions = model.transform(records, batch_size=batch_size)
    metrics = compute_metrics(predictions, model.class_names)
    logger.info(
        f"Evaluated {len(records)} samples: log_loss={metrics.log_loss:.4f}, "
        f"micro_accuracy={metrics.micro_accuracy:.4f}"
    )
    return EvaluationResult(predictions, metrics)
