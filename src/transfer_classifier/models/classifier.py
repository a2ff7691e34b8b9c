"""Multiclass maximum entropy classifier trained with L-BFGS."""

from __future__ import annotations

import lightning as L
import torch
import torch.nn.functional as F
from loguru import logger
from torch.utils.data import DataLoader, TensorDataset

from transfer_classifier.config import TrainerConfig
from transfer_classifier.types import FeatureBatch


class MaximumEntropyClassifier(L.LightningModule):
    """Multinomial logistic regression over fixed feature vectors.

    A single ``Linear(num_features, num_classes)`` layer trained with softmax
    cross-entropy plus L2 regularization.  The objective matches a summed
    per-example loss with ``l2_weight / 2 * ||W||^2``, divided by the number
    of examples.  Weights start at zero so fitting is deterministic.

    Optimization is full-batch L-BFGS: feed one batch holding every training
    example and run a single epoch.
    """

    def __init__(
        self,
        num_features: int,
        num_classes: int,
        l2_weight: float = 1.0,
        max_iterations: int = 100,
        history_size: int = 20,
        tolerance: float = 1e-7,
    ) -> None:
        super().__init__()
        self.save_hyperparameters()
        self.linear = torch.nn.Linear(num_features, num_classes)
        torch.nn.init.zeros_(self.linear.weight)
        torch.nn.init.zeros_(self.linear.bias)

    def forward(self, features: torch.Tensor) -> torch.Tensor:
        return self.linear(features)  # type: ignore[no-any-return]

    def objective(self, logits: torch.Tensor, labels: torch.Tensor) -> torch.Tensor:
        ce = F.cross_entropy(logits, labels, reduction="sum")
        l2 = 0.5 * self.hparams["l2_weight"] * self.linear.weight.pow(2).sum()
        return (ce + l2) / labels.numel()

    def training_step(self, batch: FeatureBatch, batch_idx: int) -> torch.Tensor:
        features, labels = batch["features"], batch["labels"]
        logits = self(features)
        loss = self.objective(logits, labels)
        self.log(
            "train/loss",
            loss,
            on_step=True,
            on_epoch=False,
            prog_bar=True,
            batch_size=labels.numel(),
        )
        return loss

    def configure_optimizers(self) -> torch.optim.Optimizer:
        return torch.optim.LBFGS(
            self.parameters(),
            max_iter=self.hparams["max_iterations"],
            history_size=self.hparams["history_size"],
            tolerance_grad=self.hparams["tolerance"],
            tolerance_change=self.hparams["tolerance"] * 1e-2,
            line_search_fn="strong_wolfe",
        )

    @torch.inference_mode()
    def predict_proba(self, features: torch.Tensor) -> torch.Tensor:
        """Softmax class probabilities of shape (B, num_classes)."""
        return torch.softmax(self(features), dim=-1)


def _collate_fn(batch: list[tuple[torch.Tensor, torch.Tensor]]) -> FeatureBatch:
    features = torch.stack([item[0] for item in batch])
    labels = torch.stack([item[1] for item in batch])
    return {"features": features, "labels": labels}


def fit_classifier(
    features: torch.Tensor,
    labels: torch.Tensor,
    num_classes: int,
    config: TrainerConfig,
) -> MaximumEntropyClassifier:
    """Fit a MaximumEntropyClassifier on precomputed features.

    Args:
        features: Float tensor of shape (N, F).
        labels: Long tensor of shape (N,), keys in ``[0, num_classes)``.
        num_classes: Number of classes in the key mapping.
        config: Trainer settings.

    Returns:
        The fitted classifier, in eval mode with gradients disabled.
    """
    L.seed_everything(config.seed, workers=True)

    classifier = MaximumEntropyClassifier(
        num_features=features.shape[1],
        num_classes=num_classes,
        l2_weight=config.l2_weight,
        max_iterations=config.max_iterations,
        history_size=config.history_size,
        tolerance=config.tolerance,
    )
    # Full batch: L-BFGS needs the whole objective at every evaluation.
    loader = DataLoader(
        TensorDataset(features.float(), labels.long()),
        batch_size=len(labels),
        shuffle=False,
        collate_fn=_collate_fn,
    )
    trainer = L.Trainer(
        max_epochs=1,
        accelerator=config.accelerator,
        devices=1,
        logger=False,
        enable_checkpointing=False,
        enable_model_summary=False,
        enable_progress_bar=False,
    )
    trainer.fit(classifier, train_dataloaders=loader)

    classifier = classifier.cpu()
    classifier.eval()
    classifier.requires_grad_(False)
    with torch.no_grad():
        final_loss = classifier.objective(classifier(features.float()), labels.long())
    logger.info(
        f"Fitted maximum entropy classifier: {features.shape[0]} samples, "
        f"{features.shape[1]} features, {num_classes} classes, "
        f"loss={final_loss.item():.6f}"
    )
    return classifier
