"""Single-item prediction over a trained model."""

from __future__ import annotations

from typing import TYPE_CHECKING

import torch

from transfer_classifier.data.dataset import load_image
from transfer_classifier.inference.base import BaseClassificationInferencer
from transfer_classifier.schemas.records import ImageData, ImagePrediction

if TYPE_CHECKING:
    from transfer_classifier.pipeline import TrainedModel


class PredictionEngine(BaseClassificationInferencer):
    """Apply a :class:`TrainedModel` to one record at a time.

    The engine owns its transform pipeline and scratch buffers, so a single
    instance is **not** safe to call from several threads.  The underlying
    model is shared read-only: give each thread its own engine via
    :meth:`TrainedModel.create_prediction_engine`.

    Args:
        model: Trained model to predict with.  It is never modified.
    """

    def __init__(self, model: TrainedModel) -> None:
        self.model = model
        self.transform = model.build_transforms()
        self._pixels: torch.Tensor | None = None

    def _load_pixels(self, records: list[ImageData]) -> torch.Tensor:
        tensors = [self.transform(load_image(r.image_path)) for r in records]
        # Reuse the batch buffer across calls when the batch shape repeats.
        shape = (len(tensors), *tensors[0].shape)
        if self._pixels is None or self._pixels.shape != shape:
            self._pixels = torch.empty(shape, dtype=torch.float32)
        torch.stack(tensors, out=self._pixels)
        return self._pixels

    @torch.inference_mode()
    def predict(self, record: ImageData) -> ImagePrediction:
        """Single image inference."""
        return self.predict_batch([record])[0]

    @torch.inference_mode()
    def predict_batch(self, records: list[ImageData]) -> list[ImagePrediction]:
        """Score records as one batch through the network and classifier."""
        if not records:
            return []
        pixels = self._load_pixels(records)
        features = self.model.scorer(pixels)
        probs = self.model.score_features(features)
        return self.model.to_predictions(records, probs)
