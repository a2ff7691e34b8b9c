"""Classification inference over trained models."""

from transfer_classifier.inference.base import BaseClassificationInferencer
from transfer_classifier.inference.predictor import PredictionEngine

__all__ = [
    "BaseClassificationInferencer",
    "PredictionEngine",
]
