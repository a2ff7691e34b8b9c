"""Record and metric schemas."""

from transfer_classifier.schemas.metrics import MulticlassMetrics
from transfer_classifier.schemas.records import ImageData, ImagePrediction

__all__ = [
    "ImageData",
    "ImagePrediction",
    "MulticlassMetrics",
]
