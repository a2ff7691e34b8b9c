"""Abstract base class for classification inferencers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from transfer_classifier.schemas.records import ImageData, ImagePrediction


class BaseClassificationInferencer(ABC):
    """Base class for classification inferencers.

    Subclasses must implement ``predict`` (single record) and
    ``predict_batch`` (multiple records).
    """

    @abstractmethod
    def predict(self, record: ImageData) -> ImagePrediction:
        """Run inference on a single record."""

    @abstractmethod
    def predict_batch(self, records: list[ImageData]) -> list[ImagePrediction]:
        """Run inference on several records, returning one prediction each."""
