"""Input and output records for image classification."""

from __future__ import annotations

from pydantic import BaseModel


class ImageData(BaseModel, frozen=True):
    """One image to classify.

    ``image_path`` is the full path to the image file.  ``label`` is the
    ground-truth class, or ``None`` for unlabelled prediction inputs.
    """

    image_path: str
    label: str | None = None


class ImagePrediction(ImageData, frozen=True):
    """Classifier output for one image.

    ``score`` holds one probability per class, ordered by class key.
    ``predicted_label`` is the decoded class with the highest score.
    """

    score: list[float]
    predicted_label: str

    @property
    def max_score(self) -> float:
        return max(self.score)
