"""Image dataset over ImageData records."""

from collections.abc import Callable, Sequence
from pathlib import Path

import torch
from PIL import Image
from torch.utils.data import Dataset

from transfer_classifier.errors import ImageLoadError
from transfer_classifier.schemas.records import ImageData


def load_image(path: str | Path) -> Image.Image:
    """Open an image from disk as RGB.

    Raises:
        ImageLoadError: The file is missing or is not a decodable image.
    """
    try:
        with Image.open(path) as img:
            return img.convert("RGB")
    except OSError as e:
        msg = f"Could not load image {path}: {e}"
        raise ImageLoadError(msg) from e


class ImageRecordDataset(Dataset[torch.Tensor]):
    """Dataset that loads and transforms the image behind each record.

    Labels are not returned here: they are encoded separately by
    :class:`~transfer_classifier.transforms.keys.ValueToKeyMapper` so the
    same dataset serves labelled and unlabelled records.

    Args:
        records: Records to load, in order.
        transform: Callable applied to the PIL image, returns a tensor.
    """

    def __init__(
        self,
        records: Sequence[ImageData],
        transform: Callable[[Image.Image], torch.Tensor],
    ) -> None:
        self.records = records
        self.transform = transform

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, idx: int) -> torch.Tensor:
        img = load_image(self.records[idx].image_path)
        return self.transform(img)
