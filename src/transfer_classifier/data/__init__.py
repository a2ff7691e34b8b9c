"""Data loading for transfer_classifier."""

from transfer_classifier.data.dataset import ImageRecordDataset, load_image
from transfer_classifier.data.reader import read_from_tsv

__all__ = [
    "ImageRecordDataset",
    "load_image",
    "read_from_tsv",
]
