"""Preprocessing transforms for images and labels."""

from transfer_classifier.transforms.image import ExtractPixels, build_image_transforms
from transfer_classifier.transforms.keys import ValueToKeyMapper

__all__ = [
    "ExtractPixels",
    "ValueToKeyMapper",
    "build_image_transforms",
]
