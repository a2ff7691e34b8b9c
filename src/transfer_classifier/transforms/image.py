"""Image preprocessing transforms: resize and pixel extraction."""

from __future__ import annotations

from typing import Any

import torch
from torchvision.transforms import v2

from transfer_classifier.config import ImageSettings


class ExtractPixels(v2.Transform):
    """Convert an image to a normalized float32 pixel tensor.

    Pixel values stay in the 0-255 range before normalization, then become
    ``(pixel - mean) * scale``.

    Args:
        mean: Offset subtracted from every channel value.
        scale: Multiplier applied after the offset.
        channels_last: If ``True``, return ``(H, W, C)`` with interleaved
            colours; otherwise ``(C, H, W)``.
    """

    def __init__(
        self, mean: float = 0.0, scale: float = 1.0, channels_last: bool = False
    ) -> None:
        super().__init__()
        self.mean = mean
        self.scale = scale
        self.channels_last = channels_last
        self._to_image = v2.ToImage()
        self._to_dtype = v2.ToDtype(torch.float32, scale=False)

    def forward(self, *inputs: Any) -> Any:
        image = self._to_dtype(self._to_image(*inputs))
        pixels = (image.as_subclass(torch.Tensor) - self.mean) * self.scale
        if self.channels_last:
            pixels = pixels.permute(1, 2, 0).contiguous()
        return pixels


def build_image_transforms(settings: ImageSettings) -> v2.Compose:
    """Resize to the configured geometry, then extract normalized pixels.

    Resizing stretches to the exact size (no crop), matching the fixed input
    shape the network scorer expects.
    """
    return v2.Compose([
        v2.Resize((settings.image_height, settings.image_width), antialias=True),
        ExtractPixels(
            mean=settings.mean,
            scale=settings.scale,
            channels_last=settings.channels_last,
        ),
    ])
