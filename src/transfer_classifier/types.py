"""Type aliases and TypedDicts for transfer_classifier inter-module contracts."""

from typing import TypedDict

import torch


class FeatureBatch(TypedDict):
    """A single batch fed to the maximum entropy classifier.

    features: Float tensor of shape (B, F), network feature vectors.
    labels: Long tensor of shape (B,), integer class keys.
    """

    features: torch.Tensor
    labels: torch.Tensor
