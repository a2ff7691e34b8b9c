"""Network scoring and classifier models."""

from transfer_classifier.models.classifier import (
    MaximumEntropyClassifier,
    fit_classifier,
)
from transfer_classifier.models.network import (
    NetworkScorer,
    build_network,
    load_pretrained_network,
)

__all__ = [
    "MaximumEntropyClassifier",
    "NetworkScorer",
    "build_network",
    "fit_classifier",
    "load_pretrained_network",
]
