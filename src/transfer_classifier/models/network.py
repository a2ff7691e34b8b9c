"""Pretrained network loading and feature extraction."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import torch
import torchvision.models as tv_models
from loguru import logger
from torch import nn
from torchvision.models.feature_extraction import create_feature_extractor

from transfer_classifier.errors import NetworkLoadError

# Constructors are called without weights; parameters come from the local
# network file.  GoogLeNet (Inception v1) is built without auxiliary heads
# since they only exist for training.  Its torchvision weights expect
# inputs remapped from ImageNet normalization to [-1, 1], which
# transform_input does inside the network.
_ARCHITECTURES: dict[str, Callable[[], nn.Module]] = {
    "googlenet": lambda: tv_models.googlenet(
        weights=None, aux_logits=False, init_weights=False, transform_input=True
    ),
    "resnet18": lambda: tv_models.resnet18(weights=None),
    "resnet50": lambda: tv_models.resnet50(weights=None),
}

_AUX_PREFIXES = ("aux1.", "aux2.")


def build_network(architecture: str) -> nn.Module:
    """Instantiate an untrained torchvision network by name."""
    try:
        factory = _ARCHITECTURES[architecture]
    except KeyError:
        msg = (
            f"Unknown architecture {architecture!r}. "
            f"Use one of {', '.join(_ARCHITECTURES)}."
        )
        raise NetworkLoadError(msg) from None
    return factory()


def _read_state_dict(path: Path) -> dict[str, torch.Tensor]:
    try:
        loaded: Any = torch.load(path, map_location="cpu", weights_only=True)
    except Exception as e:  # torch.load raises assorted types for bad files
        msg = f"Could not read network file {path}: {e}"
        raise NetworkLoadError(msg) from e
    # Lightning-style checkpoints wrap the weights.
    if isinstance(loaded, dict) and "state_dict" in loaded:
        loaded = loaded["state_dict"]
    if not isinstance(loaded, dict):
        msg = f"Network file {path} does not contain a state_dict"
        raise NetworkLoadError(msg)
    return {
        k: v for k, v in loaded.items() if not k.startswith(_AUX_PREFIXES)
    }


def load_pretrained_network(path: str | Path, architecture: str) -> nn.Module:
    """Rebuild ``architecture`` and load its weights from ``path``.

    The returned network is in eval mode with gradients disabled.

    Raises:
        NetworkLoadError: The file is missing, unreadable, or its weights do
            not match the architecture.
    """
    path = Path(path)
    if not path.is_file():
        msg = f"Pretrained network file not found: {path}"
        raise NetworkLoadError(msg)

    network = build_network(architecture)
    state_dict = _read_state_dict(path)
    try:
        network.load_state_dict(state_dict)
    except RuntimeError as e:
        msg = f"Weights in {path} do not match {architecture}: {e}"
        raise NetworkLoadError(msg) from e

    network.eval()
    network.requires_grad_(False)
    logger.info(f"Loaded {architecture} weights from {path}")
    return network


class NetworkScorer(nn.Module):
    """Score pixel tensors through a frozen network up to one internal node.

    Args:
        network: Pretrained network, already loaded.
        feature_layer: torch.fx node or module name to read, e.g.
            ``"flatten"`` for the pooled penultimate activations.  See
            :func:`torchvision.models.feature_extraction.get_graph_node_names`.
        channels_last: Whether incoming pixel batches are ``(B, H, W, C)``.
    """

    def __init__(
        self,
        network: nn.Module,
        feature_layer: str = "flatten",
        channels_last: bool = False,
    ) -> None:
        super().__init__()
        network.eval()
        self.feature_layer = feature_layer
        self.channels_last = channels_last
        # Module names such as "layer4" resolve to that module's last node.
        try:
            self.extractor = create_feature_extractor(
                network, return_nodes={feature_layer: "features"}
            )
        except ValueError as e:
            msg = f"Layer {feature_layer!r} not found in network graph: {e}"
            raise NetworkLoadError(msg) from e
        self.extractor.eval()
        self.extractor.requires_grad_(False)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        architecture: str = "googlenet",
        feature_layer: str = "flatten",
        channels_last: bool = False,
    ) -> NetworkScorer:
        network = load_pretrained_network(path, architecture)
        return cls(network, feature_layer=feature_layer, channels_last=channels_last)

    def forward(self, pixels: torch.Tensor) -> torch.Tensor:
        if self.channels_last:
            pixels = pixels.permute(0, 3, 1, 2)
        features = self.extractor(pixels)["features"]
        return torch.flatten(features, 1)
