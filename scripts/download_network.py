#!/usr/bin/env python3
"""Save torchvision's ImageNet weights to the local network file.

The pipeline only reads weights from disk; run this once to populate
``assets/inception/googlenet.pth`` (or another architecture's file).

Usage::

    python scripts/download_network.py
    python scripts/download_network.py --architecture resnet50 \\
        --output assets/resnet/resnet50.pth
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import torch
import torchvision.models as tv_models
from loguru import logger

# Add project root to path so we can import transfer_classifier
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from transfer_classifier.config import (  # noqa: E402
    DEFAULT_ASSETS_ROOT,
    SUPPORTED_ARCHITECTURES,
)

_WEIGHTS = {
    "googlenet": tv_models.GoogLeNet_Weights.DEFAULT,
    "resnet18": tv_models.ResNet18_Weights.DEFAULT,
    "resnet50": tv_models.ResNet50_Weights.DEFAULT,
}


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--architecture", choices=SUPPORTED_ARCHITECTURES, default="googlenet"
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_ASSETS_ROOT / "inception" / "googlenet.pth",
    )
    args = parser.parse_args()

    weights = _WEIGHTS[args.architecture]
    logger.info(f"Downloading {args.architecture} weights ({weights})")
    network = tv_models.get_model(args.architecture, weights=weights)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    torch.save(network.state_dict(), args.output)
    logger.info(f"Saved {args.architecture} state_dict to {args.output}")


if __name__ == "__main__":
    main()
