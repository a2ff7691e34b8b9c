"""Shared pytest fixtures for transfer_classifier tests."""

from pathlib import Path

import pytest
import torch
import torchvision.models as tv_models
from PIL import Image

from transfer_classifier.config import ImageSettings, NetworkConfig, TrainerConfig
from transfer_classifier.data.reader import read_from_tsv
from transfer_classifier.pipeline import TrainedModel, TransferLearningPipeline

# Solid-colour stand-ins: reds are toasters, blues are not.
TRAIN_IMAGES = {
    "toaster1.jpg": ((200, 30, 30), "toaster"),
    "toaster2.jpg": ((220, 45, 35), "toaster"),
    "other1.jpg": ((30, 30, 200), "not-toaster"),
    "other2.jpg": ((40, 55, 220), "not-toaster"),
}
TEST_IMAGES = {
    "toaster3.jpg": ((210, 38, 32), "toaster"),
    "other3.jpg": ((35, 45, 210), "not-toaster"),
}


def _write_tags(path: Path, images: dict[str, tuple[tuple[int, int, int], str]]) -> None:
    path.write_text("".join(f"{name}\t{label}\n" for name, (_, label) in images.items()))


@pytest.fixture(scope="session")
def assets_root(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """Assets folder laid out like the real one, with a tiny random network.

    - images/: 4 training + 2 test JPEGs, tags.tsv, test-tags.tsv
    - inception/resnet18.pth: randomly initialised resnet18 state_dict
      (no weight download needed)
    """
    root = tmp_path_factory.mktemp("assets")
    images = root / "images"
    images.mkdir()
    for name, (color, _) in {**TRAIN_IMAGES, **TEST_IMAGES}.items():
        Image.new("RGB", (96, 80), color=color).save(images / name)
    _write_tags(images / "tags.tsv", TRAIN_IMAGES)
    _write_tags(images / "test-tags.tsv", TEST_IMAGES)

    network_dir = root / "inception"
    network_dir.mkdir()
    torch.manual_seed(0)
    torch.save(
        tv_models.resnet18(weights=None).state_dict(), network_dir / "resnet18.pth"
    )
    return root


@pytest.fixture(scope="session")
def network_path(assets_root: Path) -> Path:
    return assets_root / "inception" / "resnet18.pth"


@pytest.fixture(scope="session")
def small_settings() -> ImageSettings:
    """64x64 inputs keep the resnet18 forward pass fast."""
    return ImageSettings(image_height=64, image_width=64)


@pytest.fixture(scope="session")
def resnet_config() -> NetworkConfig:
    return NetworkConfig(architecture="resnet18", feature_layer="flatten")


@pytest.fixture(scope="session")
def fast_trainer() -> TrainerConfig:
    return TrainerConfig(l2_weight=0.01, max_iterations=50)


@pytest.fixture(scope="session")
def trained_model(
    assets_root: Path,
    network_path: Path,
    small_settings: ImageSettings,
    resnet_config: NetworkConfig,
    fast_trainer: TrainerConfig,
) -> TrainedModel:
    """Model fitted once on the toaster / not-toaster training tags."""
    pipeline = TransferLearningPipeline(
        network_path=network_path,
        settings=small_settings,
        network=resnet_config,
        trainer=fast_trainer,
        batch_size=2,
    )
    images = assets_root / "images"
    return pipeline.fit(read_from_tsv(images / "tags.tsv", images))
