"""Pydantic frozen configuration models for transfer_classifier."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from omegaconf import DictConfig, OmegaConf
from pydantic import BaseModel, field_validator, model_validator

# src/transfer_classifier/config.py -> project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ASSETS_ROOT = PROJECT_ROOT / "assets"

SUPPORTED_ARCHITECTURES: tuple[str, ...] = ("googlenet", "resnet18", "resnet50")


class ImageSettings(BaseModel, frozen=True):
    """Input geometry and pixel normalization expected by the network.

    Pixels are read in the 0-255 range and mapped to ``(pixel - mean) * scale``.
    ``channels_last=True`` lays the extracted pixel tensor out as HWC
    (interleaved colours); the scorer moves channels back before scoring.
    """

    image_height: int = 224
    image_width: int = 224
    mean: float = 117.0
    scale: float = 0.017
    channels_last: bool = True

    @field_validator("image_height", "image_width")
    @classmethod
    def _positive_geometry(cls, value: int) -> int:
        if value <= 0:
            msg = f"Image geometry must be positive, got {value}"
            raise ValueError(msg)
        return value

    @field_validator("scale")
    @classmethod
    def _non_zero_scale(cls, value: float) -> float:
        if value == 0:
            msg = "scale must be non-zero"
            raise ValueError(msg)
        return value


class NetworkConfig(BaseModel, frozen=True):
    """Which torchvision architecture to rebuild and which node to read."""

    architecture: str = "googlenet"
    feature_layer: str = "flatten"

    @field_validator("architecture")
    @classmethod
    def _known_architecture(cls, value: str) -> str:
        if value not in SUPPORTED_ARCHITECTURES:
            msg = (
                f"Unknown architecture {value!r}. "
                f"Use one of {', '.join(SUPPORTED_ARCHITECTURES)}."
            )
            raise ValueError(msg)
        return value


class TrainerConfig(BaseModel, frozen=True):
    """L-BFGS maximum entropy trainer settings."""

    l2_weight: float = 1.0
    max_iterations: int = 100
    history_size: int = 20
    tolerance: float = 1e-7
    accelerator: str = "cpu"
    seed: int = 42

    @field_validator("l2_weight", "tolerance")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            msg = f"Expected a non-negative value, got {value}"
            raise ValueError(msg)
        return value

    @field_validator("max_iterations", "history_size")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        if value < 1:
            msg = f"Expected a value >= 1, got {value}"
            raise ValueError(msg)
        return value


class AssetPaths(BaseModel, frozen=True):
    """Filesystem layout of the assets folder.

    Relative entries are resolved against ``assets_root``; tag files and the
    single prediction image live inside the images folder.  When
    ``assets_root`` is ``None`` the project's ``assets/`` directory is used.
    """

    assets_root: str | None = None
    images_folder: str = "images"
    train_tags: str = "tags.tsv"
    test_tags: str = "test-tags.tsv"
    predict_image: str = "toaster3.jpg"
    network: str = "inception/googlenet.pth"

    @property
    def root(self) -> Path:
        if self.assets_root is None:
            return DEFAULT_ASSETS_ROOT
        return Path(self.assets_root)

    @property
    def images_dir(self) -> Path:
        return self.root / self.images_folder

    @property
    def train_tags_path(self) -> Path:
        return self.images_dir / self.train_tags

    @property
    def test_tags_path(self) -> Path:
        return self.images_dir / self.test_tags

    @property
    def predict_image_path(self) -> Path:
        return self.images_dir / self.predict_image

    @property
    def network_path(self) -> Path:
        return self.root / self.network


class TransferLearningConfig(BaseModel, frozen=True):
    """Top-level run configuration, validated from the Hydra config."""

    paths: AssetPaths = AssetPaths()
    settings: ImageSettings = ImageSettings()
    network: NetworkConfig = NetworkConfig()
    trainer: TrainerConfig = TrainerConfig()
    batch_size: int = 16
    save_dir: str | None = None
    wait_for_key: bool = True
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _positive_batch_size(self) -> TransferLearningConfig:
        if self.batch_size < 1:
            msg = f"batch_size must be >= 1, got {self.batch_size}"
            raise ValueError(msg)
        return self


def build_config(cfg: DictConfig | dict[str, Any]) -> TransferLearningConfig:
    """Validate a composed Hydra config into a TransferLearningConfig."""
    if isinstance(cfg, DictConfig):
        container = OmegaConf.to_container(cfg, resolve=True)
    else:
        container = cfg
    return TransferLearningConfig.model_validate(container)
