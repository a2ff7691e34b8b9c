"""Transfer learning pipeline: pretrained network features + maximum entropy classifier.

``TransferLearningPipeline.fit`` runs, in order: load image -> resize ->
extract pixels -> score through the pretrained network -> map labels to keys
-> fit the classifier -> attach key-to-label decoding.  The result is a
:class:`TrainedModel`, which is read-only and can be shared by any number of
:class:`~transfer_classifier.inference.predictor.PredictionEngine` instances.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

import orjson
import torch
from loguru import logger
from PIL import Image
from torch.utils.data import DataLoader
from tqdm import tqdm

from transfer_classifier.config import ImageSettings, NetworkConfig, TrainerConfig
from transfer_classifier.data.dataset import ImageRecordDataset
from transfer_classifier.errors import (
    EmptyDatasetError,
    MalformedRecordError,
    NetworkLoadError,
)
from transfer_classifier.inference.predictor import PredictionEngine
from transfer_classifier.models.classifier import (
    MaximumEntropyClassifier,
    fit_classifier,
)
from transfer_classifier.models.network import NetworkScorer
from transfer_classifier.schemas.records import ImageData, ImagePrediction
from transfer_classifier.transforms.image import build_image_transforms
from transfer_classifier.transforms.keys import ValueToKeyMapper

CLASSIFIER_FILENAME = "classifier.pt"
LABELS_MAPPING_FILENAME = "labels_mapping.json"


def extract_features(
    records: Sequence[ImageData],
    transform: Callable[[Image.Image], torch.Tensor],
    scorer: NetworkScorer,
    batch_size: int = 16,
    desc: str = "Scoring images",
) -> torch.Tensor:
    """Load, preprocess and score every record's image.

    Returns:
        Float tensor of shape (N, F), one feature vector per record in order.
    """
    loader = DataLoader(
        ImageRecordDataset(records, transform),
        batch_size=batch_size,
        shuffle=False,
        num_workers=0,
    )
    chunks: list[torch.Tensor] = []
    # no_grad rather than inference_mode: training features feed autograd.
    with torch.no_grad():
        for pixels in tqdm(loader, desc=desc, total=len(loader), leave=False):
            chunks.append(scorer(pixels))
    return torch.cat(chunks)


class TrainedModel:
    """Fitted preprocessing + classification chain.

    Holds the image settings, the frozen network scorer, the fitted
    classifier and the label key mapping.  Nothing here is mutated after
    construction.

    Scores in every :class:`ImagePrediction` follow :attr:`class_names`.
    """

    def __init__(
        self,
        settings: ImageSettings,
        network: NetworkConfig,
        network_path: str | Path,
        scorer: NetworkScorer,
        classifier: MaximumEntropyClassifier,
        key_mapper: ValueToKeyMapper,
    ) -> None:
        self._settings = settings
        self._network = network
        self._network_path = Path(network_path)
        self._scorer = scorer
        self._classifier = classifier
        self._key_mapper = key_mapper

    @property
    def settings(self) -> ImageSettings:
        return self._settings

    @property
    def network(self) -> NetworkConfig:
        return self._network

    @property
    def network_path(self) -> Path:
        return self._network_path

    @property
    def scorer(self) -> NetworkScorer:
        return self._scorer

    @property
    def classifier(self) -> MaximumEntropyClassifier:
        return self._classifier

    @property
    def key_mapper(self) -> ValueToKeyMapper:
        return self._key_mapper

    @property
    def class_names(self) -> list[str]:
        return self._key_mapper.class_names

    @property
    def num_features(self) -> int:
        return int(self._classifier.hparams["num_features"])

    def build_transforms(self) -> Callable[[Image.Image], torch.Tensor]:
        """A fresh image transform pipeline for this model's settings."""
        return build_image_transforms(self._settings)

    @torch.inference_mode()
    def score_features(self, features: torch.Tensor) -> torch.Tensor:
        """Class probabilities for precomputed features, shape (B, C)."""
        return self._classifier.predict_proba(features)

    def to_predictions(
        self, records: Sequence[ImageData], probs: torch.Tensor
    ) -> list[ImagePrediction]:
        """Pair records with their probabilities and decoded labels."""
        predicted = self._key_mapper.decode(probs.argmax(dim=-1))
        return [
            ImagePrediction(
                image_path=record.image_path,
                label=record.label,
                score=row.tolist(),
                predicted_label=label,
            )
            for record, row, label in zip(records, probs, predicted, strict=True)
        ]

    def transform(
        self, records: Iterable[ImageData], batch_size: int = 16
    ) -> list[ImagePrediction]:
        """Apply the full chain to records, in order."""
        records = list(records)
        if not records:
            return []
        features = extract_features(
            records,
            self.build_transforms(),
            self._scorer,
            batch_size=batch_size,
            desc="Predicting",
        )
        return self.to_predictions(records, self.score_features(features))

    def create_prediction_engine(self) -> PredictionEngine:
        """A new single-item predictor over this model.

        Engines are not safe to share between threads; create one per thread.
        """
        return PredictionEngine(self)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, directory: str | Path) -> Path:
        """Write classifier weights and the labels mapping to ``directory``.

        The pretrained network is referenced by path, not copied.
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        torch.save(self._classifier.state_dict(), directory / CLASSIFIER_FILENAME)
        mapping = {
            "num_classes": self._key_mapper.num_classes,
            "num_features": self.num_features,
            "class_to_idx": self._key_mapper.class_to_idx,
            "idx_to_class": {
                str(k): v for k, v in self._key_mapper.idx_to_class.items()
            },
            "settings": self._settings.model_dump(),
            "network": {
                **self._network.model_dump(),
                "path": str(self._network_path),
            },
            "trainer": dict(self._classifier.hparams),
        }
        (directory / LABELS_MAPPING_FILENAME).write_bytes(
            orjson.dumps(mapping, option=orjson.OPT_INDENT_2)
        )
        logger.info(f"Saved trained model to {directory}")
        return directory

    @classmethod
    def load(cls, directory: str | Path) -> TrainedModel:
        """Rebuild a model written by :meth:`save`.

        Raises:
            NetworkLoadError: A saved file is missing or corrupt, or the
                referenced network cannot be loaded.
        """
        directory = Path(directory)
        mapping_path = directory / LABELS_MAPPING_FILENAME
        weights_path = directory / CLASSIFIER_FILENAME
        for path in (mapping_path, weights_path):
            if not path.is_file():
                msg = f"Saved model file not found: {path}"
                raise NetworkLoadError(msg)

        try:
            mapping = orjson.loads(mapping_path.read_bytes())
            settings = ImageSettings.model_validate(mapping["settings"])
            net = mapping["network"]
            network_path = net["path"]
            network = NetworkConfig(
                architecture=net["architecture"], feature_layer=net["feature_layer"]
            )
            key_mapper = ValueToKeyMapper(mapping["class_to_idx"])
            hparams = mapping["trainer"]
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Saved labels mapping {mapping_path} is corrupt: {e}"
            raise NetworkLoadError(msg) from e

        try:
            classifier = MaximumEntropyClassifier(**hparams)
            state_dict = torch.load(weights_path, map_location="cpu", weights_only=True)
            classifier.load_state_dict(state_dict)
        except Exception as e:  # torch.load raises assorted types for bad files
            msg = f"Could not read saved classifier {weights_path}: {e}"
            raise NetworkLoadError(msg) from e
        classifier.eval()
        classifier.requires_grad_(False)

        scorer = NetworkScorer.from_file(
            network_path,
            architecture=network.architecture,
            feature_layer=network.feature_layer,
            channels_last=settings.channels_last,
        )
        logger.info(f"Loaded trained model from {directory}")
        return cls(settings, network, network_path, scorer, classifier, key_mapper)


class TransferLearningPipeline:
    """Builds a :class:`TrainedModel` from labelled image records.

    Args:
        network_path: Local weights file for the pretrained network.
        settings: Image geometry and pixel normalization.
        network: Architecture and feature layer to read.
        trainer: Classifier trainer settings.
        batch_size: Images per network scoring batch.
    """

    def __init__(
        self,
        network_path: str | Path,
        settings: ImageSettings | None = None,
        network: NetworkConfig | None = None,
        trainer: TrainerConfig | None = None,
        batch_size: int = 16,
    ) -> None:
        self.network_path = Path(network_path)
        self.settings = settings or ImageSettings()
        self.network = network or NetworkConfig()
        self.trainer = trainer or TrainerConfig()
        self.batch_size = batch_size

    @staticmethod
    def _validate_training_records(records: Sequence[ImageData]) -> list[str]:
        if not records:
            msg = "Training dataset is empty"
            raise EmptyDatasetError(msg)
        labels: list[str] = []
        for record in records:
            if record.label is None:
                msg = f"Training record has no label: {record.image_path}"
                raise MalformedRecordError(msg)
            labels.append(record.label)
        if len(set(labels)) < 2:
            msg = (
                "Training dataset needs at least 2 distinct labels, "
                f"got {sorted(set(labels))}"
            )
            raise EmptyDatasetError(msg)
        duplicates = [
            path
            for path, n in Counter(r.image_path for r in records).items()
            if n > 1
        ]
        if duplicates:
            logger.warning(
                f"{len(duplicates)} image(s) appear more than once in training data"
            )
        return labels

    def fit(self, records: Iterable[ImageData]) -> TrainedModel:
        """Score the training images and fit the classifier on their features.

        Raises:
            EmptyDatasetError: No records, or fewer than two labels.
            MalformedRecordError: A record has no label.
            NetworkLoadError: The network file is missing or corrupt.
            ImageLoadError: A training image is missing or unreadable.
        """
        records = list(records)
        labels = self._validate_training_records(records)
        logger.info(f"Fitting pipeline on {len(records)} training samples")

        scorer = NetworkScorer.from_file(
            self.network_path,
            architecture=self.network.architecture,
            feature_layer=self.network.feature_layer,
            channels_last=self.settings.channels_last,
        )
        transform = build_image_transforms(self.settings)
        features = extract_features(
            records, transform, scorer, batch_size=self.batch_size
        )
        logger.info(
            f"Extracted {features.shape[1]}-dim features "
            f"from layer {self.network.feature_layer!r}"
        )

        key_mapper = ValueToKeyMapper.fit(labels)
        keys = key_mapper.encode(labels)
        classifier = fit_classifier(
            features, keys, key_mapper.num_classes, self.trainer
        )
        return TrainedModel(
            self.settings,
            self.network,
            self.network_path,
            scorer,
            classifier,
            key_mapper,
        )
