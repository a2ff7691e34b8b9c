"""Training entrypoint for transfer_classifier.

Usage:
    python -m transfer_classifier.train                         # defaults
    python -m transfer_classifier.train network.architecture=resnet50 \
        paths.network=resnet/resnet50.pth                       # other backbone
    python -m transfer_classifier.train trainer.l2_weight=0.1   # override trainer
    python -m transfer_classifier.train save_dir=models/latest wait_for_key=false
"""

import sys
from pathlib import Path

import hydra
from loguru import logger
from omegaconf import DictConfig, OmegaConf
from rich.console import Console

from transfer_classifier.config import TransferLearningConfig, build_config
from transfer_classifier.data.reader import read_from_tsv
from transfer_classifier.evaluation import evaluate
from transfer_classifier.pipeline import TrainedModel, TransferLearningPipeline
from transfer_classifier.reporting import (
    display_metrics,
    display_results,
    format_prediction,
)
from transfer_classifier.schemas.records import ImageData, ImagePrediction


def generate_model(
    config: TransferLearningConfig, console: Console | None = None
) -> TrainedModel:
    """Fit on the training tags, then report predictions and metrics on the test tags."""
    console = console or Console()
    paths = config.paths
    pipeline = TransferLearningPipeline(
        network_path=paths.network_path,
        settings=config.settings,
        network=config.network,
        trainer=config.trainer,
        batch_size=config.batch_size,
    )
    model = pipeline.fit(read_from_tsv(paths.train_tags_path, paths.images_dir))

    test_records = read_from_tsv(paths.test_tags_path, paths.images_dir)
    result = evaluate(model, test_records, batch_size=config.batch_size)
    display_results(result.predictions, console)
    display_metrics(result.metrics, console)
    return model


def classify_single_image(
    model: TrainedModel, image_path: str | Path, console: Console | None = None
) -> ImagePrediction:
    """Predict one image with a fresh prediction engine and print the result."""
    console = console or Console()
    engine = model.create_prediction_engine()
    prediction = engine.predict(ImageData(image_path=str(image_path)))
    console.print(format_prediction(prediction), markup=False, highlight=False)
    return prediction


def resolve_assets_root(config: TransferLearningConfig) -> TransferLearningConfig:
    """Make a relative ``assets_root`` absolute against the launch directory.

    Hydra runs the job inside its output directory, so relative roots are
    resolved with :func:`hydra.utils.to_absolute_path`.
    """
    if config.paths.assets_root is None:
        return config
    paths = config.paths.model_copy(
        update={"assets_root": hydra.utils.to_absolute_path(config.paths.assets_root)}
    )
    return config.model_copy(update={"paths": paths})


def run(config: TransferLearningConfig, console: Console | None = None) -> TrainedModel:
    """Train, evaluate, classify the single prediction image and optionally save."""
    console = console or Console()
    try:
        model = generate_model(config, console)
        classify_single_image(model, config.paths.predict_image_path, console)
        if config.save_dir is not None:
            model.save(config.save_dir)
    except Exception:
        logger.exception("Transfer learning run failed")
        raise

    if config.wait_for_key:
        console.input("Press Enter to exit...")
    return model


@hydra.main(version_base=None, config_path="conf", config_name="transfer_learning")
def main(cfg: DictConfig) -> None:
    """Run training, evaluation and single-image prediction."""
    # Setup logging
    logger.remove()
    logger.add(sys.stderr, level=cfg.get("log_level", "INFO"))

    logger.info(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")
    run(resolve_assets_root(build_config(cfg)))


if __name__ == "__main__":
    main()
