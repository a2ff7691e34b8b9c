"""Tests for the maximum entropy classifier."""

import pytest
import torch

from transfer_classifier.config import TrainerConfig
from transfer_classifier.models.classifier import (
    MaximumEntropyClassifier,
    fit_classifier,
)


@pytest.fixture()
def separable() -> tuple[torch.Tensor, torch.Tensor]:
    """Three well-separated clusters in 4-D, 5 samples each."""
    gen = torch.Generator().manual_seed(0)
    centers = torch.tensor(
        [[3.0, 0.0, 0.0, 0.0], [0.0, 3.0, 0.0, 0.0], [0.0, 0.0, 3.0, 0.0]]
    )
    features = torch.cat(
        [c + 0.1 * torch.randn(5, 4, generator=gen) for c in centers]
    )
    labels = torch.arange(3).repeat_interleave(5)
    return features, labels


@pytest.fixture()
def trainer_config() -> TrainerConfig:
    return TrainerConfig(l2_weight=0.01, max_iterations=50)


class TestMaximumEntropyClassifier:
    def test_zero_initialised(self) -> None:
        m = MaximumEntropyClassifier(num_features=8, num_classes=3)
        assert torch.count_nonzero(m.linear.weight) == 0
        assert torch.count_nonzero(m.linear.bias) == 0

    def test_uniform_probabilities_before_fit(self) -> None:
        m = MaximumEntropyClassifier(num_features=8, num_classes=4)
        probs = m.predict_proba(torch.randn(2, 8))
        assert torch.allclose(probs, torch.full((2, 4), 0.25))

    def test_hparams_saved(self) -> None:
        m = MaximumEntropyClassifier(num_features=8, num_classes=3, l2_weight=0.5)
        assert m.hparams["num_features"] == 8
        assert m.hparams["num_classes"] == 3
        assert m.hparams["l2_weight"] == pytest.approx(0.5)

    def test_objective_includes_l2(self) -> None:
        m = MaximumEntropyClassifier(num_features=2, num_classes=2, l2_weight=2.0)
        with torch.no_grad():
            m.linear.weight.fill_(1.0)
        logits = torch.zeros(2, 2)
        labels = torch.tensor([0, 1])
        # ce = 2 * ln 2, l2 = 0.5 * 2.0 * 4 = 4, divided by 2 examples
        expected = (2 * torch.log(torch.tensor(2.0)) + 4.0) / 2
        assert m.objective(logits, labels).item() == pytest.approx(expected.item())


class TestFitClassifier:
    def test_fits_separable_data(
        self,
        separable: tuple[torch.Tensor, torch.Tensor],
        trainer_config: TrainerConfig,
    ) -> None:
        features, labels = separable
        model = fit_classifier(features, labels, 3, trainer_config)
        probs = model.predict_proba(features)
        assert torch.equal(probs.argmax(dim=-1), labels)
        assert torch.allclose(probs.sum(dim=-1), torch.ones(len(labels)), atol=1e-5)

    def test_returns_frozen_eval_model(
        self,
        separable: tuple[torch.Tensor, torch.Tensor],
        trainer_config: TrainerConfig,
    ) -> None:
        features, labels = separable
        model = fit_classifier(features, labels, 3, trainer_config)
        assert not model.training
        assert all(not p.requires_grad for p in model.parameters())

    def test_repeatable(
        self,
        separable: tuple[torch.Tensor, torch.Tensor],
        trainer_config: TrainerConfig,
    ) -> None:
        features, labels = separable
        a = fit_classifier(features, labels, 3, trainer_config)
        b = fit_classifier(features, labels, 3, trainer_config)
        assert torch.allclose(a.linear.weight, b.linear.weight, atol=1e-6)
        assert torch.allclose(a.linear.bias, b.linear.bias, atol=1e-6)

    def test_stronger_l2_shrinks_weights(
        self, separable: tuple[torch.Tensor, torch.Tensor]
    ) -> None:
        features, labels = separable
        weak = fit_classifier(features, labels, 3, TrainerConfig(l2_weight=0.01))
        strong = fit_classifier(features, labels, 3, TrainerConfig(l2_weight=10.0))
        assert strong.linear.weight.norm() < weak.linear.weight.norm()
