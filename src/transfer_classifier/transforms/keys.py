"""String label <-> integer class key mapping."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import torch
from loguru import logger

from transfer_classifier.errors import EmptyDatasetError, UnseenLabelError


class ValueToKeyMapper:
    """Dense integer keys for string labels.

    Keys are assigned in sorted label order, so the mapping depends only on
    the set of labels and not on the order records arrive in.

    Args:
        class_to_idx: Mapping from label string to key.  Keys must be
            ``0..n-1``.
    """

    def __init__(self, class_to_idx: dict[str, int]) -> None:
        if sorted(class_to_idx.values()) != list(range(len(class_to_idx))):
            msg = "class_to_idx values must be a dense range starting at 0"
            raise ValueError(msg)
        self.class_to_idx = dict(class_to_idx)
        self.idx_to_class = {v: k for k, v in class_to_idx.items()}

    @classmethod
    def fit(cls, labels: Iterable[str]) -> ValueToKeyMapper:
        """Build the mapping from the distinct labels seen in training."""
        classes = sorted(set(labels))
        if not classes:
            msg = "Cannot build a label mapping from zero labels"
            raise EmptyDatasetError(msg)
        mapper = cls({label: i for i, label in enumerate(classes)})
        logger.info(f"Built class_to_idx: {len(classes)} classes")
        logger.debug(f"class_to_idx: {mapper.class_to_idx}")
        return mapper

    @property
    def num_classes(self) -> int:
        return len(self.class_to_idx)

    @property
    def class_names(self) -> list[str]:
        """Labels ordered by key."""
        return [self.idx_to_class[i] for i in range(self.num_classes)]

    def unseen(self, labels: Iterable[str]) -> list[str]:
        """Distinct labels not in the mapping, sorted."""
        return sorted({label for label in labels if label not in self.class_to_idx})

    def encode(self, labels: Sequence[str]) -> torch.Tensor:
        """Encode labels as a long tensor of keys.

        Raises:
            UnseenLabelError: Any label was not seen when fitting.
        """
        missing = self.unseen(labels)
        if missing:
            raise UnseenLabelError(missing)
        return torch.tensor(
            [self.class_to_idx[label] for label in labels], dtype=torch.long
        )

    def decode(self, keys: torch.Tensor | Sequence[int]) -> list[str]:
        """Map keys back to their original label strings."""
        if isinstance(keys, torch.Tensor):
            keys = keys.tolist()
        return [self.idx_to_class[int(k)] for k in keys]
