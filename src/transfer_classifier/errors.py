"""Exception types raised by transfer_classifier.

Every failure aborts the run; nothing is skipped silently.
"""


class TransferLearningError(Exception):
    """Base class for all transfer_classifier errors."""


class DatasetNotFoundError(TransferLearningError, FileNotFoundError):
    """A tags file does not exist."""


class MalformedRecordError(TransferLearningError, ValueError):
    """A tags line has too few fields, or a record lacks a required label."""


class ImageLoadError(TransferLearningError, OSError):
    """An image referenced by a record is missing or cannot be decoded."""


class NetworkLoadError(TransferLearningError, RuntimeError):
    """A network or saved model file is missing, corrupt or incompatible."""


class EmptyDatasetError(TransferLearningError, ValueError):
    """A dataset has no records, or too few classes to train on."""


class UnseenLabelError(TransferLearningError, ValueError):
    """An evaluation record carries a label never seen during training."""

    def __init__(self, labels: list[str]) -> None:
        self.labels = labels
        super().__init__(
            f"Labels not present in training data: {', '.join(repr(x) for x in labels)}"
        )
