"""Exceptions raised by the tree learner and the feature pipeline."""

from sklearn.exceptions import NotFittedError


class EmptyDatasetError(ValueError):
    """Raised when training is requested without any (matching) samples."""


class ModelNotTrainedError(NotFittedError):
    """Raised when a prediction is requested before the tree has been trained."""


class DegenerateInputError(ValueError):
    """Raised when text carries no tokens to compute features from."""
