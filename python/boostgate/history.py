"""Training samples collected by an agent, in arrival order."""

from typing import List, Optional, Tuple

import numpy as np


class TrainingHistory:
    """Parallel sequences of feature vectors and (possibly missing) labels.

    Position ``i`` of both sequences describes the ``i``-th sample received.
    Samples are only ever appended; a missing label can be filled in later
    with :meth:`set_label`.
    """

    def __init__(self):
        self._features: List[np.ndarray] = []
        self._labels: List[Optional[int]] = []

    def __len__(self) -> int:
        return len(self._features)

    @property
    def labels(self) -> Tuple[Optional[int], ...]:
        return tuple(self._labels)

    def append(self, features, label: Optional[int] = None) -> int:
        """Record a sample and return its position."""
        x_ = np.asarray(
            [np.nan if v is None else v for v in features], dtype="float64"
        )
        if self._features and x_.shape[0] != self._features[0].shape[0]:
            raise ValueError(
                f"Expected a feature vector of width {self._features[0].shape[0]}, got {x_.shape[0]}."
            )
        label_ = _check_label(label)
        self._features.append(x_)
        self._labels.append(label_)
        return len(self._features) - 1

    def set_label(self, index: int, label: int) -> None:
        if label is None:
            raise ValueError("A recorded label cannot be removed.")
        self._labels[index] = _check_label(label)

    def as_array(self) -> np.ndarray:
        """All recorded vectors as a 2D array, missing values as NaN."""
        if not self._features:
            return np.empty((0, 0))
        return np.vstack(self._features)

    def labeled(self) -> Tuple[np.ndarray, np.ndarray]:
        """Feature vectors and labels of the samples that carry a label."""
        keep = [i for i, label in enumerate(self._labels) if label is not None]
        width = self._features[0].shape[0] if self._features else 0
        X = np.empty((len(keep), width))
        for row, i in enumerate(keep):
            X[row] = self._features[i]
        y = np.array([self._labels[i] for i in keep], dtype="float64")
        return X, y


def _check_label(label):
    if label is None:
        return None
    if label not in (0, 1):
        raise ValueError(f"Labels must be 0, 1 or None, got {label!r}.")
    return int(label)
