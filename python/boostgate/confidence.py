"""Confidence scoring on top of a trained :class:`~boostgate.tree.RegularizedTree`.

The confidence is ``sigmoid(|margin|)``, so it is always in ``[0.5, 1)`` and
is the same for a margin and its negation. It measures how far the margin is
from the decision boundary, not the probability of the positive class, which
is ``sigmoid(margin)`` as used for the training gradients.
"""

from dataclasses import dataclass
from enum import Enum

from boostgate.errors import ModelNotTrainedError
from boostgate.tree import sigmoid
from boostgate.types import MarginModel


class Label(str, Enum):
    POSITIVE = "Positive"
    NEGATIVE = "Negative"

    @classmethod
    def from_margin(cls, margin: float) -> "Label":
        return cls.POSITIVE if margin > 0 else cls.NEGATIVE


@dataclass(frozen=True)
class Classification:
    """Outcome of :meth:`ConfidenceClassifier.classify`."""

    margin: float
    confidence: float

    @property
    def label(self) -> Label:
        return Label.from_margin(self.margin)


def margin_confidence(margin: float) -> float:
    return float(sigmoid(abs(margin)))


class ConfidenceClassifier:
    """Turns the raw margin of a trained tree into a label and a confidence."""

    def __init__(self, tree: MarginModel):
        """Wrap a tree.

        Parameters
        ----------
        tree : RegularizedTree
            The tree to score with. It may be trained after wrapping.
        """
        self.tree = tree

    def classify(self, features) -> Classification:
        """
        Score one complete feature vector.

        Raises
        ------
        ModelNotTrainedError
            If the wrapped tree has not been trained.
        """
        if not self.is_trained:
            raise ModelNotTrainedError(
                "The tree must be trained before classifying."
            )
        margin = self.tree.predict(features)
        return Classification(margin=margin, confidence=margin_confidence(margin))

    @property
    def is_trained(self) -> bool:
        return self.tree.root is not None
