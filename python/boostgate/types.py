"""Protocol (structural typing) definitions for margin-producing models."""

from typing import Optional, Protocol

from boostgate.data import TreeNode


class MarginModel(Protocol):
    """Protocol for a tree that scores a single feature vector."""

    root: Optional[TreeNode]

    def predict(self, features) -> float:
        """Return the raw additive margin for one feature vector."""

    def train(self, features, labels) -> None:
        """Fit the model on paired feature vectors and binary labels."""
