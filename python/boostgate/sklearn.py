from typing import Dict

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin
from typing_extensions import Self

from boostgate.serialize import BaseSerializer, ObjectSerializer
from boostgate.tree import RegularizedTree, sigmoid
from boostgate.utils import convert_input_array


class RegularizedTreeClassifier(ClassifierMixin, RegularizedTree, BaseEstimator):
    """
    A scikit-learn compatible binary classifier based on RegularizedTree.

    Any two class labels are accepted; they are mapped onto 0 and 1 in sorted
    order and exposed as ``classes_``.
    """

    metadata_attributes: Dict[str, BaseSerializer] = {
        **RegularizedTree.metadata_attributes,
        "classes_": ObjectSerializer(),
    }

    # Expose the parameters explicitly in the __init__ signature to allow
    # scikit-learn to correctly discover and set them via set_params.
    def __init__(
        self,
        *,
        max_depth: int = 6,
        min_child_weight: float = 1.0,
        gamma: float = 0.0,
        reg_lambda: float = 1.0,
        eta: float = 0.3,
    ):
        """
        Parameters
        ----------
        max_depth : int, default=6
            Maximum number of edges from the root to any leaf.
        min_child_weight : float, default=1.0
            Minimum hessian sum required on each side of a split.
        gamma : float, default=0.0
            Minimum loss reduction required to make a split.
        reg_lambda : float, default=1.0
            L2 regularization on leaf weights.
        eta : float, default=0.3
            Shrinkage applied to leaf weights.
        """
        super().__init__(
            max_depth=max_depth,
            min_child_weight=min_child_weight,
            gamma=gamma,
            reg_lambda=reg_lambda,
            eta=eta,
        )

    def fit(self, X, y) -> Self:
        """
        Fit the tree on a binary classification dataset.

        Raises
        ------
        ValueError
            If ``y`` does not contain exactly two classes.
        """
        y_, classes_ = convert_input_array(y, is_target=True)
        if len(classes_) != 2:
            raise ValueError(
                f"RegularizedTreeClassifier needs exactly 2 classes, got {len(classes_)}."
            )
        self.train(X, y_)
        self.classes_ = classes_
        self._set_metadata_attributes("classes_", self.classes_)
        return self

    def decision_function(self, X) -> np.ndarray:
        """Raw margins, positive values favour ``classes_[1]``."""
        return self.predict_batch(X)

    def predict_proba(self, X) -> np.ndarray:
        """
        Class probabilities, the sigmoid of the margin against a zero baseline.

        Returns
        -------
        probabilities : ndarray of shape (n_samples, 2)
        """
        p = sigmoid(self.decision_function(X))
        return np.column_stack([1.0 - p, p])

    def predict(self, X) -> np.ndarray:
        """Predicted class label for every row of ``X``."""
        positive = self.decision_function(X) > 0
        return np.array(self.classes_)[positive.astype(int)]
