import inspect
import json
import logging
import warnings
from typing import Any, Dict, List, NamedTuple, Optional, Union, cast

import numpy as np
from typing_extensions import Self

from boostgate.data import Node, TreeNode
from boostgate.errors import EmptyDatasetError, ModelNotTrainedError
from boostgate.serialize import (
    BaseSerializer,
    ObjectSerializer,
    node_from_dict,
    node_to_dict,
)
from boostgate.utils import (
    convert_input_frame,
    transform_input_vector,
    validate_binary_labels,
)

logger = logging.getLogger(__name__)

IMPORTANCE_METHODS = ("Weight", "Gain", "Cover", "TotalGain", "TotalCover")


def sigmoid(x):
    return 1.0 / (1.0 + np.exp(-x))


def logistic_gradient_hessian(labels: np.ndarray, raw_predictions: np.ndarray):
    """First and second derivative of the logistic loss w.r.t. the raw margin."""
    p = sigmoid(raw_predictions)
    return p - labels, p * (1.0 - p)


class SplitCandidate(NamedTuple):
    feature: int
    value: float
    gain: float


class RegularizedTree:
    # Metadata parameters that are stored with the tree
    # and set as attributes again when it is loaded.
    metadata_attributes: Dict[str, BaseSerializer] = {
        "feature_names_in_": ObjectSerializer(),
        "n_features_": ObjectSerializer(),
    }

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
        Single regularized gradient tree for binary classification.

        The tree is fit once, as an additive correction to an all-zero raw
        prediction, using the first and second order statistics of the
        logistic loss. There are no further boosting rounds.

        Parameters
        ----------
        max_depth : int, default=6
            Maximum number of edges from the root to any leaf. 0 yields a
            single leaf.
        min_child_weight : float, default=1.0
            Minimum hessian sum required on each side of a split.
        gamma : float, default=0.0
            Minimum loss reduction required to make a split. It is subtracted
            from every candidate's gain.
        reg_lambda : float, default=1.0
            L2 regularization on leaf weights.
        eta : float, default=0.3
            Shrinkage applied to leaf weights, in ``(0, 1]``.

        Attributes
        ----------
        root : TreeNode or None
            Root of the trained tree, None until :meth:`train` succeeds.
        feature_names_in_ : list of str
            Names of features seen during :meth:`train`.
        n_features_ : int
            Number of features seen during :meth:`train`.
        feature_importances_ : ndarray of shape (n_features,)
            Normalized gain importance of each feature.

        Examples
        --------
        >>> from boostgate import RegularizedTree
        >>> tree = RegularizedTree(max_depth=1, min_child_weight=0.0)
        >>> tree.train([[0], [1], [2], [3]], [0, 0, 1, 1])
        >>> tree.root.split_value
        1.5
        >>> tree.predict([3]) > 0
        True
        """
        _validate_tree_params(max_depth, min_child_weight, gamma, reg_lambda, eta)
        self.max_depth = max_depth
        self.min_child_weight = min_child_weight
        self.gamma = gamma
        self.reg_lambda = reg_lambda
        self.eta = eta
        self.root: Optional[TreeNode] = None
        self.metadata: Dict[str, str] = {}

    def train(self, features, labels) -> None:
        """
        Build the tree from a labeled dataset.

        Every sample starts from a raw prediction of 0, so each gradient is
        ``0.5 - label`` and each hessian is ``0.25``. Calling this again
        replaces the tree.

        Parameters
        ----------
        features : array-like of shape (n_samples, n_features)
            Training vectors. A pandas DataFrame, a 2D numpy array or a list
            of equally sized sequences. Missing values must be imputed first.
        labels : array-like of shape (n_samples,)
            Binary labels, each 0 or 1.

        Raises
        ------
        EmptyDatasetError
            If there are no samples, or features and labels differ in length.
        """
        features_, X_ = convert_input_frame(features)
        y_ = validate_binary_labels(labels)

        rows, cols = X_.shape
        if rows == 0 or rows != y_.shape[0]:
            raise EmptyDatasetError(
                f"Training needs the same, non-zero number of feature vectors and labels, got {rows} and {y_.shape[0]}."
            )
        if not np.isfinite(X_).all():
            raise ValueError(
                "Training features contain missing or non-finite values, impute them before training."
            )
        if np.unique(y_).shape[0] < 2:
            warnings.warn(
                f"Only label {int(y_[0])} is present in the training data, every prediction will favour it."
            )

        raw_predictions = np.zeros(rows)
        gradients, hessians = logistic_gradient_hessian(y_, raw_predictions)

        self.root = self._build_tree(X_, gradients, hessians, depth=0)
        self.n_features_ = cols
        self.feature_names_in_ = features_
        self._set_metadata_attributes("n_features_", self.n_features_)
        self._set_metadata_attributes("feature_names_in_", self.feature_names_in_)

        if self.root.is_leaf:
            logger.warning(
                f"No split improved the loss on {rows} samples, the tree is a single leaf."
            )
        logger.info(
            f"Trained tree on {rows} samples: {self.number_of_nodes} nodes, depth {self.depth}."
        )

    def fit(self, X, y) -> Self:
        """Train the tree and return it, see :meth:`train`."""
        self.train(X, y)
        return self

    def _leaf(self, gradient_sum: float, hessian_sum: float, count: int) -> TreeNode:
        prediction = -self.eta * gradient_sum / (hessian_sum + self.reg_lambda)
        return TreeNode.leaf(
            prediction=prediction,
            gradient_sum=gradient_sum,
            hessian_sum=hessian_sum,
            count=count,
        )

    def _build_tree(
        self,
        features: np.ndarray,
        gradients: np.ndarray,
        hessians: np.ndarray,
        depth: int,
    ) -> TreeNode:
        gradient_sum = float(gradients.sum())
        hessian_sum = float(hessians.sum())
        count = features.shape[0]

        if depth >= self.max_depth:
            return self._leaf(gradient_sum, hessian_sum, count)

        split = self._find_best_split(features, gradients, hessians)
        if split is None or split.gain <= 0:
            return self._leaf(gradient_sum, hessian_sum, count)

        logger.debug(
            f"Split on feature {split.feature} at {split.value} with gain {split.gain:.6f} (depth {depth}, {count} samples)."
        )
        go_left = features[:, split.feature] <= split.value
        go_right = ~go_left
        left = self._build_tree(
            features[go_left], gradients[go_left], hessians[go_left], depth + 1
        )
        right = self._build_tree(
            features[go_right], gradients[go_right], hessians[go_right], depth + 1
        )
        return TreeNode(
            split_feature=split.feature,
            split_value=split.value,
            gain=split.gain,
            left_child=left,
            right_child=right,
            gradient_sum=gradient_sum,
            hessian_sum=hessian_sum,
            count=count,
        )

    def _calculate_gain(
        self,
        gradient_sum: float,
        hessian_sum: float,
        left_gradient_sum: float,
        left_hessian_sum: float,
        right_gradient_sum: float,
        right_hessian_sum: float,
    ) -> float:
        gain_left = left_gradient_sum**2 / (left_hessian_sum + self.reg_lambda)
        gain_right = right_gradient_sum**2 / (right_hessian_sum + self.reg_lambda)
        gain_parent = gradient_sum**2 / (hessian_sum + self.reg_lambda)
        return (gain_left + gain_right - gain_parent) / 2 - self.gamma

    def _find_best_split(
        self,
        features: np.ndarray,
        gradients: np.ndarray,
        hessians: np.ndarray,
    ) -> Optional[SplitCandidate]:
        gradient_sum = float(gradients.sum())
        hessian_sum = float(hessians.sum())

        best_gain = 0.0
        best_split = None
        # Candidates are visited by feature, then by ascending threshold,
        # and only a strictly greater gain replaces the current best.
        for feature in range(features.shape[1]):
            column = features[:, feature]
            values = np.unique(column)
            thresholds = (values[:-1] + values[1:]) / 2
            for threshold in thresholds:
                go_left = column <= threshold
                left_gradient_sum = float(gradients[go_left].sum())
                left_hessian_sum = float(hessians[go_left].sum())
                right_gradient_sum = gradient_sum - left_gradient_sum
                right_hessian_sum = hessian_sum - left_hessian_sum

                if (
                    left_hessian_sum < self.min_child_weight
                    or right_hessian_sum < self.min_child_weight
                ):
                    continue

                gain = self._calculate_gain(
                    gradient_sum,
                    hessian_sum,
                    left_gradient_sum,
                    left_hessian_sum,
                    right_gradient_sum,
                    right_hessian_sum,
                )
                if gain > best_gain:
                    best_gain = gain
                    best_split = SplitCandidate(
                        feature=feature,
                        value=float(threshold),
                        gain=gain,
                    )
        return best_split

    def _check_trained(self) -> TreeNode:
        if self.root is None:
            raise ModelNotTrainedError(
                "This RegularizedTree is not trained yet. Call 'train' with a labeled dataset first."
            )
        return self.root

    def _validate_features(self, features: List[str]):
        if len(features) > 0 and hasattr(self, "feature_names_in_"):
            if features[0] != "0" and self.feature_names_in_[0] != "0":
                if features != self.feature_names_in_:
                    raise ValueError(
                        f"Columns mismatch between data {features} passed, and data {self.feature_names_in_} used at fit."
                    )

    def predict(self, features) -> float:
        """
        Predict the raw margin for a single feature vector.

        Parameters
        ----------
        features : array-like of shape (n_features,)
            One complete feature vector.

        Returns
        -------
        margin : float
            Leaf weight reached by descending left when
            ``features[split_feature] <= split_value`` and right otherwise.

        Raises
        ------
        ModelNotTrainedError
            If the tree has not been trained.
        """
        self._check_trained()
        return self._descend(transform_input_vector(features, self.n_features_))

    def _descend(self, x_: np.ndarray) -> float:
        node = cast(TreeNode, self.root)
        while not node.is_leaf:
            if x_[node.split_feature] <= node.split_value:
                node = cast(TreeNode, node.left_child)
            else:
                node = cast(TreeNode, node.right_child)
        return cast(float, node.prediction)

    def predict_batch(self, X) -> np.ndarray:
        """
        Predict raw margins for every row of ``X``.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Input features.

        Returns
        -------
        margins : ndarray of shape (n_samples,)
        """
        self._check_trained()
        features_, X_ = convert_input_frame(X)
        self._validate_features(features_)
        if X_.shape[1] != self.n_features_:
            raise ValueError(
                f"Expected {self.n_features_} features, got {X_.shape[1]}."
            )
        return np.array([self._descend(row) for row in X_], dtype="float64")

    def get_node_list(self, map_features_names: bool = True) -> List[Node]:
        """
        Return the tree as a flat, pre-order list of node records.

        Parameters
        ----------
        map_features_names : bool, default=True
            Whether to use feature names instead of indices.

        Returns
        -------
        nodes : list of Node
        """
        root = self._check_trained()
        if (
            map_features_names
            and self.feature_names_in_
            and self.feature_names_in_[0] != "0"
        ):
            feature_map: Dict[int, Union[str, int]] = dict(
                enumerate(self.feature_names_in_)
            )
            leaf_split_feature: Union[str, int] = ""
        else:
            feature_map = {i: i for i in range(self.n_features_)}
            leaf_split_feature = -1

        nodes: List[Node] = []

        def visit(node: TreeNode, depth: int, parent: int) -> int:
            num = len(nodes)
            record = Node(
                num=num,
                weight_value=node.prediction if node.is_leaf else 0.0,  # type: ignore
                hessian_sum=node.hessian_sum,
                gradient_sum=node.gradient_sum,
                depth=depth,
                is_leaf=node.is_leaf,
                parent_node=parent,
                count=node.count,
                split_feature=leaf_split_feature,
            )
            nodes.append(record)
            if not node.is_leaf:
                record.split_feature = feature_map[node.split_feature]  # type: ignore
                record.split_value = node.split_value  # type: ignore
                record.split_gain = node.gain
                record.left_child = visit(node.left_child, depth + 1, num)
                record.right_child = visit(node.right_child, depth + 1, num)
            return num

        visit(root, 0, 0)
        return nodes

    @property
    def number_of_nodes(self) -> int:
        """Total number of nodes, split and leaf."""
        return len(self.get_node_list(map_features_names=False))

    @property
    def depth(self) -> int:
        """Number of edges on the longest root to leaf path."""
        return max(n.depth for n in self.get_node_list(map_features_names=False))

    def leaves(self) -> List[TreeNode]:
        """Return the leaf nodes, left to right."""
        stack = [self._check_trained()]
        leaves = []
        while stack:
            node = stack.pop()
            if node.is_leaf:
                leaves.append(node)
            else:
                stack.append(cast(TreeNode, node.right_child))
                stack.append(cast(TreeNode, node.left_child))
        return leaves

    def calculate_feature_importance(
        self, method: str = "Gain", normalize: bool = True
    ) -> Dict[str, float]:
        """
        Calculate feature importance for the tree.

        Parameters
        ----------
        method : str, optional, default="Gain"
            Importance method. Options:

            - "Weight": Number of times a feature is used in splits.
            - "Gain": Average gain of the splits on a feature.
            - "Cover": Average hessian sum of the splits on a feature.
            - "TotalGain": Total gain of the splits on a feature.
            - "TotalCover": Total hessian sum of the splits on a feature.

        normalize : bool, optional, default=True
            Whether to normalize importance scores to sum to 1.

        Returns
        -------
        importance : dict
            Feature names mapped to scores. Features never split on are absent.
        """
        if method not in IMPORTANCE_METHODS:
            raise ValueError(
                f"Unknown importance method {method!r}, expected one of {IMPORTANCE_METHODS}."
            )
        counts: Dict[str, int] = {}
        gains: Dict[str, float] = {}
        covers: Dict[str, float] = {}
        for n in self.get_node_list():
            if n.is_leaf:
                continue
            ft = str(n.split_feature)
            counts[ft] = counts.get(ft, 0) + 1
            gains[ft] = gains.get(ft, 0.0) + n.split_gain
            covers[ft] = covers.get(ft, 0.0) + n.hessian_sum

        if method == "Weight":
            importance_ = {ft: float(c) for ft, c in counts.items()}
        elif method == "Gain":
            importance_ = {ft: gains[ft] / counts[ft] for ft in counts}
        elif method == "Cover":
            importance_ = {ft: covers[ft] / counts[ft] for ft in counts}
        elif method == "TotalGain":
            importance_ = gains
        else:
            importance_ = covers

        if normalize:
            total = sum(importance_.values())
            if total > 0:
                importance_ = {ft: v / total for ft, v in importance_.items()}
        return importance_

    @property
    def feature_importances_(self) -> np.ndarray:
        vals = self.calculate_feature_importance(method="Gain", normalize=True)
        return np.array([vals.get(ft, 0.0) for ft in self.feature_names_in_])

    def text_dump(self) -> List[str]:
        """
        Return the tree in a human-readable text format.

        Returns
        -------
        dump : list of str
            One line per node, in pre-order, indented by depth.
        """
        lines = []
        for n in self.get_node_list():
            indent = "\t" * n.depth
            if n.is_leaf:
                lines.append(
                    f"{indent}{n.num}:leaf={n.weight_value},cover={n.hessian_sum}"
                )
            else:
                lines.append(
                    f"{indent}{n.num}:[{n.split_feature} <= {n.split_value}] "
                    f"yes={n.left_child},no={n.right_child},gain={n.split_gain},cover={n.hessian_sum}"
                )
        return lines

    def json_dump(self) -> str:
        """
        Return the tree in JSON format.

        Returns
        -------
        dump : str
            Parameters, metadata and the nested node structure.
        """
        return json.dumps(
            {
                "params": {
                    k: v.item() if isinstance(v, np.generic) else v
                    for k, v in self.get_params().items()
                },
                "metadata": self.metadata,
                "root": None if self.root is None else node_to_dict(self.root),
            }
        )

    @classmethod
    def from_json(cls, json_str: str) -> Self:
        """
        Rebuild a tree from :meth:`json_dump` output.

        Parameters
        ----------
        json_str : str
            JSON representation of a tree.

        Returns
        -------
        model : RegularizedTree
        """
        dump = json.loads(json_str)
        c = cls(**dump["params"])
        c.metadata = dict(dump.get("metadata", {}))
        if dump.get("root") is not None:
            c.root = node_from_dict(dump["root"])
        for m in c.metadata_attributes:
            try:
                setattr(c, m, c._get_metadata_attributes(m))
            except KeyError:
                if c.root is not None:
                    warnings.warn(f"Metadata {m!r} missing from a trained tree.")
        return c

    @classmethod
    def load_model(cls, path: str) -> Self:
        """
        Load a tree from a file written by :meth:`save_model`.

        Parameters
        ----------
        path : str
            Path to the saved tree (JSON format).

        Returns
        -------
        model : RegularizedTree
        """
        with open(str(path), encoding="utf-8") as f:
            return cls.from_json(f.read())

    def save_model(self, path: str):
        """
        Save the tree to a file in JSON format.

        Parameters
        ----------
        path : str
            Path where the tree will be saved.
        """
        dump = self.json_dump()
        with open(str(path), "w", encoding="utf-8") as f:
            f.write(dump)

    def insert_metadata(self, key: str, value: str):
        """
        Insert metadata into the model.

        Metadata is saved alongside the tree and can be retrieved later.

        Parameters
        ----------
        key : str
            The key for the metadata item.
        value : str
            The value for the metadata item.
        """
        self.metadata[key] = value

    def get_metadata(self, key: str) -> str:
        """
        Get metadata associated with a given key.

        Raises
        ------
        KeyError
            If no metadata is stored under ``key``.
        """
        return self.metadata[key]

    def _set_metadata_attributes(self, key: str, value: Any) -> None:
        value_ = self.metadata_attributes[key].serialize(value)
        self.insert_metadata(key=key, value=value_)

    def _get_metadata_attributes(self, key: str) -> Any:
        value = self.get_metadata(key)
        return self.metadata_attributes[key].deserialize(value)

    def trees_to_dataframe(self) -> Any:
        """
        Return the tree structure as a pandas DataFrame, one row per node.
        """
        import pandas as pd

        def _id(i: int) -> str:
            return f"0-{i}"

        vals = [
            dict(
                Tree=0,
                Node=n.num,
                ID=_id(n.num),
                Feature="Leaf" if n.is_leaf else str(n.split_feature),
                Split=None if n.is_leaf else n.split_value,
                Yes=None if n.is_leaf else _id(n.left_child),
                No=None if n.is_leaf else _id(n.right_child),
                Gain=n.weight_value if n.is_leaf else n.split_gain,
                Cover=n.hessian_sum,
            )
            for n in self.get_node_list()
        ]
        return pd.DataFrame.from_records(vals).sort_values("Node")

    # Make picklable through the JSON dump, like save_model.
    def __getstate__(self) -> Dict[Any, Any]:
        res = {k: v for k, v in self.__dict__.items() if k != "root"}
        res["__tree_json__"] = None if self.root is None else node_to_dict(self.root)
        return res

    def __setstate__(self, d: Dict[Any, Any]) -> None:
        tree = d.pop("__tree_json__")
        d["root"] = None if tree is None else node_from_dict(tree)
        self.__dict__ = d

    def get_params(self, deep=True) -> Dict[str, Any]:
        """
        Get parameters for this tree.

        Parameters
        ----------
        deep : bool, default=True
            Currently ignored, exists for scikit-learn compatibility.

        Returns
        -------
        params : dict
            Parameter names mapped to their values.
        """
        args = inspect.getfullargspec(RegularizedTree).kwonlyargs
        return {param: getattr(self, param) for param in args}

    def set_params(self, **params: Any) -> Self:
        """
        Set parameters for this tree. The trained tree, if any, is discarded.

        Returns
        -------
        self : object
            Returns self.
        """
        old_params = self.get_params()
        old_params.update(params)
        RegularizedTree.__init__(self, **old_params)
        return self


def _validate_tree_params(max_depth, min_child_weight, gamma, reg_lambda, eta):
    if isinstance(max_depth, bool) or not isinstance(max_depth, (int, np.integer)):
        raise ValueError(f"max_depth must be an integer, got {max_depth!r}.")
    if max_depth < 0:
        raise ValueError(f"max_depth must be >= 0, got {max_depth}.")
    for name, value in (
        ("min_child_weight", min_child_weight),
        ("gamma", gamma),
        ("reg_lambda", reg_lambda),
    ):
        if not value >= 0:
            raise ValueError(f"{name} must be >= 0, got {value}.")
    if not 0 < eta <= 1:
        raise ValueError(f"eta must be in (0, 1], got {eta}.")
