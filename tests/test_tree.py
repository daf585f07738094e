from __future__ import annotations

from typing import Tuple

import numpy as np
import pandas as pd
import pytest
from boostgate import (
    EmptyDatasetError,
    ModelNotTrainedError,
    RegularizedTree,
    TreeNode,
)


@pytest.fixture
def X_y() -> Tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(7)
    X = rng.normal(size=(80, 3))
    y = ((X[:, 0] > 0.2) ^ (X[:, 1] < -0.5)).astype(int)
    return X, y


def leaf_for(tree: RegularizedTree, x) -> TreeNode:
    node = tree.root
    while not node.is_leaf:
        if x[node.split_feature] <= node.split_value:
            node = node.left_child
        else:
            node = node.right_child
    return node


def internal_nodes(tree: RegularizedTree) -> int:
    return sum(not n.is_leaf for n in tree.get_node_list())


def test_single_split_scenario():
    tree = RegularizedTree(
        max_depth=1, min_child_weight=0.0, gamma=0.0, reg_lambda=1.0, eta=0.3
    )
    tree.train([[0], [1], [2], [3]], [0, 0, 1, 1])

    root = tree.root
    assert not root.is_leaf
    assert root.split_feature == 0
    assert root.split_value == 1.5
    assert root.gain == pytest.approx(2 / 3)
    assert root.left_child.is_leaf and root.right_child.is_leaf
    assert root.left_child.prediction == pytest.approx(-0.2)
    assert root.right_child.prediction == pytest.approx(0.2)
    assert tree.number_of_nodes == 3


def test_predict_follows_threshold():
    tree = RegularizedTree(max_depth=1, min_child_weight=0.0)
    tree.train([[0], [1], [2], [3]], [0, 0, 1, 1])
    assert tree.predict([1.5]) < 0
    assert tree.predict([1.5000001]) > 0
    assert tree.predict(np.array([-100.0])) == tree.predict([0])


def test_leaf_weights_match_routed_statistics(X_y):
    X, y = X_y
    tree = RegularizedTree(max_depth=3, min_child_weight=0.5, reg_lambda=2.0, eta=0.4)
    tree.train(X, y)

    routed = {}
    for x, label in zip(X, y):
        leaf = leaf_for(tree, x)
        g, h, n = routed.get(id(leaf), (0.0, 0.0, 0))
        routed[id(leaf)] = (g + 0.5 - label, h + 0.25, n + 1)

    leaves = tree.leaves()
    assert len(leaves) > 1
    for leaf in leaves:
        g, h, n = routed[id(leaf)]
        assert leaf.count == n
        assert leaf.prediction == pytest.approx(-0.4 * g / (h + 2.0))


@pytest.mark.parametrize("max_depth", [0, 1, 2, 3, 5])
def test_depth_bound(X_y, max_depth):
    X, y = X_y
    tree = RegularizedTree(max_depth=max_depth, min_child_weight=0.0)
    tree.train(X, y)
    assert tree.depth <= max_depth
    if max_depth == 0:
        assert tree.root.is_leaf
        assert tree.number_of_nodes == 1


def test_gamma_never_adds_splits(X_y):
    X, y = X_y
    counts = []
    for gamma in [0.0, 0.001, 0.01, 0.05, 0.1, 0.5, 2.0]:
        tree = RegularizedTree(max_depth=4, min_child_weight=0.0, gamma=gamma)
        tree.train(X, y)
        counts.append(internal_nodes(tree))
    assert counts == sorted(counts, reverse=True)
    assert counts[0] > counts[-1]


def test_ties_keep_first_candidate():
    tree = RegularizedTree(max_depth=1, min_child_weight=0.0)
    tree.train([[0, 0], [1, 1], [2, 2], [3, 3]], [0, 0, 1, 1])
    assert tree.root.split_feature == 0
    assert tree.root.split_value == 1.5


def test_min_child_weight_blocks_splits():
    tree = RegularizedTree(max_depth=3, min_child_weight=1.0)
    tree.train([[0], [1], [2], [3]], [0, 0, 1, 1])
    # Every side of every candidate holds at most 3 * 0.25 of hessian.
    assert tree.root.is_leaf
    assert tree.root.prediction == 0
    assert tree.predict([10]) == 0


def test_single_leaf_tree_predicts_its_weight():
    tree = RegularizedTree(max_depth=4, min_child_weight=0.0, eta=0.5)
    with pytest.warns(UserWarning, match="Only label 1"):
        tree.train([[1.0], [1.0], [1.0]], [1, 1, 1])
    # Constant feature, no candidates: G = -1.5, H = 0.75.
    assert tree.root.is_leaf
    assert tree.predict([42.0]) == pytest.approx(0.5 * 1.5 / 1.75)


def test_nodes_are_leaf_or_split(X_y):
    X, y = X_y
    tree = RegularizedTree(max_depth=4, min_child_weight=0.0)
    tree.train(X, y)
    for n in tree.get_node_list():
        if n.is_leaf:
            assert n.split_gain == 0.0
        else:
            assert n.split_gain > 0
            assert n.left_child != n.right_child


def test_retrain_replaces_tree():
    tree = RegularizedTree(max_depth=1, min_child_weight=0.0)
    tree.train([[0], [1], [2], [3]], [0, 0, 1, 1])
    first_root = tree.root
    tree.train([[0], [1], [2], [3]], [1, 1, 0, 0])
    assert tree.root is not first_root
    assert tree.predict([0]) > 0


def test_predict_before_train():
    tree = RegularizedTree()
    with pytest.raises(ModelNotTrainedError):
        tree.predict([0.0])
    with pytest.raises(ModelNotTrainedError):
        tree.predict_batch([[0.0]])


@pytest.mark.parametrize(
    "features,labels",
    [
        ([], []),
        ([[0.0], [1.0]], [0]),
        (np.empty((0, 3)), np.empty(0)),
    ],
)
def test_train_rejects_empty_or_mismatched(features, labels):
    with pytest.raises(EmptyDatasetError):
        RegularizedTree().train(features, labels)


def test_train_rejects_bad_labels_and_missing_values():
    with pytest.raises(ValueError, match="Labels must be 0 or 1"):
        RegularizedTree().train([[0.0], [1.0]], [0, 2])
    with pytest.raises(ValueError, match="impute"):
        RegularizedTree().train([[0.0], [np.nan]], [0, 1])
    with pytest.raises(ValueError, match="same width"):
        RegularizedTree().train([[0.0], [1.0, 2.0]], [0, 1])


def test_predict_rejects_wrong_width():
    tree = RegularizedTree(min_child_weight=0.0)
    tree.train([[0, 1], [1, 0]], [0, 1])
    with pytest.raises(ValueError, match="width 2"):
        tree.predict([0.0])


@pytest.mark.parametrize(
    "params",
    [
        {"max_depth": -1},
        {"max_depth": 1.5},
        {"min_child_weight": -0.1},
        {"gamma": -1},
        {"reg_lambda": -1},
        {"eta": 0},
        {"eta": 1.5},
    ],
)
def test_invalid_params(params):
    with pytest.raises(ValueError):
        RegularizedTree(**params)


def test_zero_params_are_kept():
    tree = RegularizedTree(max_depth=0, min_child_weight=0, gamma=0, reg_lambda=0)
    assert tree.get_params() == {
        "max_depth": 0,
        "min_child_weight": 0,
        "gamma": 0,
        "reg_lambda": 0,
        "eta": 0.3,
    }


def test_set_params_resets_tree():
    tree = RegularizedTree(max_depth=1, min_child_weight=0.0)
    tree.train([[0], [1], [2], [3]], [0, 0, 1, 1])
    tree.set_params(max_depth=0)
    assert tree.max_depth == 0
    assert tree.min_child_weight == 0.0
    assert tree.root is None


def test_predict_batch_and_feature_names():
    X = pd.DataFrame({"a": [0.0, 1.0, 2.0, 3.0], "b": [5.0, 5.0, 5.0, 5.0]})
    y = pd.Series([0, 0, 1, 1])
    tree = RegularizedTree(max_depth=2, min_child_weight=0.0)
    tree.train(X, y)

    margins = tree.predict_batch(X)
    assert margins.shape == (4,)
    assert np.allclose(margins, [tree.predict(row) for row in X.to_numpy()])
    assert tree.feature_names_in_ == ["a", "b"]
    assert tree.calculate_feature_importance("Weight", normalize=False) == {"a": 1.0}
    assert np.allclose(tree.feature_importances_, [1.0, 0.0])

    with pytest.raises(ValueError, match="Columns mismatch"):
        tree.predict_batch(X.rename(columns={"a": "c"}))


def test_feature_importance_methods(X_y):
    X, y = X_y
    tree = RegularizedTree(max_depth=3, min_child_weight=0.0)
    tree.train(X, y)
    for method in ["Weight", "Gain", "Cover", "TotalGain", "TotalCover"]:
        importance = tree.calculate_feature_importance(method)
        assert sum(importance.values()) == pytest.approx(1.0)
    with pytest.raises(ValueError):
        tree.calculate_feature_importance("Shapley")


def test_text_dump_and_dataframe():
    tree = RegularizedTree(max_depth=1, min_child_weight=0.0)
    tree.train([[0], [1], [2], [3]], [0, 0, 1, 1])
    dump = tree.text_dump()
    assert len(dump) == 3
    assert dump[0].startswith("0:[0 <= 1.5] yes=1,no=2")
    assert dump[1].startswith("\t1:leaf=")

    df = tree.trees_to_dataframe()
    assert list(df["Feature"]) == ["0", "Leaf", "Leaf"]
    assert df["Cover"].iloc[0] == pytest.approx(1.0)
