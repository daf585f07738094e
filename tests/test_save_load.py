import pickle
import warnings

import numpy as np
import pandas as pd
import pytest
from boostgate import ModelNotTrainedError, RegularizedTree, RegularizedTreeClassifier


@pytest.fixture
def X_y():
    rng = np.random.default_rng(11)
    X = pd.DataFrame(rng.normal(size=(50, 3)), columns=["x", "y", "z"])
    y = (X["x"] + 0.5 * X["z"] > 0).astype(int)
    return X, y


def test_save_load_tree(X_y, tmp_path):
    X, y = X_y
    tree = RegularizedTree(max_depth=3, min_child_weight=0.5, gamma=0.01)
    tree.train(X, y)
    preds = tree.predict_batch(X)

    f = tmp_path / "tree.json"
    tree.save_model(f)
    loaded = RegularizedTree.load_model(f)

    assert loaded.get_params() == tree.get_params()
    assert loaded.feature_names_in_ == ["x", "y", "z"]
    assert loaded.n_features_ == 3
    assert loaded.root == tree.root
    assert np.allclose(loaded.predict_batch(X), preds)
    assert loaded.text_dump() == tree.text_dump()


def test_save_load_numpy_params(tmp_path):
    tree = RegularizedTree(
        max_depth=np.int64(2), min_child_weight=np.float32(0.0), eta=np.float64(0.3)
    )
    tree.train([[0], [1], [2], [3]], [0, 0, 1, 1])

    f = tmp_path / "tree.json"
    tree.save_model(f)
    loaded = RegularizedTree.load_model(f)

    assert loaded.max_depth == 2
    assert type(loaded.max_depth) is int
    assert loaded.root == tree.root
    assert loaded.predict([3]) == pytest.approx(tree.predict([3]))


def test_failed_save_keeps_existing_file(tmp_path, monkeypatch):
    tree = RegularizedTree(max_depth=1, min_child_weight=0.0)
    tree.train([[0], [1], [2], [3]], [0, 0, 1, 1])
    f = tmp_path / "tree.json"
    tree.save_model(f)
    saved = f.read_text(encoding="utf-8")

    def broken_dump():
        raise TypeError("not serializable")

    monkeypatch.setattr(tree, "json_dump", broken_dump)
    with pytest.raises(TypeError):
        tree.save_model(f)
    assert f.read_text(encoding="utf-8") == saved
    assert RegularizedTree.load_model(f).root == tree.root


def test_untrained_round_trip():
    tree = RegularizedTree(max_depth=2)
    loaded = RegularizedTree.from_json(tree.json_dump())
    assert loaded.max_depth == 2
    with pytest.raises(ModelNotTrainedError):
        loaded.predict([0.0])


def test_pickle(X_y):
    X, y = X_y
    tree = RegularizedTree(max_depth=2, min_child_weight=0.0)
    tree.train(X, y)
    unpickled = pickle.loads(pickle.dumps(tree))
    assert unpickled.root == tree.root
    assert np.allclose(unpickled.predict_batch(X), tree.predict_batch(X))


def test_metadata(X_y):
    X, y = X_y
    tree = RegularizedTree()
    tree.train(X, y)
    tree.insert_metadata("owner", "triage")
    loaded = RegularizedTree.from_json(tree.json_dump())
    assert loaded.get_metadata("owner") == "triage"
    with pytest.raises(KeyError):
        loaded.get_metadata("missing")


def test_classifier_classes_survive_save_load(tmp_path):
    X = np.array([[0.0], [1.0], [2.0], [3.0]])
    model = RegularizedTreeClassifier(max_depth=1, min_child_weight=0.0)
    model.fit(X, ["cold", "cold", "warm", "warm"])

    f = tmp_path / "model.json"
    model.save_model(f)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        loaded = RegularizedTreeClassifier.load_model(f)
    assert loaded.classes_ == ["cold", "warm"]
    assert loaded.predict(X).tolist() == ["cold", "cold", "warm", "warm"]
