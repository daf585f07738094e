from typing import List, Sequence, Tuple

import numpy as np


def type_df(df):
    library_name = type(df).__module__.split(".")[0]
    if type(df).__name__ == "DataFrame":
        if library_name == "pandas":
            return "pandas_df"
    elif library_name == "numpy":
        return "numpy"
    return ""


def type_series(y):
    library_name = type(y).__module__.split(".")[0]
    if type(y).__name__ == "Series":
        if library_name == "pandas":
            return "pandas_series"
    elif library_name == "numpy":
        return "numpy"
    return ""


def convert_input_frame(X) -> Tuple[List[str], np.ndarray]:
    """Convert training or prediction data to a 2D float array.

    Returns:
        Tuple[List[str], np.ndarray]: Return column names and the row-major data.
    """
    if type_df(X) == "pandas_df":
        X_ = X.to_numpy()
        features_ = [str(c) for c in X.columns]
    elif type_df(X) == "numpy":
        X_ = X
        features_ = None
    elif isinstance(X, Sequence) and not isinstance(X, (str, bytes)):
        widths = {len(row) for row in X}
        if len(widths) > 1:
            raise ValueError(
                f"All feature vectors must have the same width, found widths {sorted(widths)}."
            )
        X_ = np.array(
            [[np.nan if v is None else v for v in row] for row in X], dtype="float64"
        )
        features_ = None
    else:
        raise ValueError(f"Object type {type(X)} is not supported.")

    if X_.ndim == 1 and X_.shape[0] == 0:
        X_ = X_.reshape((0, 0))
    if X_.ndim != 2:
        raise ValueError(f"Expected 2D data, got an array with shape {X_.shape}.")

    if not np.issubdtype(X_.dtype, "float64"):
        X_ = X_.astype(dtype="float64", copy=False)

    if features_ is None:
        features_ = list(map(str, range(X_.shape[1])))

    return features_, X_


def convert_input_array(x, is_target=False) -> Tuple[np.ndarray, list]:
    """Convert a 1D input to a float array.

    For targets, the distinct values are mapped onto ``0.0, 1.0, ...`` in
    sorted order and returned as ``classes_``.
    """
    classes_ = []

    if type_series(x) == "pandas_series":
        x_ = x.to_numpy()
    elif type_series(x) == "numpy":
        x_ = x
    else:
        x_ = np.asarray(list(x))

    if is_target:
        classes_, x_index = np.unique(x_, return_inverse=True)
        x_ = x_index.astype("float64")
        classes_ = classes_.tolist()

    if not np.issubdtype(x_.dtype, "float64"):
        x_ = x_.astype(dtype="float64", copy=False)

    return x_.ravel(), classes_


def validate_binary_labels(labels) -> np.ndarray:
    """Return ``labels`` as a float array, checking every value is 0 or 1."""
    y_, _ = convert_input_array(labels)
    invalid = ~np.isin(y_, (0.0, 1.0))
    if invalid.any():
        raise ValueError(
            f"Labels must be 0 or 1, found {np.unique(y_[invalid]).tolist()}."
        )
    return y_


def transform_input_vector(x, n_features: int) -> np.ndarray:
    """Convert a single feature vector, checking its width against the model."""
    if type_series(x) == "pandas_series":
        x_ = x.to_numpy(dtype="float64")
    else:
        x_ = np.array(
            [np.nan if v is None else v for v in np.ravel(np.asarray(x, dtype=object))],
            dtype="float64",
        )
    if x_.shape[0] != n_features:
        raise ValueError(
            f"Expected a feature vector of width {n_features}, got {x_.shape[0]}."
        )
    return x_
