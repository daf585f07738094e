"""Mean imputation of missing feature values."""

import numpy as np

from boostgate.utils import transform_input_vector


def column_means(training: np.ndarray) -> np.ndarray:
    """Mean of the observed (non-NaN) values of each column, 0 where none are."""
    observed = ~np.isnan(training)
    counts = observed.sum(axis=0)
    sums = np.where(observed, training, 0.0).sum(axis=0)
    return np.divide(sums, counts, out=np.zeros_like(sums), where=counts > 0)


class MeanImputer:
    """Fills missing values with the column means of previously seen vectors."""

    def __init__(self, missing: float = np.nan):
        """
        Parameters
        ----------
        missing : float, default=np.nan
            Value to consider as missing, in addition to None and NaN.
        """
        self.missing = missing

    def impute(self, vector, training: np.ndarray) -> np.ndarray:
        """
        Return a copy of ``vector`` with every missing position filled.

        Parameters
        ----------
        vector : array-like of shape (n_features,)
            Vector that may contain None or NaN.
        training : ndarray of shape (n_samples, n_columns)
            Previously recorded vectors, which are not modified. Positions
            beyond ``n_columns``, or columns without any observed value, are
            filled with 0.

        Returns
        -------
        vector : ndarray of shape (n_features,)
        """
        x_ = transform_input_vector(vector, len(vector))
        missing = np.isnan(x_)
        if not np.isnan(self.missing):
            missing |= x_ == self.missing
        if not missing.any():
            return x_

        training_ = np.where(training == self.missing, np.nan, training)
        fill = np.zeros(x_.shape[0])
        if training_.shape[0] > 0:
            width = min(training_.shape[1], x_.shape[0])
            fill[:width] = column_means(training_[:, :width])
        x_[missing] = fill[missing]
        return x_
