"""
Gene filtering for ruvPython.

Removes low-count genes before normalization.
"""

import numpy as np

from .dgelist import get_counts
from .errors import InvalidInput, InvalidParameter


def filter_by_counts(y, min_count=10, min_samples=5):
    """Flag genes with enough well-expressed samples.

    A gene is kept when the number of samples with a count strictly
    greater than *min_count* is strictly greater than *min_samples*.
    The filter is idempotent: re-filtering kept genes keeps them all.

    Parameters
    ----------
    y : array-like, DataFrame or DGEList
        Count matrix (genes x samples).
    min_count : float
        Count a sample must exceed.
    min_samples : int
        Number of samples that must be exceeded.

    Returns
    -------
    ndarray of bool, True for genes to keep.
    """
    counts = get_counts(y)
    if counts.ndim == 1:
        counts = counts.reshape(-1, 1)
    if counts.size == 0:
        raise InvalidInput("cannot filter an empty count matrix")
    if min_count < 0 or min_samples < 0:
        raise InvalidParameter(
            f"thresholds must be non-negative (min_count={min_count}, "
            f"min_samples={min_samples})")

    return np.sum(counts > min_count, axis=1) > min_samples


def filter_genes(y, min_count=10, min_samples=5, verbose=False):
    """Drop low-count genes.

    Same rule as :func:`filter_by_counts`; returns the subset of *y*
    (DGEList, DataFrame or ndarray). A result with zero genes is valid.
    """
    keep = filter_by_counts(y, min_count=min_count, min_samples=min_samples)
    if verbose:
        print(f"Keeping {int(keep.sum())} of {len(keep)} genes")

    if isinstance(y, dict) and 'counts' in y:
        return y[keep, None]
    if hasattr(y, 'iloc'):
        return y.iloc[keep]
    return np.asarray(y)[keep]
