"""
Between-sample normalization for ruvPython.

Global scaling (upper-quartile, median), full quantile normalization,
and edgeR-style normalization factors (upperquartile, RLE) used as GLM
offsets.
"""

import numpy as np
import pandas as pd
import warnings

from .dgelist import get_counts
from .errors import InvalidInput


def between_lane_normalization(y, which='upper', round=True):
    """Normalize counts between samples.

    For ``'upper'`` and ``'median'`` each sample is rescaled so that the
    log of its quantile equals the mean log quantile over all samples.
    ``'full'`` replaces every column by the mean of the sorted columns
    (quantile normalization, ties broken by input order).

    Parameters
    ----------
    y : array-like, DataFrame or DGEList
        Count matrix (genes x samples).
    which : str
        One of 'upper', 'median', 'full'.
    round : bool
        Round the normalized values to integers.

    Returns
    -------
    Same type as *y* holding normalized counts. A DGEList is copied with
    new counts and library sizes.
    """
    if which not in ('upper', 'median', 'full'):
        raise ValueError("which must be one of ('upper', 'median', 'full')")

    x = get_counts(y)
    if x.ndim != 2 or x.size == 0:
        raise InvalidInput("cannot normalize an empty count matrix")

    if which == 'full':
        out = _quantile_normalize(x)
    else:
        p = 0.75 if which == 'upper' else 0.5
        q = np.quantile(x, p, axis=0)
        if np.min(q) <= 0:
            zero = np.where(q <= 0)[0].tolist()
            raise InvalidInput(
                f"{'upper quartile' if which == 'upper' else 'median'} is zero "
                f"for sample column(s) {zero}; filter low counts first")
        scale = q / np.exp(np.mean(np.log(q)))
        out = x / scale[None, :]

    if round:
        out = np.round(out)

    if isinstance(y, dict) and 'counts' in y:
        res = y._copy()
        res['counts'] = out
        res['samples']['lib.size'] = out.sum(axis=0)
        res['samples']['norm.factors'] = 1.0
        return res
    if isinstance(y, pd.DataFrame):
        return pd.DataFrame(out, index=y.index, columns=y.columns)
    return out


def _quantile_normalize(x):
    """Quantile normalization by rank averaging."""
    order = np.argsort(x, axis=0, kind='mergesort')
    ref = np.mean(np.take_along_axis(x, order, axis=0), axis=1)
    out = np.empty_like(x)
    for j in range(x.shape[1]):
        out[order[:, j], j] = ref
    return out


def calc_norm_factors(y, lib_size=None, method='upperquartile', p=0.75):
    """Calculate normalization factors for a count matrix.

    Parameters
    ----------
    y : array-like or DGEList
        Count matrix (genes x samples), or DGEList object.
    lib_size : array-like, optional
        Library sizes. Defaults to column sums.
    method : str
        One of 'upperquartile', 'RLE', 'none'.
    p : float
        Quantile for the upper-quartile method.

    Returns
    -------
    DGEList (if input is DGEList) or ndarray of normalization factors.
    """
    if isinstance(y, dict) and 'counts' in y:
        out = y._copy()
        out['samples']['norm.factors'] = _calc_norm_factors_default(
            out['counts'], lib_size=out['samples']['lib.size'].values,
            method=method, p=p)
        return out

    return _calc_norm_factors_default(get_counts(y), lib_size=lib_size,
                                      method=method, p=p)


def _calc_norm_factors_default(x, lib_size=None, method='upperquartile', p=0.75):
    """Core normalization factor calculation for count matrices."""
    x = np.asarray(x, dtype=np.float64)
    if np.any(np.isnan(x)):
        raise InvalidInput("NA counts not permitted")
    nsamples = x.shape[1]

    if lib_size is None:
        lib_size = x.sum(axis=0)
    lib_size = np.asarray(lib_size, dtype=np.float64)
    if len(lib_size) != nsamples:
        raise InvalidInput("length of lib_size doesn't match number of samples")

    valid_methods = ('upperquartile', 'RLE', 'none')
    if method not in valid_methods:
        raise ValueError(f"method must be one of {valid_methods}")

    # Remove all-zero rows
    x = x[np.sum(x > 0, axis=1) > 0]

    if x.shape[0] == 0 or nsamples == 1:
        method = 'none'

    if method == 'upperquartile':
        f = _calc_factor_quantile(x, lib_size, p)
    elif method == 'RLE':
        f = _calc_factor_rle(x) / lib_size
    else:
        f = np.ones(nsamples)

    # Normalize so factors multiply to one
    return f / np.exp(np.mean(np.log(f)))


def _calc_factor_rle(data):
    """Median ratio to the geometric mean gene (Anders and Huber, 2010)."""
    with np.errstate(divide='ignore'):
        gm = np.exp(np.mean(np.log(data), axis=1))
    pos = gm > 0
    return np.median(data[pos] / gm[pos, None], axis=0)


def _calc_factor_quantile(data, lib_size, p=0.75):
    """Upper-quartile factors."""
    f = np.quantile(data / lib_size[None, :], p, axis=0)
    if np.min(f) == 0:
        warnings.warn("One or more quantiles are zero")
    return f
