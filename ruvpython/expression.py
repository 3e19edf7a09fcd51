"""
Expression value computation for ruvPython: cpm and aveLogCPM.
"""

import numpy as np

from .errors import InvalidInput


def cpm(y, lib_size=None, log=False, prior_count=2, normalized_lib_sizes=True):
    """Counts per million.

    Parameters
    ----------
    y : array-like or DGEList
        Count matrix or DGEList.
    lib_size : array-like, optional
        Library sizes. Defaults to column sums (or, for a DGEList, the
        normalized library sizes).
    log : bool
        Return log2-CPM?
    prior_count : float
        Average count added to each observation before taking logs. It is
        scaled by library size so that larger libraries get larger priors.
    normalized_lib_sizes : bool
        Use normalized library sizes (for DGEList input).

    Returns
    -------
    ndarray of CPM values.
    """
    if isinstance(y, dict) and 'counts' in y:
        ls = y['samples']['lib.size'].values
        if normalized_lib_sizes:
            ls = ls * y['samples']['norm.factors'].values
        return _cpm_default(y['counts'], lib_size=ls, log=log,
                            prior_count=prior_count)

    return _cpm_default(y, lib_size=lib_size, log=log, prior_count=prior_count)


def _cpm_default(y, lib_size=None, log=False, prior_count=2):
    """Core CPM calculation."""
    y = np.asarray(y, dtype=np.float64)
    if y.ndim == 1:
        y = y.reshape(-1, 1)
    if np.any(np.isnan(y)):
        raise InvalidInput("NA counts not allowed")
    if y.size and np.min(y) < 0:
        raise InvalidInput("Negative counts not allowed")

    if lib_size is None:
        lib_size = y.sum(axis=0)
    lib_size = np.asarray(lib_size, dtype=np.float64)
    if np.any(lib_size <= 0):
        raise InvalidInput("library sizes should be greater than zero")

    if not log:
        return y / lib_size[np.newaxis, :] * 1e6

    # Prior scaled by library size; library sizes grow by twice the prior.
    prior = prior_count * lib_size / np.mean(lib_size)
    lib_aug = lib_size + 2 * prior
    return np.log2((y + prior[np.newaxis, :]) / lib_aug[np.newaxis, :] * 1e6)


def ave_log_cpm(y, lib_size=None, prior_count=2):
    """Average log2-CPM for each gene.

    Log of the mean CPM computed with a scaled prior count, so genes with
    zero counts get a finite, low value.
    """
    if isinstance(y, dict) and 'counts' in y:
        lib_size = y['samples']['lib.size'].values * y['samples']['norm.factors'].values
        y = y['counts']
    y = np.asarray(y, dtype=np.float64)
    if y.shape[0] == 0:
        return np.array([], dtype=np.float64)

    values = 2 ** cpm(y, lib_size=lib_size, log=True, prior_count=prior_count)
    return np.log2(values.mean(axis=1))
