"""
Numeric inputs for diagnostic plots: relative log expression (RLE),
principal components and volcano coordinates.
"""

import numpy as np
import pandas as pd

from .dgelist import get_counts, get_names
from .errors import InvalidInput
from .results import p_adjust


def _log_expression(x, is_log):
    genes, samples = get_names(x)
    values = get_counts(x)
    if values.ndim != 2 or values.size == 0:
        raise InvalidInput("expression matrix must be a non-empty genes x samples matrix")
    if not is_log:
        values = np.log2(values + 1)
    return values, genes, samples


def rle(x, is_log=False):
    """Relative log expression: each gene minus its median over samples.

    Boxplots of the columns should be centred on zero with similar spread
    when samples are well normalized.

    Parameters
    ----------
    x : array-like, DataFrame or DGEList
        Counts, or log2 values when *is_log* is True (e.g. the
        ``normalized`` matrix of an RUVResult).

    Returns
    -------
    DataFrame (genes x samples), or ndarray for ndarray input.
    """
    values, genes, samples = _log_expression(x, is_log)
    out = values - np.median(values, axis=1, keepdims=True)
    if genes is None:
        return out
    return pd.DataFrame(out, index=genes, columns=samples)


def pca(x, n_components=2, is_log=False):
    """Principal components of the samples.

    Computed from the SVD of the gene-centred log matrix, as for the
    sample scatter plots of RUV diagnostics.

    Returns
    -------
    dict with ``scores`` (DataFrame samples x n_components, columns PC1...)
    and ``variance_explained`` (percent per component).
    """
    values, genes, samples = _log_expression(x, is_log)
    nsamples = values.shape[1]
    if not 1 <= n_components <= nsamples:
        raise InvalidInput(f"n_components must be between 1 and {nsamples}")
    if samples is None:
        samples = [f"Sample{j + 1}" for j in range(nsamples)]

    centred = values - values.mean(axis=1, keepdims=True)
    u, d, vt = np.linalg.svd(centred, full_matrices=False)
    total = np.sum(d ** 2)
    explained = 100 * d ** 2 / total if total > 0 else np.zeros_like(d)

    ncomp = min(n_components, len(d))
    scores = vt[:ncomp].T * d[:ncomp]
    cols = [f"PC{i + 1}" for i in range(ncomp)]
    return {
        'scores': pd.DataFrame(scores, index=samples, columns=cols),
        'variance_explained': pd.Series(explained[:ncomp], index=cols),
    }


def volcano_table(obj, adjust_method='BH'):
    """logFC, -log10 p-value and adjusted p-value for each gene."""
    tab = obj['table'] if isinstance(obj, dict) else obj
    p = tab['PValue'].values
    return pd.DataFrame({
        'logFC': tab['logFC'].values,
        'neg_log10_p': -np.log10(np.maximum(p, 1e-300)),
        'FDR': p_adjust(p, adjust_method),
    }, index=tab.index)
