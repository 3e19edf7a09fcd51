"""
Remove Unwanted Variation (RUV) for ruvPython.

Factor-analysis estimates of technical nuisance factors from negative
control genes:

- ``ruv_s``: replicate differences of control genes (replicate samples).
- ``ruv_g``: control genes alone.
- ``ruv_r``: residuals of a first-pass GLM fit.

Each returns the factor loadings W (samples x k), to be used as
covariates in a differential expression model, and a log2 expression
matrix with the estimated nuisance component regressed out, for
diagnostics only.
"""

import numpy as np
import pandas as pd

from .classes import RUVResult
from .dgelist import get_counts, get_names
from .errors import (InvalidInput, InvalidParameter, InsufficientControls,
                     InsufficientReplicates, NumericalInstability)
from .grouping import replicate_pairs, validate_replicate_groups

# Largest acceptable condition number of a least-squares design.
_MAX_CONDITION = 1e10


def ruv_s(x, controls, groups, k=1, is_log=False):
    """Estimate unwanted variation from replicate samples.

    Parameters
    ----------
    x : array-like, DataFrame or DGEList
        Scale-normalized counts (genes x samples), e.g. the output of
        ``between_lane_normalization(which='upper')``, or log2 values when
        *is_log* is True.
    controls : sequence of str, bool mask or int positions
        Negative control genes. Identifiers absent from *x* are ignored.
    groups : array-like of int
        Replicate-group matrix (see ``make_groups``); ``-1`` marks an
        empty slot.
    k : int
        Number of factors.
    is_log : bool
        *x* is already on the log2 scale.

    Returns
    -------
    RUVResult with ``W`` (samples x k), ``normalized`` (genes x samples,
    log2), ``alpha`` (k x controls), ``singular_values``, ``controls``,
    ``pairs``.

    Notes
    -----
    Differences between replicates of one condition cancel the biological
    signal, so the leading singular directions of the control-gene
    difference matrix span the unwanted variation. Each sample's
    control-gene profile is then projected onto those directions by least
    squares to give its loadings.
    """
    logy, genes, samples = _log_matrix(x, is_log)
    k = _check_k(k)
    ctl = _resolve_controls(controls, genes, logy.shape[0])

    groups = validate_replicate_groups(groups, logy.shape[1])
    pairs = replicate_pairs(groups)
    if len(pairs) == 0:
        raise InsufficientReplicates(
            "no replicate set has two or more samples; ruv_s needs replicates")

    first, second = np.asarray(pairs).T
    yc = logy[ctl]
    diffs = yc[:, first] - yc[:, second]

    u, d, _ = _svd(diffs)
    _check_rank(k, d, diffs.shape)

    alpha = d[:k, None] * u[:, :k].T
    W = _least_squares(alpha.T, yc).T

    return _result(logy, W, genes, samples, ctl, 'RUVs', alpha=alpha,
                   singular_values=d, pairs=pairs)


def ruv_g(x, controls, k=1, is_log=False):
    """Estimate unwanted variation from negative control genes only.

    The factors are the leading left singular vectors of the
    gene-centred control-gene log matrix (samples x controls).

    Parameters
    ----------
    x : array-like, DataFrame or DGEList
        Scale-normalized counts (genes x samples).
    controls : sequence of str, bool mask or int positions
        Negative control genes.
    k : int
        Number of factors.
    is_log : bool
        *x* is already on the log2 scale.

    Returns
    -------
    RUVResult
    """
    logy, genes, samples = _log_matrix(x, is_log)
    k = _check_k(k)
    ctl = _resolve_controls(controls, genes, logy.shape[0])

    yc = logy[ctl]
    yc = yc - yc.mean(axis=1, keepdims=True)
    u, d, vt = _svd(yc.T)
    _check_rank(k, d, yc.shape)

    W = u[:, :k]
    alpha = d[:k, None] * vt[:k]
    return _result(logy, W, genes, samples, ctl, 'RUVg', alpha=alpha,
                   singular_values=d)


def ruv_r(x, controls, residuals, k=1, is_log=False):
    """Estimate unwanted variation from first-pass GLM residuals.

    Parameters
    ----------
    x : array-like, DataFrame or DGEList
        Scale-normalized counts (genes x samples).
    controls : sequence of str, bool mask or int positions
        Genes whose residuals are used; all genes is a common choice.
    residuals : array-like or DataFrame
        Residuals (genes x samples) of a GLM fit on the biological design,
        e.g. ``glm_fit(...)['residuals']``.
    k : int
        Number of factors.
    is_log : bool
        *x* is already on the log2 scale.

    Returns
    -------
    RUVResult
    """
    logy, genes, samples = _log_matrix(x, is_log)
    k = _check_k(k)
    ctl = _resolve_controls(controls, genes, logy.shape[0])

    res = np.asarray(residuals, dtype=np.float64)
    if res.shape != logy.shape:
        raise InvalidInput(
            f"residuals have shape {res.shape}, expected {logy.shape}")

    rc = res[ctl]
    u, d, vt = _svd(rc.T)
    _check_rank(k, d, rc.shape)

    W = u[:, :k]
    alpha = d[:k, None] * vt[:k]
    return _result(logy, W, genes, samples, ctl, 'RUVr', alpha=alpha,
                   singular_values=d)


def remove_unwanted(logy, W):
    """Subtract the part of *logy* explained by *W*.

    Each gene (row of *logy*) is regressed on an intercept and the
    columns of *W* by ordinary least squares; the fitted *W* component is
    removed. Factors are centred first, so gene means are unchanged.
    """
    logy = np.asarray(logy, dtype=np.float64)
    W = np.asarray(W, dtype=np.float64)
    if W.ndim == 1:
        W = W[:, None]
    if W.shape[0] != logy.shape[1]:
        raise InvalidInput("W must have one row per sample")

    Wc = W - W.mean(axis=0)
    X = np.column_stack([np.ones(W.shape[0]), Wc])
    beta = _least_squares(X, logy.T)
    return logy - (Wc @ beta[1:]).T


# ── helpers ──────────────────────────────────────────────────────────

def _log_matrix(x, is_log):
    """Log2 matrix plus gene and sample identifiers."""
    genes, samples = get_names(x)
    values = get_counts(x)
    if values.ndim != 2 or values.size == 0:
        raise InvalidInput("expression matrix must be a non-empty genes x samples matrix")
    if not np.all(np.isfinite(values)):
        raise InvalidInput("expression matrix contains non-finite values")
    if genes is None:
        genes = [str(i + 1) for i in range(values.shape[0])]
        samples = [f"Sample{j + 1}" for j in range(values.shape[1])]

    if is_log:
        return values, genes, samples
    if np.min(values) < 0:
        raise InvalidInput("Negative counts not allowed")
    return np.log2(values + 1), genes, samples


def _resolve_controls(controls, genes, ngenes):
    """Integer row positions of the control genes present in the matrix."""
    if controls is None:
        raise InsufficientControls("no negative control genes given")
    if isinstance(controls, (pd.Index, pd.Series)):
        controls = controls.values
    if isinstance(controls, (set, frozenset)):
        controls = sorted(controls, key=str)
    controls = np.atleast_1d(np.asarray(controls))

    if controls.dtype == bool:
        if len(controls) != ngenes:
            raise InvalidInput(
                f"control mask has length {len(controls)}, expected {ngenes}")
        idx = np.where(controls)[0]
    elif controls.dtype.kind in ('i', 'u'):
        if controls.size and (controls.min() < 0 or controls.max() >= ngenes):
            raise InvalidInput("control gene positions out of range")
        idx = np.unique(controls)
    else:
        wanted = set(str(c) for c in controls)
        idx = np.array([i for i, g in enumerate(genes) if g in wanted], dtype=int)

    if len(idx) == 0:
        raise InsufficientControls("none of the negative control genes is present")
    return idx


def _check_k(k):
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1:
        raise InvalidParameter(f"k must be a positive integer, got {k!r}")
    return int(k)


def _svd(m):
    if not np.all(np.isfinite(m)):
        raise NumericalInstability("matrix to decompose contains non-finite values")
    try:
        return np.linalg.svd(m, full_matrices=False)
    except np.linalg.LinAlgError as e:
        raise NumericalInstability(f"singular value decomposition failed: {e}") from e


def _rank(d, shape):
    """Numerical rank from singular values, with numpy's default tolerance."""
    if len(d) == 0 or d[0] == 0:
        return 0
    tol = d[0] * max(shape) * np.finfo(np.float64).eps
    return int(np.sum(d > tol))


def _check_rank(k, d, shape):
    rank = _rank(d, shape)
    if k > rank:
        raise InvalidParameter(
            f"k={k} exceeds the rank ({rank}) of the matrix the factors are "
            f"estimated from")


def _least_squares(a, b):
    """Solve min ||a @ x - b|| for x, refusing ill-conditioned designs."""
    cond = np.linalg.cond(a)
    if not np.isfinite(cond) or cond > _MAX_CONDITION:
        raise NumericalInstability(
            f"least-squares design is singular or ill-conditioned (condition number {cond:.3g})")
    sol, _, _, _ = np.linalg.lstsq(a, b, rcond=None)
    return sol


def _result(logy, W, genes, samples, ctl, method, **extra):
    if not np.all(np.isfinite(W)):
        raise NumericalInstability("estimated factors contain non-finite values")
    k = W.shape[1]
    W = pd.DataFrame(W, index=samples, columns=[f"W_{i + 1}" for i in range(k)])
    normalized = pd.DataFrame(remove_unwanted(logy, W.values),
                              index=genes, columns=samples)

    out = RUVResult()
    out['W'] = W
    out['normalized'] = normalized
    out['controls'] = [genes[i] for i in ctl]
    out['k'] = k
    out['method'] = method
    out.update(extra)
    return out
