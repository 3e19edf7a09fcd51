"""
Negative binomial GLM differential expression for ruvPython.

A thin layer over statsmodels: one GLM per gene with log effective
library sizes as offsets, a common dispersion, and likelihood ratio tests
of design coefficients. Unwanted-variation factors enter simply as extra
design columns.
"""

import warnings

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy.stats import chi2

from .classes import DGEGLM, DGELRT
from .dgelist import as_dgelist, get_offset
from .errors import InvalidInput
from .expression import ave_log_cpm
from .utils import check_design, resolve_design


def estimate_common_disp(y, design, offset=None):
    """Common negative binomial dispersion by the method of moments.

    Each gene is fitted with a Poisson GLM; the dispersion is the average
    over genes of ``sum(((y - mu)^2 - mu) / mu^2) / df.residual``, floored
    at zero.

    Parameters
    ----------
    y : array-like, DataFrame or DGEList
        Count matrix (genes x samples).
    design : array-like, DataFrame or str
        Design matrix, or a formula evaluated against the sample metadata.
    offset : array-like, optional
        Log library sizes. Defaults to log(lib.size * norm.factors).

    Returns
    -------
    float
    """
    dge = as_dgelist(y)
    design, _ = resolve_design(design, dge)
    counts = dge['counts']
    check_design(design, counts.shape[1])
    if offset is None:
        offset = get_offset(dge)

    df = counts.shape[1] - design.shape[1]
    estimates = []
    for g in np.where(counts.sum(axis=1) > 0)[0]:
        res = sm.GLM(counts[g], design, family=sm.families.Poisson(),
                     offset=offset).fit()
        mu = res.fittedvalues
        estimates.append(np.sum(((counts[g] - mu) ** 2 - mu) / mu ** 2) / df)

    if not estimates:
        raise InvalidInput("no gene has a non-zero count")
    return max(float(np.mean(estimates)), 0.0)


def glm_fit(y, design, dispersion=None, offset=None, verbose=False):
    """Fit a negative binomial GLM to every gene.

    Parameters
    ----------
    y : array-like, DataFrame or DGEList
        Count matrix (genes x samples).
    design : array-like, DataFrame or str
        Design matrix, or a formula such as ``'~ W_1 + condition'``
        evaluated against ``y['samples']``.
    dispersion : float or array-like, optional
        NB dispersion, common or one per gene. Estimated with
        :func:`estimate_common_disp` when omitted. Zero means Poisson.
    offset : array-like, optional
        Log library sizes. Defaults to log(lib.size * norm.factors).
    verbose : bool
        Print the dispersion used.

    Returns
    -------
    DGEGLM
    """
    dge = as_dgelist(y)
    design, names = resolve_design(design, dge)
    counts = dge['counts']
    ngenes, nsamples = counts.shape
    check_design(design, nsamples)

    if offset is None:
        offset = get_offset(dge)
    offset = np.asarray(offset, dtype=np.float64)

    if dispersion is None:
        dispersion = estimate_common_disp(dge, design, offset=offset)
    disp = np.broadcast_to(np.asarray(dispersion, dtype=np.float64), (ngenes,)).copy()
    if np.any(disp < 0) or np.any(np.isnan(disp)):
        raise InvalidInput("dispersions must be non-negative")
    if verbose:
        print(f"Fitting {ngenes} genes, dispersion {np.mean(disp):.4g}")

    coefficients = np.full((ngenes, design.shape[1]), np.nan)
    deviance = np.zeros(ngenes)
    fitted = np.zeros((ngenes, nsamples))
    residuals = np.zeros((ngenes, nsamples))

    zero = counts.sum(axis=1) == 0
    if np.any(zero):
        warnings.warn(f"{int(zero.sum())} genes have zero counts in every sample; "
                      "they get no coefficients")
    for g in np.where(~zero)[0]:
        res = _fit_gene(counts[g], design, offset, disp[g])
        coefficients[g] = res.params
        deviance[g] = res.deviance
        fitted[g] = res.fittedvalues
        residuals[g] = res.resid_deviance

    fit = DGEGLM()
    fit['coefficients'] = coefficients
    fit['deviance'] = deviance
    fit['df.residual'] = np.full(ngenes, nsamples - design.shape[1])
    fit['fitted.values'] = fitted
    fit['residuals'] = residuals
    fit['counts'] = counts
    fit['design'] = design
    fit['design.names'] = names
    fit['offset'] = offset
    fit['dispersion'] = disp
    fit['genes'] = dge['genes']
    fit['samples'] = dge['samples']
    fit['AveLogCPM'] = ave_log_cpm(dge)
    return fit


def _fit_gene(counts, design, offset, dispersion):
    if dispersion > 0:
        family = sm.families.NegativeBinomial(alpha=dispersion)
    else:
        family = sm.families.Poisson()
    return sm.GLM(counts, design, family=family, offset=offset).fit()


def glm_lrt(glmfit, coef=None):
    """Likelihood ratio test for GLM coefficients.

    Parameters
    ----------
    glmfit : DGEGLM
        Fit from :func:`glm_fit`.
    coef : int, str or list, optional
        Coefficient(s) to test, by position or design column name.
        Default is the last column.

    Returns
    -------
    DGELRT with ``table`` (logFC, logCPM, LR, PValue) indexed by gene id.
    When several coefficients are tested jointly, LR and PValue cover all
    of them but logFC is the first one only; ``logFC.coef`` names it and
    ``comparison`` lists every tested column.
    """
    design = np.asarray(glmfit['design'], dtype=np.float64)
    names = list(glmfit.get('design.names') or [f"coef{i}" for i in range(design.shape[1])])
    nbeta = design.shape[1]
    if nbeta < 2:
        raise InvalidInput("Need at least two columns for design")

    if coef is None:
        coef = nbeta - 1
    if isinstance(coef, (int, np.integer, str)):
        coef = [coef]
    idx = []
    for c in coef:
        if isinstance(c, str):
            if c not in names:
                raise InvalidInput(f"Coefficient '{c}' not found in design columns: {names}")
            c = names.index(c)
        if not 0 <= int(c) < nbeta:
            raise InvalidInput(f"coefficient {c} out of range")
        if int(c) not in idx:
            idx.append(int(c))

    design0 = np.delete(design, idx, axis=1)
    counts = glmfit['counts']
    offset = glmfit['offset']
    disp = glmfit['dispersion']

    deviance0 = np.zeros(counts.shape[0])
    for g in np.where(counts.sum(axis=1) > 0)[0]:
        deviance0[g] = _fit_gene(counts[g], design0, offset, disp[g]).deviance

    LR = deviance0 - glmfit['deviance']
    pvalue = chi2.sf(np.maximum(LR, 0), df=len(idx))
    logFC = glmfit['coefficients'][:, idx[0]] / np.log(2)

    gene_ids = list(glmfit['genes'].index)
    table = pd.DataFrame({
        'logFC': logFC,
        'logCPM': glmfit['AveLogCPM'],
        'LR': LR,
        'PValue': pvalue,
    }, index=gene_ids)

    result = DGELRT(glmfit)
    result.pop('counts', None)
    result['table'] = table
    result['comparison'] = ', '.join(names[i] for i in idx)
    result['logFC.coef'] = names[idx[0]]
    result['df.test'] = len(idx)
    return result
