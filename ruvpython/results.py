"""
Results processing for ruvPython.

Ranked tables of differentially expressed genes, significance calls,
empirical negative controls and positive-control recovery.
"""

import numpy as np
import pandas as pd
from statsmodels.stats.multitest import multipletests

from .errors import InsufficientControls, InvalidInput

_METHOD_MAP = {
    'BH': 'fdr_bh', 'BY': 'fdr_by', 'fdr': 'fdr_bh',
    'holm': 'holm', 'hochberg': 'simes-hochberg',
    'hommel': 'hommel', 'bonferroni': 'bonferroni',
}
_FWER = ('holm', 'hochberg', 'hommel', 'bonferroni')


def p_adjust(pvalues, method='BH'):
    """Adjust p-values for multiple testing; NaN p-values stay NaN."""
    pvalues = np.asarray(pvalues, dtype=np.float64)
    if method == 'none':
        return pvalues.copy()
    if method not in _METHOD_MAP:
        raise ValueError(f"adjust_method must be one of {list(_METHOD_MAP) + ['none']}")

    adj = np.full_like(pvalues, np.nan)
    valid = ~np.isnan(pvalues)
    if valid.any():
        _, adj[valid], _, _ = multipletests(pvalues[valid], method=_METHOD_MAP[method])
    return adj


def _table(obj):
    if isinstance(obj, pd.DataFrame):
        return obj
    if isinstance(obj, dict) and obj.get('table') is not None:
        return obj['table']
    raise InvalidInput("Need to run glm_lrt first")


def top_tags(obj, n=10, adjust_method='BH', sort_by='PValue', p_value=1.0):
    """Table of the top differentially expressed genes.

    Parameters
    ----------
    obj : DGELRT or DataFrame
        Result of glm_lrt(), or its table.
    n : int or None
        Number of genes to return; None returns all.
    adjust_method : str
        Multiple testing adjustment method.
    sort_by : str
        'PValue', 'logFC' or 'none'. P-value ties are broken by larger
        absolute logFC, then by input order.
    p_value : float
        Cutoff on adjusted p-values.

    Returns
    -------
    DataFrame indexed by gene id with an FDR (or FWER) column.
    """
    tab = _table(obj).copy()
    if len(tab) == 0:
        raise InvalidInput("No rows to output")
    if adjust_method == 'fdr':
        adjust_method = 'BH'

    raw = tab['PValue'].values
    adj = p_adjust(raw, adjust_method)
    if adjust_method != 'none':
        tab['FWER' if adjust_method in _FWER else 'FDR'] = adj

    alfc = np.abs(tab['logFC'].values) if 'logFC' in tab.columns else np.zeros(len(tab))
    if sort_by == 'PValue':
        o = np.lexsort((-np.nan_to_num(alfc), raw))
    elif sort_by == 'logFC':
        o = np.argsort(-np.nan_to_num(alfc), kind='mergesort')
    elif sort_by == 'none':
        o = np.arange(len(tab))
    else:
        raise ValueError("sort_by must be one of 'PValue', 'logFC', 'none'")

    tab = tab.iloc[o]
    if p_value < 1:
        tab = tab[adj[o] <= p_value]
    if n is not None:
        tab = tab.iloc[:n]
    return tab


def decide_tests(obj, adjust_method='BH', p_value=0.05, lfc=0):
    """Classify genes as up (1), down (-1) or not significant (0).

    Returns
    -------
    Series of int indexed by gene id.
    """
    tab = _table(obj)
    adj = p_adjust(tab['PValue'].values, adjust_method)

    is_de = (adj < p_value).astype(int)
    logFC = tab['logFC'].values
    is_de[(is_de == 1) & (logFC < 0)] = -1
    is_de[np.abs(logFC) < lfc] = 0
    return pd.Series(is_de, index=tab.index, name='call')


def empirical_controls(obj, n_top=None, fdr=None):
    """Genes least affected by the condition in a first-pass fit.

    Genes are ranked by p-value; the *n_top* most significant (or, with
    *fdr*, those with BH-adjusted p-value below it) are excluded and the
    rest returned, in ranked order, as negative controls.

    Raises
    ------
    InsufficientControls
        When the rule excludes every gene.
    """
    if (n_top is None) == (fdr is None):
        raise ValueError("give exactly one of n_top or fdr")
    ranked = top_tags(obj, n=None)
    if fdr is not None:
        selected = ranked['FDR'].values < fdr
    else:
        if n_top < 0:
            raise InvalidInput("n_top must be non-negative")
        if n_top >= len(ranked):
            raise InsufficientControls(
                f"n_top={n_top} excludes all {len(ranked)} genes; "
                "lower n_top to leave empirical controls")
        selected = np.arange(len(ranked)) < n_top
    if selected.all():
        raise InsufficientControls(f"every gene has FDR below {fdr}; no empirical controls remain")
    return pd.Index(ranked.index[~selected], name='GeneID')


def positive_control_recovery(obj, positive, p_value=0.05, adjust_method='BH'):
    """How many positive control genes a fit detects.

    Parameters
    ----------
    obj : DGELRT or DataFrame
        Test results.
    positive : Series or sequence
        Positive controls: a Series mapping gene id to expected direction
        (+1 up, -1 down) as returned by ``read_control_genes``, or plain
        gene ids when direction is not known.
    p_value : float
        Adjusted p-value cutoff.

    Returns
    -------
    dict with ``n_controls`` (controls present in the table), ``n_detected``,
    ``n_concordant`` (detected in the expected direction, or None) and
    ``detected`` (gene ids).
    """
    calls = decide_tests(obj, adjust_method=adjust_method, p_value=p_value)
    if isinstance(positive, pd.Series):
        direction = positive[positive.index.isin(calls.index)]
        ids = list(direction.index)
    else:
        direction = None
        ids = [g for g in positive if g in calls.index]

    hits = calls.loc[ids]
    detected = list(hits.index[hits != 0])
    concordant = None
    if direction is not None:
        concordant = int(np.sum(hits.values == np.sign(direction.values)))
    return {
        'n_controls': len(ids),
        'n_detected': len(detected),
        'n_concordant': concordant,
        'detected': detected,
    }
