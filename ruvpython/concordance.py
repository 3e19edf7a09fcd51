"""
Concordance-At-the-Top (CAT) for ruvPython.

Agreement between two rankings of genes, e.g. from two normalizations of
the same data or from RNA-seq and microarray measurements of the same
samples.
"""

import numpy as np
import pandas as pd

from .errors import InvalidInput, InvalidParameter


def rank_genes(scores, names=None):
    """Order genes by ascending score.

    Ties keep input order (stable sort), so the ranking is reproducible.

    Parameters
    ----------
    scores : Series or array-like
        Score per gene, lower is more significant (e.g. p-values).
    names : sequence of str, optional
        Gene ids when *scores* is not a Series.

    Returns
    -------
    Series indexed by gene id, sorted.
    """
    if isinstance(scores, pd.Series):
        s = scores.copy()
        if names is not None:
            s.index = [str(n) for n in names]
    else:
        scores = np.asarray(scores, dtype=np.float64)
        if names is None:
            names = [str(i + 1) for i in range(len(scores))]
        if len(names) != len(scores):
            raise InvalidInput("names and scores differ in length")
        s = pd.Series(scores, index=[str(n) for n in names])

    if len(s) == 0:
        raise InvalidInput("cannot rank an empty gene list")
    if s.index.has_duplicates:
        raise InvalidInput(f"gene '{s.index[s.index.duplicated()][0]}' is ranked twice")
    if s.isna().any():
        raise InvalidInput("scores contain NA values")
    return s.sort_values(kind='mergesort')


def cat(scores1, scores2, r_max=None, max_rank=None):
    """Concordance-at-the-top curve of two gene rankings.

    For each rank i the curve holds the fraction of the top i genes of the
    first ranking that are also among the top i of the second.

    Parameters
    ----------
    scores1, scores2 : Series
        Scores indexed by gene id (lower ranks first). The gene sets may
        differ, in which case the curve stays below one.
    r_max : int, optional
        Deepest rank. Must not exceed either list's length. Defaults to
        the shorter list's length, capped at *max_rank*.
    max_rank : int, optional
        Cap applied when *r_max* is not given.

    Returns
    -------
    Series named 'CAT' indexed by rank 1..r_max, values in [0, 1].
    """
    r1 = rank_genes(scores1)
    r2 = rank_genes(scores2)

    if r_max is None:
        r_max = min(len(r1), len(r2))
        if max_rank is not None:
            if max_rank < 1:
                raise InvalidParameter(f"max_rank must be positive, got {max_rank}")
            r_max = min(r_max, int(max_rank))
    else:
        if r_max < 1:
            raise InvalidParameter(f"r_max must be positive, got {r_max}")
        if r_max > len(r1) or r_max > len(r2):
            raise InvalidInput(
                f"r_max={r_max} exceeds list lengths ({len(r1)}, {len(r2)})")
    r_max = int(r_max)

    top1 = pd.Series(np.arange(r_max), index=r1.index[:r_max])
    top2 = pd.Series(np.arange(r_max), index=r2.index[:r_max])
    common = top1.index.intersection(top2.index)

    # A shared gene is in both top-i lists from rank max(pos1, pos2) + 1 on.
    enters = np.maximum(top1[common].values, top2[common].values)
    overlap = np.cumsum(np.bincount(enters, minlength=r_max))
    ranks = np.arange(1, r_max + 1)
    return pd.Series(overlap / ranks, index=pd.Index(ranks, name='rank'), name='CAT')


def cat_from_tables(table1, table2, r_max=None, max_rank=None, score='PValue'):
    """CAT curve of two result tables (DataFrames or DGELRT objects)."""
    scores = []
    for t in (table1, table2):
        if isinstance(t, dict):
            t = t['table']
        if score not in t.columns:
            raise InvalidInput(f"result table has no '{score}' column")
        scores.append(t[score])
    return cat(scores[0], scores[1], r_max=r_max, max_rank=max_rank)
