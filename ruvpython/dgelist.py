"""
DGEList construction, validation, and accessors.

A DGEList holds the CountMatrix: non-negative counts (genes x samples)
with unique gene and sample identifiers, plus per-sample metadata.
"""

import numpy as np
import pandas as pd
import warnings

from .classes import DGEList
from .errors import InvalidInput


def _drop_empty_levels(x):
    """Drop unused levels from a categorical variable."""
    if hasattr(x, 'cat'):
        return x.cat.remove_unused_categories()
    return pd.Categorical(x)


def _unique_names(names, what):
    names = [str(n) for n in names]
    seen = set()
    for n in names:
        if n in seen:
            raise InvalidInput(f"{what} identifiers must be unique: '{n}' is repeated")
        seen.add(n)
    return names


def make_dgelist(counts, lib_size=None, norm_factors=None, samples=None,
                 group=None, genes=None, gene_names=None, sample_names=None):
    """Construct a DGEList from a count matrix.

    Parameters
    ----------
    counts : array-like or DataFrame
        Matrix of counts (genes x samples). A DataFrame supplies gene
        identifiers (index) and sample identifiers (columns).
    lib_size : array-like, optional
        Library sizes. Defaults to column sums.
    norm_factors : array-like, optional
        Normalization factors. Defaults to all ones.
    samples : DataFrame, optional
        Sample metadata, one row per sample. When indexed by sample id
        it is aligned to the count columns; otherwise taken in order.
    group : array-like, optional
        Group memberships.
    genes : DataFrame, optional
        Gene annotation, one row per gene.
    gene_names, sample_names : list of str, optional
        Identifiers for ndarray input.

    Returns
    -------
    DGEList
    """
    if isinstance(counts, pd.DataFrame):
        if gene_names is None:
            gene_names = list(counts.index)
        if sample_names is None:
            sample_names = list(counts.columns)
        non_numeric = [c for c, dt in counts.dtypes.items()
                       if not np.issubdtype(dt, np.number)]
        if non_numeric:
            raise InvalidInput(f"non-numeric count columns: {non_numeric}")
        counts = counts.values

    counts = np.asarray(counts, dtype=np.float64)
    if counts.ndim == 1:
        counts = counts.reshape(-1, 1)
    if counts.ndim != 2:
        raise InvalidInput("'counts' must be a genes x samples matrix")

    if counts.size == 0:
        raise InvalidInput("'counts' must contain at least one value")
    m = np.nanmin(counts)
    if np.isnan(m) or np.any(np.isnan(counts)):
        raise InvalidInput("NA counts not allowed")
    if m < 0:
        raise InvalidInput("Negative counts not allowed")
    if not np.isfinite(np.max(counts)):
        raise InvalidInput("Infinite counts not allowed")

    ntags, nlib = counts.shape

    if gene_names is None:
        gene_names = [str(i + 1) for i in range(ntags)]
    if sample_names is None:
        sample_names = [f"Sample{i + 1}" for i in range(nlib)]
    gene_names = _unique_names(gene_names, "Gene")
    sample_names = _unique_names(sample_names, "Sample")
    if len(gene_names) != ntags:
        raise InvalidInput("length of 'gene_names' must equal number of rows in 'counts'")
    if len(sample_names) != nlib:
        raise InvalidInput("length of 'sample_names' must equal number of columns in 'counts'")

    if lib_size is None:
        lib_size = counts.sum(axis=0)
        if np.min(lib_size) <= 0:
            warnings.warn("At least one library size is zero")
    else:
        lib_size = np.asarray(lib_size, dtype=np.float64)
        if len(lib_size) != nlib:
            raise InvalidInput("length of 'lib_size' must equal number of samples")
        if np.any(np.isnan(lib_size)) or np.any(lib_size < 0):
            raise InvalidInput("library sizes must be non-negative")

    if norm_factors is None:
        norm_factors = np.ones(nlib)
    else:
        norm_factors = np.asarray(norm_factors, dtype=np.float64)
        if len(norm_factors) != nlib:
            raise InvalidInput("Length of 'norm_factors' must equal number of columns in 'counts'")
        if np.any(np.isnan(norm_factors)) or np.any(norm_factors <= 0):
            raise InvalidInput("norm factors must be positive")

    if samples is not None:
        samples = pd.DataFrame(samples).copy()
        if len(samples) != nlib:
            raise InvalidInput("Number of rows in 'samples' must equal number of columns in 'counts'")
        index = [str(s) for s in samples.index]
        if set(index) == set(sample_names):
            samples.index = index
            samples = samples.loc[sample_names]
        if group is None and 'group' in samples.columns:
            group = samples['group'].values
        samples = samples.drop(columns=['group', 'lib.size', 'norm.factors'],
                               errors='ignore')

    if group is None:
        group = pd.Categorical([1] * nlib)
    else:
        if len(group) != nlib:
            raise InvalidInput("Length of 'group' must equal number of columns in 'counts'")
        group = _drop_empty_levels(pd.Categorical(group))

    sam = pd.DataFrame({
        'group': group,
        'lib.size': lib_size,
        'norm.factors': norm_factors,
    }, index=sample_names)
    if samples is not None:
        for col in samples.columns:
            sam[col] = samples[col].values

    if genes is None:
        genes = pd.DataFrame(index=gene_names)
    else:
        genes = pd.DataFrame(genes).copy()
        if len(genes) != ntags:
            raise InvalidInput("Counts and genes have different numbers of rows")
        genes.index = gene_names

    x = DGEList()
    x['counts'] = counts
    x['samples'] = sam
    x['genes'] = genes
    return x


def as_dgelist(y):
    """Return *y* as a DGEList, converting matrices and DataFrames."""
    if isinstance(y, DGEList):
        return y
    if isinstance(y, dict) and 'counts' in y:
        return valid_dgelist(DGEList(y))
    return make_dgelist(y)


def valid_dgelist(y):
    """Check and fill standard components of a DGEList."""
    if 'counts' not in y or y['counts'] is None:
        raise InvalidInput("No count matrix")
    y['counts'] = np.asarray(y['counts'], dtype=np.float64)
    ntags, nlib = y['counts'].shape
    if 'samples' not in y or y['samples'] is None:
        y['samples'] = pd.DataFrame(index=[f"Sample{i + 1}" for i in range(nlib)])
    if 'group' not in y['samples'].columns:
        y['samples']['group'] = pd.Categorical([1] * nlib)
    if 'lib.size' not in y['samples'].columns:
        y['samples']['lib.size'] = y['counts'].sum(axis=0)
    if 'norm.factors' not in y['samples'].columns:
        y['samples']['norm.factors'] = np.ones(nlib)
    if 'genes' not in y or y['genes'] is None:
        y['genes'] = pd.DataFrame(index=[str(i + 1) for i in range(ntags)])
    return y


def get_counts(y):
    """Counts of a DGEList, DataFrame or matrix as a float ndarray."""
    if isinstance(y, dict) and 'counts' in y:
        return np.asarray(y['counts'], dtype=np.float64)
    if isinstance(y, pd.DataFrame):
        return y.values.astype(np.float64)
    return np.asarray(y, dtype=np.float64)


def get_names(y):
    """Gene and sample identifiers of *y*, or (None, None) for bare matrices."""
    if isinstance(y, dict) and 'counts' in y:
        return list(y['genes'].index), list(y['samples'].index)
    if isinstance(y, pd.DataFrame):
        return [str(g) for g in y.index], [str(s) for s in y.columns]
    return None, None


def get_offset(y):
    """Log effective library sizes, log(lib.size * norm.factors)."""
    if y.get('offset') is not None:
        return y['offset']

    lib_size = y['samples']['lib.size'].values * y['samples']['norm.factors'].values
    if np.any(~np.isfinite(lib_size)) or np.any(lib_size <= 0):
        raise InvalidInput("library sizes must be positive finite values")
    return np.log(lib_size)
