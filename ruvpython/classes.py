"""
Core data classes for ruvPython.

Dict-like containers with attribute access for count data (DGEList),
factor-analysis results (RUVResult), GLM fits and tests (DGEGLM, DGELRT)
and per-dataset analysis runs (AnalysisConfig, AnalysisResult).
"""

import numpy as np
import pandas as pd
from copy import deepcopy

from .errors import InvalidInput


class _RUVBase(dict):
    """Base class providing dict-like access, subsetting, and display."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

    def __setattr__(self, name, value):
        self[name] = value

    def __delattr__(self, name):
        try:
            del self[name]
        except KeyError:
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

    @property
    def shape(self):
        if 'counts' in self:
            return self['counts'].shape
        return None

    def __repr__(self):
        cls = type(self).__name__
        components = list(self.keys())
        s = self.shape
        if s is not None:
            return f"{cls} with {s[0]} rows and {s[1]} columns\nComponents: {', '.join(components)}"
        return f"{cls}\nComponents: {', '.join(components)}"

    def _copy(self):
        return deepcopy(self)


def _get_rownames(obj):
    """Gene identifiers of a container, or None."""
    if 'genes' in obj and obj['genes'] is not None:
        return list(obj['genes'].index)
    if 'table' in obj and obj['table'] is not None:
        return list(obj['table'].index)
    return None


def _get_colnames(obj):
    """Sample identifiers of a container, or None."""
    if 'samples' in obj and obj['samples'] is not None:
        return list(obj['samples'].index)
    return None


def _subset_matrix_or_df(x, i=None, j=None):
    """Subset a matrix, DataFrame, or vector by row (i) and/or column (j)."""
    if x is None:
        return None
    if isinstance(x, (pd.DataFrame, pd.Series)):
        if isinstance(x, pd.Series):
            return x.iloc[i] if i is not None else x
        if i is not None and j is not None:
            return x.iloc[i, j]
        elif i is not None:
            return x.iloc[i]
        elif j is not None:
            return x.iloc[:, j]
        return x
    if isinstance(x, np.ndarray):
        if x.ndim == 2:
            if i is not None:
                x = x[i] if isinstance(i, slice) else x[np.atleast_1d(i)]
            if j is not None:
                x = x[:, j] if isinstance(j, slice) else x[:, np.atleast_1d(j)]
        elif x.ndim == 1 and i is not None:
            x = x[i] if isinstance(i, slice) else x[np.atleast_1d(i)]
        return x
    return x


def _resolve_index(idx, names):
    """Resolve index to integer array. Supports bool, int, str, slice."""
    if idx is None:
        return None
    if isinstance(idx, slice):
        return idx
    if isinstance(idx, (pd.Index, pd.Series)):
        idx = idx.values
    idx = np.atleast_1d(idx)
    if idx.dtype == bool:
        return np.where(idx)[0]
    if idx.dtype.kind in ('U', 'S', 'O'):
        if names is None:
            raise InvalidInput("cannot subset by name: object has no identifiers")
        lookup = {name: pos for pos, name in enumerate(names)}
        missing = [name for name in idx if name not in lookup]
        if missing:
            raise KeyError(f"Name '{missing[0]}' not found")
        return np.array([lookup[name] for name in idx], dtype=int)
    return idx.astype(int)


class DGEList(_RUVBase):
    """Digital Gene Expression data list.

    Attributes
    ----------
    counts : ndarray
        Matrix of counts (genes x samples).
    samples : DataFrame
        Sample information indexed by sample id, with columns group,
        lib.size, norm.factors and any sample metadata.
    genes : DataFrame
        Gene annotation indexed by gene id.
    """

    _IJ = {'counts', 'offset'}
    _IX = {'genes'}
    _JX = {'samples'}

    def __getitem__(self, key):
        if isinstance(key, str):
            return super().__getitem__(key)
        if not (isinstance(key, tuple) and len(key) == 2):
            raise IndexError("Two subscripts required")
        i, j = key

        i_idx = _resolve_index(i, _get_rownames(self))
        j_idx = _resolve_index(j, _get_colnames(self))

        out = self._copy()
        for k in self._IJ:
            if k in out and out[k] is not None:
                out[k] = _subset_matrix_or_df(out[k], i_idx, j_idx)
        for k in self._IX:
            if k in out and out[k] is not None:
                out[k] = _subset_matrix_or_df(out[k], i_idx)
        for k in self._JX:
            if k in out and out[k] is not None:
                out[k] = _subset_matrix_or_df(out[k], j_idx)

        if j_idx is not None and 'group' in out['samples'].columns:
            group = out['samples']['group']
            if hasattr(group, 'cat'):
                out['samples']['group'] = group.cat.remove_unused_categories()
        return out

    @property
    def nrow(self):
        return self['counts'].shape[0] if 'counts' in self else 0

    @property
    def ncol(self):
        return self['counts'].shape[1] if 'counts' in self else 0

    def __len__(self):
        return self.nrow

    def to_dataframe(self):
        """Counts as a genes x samples DataFrame."""
        return pd.DataFrame(self['counts'], index=_get_rownames(self),
                            columns=_get_colnames(self))


class RUVResult(_RUVBase):
    """Estimated unwanted variation.

    Attributes
    ----------
    W : DataFrame
        Factor loadings (samples x k), columns W_1..W_k.
    normalized : DataFrame
        Log2 expression with the unwanted component removed (genes x samples).
    alpha : ndarray
        Nuisance gene loadings over the control genes (k x controls).
    singular_values : ndarray
        All singular values of the decomposed matrix.
    controls : list
        Control genes actually used.
    k : int
    method : str
    """

    @property
    def shape(self):
        if 'W' in self:
            return self['W'].shape
        return None


class DGEGLM(_RUVBase):
    """Per-gene negative binomial GLM fit.

    Attributes
    ----------
    coefficients : ndarray
        Genes x coefficients, natural log scale.
    deviance : ndarray
    df.residual : ndarray
    fitted.values : ndarray
    residuals : ndarray
        Deviance residuals (genes x samples).
    counts, design, offset, dispersion, genes, samples
    """

    _I = {'coefficients', 'deviance', 'df.residual', 'fitted.values',
          'residuals', 'counts', 'genes', 'dispersion', 'AveLogCPM', 'table'}

    def __getitem__(self, key):
        if isinstance(key, str):
            return super().__getitem__(key)
        if not (isinstance(key, tuple) and len(key) == 2):
            raise IndexError("Two subscripts required")
        i, j = key
        if j is not None:
            raise IndexError(f"Subsetting columns not allowed for {type(self).__name__} object.")

        i_idx = _resolve_index(i, _get_rownames(self))
        out = self._copy()
        for k in self._I:
            value = out.get(k)
            if isinstance(value, (np.ndarray, pd.DataFrame, pd.Series)) and np.ndim(value) > 0:
                out[k] = _subset_matrix_or_df(value, i_idx)
        return out

    @property
    def shape(self):
        if 'coefficients' in self:
            return self['coefficients'].shape
        return None


class DGELRT(DGEGLM):
    """Likelihood ratio test results.

    Attributes
    ----------
    table : DataFrame
        Indexed by gene id, with columns logFC, logCPM, LR, PValue.
    comparison : str
        Name of the coefficient(s) tested.
    logFC.coef : str
        Coefficient reported as logFC.
    df.test : int
    """

    def __repr__(self):
        out = ""
        if 'comparison' in self:
            out += f"Coefficient: {self['comparison']}\n"
        if 'table' in self:
            out += str(self['table'])
        return out

    @property
    def shape(self):
        if 'table' in self:
            return self['table'].shape
        return None


class AnalysisConfig(_RUVBase):
    """Explicit parameters of one dataset's analysis run."""

    def __repr__(self):
        items = ', '.join(f"{k}={v!r}" for k, v in self.items()
                          if k not in ('replicates', 'negative_controls'))
        return f"AnalysisConfig({items})"


class AnalysisResult(_RUVBase):
    """Outputs of one dataset's analysis run.

    Attributes
    ----------
    config : AnalysisConfig
    y : DGEList
        Filtered counts with upper-quartile normalization factors.
    ruv : RUVResult or None
        None when the run used k = 0.
    lrt : DGELRT
    ranking : Series
        RankedGeneList (gene id -> p-value, ascending).
    """

    def __repr__(self):
        config = self.get('config', {})
        n = self['y'].nrow if 'y' in self else 0
        return (f"AnalysisResult for dataset '{config.get('dataset')}' "
                f"({n} genes, k={config.get('k')})")


def cbind_dgelist(*objects, join='inner'):
    """Column-bind (combine samples of) DGEList objects.

    Genes are matched by identifier. With ``join='inner'`` genes missing
    from any object are dropped; ``join='exact'`` requires identical genes.
    """
    if len(objects) == 1:
        return objects[0]
    if join not in ('inner', 'exact'):
        raise ValueError("join must be 'inner' or 'exact'")

    gene_lists = [list(obj['genes'].index) for obj in objects]
    if join == 'exact':
        for genes in gene_lists[1:]:
            if genes != gene_lists[0]:
                raise InvalidInput("DGEList objects have different genes")
        common = gene_lists[0]
    else:
        shared = set(gene_lists[0]).intersection(*gene_lists[1:])
        common = [g for g in gene_lists[0] if g in shared]
        if not common:
            raise InvalidInput("DGEList objects have no genes in common")

    parts = [obj[common, :] for obj in objects]
    samples = pd.concat([p['samples'] for p in parts])
    if samples.index.has_duplicates:
        dup = samples.index[samples.index.duplicated()][0]
        raise InvalidInput(f"Sample '{dup}' appears in more than one object")

    out = parts[0]._copy()
    out['counts'] = np.hstack([p['counts'] for p in parts])
    out['samples'] = samples
    if 'group' in samples.columns:
        out['samples']['group'] = pd.Categorical(samples['group'].astype(str))
    out.pop('offset', None)
    return out
