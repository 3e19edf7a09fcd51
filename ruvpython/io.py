"""
I/O functions for ruvPython.

Readers for tab-delimited count tables, control-gene lists and sample
metadata tables, and a writer for the numeric artifacts handed to the
plotting code.
"""

import os
import numpy as np
import pandas as pd

from .errors import InvalidInput


def read_counts(path, sep='\t', samples=None, group=None, verbose=False):
    """Read a count table into a DGEList.

    The first column holds gene identifiers, the header row holds sample
    identifiers and the remaining cells are non-negative counts.

    Parameters
    ----------
    path : str
        Table file.
    sep : str
        Field separator.
    samples : DataFrame, optional
        Sample metadata indexed by sample id (see read_sample_metadata).
        It must describe exactly the samples of the table.
    group : array-like or str, optional
        Group factor, or the name of a column of *samples*.
    verbose : bool
        Print the table dimensions.

    Returns
    -------
    DGEList
    """
    from .dgelist import make_dgelist

    df = pd.read_csv(path, sep=sep, index_col=0)
    df.index = df.index.astype(str)
    df.columns = [str(c) for c in df.columns]
    if df.index.has_duplicates:
        dup = df.index[df.index.duplicated()][0]
        raise InvalidInput(f"Repeated row names in {path}: '{dup}'. Row names must be unique.")

    if verbose:
        print(f"Reading {os.path.basename(path)}: {df.shape[0]} genes x {df.shape[1]} samples")

    if samples is not None:
        samples = align_sample_metadata(samples, df.columns)
        if isinstance(group, str):
            group = samples[group].values
    return make_dgelist(df, samples=samples, group=group)


def read_sample_metadata(path, sample_column=0, sep='\t'):
    """Read a per-sample metadata table (sample id, condition, batch, platform...).

    Returns
    -------
    DataFrame indexed by sample id.
    """
    df = pd.read_csv(path, sep=sep, dtype=str)
    if isinstance(sample_column, int):
        sample_column = df.columns[sample_column]
    df = df.set_index(sample_column)
    df.index = df.index.astype(str)
    if df.index.has_duplicates:
        dup = df.index[df.index.duplicated()][0]
        raise InvalidInput(f"Sample '{dup}' is listed more than once in {path}")
    return df


def align_sample_metadata(samples, sample_names):
    """Reorder *samples* to *sample_names*, checking both describe the same samples."""
    samples = pd.DataFrame(samples).copy()
    samples.index = samples.index.astype(str)
    sample_names = [str(s) for s in sample_names]
    missing = [s for s in sample_names if s not in samples.index]
    if missing:
        raise InvalidInput(f"No metadata for samples: {missing}")
    extra = [s for s in samples.index if s not in set(sample_names)]
    if extra:
        raise InvalidInput(f"Metadata describes unknown samples: {extra}")
    return samples.loc[sample_names]


def read_control_genes(path, id_column=0, direction_column=None, sep='\t'):
    """Read a control-gene list.

    Parameters
    ----------
    path : str
        Table with a header row.
    id_column : int or str
        Column holding gene identifiers.
    direction_column : int or str, optional
        Column of 'UP'/'DOWN' labels (positive controls).

    Returns
    -------
    Index of gene ids, or, with *direction_column*, a Series mapping gene id
    to +1 (UP) or -1 (DOWN).
    """
    df = pd.read_csv(path, sep=sep, dtype=str)
    if isinstance(id_column, int):
        id_column = df.columns[id_column]
    ids = df[id_column].dropna().str.strip()

    if direction_column is None:
        return pd.Index(ids.drop_duplicates().values, name='GeneID')

    if isinstance(direction_column, int):
        direction_column = df.columns[direction_column]
    labels = df.loc[ids.index, direction_column].str.strip().str.upper()
    bad = sorted(set(labels.dropna()) - {'UP', 'DOWN'})
    if bad:
        raise InvalidInput(f"direction labels must be UP or DOWN, got {bad}")
    keep = labels.notna()
    direction = pd.Series(np.where(labels[keep] == 'UP', 1, -1),
                          index=ids[keep].values, name=direction_column)
    return direction[~direction.index.duplicated()]


def write_table(obj, path, sep='\t'):
    """Write a matrix, result table or concordance curve as delimited text."""
    if isinstance(obj, dict) and 'table' in obj:
        obj = obj['table']
    elif isinstance(obj, dict) and 'counts' in obj:
        obj = obj.to_dataframe()
    if isinstance(obj, pd.Series):
        obj = obj.to_frame()
    if not isinstance(obj, pd.DataFrame):
        raise InvalidInput("write_table expects a DataFrame, Series or result object")
    obj.to_csv(path, sep=sep)
    return path
