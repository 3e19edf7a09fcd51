"""
Design-matrix utilities for ruvPython.
"""

import numpy as np
import pandas as pd

from .errors import InvalidInput


def model_matrix(formula, data=None, as_frame=False):
    """Create a design matrix from an R-style formula.

    Uses patsy to parse the formula and build the design matrix,
    matching R's ``model.matrix(formula, data)`` behaviour.

    Parameters
    ----------
    formula : str
        R-style formula, e.g. ``'~ condition'``, ``'~ W_1 + W_2 + condition'``,
        ``'~ 0 + condition'`` (no intercept).
    data : DataFrame or dict
        Sample-level data. Column names are used as variables in the
        formula.
    as_frame : bool
        Return a DataFrame with patsy's column names instead of an ndarray.

    Returns
    -------
    ndarray or DataFrame
        Design matrix (samples x coefficients), dtype float64.

    Examples
    --------
    >>> import pandas as pd
    >>> df = pd.DataFrame({'condition': ['A', 'A', 'B', 'B'], 'W_1': [0.1, -0.2, 0.3, 0.0]})
    >>> model_matrix('~ condition', df)
    array([[1., 0.],
           [1., 0.],
           [1., 1.],
           [1., 1.]])
    """
    import patsy

    if data is None:
        raise ValueError("data must be provided for formula-based design")
    if isinstance(data, dict):
        data = pd.DataFrame(data)

    design = patsy.dmatrix(formula, data=data, return_type='dataframe',
                           NA_action='raise')
    design = design.astype(np.float64)
    design.index = data.index
    if as_frame:
        return design
    return design.values


def resolve_design(design, y=None):
    """Design as (matrix, column names).

    A string is treated as an R-style formula evaluated against the
    sample metadata of the DGEList *y*.
    """
    if isinstance(design, str):
        if not (isinstance(y, dict) and 'samples' in y):
            raise InvalidInput(
                "Formula design requires a DGEList with sample metadata. "
                "Pass a DGEList or use model_matrix() explicitly.")
        design = model_matrix(design, y['samples'], as_frame=True)

    if isinstance(design, pd.DataFrame):
        names = [str(c) for c in design.columns]
        design = design.values.astype(np.float64)
    else:
        design = np.asarray(design, dtype=np.float64)
        if design.ndim == 1:
            design = design.reshape(-1, 1)
        names = [f"coef{i}" for i in range(design.shape[1])]
    return design, names


def check_design(design, nsamples):
    """Design must match the samples, be full rank and leave residual df."""
    if design.shape[0] != nsamples:
        raise InvalidInput(
            f"design has {design.shape[0]} rows but there are {nsamples} samples")
    if np.linalg.matrix_rank(design) < design.shape[1]:
        raise InvalidInput("design matrix is not of full rank")
    if design.shape[1] >= nsamples:
        raise InvalidInput("design leaves no residual degrees of freedom")
