"""
Per-dataset analysis runs for ruvPython.

Each dataset is described by an explicit AnalysisConfig and processed
independently: filter -> scale normalization -> RUV -> GLM fit and
likelihood ratio test -> ranking. Rankings of two runs are compared with
CAT curves.
"""

import os
import warnings

import numpy as np
import pandas as pd

from .classes import AnalysisConfig, AnalysisResult, cbind_dgelist
from .concordance import cat, rank_genes
from .de import glm_fit, glm_lrt
from .diagnostics import pca, rle
from .dgelist import as_dgelist
from .errors import InvalidInput, InvalidParameter, RUVError
from .filtering import filter_by_counts
from .grouping import combine_replicate_groups, make_groups, make_replicate_groups
from .io import read_control_genes, read_counts, read_sample_metadata
from .normalization import between_lane_normalization, calc_norm_factors
from .results import empirical_controls
from .ruv import ruv_g, ruv_r, ruv_s

_METHODS = ('RUVs', 'RUVg', 'RUVr')


def make_analysis_config(dataset, k=1, method='RUVs', condition='condition',
                         batch=None, replicates=None, negative_controls='empirical',
                         n_empirical=5000, min_count=10, min_samples=5,
                         normalization='upper', design=None, coef=None,
                         fdr=0.05, max_rank=None, counts_file=None,
                         samples_file=None, controls_file=None):
    """Build and validate the parameters of one analysis run.

    Parameters
    ----------
    dataset : str
        Dataset identifier, used in error messages and result keys.
    k : int
        Number of unwanted factors; 0 skips RUV.
    method : str
        'RUVs' (replicates), 'RUVg' (control genes) or 'RUVr' (residuals).
    condition : str
        Sample metadata column with the biological condition.
    batch : str, optional
        Sample metadata column with the batch. Replicate sets are then
        condition-within-batch.
    replicates : dict or list of dict, optional
        Explicit ``{(batch, condition): [sample ids]}`` mapping(s). A list
        holds one mapping per batch; they are aligned into one
        replicate-group matrix.
    negative_controls : str or sequence
        Gene ids, 'all' (every gene), or 'empirical' (genes outside the top
        *n_empirical* of a first-pass fit without factors).
    min_count, min_samples : int
        Filter: keep genes with more than *min_samples* samples above
        *min_count*.
    normalization : str
        Between-sample normalization before RUV: 'upper', 'median', 'full'.
    design : str, optional
        Formula for the DE model. Defaults to the factors followed by the
        condition.
    coef : int, str or list, optional
        Coefficient(s) tested. Default is every column of the
        ``C(Q(condition))`` term, tested jointly.
    fdr : float
        Significance level for reported calls.
    max_rank : int, optional
        Cap on the CAT curve depth.
    counts_file, samples_file, controls_file : str, optional
        Input file names, relative to the pipeline input directory.

    Returns
    -------
    AnalysisConfig
    """
    if not dataset:
        raise InvalidParameter("dataset identifier is required")
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 0:
        raise InvalidParameter(f"k must be a non-negative integer, got {k!r}")
    if method not in _METHODS:
        raise InvalidParameter(f"method must be one of {_METHODS}")
    if min_count < 0 or min_samples < 0:
        raise InvalidParameter("filter thresholds must be non-negative")
    if normalization not in ('upper', 'median', 'full'):
        raise InvalidParameter("normalization must be 'upper', 'median' or 'full'")
    if not 0 < fdr <= 1:
        raise InvalidParameter(f"fdr must be in (0, 1], got {fdr}")
    if isinstance(negative_controls, str) and negative_controls not in ('all', 'empirical'):
        raise InvalidParameter("negative_controls must be 'all', 'empirical' or gene ids")
    if max_rank is not None and max_rank < 1:
        raise InvalidParameter("max_rank must be positive")

    config = AnalysisConfig()
    config['dataset'] = str(dataset)
    config['k'] = int(k)
    config['method'] = method
    config['condition'] = condition
    config['batch'] = batch
    config['replicates'] = replicates
    config['negative_controls'] = negative_controls
    config['n_empirical'] = int(n_empirical)
    config['min_count'] = min_count
    config['min_samples'] = min_samples
    config['normalization'] = normalization
    config['design'] = design
    config['coef'] = coef
    config['fdr'] = fdr
    config['max_rank'] = max_rank
    config['counts_file'] = counts_file
    config['samples_file'] = samples_file
    config['controls_file'] = controls_file
    return config


def run_analysis(y, config, verbose=False):
    """Run one dataset through the pipeline.

    Parameters
    ----------
    y : DGEList or DataFrame
        Raw counts with sample metadata holding ``config['condition']``
        (and ``config['batch']`` when set).
    config : AnalysisConfig
    verbose : bool
        Print progress.

    Returns
    -------
    AnalysisResult

    Raises
    ------
    RUVError
        Any failure, re-raised with the dataset id and parameters in the
        message. Nothing is retried with other parameters.
    """
    try:
        return _run_analysis(y, config, verbose)
    except RUVError as e:
        raise type(e)(f"dataset '{config['dataset']}' ({_describe(config)}): {e}") from e


def _describe(config):
    controls = config['negative_controls']
    if not isinstance(controls, str):
        controls = f"{len(controls)} genes"
    elif controls == 'empirical':
        controls = f"empirical, n_empirical={config['n_empirical']}"
    return f"method={config['method']}, k={config['k']}, controls={controls}"


def _run_analysis(y, config, verbose):
    dge = as_dgelist(y)
    condition = config['condition']
    if condition not in dge['samples'].columns:
        raise InvalidInput(f"sample metadata has no '{condition}' column")

    keep = filter_by_counts(dge, min_count=config['min_count'],
                            min_samples=config['min_samples'])
    if not keep.any():
        raise InvalidInput("no gene passes the expression filter")
    dge = calc_norm_factors(dge[keep, None], method='upperquartile')
    if verbose:
        print(f"[{config['dataset']}] {dge.nrow} of {len(keep)} genes pass the filter")

    scaled = between_lane_normalization(dge, which=config['normalization'])
    biology = _condition_formula(condition)

    ruv = None
    if config['k'] > 0:
        controls = config['negative_controls']
        first_pass = None
        if (isinstance(controls, str) and controls == 'empirical') or config['method'] == 'RUVr':
            first_pass = glm_fit(dge, '~ ' + biology)
        if isinstance(controls, str) and controls == 'all':
            controls = list(dge['genes'].index)
        elif isinstance(controls, str):
            first_lrt = glm_lrt(first_pass, coef=_condition_coef(first_pass, biology))
            controls = empirical_controls(first_lrt, n_top=config['n_empirical'])
            if verbose:
                print(f"[{config['dataset']}] {len(controls)} empirical control genes")

        if config['method'] == 'RUVs':
            groups = _replicate_groups(dge, config)
            ruv = ruv_s(scaled, controls, groups, k=config['k'])
        elif config['method'] == 'RUVg':
            ruv = ruv_g(scaled, controls, k=config['k'])
        else:
            ruv = ruv_r(scaled, controls, first_pass['residuals'], k=config['k'])
        for col in ruv['W'].columns:
            dge['samples'][col] = ruv['W'][col].values

    design = config['design']
    if design is None:
        terms = list(ruv['W'].columns) if ruv is not None else []
        design = '~ ' + ' + '.join(terms + [biology])
    fit = glm_fit(dge, design, verbose=verbose)
    coef = config['coef']
    if coef is None:
        coef = _condition_coef(fit, biology)
        if not coef:
            raise InvalidInput(f"design '{design}' has no '{condition}' term to test")
    lrt = glm_lrt(fit, coef=coef)

    normalized = ruv['normalized'] if ruv is not None else np.log2(scaled.to_dataframe() + 1)

    result = AnalysisResult()
    result['config'] = config
    result['y'] = dge
    result['ruv'] = ruv
    result['normalized'] = normalized
    result['lrt'] = lrt
    result['ranking'] = rank_genes(lrt['table']['PValue'])
    result['rle'] = rle(normalized, is_log=True)
    result['pca'] = pca(normalized, n_components=min(2, dge.ncol), is_log=True)
    return result


def _condition_formula(column):
    return f"C(Q('{column}'))"


def _condition_coef(fit, biology):
    """Every design column of the condition term, tested jointly."""
    # patsy puts categorical terms before numeric ones, so the
    # condition columns are found by name.
    return [n for n in fit['design.names'] if n.startswith(biology)]


def _replicate_groups(dge, config):
    """Replicate-group matrix from the explicit mapping or the metadata."""
    replicates = config['replicates']
    if replicates is None:
        labels = dge['samples'][config['condition']].astype(str)
        if config['batch'] is not None:
            if config['batch'] not in dge['samples'].columns:
                raise InvalidInput(f"sample metadata has no '{config['batch']}' column")
            labels = dge['samples'][config['batch']].astype(str) + ':' + labels
        return make_groups(labels.values)

    if isinstance(replicates, dict):
        return make_replicate_groups(replicates, dge)
    parts = [make_replicate_groups(m, dge) for m in replicates]
    return combine_replicate_groups(*parts, nsamples=dge.ncol)


def compare_results(result1, result2, r_max=None):
    """CAT curve between the rankings of two analysis results."""
    max_rank = result1['config'].get('max_rank')
    return cat(result1['ranking'], result2['ranking'], r_max=r_max,
               max_rank=max_rank)


def split_by_platform(y, platform, column='platform'):
    """Samples of one assay platform, selected by a metadata column."""
    dge = as_dgelist(y)
    if column not in dge['samples'].columns:
        raise InvalidInput(f"sample metadata has no '{column}' column")
    keep = (dge['samples'][column].astype(str) == str(platform)).values
    if not keep.any():
        raise InvalidInput(f"no samples on platform '{platform}'")
    return dge[None, keep]


def combine_datasets(*objects):
    """Column-bind datasets on their shared genes (e.g. two brain regions)."""
    return cbind_dgelist(*objects, join='inner')


def load_dataset(config, input_dir, verbose=False):
    """Read the counts (with metadata) and control genes named by *config*."""
    if config['counts_file'] is None:
        raise InvalidInput(f"dataset '{config['dataset']}' has no counts_file")
    samples = None
    if config['samples_file'] is not None:
        samples = read_sample_metadata(os.path.join(input_dir, config['samples_file']))
    y = read_counts(os.path.join(input_dir, config['counts_file']),
                    samples=samples, verbose=verbose)

    if config['controls_file'] is not None:
        ids = read_control_genes(os.path.join(input_dir, config['controls_file']))
        config = AnalysisConfig(config)
        config['negative_controls'] = list(ids)
    return y, config


def run_pipeline(configs, input_dir, stop_on_error=True, verbose=False):
    """Run every configured dataset found in *input_dir*.

    Datasets are independent. With ``stop_on_error=False`` a failing
    dataset is reported with a warning and recorded, and the others still
    run.

    Returns
    -------
    results : dict
        Dataset id -> AnalysisResult.
    errors : dict
        Dataset id -> exception, for failed datasets.
    """
    results = {}
    errors = {}
    for config in configs:
        try:
            y, config = load_dataset(config, input_dir, verbose=verbose)
            results[config['dataset']] = run_analysis(y, config, verbose=verbose)
        except RUVError as e:
            if stop_on_error:
                raise
            warnings.warn(f"analysis of dataset '{config['dataset']}' failed: {e}")
            errors[config['dataset']] = e
    return results, errors


def cat_table(results, pairs, r_max=None):
    """CAT curves for named pairs of results, one column per pair."""
    curves = {}
    for a, b in pairs:
        curves[f"{a} vs {b}"] = compare_results(results[a], results[b], r_max=r_max)
    return pd.DataFrame(curves)
