"""
ruvPython: Remove Unwanted Variation from RNA-seq read counts.

Factor-analysis normalization (RUVs, RUVg, RUVr), negative binomial GLM
differential expression with the estimated factors as covariates, and
concordance-at-the-top comparison of gene rankings.
"""

__version__ = "0.1.0"

# --- Errors ---
from .errors import (
    RUVError,
    InvalidInput,
    InvalidParameter,
    InsufficientControls,
    InsufficientReplicates,
    NumericalInstability,
)

# --- Classes ---
from .classes import (
    DGEList,
    RUVResult,
    DGEGLM,
    DGELRT,
    AnalysisConfig,
    AnalysisResult,
    cbind_dgelist,
)

# --- DGEList construction & accessors ---
from .dgelist import make_dgelist, as_dgelist, valid_dgelist, get_counts, get_offset

# --- I/O ---
from .io import (
    read_counts,
    read_sample_metadata,
    align_sample_metadata,
    read_control_genes,
    write_table,
)

# --- Filtering ---
from .filtering import filter_by_counts, filter_genes

# --- Normalization ---
from .normalization import between_lane_normalization, calc_norm_factors

# --- Replicate groups ---
from .grouping import (
    ABSENT,
    make_groups,
    make_replicate_groups,
    combine_replicate_groups,
    validate_replicate_groups,
    replicate_pairs,
)

# --- Remove unwanted variation ---
from .ruv import ruv_s, ruv_g, ruv_r, remove_unwanted

# --- Expression ---
from .expression import cpm, ave_log_cpm

# --- Differential expression ---
from .utils import model_matrix
from .de import estimate_common_disp, glm_fit, glm_lrt

# --- Results ---
from .results import (
    p_adjust,
    top_tags,
    decide_tests,
    empirical_controls,
    positive_control_recovery,
)

# --- Concordance ---
from .concordance import rank_genes, cat, cat_from_tables

# --- Diagnostics ---
from .diagnostics import rle, pca, volcano_table

# --- Pipeline ---
from .pipeline import (
    make_analysis_config,
    run_analysis,
    run_pipeline,
    load_dataset,
    compare_results,
    cat_table,
    split_by_platform,
    combine_datasets,
)
