"""Shared fixtures for ruvPython tests."""

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def rng():
    """Seeded random number generator for reproducibility."""
    return np.random.RandomState(42)


@pytest.fixture
def small_counts(rng):
    """Count table: 100 genes x 6 samples, Poisson(10); first 10 genes up 4x in the last 3."""
    counts = rng.poisson(10, (100, 6)).astype(np.float64)
    counts[:10, 3:6] = rng.poisson(40, (10, 3))
    return pd.DataFrame(counts,
                        index=[f"g{i + 1}" for i in range(100)],
                        columns=[f"s{j + 1}" for j in range(6)])


@pytest.fixture
def samples6():
    """Sample metadata for small_counts (3+3)."""
    return pd.DataFrame({
        'condition': ['A', 'A', 'A', 'B', 'B', 'B'],
        'batch': ['b1', 'b2', 'b1', 'b2', 'b1', 'b2'],
    }, index=[f"s{j + 1}" for j in range(6)])


@pytest.fixture
def dgelist(small_counts, samples6):
    """DGEList from small_counts with sample metadata."""
    import ruvpython as rp
    return rp.make_dgelist(small_counts, samples=samples6)


@pytest.fixture
def replicate_counts(rng):
    """Counts with a technical factor: 200 genes x 15 samples, 3 sets of 5.

    Genes c1..c20 are negative controls; genes g1..g30 respond to the
    condition.
    """
    ngenes, nsamples = 200, 15
    labels = np.repeat(['A', 'B', 'C'], 5)
    nuisance = rng.normal(0, 1, (nsamples, 3))
    loadings = rng.normal(0, 0.4, (ngenes, 3))
    effect = np.zeros((ngenes, nsamples))
    effect[20:50, labels == 'B'] = 1.0
    effect[20:50, labels == 'C'] = -1.0
    log_mu = rng.uniform(4, 7, ngenes)[:, None] + loadings @ nuisance.T + effect
    counts = rng.poisson(np.exp(log_mu)).astype(np.float64)

    genes = [f"c{i + 1}" for i in range(20)] + [f"g{i + 1}" for i in range(ngenes - 20)]
    samples = [f"s{j + 1}" for j in range(nsamples)]
    return pd.DataFrame(counts, index=genes, columns=samples), labels


@pytest.fixture
def toy_dataset(rng):
    """DGEList of 200 genes x 8 samples with a per-sample technical factor.

    Genes g1..g20 are 1.5 log-units higher in 'trt'.
    """
    import ruvpython as rp

    ngenes, nsamples = 200, 8
    condition = np.repeat(['ctl', 'trt'], 4)
    w = rng.normal(0, 1, nsamples)
    effect = np.zeros(ngenes)
    effect[:20] = 1.5
    log_mu = (rng.uniform(4, 7, ngenes)[:, None]
              + rng.normal(0, 0.3, ngenes)[:, None] * w[None, :]
              + effect[:, None] * (condition == 'trt')[None, :])
    counts = pd.DataFrame(rng.poisson(np.exp(log_mu)).astype(np.float64),
                          index=[f"g{i + 1}" for i in range(ngenes)],
                          columns=[f"s{j + 1}" for j in range(nsamples)])
    samples = pd.DataFrame({
        'condition': condition,
        'batch': np.tile(['b1', 'b2'], 4),
        'platform': ['rnaseq'] * 6 + ['array'] * 2,
    }, index=counts.columns)
    return rp.make_dgelist(counts, samples=samples)
