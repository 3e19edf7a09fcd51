"""Tests for RLE, PCA and volcano plot data."""

import numpy as np
import pandas as pd
import pytest

import ruvpython as rp


class TestRle:
    """rle."""

    def test_medians_zero(self, small_counts):
        out = rp.rle(small_counts)
        assert isinstance(out, pd.DataFrame)
        assert out.shape == small_counts.shape
        assert np.allclose(np.median(out.values, axis=1), 0)

    def test_log_input(self):
        x = np.array([[1.0, 2.0, 6.0], [0.0, 0.0, 3.0]])
        out = rp.rle(x, is_log=True)
        assert np.allclose(out, [[-1, 0, 4], [0, 0, 3]])

    def test_empty(self):
        with pytest.raises(rp.InvalidInput):
            rp.rle(np.empty((0, 3)))


class TestPca:
    """pca."""

    def test_scores(self, small_counts):
        res = rp.pca(small_counts)
        assert list(res['scores'].columns) == ['PC1', 'PC2']
        assert list(res['scores'].index) == list(small_counts.columns)
        ve = res['variance_explained']
        assert ve.iloc[0] >= ve.iloc[1]
        assert ve.sum() <= 100 + 1e-9

    def test_separates_groups(self, small_counts):
        scores = rp.pca(small_counts)['scores']['PC1'].values
        # DE genes dominate the first component.
        assert len(set(np.sign(scores[:3]))) == 1
        assert np.all(np.sign(scores[3:]) == -np.sign(scores[0]))

    def test_n_components(self, small_counts):
        with pytest.raises(rp.InvalidInput):
            rp.pca(small_counts, n_components=7)


class TestVolcanoTable:
    """volcano_table."""

    def test_columns(self):
        tab = pd.DataFrame({'logFC': [1.0, -2.0], 'PValue': [0.01, 0.0]},
                           index=['a', 'b'])
        out = rp.volcano_table(tab)
        assert list(out.columns) == ['logFC', 'neg_log10_p', 'FDR']
        assert np.isclose(out.loc['a', 'neg_log10_p'], 2.0)
        assert np.isfinite(out.loc['b', 'neg_log10_p'])
