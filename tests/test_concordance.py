"""Tests for gene ranking and Concordance-At-the-Top curves."""

import numpy as np
import pandas as pd
import pytest

import ruvpython as rp


class TestRankGenes:
    """rank_genes ordering."""

    def test_ties_keep_input_order(self):
        s = pd.Series([0.1, 0.1, 0.05, 0.1], index=['x', 'y', 'z', 'w'])
        assert list(rp.rank_genes(s).index) == ['z', 'x', 'y', 'w']

    def test_array_with_names(self):
        r = rp.rank_genes([0.3, 0.1, 0.2], names=['a', 'b', 'c'])
        assert list(r.index) == ['b', 'c', 'a']

    def test_empty(self):
        with pytest.raises(rp.InvalidInput):
            rp.rank_genes(pd.Series([], dtype=float))

    def test_duplicate_gene(self):
        with pytest.raises(rp.InvalidInput):
            rp.rank_genes(pd.Series([0.1, 0.2], index=['a', 'a']))

    def test_na_score(self):
        with pytest.raises(rp.InvalidInput):
            rp.rank_genes(pd.Series([0.1, np.nan], index=['a', 'b']))


class TestCat:
    """cat curves."""

    def test_hand_computed(self):
        s1 = pd.Series([1, 2, 3, 4], index=['a', 'b', 'c', 'd'])
        s2 = pd.Series([1, 2, 3, 4], index=['b', 'a', 'd', 'c'])
        curve = rp.cat(s1, s2)
        assert np.allclose(curve.values, [0, 1, 2 / 3, 1])
        assert list(curve.index) == [1, 2, 3, 4]
        assert curve.name == 'CAT'

    def test_identical_rankings(self, rng):
        s = pd.Series(rng.rand(50), index=[f"g{i}" for i in range(50)])
        assert np.allclose(rp.cat(s, s).values, 1.0)

    def test_thousand_genes(self, rng):
        genes = [f"g{i}" for i in range(1000)]
        base = rng.rand(1000)
        s1 = pd.Series(base + rng.normal(0, 0.1, 1000), index=genes)
        s2 = pd.Series(base + rng.normal(0, 0.1, 1000), index=genes)
        curve = rp.cat(s1, s2, r_max=500)
        assert len(curve) == 500
        assert np.all((curve.values >= 0) & (curve.values <= 1))
        assert curve.iloc[-1] > 0.7

    def test_independent_rankings_rise(self, rng):
        genes = [f"g{i}" for i in range(1000)]
        s1 = pd.Series(rng.rand(1000), index=genes)
        s2 = pd.Series(rng.rand(1000), index=genes)
        curve = rp.cat(s1, s2)
        assert len(curve) == 1000
        assert curve.iloc[400:].mean() > curve.iloc[:100].mean()
        assert curve.iloc[-1] == 1.0

    def test_disjoint_universes_saturate_below_one(self):
        s1 = pd.Series(np.arange(10.0), index=[f"a{i}" for i in range(10)])
        s2 = pd.Series(np.arange(10.0), index=[f"a{i}" for i in range(5)]
                       + [f"b{i}" for i in range(5)])
        curve = rp.cat(s1, s2)
        assert curve.iloc[4] == 1.0
        assert curve.iloc[-1] == 0.5

    def test_default_r_max_is_shorter_list(self):
        s1 = pd.Series(np.arange(10.0), index=[f"g{i}" for i in range(10)])
        s2 = pd.Series(np.arange(6.0), index=[f"g{i}" for i in range(6)])
        assert len(rp.cat(s1, s2)) == 6
        assert len(rp.cat(s1, s2, max_rank=4)) == 4

    def test_r_max_too_large(self):
        s = pd.Series([0.1, 0.2], index=['a', 'b'])
        with pytest.raises(rp.InvalidInput):
            rp.cat(s, s, r_max=3)

    def test_r_max_not_positive(self):
        s = pd.Series([0.1, 0.2], index=['a', 'b'])
        with pytest.raises(rp.InvalidParameter):
            rp.cat(s, s, r_max=0)

    def test_empty_list(self):
        s = pd.Series([0.1, 0.2], index=['a', 'b'])
        with pytest.raises(rp.InvalidInput):
            rp.cat(s, pd.Series([], dtype=float))


class TestCatFromTables:
    """cat_from_tables on DE result tables."""

    def test_tables(self):
        t1 = pd.DataFrame({'logFC': [1, 2, 3], 'PValue': [0.01, 0.2, 0.03]},
                          index=['a', 'b', 'c'])
        t2 = pd.DataFrame({'logFC': [1, 2, 3], 'PValue': [0.02, 0.5, 0.01]},
                          index=['a', 'b', 'c'])
        curve = rp.cat_from_tables(t1, t2)
        assert np.allclose(curve.values, [0, 1, 1])

    def test_missing_score_column(self):
        t = pd.DataFrame({'logFC': [1.0]}, index=['a'])
        with pytest.raises(rp.InvalidInput):
            rp.cat_from_tables(t, t)
