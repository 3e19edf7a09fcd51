"""Tests for reading count tables, control lists and sample metadata."""

import numpy as np
import pandas as pd
import pytest

import ruvpython as rp


def _write(path, text):
    path.write_text(text)
    return str(path)


class TestReadCounts:
    """read_counts."""

    def test_basic(self, tmp_path):
        f = _write(tmp_path / "counts.txt",
                   "gene\ts1\ts2\ts3\n"
                   "geneA\t10\t15\t0\n"
                   "geneB\t20\t25\t3\n"
                   "geneC\t30\t35\t7\n")
        y = rp.read_counts(f)
        assert y['counts'].shape == (3, 3)
        assert list(y['genes'].index) == ['geneA', 'geneB', 'geneC']
        assert list(y['samples'].index) == ['s1', 's2', 's3']
        assert np.allclose(y['samples']['lib.size'], [60, 75, 10])

    def test_with_metadata(self, tmp_path):
        f = _write(tmp_path / "counts.txt",
                   "gene\ts1\ts2\n"
                   "geneA\t10\t15\n"
                   "geneB\t20\t25\n")
        meta = pd.DataFrame({'condition': ['trt', 'ctl']}, index=['s2', 's1'])
        y = rp.read_counts(f, samples=meta, group='condition')
        assert list(y['samples']['condition']) == ['ctl', 'trt']
        assert list(y['samples']['group'].astype(str)) == ['ctl', 'trt']

    def test_metadata_mismatch(self, tmp_path):
        f = _write(tmp_path / "counts.txt", "gene\ts1\ts2\ngeneA\t1\t2\n")
        meta = pd.DataFrame({'condition': ['a', 'b']}, index=['s1', 's9'])
        with pytest.raises(rp.InvalidInput, match="No metadata"):
            rp.read_counts(f, samples=meta)

    def test_repeated_gene(self, tmp_path):
        f = _write(tmp_path / "counts.txt",
                   "gene\ts1\ts2\ngeneA\t1\t2\ngeneA\t3\t4\n")
        with pytest.raises(rp.InvalidInput, match="Repeated row names"):
            rp.read_counts(f)

    def test_negative_count(self, tmp_path):
        f = _write(tmp_path / "counts.txt", "gene\ts1\ts2\ngeneA\t1\t-2\n")
        with pytest.raises(rp.InvalidInput, match="Negative"):
            rp.read_counts(f)

    def test_missing_count(self, tmp_path):
        f = _write(tmp_path / "counts.txt", "gene\ts1\ts2\ngeneA\t1\t\ngeneB\t1\t2\n")
        with pytest.raises(rp.InvalidInput, match="NA"):
            rp.read_counts(f)

    def test_comma_separated(self, tmp_path):
        f = _write(tmp_path / "counts.csv", "gene,s1,s2\ngeneA,1,2\n")
        y = rp.read_counts(f, sep=',')
        assert y['counts'].shape == (1, 2)


class TestReadSampleMetadata:
    """read_sample_metadata."""

    def test_basic(self, tmp_path):
        f = _write(tmp_path / "samples.txt",
                   "sample\tcondition\tbatch\n"
                   "s1\tctl\t1\n"
                   "s2\ttrt\t1\n")
        meta = rp.read_sample_metadata(f)
        assert list(meta.index) == ['s1', 's2']
        assert list(meta.columns) == ['condition', 'batch']
        assert meta.loc['s1', 'batch'] == '1'

    def test_named_column(self, tmp_path):
        f = _write(tmp_path / "samples.txt",
                   "condition\tid\nctl\ts1\ntrt\ts2\n")
        meta = rp.read_sample_metadata(f, sample_column='id')
        assert list(meta.index) == ['s1', 's2']

    def test_duplicate_sample(self, tmp_path):
        f = _write(tmp_path / "samples.txt",
                   "sample\tcondition\ns1\tctl\ns1\ttrt\n")
        with pytest.raises(rp.InvalidInput):
            rp.read_sample_metadata(f)


class TestReadControlGenes:
    """read_control_genes."""

    def test_ids(self, tmp_path):
        f = _write(tmp_path / "neg.txt", "gene\nA\nB\nA\nC\n")
        ids = rp.read_control_genes(f)
        assert list(ids) == ['A', 'B', 'C']

    def test_direction(self, tmp_path):
        f = _write(tmp_path / "pos.txt",
                   "gene\tdirection\nA\tUP\nB\tdown\nC\tUp\n")
        direction = rp.read_control_genes(f, direction_column='direction')
        assert direction.to_dict() == {'A': 1, 'B': -1, 'C': 1}

    def test_bad_direction(self, tmp_path):
        f = _write(tmp_path / "pos.txt", "gene\tdirection\nA\tUP\nB\tsideways\n")
        with pytest.raises(rp.InvalidInput, match="UP or DOWN"):
            rp.read_control_genes(f, direction_column=1)


class TestWriteTable:
    """write_table."""

    def test_series(self, tmp_path):
        curve = pd.Series([0.0, 1.0], index=pd.Index([1, 2], name='rank'), name='CAT')
        path = rp.write_table(curve, str(tmp_path / "cat.txt"))
        back = pd.read_csv(path, sep='\t', index_col=0)
        assert list(back.columns) == ['CAT']
        assert np.allclose(back['CAT'], [0, 1])

    def test_dgelist(self, tmp_path, dgelist):
        path = rp.write_table(dgelist, str(tmp_path / "counts.txt"))
        y = rp.read_counts(path)
        assert np.allclose(y['counts'], dgelist['counts'])
        assert list(y['genes'].index) == list(dgelist['genes'].index)

    def test_rejects_other_types(self, tmp_path):
        with pytest.raises(rp.InvalidInput):
            rp.write_table([1, 2, 3], str(tmp_path / "x.txt"))
