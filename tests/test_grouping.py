"""Tests for replicate-group construction and validation."""

import numpy as np
import pytest

import ruvpython as rp


class TestMakeGroups:
    """make_groups from sample labels."""

    def test_padding(self):
        groups = rp.make_groups(['a', 'a', 'b', 'b', 'b'])
        assert np.array_equal(groups, [[0, 1, -1], [2, 3, 4]])

    def test_first_appearance_order(self):
        groups = rp.make_groups(['y', 'x', 'y', 'x'])
        assert np.array_equal(groups, [[0, 2], [1, 3]])

    def test_empty(self):
        with pytest.raises(rp.InvalidInput):
            rp.make_groups([])

    def test_missing_label(self):
        with pytest.raises(rp.InvalidInput):
            rp.make_groups(['a', None, 'a'])


class TestMakeReplicateGroups:
    """make_replicate_groups from a declarative mapping."""

    def test_by_name(self):
        mapping = {('b1', 'A'): ['s1', 's2'], ('b1', 'B'): ['s3']}
        groups = rp.make_replicate_groups(mapping, ['s1', 's2', 's3'])
        assert np.array_equal(groups, [[0, 1], [2, -1]])

    def test_by_position(self):
        groups = rp.make_replicate_groups({'A': [2, 0], 'B': [1]}, 3)
        assert np.array_equal(groups, [[2, 0], [1, -1]])

    def test_against_dgelist(self, dgelist):
        mapping = {('b1', 'A'): ['s1', 's3'], ('b2', 'B'): ['s4', 's6']}
        groups = rp.make_replicate_groups(mapping, dgelist)
        assert np.array_equal(groups, [[0, 2], [3, 5]])

    def test_against_metadata_table(self, samples6):
        groups = rp.make_replicate_groups({'A': ['s2', 's1']}, samples6)
        assert np.array_equal(groups, [[1, 0]])

    def test_unknown_sample(self):
        with pytest.raises(rp.InvalidInput, match="unknown sample"):
            rp.make_replicate_groups({'A': ['s1', 's9']}, ['s1', 's2'])

    def test_out_of_range(self):
        with pytest.raises(rp.InvalidInput, match="out of range"):
            rp.make_replicate_groups({'A': [0, 5]}, 3)

    def test_negative_index(self):
        with pytest.raises(rp.InvalidInput):
            rp.make_replicate_groups({'A': [0, -1]}, 3)

    def test_duplicate_sample(self):
        with pytest.raises(rp.InvalidInput, match="more than one"):
            rp.make_replicate_groups({'A': ['s1', 's2'], 'B': ['s2']}, ['s1', 's2', 's3'])

    def test_empty_mapping(self):
        with pytest.raises(rp.InvalidInput):
            rp.make_replicate_groups({}, 3)


class TestCombineReplicateGroups:
    """combine_replicate_groups across batches."""

    def test_different_widths(self):
        g1 = np.array([[0, 1]])
        g2 = np.array([[2, 3, 4], [5, -1, -1]])
        combined = rp.combine_replicate_groups(g1, g2, nsamples=6)
        assert np.array_equal(combined, [[0, 1, -1], [2, 3, 4], [5, -1, -1]])

    def test_overlap_rejected(self):
        with pytest.raises(rp.InvalidInput):
            rp.combine_replicate_groups(np.array([[0, 1]]), np.array([[1, 2]]))


class TestValidateReplicateGroups:
    """validate_replicate_groups."""

    def test_valid(self):
        groups = np.array([[0, 1, -1], [2, 3, 4]])
        assert rp.validate_replicate_groups(groups, 5) is not None

    def test_non_integer(self):
        with pytest.raises(rp.InvalidInput):
            rp.validate_replicate_groups(np.array([[0.0, 1.0]]), 2)

    def test_out_of_range(self):
        with pytest.raises(rp.InvalidInput):
            rp.validate_replicate_groups(np.array([[0, 3]]), 3)

    def test_duplicate(self):
        with pytest.raises(rp.InvalidInput):
            rp.validate_replicate_groups(np.array([[0, 1], [1, -1]]), 3)


class TestReplicatePairs:
    """replicate_pairs."""

    def test_pairs_skip_sentinels(self):
        pairs = rp.replicate_pairs(np.array([[0, 1, -1], [2, 3, 4], [5, -1, -1]]))
        assert pairs == [(0, 1), (2, 3), (2, 4), (3, 4)]

    def test_pair_count(self):
        groups = rp.make_groups(np.repeat(['A', 'B', 'C'], 5))
        assert len(rp.replicate_pairs(groups)) == 30
