"""
Replicate groups for ruvPython.

A replicate-group matrix has one row per replicate set (samples of the
same biological condition, usually within one batch) and one column per
replicate slot. Sets shorter than the widest one are padded with the
sentinel ``-1``, which carries no data.
"""

import itertools

import numpy as np
import pandas as pd

from .errors import InvalidInput

ABSENT = -1


def make_groups(labels):
    """Replicate-group matrix with one set per distinct label.

    Sets follow the order in which labels first appear; members keep
    sample order.

    Examples
    --------
    >>> make_groups(['a', 'a', 'b', 'b', 'b'])
    array([[ 0,  1, -1],
           [ 2,  3,  4]])
    """
    labels = pd.Series(np.asarray(labels, dtype=object))
    if len(labels) == 0:
        raise InvalidInput("no sample labels given")
    if labels.isna().any():
        raise InvalidInput("every sample needs a label")
    sets = [list(np.where(labels.values == lab)[0]) for lab in pd.unique(labels)]
    return _pad(sets)


def make_replicate_groups(mapping, samples):
    """Replicate-group matrix from a declarative mapping.

    Parameters
    ----------
    mapping : dict
        ``{(batch, condition): [members]}`` (any hashable key works). Members
        are sample ids or integer sample positions.
    samples : int, sequence of str, DataFrame or DGEList
        The sample manifest: a sample count, the list of sample ids, a
        metadata table indexed by sample id, or a DGEList.

    Returns
    -------
    ndarray of int, rows in mapping order.
    """
    names = _sample_names(samples)
    nsamples = len(names) if names is not None else int(samples)
    lookup = {name: pos for pos, name in enumerate(names)} if names is not None else {}

    if len(mapping) == 0:
        raise InvalidInput("replicate mapping is empty")

    sets = []
    for key, members in mapping.items():
        positions = []
        for m in members:
            if isinstance(m, (int, np.integer)):
                if m < 0:
                    raise InvalidInput(f"replicate set {key!r}: negative sample index {m}")
                positions.append(int(m))
            elif str(m) in lookup:
                positions.append(lookup[str(m)])
            else:
                raise InvalidInput(f"replicate set {key!r}: unknown sample '{m}'")
        sets.append(positions)

    groups = _pad(sets)
    validate_replicate_groups(groups, nsamples)
    return groups


def combine_replicate_groups(*groups, nsamples=None):
    """Stack replicate-group matrices of different widths.

    Used to align batches with different replicate counts into one
    design; shorter rows are padded with ``-1``.
    """
    sets = []
    for g in groups:
        g = np.atleast_2d(np.asarray(g, dtype=int))
        sets.extend([[int(v) for v in row if v != ABSENT] for row in g])
    combined = _pad(sets)
    validate_replicate_groups(combined, nsamples)
    return combined


def validate_replicate_groups(groups, nsamples=None):
    """Check that real indices are in range and appear at most once."""
    groups = np.atleast_2d(np.asarray(groups))
    if groups.size == 0:
        raise InvalidInput("replicate groups are empty")
    if not np.issubdtype(groups.dtype, np.integer):
        raise InvalidInput("replicate groups must hold integer sample indices")

    real = groups[groups != ABSENT]
    if np.any(real < 0):
        raise InvalidInput(f"negative sample index {int(real[real < 0][0])} in replicate groups")
    if nsamples is not None and np.any(real >= nsamples):
        bad = int(real[real >= nsamples][0])
        raise InvalidInput(f"sample index {bad} out of range for {nsamples} samples")
    values, counts = np.unique(real, return_counts=True)
    if np.any(counts > 1):
        raise InvalidInput(f"sample index {int(values[counts > 1][0])} appears in more than one replicate slot")
    return groups


def replicate_pairs(groups):
    """All within-set pairs of real members, as (first, second) index tuples.

    Sentinel entries never pair; sets with fewer than two real members
    contribute nothing.
    """
    groups = np.atleast_2d(np.asarray(groups, dtype=int))
    pairs = []
    for row in groups:
        members = [int(v) for v in row if v != ABSENT]
        pairs.extend(itertools.combinations(members, 2))
    return pairs


def _pad(sets):
    width = max((len(s) for s in sets), default=0)
    if width == 0:
        raise InvalidInput("replicate sets are empty")
    out = np.full((len(sets), width), ABSENT, dtype=int)
    for i, s in enumerate(sets):
        out[i, :len(s)] = s
    return out


def _sample_names(samples):
    if isinstance(samples, dict) and 'samples' in samples:
        return [str(s) for s in samples['samples'].index]
    if isinstance(samples, pd.DataFrame):
        return [str(s) for s in samples.index]
    if isinstance(samples, (int, np.integer)):
        return None
    return [str(s) for s in samples]
