"""
Tests for the k-d tree predecessor index.
Author: Rowel Facunla
"""

import random
from functools import partial

import pytest
from chainnet_pipeline.algorithms.kd_tree import KDTree
from chainnet_pipeline.core.gap_cost import GapCost, gap_cost


def _brute_best(points, scores, active, t_start, q_start, cost, max_gap=None, min_value=None):
    best = None
    for i in active:
        t, q = points[i]
        if t > t_start or q > q_start:
            continue
        dt, dq = t_start - t, q_start - q
        if max_gap is not None and (dt > max_gap or dq > max_gap):
            continue
        value = scores[i] - cost(dt, dq)
        if min_value is not None and value <= min_value:
            continue
        if best is None or value > best:
            best = value
    return best


def test_empty_tree():
    """Queries on an empty or inactive tree find nothing."""
    tree = KDTree([], [])
    assert len(tree) == 0
    assert tree.best_predecessor(10, 10, lambda dt, dq: 0) is None

    tree = KDTree([5, 6], [5, 6])
    assert tree.best_predecessor(100, 100, lambda dt, dq: 0) is None
    assert tree.compatible_points(100, 100) == []


def test_only_compatible_points():
    """A point ending after the query start is never returned."""
    tree = KDTree([10, 50], [10, 50])
    tree.insert(0, 100)
    tree.insert(1, 1000)
    hit = tree.best_predecessor(40, 40, lambda dt, dq: 0)
    assert hit is not None
    p, value, dt, dq = hit
    assert p == 0
    assert value == 100
    assert (dt, dq) == (30, 30)


def test_double_insert_rejected():
    """Each point is activated once."""
    tree = KDTree([1], [1])
    tree.insert(0, 5)
    assert tree.is_active(0)
    with pytest.raises(ValueError):
        tree.insert(0, 5)


def test_mismatched_arrays():
    with pytest.raises(ValueError):
        KDTree([1, 2], [1])


def test_tie_breaks_on_gap_then_insertion():
    """Equal values prefer the smaller gap, then the earlier insertion."""
    flat = lambda dt, dq: 0
    tree = KDTree([10, 20, 20], [10, 20, 20])
    tree.insert(0, 50)
    tree.insert(1, 50)
    tree.insert(2, 50)
    p, value, dt, dq = tree.best_predecessor(30, 30, flat)
    assert p == 1
    assert (dt, dq) == (10, 10)


def test_min_value_and_max_gap():
    """Thresholds filter candidates."""
    model = GapCost.affine(10, 1)
    cost = partial(gap_cost, model)
    tree = KDTree([0, 100], [0, 100])
    tree.insert(0, 30)
    tree.insert(1, 5)

    # point 1 is worth 5 - 11 < 0, point 0 is worth 30 - 111 < 0
    assert tree.best_predecessor(101, 101, cost, min_value=0) is None
    assert tree.best_predecessor(101, 101, cost)[0] == 1
    assert tree.best_predecessor(101, 101, cost, max_gap=50)[0] == 1
    assert tree.best_predecessor(200, 200, cost, max_gap=50) is None


def test_matches_brute_force():
    """Pruned search agrees with an exhaustive scan."""
    rng = random.Random(7)
    model = GapCost.medium()
    cost = partial(gap_cost, model)

    n = 300
    points = [(rng.randrange(0, 5000), rng.randrange(0, 5000)) for _ in range(n)]
    scores = [rng.randrange(0, 20000) for _ in range(n)]
    tree = KDTree([p[0] for p in points], [p[1] for p in points])

    active = []
    for i in rng.sample(range(n), n // 2):
        tree.insert(i, scores[i])
        active.append(i)
    assert len(tree) == len(active)

    for _ in range(200):
        t_start = rng.randrange(0, 5500)
        q_start = rng.randrange(0, 5500)
        for max_gap, min_value in ((None, None), (None, 0), (800, None)):
            expected = _brute_best(points, scores, active, t_start, q_start, cost, max_gap, min_value)
            hit = tree.best_predecessor(t_start, q_start, cost, max_gap=max_gap, min_value=min_value)
            if expected is None:
                assert hit is None
            else:
                p, value, dt, dq = hit
                assert value == expected
                assert points[p][0] <= t_start and points[p][1] <= q_start
                assert scores[p] - cost(dt, dq) == value


def test_compatible_points_order():
    """compatible_points lists active points in insertion order."""
    tree = KDTree([1, 2, 3, 50], [1, 2, 3, 50])
    tree.insert(2, 1)
    tree.insert(0, 1)
    tree.insert(3, 1)
    assert tree.compatible_points(10, 10) == [2, 0]


if __name__ == "__main__":
    import sys
    sys.exit(pytest.main([__file__, "-v"]))
