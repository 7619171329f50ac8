"""
Tests for block chaining.
Author: Rowel Facunla
"""

import pickle
import random

import pytest
from chainnet_pipeline.algorithms.chaining import (
    BlockGroup,
    assign_chain_ids,
    chain_group,
    group_blocks,
    merge_abutting_blocks,
)
from chainnet_pipeline.core.blocks import Block, ChainData, score_blocks
from chainnet_pipeline.core.errors import MalformedBlockError
from chainnet_pipeline.core.gap_cost import GapCost, gap_cost
from chainnet_pipeline.pipeline.main_pipeline import ChainSettings, run_chaining


def _group(blocks, strand='+'):
    return BlockGroup('chr1', 100000, 'qry1', 100000, strand, list(blocks))


def _random_blocks(rng, n, span=20000):
    blocks = {}
    while len(blocks) < n:
        size = rng.randrange(5, 80)
        t = rng.randrange(0, span - size)
        q = max(0, min(span - size, t + rng.randrange(-300, 300)))
        blocks[(t, q)] = Block(t, t + size, q, q + size, size * rng.randrange(20, 100))
    return list(blocks.values())


def test_two_block_scenario():
    """Two blocks joined across a 50/60 gap under affine(10, 1)."""
    group = _group([
        Block(0, 100, 0, 100, 100),
        Block(150, 250, 160, 260, 100),
    ])
    chains = chain_group(group, GapCost.affine(10, 1))

    assert len(chains) == 1
    chain = chains[0]
    assert chain.score == 130
    assert chain.data == [ChainData(100, 50, 60), ChainData(100, 0, 0)]
    assert (chain.t_start, chain.t_end, chain.q_start, chain.q_end) == (0, 250, 0, 260)


def test_expensive_gap_splits_chain():
    """A gap costing more than it gains leaves two chains."""
    group = _group([
        Block(0, 100, 0, 100, 100),
        Block(150, 250, 160, 260, 100),
    ])
    chains = chain_group(group, GapCost.affine(1000, 10))
    assert len(chains) == 2
    assert [c.score for c in chains] == [100, 100]
    assert chains[0].t_start == 0


def test_block_order_does_not_matter():
    """Blocks are sorted internally before the sweep."""
    blocks = [
        Block(150, 250, 160, 260, 100),
        Block(0, 100, 0, 100, 100),
    ]
    chains = chain_group(_group(blocks), GapCost.affine(10, 1))
    assert [c.score for c in chains] == [130]


def test_min_score_filter():
    """Chains below min_score are dropped."""
    group = _group([Block(0, 100, 0, 100, 100), Block(150, 250, 160, 260, 100)])
    assert chain_group(group, GapCost.affine(10, 1), min_score=200) == []
    assert len(chain_group(group, GapCost.affine(10, 1), min_score=130)) == 1


def test_empty_group():
    assert chain_group(_group([]), GapCost.medium()) == []


def test_malformed_block_reports_group_and_index():
    """A bad block names its group and position."""
    group = _group([
        Block(0, 100, 0, 100, 100),
        Block(200, 150, 200, 250, 100),
    ], strand='-')
    with pytest.raises(MalformedBlockError) as excinfo:
        chain_group(group, GapCost.medium())
    assert excinfo.value.group_key == ('chr1', 'qry1', '-')
    assert excinfo.value.block_index == 1


def test_length_mismatch_is_malformed():
    group = _group([Block(0, 100, 0, 90, 100)])
    with pytest.raises(MalformedBlockError):
        chain_group(group, GapCost.medium())


def test_block_beyond_sequence_is_malformed():
    group = BlockGroup('chr1', 50, 'qry1', 1000, '+', [Block(0, 100, 0, 100, 100)])
    with pytest.raises(MalformedBlockError):
        chain_group(group, GapCost.medium())


def test_malformed_error_pickles():
    """Errors cross process boundaries intact."""
    error = MalformedBlockError(('chr1', 'qry1', '+'), 3, "empty")
    copy = pickle.loads(pickle.dumps(error))
    assert copy.group_key == ('chr1', 'qry1', '+')
    assert copy.block_index == 3
    assert str(copy) == str(error)


def test_random_chains_monotonic_and_exact():
    """Every chain is ordered on both axes and its score is reconstructible."""
    rng = random.Random(11)
    for model in (GapCost.medium(), GapCost.loose(), GapCost.affine(400, 30)):
        blocks = _random_blocks(rng, 250)
        chains = chain_group(_group(blocks), model)
        assert chains

        for chain in chains:
            members = chain.to_blocks()
            for a, b in zip(members, members[1:]):
                assert a.t_end <= b.t_start
                assert a.q_end <= b.q_start
            expected = sum(b.score for b in members) - sum(
                gap_cost(model, b.t_start - a.t_end, b.q_start - a.q_end)
                for a, b in zip(members, members[1:])
            )
            assert chain.score == expected
            assert chain.score == score_blocks(members, model)
            assert chain.score > 0

        # each input block is used at most once
        used = [(b.t_start, b.q_start) for c in chains for b in c.to_blocks()]
        assert len(used) == len(set(used))
        assert [c.score for c in chains] == sorted((c.score for c in chains), reverse=True)


def test_max_gap_limits_links():
    """Blocks further apart than max_gap are not linked."""
    group = _group([Block(0, 100, 0, 100, 10000), Block(600, 700, 600, 700, 10000)])
    assert len(chain_group(group, GapCost.medium())) == 1
    assert len(chain_group(group, GapCost.medium(), max_gap=400)) == 2


def test_merge_abutting_blocks():
    """Blocks touching on both axes become one."""
    merged = merge_abutting_blocks([
        Block(0, 50, 10, 60, 5),
        Block(50, 80, 60, 90, 3),
        Block(90, 100, 95, 105, 1),
    ])
    assert len(merged) == 2
    assert (merged[0].t_start, merged[0].t_end, merged[0].q_start, merged[0].q_end) == (0, 80, 10, 90)
    assert merged[0].score == 8


def test_group_blocks():
    """Entries are partitioned by target, query and strand."""
    entries = [
        ('chr1', 1000, 'q1', 500, '+', [Block(0, 10, 0, 10, 1)]),
        ('chr1', 1000, 'q1', 500, '-', [Block(0, 10, 0, 10, 1)]),
        ('chr1', 1000, 'q1', 500, '+', [Block(20, 30, 20, 30, 1)]),
    ]
    groups = group_blocks(entries)
    assert list(groups) == [('chr1', 'q1', '+'), ('chr1', 'q1', '-')]
    assert len(groups[('chr1', 'q1', '+')].blocks) == 2
    assert groups[('chr1', 'q1', '-')].blocks[0].strand == '-'

    with pytest.raises(ValueError):
        group_blocks(entries + [('chr1', 999, 'q1', 500, '+', [])])


def test_assign_chain_ids():
    """Ids run from 1 in descending score order."""
    group = _group([
        Block(0, 100, 0, 100, 50),
        Block(5000, 5100, 9000, 9100, 300),
        Block(20000, 20100, 100, 200, 200),
    ])
    chains = assign_chain_ids(chain_group(group, GapCost.affine(10000, 100)))
    assert [c.id for c in chains] == [1, 2, 3]
    assert [c.score for c in chains] == [300, 200, 50]


def test_run_chaining_skip_and_abort():
    """A bad group is either skipped or fails the run."""
    good = _group([Block(0, 100, 0, 100, 100), Block(150, 250, 160, 260, 100)])
    bad = BlockGroup('chr2', 1000, 'qry1', 1000, '+', [Block(10, 10, 10, 10, 1)])
    groups = {good.key: good, bad.key: bad}
    settings = ChainSettings(gap_model=GapCost.affine(10, 1))

    chains = run_chaining(groups, settings, num_workers=1, on_bad_group='skip')
    assert [(c.id, c.score) for c in chains] == [(1, 130)]

    with pytest.raises(MalformedBlockError):
        run_chaining(groups, settings, num_workers=1, on_bad_group='abort')


if __name__ == "__main__":
    import sys
    sys.exit(pytest.main([__file__, "-v"]))
