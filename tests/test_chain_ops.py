"""
Tests for chain file operations, the pre-net filter and sequence scoring.
Author: Rowel Facunla
"""

import pytest
from chainnet_pipeline.algorithms.chain_ops import rescore_chain, sort_chains, stitch_chains, subset_chains
from chainnet_pipeline.algorithms.pre_net import CoverageMask, is_haplotype, pre_net_filter
from chainnet_pipeline.core.blocks import Block, Chain, score_blocks
from chainnet_pipeline.core.gap_cost import GapCost
from chainnet_pipeline.core.score_matrix import ScoreMatrix
from chainnet_pipeline.core.sequence_source import SequenceSource, score_block

T_SIZES = {'chr1': 1000}
Q_SIZES = {'qry1': 1000, 'qry2': 1000, 'qry1_hap1': 1000}


def _chain(blocks, score, chain_id, q_name='qry1', strand='+'):
    return Chain.from_blocks(blocks, score, 'chr1', 1000, q_name, 1000, strand, chain_id)


def test_sort_chains_renumbers():
    a = _chain([Block(0, 10, 0, 10, 10)], 10, 7)
    b = _chain([Block(20, 30, 20, 30, 50)], 50, 3)
    ordered = sort_chains([a, b])
    assert [(c.score, c.id) for c in ordered] == [(50, 1), (10, 2)]

    c = _chain([Block(0, 10, 0, 10, 10)], 10, 9)
    assert [x.id for x in sort_chains([c], renumber=False)] == [9]


def test_stitch_fragments():
    """Fragments sharing an id are joined in target order."""
    left = _chain([Block(0, 100, 0, 100, 1000)], 1000, 5)
    right = _chain([Block(200, 300, 250, 350, 1000)], 1000, 5)
    other = _chain([Block(500, 600, 500, 600, 10)], 10, 6)

    stitched = stitch_chains([right, other, left])
    assert [c.id for c in stitched] == [5, 6]
    chain = stitched[0]
    assert (chain.t_start, chain.t_end, chain.q_start, chain.q_end) == (0, 300, 0, 350)
    assert chain.score == 2000

    model = GapCost.affine(10, 1)
    rescored = stitch_chains([left, right], model)[0]
    assert rescored.score == 2000 - (10 + 150)


def test_stitch_rejects_bad_fragments():
    a = _chain([Block(0, 100, 0, 100, 1000)], 1000, 5)
    overlapping = _chain([Block(50, 150, 200, 300, 1000)], 1000, 5)
    with pytest.raises(ValueError):
        stitch_chains([a, overlapping])

    other_strand = _chain([Block(200, 300, 200, 300, 1000)], 1000, 5, strand='-')
    with pytest.raises(ValueError):
        stitch_chains([a, other_strand])


def test_subset_chains():
    """Chains are clipped to a target window."""
    model = GapCost.affine(10, 1)
    blocks = [Block(0, 100, 0, 100, 1000), Block(200, 300, 200, 300, 1000)]
    chain = _chain(blocks, score_blocks(blocks, model), 1)
    elsewhere = _chain([Block(600, 700, 600, 700, 1000)], 1000, 2)

    subset = subset_chains([chain, elsewhere], 'chr1', 50, 250, model)
    assert len(subset) == 1
    clipped = subset[0].to_blocks()
    assert [(b.t_start, b.t_end, b.q_start, b.q_end) for b in clipped] == [(50, 100, 50, 100), (200, 250, 200, 250)]
    assert subset[0].score == 500 + 500 - 110
    assert subset_chains([chain], 'chr2', 0, 1000) == []


def test_pre_net_filter():
    """Chains adding nothing new on either sequence are dropped."""
    best = _chain([Block(0, 100, 0, 100, 1000)], 1000, 1)
    shadow = _chain([Block(0, 100, 0, 100, 900)], 900, 2)
    new_query = _chain([Block(0, 100, 500, 600, 800)], 800, 3, q_name='qry2')
    hap = _chain([Block(300, 400, 300, 400, 700)], 700, 4, q_name='qry1_hap1')
    inside_pad = _chain([Block(1, 99, 1, 99, 600)], 600, 5)

    kept = pre_net_filter([best, shadow, new_query, hap, inside_pad], T_SIZES, Q_SIZES)
    assert [c.id for c in kept] == [1, 3]

    kept = pre_net_filter([best, shadow, new_query, hap], T_SIZES, Q_SIZES, include_haplotypes=True)
    assert [c.id for c in kept] == [1, 3, 4]

    with pytest.raises(ValueError):
        pre_net_filter([shadow, best], T_SIZES, Q_SIZES)


def test_coverage_mask():
    mask = CoverageMask({'chr1': 100})
    assert not mask.fully_covered('chr1', 0, 10)
    mask.cover('chr1', -5, 10)
    assert mask.fully_covered('chr1', 0, 10)
    assert mask.fully_covered('chr1', 95, 95)
    with pytest.raises(KeyError):
        mask.get('chrX')
    assert is_haplotype('chr6_hap2')
    assert is_haplotype('chr1_alt')
    assert not is_haplotype('chr1')


def test_score_matrices():
    """Preset matrices and matrix files."""
    default = ScoreMatrix.default()
    assert default.score('A', 'A') == 100
    assert default.score('a', 'G') == -100
    assert default.score('N', 'N') == -100

    hoxd = ScoreMatrix.hoxd55()
    assert hoxd.score('A', 'A') == 91
    assert hoxd.score('c', 'T') == -31
    assert hoxd.score_pair_arrays('ACGT', 'ACGA') == 91 + 100 + 100 - 123
    with pytest.raises(ValueError):
        hoxd.score_pair_arrays('AC', 'A')
    assert not hoxd.table.flags.writeable


def test_matrix_file(tmp_path):
    path = tmp_path / "matrix.txt"
    path.write_text(
        "# test matrix\n"
        "O = 600, E = 20\n"
        "   A    C    G    T\n"
        "  90 -330 -236 -356\n"
        "-330  100 -318 -236\n"
        "-236 -318  100 -330\n"
        "-356 -236 -330   90\n"
    )
    matrix = ScoreMatrix.from_config(str(path))
    assert matrix.score('A', 'A') == 90
    assert matrix.score('G', 'T') == -330
    assert (matrix.gap_open, matrix.gap_extend) == (600, 20)
    assert ScoreMatrix.from_config('hoxd55').name == 'hoxd55'


def test_sequence_source(tmp_path):
    """Strand-aware fetches and block scores."""
    source = SequenceSource({'chr1': 'aaaaccccgggg', 'qry1': 'CCCCGGGGTTTT'})
    assert source.fetch('chr1', 0, 4) == 'AAAA'
    assert source.fetch('qry1', 0, 4, '-') == 'AAAA'
    assert source.size('qry1') == 12
    assert 'chr1' in source
    with pytest.raises(ValueError):
        source.fetch('chr1', 10, 20)
    with pytest.raises(KeyError):
        source.fetch('chrX', 0, 1)

    block = Block(0, 4, 0, 4, 0, '-')
    assert score_block(block, 'chr1', 'qry1', source, source, ScoreMatrix.default()) == 400

    fasta = tmp_path / "seqs.fa"
    fasta.write_text(">chr1\nAAAACCCC\n>qry1\nGGGG\n")
    loaded = SequenceSource.from_fasta(str(fasta), names=['qry1'])
    assert loaded.names() == ['qry1']


def test_shared_names_score_against_each_genome(tmp_path):
    """Target and query genomes with the same sequence names stay apart."""
    t_fasta = tmp_path / "target.fa"
    t_fasta.write_text(">chr1\nAAAAAAAAAA\n")
    q_fasta = tmp_path / "query.fa"
    q_fasta.write_text(">chr1\nCCCCCCCCCC\n")

    target = SequenceSource.from_fasta(str(t_fasta))
    query = SequenceSource.from_fasta(str(q_fasta))
    block = Block(0, 10, 0, 10)
    assert score_block(block, 'chr1', 'chr1', target, query, ScoreMatrix.default()) == -1000

    # one source never silently overwrites a record
    with pytest.raises(ValueError):
        SequenceSource.from_fasta(str(t_fasta), str(q_fasta))


def test_rescore_chain():
    """Block scores are recomputed from sequence."""
    source = SequenceSource({'chr1': 'ACGT' * 250, 'qry1': 'ACGT' * 250})
    chain = _chain([Block(0, 8, 0, 8, 1), Block(12, 20, 12, 20, 1)], 1, 1)
    rescored = rescore_chain(chain, source, source, ScoreMatrix.default(), GapCost.affine(10, 1))
    assert [b.score for b in rescored.to_blocks()] == [800, 800]
    assert rescored.score == 1600 - 14


if __name__ == "__main__":
    import sys
    sys.exit(pytest.main([__file__, "-v"]))
