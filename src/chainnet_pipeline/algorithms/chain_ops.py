"""
Whole-file chain operations: sort, stitch, subset and re-score.
Author: Rowel Facunla
"""

import logging
from collections import OrderedDict
from typing import Iterable, List, Optional

from ..core.blocks import Block, Chain, score_blocks
from ..core.gap_cost import GapCost
from ..core.score_matrix import ScoreMatrix
from ..core.sequence_source import SequenceSource, score_block

logger = logging.getLogger(__name__)


def sort_chains(chains: Iterable[Chain], renumber: bool = True) -> List[Chain]:
    """Descending score; with ``renumber`` the ids become 1..n in that order."""
    ordered = sorted(chains, key=lambda c: (-c.score, c.t_name, c.t_start, c.id))
    if renumber:
        for i, chain in enumerate(ordered, start=1):
            chain.id = i
    return ordered


def stitch_chains(chains: Iterable[Chain], gap_model: Optional[GapCost] = None) -> List[Chain]:
    """
    Join chain fragments that carry the same id.

    Fragments must share target, query and strand. Their blocks are merged
    in target order. The stitched score is re-computed with ``gap_model``
    when given, else the fragment scores are summed.

    Returns:
        One chain per id, in order of first appearance
    """
    by_id = OrderedDict()
    for chain in chains:
        by_id.setdefault(chain.id, []).append(chain)

    result = []
    for chain_id, parts in by_id.items():
        if len(parts) == 1:
            result.append(parts[0])
            continue

        first = parts[0]
        for other in parts[1:]:
            if other.group_key != first.group_key:
                raise ValueError(
                    f"Chain {chain_id} fragments disagree on sequences/strand: "
                    f"{first.group_key} vs {other.group_key}"
                )

        blocks: List[Block] = []
        for part in parts:
            blocks.extend(part.to_blocks(gap_model))
        blocks.sort(key=lambda b: (b.t_start, b.q_start))
        for a, b in zip(blocks, blocks[1:]):
            if b.t_start < a.t_end or b.q_start < a.q_end:
                raise ValueError(f"Chain {chain_id} fragments overlap at target {b.t_start}")

        score = score_blocks(blocks, gap_model) if gap_model else sum(p.score for p in parts)
        logger.debug(f"Stitched {len(parts)} fragments of chain {chain_id}")
        result.append(first.with_blocks(blocks, score))
    return result


def subset_chains(
    chains: Iterable[Chain],
    t_name: str,
    t_start: int,
    t_end: int,
    gap_model: Optional[GapCost] = None,
) -> List[Chain]:
    """Clip every chain on ``t_name`` to ``[t_start, t_end)``, dropping chains outside it."""
    result = []
    for chain in chains:
        if chain.t_name != t_name or chain.t_end <= t_start or chain.t_start >= t_end:
            continue
        sub = chain.subset(t_start, t_end, gap_model)
        if sub is not None:
            result.append(sub)
    return result


def rescore_chain(
    chain: Chain,
    t_source: SequenceSource,
    q_source: SequenceSource,
    matrix: ScoreMatrix,
    gap_model: GapCost,
) -> Chain:
    """Recompute block scores from sequence and the chain score from them."""
    blocks = []
    for b in chain.to_blocks():
        blocks.append(Block(b.t_start, b.t_end, b.q_start, b.q_end,
                            score_block(b, chain.t_name, chain.q_name, t_source, q_source, matrix), b.strand))
    return chain.with_blocks(blocks, score_blocks(blocks, gap_model))


__all__ = [
    'sort_chains',
    'stitch_chains',
    'subset_chains',
    'rescore_chain',
]
