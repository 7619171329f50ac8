"""
Removal of target overlap between chains of the same group.
Author: Rowel Facunla
"""

import logging
from collections import OrderedDict
from typing import List, Tuple

from intervaltree import IntervalTree

from ..core.blocks import Block, Chain, score_blocks
from ..core.errors import NetInvariantError
from ..core.gap_cost import GapCost

logger = logging.getLogger(__name__)


class IntervalSet:
    """Disjoint half-open intervals over an ``IntervalTree``, merged on insert."""

    def __init__(self):
        self.tree = IntervalTree()

    def __len__(self) -> int:
        return len(self.tree)

    def covered(self) -> int:
        return sum(iv.length() for iv in self.tree)

    def add(self, start: int, end: int):
        if end <= start:
            return
        # touching intervals merge too
        hits = self.tree.overlap(start - 1, end + 1)
        for iv in hits:
            start = min(start, iv.begin)
            end = max(end, iv.end)
            self.tree.remove(iv)
        self.tree.addi(start, end)

    def subtract(self, start: int, end: int) -> List[Tuple[int, int]]:
        """Parts of ``[start, end)`` not covered by the set."""
        if end <= start:
            return []
        pieces = []
        cur = start
        for iv in sorted(self.tree.overlap(start, end), key=lambda iv: iv.begin):
            if iv.begin > cur:
                pieces.append((cur, iv.begin))
            cur = max(cur, iv.end)
        if cur < end:
            pieces.append((cur, end))
        return pieces


def check_chain_monotonic(chain: Chain):
    """Raise NetInvariantError if a chain's own blocks overlap or go backwards."""
    blocks = chain.to_blocks()
    for a, b in zip(blocks, blocks[1:]):
        if b.t_start < a.t_end or b.q_start < a.q_end:
            raise NetInvariantError(
                f"Chain {chain.id} has overlapping blocks "
                f"[{a.t_start},{a.t_end})/[{a.q_start},{a.q_end}) and "
                f"[{b.t_start},{b.t_end})/[{b.q_start},{b.q_end})",
                state=chain,
            )


def _trim_group(
    chains: List[Chain],
    gap_model: GapCost,
    min_block_len: int,
    min_score: int,
) -> List[Chain]:
    covered = IntervalSet()
    kept: List[Chain] = []

    for chain in sorted(chains, key=lambda c: (-c.score, c.id)):
        check_chain_monotonic(chain)
        blocks = chain.to_blocks(gap_model)
        trimmed: List[Block] = []
        changed = False

        for b in blocks:
            pieces = covered.subtract(b.t_start, b.t_end)
            if pieces == [(b.t_start, b.t_end)]:
                trimmed.append(b)
                continue
            changed = True
            for start, end in pieces:
                if end - start < min_block_len:
                    continue
                trimmed.append(b.clip(start, end))

        if changed:
            if not trimmed:
                logger.debug(f"Chain {chain.id} fully overlapped by better chains, dropped")
                continue
            score = score_blocks(trimmed, gap_model)
            if score <= 0 or score < min_score:
                logger.debug(f"Chain {chain.id} score {chain.score} -> {score} after trimming, dropped")
                continue
            chain = chain.with_blocks(trimmed, score)

        for b in trimmed:
            covered.add(b.t_start, b.t_end)
        kept.append(chain)

    return kept


def trim_overlaps(
    chains: List[Chain],
    gap_model: GapCost,
    min_block_len: int = 1,
    min_score: int = 0,
) -> List[Chain]:
    """
    Clip lower-scoring chains where they reuse target bases of better chains.

    Chains are compared only within their (target, query, strand) group.
    A clipped block keeps the same offsets on both axes and a proportional
    share of its score; pieces shorter than ``min_block_len`` are dropped
    and the chain is re-scored against the widened gaps. Chains that are not
    touched are returned unchanged, so running this twice is a no-op.

    Args:
        chains: Chains from the chainer
        gap_model: Model used to re-score clipped chains
        min_block_len: Shortest block kept after clipping
        min_score: Clipped chains scoring below this are dropped

    Returns:
        Surviving chains, by descending score then id
    """
    groups = OrderedDict()
    for chain in chains:
        groups.setdefault(chain.group_key, []).append(chain)

    result: List[Chain] = []
    for key, members in groups.items():
        survivors = _trim_group(members, gap_model, min_block_len, min_score)
        if len(survivors) != len(members):
            logger.debug(f"Group {'/'.join(key)}: {len(members) - len(survivors)} chain(s) removed by trimming")
        result.extend(survivors)

    result.sort(key=lambda c: (-c.score, c.id, c.t_name, c.t_start))
    return result


__all__ = [
    'IntervalSet',
    'check_chain_monotonic',
    'trim_overlaps',
]
