"""
Chaining of ungapped alignment blocks.

One DP per (target, query, strand) group. Blocks are swept in target order;
each block either extends the best compatible finished block or starts a
new chain. Chains are then peeled off from the highest-scoring ends.

Author: Rowel Facunla
"""

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Dict, Iterable, List, Optional, Tuple

from ..core.blocks import Block, Chain, GroupKey, score_blocks
from ..core.errors import MalformedBlockError
from ..core.gap_cost import GapCost, gap_cost
from .kd_tree import KDTree

logger = logging.getLogger(__name__)


# ================================================================
# GROUPS
# ================================================================
@dataclass
class BlockGroup:
    """All blocks between one target and one query sequence on one strand."""
    t_name: str
    t_size: int
    q_name: str
    q_size: int
    q_strand: str
    blocks: List[Block] = field(default_factory=list)

    @property
    def key(self) -> GroupKey:
        return (self.t_name, self.q_name, self.q_strand)


def group_blocks(
    entries: Iterable[Tuple[str, int, str, int, str, List[Block]]]
) -> Dict[GroupKey, BlockGroup]:
    """
    Partition block lists into chaining groups.

    Args:
        entries: (t_name, t_size, q_name, q_size, q_strand, blocks) tuples,
            typically one per aligner record

    Returns:
        Dict of group key -> BlockGroup, in first-seen order
    """
    groups: Dict[GroupKey, BlockGroup] = {}
    for t_name, t_size, q_name, q_size, q_strand, blocks in entries:
        key = (t_name, q_name, q_strand)
        group = groups.get(key)
        if group is None:
            group = BlockGroup(t_name, t_size, q_name, q_size, q_strand)
            groups[key] = group
        elif group.t_size != t_size or group.q_size != q_size:
            raise ValueError(
                f"Inconsistent sequence sizes for group {key}: "
                f"({group.t_size}, {group.q_size}) vs ({t_size}, {q_size})"
            )
        for b in blocks:
            group.blocks.append(b if b.strand == q_strand else Block(
                b.t_start, b.t_end, b.q_start, b.q_end, b.score, q_strand))
    return groups


def validate_group(group: BlockGroup):
    """Raise MalformedBlockError for the first unusable block of a group."""
    key = group.key
    for i, b in enumerate(group.blocks):
        b.validate(key, i)
        if group.t_size and b.t_end > group.t_size:
            raise MalformedBlockError(key, i, f"target end {b.t_end} beyond {group.t_name} size {group.t_size}")
        if group.q_size and b.q_end > group.q_size:
            raise MalformedBlockError(key, i, f"query end {b.q_end} beyond {group.q_name} size {group.q_size}")


# ================================================================
# DP CHAINING ENGINE
# ================================================================
def merge_abutting_blocks(blocks: List[Block]) -> List[Block]:
    """Join consecutive blocks separated by a zero-length gap on both axes."""
    merged: List[Block] = []
    for b in blocks:
        if merged and merged[-1].t_end == b.t_start and merged[-1].q_end == b.q_start:
            last = merged[-1]
            merged[-1] = Block(last.t_start, b.t_end, last.q_start, b.q_end, last.score + b.score, last.strand)
        else:
            merged.append(b)
    return merged


def chain_group(
    group: BlockGroup,
    gap_model: GapCost,
    min_score: int = 0,
    max_gap: Optional[int] = None,
) -> List[Chain]:
    """
    Chain one group's blocks.

    bestScore[b] = score(b) + max(0, max over compatible p of bestScore[p] - gap_cost(p, b))

    A predecessor p is compatible when p.t_end <= b.t_start and
    p.q_end <= b.q_start. Terminal blocks (nobody's predecessor) are
    backtracked in descending bestScore order; a backtrack stops at a block
    already claimed by a better chain, and such a truncated chain is
    re-scored exactly.

    Args:
        group: Blocks of one (target, query, strand) group
        gap_model: Gap cost strategy
        min_score: Chains scoring below this are dropped
        max_gap: Optional cap on dt and dq between linked blocks

    Returns:
        Chains sorted by descending score, ids left at 0
    """
    validate_group(group)

    n = len(group.blocks)
    if n == 0:
        return []

    order = sorted(range(n), key=lambda i: (group.blocks[i].t_start, group.blocks[i].q_start, i))
    blocks = [group.blocks[i] for i in order]

    tree = KDTree([b.t_end for b in blocks], [b.q_end for b in blocks])
    cost = partial(gap_cost, gap_model)

    best = [0] * n
    prev = [-1] * n
    for i, b in enumerate(blocks):
        hit = tree.best_predecessor(b.t_start, b.q_start, cost, max_gap=max_gap, min_value=0)
        if hit is None:
            best[i] = b.score
        else:
            p, value, _, _ = hit
            best[i] = b.score + value
            prev[i] = p
        tree.insert(i, best[i])

    # ------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------
    has_successor = [False] * n
    for p in prev:
        if p >= 0:
            has_successor[p] = True
    terminals = sorted((i for i in range(n) if not has_successor[i]), key=lambda i: (-best[i], i))

    used = [False] * n
    chains: List[Chain] = []
    for term in terminals:
        if best[term] < min_score or best[term] <= 0:
            break

        path = []
        j = term
        while j >= 0 and not used[j]:
            used[j] = True
            path.append(j)
            j = prev[j]
        path.reverse()
        members = [blocks[k] for k in path]

        score = best[term] if j < 0 else score_blocks(members, gap_model)
        if score < min_score or score <= 0:
            continue

        chains.append(Chain.from_blocks(
            merge_abutting_blocks(members), score,
            group.t_name, group.t_size, group.q_name, group.q_size, group.q_strand,
        ))

    chains.sort(key=lambda c: (-c.score, c.t_start, c.q_start))
    logger.debug(f"Group {'/'.join(group.key)}: {n} blocks -> {len(chains)} chains")
    return chains


def assign_chain_ids(chains: List[Chain], start: int = 1) -> List[Chain]:
    """
    Order chains by descending score and number them from ``start``.
    Ties fall back to target then query position so numbering is stable.
    """
    ordered = sorted(
        chains,
        key=lambda c: (-c.score, c.t_name, c.t_start, c.q_name, c.q_strand, c.q_start),
    )
    for offset, chain in enumerate(ordered):
        chain.id = start + offset
    return ordered


__all__ = [
    'BlockGroup',
    'group_blocks',
    'validate_group',
    'merge_abutting_blocks',
    'chain_group',
    'assign_chain_ids',
]
