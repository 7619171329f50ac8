"""
Synteny classification of net fills.

Each fill is compared with the fill it sits under (the parent of its
parent gap):

    top     fill directly under the root gap
    syn     same query sequence and strand as the parent fill
    inv     same query sequence, opposite strand
    nonSyn  different query sequence

``qOver`` is the overlap of the two query ranges, ``qFar`` their distance
when they do not overlap, and ``qDup`` the number of query bases of the
fill that are covered by two or more fills across all nets.

Author: Rowel Facunla
"""

import logging
from collections import Counter
from typing import Dict, List, Optional, Tuple

from intervaltree import IntervalTree

from .netting import FILL, NetChrom, NetNode

logger = logging.getLogger(__name__)

TOP = 'top'
SYN = 'syn'
INV = 'inv'
NON_SYN = 'nonSyn'

DUP_DEPTH = 2


class QueryCoverage:
    """
    Fill depth along each query sequence. Fills add one, the gaps inside a
    fill take one away again.
    """

    def __init__(self):
        self._events: Dict[str, List[Tuple[int, int]]] = {}
        self._dups: Dict[str, IntervalTree] = {}

    def add(self, name: str, start: int, end: int, delta: int = 1):
        if name and start < end:
            self._events.setdefault(name, []).extend([(start, delta), (end, -delta)])

    def build(self):
        """Keep the segments covered at least ``DUP_DEPTH`` deep."""
        self._dups = {}
        for name, events in self._events.items():
            events.sort(key=lambda ev: ev[0])
            tree = IntervalTree()
            depth = 0
            for (pos, delta), (nxt, _) in zip(events, events[1:]):
                depth += delta
                if nxt > pos and depth >= DUP_DEPTH:
                    tree.addi(pos, nxt, depth)
            self._dups[name] = tree

    def count_dup(self, name: str, start: int, end: int) -> int:
        tree = self._dups.get(name)
        if tree is None:
            return 0
        return sum(min(iv.end, end) - max(iv.begin, start) for iv in tree.overlap(start, end))


def _collect(chrom: NetChrom, coverage: QueryCoverage):
    for _, idx, node in chrom.walk():
        if node.kind != FILL:
            continue
        coverage.add(node.q_name, node.q_start, node.q_end, 1)
        for g in chrom.live_children(idx):
            gap = chrom.nodes[g]
            coverage.add(node.q_name, gap.q_start, gap.q_end, -1)


def _classify_fill(node: NetNode, parent: Optional[NetNode], coverage: QueryCoverage):
    node.q_dup = coverage.count_dup(node.q_name, node.q_start, node.q_end)
    node.q_over = node.q_far = -1
    if parent is None:
        node.fill_type = TOP
    elif node.q_name != parent.q_name:
        node.fill_type = NON_SYN
    else:
        overlap = min(node.q_end, parent.q_end) - max(node.q_start, parent.q_start)
        if overlap > 0:
            node.q_over, node.q_far = overlap, 0
        else:
            node.q_over, node.q_far = 0, -overlap
        node.fill_type = SYN if node.q_strand == parent.q_strand else INV


def _classify_under(chrom: NetChrom, gap_idx: int, parent: Optional[NetNode], coverage: QueryCoverage):
    for f in chrom.live_children(gap_idx):
        fill = chrom.nodes[f]
        _classify_fill(fill, parent, coverage)
        for g in chrom.live_children(f):
            _classify_under(chrom, g, fill, coverage)


def classify_nets(nets: List[NetChrom]) -> List[NetChrom]:
    """
    Set type, qOver, qFar and qDup on every fill, in place.

    Duplication is counted over all of ``nets`` together, so pass every net
    of a genome at once.

    Returns:
        The same nets
    """
    coverage = QueryCoverage()
    for chrom in nets:
        _collect(chrom, coverage)
    coverage.build()

    counts = Counter()
    for chrom in nets:
        _classify_under(chrom, 0, None, coverage)
        counts.update(node.fill_type for node in chrom.fills())
    logger.info(f"Classified fills: {dict(counts)}")
    return nets


def classify_net(chrom: NetChrom) -> NetChrom:
    return classify_nets([chrom])[0]


__all__ = [
    'TOP',
    'SYN',
    'INV',
    'NON_SYN',
    'QueryCoverage',
    'classify_nets',
    'classify_net',
]
