"""
Net construction: a fill/gap hierarchy of chains on each target sequence,
or on each query sequence for the query-side net.

The tree is stored as an arena, a flat list of ``NetNode`` records linked
by parent and child indices. Node 0 is always the root gap ``[0, t_size)``.
For a query-side net ``t_name``/``t_size`` name the query sequence and the
``q_*`` fields of each node describe the target side.

Author: Rowel Facunla
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from intervaltree import Interval, IntervalTree

from ..core.blocks import Chain
from ..core.errors import ConfigurationError, NetInvariantError

logger = logging.getLogger(__name__)

DEFAULT_MIN_SPACE = 25

GAP = 'gap'
FILL = 'fill'


# ================================================================
# ARENA
# ================================================================
@dataclass
class NetNode:
    kind: str
    start: int
    end: int
    parent: int = -1
    children: List[int] = field(default_factory=list)
    # other side; forward-strand coordinates
    q_name: str = ''
    q_strand: str = '+'
    q_start: int = 0
    q_end: int = 0
    # fills only
    chain_id: int = 0
    score: int = 0
    ali: int = 0
    # set by syntenic classification, -1 / '' when unknown
    q_over: int = -1
    q_far: int = -1
    q_dup: int = -1
    fill_type: str = ''
    pruned: bool = False

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def q_length(self) -> int:
        return self.q_end - self.q_start


@dataclass(eq=False)
class NetChrom:
    t_name: str
    t_size: int
    nodes: List[NetNode] = field(default_factory=list)

    def __post_init__(self):
        if not self.nodes:
            self.nodes.append(NetNode(GAP, 0, self.t_size))

    @property
    def root(self) -> NetNode:
        return self.nodes[0]

    def add_node(self, node: NetNode) -> int:
        idx = len(self.nodes)
        self.nodes.append(node)
        if node.parent >= 0:
            self.nodes[node.parent].children.append(idx)
        return idx

    def live_children(self, idx: int) -> List[int]:
        kids = [c for c in self.nodes[idx].children if not self.nodes[c].pruned]
        return sorted(kids, key=lambda c: self.nodes[c].start)

    def walk(self, idx: int = 0, depth: int = 0):
        """Yield ``(depth, index, node)`` in pre-order, children by start."""
        yield depth, idx, self.nodes[idx]
        for c in self.live_children(idx):
            yield from self.walk(c, depth + 1)

    def fills(self) -> List[NetNode]:
        return [node for _, _, node in self.walk() if node.kind == FILL]

    def canonical(self, idx: int = 0) -> Tuple:
        node = self.nodes[idx]
        if node.kind == FILL:
            head = (FILL, node.start, node.end, node.q_name, node.q_strand, node.q_start,
                    node.q_end, node.chain_id, node.score, node.ali,
                    node.q_over, node.q_far, node.q_dup, node.fill_type)
        elif idx == 0:
            head = (GAP, node.start, node.end)
        else:
            head = (GAP, node.start, node.end, node.q_name, node.q_strand, node.q_start, node.q_end)
        return head + (tuple(self.canonical(c) for c in self.live_children(idx)),)

    def __eq__(self, other) -> bool:
        if not isinstance(other, NetChrom):
            return NotImplemented
        return (self.t_name, self.t_size, self.canonical()) == (other.t_name, other.t_size, other.canonical())

    def dump(self) -> str:
        lines = [f"NetChrom {self.t_name} size={self.t_size} nodes={len(self.nodes)}"]
        for i, node in enumerate(self.nodes):
            lines.append(
                f"  #{i} {node.kind} [{node.start},{node.end}) parent={node.parent} "
                f"children={node.children} chain={node.chain_id} pruned={node.pruned}"
            )
        return "\n".join(lines)


def resolve_thresholds(min_space: Optional[int], min_fill: Optional[int]) -> Tuple[int, int]:
    """Apply defaults and reject inconsistent thresholds."""
    if min_space is None:
        min_space = DEFAULT_MIN_SPACE
    if min_fill is None:
        min_fill = min_space // 2
    if min_space < 0 or min_fill < 0:
        raise ConfigurationError(f"Net thresholds must be non-negative (min_space={min_space}, min_fill={min_fill})")
    if min_fill > min_space:
        raise ConfigurationError(f"min_fill ({min_fill}) must not exceed min_space ({min_space})")
    return min_space, min_fill


class Span(NamedTuple):
    """A block seen from the net's sequence: ``[start, end)`` there, ``[o_start, o_end)`` on the other side."""
    start: int
    end: int
    o_start: int
    o_end: int


def clip_span(span: Span, start: int, end: int, reverse: bool) -> Optional[Span]:
    """
    Restrict a span to ``[start, end)`` on the net axis. With ``reverse``
    the other side runs backwards inside the span.
    """
    cs = max(span.start, start)
    ce = min(span.end, end)
    if ce <= cs:
        return None
    if reverse:
        return Span(cs, ce, span.o_end - (ce - span.start), span.o_end - (cs - span.start))
    return Span(cs, ce, span.o_start + (cs - span.start), span.o_start + (ce - span.start))


def chain_spans(chain: Chain, on_query: bool = False) -> List[Span]:
    """
    Blocks of ``chain`` on the net axis, in axis order, with forward-strand
    coordinates on both sides.
    """
    spans = []
    for b in chain.to_blocks():
        if chain.q_strand == '-':
            q_start, q_end = chain.q_size - b.q_end, chain.q_size - b.q_start
        else:
            q_start, q_end = b.q_start, b.q_end
        if on_query:
            spans.append(Span(q_start, q_end, b.t_start, b.t_end))
        else:
            spans.append(Span(b.t_start, b.t_end, q_start, q_end))
    if on_query and chain.q_strand == '-':
        spans.reverse()
    return spans


def fill_score(score: int, ali: int, total_ali: int) -> int:
    """``score * ali / total_ali`` rounded half up, in integers."""
    if not total_ali:
        return 0
    return (score * ali * 2 + total_ali) // (2 * total_ali)


# ================================================================
# BUILDER
# ================================================================
class NetBuilder:
    """
    Inserts chains, best first, into the free space of one sequence.

    Free space is an ``IntervalTree`` of disjoint intervals whose data is
    the index of the gap node each belongs to. A chain claims the part of
    a free interval spanned by its blocks if that part is at least
    ``min_space`` long.
    """

    def __init__(
        self,
        t_name: str,
        t_size: int,
        min_space: Optional[int] = None,
        min_fill: Optional[int] = None,
        on_query: bool = False,
    ):
        self.min_space, self.min_fill = resolve_thresholds(min_space, min_fill)
        self.on_query = on_query
        self.chrom = NetChrom(t_name, t_size)
        self._spaces = IntervalTree()
        self._add_space(0, t_size, 0)
        self.rejected = 0

    # ------------------------------------------------------------
    # Free space index
    # ------------------------------------------------------------
    def _add_space(self, start: int, end: int, gap_idx: int):
        if end > start and end - start >= self.min_space:
            self._spaces.addi(start, end, gap_idx)

    def spaces_overlapping(self, start: int, end: int) -> List[Interval]:
        return sorted(self._spaces.overlap(start, end), key=lambda iv: iv.begin)

    # ------------------------------------------------------------
    # Chain insertion
    # ------------------------------------------------------------
    def add_chain(self, chain: Chain):
        name = chain.q_name if self.on_query else chain.t_name
        if name != self.chrom.t_name:
            raise ValueError(f"Chain {chain.id} is on {name}, not {self.chrom.t_name}")

        spans = chain_spans(chain, self.on_query)
        if not spans:
            return
        lo, hi = spans[0].start, spans[-1].end
        if lo < 0 or hi > self.chrom.t_size:
            raise ValueError(
                f"Chain {chain.id} span [{lo}, {hi}) outside "
                f"{self.chrom.t_name} (size {self.chrom.t_size})"
            )

        reverse = chain.q_strand == '-'
        total_ali = chain.aligned_bases()
        for space in self.spaces_overlapping(lo, hi):
            clipped = []
            for sp in spans:
                if sp.end <= space.begin:
                    continue
                if sp.start >= space.end:
                    break
                piece = clip_span(sp, space.begin, space.end, reverse)
                if piece is not None:
                    clipped.append(piece)
            if not clipped:
                continue
            if clipped[-1].end - clipped[0].start < self.min_space:
                self.rejected += 1
                continue
            self._fill_space(chain, space, clipped, total_ali)

    def _fill_space(self, chain: Chain, space: Interval, clipped: List[Span], total_ali: int):
        s, e = clipped[0].start, clipped[-1].end
        gap_idx = space.data
        self._spaces.remove(space)

        other = chain.t_name if self.on_query else chain.q_name
        ali = sum(sp.end - sp.start for sp in clipped)
        first, last = clipped[0], clipped[-1]
        fill_idx = self.chrom.add_node(NetNode(
            FILL, s, e, parent=gap_idx,
            q_name=other, q_strand=chain.q_strand,
            q_start=min(first.o_start, last.o_start), q_end=max(first.o_end, last.o_end),
            chain_id=chain.id,
            score=fill_score(chain.score, ali, total_ali),
            ali=ali,
        ))

        self._add_space(space.begin, s, gap_idx)
        self._add_space(e, space.end, gap_idx)

        for a, b in zip(clipped, clipped[1:]):
            if b.start <= a.end:
                continue
            child = self.chrom.add_node(NetNode(
                GAP, a.end, b.start, parent=fill_idx,
                q_name=other, q_strand=chain.q_strand,
                q_start=min(a.o_end, b.o_end), q_end=max(a.o_start, b.o_start),
            ))
            self._add_space(a.end, b.start, child)

    # ------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------
    def prune(self) -> int:
        """Unlink gaps shorter than ``min_fill``. Returns how many were removed."""
        removed = 0
        for idx, node in enumerate(self.chrom.nodes):
            if idx == 0 or node.kind != GAP or node.pruned:
                continue
            if node.length < self.min_fill:
                if any(not self.chrom.nodes[c].pruned for c in node.children):
                    raise NetInvariantError(
                        f"Gap #{idx} shorter than min_fill has fills inside", state=self.chrom.dump()
                    )
                node.pruned = True
                removed += 1
        for node in self.chrom.nodes:
            node.children = [c for c in node.children if not self.chrom.nodes[c].pruned]
            node.children.sort(key=lambda c: self.chrom.nodes[c].start)
        return removed

    def finish(self) -> NetChrom:
        removed = self.prune()
        check_net(self.chrom)
        logger.debug(
            f"Net {self.chrom.t_name}: {len(self.chrom.fills())} fills, "
            f"{self.rejected} regions below min_space, {removed} gaps below min_fill"
        )
        return self.chrom


def check_net(chrom: NetChrom):
    """
    Verify containment, ordering and alternation of every live node.

    Raises:
        NetInvariantError: with a dump of the arena
    """
    root = chrom.root
    if root.kind != GAP or root.start != 0 or root.end != chrom.t_size:
        raise NetInvariantError(f"Root of {chrom.t_name} is not a gap over [0, {chrom.t_size})", state=chrom.dump())

    for depth, idx, node in chrom.walk():
        if node.end < node.start:
            raise NetInvariantError(f"Node #{idx} has negative length", state=chrom.dump())
        prev_end = node.start
        for c in chrom.live_children(idx):
            child = chrom.nodes[c]
            if child.parent != idx:
                raise NetInvariantError(f"Node #{c} parent link {child.parent} != {idx}", state=chrom.dump())
            if child.kind == node.kind:
                raise NetInvariantError(f"Node #{c} has the same kind as its parent #{idx}", state=chrom.dump())
            if child.start < prev_end or child.end > node.end:
                raise NetInvariantError(
                    f"Node #{c} [{child.start},{child.end}) overlaps a sibling or leaves "
                    f"parent #{idx} [{node.start},{node.end})",
                    state=chrom.dump(),
                )
            prev_end = child.end


def build_net(
    t_name: str,
    t_size: int,
    chains: Iterable[Chain],
    min_space: Optional[int] = None,
    min_fill: Optional[int] = None,
    on_query: bool = False,
) -> NetChrom:
    """
    Build the net of one sequence.

    Chains on other sequences are ignored. Processing order is descending
    score, ties by chain id, whatever order the chains arrive in.

    Args:
        t_name: Sequence name (a query name when ``on_query``)
        t_size: Sequence length
        chains: Candidate chains
        min_space: Shortest region a chain may fill (default 25)
        min_fill: Shortest gap kept after pruning (default min_space // 2)
        on_query: Build the query-side net, keyed on forward-strand query coordinates

    Returns:
        NetChrom
    """
    builder = NetBuilder(t_name, t_size, min_space, min_fill, on_query)
    mine = (c for c in chains if (c.q_name if on_query else c.t_name) == t_name)
    for chain in sorted(mine, key=lambda c: (-c.score, c.id)):
        builder.add_chain(chain)
    return builder.finish()


def build_nets(
    chains: List[Chain],
    sizes: Optional[Dict[str, int]] = None,
    min_space: Optional[int] = None,
    min_fill: Optional[int] = None,
    on_query: bool = False,
) -> List[NetChrom]:
    """One net per sequence that has at least one chain, in sizes-file order."""
    by_name: Dict[str, List[Chain]] = {}
    for chain in chains:
        by_name.setdefault(chain.q_name if on_query else chain.t_name, []).append(chain)

    nets = []
    for name in net_order(by_name, sizes):
        first = by_name[name][0]
        size = (sizes or {}).get(name, first.q_size if on_query else first.t_size)
        nets.append(build_net(name, size, by_name[name], min_space, min_fill, on_query))
    return nets


def net_order(names: Iterable[str], sizes: Optional[Dict[str, int]] = None) -> List[str]:
    """Names in sizes-file order, unknown names sorted after them."""
    present = set(names)
    if not sizes:
        return sorted(present)
    ordered = [name for name in sizes if name in present]
    return ordered + sorted(name for name in present if name not in sizes)


def filter_net(chrom: NetChrom, min_score: int = 0, min_ali: int = 0) -> NetChrom:
    """Copy of ``chrom`` without fills (and their subtrees) below the thresholds."""
    result = copy.deepcopy(chrom)

    def drop(idx: int):
        result.nodes[idx].pruned = True
        for c in result.nodes[idx].children:
            drop(c)

    for _, idx, node in list(result.walk()):
        if node.kind == FILL and not node.pruned and (node.score < min_score or node.ali < min_ali):
            drop(idx)
    for node in result.nodes:
        node.children = [c for c in node.children if not result.nodes[c].pruned]
    return result


__all__ = [
    'DEFAULT_MIN_SPACE',
    'GAP',
    'FILL',
    'NetNode',
    'NetChrom',
    'Span',
    'NetBuilder',
    'resolve_thresholds',
    'clip_span',
    'chain_spans',
    'fill_score',
    'check_net',
    'build_net',
    'build_nets',
    'net_order',
    'filter_net',
]
