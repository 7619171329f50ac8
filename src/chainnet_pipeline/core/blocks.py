"""
Block and chain records shared by every pipeline stage.
Author: Rowel Facunla
"""

from dataclasses import dataclass, field
from typing import Iterator, List, NamedTuple, Optional, Tuple

from .errors import MalformedBlockError
from .gap_cost import GapCost, gap_cost

# (t_name, q_name, q_strand)
GroupKey = Tuple[str, str, str]

# Score given to each aligned base when no sequence is available to re-score
DEFAULT_BASE_SCORE = 100


# ================================================================
# BLOCK
# ================================================================
@dataclass
class Block:
    t_start: int
    t_end: int
    q_start: int      # query-strand-relative
    q_end: int
    score: int = 0
    strand: str = '+'

    @property
    def t_len(self) -> int:
        return self.t_end - self.t_start

    @property
    def q_len(self) -> int:
        return self.q_end - self.q_start

    @property
    def size(self) -> int:
        return self.t_end - self.t_start

    def validate(self, group_key: Optional[GroupKey] = None, index: int = 0):
        """Raise MalformedBlockError unless this is a usable ungapped block."""
        if self.t_start < 0 or self.q_start < 0:
            raise MalformedBlockError(group_key, index, f"negative coordinate in {self}")
        if self.t_end <= self.t_start:
            raise MalformedBlockError(
                group_key, index, f"target interval [{self.t_start}, {self.t_end}) is empty or inverted"
            )
        if self.q_end <= self.q_start:
            raise MalformedBlockError(
                group_key, index, f"query interval [{self.q_start}, {self.q_end}) is empty or inverted"
            )
        if self.t_len != self.q_len:
            raise MalformedBlockError(
                group_key, index, f"ungapped block has target length {self.t_len} but query length {self.q_len}"
            )
        if self.strand not in ('+', '-'):
            raise MalformedBlockError(group_key, index, f"unknown strand '{self.strand}'")

    def clip(self, t_start: int, t_end: int) -> Optional['Block']:
        """
        Restrict the block to a target window, shifting the query side by the
        same offsets. The score shrinks in proportion to the kept length.
        Returns None when nothing is left.
        """
        start = max(self.t_start, t_start)
        end = min(self.t_end, t_end)
        if end <= start:
            return None
        if start == self.t_start and end == self.t_end:
            return Block(self.t_start, self.t_end, self.q_start, self.q_end, self.score, self.strand)
        offset = start - self.t_start
        length = end - start
        return Block(
            t_start=start,
            t_end=end,
            q_start=self.q_start + offset,
            q_end=self.q_start + offset + length,
            score=self.score * length // self.size,
            strand=self.strand,
        )


class ChainData(NamedTuple):
    """One body line of a chain: ungapped size then the gap to the next block."""
    size: int
    dt: int = 0
    dq: int = 0


# ================================================================
# CHAIN
# ================================================================
@dataclass
class Chain:
    score: int
    t_name: str
    t_size: int
    t_start: int
    t_end: int
    q_name: str
    q_size: int
    q_strand: str
    q_start: int
    q_end: int
    id: int
    data: List[ChainData] = field(default_factory=list)
    # Per-block scores when known (chainer output); empty after parsing text
    block_scores: List[int] = field(default_factory=list, compare=False, repr=False)

    @property
    def group_key(self) -> GroupKey:
        return (self.t_name, self.q_name, self.q_strand)

    @property
    def t_span(self) -> int:
        return self.t_end - self.t_start

    def aligned_bases(self) -> int:
        return sum(d.size for d in self.data)

    def gap_pairs(self) -> Iterator[Tuple[int, int]]:
        """Internal (dt, dq) pairs, one per gap between consecutive blocks."""
        for d in self.data[:-1]:
            yield d.dt, d.dq

    def to_blocks(self, gap_model: Optional[GapCost] = None) -> List[Block]:
        """
        Expand the body into absolute blocks.

        When per-block scores were not recorded, the chain score plus the
        cost of its internal gaps is spread over the blocks in proportion to
        their length so that the block scores still reconstruct the header
        score under ``gap_model``.
        """
        scores = list(self.block_scores)
        if len(scores) != len(self.data):
            scores = self._estimate_block_scores(gap_model)

        blocks = []
        t_pos = self.t_start
        q_pos = self.q_start
        for d, score in zip(self.data, scores):
            blocks.append(Block(t_pos, t_pos + d.size, q_pos, q_pos + d.size, score, self.q_strand))
            t_pos += d.size + d.dt
            q_pos += d.size + d.dq
        return blocks

    def _estimate_block_scores(self, gap_model: Optional[GapCost]) -> List[int]:
        if not self.data:
            return []
        total = self.score
        if gap_model is not None:
            total += sum(gap_cost(gap_model, dt, dq) for dt, dq in self.gap_pairs())
        ali = self.aligned_bases()
        scores = [total * d.size // ali for d in self.data]
        scores[-1] += total - sum(scores)
        return scores

    @classmethod
    def from_blocks(
        cls,
        blocks: List[Block],
        score: int,
        t_name: str,
        t_size: int,
        q_name: str,
        q_size: int,
        q_strand: str,
        chain_id: int = 0,
    ) -> 'Chain':
        """Build a chain from blocks already ordered on both axes."""
        if not blocks:
            raise ValueError("Cannot build a chain without blocks")

        data = []
        for i, b in enumerate(blocks):
            if i + 1 < len(blocks):
                nxt = blocks[i + 1]
                data.append(ChainData(b.size, nxt.t_start - b.t_end, nxt.q_start - b.q_end))
            else:
                data.append(ChainData(b.size, 0, 0))

        return cls(
            score=score,
            t_name=t_name,
            t_size=t_size,
            t_start=blocks[0].t_start,
            t_end=blocks[-1].t_end,
            q_name=q_name,
            q_size=q_size,
            q_strand=q_strand,
            q_start=blocks[0].q_start,
            q_end=blocks[-1].q_end,
            id=chain_id,
            data=data,
            block_scores=[b.score for b in blocks],
        )

    def with_blocks(self, blocks: List[Block], score: int) -> 'Chain':
        """Copy of this chain's header with a new block list and score."""
        return Chain.from_blocks(
            blocks, score, self.t_name, self.t_size,
            self.q_name, self.q_size, self.q_strand, self.id,
        )

    def subset(self, t_start: int, t_end: int, gap_model: Optional[GapCost] = None) -> Optional['Chain']:
        """
        Part of the chain inside the target window ``[t_start, t_end)``.

        The score of the subset is the block scores inside the window minus
        the gaps kept between them (exact when ``gap_model`` is the model
        the chain was built with). Returns None when the window misses the
        chain entirely.
        """
        kept = []
        for b in self.to_blocks(gap_model):
            clipped = b.clip(t_start, t_end)
            if clipped is not None:
                kept.append(clipped)
        if not kept:
            return None
        if gap_model is None:
            score = sum(b.score for b in kept)
        else:
            score = score_blocks(kept, gap_model)
        return self.with_blocks(kept, score)

    def query_range_plus(self) -> Tuple[int, int]:
        """Query span converted to forward-strand coordinates."""
        if self.q_strand == '-':
            return self.q_size - self.q_end, self.q_size - self.q_start
        return self.q_start, self.q_end


def score_blocks(blocks: List[Block], gap_model: GapCost) -> int:
    """Sum of block scores minus the cost of every gap between consecutive blocks."""
    total = 0
    prev = None
    for b in blocks:
        total += b.score
        if prev is not None:
            total -= gap_cost(gap_model, b.t_start - prev.t_end, b.q_start - prev.q_end)
        prev = b
    return total


def default_block_score(size: int) -> int:
    return size * DEFAULT_BASE_SCORE


__all__ = [
    'GroupKey',
    'DEFAULT_BASE_SCORE',
    'Block',
    'ChainData',
    'Chain',
    'score_blocks',
    'default_block_score',
]
