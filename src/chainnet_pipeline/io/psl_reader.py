"""
PSL record decoding into chainable blocks.
Author: Rowel Facunla
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

from ..core.blocks import Block, default_block_score
from ..core.score_matrix import ScoreMatrix
from ..core.sequence_source import SequenceSource, score_block

logger = logging.getLogger(__name__)

PSL_FIELDS = 21


@dataclass
class PslRecord:
    matches: int
    mismatches: int
    rep_matches: int
    n_count: int
    q_num_insert: int
    q_base_insert: int
    t_num_insert: int
    t_base_insert: int
    strand: str
    q_name: str
    q_size: int
    q_start: int
    q_end: int
    t_name: str
    t_size: int
    t_start: int
    t_end: int
    block_sizes: List[int] = field(default_factory=list)
    q_starts: List[int] = field(default_factory=list)
    t_starts: List[int] = field(default_factory=list)

    @property
    def q_strand(self) -> str:
        return self.strand[0] if self.strand else '+'

    @property
    def t_strand(self) -> str:
        return self.strand[1] if len(self.strand) > 1 else '+'

    @property
    def block_count(self) -> int:
        return len(self.block_sizes)


def _int_list(text: str) -> List[int]:
    return [int(x) for x in text.strip().rstrip(',').split(',') if x != '']


def parse_psl_line(line: str) -> Optional[PslRecord]:
    """
    Decode one tab-separated PSL line.

    Returns None for header or other non-record lines. Raises ValueError
    when a line looks like a record but its block lists disagree.
    """
    fields = line.rstrip('\n').split('\t')
    if len(fields) < PSL_FIELDS:
        return None
    try:
        nums = [int(x) for x in fields[0:8]]
    except ValueError:
        return None

    record = PslRecord(
        *nums,
        strand=fields[8],
        q_name=fields[9],
        q_size=int(fields[10]),
        q_start=int(fields[11]),
        q_end=int(fields[12]),
        t_name=fields[13],
        t_size=int(fields[14]),
        t_start=int(fields[15]),
        t_end=int(fields[16]),
        block_sizes=_int_list(fields[18]),
        q_starts=_int_list(fields[19]),
        t_starts=_int_list(fields[20]),
    )
    count = int(fields[17])
    if not (len(record.block_sizes) == len(record.q_starts) == len(record.t_starts) == count):
        raise ValueError(
            f"PSL record {record.q_name}->{record.t_name} declares {count} blocks but lists "
            f"{len(record.block_sizes)}/{len(record.q_starts)}/{len(record.t_starts)}"
        )
    return record


def read_psl(handle: Iterable[str]) -> Iterator[PslRecord]:
    for line in handle:
        if not line.strip() or line.startswith('#'):
            continue
        record = parse_psl_line(line)
        if record is not None:
            yield record


def load_psl(filepath: str) -> List[PslRecord]:
    with open(filepath, 'r') as f:
        records = list(read_psl(f))
    logger.info(f"Read {len(records)} PSL records from {filepath}")
    return records


def psl_to_blocks(
    record: PslRecord,
    t_source: Optional[SequenceSource] = None,
    q_source: Optional[SequenceSource] = None,
    matrix: Optional[ScoreMatrix] = None,
) -> List[Block]:
    """
    Blocks of one record. Scores come from sequence when both sources and a
    matrix are given, else ``size * 100``.
    """
    rescore = t_source is not None and q_source is not None and matrix is not None
    blocks = []
    for size, q_start, t_start in zip(record.block_sizes, record.q_starts, record.t_starts):
        block = Block(t_start, t_start + size, q_start, q_start + size,
                      default_block_score(size), record.q_strand)
        if rescore:
            block.score = score_block(block, record.t_name, record.q_name, t_source, q_source, matrix)
        blocks.append(block)
    return blocks


def psl_block_entries(
    records: Iterable[PslRecord],
    t_source: Optional[SequenceSource] = None,
    q_source: Optional[SequenceSource] = None,
    matrix: Optional[ScoreMatrix] = None,
) -> Iterator[Tuple[str, int, str, int, str, List[Block]]]:
    """
    Entries suitable for chaining.group_blocks. Records aligned to the
    reverse target strand are skipped with a warning.
    """
    for record in records:
        if record.t_strand == '-':
            logger.warning(
                f"Skipping PSL record with negative target strand: "
                f"{record.q_name} {record.strand} {record.t_name}"
            )
            continue
        yield (record.t_name, record.t_size, record.q_name, record.q_size,
               record.q_strand, psl_to_blocks(record, t_source, q_source, matrix))


__all__ = [
    'PslRecord',
    'parse_psl_line',
    'read_psl',
    'load_psl',
    'psl_to_blocks',
    'psl_block_entries',
]
