"""
Read-only sequence access for re-scoring blocks from raw bases.
Author: Rowel Facunla
"""

import logging
from typing import Dict, Iterable, Mapping, Optional

from Bio import SeqIO
from Bio.Seq import reverse_complement

from .blocks import Block
from .score_matrix import ScoreMatrix

logger = logging.getLogger(__name__)


class SequenceSource:
    """
    Immutable name -> sequence mapping with strand-aware slicing.

    Sequences are held as plain strings so a single instance can be read
    from several threads, or copied into worker processes, without locking.
    """

    def __init__(self, sequences: Mapping[str, str]):
        self._sequences: Dict[str, str] = {name: str(seq).upper() for name, seq in sequences.items()}

    @classmethod
    def from_fasta(cls, *paths: str, names: Optional[Iterable[str]] = None) -> 'SequenceSource':
        """
        Load every record (or only ``names``) of one genome from one or more
        FASTA files.

        Target and query genomes each need their own source.

        Args:
            paths: FASTA files of a single genome
            names: Optional subset of record ids to keep

        Returns:
            SequenceSource

        Raises:
            ValueError: if a record id appears twice
        """
        wanted = set(names) if names is not None else None
        sequences = {}
        for path in paths:
            for record in SeqIO.parse(path, "fasta"):
                if wanted is not None and record.id not in wanted:
                    continue
                if record.id in sequences:
                    raise ValueError(f"Duplicate sequence id '{record.id}' in {path}")
                sequences[record.id] = str(record.seq)
            logger.debug(f"Loaded {len(sequences)} sequence(s) after reading {path}")
        return cls(sequences)

    def __contains__(self, name: str) -> bool:
        return name in self._sequences

    def names(self):
        return list(self._sequences)

    def size(self, name: str) -> int:
        return len(self._sequences[name])

    def fetch(self, name: str, start: int, end: int, strand: str = '+') -> str:
        """
        Bases of ``name`` in ``[start, end)``.

        For strand '-' the coordinates are on the reverse complement, as in
        chain and PSL query coordinates.
        """
        try:
            seq = self._sequences[name]
        except KeyError:
            raise KeyError(f"Sequence '{name}' not present in sequence source") from None
        if start < 0 or end > len(seq) or end < start:
            raise ValueError(f"Range [{start}, {end}) outside {name} (size {len(seq)})")
        if strand == '-':
            size = len(seq)
            return reverse_complement(seq[size - end:size - start])
        return seq[start:end]


def score_block(
    block: Block,
    t_name: str,
    q_name: str,
    t_source: SequenceSource,
    q_source: SequenceSource,
    matrix: ScoreMatrix,
) -> int:
    """Substitution-matrix score of one ungapped block."""
    t_seq = t_source.fetch(t_name, block.t_start, block.t_end, '+')
    q_seq = q_source.fetch(q_name, block.q_start, block.q_end, block.strand)
    return matrix.score_pair_arrays(t_seq, q_seq)


__all__ = [
    'SequenceSource',
    'score_block',
]
