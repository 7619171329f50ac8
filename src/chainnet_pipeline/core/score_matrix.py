"""
Nucleotide substitution matrices used to re-score blocks from sequence.
Author: Rowel Facunla
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

BASES = 'ACGT'

HOXD55_ROWS = (
    (91, -114, -31, -123),
    (-114, 100, -125, -31),
    (-31, -125, 100, -114),
    (-123, -31, -114, 91),
)


def _empty_table(fill: int) -> np.ndarray:
    return np.full((256, 256), fill, dtype=np.int32)


def _set_pair(table: np.ndarray, a: str, b: str, value: int):
    for x in (a.upper(), a.lower()):
        for y in (b.upper(), b.lower()):
            table[ord(x), ord(y)] = value


@dataclass(frozen=True, eq=False)
class ScoreMatrix:
    """
    Immutable 256x256 lookup of pair scores plus the gap costs that ship with
    the matrix. Shared read-only across workers.
    """
    name: str
    table: np.ndarray
    gap_open: int = 400
    gap_extend: int = 30

    def __post_init__(self):
        self.table.setflags(write=False)

    def score(self, a: str, b: str) -> int:
        return int(self.table[ord(a), ord(b)])

    def score_pair_arrays(self, t_seq: str, q_seq: str) -> int:
        """Sum of pair scores for two equal-length ungapped strings."""
        if len(t_seq) != len(q_seq):
            raise ValueError(f"Sequence lengths differ: {len(t_seq)} vs {len(q_seq)}")
        if not t_seq:
            return 0
        t_codes = np.frombuffer(t_seq.encode('ascii'), dtype=np.uint8)
        q_codes = np.frombuffer(q_seq.encode('ascii'), dtype=np.uint8)
        return int(self.table[t_codes, q_codes].sum(dtype=np.int64))

    # ------------------------------------------------------------
    # Presets and loaders
    # ------------------------------------------------------------
    @classmethod
    def default(cls) -> 'ScoreMatrix':
        """Match +100, mismatch -100, anything involving N -100."""
        table = _empty_table(-100)
        for base in BASES:
            _set_pair(table, base, base, 100)
        return cls('default', table)

    @classmethod
    def hoxd55(cls) -> 'ScoreMatrix':
        table = _empty_table(-100)
        for i, a in enumerate(BASES):
            for j, b in enumerate(BASES):
                _set_pair(table, a, b, HOXD55_ROWS[i][j])
        return cls('hoxd55', table, gap_open=400, gap_extend=30)

    @classmethod
    def from_file(cls, path: str) -> 'ScoreMatrix':
        """
        Load a matrix in the blastz/lastz text layout.

        Lines starting with '#' are comments. An optional header line lists
        the column bases (default ``A C G T``). Rows may start with their
        base letter. ``O=400`` and ``E=30`` style lines set gap costs.

        Args:
            path: Matrix file

        Returns:
            ScoreMatrix
        """
        table = _empty_table(0)
        gap_open, gap_extend = 400, 30
        columns = list(BASES)
        rows_read = 0

        with open(path, 'r') as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#'):
                    continue

                if '=' in line:
                    parts = [p for p in line.replace(',', ' ').replace('=', ' ').split() if p]
                    for i, key in enumerate(parts[:-1]):
                        if key == 'O':
                            gap_open = int(parts[i + 1])
                        elif key == 'E':
                            gap_extend = int(parts[i + 1])
                    continue

                parts = line.split()
                if rows_read == 0 and all(len(p) == 1 and p in 'ACGTN' for p in parts):
                    columns = parts
                    continue

                if rows_read >= len(columns):
                    continue
                row_base = columns[rows_read]
                values = parts
                if len(parts) > len(columns):
                    if parts[0] != row_base:
                        continue
                    values = parts[1:]
                for col_base, value in zip(columns, values):
                    _set_pair(table, row_base, col_base, int(value))
                rows_read += 1

        if rows_read < len(columns):
            raise ValueError(f"Matrix file {path} has {rows_read} rows, expected {len(columns)}")

        logger.debug(f"Loaded score matrix from {path} (O={gap_open}, E={gap_extend})")
        return cls(str(path), table, gap_open=gap_open, gap_extend=gap_extend)

    @classmethod
    def from_config(cls, value: Union[str, None]) -> 'ScoreMatrix':
        """``default``, ``hoxd55`` or a path to a matrix file."""
        if value is None or value == 'default':
            return cls.default()
        if str(value).lower() == 'hoxd55':
            return cls.hoxd55()
        return cls.from_file(value)

    def as_dict(self) -> Dict[Tuple[str, str], int]:
        return {(a, b): self.score(a, b) for a in BASES + 'N' for b in BASES + 'N'}


__all__ = [
    'BASES',
    'HOXD55_ROWS',
    'ScoreMatrix',
]
