"""
Chain text format reader and writer.

    chain score tName tSize + tStart tEnd qName qSize qStrand qStart qEnd id
    size dt dq
    ...
    size
    <blank line>

Author: Rowel Facunla
"""

import io
import logging
from pathlib import Path
from typing import IO, Iterable, Iterator, List, Tuple, Union

from ..core.blocks import Chain, ChainData
from ..core.errors import ChainFormatError

logger = logging.getLogger(__name__)


def _parse_score(token: str, line_no: int) -> int:
    try:
        return int(token)
    except ValueError:
        pass
    try:
        return int(round(float(token)))
    except ValueError:
        raise ChainFormatError(f"bad chain score '{token}'", line_no) from None


def _parse_int(token: str, what: str, line_no: int) -> int:
    try:
        return int(token)
    except ValueError:
        raise ChainFormatError(f"bad {what} '{token}'", line_no) from None


def parse_chain_header(line: str, line_no: int = None) -> Chain:
    """Parse a ``chain ...`` header line into a Chain without body."""
    parts = line.split()
    if not parts or parts[0] != 'chain' or len(parts) not in (12, 13):
        raise ChainFormatError(f"expected chain header with 12 or 13 fields, got: {line.strip()}", line_no)
    if parts[4] != '+':
        raise ChainFormatError(f"target strand must be '+', got '{parts[4]}'", line_no)
    if parts[9] not in ('+', '-'):
        raise ChainFormatError(f"query strand must be '+' or '-', got '{parts[9]}'", line_no)

    return Chain(
        score=_parse_score(parts[1], line_no),
        t_name=parts[2],
        t_size=_parse_int(parts[3], 'tSize', line_no),
        t_start=_parse_int(parts[5], 'tStart', line_no),
        t_end=_parse_int(parts[6], 'tEnd', line_no),
        q_name=parts[7],
        q_size=_parse_int(parts[8], 'qSize', line_no),
        q_strand=parts[9],
        q_start=_parse_int(parts[10], 'qStart', line_no),
        q_end=_parse_int(parts[11], 'qEnd', line_no),
        id=_parse_int(parts[12], 'id', line_no) if len(parts) == 13 else 0,
    )


def read_chains(handle: Iterable[str]) -> Iterator[Chain]:
    """
    Stream chains from an open text handle.

    Blank lines and '#' comments between records are skipped.

    Raises:
        ChainFormatError: on malformed headers or body lines
    """
    current = None
    header_line = 0
    for line_no, raw in enumerate(handle, start=1):
        line = raw.strip()
        if current is None:
            if not line or line.startswith('#'):
                continue
            current = parse_chain_header(line, line_no)
            header_line = line_no
            continue

        if not line:
            raise ChainFormatError(f"chain {current.id} ended without a final block line", line_no)

        parts = line.split()
        if len(parts) == 3:
            current.data.append(ChainData(
                _parse_int(parts[0], 'size', line_no),
                _parse_int(parts[1], 'dt', line_no),
                _parse_int(parts[2], 'dq', line_no),
            ))
        elif len(parts) == 1:
            current.data.append(ChainData(_parse_int(parts[0], 'size', line_no), 0, 0))
            yield current
            current = None
        else:
            raise ChainFormatError(f"expected 'size dt dq' or 'size', got: {line}", line_no)

    if current is not None:
        raise ChainFormatError(f"chain {current.id} starting at line {header_line} is truncated")


def format_chain(chain: Chain) -> str:
    lines = [
        f"chain {chain.score} {chain.t_name} {chain.t_size} + {chain.t_start} {chain.t_end} "
        f"{chain.q_name} {chain.q_size} {chain.q_strand} {chain.q_start} {chain.q_end} {chain.id}"
    ]
    for d in chain.data[:-1]:
        lines.append(f"{d.size} {d.dt} {d.dq}")
    if chain.data:
        lines.append(f"{chain.data[-1].size}")
    return "\n".join(lines) + "\n\n"


def write_chain(chain: Chain, handle: IO[str]):
    handle.write(format_chain(chain))


def parse_chains(text: str) -> List[Chain]:
    return list(read_chains(io.StringIO(text)))


def parse_chain(text: str) -> Chain:
    chains = parse_chains(text)
    if len(chains) != 1:
        raise ChainFormatError(f"expected exactly one chain, found {len(chains)}")
    return chains[0]


def write_chains(filepath: Union[str, Path], chains: Iterable[Chain]) -> int:
    """Write chains to a file. Returns the number written."""
    count = 0
    with open(filepath, 'w') as f:
        for chain in chains:
            write_chain(chain, f)
            count += 1
    logger.info(f"Wrote {count} chains to {filepath}")
    return count


def load_chains(filepath: Union[str, Path]) -> List[Chain]:
    with open(filepath, 'r') as f:
        chains = list(read_chains(f))
    logger.info(f"Read {len(chains)} chains from {filepath}")
    return chains


def chain_summary(chains: Iterable[Chain]) -> Tuple[int, int, int]:
    """(chain count, aligned bases, total score)"""
    n = ali = total = 0
    for chain in chains:
        n += 1
        ali += chain.aligned_bases()
        total += chain.score
    return n, ali, total


__all__ = [
    'parse_chain_header',
    'read_chains',
    'format_chain',
    'write_chain',
    'parse_chains',
    'parse_chain',
    'write_chains',
    'load_chains',
    'chain_summary',
]
