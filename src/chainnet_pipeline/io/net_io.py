"""
Net text format reader and writer.

    net tName tSize
     fill tStart tLen qName qStrand qStart qLen id N score S ali A [qOver O qFar F qDup D type T]
      gap tStart tLen qName qStrand qStart qLen
       fill ...

Leading spaces give the depth of each node below the root gap.

Author: Rowel Facunla
"""

import io
import logging
from pathlib import Path
from typing import IO, Iterable, Iterator, List, Union

from ..algorithms.netting import FILL, GAP, NetChrom, NetNode, check_net
from ..core.errors import ChainFormatError, NetInvariantError

logger = logging.getLogger(__name__)


def _fill_extras(node: NetNode) -> str:
    extras = ''
    for key, value in (('qOver', node.q_over), ('qFar', node.q_far), ('qDup', node.q_dup)):
        if value >= 0:
            extras += f" {key} {value}"
    if node.fill_type:
        extras += f" type {node.fill_type}"
    return extras


def format_net(chrom: NetChrom) -> str:
    lines = [f"net {chrom.t_name} {chrom.t_size}"]
    for depth, idx, node in chrom.walk():
        if idx == 0:
            continue
        indent = ' ' * depth
        if node.kind == FILL:
            lines.append(
                f"{indent}fill {node.start} {node.length} {node.q_name} {node.q_strand} "
                f"{node.q_start} {node.q_length} id {node.chain_id} score {node.score} ali {node.ali}"
                + _fill_extras(node)
            )
        else:
            lines.append(
                f"{indent}gap {node.start} {node.length} {node.q_name} {node.q_strand} "
                f"{node.q_start} {node.q_length}"
            )
    return "\n".join(lines) + "\n"


def write_net(chrom: NetChrom, handle: IO[str]):
    handle.write(format_net(chrom))


def _node_from_line(parts: List[str], line_no: int) -> NetNode:
    kind = parts[0]
    if len(parts) < 7:
        raise ChainFormatError(f"{kind} line needs at least 7 fields", line_no)
    try:
        start, length = int(parts[1]), int(parts[2])
        q_start, q_len = int(parts[5]), int(parts[6])
    except ValueError:
        raise ChainFormatError(f"non-numeric coordinate in {kind} line", line_no) from None
    if parts[4] not in ('+', '-'):
        raise ChainFormatError(f"bad strand '{parts[4]}'", line_no)

    node = NetNode(kind, start, start + length, q_name=parts[3], q_strand=parts[4],
                   q_start=q_start, q_end=q_start + q_len)
    if kind == FILL:
        extra = parts[7:]
        if len(extra) % 2:
            raise ChainFormatError("fill line has an unpaired trailing field", line_no)
        fields = dict(zip(extra[0::2], extra[1::2]))
        try:
            node.chain_id = int(fields['id'])
            node.score = int(round(float(fields['score'])))
            node.ali = int(fields['ali'])
            node.q_over = int(fields.get('qOver', -1))
            node.q_far = int(fields.get('qFar', -1))
            node.q_dup = int(fields.get('qDup', -1))
        except KeyError as e:
            raise ChainFormatError(f"fill line missing '{e.args[0]}'", line_no) from None
        except ValueError:
            raise ChainFormatError("non-numeric field in fill line", line_no) from None
        node.fill_type = fields.get('type', '')
    return node


def _finish(chrom: NetChrom) -> NetChrom:
    try:
        check_net(chrom)
    except NetInvariantError as e:
        raise ChainFormatError(f"inconsistent net for {chrom.t_name}: {e}") from e
    return chrom


def read_nets(handle: Iterable[str]) -> Iterator[NetChrom]:
    """Stream one NetChrom per ``net`` record."""
    chrom = None
    stack: List[int] = []
    for line_no, raw in enumerate(handle, start=1):
        line = raw.rstrip('\n').rstrip('\r')
        if not line.strip() or line.lstrip().startswith('#'):
            continue

        parts = line.split()
        if parts[0] == 'net':
            if chrom is not None:
                yield _finish(chrom)
            if len(parts) != 3:
                raise ChainFormatError("net line needs name and size", line_no)
            try:
                chrom = NetChrom(parts[1], int(parts[2]))
            except ValueError:
                raise ChainFormatError(f"bad net size '{parts[2]}'", line_no) from None
            stack = [0]
            continue

        if chrom is None:
            raise ChainFormatError("node line before any 'net' line", line_no)
        if parts[0] not in (FILL, GAP):
            raise ChainFormatError(f"unknown record type '{parts[0]}'", line_no)

        depth = len(line) - len(line.lstrip(' '))
        if depth < 1 or depth > len(stack):
            raise ChainFormatError(f"bad indentation depth {depth}", line_no)
        node = _node_from_line(parts, line_no)
        del stack[depth:]
        node.parent = stack[depth - 1]
        stack.append(chrom.add_node(node))

    if chrom is not None:
        yield _finish(chrom)


def parse_nets(text: str) -> List[NetChrom]:
    return list(read_nets(io.StringIO(text)))


def write_nets(filepath: Union[str, Path], nets: Iterable[NetChrom]) -> int:
    count = 0
    with open(filepath, 'w') as f:
        for chrom in nets:
            write_net(chrom, f)
            count += 1
    logger.info(f"Wrote {count} nets to {filepath}")
    return count


def load_nets(filepath: Union[str, Path]) -> List[NetChrom]:
    with open(filepath, 'r') as f:
        return list(read_nets(f))


__all__ = [
    'format_net',
    'write_net',
    'read_nets',
    'parse_nets',
    'write_nets',
    'load_nets',
]
