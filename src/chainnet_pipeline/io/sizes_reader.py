"""
Chromosome sizes files: one ``name size`` pair per line.
Author: Rowel Facunla
"""

from pathlib import Path
from typing import Dict, Union

from ..core.errors import ChainFormatError


def read_sizes(filepath: Union[str, Path]) -> Dict[str, int]:
    """
    Load a sizes file. Extra columns are ignored; '#' starts a comment line.

    Returns:
        Dict of sequence name -> length, in file order
    """
    sizes: Dict[str, int] = {}
    with open(filepath, 'r') as f:
        for line_no, line in enumerate(f, start=1):
            parts = line.split()
            if not parts or parts[0].startswith('#'):
                continue
            if len(parts) < 2:
                raise ChainFormatError(f"expected 'name size' in {filepath}", line_no)
            try:
                sizes[parts[0]] = int(parts[1])
            except ValueError:
                raise ChainFormatError(f"bad size '{parts[1]}' in {filepath}", line_no) from None
    return sizes


def write_sizes(filepath: Union[str, Path], sizes: Dict[str, int]):
    with open(filepath, 'w') as f:
        for name, size in sizes.items():
            f.write(f"{name}\t{size}\n")


__all__ = [
    'read_sizes',
    'write_sizes',
]
