"""
Author: Rowel Facunla
"""

import os
from typing import Dict, Tuple

from Bio import SeqIO

VALID_BASES = set('ACGTN')


def validate_fasta_file(filepath: str) -> Tuple[bool, str]:
    """
    Check that a file is a readable nucleotide FASTA file.

    Args:
        filepath: Path to the FASTA file

    Returns:
        Tuple of (is_valid, message)
    """
    if not os.path.exists(filepath):
        return False, f"File does not exist: {filepath}"
    if not os.path.isfile(filepath):
        return False, f"Not a file: {filepath}"
    if os.path.getsize(filepath) == 0:
        return False, f"File is empty: {filepath}"

    try:
        with open(filepath, 'r') as f:
            first_line = f.readline().strip()
            if not first_line.startswith('>'):
                return False, f"File does not start with '>' character: {filepath}"
    except UnicodeDecodeError:
        return False, f"File is not a valid text file: {filepath}"

    try:
        count = 0
        for record in SeqIO.parse(filepath, "fasta"):
            count += 1
            if len(record.seq) == 0:
                return False, f"Sequence {record.id} is empty in file: {filepath}"
            invalid = set(str(record.seq).upper()) - VALID_BASES
            if invalid:
                return False, f"Sequence {record.id} contains invalid characters: {sorted(invalid)}"
        if count == 0:
            return False, f"No sequences found in file: {filepath}"
        return True, f"Valid FASTA file with {count} sequence(s)"
    except Exception as e:
        return False, f"Error parsing FASTA file: {str(e)}"


def fasta_sizes(filepath: str) -> Dict[str, int]:
    """Sequence lengths keyed by record id, in file order."""
    sizes = {}
    for record in SeqIO.parse(filepath, "fasta"):
        sizes[record.id] = len(record.seq)
    if not sizes:
        raise ValueError(f"No sequences found in file: {filepath}")
    return sizes


__all__ = [
    'validate_fasta_file',
    'fasta_sizes',
]
