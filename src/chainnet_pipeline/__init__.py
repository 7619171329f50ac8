"""
Genome alignment chaining and net construction.
"""

# Version info - keep at top
__version__ = "1.0.0"
__author__ = "Rowel Facunla"
__description__ = "Chains ungapped alignment blocks and arranges chains into fill/gap nets"

from .core import *
from .algorithms import *
from .io import *

__all__ = [
    '__version__',
    # Core types
    'Block',
    'Chain',
    'ChainData',
    'GapCost',
    'gap_cost',
    'ScoreMatrix',
    'SequenceSource',
    # Errors
    'ChainNetError',
    'MalformedBlockError',
    'ConfigurationError',
    'NetInvariantError',
    'ChainFormatError',
    # Algorithms
    'KDTree',
    'BlockGroup',
    'group_blocks',
    'chain_group',
    'assign_chain_ids',
    'trim_overlaps',
    'NetChrom',
    'build_net',
    'build_nets',
    # I/O
    'read_chains',
    'write_chain',
    'read_nets',
    'write_net',
    'read_psl',
    'read_sizes',
]
