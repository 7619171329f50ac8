"""
Core data model: blocks, chains, gap costs and scoring.
"""

from .errors import *
from .gap_cost import *
from .blocks import *
from .score_matrix import *
from .sequence_source import *

__all__ = [
    # Errors
    'ChainNetError',
    'MalformedBlockError',
    'ConfigurationError',
    'NetInvariantError',
    'ChainFormatError',

    # Gap costs
    'GapCost',
    'gap_cost',
    'CURVE_POSITIONS',
    'CURVE_VALUES',

    # Blocks and chains
    'Block',
    'Chain',
    'ChainData',
    'GroupKey',
    'score_blocks',
    'default_block_score',

    # Scoring
    'ScoreMatrix',
    'SequenceSource',
    'score_block',
]
