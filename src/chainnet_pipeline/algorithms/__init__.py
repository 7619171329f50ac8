from .kd_tree import *
from .chaining import *
from .overlap_trimmer import *
from .netting import *
from .syntenic import *
from .chain_ops import *
from .pre_net import *

__all__ = [
    # Spatial index
    'KDTree',

    # Chaining
    'BlockGroup',
    'group_blocks',
    'chain_group',
    'assign_chain_ids',
    'merge_abutting_blocks',

    # Overlap trimming
    'IntervalSet',
    'trim_overlaps',
    'check_chain_monotonic',

    # Netting
    'NetNode',
    'NetChrom',
    'NetBuilder',
    'build_net',
    'build_nets',
    'check_net',
    'filter_net',

    # Synteny
    'classify_nets',
    'classify_net',

    # Chain file operations
    'sort_chains',
    'stitch_chains',
    'subset_chains',
    'rescore_chain',
    'pre_net_filter',
]
