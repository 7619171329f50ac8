"""
Pre-net filter: drop chains that cannot contribute to a net.

Chains are visited best first. A chain is kept when at least one of its
blocks touches a target or query base not yet claimed by a kept chain;
kept chains then claim their blocks, padded on both sides.

Author: Rowel Facunla
"""

import logging
from typing import Dict, Iterable, List

import numpy as np

from ..core.blocks import Chain

logger = logging.getLogger(__name__)


def is_haplotype(name: str) -> bool:
    return '_hap' in name or '_alt' in name


class CoverageMask:
    """Per-sequence boolean coverage arrays."""

    def __init__(self, sizes: Dict[str, int]):
        self.masks = {name: np.zeros(size, dtype=bool) for name, size in sizes.items()}

    def get(self, name: str) -> np.ndarray:
        try:
            return self.masks[name]
        except KeyError:
            raise KeyError(f"Sequence {name} not found in sizes") from None

    def fully_covered(self, name: str, start: int, end: int) -> bool:
        mask = self.get(name)
        start = min(max(start, 0), len(mask))
        end = min(end, len(mask))
        if start >= end:
            return True
        return bool(mask[start:end].all())

    def cover(self, name: str, start: int, end: int):
        mask = self.get(name)
        mask[max(start, 0):min(end, len(mask))] = True


def pre_net_filter(
    chains: Iterable[Chain],
    t_sizes: Dict[str, int],
    q_sizes: Dict[str, int],
    pad: int = 1,
    include_haplotypes: bool = False,
) -> List[Chain]:
    """
    Args:
        chains: Chains sorted by descending score
        t_sizes: Target sequence sizes
        q_sizes: Query sequence sizes
        pad: Bases claimed on each side of a kept block
        include_haplotypes: Keep queries named like ``*_hap*`` / ``*_alt*``

    Returns:
        Kept chains, input order preserved

    Raises:
        ValueError: if the input is not sorted by score
    """
    t_cov = CoverageMask(t_sizes)
    q_cov = CoverageMask(q_sizes)

    kept = []
    last_score = None
    seen = 0
    for chain in chains:
        if last_score is not None and chain.score > last_score:
            raise ValueError(f"Input not sorted by score: {chain.score} > {last_score}")
        last_score = chain.score
        seen += 1

        if not include_haplotypes and is_haplotype(chain.q_name):
            continue

        blocks = chain.to_blocks()
        open_bases = any(
            not q_cov.fully_covered(chain.q_name, b.q_start, b.q_end)
            or not t_cov.fully_covered(chain.t_name, b.t_start, b.t_end)
            for b in blocks
        )
        if not open_bases:
            continue

        kept.append(chain)
        for b in blocks:
            q_cov.cover(chain.q_name, b.q_start - pad, b.q_end + pad)
            t_cov.cover(chain.t_name, b.t_start - pad, b.t_end + pad)

    logger.info(f"Pre-net filter kept {len(kept)} of {seen} chains")
    return kept


__all__ = [
    'is_haplotype',
    'CoverageMask',
    'pre_net_filter',
]
