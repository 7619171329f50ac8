"""
Configuration and input validation.
Author: Rowel Facunla
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Tuple

from ..algorithms.netting import resolve_thresholds
from ..core.errors import ConfigurationError
from ..core.gap_cost import GapCost


def validate_config(config: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Check a run configuration for conflicts.

    Args:
        config: Pipeline configuration

    Returns:
        Tuple of (is_valid, error_messages)
    """
    errors = []

    try:
        GapCost.from_config(config.get('gap_model'))
    except ConfigurationError as e:
        errors.append(f"gap_model: {e}")

    netting = config.get('netting', {}) or {}
    try:
        resolve_thresholds(netting.get('min_space'), netting.get('min_fill'))
    except ConfigurationError as e:
        errors.append(f"netting: {e}")
    except TypeError:
        errors.append("netting: min_space and min_fill must be integers")

    chaining = config.get('chaining', {}) or {}
    if not isinstance(chaining.get('min_score', 0), int):
        errors.append(f"chaining: min_score must be an integer, got {chaining.get('min_score')!r}")
    max_gap = chaining.get('max_gap')
    if max_gap is not None and (not isinstance(max_gap, int) or max_gap < 0):
        errors.append(f"chaining: max_gap must be a non-negative integer or null, got {max_gap!r}")
    min_block_len = chaining.get('min_block_len', 1)
    if not isinstance(min_block_len, int) or min_block_len < 1:
        errors.append(f"chaining: min_block_len must be a positive integer, got {min_block_len!r}")
    if chaining.get('on_bad_group', 'abort') not in ('abort', 'skip'):
        errors.append("chaining: on_bad_group must be 'abort' or 'skip'")

    scheme = config.get('score_scheme', 'default')
    if scheme not in (None, 'default', 'hoxd55') and not os.path.isfile(str(scheme)):
        errors.append(f"score_scheme: matrix file not found: {scheme}")

    return len(errors) == 0, errors


def check_config(config: Dict[str, Any]):
    """Raise ConfigurationError listing every problem found by validate_config."""
    is_valid, errors = validate_config(config)
    if not is_valid:
        raise ConfigurationError("; ".join(errors))


def validate_inputs(config: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Check that the input files named in ``io`` exist.

    Returns:
        Tuple of (is_valid, error_messages)
    """
    errors = []
    io_cfg = config.get('io', {}) or {}

    if not io_cfg.get('psl_file') and not io_cfg.get('chain_file'):
        errors.append("io: one of psl_file or chain_file is required")
    for key in ('psl_file', 'chain_file', 't_sizes', 'q_sizes'):
        path = io_cfg.get(key)
        if path and not Path(path).is_file():
            errors.append(f"io.{key}: file not found: {path}")

    if config.get('chaining', {}).get('rescore'):
        from ..io.fasta_reader import validate_fasta_file
        for key in ('t_fasta', 'q_fasta'):
            path = io_cfg.get(key)
            if not path:
                errors.append(f"io.{key}: required when chaining.rescore is set")
                continue
            valid, msg = validate_fasta_file(path)
            if not valid:
                errors.append(f"io.{key}: {msg}")

    if config.get('netting', {}).get('pre_net') and not (io_cfg.get('t_sizes') and io_cfg.get('q_sizes')):
        errors.append("netting.pre_net needs both io.t_sizes and io.q_sizes")

    output_dir = io_cfg.get('output_dir', 'Results')
    from ..io.file_handler import check_disk_space, ensure_directory
    try:
        ensure_directory(output_dir)
    except OSError as e:
        errors.append(f"Cannot create output directory {output_dir}: {e}")
    else:
        has_space, available_gb, required_gb = check_disk_space(output_dir, 0.1)
        if not has_space:
            errors.append(f"Insufficient disk space: {available_gb:.1f} GB available, "
                          f"{required_gb:.1f} GB required")

    return len(errors) == 0, errors


__all__ = [
    'validate_config',
    'check_config',
    'validate_inputs',
]
