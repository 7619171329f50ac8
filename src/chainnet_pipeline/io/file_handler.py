"""
File handling utilities for the chaining pipeline.
Author: Rowel Facunla
"""

import logging
from pathlib import Path
from typing import Tuple

import psutil

logger = logging.getLogger(__name__)


def check_disk_space(path: str, required_gb: float = 1.0) -> Tuple[bool, float, float]:
    """
    Check if there is enough disk space at the given path.

    Args:
        path: Path to check disk space for
        required_gb: Required space in GB

    Returns:
        Tuple of (has_space, available_gb, required_gb)
    """
    try:
        usage = psutil.disk_usage(path)
    except OSError as e:
        logger.warning(f"Could not check disk space at {path}: {e}")
        return True, float('inf'), required_gb
    available_gb = usage.free / (1024 ** 3)
    return available_gb >= required_gb, available_gb, required_gb


def ensure_directory(path: str) -> Path:
    """Create ``path`` (and parents) if missing and return it."""
    path_obj = Path(path)
    path_obj.mkdir(parents=True, exist_ok=True)
    return path_obj


def get_memory_usage() -> float:
    """Resident memory of this process in MB."""
    return psutil.Process().memory_info().rss / (1024 * 1024)


__all__ = [
    'check_disk_space',
    'ensure_directory',
    'get_memory_usage',
]
