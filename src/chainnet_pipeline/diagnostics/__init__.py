"""
Diagnostic modules for the chaining pipeline.
"""

from .performance import *
from .validation import *

__all__ = [
    'PerformanceMonitor',
    'benchmark_function',
    'validate_config',
    'check_config',
    'validate_inputs',
]
