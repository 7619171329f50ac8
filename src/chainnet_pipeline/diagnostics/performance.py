"""
Performance monitoring for pipeline runs.
Author: Rowel Facunla
"""

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

import psutil

logger = logging.getLogger(__name__)


@dataclass
class PerformanceMetrics:
    """Performance metrics container."""
    start_time: float
    end_time: Optional[float] = None
    peak_memory_mb: float = 0.0
    stage_times: Dict[str, float] = field(default_factory=dict)

    @property
    def total_time(self) -> float:
        """Total execution time in seconds."""
        if self.end_time is None:
            return 0.0
        return self.end_time - self.start_time


class PerformanceMonitor:
    """Sample CPU and memory of this process on a background thread."""

    def __init__(self, sampling_interval: float = 1.0):
        """
        Args:
            sampling_interval: Time between samples in seconds
        """
        self.sampling_interval = sampling_interval
        self.metrics = PerformanceMetrics(start_time=time.time())
        self.monitoring = False
        self.thread = None
        self.cpu_samples: List[float] = []
        self.memory_samples: List[float] = []
        self._stage_start: Dict[str, float] = {}

    def start(self):
        self.metrics = PerformanceMetrics(start_time=time.time())
        self.cpu_samples = []
        self.memory_samples = []
        self.monitoring = True
        self.thread = threading.Thread(target=self._monitor_loop, daemon=True)
        self.thread.start()

    def stop(self):
        self.monitoring = False
        if self.thread:
            self.thread.join(timeout=2.0)
        self.metrics.end_time = time.time()
        if self.memory_samples:
            self.metrics.peak_memory_mb = max(self.memory_samples)

    def _monitor_loop(self):
        process = psutil.Process()
        while self.monitoring:
            try:
                self.cpu_samples.append(process.cpu_percent(interval=None))
                self.memory_samples.append(process.memory_info().rss / (1024 * 1024))
            except psutil.NoSuchProcess:
                break
            time.sleep(self.sampling_interval)

    def begin_stage(self, name: str):
        self._stage_start[name] = time.time()

    def end_stage(self, name: str):
        started = self._stage_start.pop(name, None)
        if started is not None:
            self.metrics.stage_times[name] = time.time() - started

    def get_report(self) -> Dict:
        """Get comprehensive performance report."""
        report = {
            'total_time_seconds': self.metrics.total_time,
            'peak_memory_mb': self.metrics.peak_memory_mb,
            'average_cpu_percent': sum(self.cpu_samples) / len(self.cpu_samples) if self.cpu_samples else 0,
            'start_time': datetime.fromtimestamp(self.metrics.start_time).isoformat(),
            'end_time': datetime.fromtimestamp(self.metrics.end_time).isoformat() if self.metrics.end_time else None,
            'stage_times_seconds': dict(self.metrics.stage_times),
            'system_info': {
                'cpu_count': psutil.cpu_count(),
                'total_memory_mb': psutil.virtual_memory().total / (1024 * 1024),
                'available_memory_mb': psutil.virtual_memory().available / (1024 * 1024),
            },
        }
        if self.memory_samples:
            report['memory_timeline'] = {
                'samples': len(self.memory_samples),
                'min_mb': min(self.memory_samples),
                'max_mb': max(self.memory_samples),
                'avg_mb': sum(self.memory_samples) / len(self.memory_samples),
            }
        return report

    def save_report(self, filepath: str):
        """Save performance report to file."""
        with open(filepath, 'w') as f:
            json.dump(self.get_report(), f, indent=2)

    def log_report(self, log: Optional[logging.Logger] = None):
        log = log or logger
        report = self.get_report()
        log.info(f"Total time: {report['total_time_seconds']:.2f}s")
        log.info(f"Peak memory: {report['peak_memory_mb']:.1f} MB")
        for stage, seconds in report['stage_times_seconds'].items():
            log.info(f"  {stage}: {seconds:.2f}s")


def benchmark_function(func: Callable, num_runs: int = 3, warmup: int = 1) -> Dict:
    """
    Time repeated calls of ``func``.

    Returns:
        Benchmark results dictionary
    """
    for _ in range(warmup):
        func()

    times = []
    for _ in range(num_runs):
        start = time.perf_counter()
        func()
        times.append(time.perf_counter() - start)

    avg_time = sum(times) / len(times) if times else 0.0
    return {
        'num_runs': num_runs,
        'warmup_runs': warmup,
        'times': times,
        'min_time': min(times) if times else 0.0,
        'max_time': max(times) if times else 0.0,
        'avg_time': avg_time,
    }


__all__ = [
    'PerformanceMetrics',
    'PerformanceMonitor',
    'benchmark_function',
]
