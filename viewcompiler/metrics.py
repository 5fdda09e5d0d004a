"""
Counters for compiled view functions and index builds.
"""

import json
from dataclasses import dataclass, asdict

import psutil


@dataclass
class FunctionMetrics:
    """Counters for one compiled map or reduce function."""

    calls: int = 0
    failures: int = 0
    rows_emitted: int = 0
    rows_dropped: int = 0
    total_time_seconds: float = 0.0

    @property
    def average_time_ms(self) -> float:
        """Average wall time per call in milliseconds."""
        if not self.calls:
            return 0.0
        return self.total_time_seconds * 1000 / self.calls

    def record_call(self, elapsed: float, failed: bool = False):
        self.calls += 1
        self.total_time_seconds += elapsed
        if failed:
            self.failures += 1

    def to_dict(self) -> dict:
        data = asdict(self)
        data['average_time_ms'] = self.average_time_ms
        return data

    def save_to_file(self, filepath: str):
        """Save metrics to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


@dataclass
class IndexMetrics:
    """Metrics for a single index build."""

    start_time: float
    end_time: float = 0.0
    documents: int = 0
    rows: int = 0
    map_failures: int = 0
    rows_dropped: int = 0
    workers: int = 1
    memory_rss_bytes: int = 0

    @property
    def total_time_seconds(self) -> float:
        """Build time in seconds."""
        return self.end_time - self.start_time

    def sample_memory(self):
        """Record the resident memory of this process."""
        self.memory_rss_bytes = psutil.Process().memory_info().rss

    def to_dict(self) -> dict:
        data = asdict(self)
        data['total_time_seconds'] = self.total_time_seconds
        return data

    def save_to_file(self, filepath: str):
        """Save metrics to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
