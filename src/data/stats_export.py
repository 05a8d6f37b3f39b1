"""Statistics and exporter.
"""
import csv
import json
from typing import List, Optional

from src.core.cache import Geometry, Outcome


def format_summary(hits: int, misses: int, evictions: int) -> str:
    """Render the final counters in the format test harnesses compare against."""
    return f"hits:{hits} misses:{misses} evictions:{evictions}"


class Statistics:
    def __init__(self, track_history: bool = False):
        # the running hit rate is only kept when a chart will be drawn from it
        self.track_history = track_history
        self.reset()

    def reset(self):
        # counters start from zero
        self.accesses = 0
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.hit_rate_history: List[float] = []

    def record(self, outcome: Outcome):
        # call this once for every cache access
        self.accesses += 1
        if outcome.is_hit:
            self.hits += 1
        else:
            self.misses += 1
            if outcome is Outcome.MISS_EVICTION:
                self.evictions += 1
        if self.track_history:
            self.hit_rate_history.append(self.hit_rate)

    @property
    def hit_rate(self):
        return (self.hits / self.accesses) if self.accesses else 0.0

    @property
    def miss_rate(self):
        return (self.misses / self.accesses) if self.accesses else 0.0

    def summary(self) -> str:
        return format_summary(self.hits, self.misses, self.evictions)

    def as_dict(self) -> dict:
        return {
            'accesses': self.accesses,
            'hits': self.hits,
            'misses': self.misses,
            'evictions': self.evictions,
            'hit_rate': self.hit_rate,
            'miss_rate': self.miss_rate,
        }


class Exporter:
    FIELDS = ['accesses', 'hits', 'misses', 'evictions', 'hit_rate', 'miss_rate']

    @staticmethod
    def export_stats_csv(path: str, stats: Statistics) -> str:
        row = stats.as_dict()
        with open(path, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(Exporter.FIELDS)
            writer.writerow([row[k] for k in Exporter.FIELDS])
        return path

    @staticmethod
    def export_stats_json(path: str, stats: Statistics, geometry: Optional[Geometry] = None) -> str:
        data = {'stats': stats.as_dict()}
        if geometry is not None:
            data['geometry'] = {
                's': geometry.set_bits,
                'E': geometry.associativity,
                'b': geometry.block_bits,
                'num_sets': geometry.num_sets,
                'block_size': geometry.block_size,
            }
        with open(path, 'w', encoding='utf-8') as fh:
            json.dump(data, fh, indent=2)
        return path


def export_hit_rate_chart(path: str, hit_rate_history: List[float]) -> str:
    """Render the running hit rate to an image or PDF using matplotlib.

    The output format follows the file extension of `path`.
    """
    import matplotlib
    matplotlib.use('Agg')
    import matplotlib.pyplot as plt

    data = list(hit_rate_history) or [0]
    fig, ax = plt.subplots(figsize=(6, 2))
    try:
        ax.plot(range(len(data)), data, color='#FFA500', linewidth=2)
        ax.fill_between(range(len(data)), data, color='#FFA500', alpha=0.1)
        ax.set_ylim(0, 1)
        ax.set_xlabel('Access')
        ax.set_ylabel('Hit rate')
        ax.grid(False)
        fig.tight_layout()
        fig.savefig(path, dpi=150)
    finally:
        plt.close(fig)
    return path
