"""CacheSimulator coordinates cache accesses and statistics.
Feeds trace records into the core Cache, in trace order, and updates stats.
"""
import logging
from typing import Callable, Iterable, List, Optional

from .cache import Cache
from .trace import TraceRecord, addresses_for
from ..data.stats_export import Statistics, format_summary

logger = logging.getLogger(__name__)


class CacheSimulator:
    def __init__(self, cache: Cache, stats: Optional[Statistics] = None):
        self.cache = cache
        self.stats = stats or Statistics()
        self.sequence: List[TraceRecord] = []
        self.index = 0

    def load_sequence(self, records: Iterable[TraceRecord]):
        self.sequence = list(records)
        self.index = 0
        # step through it with `step()` which advances self.index.

    def load_addresses(self, addresses: Iterable[int]):
        """Load plain addresses, each simulated as a single load."""
        self.load_sequence(TraceRecord('L', a, 1) for a in addresses)

    def has_next(self) -> bool:
        return self.index < len(self.sequence)

    def step(self) -> Optional[dict]:
        if not self.has_next():
            return None
        record = self.sequence[self.index]
        self.index += 1

        results = []
        for address in addresses_for(record):
            result = self.cache.lookup(address)
            self.stats.record(result.outcome)
            results.append(result)

        return {
            'record': record,
            'results': results,
            'outcomes': [r.outcome for r in results],
            'stats': self.stats.as_dict(),
        }

    def run_all(self, callback: Optional[Callable[[dict], None]] = None):
        logger.info("simulating %d records", len(self.sequence) - self.index)
        while self.has_next():
            info = self.step()
            if callback:
                callback(info)
        counters = self.cache.counters()
        logger.info("done: %s", format_summary(*counters))
        return counters


def format_verbose(info: dict) -> str:
    """Format a step() result as a verbose trace line, e.g. `M 20,1 miss hit`."""
    parts = [str(info['record'])]
    parts.extend(outcome.value for outcome in info['outcomes'])
    return ' '.join(parts)
