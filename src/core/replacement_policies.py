"""LRU bookkeeping for a single cache set.

The cache keeps one `LRUReplacement` per set. It tracks the way indices of
the set from least to most recently used so the cache can ask for a victim
when the set is full.

API (methods):
- touch(way): mark `way` as the most recently used
- victim(): return the least recently used way without removing it
- peek(): return way indices in LRU -> MRU order
"""

from collections import OrderedDict
from typing import List, Optional


class LRUReplacement:
    """Least-Recently-Used order using OrderedDict.

    OrderedDict keeps insertion order; we move touched ways to the end so
    the least recently used way is at the beginning.
    """

    def __init__(self, capacity: int):
        self.capacity = int(capacity)
        self._od = OrderedDict()

    def touch(self, way: int) -> None:
        """Register an access (hit or fill) to `way`"""
        if not 0 <= way < self.capacity:
            raise IndexError(f"way {way} out of range [0, {self.capacity - 1}]")
        if way in self._od:
            self._od.move_to_end(way)
        else:
            self._od[way] = True

    def victim(self) -> Optional[int]:
        """Return the LRU way, or None if no way has been touched yet."""
        if not self._od:
            return None
        return next(iter(self._od))

    def peek(self) -> List[int]:
        """Return ways from LRU->MRU as list."""
        return list(self._od.keys())

    def __len__(self) -> int:
        return len(self._od)


__all__ = ["LRUReplacement"]
