"""Core cache implementation

This file provides the set-associative LRU cache model driven by the simulator.
Behavior:
- Cache is composed of 2^s sets; each set has `associativity` ways (lines).
  tag, set_index = decode(address, s, b)   (see src.core.address)
- A hit refreshes the line's recency. A miss fills the first invalid line,
  or, when the set is full, evicts the least recently used line.
- Every access advances a per-cache logical clock which is stamped on the
  touched line, so recency among valid lines is a strict total order.
- access(address) returns an Outcome; lookup(address) returns an AccessResult
  with the set/way details used for verbose traces.

No data is stored and there is no write policy: only hits, misses and
evictions are counted.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from src.core.address import decode
from src.core.replacement_policies import LRUReplacement


logger = logging.getLogger(__name__)

ADDRESS_BITS = 64
# upper bound on 2^s * E, so a typo in the geometry cannot allocate unbounded memory
MAX_LINES = 1 << 20


class InvalidGeometry(ValueError):
    """Raised when a cache cannot be built from the requested geometry."""


class Outcome(Enum):
    HIT = 'hit'
    MISS = 'miss'
    MISS_EVICTION = 'miss eviction'

    @property
    def is_hit(self) -> bool:
        return self is Outcome.HIT


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Geometry:
    """Cache geometry.

    Fields:
    - set_bits: s, number of set index bits (2^s sets)
    - associativity: E, number of lines per set
    - block_bits: b, number of block offset bits (2^b bytes per block)
    """

    set_bits: int
    associativity: int
    block_bits: int

    @property
    def num_sets(self) -> int:
        return 1 << self.set_bits

    @property
    def num_lines(self) -> int:
        return self.num_sets * self.associativity

    @property
    def block_size(self) -> int:
        return 1 << self.block_bits

    def validate(self) -> 'Geometry':
        """Raise InvalidGeometry unless the geometry can be simulated."""
        for name in ('set_bits', 'associativity', 'block_bits'):
            value = getattr(self, name)
            if not _is_int(value):
                raise InvalidGeometry(f"{name} must be an integer, got {value!r}")
        if self.associativity < 1:
            raise InvalidGeometry(f"associativity must be >= 1, got {self.associativity}")
        if self.set_bits < 0:
            raise InvalidGeometry(f"set_bits must be >= 0, got {self.set_bits}")
        if self.block_bits < 0:
            raise InvalidGeometry(f"block_bits must be >= 0, got {self.block_bits}")
        if self.set_bits + self.block_bits > ADDRESS_BITS:
            raise InvalidGeometry(
                f"set_bits + block_bits must be <= {ADDRESS_BITS}, "
                f"got {self.set_bits} + {self.block_bits}"
            )
        if self.num_lines > MAX_LINES:
            raise InvalidGeometry(
                f"2^{self.set_bits} sets x {self.associativity} ways exceeds "
                f"the limit of {MAX_LINES} lines"
            )
        return self


@dataclass
class CacheLine:
    """container for a cache line (way).

    Fields:
    - tag: the tag stored in the line
    - valid: whether the line has been populated
    - last_used: logical clock value of the last hit or fill
    """

    tag: Optional[int] = None
    valid: bool = False
    last_used: int = 0


@dataclass(frozen=True)
class AccessResult:
    outcome: Outcome
    set_index: int
    way: int
    tag: int
    evicted_tag: Optional[int] = None


class Cache:
    """Set-associative cache with LRU eviction.
    """

    def __init__(self, set_bits: int, associativity: int, block_bits: int):
        self.geometry = Geometry(set_bits, associativity, block_bits).validate()
        self.set_bits = set_bits
        self.associativity = associativity
        self.block_bits = block_bits
        self.num_sets = self.geometry.num_sets

        # allocate the sets matrix: num_sets x associativity
        self.sets: List[List[CacheLine]] = [
            [CacheLine() for _ in range(associativity)] for _ in range(self.num_sets)
        ]
        self.replacement_policy_objs: List[LRUReplacement] = [
            LRUReplacement(associativity) for _ in range(self.num_sets)
        ]

        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self._clock = 0
        logger.debug("built cache: %d sets x %d ways, %d-byte blocks",
                     self.num_sets, associativity, self.geometry.block_size)

    @classmethod
    def from_geometry(cls, geometry: Geometry) -> 'Cache':
        return cls(geometry.set_bits, geometry.associativity, geometry.block_bits)

    def _decode(self, address: int) -> Tuple[int, int]:
        """Decode address into (tag, set_index)."""
        return decode(address, self.set_bits, self.block_bits)

    def lookup(self, address: int) -> AccessResult:
        """Perform a cache access and report where it landed.

        Returns an AccessResult with the outcome, the set and way touched,
        the accessed tag and, for an eviction, the tag that was replaced.
        """
        tag, set_index = self._decode(address)
        cache_set = self.sets[set_index]
        policy = self.replacement_policy_objs[set_index]
        self._clock += 1

        # search for hit
        for wi, line in enumerate(cache_set):
            if line.valid and line.tag == tag:
                self.hits += 1
                line.last_used = self._clock
                policy.touch(wi)
                logger.debug("hit %#x: set %d way %d tag %#x", address, set_index, wi, tag)
                return AccessResult(Outcome.HIT, set_index, wi, tag)

        self.misses += 1

        # try to find a free way
        for wi, line in enumerate(cache_set):
            if not line.valid:
                line.tag = tag
                line.valid = True
                line.last_used = self._clock
                policy.touch(wi)
                logger.debug("miss %#x: fill set %d way %d tag %#x", address, set_index, wi, tag)
                return AccessResult(Outcome.MISS, set_index, wi, tag)

        # set is full: replace the least recently used line
        victim_index = policy.victim()
        victim = cache_set[victim_index]
        evicted_tag = victim.tag
        victim.tag = tag
        victim.last_used = self._clock
        policy.touch(victim_index)
        self.evictions += 1
        logger.debug("miss %#x: evict tag %#x from set %d way %d",
                     address, evicted_tag, set_index, victim_index)
        return AccessResult(Outcome.MISS_EVICTION, set_index, victim_index, tag, evicted_tag)

    def access(self, address: int) -> Outcome:
        """Simulate one access to `address` and return its Outcome."""
        return self.lookup(address).outcome

    def counters(self) -> Tuple[int, int, int]:
        """Return (hits, misses, evictions)."""
        return self.hits, self.misses, self.evictions

    def resident_tags(self, set_index: int) -> List[int]:
        """Tags of the valid lines in a set, least recently used first."""
        lines = [line for line in self.sets[set_index] if line.valid]
        return [line.tag for line in sorted(lines, key=lambda line: line.last_used)]


__all__ = [
    "ADDRESS_BITS",
    "MAX_LINES",
    "AccessResult",
    "Cache",
    "CacheLine",
    "Geometry",
    "InvalidGeometry",
    "Outcome",
]
