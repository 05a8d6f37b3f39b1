"""Unit tests for the cache core.

They cover:

- construction and geometry validation
- hit / miss / eviction classification
- LRU recency: hits refresh a line, the oldest line is evicted
- counter invariants over longer access sequences

The tests are small and deterministic so they run fast in a developer
environment and are suitable for CI.
"""

import random

import pytest
from src.core.cache import MAX_LINES, Cache, Geometry, InvalidGeometry, Outcome


@pytest.mark.parametrize('s,E,b', [(0, 1, 0), (4, 1, 4), (2, 4, 3), (8, 2, 4), (0, 16, 6)])
def test_new_cache_has_zero_counters(s, E, b):
    c = Cache(s, E, b)
    assert c.counters() == (0, 0, 0)
    assert len(c.sets) == 1 << s
    assert all(len(ways) == E for ways in c.sets)
    assert not any(line.valid for ways in c.sets for line in ways)


def test_repeated_address_hits():
    c = Cache(0, 1, 0)
    assert c.access(0x10) is Outcome.MISS
    assert c.access(0x10) is Outcome.HIT
    assert c.counters() == (1, 1, 0)


def test_identical_address_e_plus_one_times():
    E = 4
    c = Cache(0, E, 0)
    outcomes = [c.access(0x20) for _ in range(E + 1)]
    assert outcomes[0] is Outcome.MISS
    assert all(o is Outcome.HIT for o in outcomes[1:])
    assert c.counters() == (E, 1, 0)


def test_capacity_eviction_evicts_oldest():
    # Input: s=0, E=2, b=0 and three distinct tags in the single set.
    # Expected: Miss, Miss, MissWithEviction; the tag of 0x0 is evicted.
    c = Cache(0, 2, 0)
    assert c.access(0x0) is Outcome.MISS
    assert c.access(0x40) is Outcome.MISS
    res = c.lookup(0x80)
    assert res.outcome is Outcome.MISS_EVICTION
    assert res.evicted_tag == 0x0
    assert c.counters() == (0, 3, 1)
    assert sorted(c.resident_tags(0)) == [0x40, 0x80]


def test_hit_refreshes_recency():
    # A, B, A, C: the hit on A makes B the LRU line, so C must evict B.
    A, B, C = 0x0, 0x40, 0x80
    c = Cache(0, 2, 0)
    outcomes = [c.access(A), c.access(B), c.access(A)]
    res = c.lookup(C)
    assert outcomes == [Outcome.MISS, Outcome.MISS, Outcome.HIT]
    assert res.outcome is Outcome.MISS_EVICTION
    assert res.evicted_tag == B
    assert c.counters() == (1, 3, 1)
    assert c.access(A) is Outcome.HIT
    assert c.access(B) is Outcome.MISS_EVICTION


def test_miss_fills_first_invalid_way():
    c = Cache(0, 4, 0)
    ways = [c.lookup(a).way for a in (1, 2, 3)]
    assert ways == [0, 1, 2]
    assert c.sets[0][3].valid is False


def test_sets_are_independent():
    # s=1, b=4: bit 4 selects the set
    c = Cache(1, 1, 4)
    assert c.lookup(0x00).set_index == 0
    assert c.lookup(0x10).set_index == 1
    # 0x20 maps to set 0 with a new tag and evicts 0x00, leaving set 1 alone
    assert c.access(0x20) is Outcome.MISS_EVICTION
    assert c.access(0x10) is Outcome.HIT
    assert c.counters() == (1, 3, 1)


def test_block_offset_does_not_affect_hits():
    c = Cache(2, 1, 4)
    assert c.access(0x100) is Outcome.MISS
    for offset in range(1, 16):
        assert c.access(0x100 + offset) is Outcome.HIT


def test_counters_idempotent():
    c = Cache(1, 2, 1)
    for a in (0, 4, 8, 0, 12):
        c.access(a)
    first = c.counters()
    assert c.counters() == first
    assert c.counters() == first


def test_direct_mapped_conflict_misses():
    c = Cache(0, 1, 0)
    outcomes = [c.access(a) for a in (1, 2, 1, 2)]
    assert outcomes == [Outcome.MISS] + [Outcome.MISS_EVICTION] * 3
    assert c.counters() == (0, 4, 3)


def test_policy_order_agrees_with_timestamps():
    c = Cache(0, 4, 0)
    for a in (1, 2, 3, 4, 2, 1, 5, 3):
        c.access(a)
    lines = c.sets[0]
    by_time = sorted(range(4), key=lambda wi: lines[wi].last_used)
    assert c.replacement_policy_objs[0].peek() == by_time
    stamps = [line.last_used for line in lines]
    assert len(set(stamps)) == len(stamps)


@pytest.mark.parametrize('s,E,b', [(0, 1, 0), (1, 2, 1), (2, 4, 2), (3, 1, 4), (4, 8, 0)])
def test_randomized_counter_invariants(s, E, b):
    # Input: 500 random addresses over a small range so sets fill and evict.
    # Expected: hits + misses == accesses and evictions <= misses, and the
    # outcomes agree with an independent list-based LRU model.
    rng = random.Random(1234 + s * 100 + E * 10 + b)
    c = Cache(s, E, b)
    model = [[] for _ in range(1 << s)]
    n = 500
    for _ in range(n):
        addr = rng.randrange(0, 1 << (s + b + 3))
        tag = addr >> (s + b)
        idx = (addr >> b) & ((1 << s) - 1)
        ways = model[idx]
        if tag in ways:
            ways.remove(tag)
            ways.append(tag)
            expected = Outcome.HIT
        elif len(ways) < E:
            ways.append(tag)
            expected = Outcome.MISS
        else:
            ways.pop(0)
            ways.append(tag)
            expected = Outcome.MISS_EVICTION
        assert c.access(addr) is expected
    hits, misses, evictions = c.counters()
    assert hits + misses == n
    assert evictions <= misses
    for idx, ways in enumerate(model):
        assert c.resident_tags(idx) == ways


@pytest.mark.parametrize('s,E,b', [
    (0, 0, 0),      # no ways
    (2, -1, 2),
    (-1, 1, 0),
    (0, 1, -1),
    (33, 1, 32),    # s + b > 64
    (0, 1, 65),
    (64, 1, 0),     # far too many sets
])
def test_invalid_geometry_rejected(s, E, b):
    with pytest.raises(InvalidGeometry):
        Cache(s, E, b)


def test_invalid_geometry_is_value_error():
    with pytest.raises(ValueError, match='associativity'):
        Cache(0, 0, 0)


def test_line_limit_boundary():
    # exactly MAX_LINES is accepted by validation, one more set bit is not
    bits = MAX_LINES.bit_length() - 1
    assert Geometry(bits, 1, 0).validate().num_lines == MAX_LINES
    with pytest.raises(InvalidGeometry):
        Geometry(bits, 2, 0).validate()
    with pytest.raises(InvalidGeometry):
        Geometry(bits + 1, 1, 0).validate()


@pytest.mark.parametrize('value', [1.5, '2', None, True])
def test_non_integer_geometry_rejected(value):
    with pytest.raises(InvalidGeometry):
        Cache(0, value, 0)


def test_from_geometry():
    g = Geometry(3, 2, 5)
    c = Cache.from_geometry(g)
    assert c.geometry == g
    assert c.num_sets == 8
    assert g.block_size == 32
    assert g.num_lines == 16
