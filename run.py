"""Entry point for the cache simulator.

Usage:
    python run.py -s 4 -E 1 -b 4 -t traces/yi.trace   # replay a trace
    python run.py --demo                              # runs a quick headless check of the core logic
"""
import sys
from src.core.cache import Cache
from src.core.simulator import CacheSimulator
from src.data.stats_export import format_summary


def headless_test():
    # s=0, E=2: one set, two ways. A, B, A, C evicts B.
    cache = Cache(0, 2, 0)
    sim = CacheSimulator(cache)
    sim.load_addresses([0x0, 0x40, 0x0, 0x80])
    sim.run_all()
    s = sim.stats
    print('Accesses:', s.accesses)
    print('Hit rate:', s.hit_rate)
    print(format_summary(*cache.counters()))


def main():
    if '--demo' in sys.argv:
        headless_test()
    else:
        from src.cli import main as cli_main
        cli_main()


if __name__ == '__main__':
    main()
