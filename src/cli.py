"""Command line driver: replay a valgrind trace through the cache.

    csim [-hv] -s <num> -E <num> -b <num> -t <file>

Examples:
    csim -s 4 -E 1 -b 4 -t traces/yi.trace
    csim -v -s 8 -E 2 -b 4 -t traces/yi.trace
"""
import logging

import click

from src.core.cache import Cache, InvalidGeometry
from src.core.simulator import CacheSimulator, format_verbose
from src.core.trace import TraceFormatError, read_trace
from src.data.stats_export import Exporter, Statistics, export_hit_rate_chart, format_summary

logger = logging.getLogger(__name__)

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


@click.command(context_settings={'help_option_names': ['-h', '--help']})
@click.option('-v', 'verbose', is_flag=True, help='Optional verbose flag that displays trace info.')
@click.option('-s', 'set_bits', type=int, required=True, help='Number of set index bits (S = 2^s is the number of sets).')
@click.option('-E', 'associativity', type=int, required=True, help='Number of lines per set.')
@click.option('-b', 'block_bits', type=int, required=True, help='Number of block offset bits (B = 2^b is the block size).')
@click.option('-t', 'trace_file', type=click.Path(exists=True, dir_okay=False), required=True,
              help='Valgrind trace to replay.')
@click.option('--csv', 'csv_path', type=click.Path(dir_okay=False, writable=True), help='Write statistics as CSV.')
@click.option('--json', 'json_path', type=click.Path(dir_okay=False, writable=True), help='Write statistics and geometry as JSON.')
@click.option('--chart', 'chart_path', type=click.Path(dir_okay=False, writable=True),
              help='Plot the running hit rate (format from extension, e.g. .pdf or .png).')
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False), default='WARNING',
              show_default=True, help='Logging level for diagnostics on stderr.')
def main(verbose, set_bits, associativity, block_bits, trace_file,
         csv_path, json_path, chart_path, log_level):
    """Simulate an LRU set-associative cache over a valgrind memory trace."""
    logging.basicConfig(level=getattr(logging, log_level.upper()), format='%(levelname)s: %(message)s')

    try:
        cache = Cache(set_bits, associativity, block_bits)
    except InvalidGeometry as e:
        raise click.ClickException(f"invalid cache geometry: {e}")
    logger.info("s: %d E: %d b: %d tracefile: %s verbose: %s",
                set_bits, associativity, block_bits, trace_file, verbose)

    try:
        records = read_trace(trace_file)
    except TraceFormatError as e:
        raise click.ClickException(f"{trace_file}: {e}")

    sim = CacheSimulator(cache, Statistics(track_history=bool(chart_path)))
    sim.load_sequence(records)
    callback = _echo_verbose if verbose else None
    hits, misses, evictions = sim.run_all(callback)
    click.echo(format_summary(hits, misses, evictions))

    if csv_path:
        _export(Exporter.export_stats_csv, csv_path, sim.stats)
    if json_path:
        _export(Exporter.export_stats_json, json_path, sim.stats, cache.geometry)
    if chart_path:
        _export(export_hit_rate_chart, chart_path, sim.stats.hit_rate_history)


def _export(writer, path, *args):
    try:
        writer(path, *args)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"could not write {path}: {e}")
    logger.info("wrote %s", path)


def _echo_verbose(info: dict):
    # instruction fetches make no data access and print nothing
    if info['outcomes']:
        click.echo(format_verbose(info))


if __name__ == '__main__':
    main()
