"""Valgrind trace parsing.

Trace files use the valgrind lackey format, one memory operation per line:

    I 0400d7d4,8      instruction fetch (not simulated)
     L 7ff0005b8,8    data load
     S 7ff0005b0,8    data store
     M 0421c7f0,4     data modify (load followed by store)

Operation letters are uppercase, addresses hexadecimal, sizes decimal. Blank
lines are skipped; any other malformed line, including one that is not valid
UTF-8, raises TraceFormatError.
"""
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

logger = logging.getLogger(__name__)

OPERATIONS = ('I', 'L', 'S', 'M')
MAX_ADDRESS = (1 << 64) - 1

_LINE_RE = re.compile(r'^\s*([A-Z])\s+(?:0[xX])?([0-9A-Fa-f]+)\s*,\s*(\d+)\s*$')


class TraceFormatError(ValueError):
    """Raised for a trace line that cannot be parsed."""

    def __init__(self, message: str, lineno: Optional[int] = None, text: str = ''):
        self.lineno = lineno
        self.text = text
        if lineno is not None:
            message = f"line {lineno}: {message}"
        super().__init__(message)


@dataclass(frozen=True)
class TraceRecord:
    op: str
    address: int
    size: int

    def __str__(self):
        return f"{self.op} {self.address:x},{self.size}"


def parse_line(text: str, lineno: Optional[int] = None) -> Optional[TraceRecord]:
    """Parse one trace line. Returns None for blank lines."""
    stripped = text.strip()
    if not stripped:
        return None
    m = _LINE_RE.match(stripped)
    if m is None:
        raise TraceFormatError(f"malformed trace line {stripped!r}", lineno, text)
    op, addr_hex, size = m.groups()
    if op not in OPERATIONS:
        raise TraceFormatError(f"unknown operation {op!r}", lineno, text)
    address = int(addr_hex, 16)
    if address > MAX_ADDRESS:
        raise TraceFormatError(f"address {addr_hex} does not fit in 64 bits", lineno, text)
    return TraceRecord(op, address, int(size))


def iter_trace(lines: Iterable[str]) -> Iterator[TraceRecord]:
    """Yield records from an iterable of lines, in order."""
    for lineno, text in enumerate(lines, start=1):
        record = parse_line(text, lineno)
        if record is None:
            logger.debug("skipping blank line %d", lineno)
            continue
        yield record


def _decode_lines(fh) -> Iterator[str]:
    for lineno, raw in enumerate(fh, start=1):
        try:
            yield raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise TraceFormatError(f"not valid UTF-8 text ({e.reason})", lineno) from e


def read_trace(path: str) -> List[TraceRecord]:
    """Read and parse a whole trace file."""
    with open(path, 'rb') as fh:
        records = list(iter_trace(_decode_lines(fh)))
    logger.info("read %d records from %s", len(records), path)
    return records


def addresses_for(record: TraceRecord) -> List[int]:
    """Return the data accesses a record makes, in order.

    Instruction fetches make none, loads and stores one, and a modify is a
    load followed by a store to the same address.
    """
    if record.op == 'I':
        return []
    if record.op == 'M':
        return [record.address, record.address]
    return [record.address]


__all__ = [
    "MAX_ADDRESS",
    "OPERATIONS",
    "TraceFormatError",
    "TraceRecord",
    "addresses_for",
    "iter_trace",
    "parse_line",
    "read_trace",
]
