"""Address decomposition for the cache model.

An address is split into three fields by mask and shift:

    | tag | set index (s bits) | block offset (b bits) |

  block_offset = address & (2^b - 1)
  set_index    = (address >> b) & (2^s - 1)
  tag          = address >> (s + b)

The block offset is decoded for completeness; the cache never uses it
because block contents are not simulated.
"""
from collections import namedtuple
from typing import Tuple


AddressFields = namedtuple('AddressFields', 'tag set_index block_offset')


def _mask(bits: int) -> int:
    return (1 << bits) - 1


def split(address: int, s: int, b: int) -> AddressFields:
    """Return all three fields of `address` for a cache with `s` index bits
    and `b` offset bits."""
    block_offset = address & _mask(b)
    set_index = (address >> b) & _mask(s)
    tag = address >> (s + b)
    return AddressFields(tag, set_index, block_offset)


def decode(address: int, s: int, b: int) -> Tuple[int, int]:
    """Decode address into (tag, set_index)."""
    fields = split(address, s, b)
    return fields.tag, fields.set_index


__all__ = ["AddressFields", "split", "decode"]
