"""
Bit filter building blocks for tiny-fbf.

This includes:
- FilterParameters: Shape derivation from capacity and false positive target
- BitFilter: Fixed-capacity Bloom filter used as one window of a chain
"""

from tiny_fbf.algorithms.bloom.base import BitFilter
from tiny_fbf.algorithms.bloom.parameters import (
    FilterParameters,
    optimal_hash_count,
    optimal_table_bits,
)

__all__ = [
    "BitFilter",
    "FilterParameters",
    "optimal_table_bits",
    "optimal_hash_count",
]
