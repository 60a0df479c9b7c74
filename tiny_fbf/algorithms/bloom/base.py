"""
Bit filter implementation for tiny-fbf.

This module provides the fixed-capacity Bloom filter used as one window of a
forgetful filter chain. Besides insert and membership tests it supports
in-place union and intersection with filters of the same shape and an
occupancy-based false positive estimate that costs O(1), because the number
of set bits is tracked as bits are set.

References:
    - Bloom, B. H. (1970). Space/time trade-offs in hash coding with allowable errors.
      Communications of the ACM, 13(7), 422-426.
    - Kirsch, A., & Mitzenmacher, M. (2006). Less hashing, same performance:
      Building a better Bloom filter.
"""

import array
import math
import sys
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple, TypeVar

from tiny_fbf.algorithms.bloom.parameters import DEFAULT_SEED, FilterParameters
from tiny_fbf.core.base import MembershipSketch
from tiny_fbf.core.errors import ShapeMismatch
from tiny_fbf.core.hash import bit_positions

T = TypeVar("T")  # Type for the items being processed


def _popcount(data: "array.array[int]") -> int:
    return sum(bin(byte).count("1") for byte in data)


class BitFilter(MembershipSketch[T]):
    """
    Single fixed-capacity Bloom filter.

    The shape (table_bits, hash_count, seed) is fixed at construction; only
    the bit contents change. Inserted keys are always reported as present
    until the filter is cleared.

    Example:
        bf = BitFilter(table_bits=6250, hash_count=3)
        bf.insert(42)
        bf.contains(42)            # True
        bf.fpp_from_occupancy()    # tiny, one key in 6250 bits
    """

    def __init__(self, table_bits: int, hash_count: int, seed: int = DEFAULT_SEED):
        """
        Initialize an empty bit filter.

        Args:
            table_bits: Number of bits in the filter.
            hash_count: Number of hash functions.
            seed: Seed of the hash family.

        Raises:
            InvalidParameters: If table_bits is not positive or hash_count < 1.
        """
        super().__init__()
        self._parameters = FilterParameters.explicit(table_bits, hash_count, seed=seed)
        self._table_bits = table_bits
        self._hash_count = hash_count
        self._seed = seed

        self._bytes = array.array("B", bytes(self._parameters.num_bytes))
        self._set_bits = 0

    @classmethod
    def from_parameters(
        cls, parameters: FilterParameters, seed: Optional[int] = None
    ) -> "BitFilter[T]":
        """Build an empty filter with the shape of ``parameters``."""
        instance = cls(
            parameters.table_bits,
            parameters.hash_count,
            seed=parameters.seed if seed is None else seed,
        )
        # Keep the capacity/probability targets the shape came from
        instance._parameters = parameters if seed is None else parameters.with_seed(seed)
        return instance

    @classmethod
    def create_from_error_rate(
        cls,
        expected_items: int,
        false_positive_rate: float,
        seed: int = DEFAULT_SEED,
    ) -> "BitFilter[T]":
        """
        Build a filter sized for ``expected_items`` at ``false_positive_rate``.

        Raises:
            InvalidParameters: If expected_items < 1 or the rate is not in (0, 1).
        """
        return cls.from_parameters(
            FilterParameters.derive(expected_items, false_positive_rate, seed=seed)
        )

    @property
    def table_bits(self) -> int:
        return self._table_bits

    @property
    def hash_count(self) -> int:
        return self._hash_count

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def parameters(self) -> FilterParameters:
        return self._parameters

    @property
    def shape(self) -> Tuple[int, int, int]:
        """(table_bits, hash_count, seed); filters combine only when equal."""
        return (self._table_bits, self._hash_count, self._seed)

    @property
    def set_bits(self) -> int:
        """Number of bits currently set to 1."""
        return self._set_bits

    def _get_bit_positions(self, item: T) -> List[int]:
        return bit_positions(item, self._table_bits, self._hash_count, self._seed)

    def _set_bit(self, position: int) -> None:
        # Bit i lives in byte i // 8 at offset i % 8, least significant first
        byte_index, bit_index = divmod(position, 8)
        mask = 1 << bit_index
        # Count only 0 -> 1 transitions
        if not self._bytes[byte_index] & mask:
            self._bytes[byte_index] |= mask
            self._set_bits += 1

    def _test_bit(self, position: int) -> bool:
        byte_index, bit_index = divmod(position, 8)
        return bool(self._bytes[byte_index] & (1 << bit_index))

    def update(self, item: T) -> None:
        """
        Add an item to the filter.

        Args:
            item: The item to add.
        """
        super().update(item)
        # Set all k bits for this item
        for position in self._get_bit_positions(item):
            self._set_bit(position)

    def insert(self, item: T) -> None:
        """Alias for update()."""
        self.update(item)

    def contains(self, item: T) -> bool:
        """
        Test if an item might be in the set.

        Args:
            item: The item to test.

        Returns:
            True if the item might be in the set, False if definitely not in the set.
        """
        # Any unset bit means definitely absent
        for position in self._get_bit_positions(item):
            if not self._test_bit(position):
                return False
        return True

    def _check_shape(self, other: "BitFilter[T]") -> None:
        self._check_same_type(other)
        if self.shape != other.shape:
            raise ShapeMismatch(self.shape, other.shape)

    def union_with(self, other: "BitFilter[T]") -> None:
        """
        OR another filter's bits into this one, in place.

        Raises:
            ShapeMismatch: If the filters differ in table_bits, hash_count or seed.
        """
        self._check_shape(other)
        for i, byte in enumerate(other._bytes):
            self._bytes[i] |= byte
        # Overlap between the two filters is unknown, so recount
        self._set_bits = _popcount(self._bytes)
        self._items_processed += other._items_processed

    def intersect_with(self, other: "BitFilter[T]") -> None:
        """
        AND another filter's bits into this one, in place.

        Intersecting with an empty filter of the same shape clears this one.

        Raises:
            ShapeMismatch: If the filters differ in table_bits, hash_count or seed.
        """
        self._check_shape(other)
        for i, byte in enumerate(other._bytes):
            self._bytes[i] &= byte
        self._set_bits = _popcount(self._bytes)
        if self._set_bits == 0:
            self._items_processed = 0

    def merge(self, other: "BitFilter[T]") -> "BitFilter[T]":
        """
        Return a new filter holding the union of this filter and ``other``.

        Raises:
            ShapeMismatch: If the filters differ in shape.
        """
        result = self.copy()
        result.union_with(other)
        return result

    def copy(self) -> "BitFilter[T]":
        """Return an independent copy with the same shape and bits."""
        result: BitFilter[T] = self.__class__.from_parameters(self._parameters)
        result._bytes = array.array("B", self._bytes)
        result._set_bits = self._set_bits
        result._items_processed = self._items_processed
        return result

    def fill_ratio(self) -> float:
        """Fraction of bits set to 1."""
        return self._set_bits / self._table_bits

    def fpp_from_occupancy(self) -> float:
        """
        Estimate the current false positive probability from bit occupancy.

        FPP ~= r^k where r is the fraction of set bits and k the hash count.
        Returns 0.0 for an empty filter.
        """
        if self._set_bits == 0:
            return 0.0
        return min(1.0, self.fill_ratio() ** self._hash_count)

    def false_positive_probability(self) -> float:
        """Alias for fpp_from_occupancy()."""
        return self.fpp_from_occupancy()

    def estimate_cardinality(self) -> int:
        """
        Estimate the number of distinct items from the fill ratio.

        Uses n ~= -m * ln(1 - X/m) / k. A saturated filter returns the number
        of items processed, since the formula diverges there.
        """
        if self._set_bits == 0:
            return 0
        if self._set_bits >= self._table_bits:
            return self._items_processed

        estimate = -self._table_bits * math.log(1.0 - self.fill_ratio()) / self._hash_count
        return max(0, int(round(estimate)))

    def is_empty(self) -> bool:
        """True if no bit is set."""
        return self._set_bits == 0

    def clear(self) -> None:
        """Zero all bits, keeping the shape."""
        self._bytes = array.array("B", bytes(len(self._bytes)))
        self._set_bits = 0
        super().clear()

    def estimate_size(self) -> int:
        """Estimated memory usage in bytes, including the bit array."""
        return super().estimate_size() + sys.getsizeof(self._bytes)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the current state of the filter.

        Adds the shape, occupancy, the occupancy-based FPP and a histogram of
        per-byte population counts to the base statistics.
        """
        stats = super().get_stats()
        stats.update(
            {
                "table_bits": self._table_bits,
                "hash_count": self._hash_count,
                "seed": self._seed,
                "set_bits": self._set_bits,
                "fill_ratio": self.fill_ratio(),
                "estimated_unique_items": self.estimate_cardinality(),
                "current_fpp": self.fpp_from_occupancy(),
            }
        )

        byte_distribution = Counter(bin(byte).count("1") for byte in self._bytes)
        stats["byte_stats"] = {
            "zero_bytes": byte_distribution.get(0, 0),
            "full_bytes": byte_distribution.get(8, 0),
        }
        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Theoretical error characteristics for the current load.

        Compares the capacity-based target with the FPP expected after the
        items processed so far.
        """
        bounds = super().error_bounds()
        items = self._items_processed
        if items > 0:
            fill = 1.0 - math.exp(-(self._hash_count * items) / self._table_bits)
            bounds["current_theoretical_fpp"] = min(1.0, fill**self._hash_count)
            if fill < 0.5:
                bounds["error_margin"] = "low"
            elif fill < 0.8:
                bounds["error_margin"] = "moderate"
            else:
                bounds["error_margin"] = "high"
        return bounds

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(table_bits={self._table_bits}, "
            f"hash_count={self._hash_count}, seed={self._seed:#x}, "
            f"set_bits={self._set_bits})"
        )
