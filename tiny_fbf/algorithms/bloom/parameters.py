"""
Parameter derivation for bit filters.

A FilterParameters value fixes the shape of a bit filter (bit array size
and hash count) together with the capacity and false positive target the
shape was derived from. Every window of a forgetful chain is built from the
same parameters.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from tiny_fbf.core.errors import InvalidParameters

DEFAULT_PROJECTED_ELEMENT_COUNT = 10000
DEFAULT_FALSE_POSITIVE_PROBABILITY = 0.0001
DEFAULT_SEED = 0xA5A5A5A5


def optimal_table_bits(n: int, p: float) -> int:
    """
    Optimal bit array size: m = ceil(-n * ln(p) / ln(2)^2).

    Args:
        n: Expected number of items.
        p: Target false positive probability.

    Returns:
        Bit array size, at least 1.
    """
    _check_count_and_probability(n, p)
    m = -(n * math.log(p)) / (math.log(2) ** 2)
    return max(1, math.ceil(m))


def optimal_hash_count(m: int, n: int) -> int:
    """Optimal number of hash functions: k = round((m/n) * ln(2)), at least 1."""
    if n < 1:
        raise InvalidParameters("Projected element count must be at least 1")
    return max(1, int(round((m / n) * math.log(2))))


def _check_count_and_probability(n: int, p: float) -> None:
    if n < 1:
        raise InvalidParameters("Projected element count must be at least 1")
    if not (0 < p < 1):
        raise InvalidParameters("False positive probability must be between 0 and 1")


@dataclass(frozen=True)
class FilterParameters:
    """
    Shape and sizing targets of a bit filter.

    Either build with derive(), which computes table_bits and hash_count from
    the expected element count and target probability, or with explicit(),
    which takes the shape as given.

    Attributes:
        projected_element_count: Expected number of items per filter.
        target_false_positive_probability: Target false positive rate in (0, 1).
        table_bits: Number of bits in the filter.
        hash_count: Number of hash functions.
        seed: Base seed of the hash family.
    """

    projected_element_count: int = DEFAULT_PROJECTED_ELEMENT_COUNT
    target_false_positive_probability: float = DEFAULT_FALSE_POSITIVE_PROBABILITY
    table_bits: int = field(default=0)
    hash_count: int = field(default=0)
    seed: int = DEFAULT_SEED

    def __post_init__(self) -> None:
        _check_count_and_probability(
            self.projected_element_count, self.target_false_positive_probability
        )
        # Fill in a derived shape when none was supplied
        if self.table_bits == 0 and self.hash_count == 0:
            m = optimal_table_bits(
                self.projected_element_count, self.target_false_positive_probability
            )
            object.__setattr__(self, "table_bits", m)
            object.__setattr__(
                self, "hash_count", optimal_hash_count(m, self.projected_element_count)
            )
        if self.table_bits <= 0:
            raise InvalidParameters("table_bits must be positive")
        if self.hash_count < 1:
            raise InvalidParameters("hash_count must be at least 1")

    @classmethod
    def derive(
        cls,
        projected_element_count: int = DEFAULT_PROJECTED_ELEMENT_COUNT,
        false_positive_probability: float = DEFAULT_FALSE_POSITIVE_PROBABILITY,
        seed: int = DEFAULT_SEED,
    ) -> "FilterParameters":
        """Derive the optimal shape for a capacity and false positive target."""
        return cls(
            projected_element_count=projected_element_count,
            target_false_positive_probability=false_positive_probability,
            seed=seed,
        )

    @classmethod
    def explicit(
        cls,
        table_bits: int,
        hash_count: int,
        seed: int = DEFAULT_SEED,
        projected_element_count: int = DEFAULT_PROJECTED_ELEMENT_COUNT,
        false_positive_probability: float = DEFAULT_FALSE_POSITIVE_PROBABILITY,
    ) -> "FilterParameters":
        """
        Use a caller-chosen shape.

        Raises:
            InvalidParameters: If table_bits is not positive or hash_count < 1.
        """
        if table_bits <= 0:
            raise InvalidParameters("table_bits must be positive")
        if hash_count < 1:
            raise InvalidParameters("hash_count must be at least 1")
        return cls(
            projected_element_count=projected_element_count,
            target_false_positive_probability=false_positive_probability,
            table_bits=table_bits,
            hash_count=hash_count,
            seed=seed,
        )

    def with_seed(self, seed: int) -> "FilterParameters":
        """Return the same shape with a different hash seed."""
        return FilterParameters(
            projected_element_count=self.projected_element_count,
            target_false_positive_probability=self.target_false_positive_probability,
            table_bits=self.table_bits,
            hash_count=self.hash_count,
            seed=seed,
        )

    @property
    def num_bytes(self) -> int:
        return (self.table_bits + 7) // 8

    def expected_fpp(self, items: Optional[int] = None) -> float:
        """
        Theoretical false positive probability after inserting ``items`` keys.

        Formula: (1 - e^(-k*n/m))^k. Defaults to the projected element count.
        """
        n = self.projected_element_count if items is None else items
        if n <= 0:
            return 0.0
        fill = 1.0 - math.exp(-(self.hash_count * n) / self.table_bits)
        return min(1.0, fill**self.hash_count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projected_element_count": self.projected_element_count,
            "target_false_positive_probability": self.target_false_positive_probability,
            "table_bits": self.table_bits,
            "hash_count": self.hash_count,
            "seed": self.seed,
        }
