"""
Core functionality for tiny-fbf.
"""

from tiny_fbf.core.base import MembershipSketch, StreamSummary
from tiny_fbf.core.errors import (
    BelowMinimum,
    FilterError,
    InvalidParameters,
    InvalidTopology,
    ShapeMismatch,
)
from tiny_fbf.core.hash import bit_positions, fnv1a_32, murmurhash3_32, seed_for_epoch

__all__ = [
    # Base classes
    "StreamSummary",
    "MembershipSketch",
    # Errors
    "FilterError",
    "InvalidParameters",
    "ShapeMismatch",
    "InvalidTopology",
    "BelowMinimum",
    # Utility functions
    "murmurhash3_32",
    "fnv1a_32",
    "bit_positions",
    "seed_for_epoch",
]
