"""
tiny-fbf - Forgetful Bloom Filter Library

tiny-fbf answers "was this key seen recently?" in bounded memory, using a
rotating chain of Bloom filters that ages out old insertions.
"""

import logging

__version__ = "0.1.0"

# Import main classes to make them available at the top level
from tiny_fbf.algorithms.bloom import BitFilter, FilterParameters
from tiny_fbf.algorithms.forgetful import (
    ClassificationResult,
    ForgetfulBloomFilter,
    ForgetfulConfig,
    MembershipClassifier,
    ResizeController,
    ResizeOutcome,
    ResizePolicy,
    WindowChain,
)
from tiny_fbf.core.base import MembershipSketch, StreamSummary
from tiny_fbf.core.errors import (
    BelowMinimum,
    FilterError,
    InvalidParameters,
    InvalidTopology,
    ShapeMismatch,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Core base classes
    "StreamSummary",
    "MembershipSketch",
    # Errors
    "FilterError",
    "InvalidParameters",
    "ShapeMismatch",
    "InvalidTopology",
    "BelowMinimum",
    # Algorithm implementations
    "BitFilter",
    "FilterParameters",
    "WindowChain",
    "MembershipClassifier",
    "ClassificationResult",
    "ResizeController",
    "ResizePolicy",
    "ResizeOutcome",
    "ForgetfulBloomFilter",
    "ForgetfulConfig",
]
