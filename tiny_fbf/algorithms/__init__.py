"""
Algorithm implementations for tiny-fbf.
"""

from tiny_fbf.algorithms.bloom import BitFilter, FilterParameters
from tiny_fbf.algorithms.forgetful import (
    ForgetfulBloomFilter,
    ForgetfulConfig,
    WindowChain,
)

__all__ = [
    "BitFilter",
    "FilterParameters",
    "WindowChain",
    "ForgetfulBloomFilter",
    "ForgetfulConfig",
]
