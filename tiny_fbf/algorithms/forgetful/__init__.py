"""
Forgetful Bloom filter for tiny-fbf.

This includes:
- WindowChain: Ring of bit filters, one per epoch, with insert/refresh/resize
- MembershipClassifier: Naive (any window) and adjacency (two adjacent windows) rules
- estimator: Occupancy-based analytic FPR estimates
- ResizeController: AIMD loop holding a target FPR
- ForgetfulBloomFilter: Owner facade combining all of the above
"""

from tiny_fbf.algorithms.forgetful.chain import MIN_WINDOW_COUNT, WindowChain
from tiny_fbf.algorithms.forgetful.classifier import (
    ClassificationResult,
    FprMeasurement,
    MembershipClassifier,
)
from tiny_fbf.algorithms.forgetful.estimator import (
    FprEstimate,
    effective_fpr,
    estimate,
    naive_fpr,
)
from tiny_fbf.algorithms.forgetful.filter import ForgetfulBloomFilter, ForgetfulConfig
from tiny_fbf.algorithms.forgetful.resize import (
    ResizeController,
    ResizeDecision,
    ResizeOutcome,
    ResizePolicy,
)

__all__ = [
    "MIN_WINDOW_COUNT",
    "WindowChain",
    "ClassificationResult",
    "FprMeasurement",
    "MembershipClassifier",
    "FprEstimate",
    "effective_fpr",
    "naive_fpr",
    "estimate",
    "ResizeController",
    "ResizeDecision",
    "ResizeOutcome",
    "ResizePolicy",
    "ForgetfulBloomFilter",
    "ForgetfulConfig",
]
