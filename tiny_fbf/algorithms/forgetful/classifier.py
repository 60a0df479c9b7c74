"""
Membership rules over the windows of a forgetful filter chain.

Two rules are provided. The naive ("dumb") rule accepts a key if any window
contains it. The adjacency ("smart") rule requires two temporally adjacent
windows to agree, because a genuine insert always lands in two adjacent
windows (future and present when inserted, then present and first past after
one refresh, and so on), while a hash collision rarely hits the same pair.

The rules are pure functions of a window snapshot; nothing here mutates the
chain. MembershipClassifier bundles them with measurement helpers used to
compare the rules on a stream of keys that were never inserted.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, Sequence

from tiny_fbf.algorithms.bloom.base import BitFilter

if TYPE_CHECKING:
    from tiny_fbf.algorithms.forgetful.chain import WindowChain


class ClassificationResult(Enum):
    """Outcome of classifying a key that is known not to have been inserted."""

    TRUE_NEGATIVE = "true_negative"
    # Accepted by the naive rule only
    FALSE_POSITIVE_DUMB = "false_positive_dumb"
    # Accepted by the adjacency rule (and therefore by the naive rule too)
    FALSE_POSITIVE_SMART = "false_positive_smart"


def any_window_contains(windows: Sequence[BitFilter], key: Any) -> bool:
    """Naive rule: True if any window contains the key."""
    return any(window.contains(key) for window in windows)


def adjacent_windows_contain(windows: Sequence[BitFilter], key: Any) -> bool:
    """
    Adjacency rule, evaluated in fixed precedence.

    (a) future and present; (b) present and first past; (c) each adjacent
    pair of past windows, youngest pair first; (d) otherwise the oldest
    window alone counts as a hit, since it has no older partner left to
    corroborate a key that is in its last epoch.

    Each window is tested at most once per call.
    """
    previous = windows[0].contains(key)
    for window in windows[1:]:
        current = window.contains(key)
        if previous and current:
            return True
        previous = current
    # previous now holds the oldest window's answer
    return previous


def classify_windows(windows: Sequence[BitFilter], key: Any) -> ClassificationResult:
    """Classify a never-inserted key against both rules."""
    if adjacent_windows_contain(windows, key):
        return ClassificationResult.FALSE_POSITIVE_SMART
    if any_window_contains(windows, key):
        return ClassificationResult.FALSE_POSITIVE_DUMB
    return ClassificationResult.TRUE_NEGATIVE


def invalid_keys(count: int, start: int = -1) -> Iterator[int]:
    """
    Query keys that a workload of non-negative integers never inserts.

    Yields ``start, start - 1, ...``; negative integers hash as their unsigned
    64-bit value, far above any inserted counter.
    """
    for i in range(count):
        yield start - i


@dataclass(frozen=True)
class FprMeasurement:
    """
    Empirical false positive counts for both rules over a set of query keys.

    All query keys are assumed never inserted, so every accepted key is a
    false positive.
    """

    queries: int
    dumb_false_positives: int
    smart_false_positives: int

    @property
    def dumb_fpr(self) -> float:
        if self.queries == 0:
            return 0.0
        return self.dumb_false_positives / self.queries

    @property
    def smart_fpr(self) -> float:
        if self.queries == 0:
            return 0.0
        return self.smart_false_positives / self.queries

    @property
    def true_negatives(self) -> int:
        return self.queries - self.dumb_false_positives

    def to_dict(self) -> Dict[str, Any]:
        return {
            "queries": self.queries,
            "dumb_false_positives": self.dumb_false_positives,
            "smart_false_positives": self.smart_false_positives,
            "dumb_fpr": self.dumb_fpr,
            "smart_fpr": self.smart_fpr,
        }


class MembershipClassifier:
    """
    Naive and adjacency membership rules bound to a window chain.

    Every call evaluates against a fresh snapshot of the chain's windows, so
    the classifier can be kept around while the chain is refreshed or resized.
    """

    def __init__(self, chain: "WindowChain"):
        self._chain = chain

    @property
    def chain(self) -> "WindowChain":
        return self._chain

    def contains_any(self, key: Any) -> bool:
        return any_window_contains(self._chain.windows(), key)

    def contains_correlated(self, key: Any) -> bool:
        return adjacent_windows_contain(self._chain.windows(), key)

    def classify(self, key: Any) -> ClassificationResult:
        return classify_windows(self._chain.windows(), key)

    def measure(self, keys: Iterable[Any]) -> FprMeasurement:
        """
        Count false positives of both rules over keys that were never inserted.

        The window snapshot is taken once, so the whole measurement sees a
        single consistent state of the chain.

        Args:
            keys: Query keys, none of which were inserted.

        Returns:
            An FprMeasurement with the counts for both rules.
        """
        windows = self._chain.windows()
        queries = dumb = smart = 0
        for key in keys:
            queries += 1
            result = classify_windows(windows, key)
            if result is ClassificationResult.FALSE_POSITIVE_SMART:
                smart += 1
                dumb += 1
            elif result is ClassificationResult.FALSE_POSITIVE_DUMB:
                dumb += 1
        return FprMeasurement(queries, dumb, smart)

    def measure_invalids(self, count: int, start: int = -1) -> FprMeasurement:
        """Measure both rules over ``count`` keys from invalid_keys()."""
        return self.measure(invalid_keys(count, start))
