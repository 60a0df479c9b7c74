"""
Base classes and interfaces for tiny-fbf membership structures.

This module defines the abstract base classes shared by the single bit
filter and the forgetful filter chain, so both expose the same update,
query and statistics surface.
"""

import abc
import sys
from typing import Any, Dict, Generic, TypeVar

T = TypeVar("T")  # Type for the items being processed
R = TypeVar("R")  # Type for the result of queries


class StreamSummary(Generic[T, R], abc.ABC):
    """
    Abstract base class for all streaming data structures.

    Subclasses implement update and query. The base keeps the count of
    processed items and provides the statistics hooks (estimate_size,
    get_stats, error_bounds) that subclasses extend.
    """

    def __init__(self) -> None:
        self._items_processed = 0

    @abc.abstractmethod
    def update(self, item: T) -> None:
        """
        Update the summary with a new item from the stream.

        Args:
            item: The new item to process.
        """
        self._items_processed += 1

    @abc.abstractmethod
    def query(self, *args: Any, **kwargs: Any) -> R:
        """
        Query the current state of the summary.

        Returns:
            The result of the query, which depends on the specific structure.
        """
        pass

    def _check_same_type(self, other: "StreamSummary[T, R]") -> None:
        """
        Check that another summary is of the same type.

        Raises:
            TypeError: If other is not of the same type.
        """
        if not isinstance(other, self.__class__):
            raise TypeError(f"Cannot combine with {other.__class__.__name__}")

    def estimate_size(self) -> int:
        """
        Estimate the current memory usage of this summary in bytes.

        Derived classes override this to add their own buffers.

        Returns:
            Estimated memory usage in bytes.
        """
        size = sys.getsizeof(self)
        if hasattr(self, "__dict__"):
            size += sys.getsizeof(self.__dict__)
        return size

    def clear(self) -> None:
        """
        Reset the summary to its initial empty state.

        Derived classes must call super().clear() after clearing their own state.
        """
        self._items_processed = 0

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the current state of the summary.

        Derived classes extend the returned dictionary with their own values.

        Returns:
            A dictionary of statistics.
        """
        stats: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
            "memory_bytes": self.estimate_size(),
        }
        stats.update(self.error_bounds())
        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Get the error characteristics of this summary.

        The base implementation returns an empty dictionary.
        """
        return {}

    @property
    def items_processed(self) -> int:
        """Get the total number of items processed by this summary."""
        return self._items_processed


class MembershipSketch(StreamSummary[T, bool], abc.ABC):
    """
    Abstract base class for approximate set membership structures.

    Membership sketches may report false positives but never false negatives
    for items that are still within their retention.
    """

    @abc.abstractmethod
    def contains(self, item: T) -> bool:
        """
        Test if an item might be in the set.

        Args:
            item: The item to test.

        Returns:
            True if the item might be present, False if it is definitely absent.
        """
        pass

    def query(self, item: T, *args: Any, **kwargs: Any) -> bool:
        """Convenience alias for contains()."""
        return self.contains(item)

    def __contains__(self, item: object) -> bool:
        return self.contains(item)  # type: ignore[arg-type]
