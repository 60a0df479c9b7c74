"""
Window chain of a forgetful Bloom filter.

A chain is an ordered sequence of at least three bit filters, one per time
window. Logical position 0 is the *future* window, 1 the *present* window and
2..N-1 the *past* windows in ascending age. Inserts go into future and present;
each refresh ages every window by one position, drops the oldest and opens an
empty future window.

Windows are stored in a ring buffer with a rotating head, so a refresh moves
no bit data: the slot of the evicted window is reused for the new future
window.
"""

import logging
import threading
import time
from typing import Callable, Iterator, List, Optional, TypeVar

from tiny_fbf.algorithms.bloom.base import BitFilter
from tiny_fbf.algorithms.bloom.parameters import DEFAULT_SEED, FilterParameters
from tiny_fbf.algorithms.forgetful import classifier, estimator
from tiny_fbf.core.errors import BelowMinimum, InvalidParameters, InvalidTopology
from tiny_fbf.core.hash import seed_for_epoch

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_WINDOW_COUNT = 3
FUTURE = 0
PRESENT = 1
PAST_START = 2

DEFAULT_REFRESH_INTERVAL = 3.0


class WindowChain:
    """
    Ordered, owned sequence of bit filters representing consecutive epochs.

    Every mutating operation (insert, refresh, resize_to) holds the chain's
    lock, so a refresh or resize never interleaves with an insert. Queries
    take a snapshot of the windows under the lock and evaluate outside it.

    The window at logical position ``i`` was created at epoch ``epoch - i``
    and hashes with ``seed_for_epoch(seed, epoch - i)``.

    Example:
        chain = WindowChain(window_count=3, table_bits=6250, hash_count=3)
        chain.insert(42)
        chain.contains_correlated(42)   # True
        chain.refresh()
        chain.contains_correlated(42)   # still True, now in present + past
    """

    def __init__(
        self,
        window_count: int,
        table_bits: int,
        hash_count: int,
        seed: int = DEFAULT_SEED,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        parameters: Optional[FilterParameters] = None,
    ):
        """
        Initialize a chain of empty windows.

        Args:
            window_count: Number of windows, at least 3.
            table_bits: Number of bits in each window.
            hash_count: Number of hash functions in each window.
            seed: Base seed from which per-epoch window seeds are derived.
            refresh_interval: Seconds between refreshes, used by maybe_refresh().
            clock: Monotonic clock returning seconds.
            parameters: Optional parameters the shape was derived from; must
                        match table_bits and hash_count.

        Raises:
            InvalidTopology: If window_count < 3.
            InvalidParameters: If the filter shape or the interval is invalid.
        """
        if window_count < MIN_WINDOW_COUNT:
            raise InvalidTopology(
                f"A window chain needs at least {MIN_WINDOW_COUNT} windows, got {window_count}"
            )
        if parameters is None:
            parameters = FilterParameters.explicit(table_bits, hash_count, seed=seed)
        elif (parameters.table_bits, parameters.hash_count) != (table_bits, hash_count):
            raise InvalidParameters("parameters do not match table_bits/hash_count")
        _check_interval(refresh_interval)

        self._parameters = parameters
        self._seed = seed
        self._clock = clock
        self._lock = threading.RLock()

        self._epoch = 0
        self._head = 0
        self._slots: List[BitFilter] = [
            self._new_window(-i) for i in range(window_count)
        ]

        self._refresh_interval = float(refresh_interval)
        self._last_refresh = clock()
        self._inserts = 0

        logger.debug(
            "Initialized window chain: %d windows, %d bits, %d hashes",
            window_count,
            table_bits,
            hash_count,
        )

    @classmethod
    def from_parameters(
        cls,
        parameters: FilterParameters,
        window_count: int = MIN_WINDOW_COUNT,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> "WindowChain":
        """Build a chain whose windows all share the shape of ``parameters``."""
        return cls(
            window_count,
            parameters.table_bits,
            parameters.hash_count,
            seed=parameters.seed,
            refresh_interval=refresh_interval,
            clock=clock,
            parameters=parameters,
        )

    def _new_window(self, epoch: int) -> BitFilter:
        return BitFilter.from_parameters(
            self._parameters, seed=seed_for_epoch(self._seed, epoch)
        )

    def _slot(self, position: int) -> int:
        return (self._head + position) % len(self._slots)

    # -- topology ---------------------------------------------------------

    @property
    def window_count(self) -> int:
        return len(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    @property
    def future(self) -> int:
        return FUTURE

    @property
    def present(self) -> int:
        return PRESENT

    @property
    def past_end(self) -> int:
        """Logical position of the oldest window."""
        return len(self._slots) - 1

    @property
    def parameters(self) -> FilterParameters:
        return self._parameters

    @property
    def lock(self) -> "threading.RLock":
        """Re-entrant lock guarding every mutation of the chain."""
        return self._lock

    @property
    def epoch(self) -> int:
        """Number of refreshes performed since construction."""
        return self._epoch

    @property
    def inserts(self) -> int:
        return self._inserts

    def window(self, position: int) -> BitFilter:
        """
        Return the window at a logical position.

        Raises:
            IndexError: If position is outside [0, window_count).
        """
        with self._lock:
            if not 0 <= position < len(self._slots):
                raise IndexError(
                    f"Window position {position} out of range for {len(self._slots)} windows"
                )
            return self._slots[self._slot(position)]

    def windows(self) -> List[BitFilter]:
        """Snapshot of the windows in logical order, future first."""
        with self._lock:
            return [self._slots[self._slot(i)] for i in range(len(self._slots))]

    def __iter__(self) -> Iterator[BitFilter]:
        return iter(self.windows())

    # -- timing -----------------------------------------------------------

    @property
    def refresh_interval(self) -> float:
        return self._refresh_interval

    @refresh_interval.setter
    def refresh_interval(self, value: float) -> None:
        _check_interval(value)
        with self._lock:
            self._refresh_interval = float(value)

    @property
    def last_refresh(self) -> float:
        return self._last_refresh

    def elapsed(self, now: Optional[float] = None) -> float:
        """Seconds since the last refresh."""
        now = self._clock() if now is None else now
        return now - self._last_refresh

    def refresh_due(self, now: Optional[float] = None) -> bool:
        return self.elapsed(now) >= self._refresh_interval

    # -- mutation ---------------------------------------------------------

    def insert(self, key: T) -> None:
        """
        Insert a key into the future and present windows.

        Writing both windows keeps a key inserted just before a refresh
        visible in two adjacent windows after the rotation.
        """
        with self._lock:
            self._slots[self._slot(FUTURE)].update(key)
            self._slots[self._slot(PRESENT)].update(key)
            self._inserts += 1

    def refresh(self, now: Optional[float] = None) -> None:
        """
        Age the chain by one epoch.

        Every window moves one position towards the past, the oldest window
        is discarded and an empty future window is opened.

        Args:
            now: Clock reading to record as the refresh time; defaults to the clock.
        """
        with self._lock:
            self._epoch += 1
            self._head = (self._head - 1) % len(self._slots)
            self._slots[self._head] = self._new_window(self._epoch)
            self._last_refresh = self._clock() if now is None else now
            logger.debug(
                "Refreshed window chain to epoch %d (%d windows)",
                self._epoch,
                len(self._slots),
            )

    def maybe_refresh(self, now: Optional[float] = None, catch_up: bool = False) -> int:
        """
        Refresh if the refresh interval has elapsed since the last refresh.

        Never sleeps. Without ``catch_up`` at most one refresh is performed
        and the timer restarts at ``now``. With ``catch_up`` one refresh is
        performed per whole interval elapsed (at most window_count, after which
        every window is empty anyway) and the timer advances by whole
        intervals so it does not drift.

        Args:
            now: Current clock reading; defaults to the clock.
            catch_up: Whether to perform one refresh per elapsed interval.

        Returns:
            Number of refreshes performed.
        """
        with self._lock:
            now = self._clock() if now is None else now
            elapsed = now - self._last_refresh
            if elapsed < self._refresh_interval:
                return 0
            if not catch_up:
                self.refresh(now)
                return 1

            steps = int(elapsed // self._refresh_interval)
            performed = min(steps, len(self._slots))
            for _ in range(performed):
                self.refresh(now)
            self._last_refresh = now - (elapsed - steps * self._refresh_interval)
            return performed

    def resize_to(self, new_count: int) -> None:
        """
        Change the number of windows.

        Growing appends empty windows beyond the oldest one; shrinking drops
        the oldest windows. The ring is laid out again in logical order.

        Raises:
            BelowMinimum: If new_count < 3. The chain is left unchanged.
        """
        if new_count < MIN_WINDOW_COUNT:
            raise BelowMinimum(new_count, MIN_WINDOW_COUNT)

        with self._lock:
            old_count = len(self._slots)
            if new_count == old_count:
                return
            ordered = self.windows()
            if new_count > old_count:
                ordered.extend(
                    self._new_window(self._epoch - i) for i in range(old_count, new_count)
                )
            else:
                del ordered[new_count:]
            self._slots = ordered
            self._head = 0
            logger.debug("Resized window chain from %d to %d windows", old_count, new_count)

    def clear(self) -> None:
        """Empty every window, keeping the topology and epoch."""
        with self._lock:
            for window in self._slots:
                window.clear()
            self._inserts = 0

    # -- queries ----------------------------------------------------------

    def contains_any(self, key: T) -> bool:
        """True if any window contains the key (naive rule)."""
        return classifier.any_window_contains(self.windows(), key)

    def contains_correlated(self, key: T) -> bool:
        """True if two adjacent windows contain the key (adjacency rule)."""
        return classifier.adjacent_windows_contain(self.windows(), key)

    def classify(self, key: T) -> "classifier.ClassificationResult":
        return classifier.classify_windows(self.windows(), key)

    def effective_fpr(self) -> float:
        """Analytic false positive estimate for the adjacency rule."""
        return estimator.effective_fpr(self.windows())

    def naive_fpr(self) -> float:
        """Analytic false positive estimate for the naive rule."""
        return estimator.naive_fpr(self.windows())

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(window_count={len(self._slots)}, "
            f"table_bits={self._parameters.table_bits}, "
            f"hash_count={self._parameters.hash_count}, epoch={self._epoch})"
        )


def _check_interval(value: float) -> None:
    if not value > 0:
        raise InvalidParameters("Refresh interval must be positive")
