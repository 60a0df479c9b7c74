"""
Forgetful Bloom filter for tiny-fbf.

This module ties the window chain, the membership rules, the FPR estimator
and the resize controller into one membership sketch that answers "was this
key seen recently?" in bounded memory. Keys age out as the chain is
refreshed; the chain can grow or shrink to hold a target false positive rate
under changing load.

References:
    - Subramanyam, R., Gupta, I., Leslie, L. M., & Zhang, W. (2015).
      Idempotent distributed counters using a forgetful Bloom filter.
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, Optional, TypeVar

from tiny_fbf.algorithms.bloom.parameters import (
    DEFAULT_FALSE_POSITIVE_PROBABILITY,
    DEFAULT_PROJECTED_ELEMENT_COUNT,
    DEFAULT_SEED,
    FilterParameters,
)
from tiny_fbf.algorithms.forgetful.chain import (
    DEFAULT_REFRESH_INTERVAL,
    MIN_WINDOW_COUNT,
    WindowChain,
)
from tiny_fbf.algorithms.forgetful.classifier import (
    ClassificationResult,
    FprMeasurement,
    MembershipClassifier,
)
from tiny_fbf.algorithms.forgetful.estimator import FprEstimate, estimate
from tiny_fbf.algorithms.forgetful.resize import (
    ResizeController,
    ResizeOutcome,
    ResizePolicy,
)
from tiny_fbf.core.base import MembershipSketch
from tiny_fbf.core.errors import InvalidParameters, InvalidTopology

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ForgetfulConfig:
    """
    Configuration of a forgetful Bloom filter.

    The window shape is derived from projected_element_count and
    target_false_positive_probability unless table_bits and hash_count are
    both given. target_fpr is the false positive rate the resize loop aims
    for; leave it as None to disable resizing in tick().
    """

    projected_element_count: int = DEFAULT_PROJECTED_ELEMENT_COUNT
    target_false_positive_probability: float = DEFAULT_FALSE_POSITIVE_PROBABILITY
    table_bits: Optional[int] = None
    hash_count: Optional[int] = None
    seed: int = DEFAULT_SEED
    initial_window_count: int = MIN_WINDOW_COUNT
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    min_refresh_interval: float = 1.0
    interval_step: float = 1.0
    grow_threshold: float = 0.8
    shrink_threshold: float = 0.5
    growth_factor: int = 2
    shrink_step: int = 1
    max_window_count: Optional[int] = None
    refresh_after_grow: bool = False
    target_fpr: Optional[float] = None
    catch_up_refreshes: bool = False

    def __post_init__(self) -> None:
        if self.initial_window_count < MIN_WINDOW_COUNT:
            raise InvalidTopology(
                f"initial_window_count must be at least {MIN_WINDOW_COUNT}"
            )
        if (self.table_bits is None) != (self.hash_count is None):
            raise InvalidParameters("table_bits and hash_count must be given together")
        if not self.refresh_interval > 0:
            raise InvalidParameters("refresh_interval must be positive")
        if self.target_fpr is not None and not (0 < self.target_fpr < 1):
            raise InvalidParameters("target_fpr must be between 0 and 1")
        # Fail early on bad shapes and policies rather than on first use
        self.filter_parameters()
        self.resize_policy()

    def filter_parameters(self) -> FilterParameters:
        if self.table_bits is not None and self.hash_count is not None:
            return FilterParameters.explicit(
                self.table_bits,
                self.hash_count,
                seed=self.seed,
                projected_element_count=self.projected_element_count,
                false_positive_probability=self.target_false_positive_probability,
            )
        return FilterParameters.derive(
            self.projected_element_count,
            self.target_false_positive_probability,
            seed=self.seed,
        )

    def resize_policy(self) -> ResizePolicy:
        return ResizePolicy(
            grow_threshold=self.grow_threshold,
            shrink_threshold=self.shrink_threshold,
            growth_factor=self.growth_factor,
            shrink_step=self.shrink_step,
            interval_step=self.interval_step,
            min_refresh_interval=self.min_refresh_interval,
            max_window_count=self.max_window_count,
            refresh_after_grow=self.refresh_after_grow,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ForgetfulBloomFilter(MembershipSketch[T]):
    """
    Time-decaying approximate membership filter.

    Inserted keys are reported present (by the adjacency rule) until they
    have aged out of the chain, after about window_count - 1 refreshes.
    The owner drives time by calling tick() or maybe_refresh() regularly;
    nothing here sleeps or starts threads.

    Example:
        fbf = ForgetfulBloomFilter(ForgetfulConfig(table_bits=6250, hash_count=3))
        fbf.insert(42)
        fbf.contains(42)            # True
        fbf.tick()                  # refresh if due, then resize if needed
    """

    def __init__(
        self,
        config: Optional[ForgetfulConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize a new forgetful Bloom filter.

        Args:
            config: Filter configuration; defaults to ForgetfulConfig().
            clock: Monotonic clock in seconds used for refresh timing.
        """
        super().__init__()
        self._config = config if config is not None else ForgetfulConfig()
        self._chain = WindowChain.from_parameters(
            self._config.filter_parameters(),
            window_count=self._config.initial_window_count,
            refresh_interval=self._config.refresh_interval,
            clock=clock,
        )
        self._classifier = MembershipClassifier(self._chain)
        self._controller = ResizeController(self._chain, self._config.resize_policy())

        logger.info(
            "Forgetful Bloom filter initialized: %d windows of %d bits, %d hashes",
            self._chain.window_count,
            self._chain.parameters.table_bits,
            self._chain.parameters.hash_count,
        )

    @classmethod
    def create_from_error_rate(
        cls,
        expected_items: int,
        false_positive_rate: float,
        window_count: int = MIN_WINDOW_COUNT,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        **kwargs: Any,
    ) -> "ForgetfulBloomFilter[T]":
        """
        Build a filter whose windows are sized for ``expected_items`` per epoch.

        Extra keyword arguments are passed to ForgetfulConfig.
        """
        config = ForgetfulConfig(
            projected_element_count=expected_items,
            target_false_positive_probability=false_positive_rate,
            initial_window_count=window_count,
            refresh_interval=refresh_interval,
            **kwargs,
        )
        return cls(config)

    @property
    def config(self) -> ForgetfulConfig:
        return self._config

    @property
    def chain(self) -> WindowChain:
        return self._chain

    @property
    def classifier(self) -> MembershipClassifier:
        return self._classifier

    @property
    def controller(self) -> ResizeController:
        return self._controller

    @property
    def window_count(self) -> int:
        return self._chain.window_count

    @property
    def refresh_interval(self) -> float:
        return self._chain.refresh_interval

    def update(self, item: T) -> None:
        """Insert an item into the future and present windows."""
        with self._chain.lock:
            super().update(item)
            self._chain.insert(item)

    def insert(self, item: T) -> None:
        """Alias for update()."""
        self.update(item)

    def insert_many(self, items: Iterable[T]) -> None:
        for item in items:
            self.update(item)

    def contains(self, item: T) -> bool:
        """Adjacency-rule membership test; see contains_correlated()."""
        return self._chain.contains_correlated(item)

    def contains_any(self, item: T) -> bool:
        return self._chain.contains_any(item)

    def contains_correlated(self, item: T) -> bool:
        return self._chain.contains_correlated(item)

    def classify(self, item: T) -> ClassificationResult:
        return self._classifier.classify(item)

    def measure(self, absent_keys: Iterable[Any]) -> FprMeasurement:
        """Empirical false positive counts of both rules over never-inserted keys."""
        return self._classifier.measure(absent_keys)

    def refresh(self) -> None:
        self._chain.refresh()

    def maybe_refresh(self, now: Optional[float] = None) -> int:
        """Refresh if the interval has elapsed; returns the number of refreshes."""
        return self._chain.maybe_refresh(now, catch_up=self._config.catch_up_refreshes)

    def effective_fpr(self) -> float:
        return self._chain.effective_fpr()

    def naive_fpr(self) -> float:
        return self._chain.naive_fpr()

    def estimate(self) -> FprEstimate:
        return estimate(self._chain)

    def maybe_resize(self, target_fpr: Optional[float] = None) -> ResizeOutcome:
        """
        Run one evaluation of the resize loop.

        Args:
            target_fpr: Target rate; defaults to the configured target_fpr.

        Raises:
            InvalidParameters: If no target is given or configured, or it is not in (0, 1).
        """
        target = self._config.target_fpr if target_fpr is None else target_fpr
        if target is None:
            raise InvalidParameters("No target_fpr given or configured")
        return self._controller.maybe_resize(target)

    def tick(self, now: Optional[float] = None) -> Optional[ResizeOutcome]:
        """
        One step of the owner's control loop.

        Refreshes the chain if due, then evaluates the resize loop when a
        target_fpr is configured.

        Returns:
            The resize outcome, or None when no target_fpr is configured.
        """
        self.maybe_refresh(now)
        if self._config.target_fpr is None:
            return None
        return self._controller.maybe_resize(self._config.target_fpr)

    def clear(self) -> None:
        """Empty every window, keeping the topology."""
        with self._chain.lock:
            self._chain.clear()
            super().clear()

    def estimate_size(self) -> int:
        return super().estimate_size() + sum(
            window.estimate_size() for window in self._chain.windows()
        )

    def get_stats(self) -> Dict[str, Any]:
        """
        Statistics of the filter: topology, timing and both FPR estimates.
        """
        stats = super().get_stats()
        fpr = self.estimate()
        stats.update(
            {
                "window_count": self._chain.window_count,
                "table_bits": self._chain.parameters.table_bits,
                "hash_count": self._chain.parameters.hash_count,
                "epoch": self._chain.epoch,
                "refresh_interval": self._chain.refresh_interval,
                "window_fill_ratios": [w.fill_ratio() for w in self._chain.windows()],
            }
        )
        stats.update(fpr.to_dict())
        decision = self._controller.last_decision
        if decision is not None:
            stats["last_resize"] = decision.outcome.value
        return stats

    def error_bounds(self) -> Dict[str, Any]:
        bounds = super().error_bounds()
        if self._config.target_fpr is not None:
            bounds["target_fpr"] = self._config.target_fpr
        return bounds

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._chain!r})"
