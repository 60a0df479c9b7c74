"""
Adaptive resizing of a forgetful filter chain.

The controller runs one evaluation per tick. It compares the chain's
effective FPR with a target and either grows the chain multiplicatively
(more, younger windows, refreshed more often) or shrinks it by one window
(refreshed less often). Topology follows multiplicative increase / additive
decrease; the refresh interval moves the opposite way in fixed steps.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from tiny_fbf.algorithms.forgetful.chain import MIN_WINDOW_COUNT, WindowChain
from tiny_fbf.algorithms.forgetful.estimator import effective_fpr
from tiny_fbf.core.errors import BelowMinimum, InvalidParameters

logger = logging.getLogger(__name__)


class ResizeOutcome(Enum):
    GREW = "grew"
    SHRUNK = "shrunk"
    UNCHANGED = "unchanged"
    BELOW_MINIMUM = "below_minimum"


@dataclass(frozen=True)
class ResizePolicy:
    """
    Tuning of the resize control loop.

    Attributes:
        grow_threshold: Grow when effective FPR >= grow_threshold * target.
        shrink_threshold: Shrink when effective FPR <= shrink_threshold * target.
        growth_factor: Multiplier applied to the window count on growth.
        shrink_step: Windows removed on each shrink.
        interval_step: Seconds subtracted on growth and added on shrink.
        min_refresh_interval: Lower bound for the refresh interval.
        max_window_count: Optional upper bound for the window count.
        refresh_after_grow: Refresh the chain right after growing it.
    """

    grow_threshold: float = 0.8
    shrink_threshold: float = 0.5
    growth_factor: int = 2
    shrink_step: int = 1
    interval_step: float = 1.0
    min_refresh_interval: float = 1.0
    max_window_count: Optional[int] = None
    refresh_after_grow: bool = False

    def __post_init__(self) -> None:
        if not (0 < self.shrink_threshold < self.grow_threshold):
            raise InvalidParameters(
                "Thresholds must satisfy 0 < shrink_threshold < grow_threshold"
            )
        if self.growth_factor < 2:
            raise InvalidParameters("growth_factor must be at least 2")
        if self.shrink_step < 1:
            raise InvalidParameters("shrink_step must be at least 1")
        if self.interval_step < 0:
            raise InvalidParameters("interval_step must not be negative")
        if not self.min_refresh_interval > 0:
            raise InvalidParameters("min_refresh_interval must be positive")
        if self.max_window_count is not None and self.max_window_count < MIN_WINDOW_COUNT:
            raise InvalidParameters(
                f"max_window_count must be at least {MIN_WINDOW_COUNT}"
            )


@dataclass(frozen=True)
class ResizeDecision:
    """Record of one controller evaluation."""

    outcome: ResizeOutcome
    effective_fpr: float
    target_fpr: float
    window_count_before: int
    window_count_after: int
    interval_before: float
    interval_after: float


class ResizeController:
    """
    AIMD control loop over a WindowChain.

    Example:
        controller = ResizeController(chain, ResizePolicy(interval_step=1.0))
        outcome = controller.maybe_resize(target_fpr=0.01)
    """

    def __init__(self, chain: WindowChain, policy: Optional[ResizePolicy] = None):
        self._chain = chain
        self._policy = policy if policy is not None else ResizePolicy()
        self._last_decision: Optional[ResizeDecision] = None

    @property
    def chain(self) -> WindowChain:
        return self._chain

    @property
    def policy(self) -> ResizePolicy:
        return self._policy

    @property
    def last_decision(self) -> Optional[ResizeDecision]:
        return self._last_decision

    def maybe_resize(
        self, target_fpr: float, current_fpr: Optional[float] = None
    ) -> ResizeOutcome:
        """
        Evaluate the chain once and resize it if the FPR is out of band.

        Args:
            target_fpr: Target false positive rate, in (0, 1).
            current_fpr: Effective FPR to act on; computed from the chain when omitted.

        Returns:
            GREW, SHRUNK, UNCHANGED, or BELOW_MINIMUM when a shrink was refused.

        Raises:
            InvalidParameters: If target_fpr is not in (0, 1).
        """
        if not (0 < target_fpr < 1):
            raise InvalidParameters("Target FPR must be between 0 and 1")

        chain = self._chain
        policy = self._policy
        with chain.lock:
            fpr = effective_fpr(chain) if current_fpr is None else current_fpr
            count_before = chain.window_count
            interval_before = chain.refresh_interval

            if fpr >= policy.grow_threshold * target_fpr:
                outcome = self._grow()
            elif fpr <= policy.shrink_threshold * target_fpr:
                outcome = self._shrink()
            else:
                outcome = ResizeOutcome.UNCHANGED

            self._last_decision = ResizeDecision(
                outcome=outcome,
                effective_fpr=fpr,
                target_fpr=target_fpr,
                window_count_before=count_before,
                window_count_after=chain.window_count,
                interval_before=interval_before,
                interval_after=chain.refresh_interval,
            )

        if outcome in (ResizeOutcome.GREW, ResizeOutcome.SHRUNK):
            logger.info(
                "Resize %s: effective FPR %.6g vs target %.6g, windows %d -> %d, "
                "refresh interval %.3g -> %.3g",
                outcome.value,
                fpr,
                target_fpr,
                count_before,
                chain.window_count,
                interval_before,
                chain.refresh_interval,
            )
        return outcome

    def _grow(self) -> ResizeOutcome:
        chain = self._chain
        policy = self._policy
        new_count = chain.window_count * policy.growth_factor
        if policy.max_window_count is not None and new_count > policy.max_window_count:
            new_count = policy.max_window_count
            if new_count <= chain.window_count:
                logger.warning(
                    "Window chain already at max_window_count=%d, not growing",
                    policy.max_window_count,
                )
                return ResizeOutcome.UNCHANGED

        chain.resize_to(new_count)
        # Never step below the floor, and never raise an interval already under it
        floor = min(policy.min_refresh_interval, chain.refresh_interval)
        chain.refresh_interval = max(floor, chain.refresh_interval - policy.interval_step)
        if policy.refresh_after_grow:
            chain.refresh()
        return ResizeOutcome.GREW

    def _shrink(self) -> ResizeOutcome:
        chain = self._chain
        new_count = chain.window_count - self._policy.shrink_step
        try:
            chain.resize_to(new_count)
        except BelowMinimum:
            logger.debug(
                "Shrink refused: %d windows would fall below the minimum of %d",
                new_count,
                MIN_WINDOW_COUNT,
            )
            return ResizeOutcome.BELOW_MINIMUM

        chain.refresh_interval = chain.refresh_interval + self._policy.interval_step
        return ResizeOutcome.SHRUNK
