"""
Unit tests for the adaptive resize controller.
"""

import unittest

from tiny_fbf.algorithms.forgetful.chain import WindowChain
from tiny_fbf.algorithms.forgetful.resize import (
    ResizeController,
    ResizeOutcome,
    ResizePolicy,
)
from tiny_fbf.core.errors import InvalidParameters

TARGET = 0.01
# Inside (shrink_threshold * TARGET, grow_threshold * TARGET) for the default policy
IN_BAND = 0.0065
ABOVE_BAND = 0.009
BELOW_BAND = 0.001


def make_chain(window_count=3, refresh_interval=3.0):
    return WindowChain(
        window_count, table_bits=6250, hash_count=3, refresh_interval=refresh_interval
    )


class TestResizePolicy(unittest.TestCase):
    """Test cases for ResizePolicy validation."""

    def test_defaults(self):
        policy = ResizePolicy()
        self.assertEqual(policy.grow_threshold, 0.8)
        self.assertEqual(policy.shrink_threshold, 0.5)
        self.assertEqual(policy.growth_factor, 2)
        self.assertEqual(policy.shrink_step, 1)
        self.assertEqual(policy.interval_step, 1.0)
        self.assertEqual(policy.min_refresh_interval, 1.0)
        self.assertIsNone(policy.max_window_count)
        self.assertFalse(policy.refresh_after_grow)

    def test_invalid_policies(self):
        """Test that inconsistent tunings are rejected."""
        invalid = [
            dict(grow_threshold=0.5, shrink_threshold=0.5),
            dict(grow_threshold=0.4, shrink_threshold=0.6),
            dict(shrink_threshold=0.0),
            dict(growth_factor=1),
            dict(shrink_step=0),
            dict(interval_step=-1.0),
            dict(min_refresh_interval=0.0),
            dict(max_window_count=2),
        ]
        for kwargs in invalid:
            with self.assertRaises(InvalidParameters, msg=str(kwargs)):
                ResizePolicy(**kwargs)


class TestResizeController(unittest.TestCase):
    """Test cases for ResizeController."""

    def test_grow_doubles_and_shortens_interval(self):
        """Test multiplicative growth and the interval step down to its floor."""
        chain = make_chain(3, refresh_interval=3.0)
        controller = ResizeController(chain)

        self.assertEqual(controller.maybe_resize(TARGET, ABOVE_BAND), ResizeOutcome.GREW)
        self.assertEqual(chain.window_count, 6)
        self.assertEqual(chain.refresh_interval, 2.0)

        self.assertEqual(controller.maybe_resize(TARGET, ABOVE_BAND), ResizeOutcome.GREW)
        self.assertEqual(chain.window_count, 12)
        self.assertEqual(chain.refresh_interval, 1.0)

        self.assertEqual(controller.maybe_resize(TARGET, ABOVE_BAND), ResizeOutcome.GREW)
        self.assertEqual(chain.window_count, 24)
        self.assertEqual(chain.refresh_interval, 1.0)

    def test_grow_keeps_interval_already_below_floor(self):
        """Test that growing never raises an interval that is under the minimum."""
        chain = make_chain(3, refresh_interval=0.5)
        controller = ResizeController(chain, ResizePolicy(min_refresh_interval=1.0))
        controller.maybe_resize(TARGET, ABOVE_BAND)
        self.assertEqual(chain.refresh_interval, 0.5)

    def test_grow_from_measured_load(self):
        """Test growth driven by the chain's own effective FPR."""
        chain = make_chain(3)
        for i in range(1000):
            chain.insert(i)
        # Effective FPR is about 0.003 here, well above 0.8 * 0.001
        controller = ResizeController(chain)
        self.assertEqual(controller.maybe_resize(0.001), ResizeOutcome.GREW)
        self.assertEqual(chain.window_count, 6)
        # Existing contents survive growth
        for i in range(1000):
            self.assertTrue(chain.contains_correlated(i))

    def test_shrink_removes_one_window(self):
        """Test additive decrease and the interval step up."""
        chain = make_chain(5, refresh_interval=2.0)
        controller = ResizeController(chain)

        self.assertEqual(controller.maybe_resize(TARGET, BELOW_BAND), ResizeOutcome.SHRUNK)
        self.assertEqual(chain.window_count, 4)
        self.assertEqual(chain.refresh_interval, 3.0)

        self.assertEqual(controller.maybe_resize(TARGET, BELOW_BAND), ResizeOutcome.SHRUNK)
        self.assertEqual(chain.window_count, 3)
        self.assertEqual(chain.refresh_interval, 4.0)

    def test_shrink_below_minimum_changes_nothing(self):
        """Test that an empty three-window chain refuses to shrink, every time."""
        chain = make_chain(3, refresh_interval=3.0)
        windows = chain.windows()
        controller = ResizeController(chain)

        for _ in range(5):
            # The chain is empty, so its effective FPR is zero
            self.assertEqual(controller.maybe_resize(TARGET), ResizeOutcome.BELOW_MINIMUM)
            self.assertEqual(chain.window_count, 3)
            self.assertEqual(chain.refresh_interval, 3.0)
            self.assertEqual(chain.windows(), windows)

    def test_unchanged_within_band(self):
        chain = make_chain(4, refresh_interval=3.0)
        controller = ResizeController(chain)
        self.assertEqual(controller.maybe_resize(TARGET, IN_BAND), ResizeOutcome.UNCHANGED)
        self.assertEqual(chain.window_count, 4)
        self.assertEqual(chain.refresh_interval, 3.0)

    def test_grow_threshold_is_inclusive(self):
        """Test that an FPR exactly at grow_threshold * target grows the chain."""
        for target in (0.01, 0.001, 0.1, 0.03):
            chain = make_chain(3)
            controller = ResizeController(chain)
            at_threshold = controller.policy.grow_threshold * target
            self.assertEqual(
                controller.maybe_resize(target, at_threshold),
                ResizeOutcome.GREW,
                f"target={target}",
            )
            self.assertEqual(chain.window_count, 6)

    def test_shrink_threshold_is_inclusive(self):
        """Test that an FPR exactly at shrink_threshold * target shrinks the chain."""
        for target in (0.01, 0.001, 0.1, 0.03):
            chain = make_chain(5)
            controller = ResizeController(chain)
            at_threshold = controller.policy.shrink_threshold * target
            self.assertEqual(
                controller.maybe_resize(target, at_threshold),
                ResizeOutcome.SHRUNK,
                f"target={target}",
            )
            self.assertEqual(chain.window_count, 4)

    def test_literal_thresholds(self):
        """Test the default thresholds written as 0.8 * target and 0.5 * target."""
        for target in (0.01, 0.1):
            self.assertEqual(
                ResizeController(make_chain(3)).maybe_resize(target, 0.8 * target),
                ResizeOutcome.GREW,
            )
            self.assertEqual(
                ResizeController(make_chain(5)).maybe_resize(target, 0.5 * target),
                ResizeOutcome.SHRUNK,
            )

    def test_invalid_target(self):
        """Test that targets outside (0, 1) are rejected before any change."""
        chain = make_chain(4)
        controller = ResizeController(chain)
        for target in (0.0, 1.0, -0.5, 2.0):
            with self.assertRaises(InvalidParameters):
                controller.maybe_resize(target)
        self.assertEqual(chain.window_count, 4)
        self.assertIsNone(controller.last_decision)

    def test_max_window_count(self):
        """Test that growth is clamped to max_window_count."""
        chain = make_chain(3)
        controller = ResizeController(chain, ResizePolicy(max_window_count=8))

        self.assertEqual(controller.maybe_resize(TARGET, ABOVE_BAND), ResizeOutcome.GREW)
        self.assertEqual(chain.window_count, 6)
        self.assertEqual(controller.maybe_resize(TARGET, ABOVE_BAND), ResizeOutcome.GREW)
        self.assertEqual(chain.window_count, 8)

        interval = chain.refresh_interval
        with self.assertLogs("tiny_fbf.algorithms.forgetful.resize", level="WARNING"):
            outcome = controller.maybe_resize(TARGET, ABOVE_BAND)
        self.assertEqual(outcome, ResizeOutcome.UNCHANGED)
        self.assertEqual(chain.window_count, 8)
        self.assertEqual(chain.refresh_interval, interval)

    def test_refresh_after_grow(self):
        """Test the optional refresh right after growing."""
        chain = make_chain(3)
        chain.insert("k")
        controller = ResizeController(chain, ResizePolicy(refresh_after_grow=True))

        controller.maybe_resize(TARGET, ABOVE_BAND)
        self.assertEqual(chain.epoch, 1)
        self.assertTrue(chain.window(0).is_empty())
        self.assertTrue(chain.contains_correlated("k"))

        plain = make_chain(3)
        ResizeController(plain).maybe_resize(TARGET, ABOVE_BAND)
        self.assertEqual(plain.epoch, 0)

    def test_last_decision(self):
        """Test that every evaluation is recorded."""
        chain = make_chain(3, refresh_interval=3.0)
        controller = ResizeController(chain)
        self.assertIsNone(controller.last_decision)

        controller.maybe_resize(TARGET, ABOVE_BAND)
        decision = controller.last_decision
        self.assertEqual(decision.outcome, ResizeOutcome.GREW)
        self.assertEqual(decision.effective_fpr, ABOVE_BAND)
        self.assertEqual(decision.target_fpr, TARGET)
        self.assertEqual((decision.window_count_before, decision.window_count_after), (3, 6))
        self.assertEqual((decision.interval_before, decision.interval_after), (3.0, 2.0))

    def test_grow_is_logged(self):
        chain = make_chain(3)
        controller = ResizeController(chain)
        with self.assertLogs("tiny_fbf.algorithms.forgetful.resize", level="INFO") as logs:
            controller.maybe_resize(TARGET, ABOVE_BAND)
        self.assertIn("grew", logs.output[0])


if __name__ == "__main__":
    unittest.main()
