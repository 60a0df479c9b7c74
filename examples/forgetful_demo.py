"""
Forgetful Bloom Filter Demo for tiny-fbf.

This example shows how a forgetful Bloom filter remembers recent keys and
forgets old ones, how the adjacency ("smart") membership rule compares with
the naive ("dumb") any-window rule on keys that were never inserted, and how
the resize loop reacts to changing load. Time is simulated with a manual
clock, so the demo runs instantly.
"""

import logging

from tiny_fbf import ForgetfulBloomFilter, ForgetfulConfig
from tiny_fbf.algorithms.forgetful.classifier import invalid_keys


class SimulatedClock:
    """Clock that only moves when told to."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def demonstrate_aging():
    """Insert a key once and watch it age out as the chain refreshes."""
    print("\n=== Aging Demo ===")

    fbf = ForgetfulBloomFilter(
        ForgetfulConfig(table_bits=6250, hash_count=3, initial_window_count=4)
    )
    fbf.insert("session-42")
    print(f"Chain: {fbf.window_count} windows, key 'session-42' inserted")

    for refreshes in range(fbf.window_count + 1):
        print(
            f"  after {refreshes} refreshes: smart={fbf.contains_correlated('session-42')}"
            f" dumb={fbf.contains_any('session-42')}"
        )
        fbf.refresh()


def demonstrate_smart_vs_dumb():
    """Compare measured false positive rates of both rules over several epochs."""
    print("\n=== Smart vs. Dumb Rule Demo ===")

    fbf = ForgetfulBloomFilter(
        ForgetfulConfig(table_bits=6250, hash_count=3, initial_window_count=3)
    )
    num_queries = 5000
    next_key = 0

    print(f"{'epoch':>5} {'dumb FPR':>10} {'naive est':>10} {'smart FPR':>10} {'effective est':>14}")
    for epoch in range(5):
        for _ in range(1000):
            fbf.insert(next_key)
            next_key += 1

        # Negative integers are never inserted by this workload
        measurement = fbf.classifier.measure_invalids(num_queries)
        estimate = fbf.estimate()
        print(
            f"{epoch:>5} {measurement.dumb_fpr:>10.4f} {estimate.naive_fpr:>10.4f}"
            f" {measurement.smart_fpr:>10.4f} {estimate.effective_fpr:>14.4f}"
        )
        fbf.refresh()

    print("\nThe smart rule needs two adjacent windows to agree, so a random")
    print("collision in one window is not enough to report a key as present.")


def demonstrate_dynamic_resizing():
    """Drive the resize loop through a load spike and back down."""
    print("\n=== Dynamic Resizing Demo ===")

    clock = SimulatedClock()
    fbf = ForgetfulBloomFilter(
        ForgetfulConfig(
            table_bits=6250,
            hash_count=3,
            refresh_interval=3.0,
            target_fpr=0.001,
            max_window_count=48,
        ),
        clock=clock,
    )

    # Inserts per simulated second: quiet, spike, quiet
    load = [50] * 6 + [400] * 9 + [20] * 30
    next_key = 0

    for second, rate in enumerate(load):
        for _ in range(rate):
            fbf.insert(next_key)
            next_key += 1
        clock.advance(1.0)
        outcome = fbf.tick()

        if second % 3 == 0 or outcome.value in ("grew", "shrunk"):
            print(
                f"  t={second:>2}s load={rate:>3}/s windows={fbf.window_count:>2}"
                f" interval={fbf.refresh_interval:.1f}s"
                f" effective FPR={fbf.effective_fpr():.5f} -> {outcome.value}"
            )

    measurement = fbf.measure(invalid_keys(5000))
    print(f"\nFinal measured smart FPR: {measurement.smart_fpr:.4f}")
    print(f"Final measured dumb FPR:  {measurement.dumb_fpr:.4f}")
    print(f"Stats: {fbf.get_stats()['window_count']} windows, epoch {fbf.chain.epoch}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    demonstrate_aging()
    demonstrate_smart_vs_dumb()
    demonstrate_dynamic_resizing()
