"""
Exception types raised by tiny-fbf.

Argument problems derive from ValueError as well as FilterError, so callers
that already catch ValueError around filter construction keep working.
"""


class FilterError(Exception):
    """Base class for all tiny-fbf errors."""


class InvalidParameters(FilterError, ValueError):
    """Filter or control parameters are out of range."""


class ShapeMismatch(FilterError, ValueError):
    """Two bit filters with different shapes were combined."""

    def __init__(self, left, right):
        self.left = left
        self.right = right
        super().__init__(
            f"Cannot combine bit filters with different shapes: {left} and {right}"
        )


class InvalidTopology(FilterError, ValueError):
    """A window chain was requested with fewer than the minimum windows."""


class BelowMinimum(InvalidTopology):
    """A resize would leave the window chain below the minimum window count."""

    def __init__(self, requested: int, minimum: int):
        self.requested = requested
        self.minimum = minimum
        super().__init__(
            f"Window count {requested} is below the minimum of {minimum}"
        )
