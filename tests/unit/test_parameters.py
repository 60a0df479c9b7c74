"""
Unit tests for bit filter parameter derivation.
"""

import math
import unittest

from tiny_fbf.algorithms.bloom.parameters import (
    DEFAULT_SEED,
    FilterParameters,
    optimal_hash_count,
    optimal_table_bits,
)
from tiny_fbf.core.errors import FilterError, InvalidParameters


class TestOptimalShape(unittest.TestCase):
    """Test cases for the optimal shape formulas."""

    def test_optimal_table_bits(self):
        """Test m = ceil(-n ln p / ln(2)^2)."""
        # -(1000 * ln 0.01) / ln(2)^2 ~= 9585.06
        self.assertEqual(optimal_table_bits(1000, 0.01), 9586)
        # ~= 143775.9
        self.assertAlmostEqual(optimal_table_bits(10000, 0.001), 143776, delta=1)
        self.assertGreaterEqual(optimal_table_bits(1, 0.99), 1)

    def test_optimal_hash_count(self):
        """Test k = round((m / n) ln 2), never below one."""
        self.assertEqual(optimal_hash_count(9586, 1000), 7)
        self.assertEqual(optimal_hash_count(143776, 10000), 10)
        self.assertEqual(optimal_hash_count(1, 1000), 1)

    def test_invalid_inputs(self):
        """Test that bad counts and probabilities are rejected."""
        with self.assertRaises(InvalidParameters):
            optimal_table_bits(0, 0.01)
        for p in (0, 1, 1.5, -0.1):
            with self.assertRaises(InvalidParameters):
                optimal_table_bits(100, p)
        with self.assertRaises(InvalidParameters):
            optimal_hash_count(100, 0)


class TestFilterParameters(unittest.TestCase):
    """Test cases for FilterParameters."""

    def test_derive(self):
        """Test deriving the shape from capacity and target."""
        params = FilterParameters.derive(1000, 0.01)
        self.assertEqual(params.table_bits, 9586)
        self.assertEqual(params.hash_count, 7)
        self.assertEqual(params.seed, DEFAULT_SEED)
        self.assertEqual(params.num_bytes, (9586 + 7) // 8)

    def test_defaults(self):
        """Test the default sizing of 10000 items at 0.0001."""
        params = FilterParameters()
        self.assertEqual(params.projected_element_count, 10000)
        self.assertEqual(params.target_false_positive_probability, 0.0001)
        self.assertAlmostEqual(params.table_bits, 191702, delta=1)
        self.assertEqual(params.hash_count, 13)

    def test_explicit(self):
        """Test that an explicit shape is kept as given."""
        params = FilterParameters.explicit(6250, 3, seed=7)
        self.assertEqual(params.table_bits, 6250)
        self.assertEqual(params.hash_count, 3)
        self.assertEqual(params.seed, 7)

    def test_invalid_explicit_shape(self):
        """Test that explicit shapes are validated."""
        with self.assertRaises(InvalidParameters):
            FilterParameters.explicit(0, 3)
        with self.assertRaises(InvalidParameters):
            FilterParameters.explicit(100, 0)
        with self.assertRaises(InvalidParameters):
            FilterParameters.explicit(-8, 2)

    def test_errors_are_value_errors(self):
        """Test that parameter errors can be caught as ValueError."""
        with self.assertRaises(ValueError):
            FilterParameters.derive(0, 0.01)
        with self.assertRaises(FilterError):
            FilterParameters.derive(100, 1.0)

    def test_with_seed(self):
        """Test that with_seed keeps the shape."""
        params = FilterParameters.explicit(6250, 3)
        reseeded = params.with_seed(99)
        self.assertEqual(reseeded.seed, 99)
        self.assertEqual(
            (reseeded.table_bits, reseeded.hash_count), (params.table_bits, params.hash_count)
        )
        # Frozen dataclass, so the original is untouched
        self.assertEqual(params.seed, DEFAULT_SEED)

    def test_expected_fpp(self):
        """Test the theoretical false positive formula."""
        params = FilterParameters.derive(1000, 0.01)
        self.assertAlmostEqual(params.expected_fpp(), 0.01, delta=0.002)
        self.assertEqual(params.expected_fpp(0), 0.0)
        self.assertLess(params.expected_fpp(500), params.expected_fpp(1000))

        fill = 1 - math.exp(-3 * 1000 / 6250)
        self.assertAlmostEqual(
            FilterParameters.explicit(6250, 3).expected_fpp(1000), fill**3
        )

    def test_to_dict(self):
        """Test serialisation to a plain dictionary."""
        data = FilterParameters.explicit(6250, 3, seed=1).to_dict()
        self.assertEqual(data["table_bits"], 6250)
        self.assertEqual(data["hash_count"], 3)
        self.assertEqual(data["seed"], 1)


if __name__ == "__main__":
    unittest.main()
