#!/usr/bin/env python3
"""
Pytest configuration and fixtures for precise summation tests.

This file contains shared test fixtures, configuration, and utilities
used across the test suite.
"""

import os
import sys
from fractions import Fraction

import numpy as np
import pytest

# Verify partials after every update for the whole run
os.environ.setdefault("PRECISE_SUM_CHECK_INVARIANTS", "1")

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


FLOAT_TYPES = [np.float16, np.float32, np.float64, np.longdouble]


@pytest.fixture(scope="session")
def random_seed():
    """Seed shared by the randomized tests."""
    return 42


@pytest.fixture
def rng(random_seed):
    """Fresh reproducible generator per test."""
    return np.random.default_rng(random_seed)


@pytest.fixture
def simple_data():
    """Simple test data for basic functionality tests."""
    return [1.0, 2.0, 3.0, 4.0]


@pytest.fixture
def cancellation_data():
    """Small values hidden between huge values of opposite sign."""
    return [x * 10000 for x in [1, 1e100, 1, -1e100]]


@pytest.fixture
def complex_data():
    return [1 + 2j, 2 + 3j, 3 + 4j, 4 + 5j]


@pytest.fixture(params=FLOAT_TYPES, ids=lambda t: np.dtype(t).name)
def float_type(request):
    """Parameterized fixture over the supported floating types."""
    return request.param


@pytest.fixture(scope="session")
def test_data_generator():
    """Generator for various test data patterns."""

    class TestDataGenerator:
        def __init__(self):
            self.seed = 42

        def wide_range(self, size: int, low: int = -60, high: int = 60):
            """Signed float64 values spanning many binary orders of magnitude."""
            rng = np.random.default_rng(self.seed)
            mantissas = rng.uniform(1.0, 2.0, size)
            exponents = rng.integers(low, high, size)
            signs = rng.choice([-1.0, 1.0], size)
            return (signs * np.ldexp(mantissas, exponents)).tolist()

        def near_overflow(self, pairs: int = 8):
            """
            Large float64 values whose running sums overflow although the
            total is finite: every positive value is followed somewhere by a
            slightly smaller negative one.
            """
            rng = np.random.default_rng(self.seed)
            positives = rng.uniform(1e307, 1.7e308, pairs)
            negatives = -positives * rng.uniform(0.95, 1.0, pairs)
            data = np.concatenate([positives, negatives])
            rng.shuffle(data)
            return data.tolist()

        def integer_valued(self, size: int, dtype=np.float32, bound: int = 1000):
            """Integer-valued floats whose sums are exact in ``dtype``."""
            rng = np.random.default_rng(self.seed)
            return rng.integers(-bound, bound, size).astype(dtype)

        def permutations(self, values, count: int = 5):
            rng = np.random.default_rng(self.seed)
            for _ in range(count):
                yield [values[i] for i in rng.permutation(len(values))]

    return TestDataGenerator()


class AccuracyChecker:
    """Utility class for checking numerical accuracy."""

    @staticmethod
    def exact_sum(values) -> Fraction:
        """Exact rational sum of finite floats."""
        return sum((Fraction(float(v)) for v in values), Fraction(0))

    @staticmethod
    def correctly_rounded(values) -> float:
        """float64 nearest to the exact sum (the sum must not overflow)."""
        return float(AccuracyChecker.exact_sum(values))

    @staticmethod
    def naive_error_bound(values) -> float:
        """Worst-case error of left-to-right float64 summation."""
        n = len(values)
        return n * np.finfo(np.float64).eps * float(np.sum(np.abs(values)))


@pytest.fixture
def accuracy_checker():
    """Fixture providing accuracy checking utilities."""
    return AccuracyChecker()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if "large" in item.name or "stress" in item.name:
            item.add_marker(pytest.mark.slow)


def assert_same_float(computed, expected):
    """Assert equality, NaN matching NaN, with an informative message."""
    if np.isnan(expected):
        assert np.isnan(computed), f"Expected NaN, got {computed!r}"
    else:
        assert computed == expected, (
            f"Computed {computed!r} ({float(computed).hex()}), "
            f"expected {expected!r} ({float(expected).hex()})"
        )
