"""
Test suite for the Precise Summation Library.

Test Structure:
- test_core.py: Tests for error-free transformations, float formats and input handling
- test_summator.py: Tests for the exact incremental accumulator
- test_algorithms.py: Tests for the one-shot summation algorithms and fsum
- conftest.py: Shared fixtures and configuration

Usage:
    # Run all tests
    pytest

    # Run specific test file
    pytest tests/test_summator.py

    # Run tests with coverage
    pytest --cov=precise_sum

    # Run only fast tests
    pytest -m "not slow"
"""

__version__ = "1.0.0"
