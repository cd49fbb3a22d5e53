#!/usr/bin/env python3
"""
Unit tests for the one-shot summation algorithms.

Tests the stateless sums and the fsum dispatcher in the
precise_sum.algorithms module.
"""

import logging
import math

import numpy as np
import pytest
import torch

from precise_sum.algorithms import (
    Summation,
    fsum,
    sum_fast,
    sum_kahan,
    sum_kb2,
    sum_kbn,
    sum_naive,
    sum_pairwise,
    sum_precise,
)

ALL_METHODS = list(Summation)
COMPENSATED = [Summation.KBN, Summation.KB2, Summation.PRECISE]
UNCOMPENSATED = [Summation.NAIVE, Summation.PAIRWISE, Summation.KAHAN]


class TestBasicSums:
    """Every algorithm on easy input."""

    @pytest.mark.parametrize("method", ALL_METHODS, ids=lambda m: m.value)
    def test_simple_data(self, method, float_type, simple_data):
        values = np.array(simple_data, dtype=float_type)
        result = fsum(values, method)

        assert result == 10
        assert type(result) is float_type

    @pytest.mark.parametrize("method", ALL_METHODS, ids=lambda m: m.value)
    def test_empty_input(self, method):
        result = fsum([], method)
        assert result == 0.0
        assert type(result) is np.float64

    @pytest.mark.parametrize("method", ALL_METHODS, ids=lambda m: m.value)
    def test_single_element(self, method):
        assert fsum([42.5], method) == 42.5

    def test_fast_is_naive(self):
        assert sum_fast is sum_naive

    @pytest.mark.parametrize("function", [sum_naive, sum_pairwise, sum_kahan])
    def test_integer_values(self, function):
        result = function(np.array([1, 2, 3, 4]))
        assert result == 10
        assert np.issubdtype(type(result), np.integer)

    @pytest.mark.parametrize("function", [sum_kbn, sum_kb2, sum_precise])
    def test_integer_values_rejected(self, function):
        with pytest.raises(TypeError):
            function(np.array([1, 2, 3, 4]))

    def test_pairwise_odd_lengths(self):
        for n in range(1, 20):
            assert sum_pairwise([1.0] * n) == n


class TestInputTypes:
    """Lists, iterables, arrays and tensors."""

    @pytest.mark.parametrize("method", ALL_METHODS, ids=lambda m: m.value)
    def test_torch_tensor(self, method):
        result = fsum(torch.tensor([1.0, 2.0, 3.0], dtype=torch.float32), method)

        assert result == 6.0
        assert type(result) is np.float32

    @pytest.mark.parametrize("method", ALL_METHODS, ids=lambda m: m.value)
    def test_generator(self, method):
        assert fsum((x / 4 for x in range(8)), method) == 7.0

    def test_multidimensional_array(self):
        values = np.arange(12, dtype=np.float64).reshape(3, 4)
        assert sum_precise(values) == 66.0
        assert sum_kbn(values) == 66.0


class TestStart:
    """The optional initial value."""

    def test_naive(self):
        assert sum_naive([1.0, 2.0], start=0.5) == 3.5

    def test_pairwise(self):
        assert sum_pairwise([1.0, 2.0, 3.0], start=0.5) == 6.5

    def test_precise_start_takes_part_in_the_exact_sum(self):
        assert fsum([1e100, 1.0, -1e100], start=1.0) == 2.0

    def test_complex_start(self):
        assert sum_kbn([1 + 1j, 2 + 2j], start=1j) == 3 + 4j

    def test_start_converted_to_accumulation_type(self):
        result = sum_kahan(np.array([1.0, 2.0], dtype=np.float32), start=1)
        assert type(result) is np.float32
        assert result == 4.0

    @pytest.mark.parametrize("method", ALL_METHODS, ids=lambda m: m.value)
    def test_fractional_start_promotes_integers(self, method):
        result = fsum([1, 2, 3], method, start=0.5)

        assert result == 6.5
        assert type(result) is np.float64

    def test_integral_start_keeps_integers(self):
        result = sum_naive([1, 2, 3], start=4)
        assert result == 10
        assert np.issubdtype(type(result), np.integer)

    def test_fractional_start_rejected_for_integer_dtype(self):
        with pytest.raises(TypeError):
            sum_naive([1, 2, 3], start=0.5, dtype=np.int64)


class TestAccumulationType:
    """Explicit accumulation types."""

    def test_float32_values_summed_in_double(self, accuracy_checker):
        values = np.full(10, np.float32(0.1))
        result = fsum(values, "precise", dtype=np.float64)

        assert type(result) is np.float64
        assert result == accuracy_checker.correctly_rounded(values)
        assert result != fsum(values, "precise")

    @pytest.mark.parametrize("method", ALL_METHODS, ids=lambda m: m.value)
    def test_result_type(self, method, simple_data):
        result = fsum(np.array(simple_data, dtype=np.float64), method, dtype=np.float32)

        assert result == 10
        assert type(result) is np.float32

    def test_integers_summed_in_floating_point(self):
        result = sum_kbn([1, 2, 3], dtype=np.float64)
        assert result == 6.0
        assert type(result) is np.float64

    def test_complex_dtype(self):
        assert sum_kb2([1.0, 2.0], start=1j, dtype=np.complex64) == 3 + 1j

    def test_complex_into_real_rejected(self):
        with pytest.raises(TypeError):
            sum_precise([1 + 1j], dtype=np.float64)

    def test_tensor_input(self):
        values = torch.tensor([1e8, 1.0, -1e8], dtype=torch.float32)
        assert sum_naive(values, dtype=np.float64) == 1.0


class TestCancellation:
    """Accuracy on ill-conditioned input."""

    @pytest.mark.parametrize("method", UNCOMPENSATED, ids=lambda m: m.value)
    def test_small_values_lost(self, method, cancellation_data):
        assert fsum(cancellation_data, method) != 20000.0

    @pytest.mark.parametrize("method", COMPENSATED, ids=lambda m: m.value)
    def test_small_values_recovered(self, method, cancellation_data):
        assert fsum(cancellation_data, method) == 20000.0

    @pytest.mark.parametrize("method", COMPENSATED, ids=lambda m: m.value)
    def test_float32_cancellation(self, method):
        values = np.array([1e8, 1.0, -1e8], dtype=np.float32)
        result = fsum(values, method)

        assert result == 1.0
        assert type(result) is np.float32

    def test_naive_float32_cancellation(self):
        values = np.array([1e8, 1.0, -1e8], dtype=np.float32)
        assert sum_naive(values) == 0.0

    @pytest.mark.parametrize("reverse", [False, True])
    def test_telescoping_series(self, reverse):
        values = [1.7 ** (a + 1) - 1.7 ** a for a in range(1000)] + [-(1.7 ** 1000)]
        if reverse:
            values.reverse()
        assert sum_precise(values) == -1.0

    def test_precise_overflowing_running_sums(self, test_data_generator, accuracy_checker):
        values = test_data_generator.near_overflow()
        assert sum_precise(values) == accuracy_checker.correctly_rounded(values)

    def test_precise_matches_math_fsum(self, test_data_generator):
        values = test_data_generator.wide_range(3000)
        assert sum_precise(values) == math.fsum(values)


class TestComplex:
    """Complex input is compensated per component."""

    @pytest.mark.parametrize("method", ALL_METHODS, ids=lambda m: m.value)
    def test_complex_sum(self, method, complex_data):
        result = fsum(complex_data, method)

        assert result == 10 + 14j
        assert type(result) is np.complex128

    @pytest.mark.parametrize("method", COMPENSATED, ids=lambda m: m.value)
    def test_complex_cancellation(self, method, cancellation_data):
        values = [x * (1 + 1j) for x in cancellation_data]
        assert fsum(values, method) == 20000 + 20000j

    def test_complex64(self):
        values = np.array([1 + 2j, 3 + 4j], dtype=np.complex64)
        result = sum_kb2(values)

        assert result == 4 + 6j
        assert type(result) is np.complex64


class TestSpecialValues:
    """NaN and infinity inputs."""

    @pytest.mark.parametrize("method", ALL_METHODS, ids=lambda m: m.value)
    def test_nan_propagates(self, method):
        assert np.isnan(fsum([1.0, math.nan, 2.0], method))

    @pytest.mark.parametrize("method", [Summation.NAIVE, Summation.PRECISE], ids=lambda m: m.value)
    def test_infinity(self, method):
        assert fsum([1.0, math.inf, 2.0], method) == math.inf

    def test_precise_opposite_infinities(self):
        assert np.isnan(sum_precise([math.inf, 1.0, -math.inf]))


class TestAccuracy:
    """All algorithms on well-conditioned input."""

    @pytest.mark.parametrize("method", ALL_METHODS, ids=lambda m: m.value)
    def test_within_naive_error_bound(self, method, rng, accuracy_checker):
        values = rng.uniform(0.0, 1.0, 10000)
        exact = accuracy_checker.correctly_rounded(values)
        bound = accuracy_checker.naive_error_bound(values)

        assert abs(float(fsum(values, method)) - exact) <= bound

    def test_precise_is_correctly_rounded(self, rng, accuracy_checker):
        values = rng.standard_normal(5000) * 1e10
        assert sum_precise(values) == accuracy_checker.correctly_rounded(values)

    def test_compensated_beat_naive(self, rng, accuracy_checker):
        """Alternating large values with small noise."""
        large = rng.uniform(1e10, 1e11, 2000)
        values = np.concatenate([large, -large, rng.uniform(0, 1, 2000)])
        rng.shuffle(values)
        exact = accuracy_checker.correctly_rounded(values)

        naive_error = abs(sum_naive(values) - exact)
        assert abs(sum_kb2(values) - exact) <= naive_error
        assert sum_precise(values) == exact


class TestFsum:
    """Test cases for method selection."""

    def test_default_is_precise(self):
        assert fsum([1e16, 1.0, 1e-16]) == 10000000000000002.0

    @pytest.mark.parametrize("name", ["kbn", "KBN", "Kbn"])
    def test_method_by_name(self, name, cancellation_data):
        assert fsum(cancellation_data, name) == 20000.0

    def test_all_names_resolve(self):
        for method in Summation:
            assert Summation.parse(method.value) is method
            assert Summation.parse(method) is method

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown method"):
            fsum([1.0], "compensated")

    def test_appropriate_resolution(self):
        assert Summation.APPROPRIATE.for_type(np.float32) is Summation.PAIRWISE
        assert Summation.APPROPRIATE.for_type(np.complex128) is Summation.PAIRWISE
        assert Summation.APPROPRIATE.for_type(np.int64) is Summation.FAST
        assert Summation.KBN.for_type(np.int64) is Summation.KBN

    def test_appropriate_sums(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="precise_sum.algorithms"):
            assert fsum(np.array([1, 2, 3]), "appropriate") == 6
            assert fsum([1.0, 2.0], "appropriate") == 3.0
        assert "FAST" in caplog.text
        assert "PAIRWISE" in caplog.text

    def test_logs_selected_method(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="precise_sum.algorithms"):
            fsum([1.0], Summation.KB2)
        assert "KB2" in caplog.text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
