"""
One-shot summation algorithms.

This module provides the stateless reductions, from plain left-to-right
addition up to the exact, correctly rounded sum, and a single ``fsum`` entry
point selecting between them.

Every function accepts a list, tuple, any iterable, a NumPy array or a
PyTorch tensor. The accumulation type is the NumPy scalar type of the input
(``float32`` input is summed in ``float32``), promoted if needed to hold
``start``, unless ``dtype`` asks for another one. The result is a scalar of
the accumulation type.
"""

import enum
import logging
from typing import Iterable, List, Union

import numpy as np
import torch

from . import config
from .accumulators import (
    KahanSummator,
    KB2Summator,
    KBNSummator,
    NaiveSummator,
    PairwiseSummator,
)
from .core import RealComponents, as_array, as_kind, ieee_arithmetic, is_inexact
from .summator import Summator

logger = logging.getLogger(__name__)

ArrayLike = Union[List[float], torch.Tensor, np.ndarray, Iterable]


def _prepare(values: ArrayLike, start, dtype):
    """Flatten the input and resolve the accumulation type and seed."""
    values = as_array(values)
    if dtype is not None:
        kind = np.dtype(dtype).type
    elif start is not None:
        # integer input with a fractional start sums in floating point
        kind = np.result_type(values.dtype, start).type
    else:
        kind = values.dtype.type
    values = as_kind(values, kind)
    if start is None:
        return values, kind, kind(0)

    seed = kind(start)
    if not is_inexact(kind) and seed != start:
        raise TypeError(f"start {start!r} is not representable as {np.dtype(kind)}")
    return values, kind, seed


def _accumulate(summator_class, values: ArrayLike, start, dtype):
    values, kind, seed = _prepare(values, start, dtype)
    summator = summator_class(seed, dtype=kind)
    summator.put_all(values)
    return summator.sum()


def sum_naive(values: ArrayLike, start=None, dtype=None):
    """
    Naive left-to-right summation.

    Args:
        values: Sequence of values to sum
        start: Initial value (zero of the accumulation type by default)
        dtype: Accumulation type (the type of ``values`` by default)

    Returns:
        The sum, with rounding error growing linearly with the length
    """
    return _accumulate(NaiveSummator, values, start, dtype)


sum_fast = sum_naive


def _pairwise(values: np.ndarray, kind):
    n = len(values)
    if n == 0:
        return kind(0)
    if n == 1:
        return values[0]
    if n == 2:
        return values[0] + values[1]
    mid = n // 2
    return _pairwise(values[:mid], kind) + _pairwise(values[mid:], kind)


def sum_pairwise(values: ArrayLike, start=None, dtype=None):
    """
    Pairwise (cascade) summation.

    Splits the values at the midpoint and adds the recursively summed halves,
    so rounding error grows with the logarithm of the length.

    Args:
        values: Sequence of values to sum
        start: Value added to the pairwise sum of ``values``
        dtype: Accumulation type (the type of ``values`` by default)

    Returns:
        The sum
    """
    values, kind, seed = _prepare(values, start, dtype)
    with ieee_arithmetic():
        s = _pairwise(values, kind)
        if start is not None:
            s = s + seed
    return s


def sum_kahan(values: ArrayLike, start=None, dtype=None):
    """
    Kahan compensated summation.

    ---------------------
    s := x[1]
    c := 0
    FOR k := 2 TO n DO
        y := x[k] - c
        t := s + y
        c := (t - s) - y
        s := t
    END DO
    ---------------------

    Args:
        values: Sequence of values to sum
        start: Initial value (zero of the accumulation type by default)
        dtype: Accumulation type (the type of ``values`` by default)

    Returns:
        Compensated sum
    """
    return _accumulate(KahanSummator, values, start, dtype)


def sum_kbn(values: ArrayLike, start=None, dtype=None):
    """
    Kahan-Babuska-Neumaier summation.

    More accurate than Kahan: the rounding error of every addition is
    recovered with the larger operand first, so a small running sum followed
    by a large value does not destroy the compensation.

    ---------------------
    s := x[1]
    c := 0
    FOR i := 2 TO n DO
        t := s + x[i]
        IF ABS(s) >= ABS(x[i]) THEN
            c := c + ((s-t)+x[i])
        ELSE
            c := c + ((x[i]-t)+s)
        END IF
        s := t
    END DO
    s := s + c
    ---------------------

    Complex values are compensated separately on the real and imaginary
    parts.

    Raises:
        TypeError: If the values are not floating point or complex
    """
    return _accumulate(KBNSummator, values, start, dtype)


def sum_kb2(values: ArrayLike, start=None, dtype=None):
    """
    Generalized Kahan-Babuska summation, order 2.

    Compensates the compensation term once more; more accurate than Kahan
    and KBN.

    ---------------------
    s := 0 ; cs := 0 ; ccs := 0
    FOR j := 1 TO n DO
        t := s + x[i]
        IF ABS(s) >= ABS(x[i]) THEN
            c := (s-t) + x[i]
        ELSE
            c := (x[i]-t) + s
        END IF
        s := t
        t := cs + c
        IF ABS(cs) >= ABS(c) THEN
            cc := (cs-t) + c
        ELSE
            cc := (c-t) + cs
        END IF
        cs := t
        ccs := ccs + cc
    END FOR
    RETURN s+cs+ccs
    ---------------------

    Raises:
        TypeError: If the values are not floating point or complex
    """
    return _accumulate(KB2Summator, values, start, dtype)


def sum_precise(values: ArrayLike, start=None, dtype=None):
    """
    Exact summation, correctly rounded with round-half-to-even.

    Runs a :class:`Summator` per real component.

    Raises:
        TypeError: If the values are not floating point or complex
    """
    values, kind, seed = _prepare(values, start, dtype)
    if not is_inexact(kind):
        raise TypeError(
            f"Precise summation requires floating point or complex values, "
            f"got {np.dtype(kind)}"
        )
    components = RealComponents(kind)
    parts = []
    for column, part in zip(components.split(values), components.split_scalar(seed)):
        summator = Summator(part, dtype=components.real_kind)
        summator.put_all(column)
        parts.append(summator.sum())
    return components.join(parts)


class Summation(enum.Enum):
    """Summation algorithms for sequences of floating point or complex values."""

    APPROPRIATE = "appropriate"
    FAST = "fast"
    NAIVE = "naive"
    PAIRWISE = "pairwise"
    KAHAN = "kahan"
    KBN = "kbn"
    KB2 = "kb2"
    PRECISE = "precise"

    @classmethod
    def parse(cls, method: Union["Summation", str]) -> "Summation":
        """Resolve a member or its case-insensitive name."""
        if isinstance(method, cls):
            return method
        try:
            return cls(str(method).lower())
        except ValueError:
            raise ValueError(f"Unknown method: {method}") from None

    def for_type(self, kind) -> "Summation":
        """
        Concrete method for the accumulation type ``kind``.

        APPROPRIATE means pairwise for floating point and complex types and
        fast summation otherwise; every other member is returned unchanged.
        """
        if self is not Summation.APPROPRIATE:
            return self
        return Summation.PAIRWISE if is_inexact(kind) else Summation.FAST


_ALGORITHMS = {
    Summation.FAST: sum_fast,
    Summation.NAIVE: sum_naive,
    Summation.PAIRWISE: sum_pairwise,
    Summation.KAHAN: sum_kahan,
    Summation.KBN: sum_kbn,
    Summation.KB2: sum_kb2,
    Summation.PRECISE: sum_precise,
}

_SUMMATORS = {
    Summation.FAST: NaiveSummator,
    Summation.NAIVE: NaiveSummator,
    Summation.PAIRWISE: PairwiseSummator,
    Summation.KAHAN: KahanSummator,
    Summation.KBN: KBNSummator,
    Summation.KB2: KB2Summator,
    Summation.PRECISE: Summator,
}


def fsum(values: ArrayLike,
         method: Union[Summation, str] = Summation.PRECISE,
         start=None,
         dtype=None):
    """
    Sum values with the selected algorithm.

    Args:
        values: Sequence of values to sum
        method: Summation member or name ('naive', 'kahan', 'kb2', ...)
        start: Initial value
        dtype: Accumulation type (the type of ``values`` by default)

    Returns:
        The sum as a scalar of the accumulation type

    Raises:
        ValueError: If the method is unknown
    """
    method = Summation.parse(method)
    if method is Summation.APPROPRIATE:
        values = as_array(values)
        method = method.for_type(values.dtype if dtype is None else dtype)
    logger.debug("Summing with %s", method.name)
    return _ALGORITHMS[method](values, start, dtype)


def summator_for(method: Union[Summation, str] = Summation.PRECISE, value=0, dtype=None):
    """
    Incremental accumulator running the selected algorithm.

    Args:
        method: Summation member or name
        value: Initial value of the sum
        dtype: Accumulation type, defaults to ``config.DEFAULT_DTYPE``

    Returns:
        A :class:`Summator` for PRECISE, otherwise the matching accumulator
        from :mod:`precise_sum.accumulators`
    """
    method = Summation.parse(method)
    kind = np.dtype(config.DEFAULT_DTYPE if dtype is None else dtype).type
    return _SUMMATORS[method.for_type(kind)](value, dtype=kind)
