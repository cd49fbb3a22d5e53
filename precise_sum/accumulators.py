"""
Incremental accumulators for the compensated summation algorithms.

Each accumulator keeps the running state of one algorithm (naive, pairwise,
Kahan, Kahan-Babuska-Neumaier, order-2 Kahan-Babuska) so values can be added
one at a time with :meth:`put` and the current total read with :meth:`sum`.
The exact accumulator lives in :mod:`precise_sum.summator`.
"""

import numbers
from typing import Iterable

import numpy as np

from . import config
from .core import (
    RealComponents,
    as_array,
    as_kind,
    ieee_arithmetic,
    is_inexact,
    kahan_add,
    kbn_add,
    two_sum,
)


class _IncrementalSummator:
    """
    Shared plumbing of the incremental accumulators.

    Subclasses keep their state in ``self.kind`` scalars and implement
    ``_start``, ``put`` and ``sum``.
    """

    name = "Naive"
    requires_inexact = False

    def __init__(self, value=0, dtype=None):
        """
        Initialize the accumulator.

        Args:
            value: Initial value of the sum
            dtype: Accumulation type, defaults to ``config.DEFAULT_DTYPE``
        """
        kind = np.dtype(config.DEFAULT_DTYPE if dtype is None else dtype).type
        if self.requires_inexact and not is_inexact(kind):
            raise TypeError(
                f"{self.name} summation requires floating point or complex values, "
                f"got {np.dtype(kind)}"
            )
        self.kind = kind
        self.reset(value)

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.kind)

    def reset(self, value=0):
        """Restart the sum from ``value``."""
        self._start(self.kind(value))

    def put_all(self, values: Iterable):
        """Add every element of ``values``."""
        values = as_kind(as_array(values), self.kind)
        with ieee_arithmetic():
            self._put_array(values)

    def _put_array(self, values: np.ndarray):
        for x in values:
            self.put(x)

    def __iadd__(self, other):
        if not isinstance(other, numbers.Number):
            return NotImplemented
        self.put(other)
        return self

    def __repr__(self):
        return f"{type(self).__name__}({self.sum()}, dtype={self.dtype.name})"


class NaiveSummator(_IncrementalSummator):
    """Plain left-to-right running sum."""

    def _start(self, value):
        self._s = value

    def put(self, x):
        with ieee_arithmetic():
            self._s += self.kind(x)

    def sum(self):
        return self._s


class PairwiseSummator(_IncrementalSummator):
    """
    Pairwise summation over a stream of values.

    Keeps a stack of block sums whose sizes are the set bits of the number of
    values seen so far. After the ``n``-th value, the two newest blocks are
    merged once for every trailing zero bit of ``n``, so blocks are always
    combined with blocks of the same size and the stack never holds more
    than ``log2(n) + 1`` entries. For a power-of-two count the result is the
    one of the recursive midpoint split in :func:`sum_pairwise`.

    A nonzero initial value is the first block.
    """

    name = "Pairwise"

    def _start(self, value):
        self._stack = []
        self._count = 0
        if value:
            self.put(value)

    def put(self, x):
        stack = self._stack
        stack.append(self.kind(x))
        self._count += 1
        n = self._count
        with ieee_arithmetic():
            while not n & 1:
                top = stack.pop()
                stack[-1] = stack[-1] + top
                n >>= 1

    def sum(self):
        """Sum of the pending blocks, newest (smallest) first."""
        if not self._stack:
            return self.kind(0)
        with ieee_arithmetic():
            s = self._stack[-1]
            for block in reversed(self._stack[:-1]):
                s = s + block
        return s


class KahanSummator(_IncrementalSummator):
    """
    Kahan compensated running sum.

    Also accepts integer and complex accumulation types, like the one-shot
    :func:`sum_kahan`.
    """

    name = "Kahan"

    def _start(self, value):
        self._s = value
        self._c = self.kind(0)

    def put(self, x):
        with ieee_arithmetic():
            self._s, self._c = kahan_add(self._s, self.kind(x), self._c)

    def _put_array(self, values):
        s, c = self._s, self._c
        for x in values:
            s, c = kahan_add(s, x, c)
        self._s, self._c = s, c

    def sum(self):
        return self._s


class KBNSummator(_IncrementalSummator):
    """
    Kahan-Babuska-Neumaier running sum.

    Complex values keep a separate sum and compensation per component.
    """

    name = "KBN"
    requires_inexact = True

    def _start(self, value):
        self._components = components = RealComponents(self.kind)
        self._s = list(components.split_scalar(value))
        self._c = [components.real_kind(0)] * components.count

    def put(self, x):
        parts = self._components.split_scalar(x)
        with ieee_arithmetic():
            for i in range(self._components.count):
                self._s[i], self._c[i] = kbn_add(self._s[i], self._c[i], parts[i])

    def _put_array(self, values):
        for i, column in enumerate(self._components.split(values)):
            t, c = self._s[i], self._c[i]
            for x in column:
                t, c = kbn_add(t, c, x)
            self._s[i], self._c[i] = t, c

    def sum(self):
        with ieee_arithmetic():
            return self._components.join([t + c for t, c in zip(self._s, self._c)])


class KB2Summator(_IncrementalSummator):
    """
    Generalized Kahan-Babuska running sum of order 2.

    The compensation ``cs`` is itself compensated by ``ccs``. Complex values
    are handled per component.
    """

    name = "KB2"
    requires_inexact = True

    def _start(self, value):
        self._components = components = RealComponents(self.kind)
        zero = components.real_kind(0)
        self._s = list(components.split_scalar(value))
        self._cs = [zero] * components.count
        self._ccs = [zero] * components.count

    def put(self, x):
        parts = self._components.split_scalar(x)
        with ieee_arithmetic():
            for i in range(self._components.count):
                self._s[i], c = two_sum(self._s[i], parts[i])
                self._cs[i], cc = two_sum(self._cs[i], c)
                self._ccs[i] += cc

    def _put_array(self, values):
        for i, column in enumerate(self._components.split(values)):
            t, cs, ccs = self._s[i], self._cs[i], self._ccs[i]
            for x in column:
                t, c = two_sum(t, x)
                cs, cc = two_sum(cs, c)
                ccs += cc
            self._s[i], self._cs[i], self._ccs[i] = t, cs, ccs

    def sum(self):
        with ieee_arithmetic():
            return self._components.join(
                [t + cs + ccs for t, cs, ccs in zip(self._s, self._cs, self._ccs)]
            )
