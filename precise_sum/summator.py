"""
Exact incremental summation.

The :class:`Summator` keeps the running sum as a list of non-overlapping
partial sums, so the total of everything added so far is known exactly and
can be rounded correctly (round-half-to-even) at any time.

Precise summation follows msum() by Raymond Hettinger
(http://aspn.activestate.com/ASPN/Cookbook/Python/Recipe/393090), enhanced
with the exact partials sum and roundoff from Mark Dickinson's msum4.py
(http://bugs.python.org/file10357/msum4.py). Intermediate overflow is
tracked separately as an integer count of ``2 ** max_exp``, and NaN or
infinite inputs go to a plain floating-point sum, so IEEE 754 special value
semantics (``inf + -inf == nan``) hold across the whole sequence.

References:
    Jonathan Richard Shewchuk, "Adaptive Precision Floating-Point Arithmetic
    and Fast Robust Geometric Predicates".
"""

import logging
import numbers
from typing import Iterable, List, Tuple

import numpy as np
import torch

from . import config
from .core import (
    FloatFormat,
    as_array,
    fabs,
    ieee_arithmetic,
    is_nonoverlapping,
    two_sum,
)

logger = logging.getLogger(__name__)


def _reduce_step(s, y, z) -> Tuple[object, bool]:
    """
    Fold one partial into a running sum.

    Args:
        s: Running sum, larger in magnitude than ``y``
        y: Partial to fold in
        z: Next smaller partial, or 0 if ``y`` is the smallest one

    Returns:
        Tuple of (new_sum, done). Once the fold leaves a nonzero remainder,
        the smaller partials cannot change the rounded result and the
        reduction is done.
    """
    x = s
    s = x + y
    l = y - (s - x)
    if l:
        # Make half-even rounding work across multiple partials.
        # Needed so that sum([1e-16, 1, 1e16]) will round-up the last
        # digit to two instead of down to zero (the 1e-16 makes the 1
        # slightly closer to two).
        if z and not np.signbit(l * z):
            l *= 2
            x = s + l
            if l == x - s:
                s = x
        return s, True
    return s, False


def partials_reduce(s, partials):
    """
    Sum a list of nonoverlapping floats into ``s``.

    On input, ``partials`` is a list of nonzero, finite, nonoverlapping
    floats, strictly increasing in magnitude but possibly of mixed sign,
    and ``s`` is larger in magnitude than all of them. The result is
    correctly rounded using the round-half-to-even rule.

    Two floating point values x and y are non-overlapping if the least
    significant nonzero bit of x is more significant than the most
    significant nonzero bit of y, or vice-versa.
    """
    for i in range(len(partials) - 1, -1, -1):
        s, done = _reduce_step(s, partials[i], partials[i - 1] if i else 0)
        if done:
            break
    return s


class Summator:
    """
    Accumulator for full precision summation.

    Values are added with :meth:`put` (or ``+=``); :meth:`sum` returns the
    exact total rounded once to the accumulator's floating type. Copies are
    independent: mutating a copy never affects the original.

    Attributes:
        check_invariants: Verify the partials after every update
    """

    def __init__(self, value=0, dtype=None, check_invariants=None):
        """
        Initialize the accumulator.

        Args:
            value: Initial value of the sum
            dtype: Floating type (float16, float32, float64 or longdouble),
                defaults to ``config.DEFAULT_DTYPE``
            check_invariants: Override ``config.CHECK_INVARIANTS``
        """
        self._format = FloatFormat.of(config.DEFAULT_DTYPE if dtype is None else dtype)
        # Nonoverlapping partial sums, increasing in magnitude
        self._partials: List = []
        # Sum of NaN and infinite inputs
        self._nonfinite = self._format.zero
        # Count of 2 ** max_exp minus count of -(2 ** max_exp)
        self._overflow = 0
        if check_invariants is None:
            check_invariants = config.CHECK_INVARIANTS
        self.check_invariants = check_invariants
        if value:
            self.put(value)

    @property
    def dtype(self) -> np.dtype:
        return self._format.dtype

    @property
    def partials(self) -> Tuple:
        """Snapshot of the nonoverlapping partial sums."""
        return tuple(self._partials)

    @property
    def nonfinite_sum(self):
        """Sum of every NaN or infinite value added so far."""
        return self._nonfinite

    @property
    def overflow_degree(self) -> int:
        """Multiples of ``2 ** max_exp`` banked out of the partials."""
        return self._overflow

    def put(self, x):
        """Add ``x`` to the internal partial sums."""
        fmt = self._format
        with ieee_arithmetic():
            x = fmt.type(x)
            if not np.isfinite(x):
                self._nonfinite += x
                return
            partials = self._partials
            i = 0
            for y in partials:
                h = x + y
                if np.isinf(h):
                    if fabs(x) < fabs(y):
                        x, y = y, x
                    if np.signbit(h):
                        x += fmt.overflow_unit
                        x += fmt.overflow_unit
                        self._overflow -= 1
                    else:
                        x -= fmt.overflow_unit
                        x -= fmt.overflow_unit
                        self._overflow += 1
                    logger.debug("Banked overflow, degree is now %d", self._overflow)
                    h = x + y
                l = x - (h - y) if fabs(x) < fabs(y) else y - (h - x)
                if l:
                    partials[i] = l
                    i += 1
                x = h
            del partials[i:]
            if x:
                partials.append(x)
        if self.check_invariants:
            self._check_partials()

    def unsafe_put(self, x):
        """
        Add a finite ``x`` to the internal partial sums.

        Skips the overflow handling of :meth:`put`; the caller guarantees that
        no intermediate sum overflows.
        """
        x = self._format.type(x)
        if self.check_invariants:
            assert np.isfinite(x), f"unsafe_put requires a finite value, got {x!r}"
        partials = self._partials
        i = 0
        for y in partials:
            x, l = two_sum(x, y)
            if l:
                partials[i] = l
                i += 1
        del partials[i:]
        if x:
            partials.append(x)
        if self.check_invariants:
            self._check_partials()

    def put_all(self, values: Iterable):
        """Add every element of ``values``."""
        if isinstance(values, np.ndarray) or torch.is_tensor(values):
            values = as_array(values)
        for x in values:
            self.put(x)

    def sum(self):
        """
        Value of the sum, rounded to the nearest representable
        floating-point number using the round-half-to-even rule.
        """
        if self.check_invariants:
            self._check_partials()
        if self._nonfinite:
            return self._nonfinite
        fmt = self._format
        parts = self._partials
        n = len(parts)
        y = fmt.zero
        # pick last
        if n:
            n -= 1
            y = parts[n]
        with ieee_arithmetic():
            if self._overflow:
                of = fmt.type(self._overflow)
                if y and self._overflow in (-1, 1) and np.signbit(of * y):
                    # problem case: decide whether result is representable
                    y /= 2
                    x = of * fmt.overflow_unit
                    h = x + y
                    l = (y - (h - x)) * 2
                    y = h * 2
                    if np.isinf(y):
                        # overflow, except in edge case...
                        x = h + l
                        if n and x - h == l and not np.signbit(l * parts[n - 1]):
                            y = x * 2
                        else:
                            y = fmt.infinity * of
                        n = 0
                    elif l:
                        y, done = _reduce_step(y, l, parts[n - 1] if n else 0)
                        if done:
                            n = 0
                else:
                    y = fmt.infinity * of
                    n = 0
            return partials_reduce(y, parts[:n])

    def partials_sum(self):
        """Correctly rounded sum of the partials alone (no overflow, no NaN/inf)."""
        if self.check_invariants:
            self._check_partials()
        parts = self._partials
        if not parts:
            return self._format.zero
        return partials_reduce(parts[-1], parts[:-1])

    def _overflow_value(self):
        """Corresponding infinity if the sum overflows, 0 otherwise."""
        fmt = self._format
        if self._overflow == 0:
            return fmt.zero
        parts = self._partials
        with ieee_arithmetic():
            of = fmt.type(self._overflow)
            if parts and self._overflow in (-1, 1) and np.signbit(of * parts[-1]):
                # problem case: decide whether result is representable
                x = of * fmt.overflow_unit
                y = parts[-1] / 2
                h = x + y
                l = (y - (h - x)) * 2
                y = h * 2
                if not np.isinf(y) or (
                    len(parts) > 1
                    and not np.signbit(l * parts[-2])
                    and (h + l) - h == l
                ):
                    return fmt.zero
            return fmt.infinity * of

    def is_nan(self) -> bool:
        """True if the current sum is a NaN."""
        if np.isnan(self._nonfinite):
            return True
        if self._nonfinite:
            with ieee_arithmetic():
                return bool(np.isnan(self._nonfinite + self._overflow_value()))
        return False

    def is_finite(self) -> bool:
        """True if the current sum is finite (not infinite or NaN)."""
        if self._nonfinite:
            return False
        return not self._overflow_value()

    def is_infinity(self) -> bool:
        """True if the current sum is +inf or -inf."""
        if np.isnan(self._nonfinite):
            return False
        with ieee_arithmetic():
            return bool(np.isinf(self._nonfinite + self._overflow_value()))

    def reset_non_partials(self):
        """Forget NaN/infinite inputs and banked overflow, keep the partials."""
        self._nonfinite = self._format.zero
        self._overflow = 0

    def reset(self, value=0):
        """Restart the sum from ``value``."""
        self._partials.clear()
        self.reset_non_partials()
        if value:
            self.put(value)

    def extend_to(self, dtype) -> "Summator":
        """
        Copy of this accumulator over a wider floating type.

        The partials are copied verbatim (they are exact in the wider type)
        and the overflow degree is rescaled to the wider exponent range, so
        a sum that overflows this type can still be finite in the new one.

        Args:
            dtype: Target floating type, at least as wide in exponent range
                and mantissa as the current one

        Returns:
            New Summator over ``dtype``
        """
        target = FloatFormat.of(dtype)
        if target.dtype == self._format.dtype:
            return self.copy()
        if not target.covers(self._format):
            raise ValueError(f"Cannot extend {self._format.dtype} summation to narrower {target.dtype}")

        ret = Summator(dtype=target, check_invariants=self.check_invariants)
        ret._nonfinite = target.type(self._nonfinite)
        ret._partials = [target.type(p) for p in self._partials]
        exp_diff = target.max_exp - self._format.max_exp
        o = self._overflow
        if o and exp_diff:
            # o * 2**max_exp == high * 2**(max_exp + exp_diff) + low * 2**max_exp
            high = (abs(o) >> exp_diff) * (1 if o > 0 else -1)
            low = o - (high << exp_diff)
            ret._overflow = high
            logger.debug("Rescaled overflow degree %d from %s to %s (%d), remainder %d",
                         o, self._format.dtype, target.dtype, high, low)
            ret._put_scaled(low, self._format.max_exp)
        else:
            ret._overflow = o
        return ret

    def _put_scaled(self, n: int, exp: int):
        """Add ``n * 2**exp`` exactly, ``n`` being an arbitrary integer."""
        fmt = self._format
        # Python ints convert through double
        width = min(fmt.mant_dig, 53) - 1
        sign = -1 if n < 0 else 1
        n = abs(n)
        while n:
            chunk = n & ((1 << width) - 1)
            if chunk:
                self.put(sign * fmt.type(np.ldexp(fmt.type(chunk), exp)))
            n >>= width
            exp += width

    def _check_partials(self):
        parts = self._partials
        for y in parts:
            assert y and np.isfinite(y), f"Invalid partial {y!r}"
        for smaller, larger in zip(parts, parts[1:]):
            assert is_nonoverlapping(smaller, larger), (
                f"Overlapping partials {smaller!r} and {larger!r}"
            )

    def copy(self) -> "Summator":
        """Independent copy of the accumulator."""
        other = self.__class__.__new__(self.__class__)
        other._format = self._format
        other._partials = list(self._partials)
        other._nonfinite = self._nonfinite
        other._overflow = self._overflow
        other.check_invariants = self.check_invariants
        return other

    __copy__ = copy

    def __deepcopy__(self, memo):
        return self.copy()

    def _merge(self, other: "Summator", negate: bool):
        if other._format.dtype != self._format.dtype:
            raise TypeError(
                f"Cannot combine {self._format.dtype} and {other._format.dtype} summators, "
                "use extend_to() first"
            )
        # snapshot first, other may be self
        nonfinite, overflow, partials = other._nonfinite, other._overflow, list(other._partials)
        with ieee_arithmetic():
            if negate:
                self._nonfinite -= nonfinite
                self._overflow -= overflow
            else:
                self._nonfinite += nonfinite
                self._overflow += overflow
        for f in partials:
            self.put(-f if negate else f)

    def __iadd__(self, other):
        if isinstance(other, Summator):
            self._merge(other, negate=False)
        elif isinstance(other, numbers.Real):
            self.put(other)
        else:
            return NotImplemented
        return self

    def __isub__(self, other):
        if isinstance(other, Summator):
            self._merge(other, negate=True)
        elif isinstance(other, numbers.Real):
            with ieee_arithmetic():
                x = self._format.type(other)
            self.put(-x)
        else:
            return NotImplemented
        return self

    def __add__(self, other):
        return self.copy().__iadd__(other)

    __radd__ = __add__

    def __sub__(self, other):
        return self.copy().__isub__(other)

    def __rsub__(self, other):
        return (-self).__iadd__(other)

    def __neg__(self):
        other = self.copy()
        other._partials = [-p for p in self._partials]
        if self._nonfinite:
            other._nonfinite = -self._nonfinite
        other._overflow = -self._overflow
        return other

    def __float__(self):
        return float(self.sum())

    def __repr__(self):
        return (f"Summator({self.sum()}, dtype={self._format.dtype.name}, "
                f"partials={len(self._partials)}, overflow_degree={self._overflow})")
