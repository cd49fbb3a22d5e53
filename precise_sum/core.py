"""
Core building blocks for precise floating-point summation.

This module contains the error-free transformations shared by every
summation algorithm, the floating-point format descriptions used by the
exact accumulator, and the helpers that bring arbitrary inputs (lists,
iterables, NumPy arrays, PyTorch tensors) into a common array form.
"""

from typing import Dict, List, Sequence, Tuple

import numpy as np
import torch


def ieee_arithmetic():
    """
    Context manager silencing NumPy overflow/invalid warnings.

    Producing infinities and NaNs is defined behaviour for the summation
    engine, so the scalar warnings NumPy emits for them are noise.
    """
    return np.errstate(over="ignore", invalid="ignore")


def fabs(x):
    """
    Absolute value with the sign bit cleared.

    Behaves the same for every input: ``-0.0`` becomes ``+0.0``, ``-inf``
    becomes ``+inf`` and NaNs keep being NaN. The result has the type of
    the argument.
    """
    return np.fabs(x)


def two_sum(x, y) -> Tuple:
    """
    Error-free transformation of a sum.

    Args:
        x: First addend
        y: Second addend

    Returns:
        Tuple of (h, l) where h is the rounded sum and h + l == x + y exactly
    """
    h = x + y
    if fabs(x) < fabs(y):
        l = x - (h - y)
    else:
        l = y - (h - x)
    return h, l


def kahan_add(a, b, c=0.0) -> Tuple:
    """
    Single-step Kahan addition.

    Args:
        a: Running sum
        b: Value to add
        c: Current compensation term

    Returns:
        Tuple of (new_sum, new_compensation)
    """
    y = b - c
    t = a + y
    new_c = (t - a) - y
    return t, new_c


def kbn_add(s, c, x) -> Tuple:
    """
    Single-step Kahan-Babuska-Neumaier addition.

    The rounding error of ``s + x`` is recovered with the operand of larger
    magnitude first and accumulated into ``c``.

    Returns:
        Tuple of (new_sum, new_compensation)
    """
    t, l = two_sum(s, x)
    return t, c + l


class FloatFormat:
    """
    Description of a binary floating-point type.

    Attributes:
        dtype: NumPy dtype of the format
        type: Scalar type used for all arithmetic in this format
        max_exp: Smallest power of two that overflows the format
        mant_dig: Number of mantissa bits, implicit bit included
        overflow_unit: ``2 ** (max_exp - 1)``, the largest power of two
    """

    _cache: Dict[np.dtype, "FloatFormat"] = {}

    def __init__(self, dtype):
        try:
            dtype = np.dtype(dtype)
        except TypeError as e:
            raise ValueError(f"Unknown floating type: {dtype!r}") from e
        if not np.issubdtype(dtype, np.floating):
            raise TypeError(f"Expected a real floating type, got {dtype}")

        info = np.finfo(dtype)
        self.dtype = dtype
        self.type = dtype.type
        self.max_exp = int(info.maxexp)
        self.mant_dig = int(info.nmant) + 1
        self.zero = self.type(0)
        self.infinity = self.type(np.inf)
        self.overflow_unit = self.power_of_two(self.max_exp - 1)

    @classmethod
    def of(cls, dtype) -> "FloatFormat":
        """Get the (cached) format for a dtype or scalar type."""
        if isinstance(dtype, FloatFormat):
            return dtype
        try:
            key = np.dtype(dtype)
        except TypeError as e:
            raise ValueError(f"Unknown floating type: {dtype!r}") from e
        fmt = cls._cache.get(key)
        if fmt is None:
            fmt = cls._cache[key] = cls(key)
        return fmt

    def power_of_two(self, exp: int):
        """Exact ``2 ** exp`` in this format."""
        return self.type(np.ldexp(self.type(1), exp))

    def covers(self, other: "FloatFormat") -> bool:
        """True if every value of ``other`` is exactly representable here."""
        return self.max_exp >= other.max_exp and self.mant_dig >= other.mant_dig

    def __repr__(self):
        return f"FloatFormat({self.dtype.name}, max_exp={self.max_exp}, mant_dig={self.mant_dig})"


def bit_span(x) -> Tuple[int, int]:
    """
    Positions of the lowest and highest set bits of a finite nonzero float.

    Positions are binary exponents: ``1.0`` spans ``(0, 0)``, ``0.75`` spans
    ``(-2, -1)``.
    """
    if np.finfo(type(x)).nmant <= 52:
        # exact in a Python float
        x = float(x)
    numerator, denominator = x.as_integer_ratio()
    scale = denominator.bit_length() - 1
    numerator = abs(numerator)
    low = (numerator & -numerator).bit_length() - 1 - scale
    high = numerator.bit_length() - 1 - scale
    return low, high


def is_nonoverlapping(smaller, larger) -> bool:
    """
    Check that two floats are non-overlapping.

    The least significant set bit of ``larger`` must be more significant
    than the most significant set bit of ``smaller``.
    """
    return bit_span(larger)[0] > bit_span(smaller)[1]


class RealComponents:
    """
    View of a scalar type as one or more real components.

    Real floating types have a single component, complex types have two
    (real and imaginary part). Compensated algorithms run independently on
    every component, which keeps one implementation of the error-free
    transformations for both kinds of input.
    """

    def __init__(self, kind):
        self.kind = np.dtype(kind).type
        self.is_complex = issubclass(self.kind, np.complexfloating)
        if self.is_complex:
            self.real_kind = np.finfo(self.kind).dtype.type
        else:
            self.real_kind = self.kind

    @property
    def count(self) -> int:
        return 2 if self.is_complex else 1

    def split(self, values: np.ndarray) -> List[np.ndarray]:
        """Split an array of ``kind`` into per-component real arrays."""
        if self.is_complex:
            return [values.real, values.imag]
        return [values]

    def split_scalar(self, value) -> Tuple:
        value = self.kind(value)
        if self.is_complex:
            return value.real, value.imag
        return (value,)

    def join(self, parts: Sequence):
        """Rebuild a scalar of ``kind`` from its real components."""
        if not self.is_complex:
            return self.kind(parts[0])
        out = np.empty((), dtype=self.kind)
        out.real = parts[0]
        out.imag = parts[1]
        return out[()]


def is_inexact(kind) -> bool:
    """True for real floating and complex floating scalar types."""
    return issubclass(np.dtype(kind).type, np.inexact)


def as_array(values) -> np.ndarray:
    """
    Bring a sequence of numbers into a flat NumPy array.

    Args:
        values: List, tuple, any iterable, NumPy array or PyTorch tensor

    Returns:
        One-dimensional array whose dtype is the accumulation type
    """
    if isinstance(values, torch.Tensor):
        tensor = values.detach().cpu()
        if tensor.dtype == torch.bfloat16:
            # NumPy has no bfloat16
            tensor = tensor.float()
        values = tensor.numpy()
    elif not isinstance(values, np.ndarray):
        if not isinstance(values, (list, tuple)):
            values = list(values)
        values = np.asarray(values)
    return values.ravel()


def as_kind(values: np.ndarray, kind) -> np.ndarray:
    """
    Convert an array to the accumulation type ``kind``.

    Widening and same-kind narrowing (``float64`` to ``float32``) are
    allowed; conversions that drop information of another kind, such as
    complex to real or floating to integer, raise ``TypeError``.
    """
    if not len(values):
        return values.astype(kind)
    return values.astype(kind, casting="same_kind", copy=False)
