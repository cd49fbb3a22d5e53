"""
Precise Summation Library

Floating-point summation algorithms with increasing accuracy, from naive
addition to an exact, correctly rounded running sum.

This library provides:
- Naive, pairwise, Kahan, Kahan-Babuska-Neumaier and order-2 Kahan-Babuska
  summation over lists, NumPy arrays and PyTorch tensors
- Real and complex inputs for every algorithm
- Incremental accumulators for every algorithm
- An exact accumulator (Summator) holding the sum as nonoverlapping
  partials, with IEEE 754 handling of NaN, infinities and intermediate
  overflow
- Support for float16, float32, float64 and long double
"""

from .core import FloatFormat, RealComponents, fabs, two_sum, kahan_add, kbn_add
from .summator import Summator, partials_reduce
from .accumulators import (
    NaiveSummator,
    PairwiseSummator,
    KahanSummator,
    KBNSummator,
    KB2Summator,
)
from .algorithms import (
    Summation,
    fsum,
    sum_naive,
    sum_fast,
    sum_pairwise,
    sum_kahan,
    sum_kbn,
    sum_kb2,
    sum_precise,
    summator_for,
)

__version__ = "1.0.0"
__author__ = "Precise Summation Contributors"

__all__ = [
    "FloatFormat",
    "KB2Summator",
    "KBNSummator",
    "KahanSummator",
    "NaiveSummator",
    "PairwiseSummator",
    "RealComponents",
    "Summation",
    "Summator",
    "fabs",
    "fsum",
    "kahan_add",
    "kbn_add",
    "partials_reduce",
    "sum_fast",
    "sum_kahan",
    "sum_kb2",
    "sum_kbn",
    "sum_naive",
    "sum_pairwise",
    "sum_precise",
    "summator_for",
    "two_sum",
]
