#!/usr/bin/env python3
"""
Basic usage examples for the Precise Summation Library.

This script demonstrates the summation algorithms, the exact incremental
accumulator and how they behave on ill-conditioned input.
"""

import math
import time

import numpy as np

# Import the precise summation library
import sys
sys.path.append('..')

from precise_sum import (
    Summation,
    Summator,
    fsum,
    summator_for,
)


def demonstrate_precision_loss():
    """Show how standard summation loses precision."""
    print("=" * 60)
    print("DEMONSTRATION: Precision Loss in Standard Summation")
    print("=" * 60)

    # Small values hidden between huge values of opposite sign
    data = [x * 10000 for x in [1, 1e100, 1, -1e100]]

    print(f"Test data: {data}")
    print("Expected result: 20000.0")
    print()

    print(f"{'Method':<12} {'Result':<15}")
    print("-" * 27)
    for method in Summation:
        print(f"{method.value:<12} {fsum(data, method):<15}")
    print()


def demonstrate_float32():
    """Compensated sums keep the accumulation type of the input."""
    print("=" * 60)
    print("DEMONSTRATION: Single Precision")
    print("=" * 60)

    data = np.array([1e8, 1.0, -1e8], dtype=np.float32)
    print("Test data: [1e8, 1.0, -1e8] (float32)")
    print()

    for method in (Summation.NAIVE, Summation.KAHAN, Summation.KBN, Summation.PRECISE):
        result = fsum(data, method)
        print(f"{method.value:<12} {result!r:<15} ({type(result).__name__})")
    print()


def demonstrate_incremental_summation():
    """Show incremental summation with Summator."""
    print("=" * 60)
    print("DEMONSTRATION: Incremental Summation")
    print("=" * 60)

    summator = Summator()
    values = [1e100, 1.0, -1e100, 1e-100, 1e50, -1.0, -1e50]

    print("Adding values incrementally:")
    print(f"{'Value':<15} {'Running Sum':<25} {'Partials':<10}")
    print("-" * 50)

    for value in values:
        summator += value
        print(f"{value:<15.3g} {summator.sum()!r:<25} {len(summator.partials):<10}")

    print()
    print(f"Final sum:  {summator.sum()!r}")
    print(f"math.fsum:  {math.fsum(values)!r}")
    print(f"Naive sum:  {sum(values)!r}")
    print()


def demonstrate_streaming_methods():
    """Every method as an incremental accumulator."""
    print("=" * 60)
    print("DEMONSTRATION: Streaming Accumulators")
    print("=" * 60)

    values = [x * 10000 for x in [1, 1e100, 1, -1e100]]
    print(f"{'Method':<12} {'Accumulator':<18} {'Result':<15}")
    print("-" * 45)
    for method in (Summation.NAIVE, Summation.PAIRWISE, Summation.KAHAN,
                   Summation.KBN, Summation.KB2, Summation.PRECISE):
        summator = summator_for(method)
        for value in values:
            summator += value
        print(f"{method.value:<12} {type(summator).__name__:<18} {summator.sum()!r:<15}")
    print()


def demonstrate_overflow():
    """Intermediate overflow does not spoil a finite result."""
    print("=" * 60)
    print("DEMONSTRATION: Intermediate Overflow")
    print("=" * 60)

    m = 2.0 ** 1023
    summator = Summator(1.5)
    for value in (m, m, -m, -m):
        summator += value
        print(f"after {value:+.3e}: sum={summator.sum()!r:<8} "
              f"overflow_degree={summator.overflow_degree}")
    print()

    # float32 overflow recovered by widening to double
    m32 = np.float32(2.0 ** 127)
    narrow = Summator(dtype=np.float32)
    narrow += m32
    narrow += m32
    print(f"float32 sum of 2**127 + 2**127: {narrow.sum()!r}")
    print(f"widened to float64:             {narrow.extend_to(np.float64).sum()!r}")
    print()


def demonstrate_special_values():
    """NaN and infinities follow IEEE rules over the whole sequence."""
    print("=" * 60)
    print("DEMONSTRATION: Special Values")
    print("=" * 60)

    cases = [
        [1.0, math.inf, 2.0],
        [math.inf, 1.0, -math.inf],
        [1e308, math.nan, 1e308],
    ]
    print(f"{'Values':<30} {'Sum':<8} {'Partials sum':<14}")
    print("-" * 52)
    for values in cases:
        summator = Summator()
        summator.put_all(values)
        print(f"{str(values):<30} {summator.sum()!r:<8} {summator.partials_sum()!r:<14}")

    summator.reset_non_partials()
    print(f"\nAfter reset_non_partials(): {summator.sum()!r}")
    print()


def demonstrate_merging():
    """Combine accumulators filled independently."""
    print("=" * 60)
    print("DEMONSTRATION: Merging Accumulators")
    print("=" * 60)

    chunks = [[(-1.0) ** a / a for a in range(lo, lo + 250)] for lo in range(1, 1001, 250)]
    partial_sums = []
    for chunk in chunks:
        summator = Summator()
        summator.put_all(chunk)
        partial_sums.append(summator)

    total = sum(partial_sums)
    print(f"Chunks:      {len(chunks)}")
    print(f"Merged sum:  {total.sum()!r}")
    print(f"Expected:    {-0.69264743055982025!r}")
    print()


def performance_comparison():
    """Compare performance across different array sizes."""
    print("=" * 60)
    print("PERFORMANCE COMPARISON")
    print("=" * 60)

    sizes = [1000, 10000, 100000]
    methods = [Summation.NAIVE, Summation.PAIRWISE, Summation.KAHAN,
               Summation.KBN, Summation.KB2, Summation.PRECISE]

    header = f"{'Size':<10} {'NumPy':<10}" + "".join(f"{m.value:<10}" for m in methods)
    print(header)
    print("-" * len(header))

    for size in sizes:
        np.random.seed(42)
        data = np.random.randn(size)

        start = time.time()
        np.sum(data)
        row = f"{size:<10} {(time.time() - start) * 1000:<10.2f}"

        for method in methods:
            start = time.time()
            fsum(data, method)
            row += f"{(time.time() - start) * 1000:<10.2f}"
        print(row)

    print("\nTimes in milliseconds")
    print()


def main():
    """Run all demonstrations."""
    print("PRECISE SUMMATION LIBRARY - BASIC USAGE EXAMPLES")
    print("=" * 60)
    print()

    demonstrate_precision_loss()
    demonstrate_float32()
    demonstrate_incremental_summation()
    demonstrate_streaming_methods()
    demonstrate_overflow()
    demonstrate_special_values()
    demonstrate_merging()
    performance_comparison()

    print("=" * 60)
    print("All demonstrations completed!")
    print("=" * 60)


if __name__ == "__main__":
    main()
