#!/usr/bin/env python3
"""
Accuracy comparison benchmarks for the summation algorithms.

Every test case is summed with each Summation method in its own floating
type; the reference is the correctly rounded double of the exact sum.
"""

import time
from typing import Dict, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import sys
sys.path.append('..')

from precise_sum import Summation, fsum


class AccuracyBenchmark:
    """
    Accuracy benchmark suite for summation algorithms.
    """

    CASE_TYPES = [
        'alternating_large',
        'harmonic_series',
        'mixed_magnitude',
        'pathological_cancellation',
        'random_normal',
        'ill_conditioned',
    ]

    def __init__(self, sizes=(100, 1000, 10000), dtypes=(np.float32, np.float64)):
        self.sizes = list(sizes)
        self.dtypes = list(dtypes)
        self.algorithms = {'numpy': np.sum}
        for method in Summation:
            if method not in (Summation.FAST, Summation.APPROPRIATE):
                self.algorithms[method.value] = lambda x, m=method: fsum(x, m)
        self.results = []

    def generate_test_case(self, case_type: str, size: int, dtype=np.float32) -> Tuple[np.ndarray, float]:
        """
        Generate a test case and its exact result.

        Args:
            case_type: Type of test case
            size: Array size
            dtype: Data type

        Returns:
            Tuple of (test_array, exact_result)
        """
        rng = np.random.default_rng(42)

        if case_type == 'alternating_large':
            data = np.zeros(size, dtype=dtype)
            data[::2] = 1e8
            data[1::2] = -1e8
            data[-1] = 1.0
        elif case_type == 'harmonic_series':
            data = (1.0 / np.arange(1, size + 1, dtype=np.float64)).astype(dtype)
        elif case_type == 'mixed_magnitude':
            data = np.concatenate([
                np.full(size // 2, 1e6),
                rng.uniform(0, 1, size - size // 2),
            ]).astype(dtype)
            rng.shuffle(data)
        elif case_type == 'pathological_cancellation':
            # [1, -1+eps, 1, -1+eps, ...]
            data = np.zeros(size, dtype=dtype)
            data[::2] = 1.0
            data[1::2] = -1.0 + np.finfo(dtype).eps * 10
        elif case_type == 'random_normal':
            data = rng.normal(0, 1, size).astype(dtype)
        elif case_type == 'ill_conditioned':
            exponents = rng.uniform(-10, 10, size)
            signs = rng.choice([-1, 1], size)
            data = (signs * 10.0 ** exponents).astype(dtype)
        else:
            raise ValueError(f"Unknown test case type: {case_type}")

        # every float32 value is exact in double
        exact = float(fsum(data.astype(np.float64), Summation.PRECISE))
        return data, exact

    def run_single_benchmark(self, test_name: str, data: np.ndarray, exact: float) -> Dict:
        """
        Run every algorithm on a single test case.

        Returns:
            Dictionary with benchmark results
        """
        results = {
            'test_name': test_name,
            'size': len(data),
            'exact_result': exact,
            'condition_number': self._estimate_condition_number(data, exact),
        }

        for alg_name, algorithm in self.algorithms.items():
            start_time = time.perf_counter()
            result = float(algorithm(data))
            elapsed_time = time.perf_counter() - start_time

            absolute_error = abs(result - exact)
            relative_error = absolute_error / abs(exact) if exact != 0 else absolute_error

            results[f'{alg_name}_result'] = result
            results[f'{alg_name}_time'] = elapsed_time
            results[f'{alg_name}_abs_error'] = absolute_error
            results[f'{alg_name}_rel_error'] = relative_error

        return results

    @staticmethod
    def _estimate_condition_number(data: np.ndarray, exact: float) -> float:
        """Condition number of the summation problem, sum(|x|) / |sum(x)|."""
        if exact == 0:
            return np.inf
        return float(np.sum(np.abs(data.astype(np.float64)))) / abs(exact)

    def run_comprehensive_benchmark(self) -> pd.DataFrame:
        """
        Run the benchmark across all test cases, sizes and types.

        Returns:
            DataFrame with all benchmark results
        """
        total_tests = len(self.CASE_TYPES) * len(self.sizes) * len(self.dtypes)
        print("Running accuracy benchmark...")
        print(f"Test cases: {len(self.CASE_TYPES)}")
        print(f"Sizes: {self.sizes}")
        print(f"Data types: {[dt.__name__ for dt in self.dtypes]}")
        print(f"Total combinations: {total_tests}")
        print()

        test_count = 0
        for case_type in self.CASE_TYPES:
            for size in self.sizes:
                for dtype in self.dtypes:
                    test_count += 1
                    test_name = f"{case_type}_{dtype.__name__}_{size}"
                    print(f"[{test_count}/{total_tests}] Running {test_name}...")

                    data, exact = self.generate_test_case(case_type, size, dtype)
                    result = self.run_single_benchmark(test_name, data, exact)
                    result['case_type'] = case_type
                    result['dtype'] = dtype.__name__
                    self.results.append(result)

        return pd.DataFrame(self.results)

    def analyze_results(self, df: pd.DataFrame) -> None:
        """Print error and timing summaries."""
        print("\n" + "=" * 80)
        print("ACCURACY BENCHMARK ANALYSIS")
        print("=" * 80)

        print("\nRELATIVE ERROR BY ALGORITHM:")
        print(f"{'Algorithm':<12} {'Mean':<12} {'Median':<12} {'Max':<12} {'Exact':<8}")
        print("-" * 56)
        for alg in self.algorithms:
            col = f'{alg}_rel_error'
            exact_hits = int((df[f'{alg}_abs_error'] == 0).sum())
            print(f"{alg:<12} {df[col].mean():<12.2e} {df[col].median():<12.2e} "
                  f"{df[col].max():<12.2e} {exact_hits}/{len(df)}")

        print("\nMEDIAN RELATIVE ERROR BY TEST CASE:")
        summary = df.groupby(['case_type', 'dtype'])[
            [f'{alg}_rel_error' for alg in self.algorithms]
        ].median()
        summary.columns = list(self.algorithms)
        with pd.option_context('display.float_format', '{:.1e}'.format, 'display.width', 120):
            print(summary)

        print("\nPERFORMANCE COMPARISON:")
        print(f"{'Algorithm':<12} {'Mean Time (ms)':<15} {'Slowdown':<10}")
        print("-" * 37)
        numpy_time = df['numpy_time'].mean()
        for alg in self.algorithms:
            mean_time = df[f'{alg}_time'].mean()
            print(f"{alg:<12} {mean_time * 1000:<15.3f} {mean_time / numpy_time:<10.1f}x")

    def plot_results(self, df: pd.DataFrame, save_plots: bool = True) -> None:
        """Plot error against size and the performance/accuracy trade-off."""
        plt.figure(figsize=(12, 8))
        for alg in self.algorithms:
            size_errors = df.groupby('size')[f'{alg}_rel_error'].median()
            # exact results have zero error
            plt.loglog(size_errors.index, size_errors.clip(lower=1e-20).values,
                       'o-', label=alg, markersize=6)
        plt.xlabel('Array Size')
        plt.ylabel('Median Relative Error')
        plt.title('Accuracy vs Array Size')
        plt.legend()
        plt.grid(True, alpha=0.3)
        if save_plots:
            plt.savefig('accuracy_vs_size.png', dpi=300, bbox_inches='tight')
        plt.show()

        plt.figure(figsize=(10, 8))
        for alg in self.algorithms:
            mean_time = df[f'{alg}_time'].mean() * 1000
            mean_error = max(df[f'{alg}_rel_error'].mean(), 1e-20)
            plt.scatter(mean_time, mean_error, s=100, label=alg, alpha=0.8)
            plt.annotate(alg, (mean_time, mean_error),
                         xytext=(5, 5), textcoords='offset points')
        plt.xlabel('Mean Execution Time (ms)')
        plt.ylabel('Mean Relative Error')
        plt.title('Performance vs Accuracy Trade-off')
        plt.yscale('log')
        plt.xscale('log')
        plt.legend()
        plt.grid(True, alpha=0.3)
        if save_plots:
            plt.savefig('performance_vs_accuracy.png', dpi=300, bbox_inches='tight')
        plt.show()


def main():
    """Run the complete accuracy benchmark suite."""
    print("PRECISE SUMMATION LIBRARY - ACCURACY BENCHMARK")
    print("=" * 60)

    benchmark = AccuracyBenchmark()
    results_df = benchmark.run_comprehensive_benchmark()

    results_df.to_csv('accuracy_benchmark_results.csv', index=False)
    print("\nResults saved to accuracy_benchmark_results.csv")

    benchmark.analyze_results(results_df)
    benchmark.plot_results(results_df)

    print("\n" + "=" * 60)
    print("Accuracy benchmark completed!")
    print("=" * 60)


if __name__ == "__main__":
    main()
