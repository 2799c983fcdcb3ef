#!/usr/bin/env python3
"""
keyqp Benchmark: cold start vs. warm start on a sequence of chain problems

Each chain is solved once from scratch, then its ceiling is lowered and
the perturbed problem is solved again, cold and warm.
"""

import time

import numpy as np

import keyqp
from keyqp import QP, JacobianFactor, LinearInequality, QPSolver, VectorValues

print(f"keyqp version: {keyqp.__version__}")
print()


def generate_chain(n_keys, ceiling=0.5, seed=42):
    """Random smoothing chain over 2-D keys with a ceiling on each y."""
    rng = np.random.default_rng(seed)
    keys = [("x", i) for i in range(n_keys)]
    cost = []
    for i, key in enumerate(keys):
        cost.append(JacobianFactor({key: np.eye(2)}, rng.uniform(-1.0, 2.0, size=2)))
        if i > 0:
            cost.append(JacobianFactor({keys[i - 1]: -np.eye(2), key: np.eye(2)}, [0.1, 0.0]))
    inequalities = [
        LinearInequality({key: [0.0, 1.0]}, ceiling, dual_key=("ceiling", i))
        for i, key in enumerate(keys)
    ]
    return QP(cost=cost, inequalities=inequalities), keys


def timed_solve(solver, x0, duals=None, use_warm_start=True):
    """Solve and return a row of timing info."""
    start = time.perf_counter()
    result = solver.solve(x0, duals, use_warm_start)
    elapsed = time.perf_counter() - start
    return {
        'time': elapsed,
        'objective': result.objective,
        'status': result.status.value,
        'iterations': result.iterations,
        'result': result,
    }


def benchmark_single(n_keys, shift=0.05, seed=42):
    """Benchmark a single chain instance."""
    print(f"  Generating chain: {n_keys} keys, {2 * n_keys} variables")
    qp, keys = generate_chain(n_keys, seed=seed)
    first = timed_solve(QPSolver(qp), VectorValues.zeros(qp.dims()))

    ceiling = 0.5 - shift
    lowered, _ = generate_chain(n_keys, ceiling=ceiling, seed=seed)
    solver = QPSolver(lowered)
    start = VectorValues({
        k: np.minimum(first['result'].values[k], [np.inf, ceiling]) for k in keys
    })

    results = {
        'cold': timed_solve(solver, VectorValues.zeros(lowered.dims()), use_warm_start=False),
        'warm': timed_solve(solver, start, first['result'].duals),
    }
    for name, res in results.items():
        print(f"    {name}:  {res['time']*1000:8.1f} ms, obj={res['objective']:10.4f}, "
              f"iters={res['iterations']}, status={res['status']}")
    return results


def benchmark_scaling():
    """Benchmark across different chain lengths."""
    print("=" * 70)
    print("Warm Start Benchmark")
    print("=" * 70)

    sizes = [25, 50, 100, 200, 400]

    all_results = []
    for n_keys in sizes:
        print(f"\nChain length: {n_keys}")
        all_results.append((n_keys, benchmark_single(n_keys)))

    # Summary table
    print("\n" + "=" * 70)
    print("Summary")
    print("=" * 70)
    print(f"{'keys':>8} {'cold it':>8} {'warm it':>8} {'cold (ms)':>12} {'warm (ms)':>12} {'Speedup':>10}")
    print("-" * 70)

    for n_keys, res in all_results:
        cold, warm = res['cold'], res['warm']
        speedup = cold['time'] / warm['time'] if warm['time'] > 0 else float('nan')
        print(f"{n_keys:>8} {cold['iterations']:>8} {warm['iterations']:>8} "
              f"{cold['time']*1000:>12.1f} {warm['time']*1000:>12.1f} {speedup:>10.2f}x")


if __name__ == "__main__":
    benchmark_scaling()
