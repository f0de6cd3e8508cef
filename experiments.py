#!/usr/bin/env python3
"""
slidepool Performance Experiments
Measure and visualize the sliding window against fixed batches
"""

import asyncio
import json
import statistics
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import matplotlib.pyplot as plt
import numpy as np
from loguru import logger

from slidepool import SchedulerRun, WindowScheduler
from slidepool.utils.async_helpers import run_in_batches, simulated_operation


class WindowExperiments:
    """Run performance experiments on simulated workloads"""

    def __init__(self, min_delay: float = 0.01, max_delay: float = 0.3):
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.results_dir = Path("experiment_results")
        self.results_dir.mkdir(exist_ok=True)

    async def _timed(self, coro) -> float:
        start = time.perf_counter()
        await coro
        return time.perf_counter() - start

    async def measure_strategy_times(self, count: int = 100, limit: int = 10,
                                     trials: int = 5) -> Dict[str, List[float]]:
        """Wall-clock time of sliding window vs fixed batches on identical workloads"""
        times = {'window': [], 'batched': []}

        for trial in range(trials):
            operation = simulated_operation(self.min_delay, self.max_delay, seed=trial)
            tasks = list(range(count))

            window_time = await self._timed(WindowScheduler(limit).run(tasks, operation))
            batch_time = await self._timed(run_in_batches(tasks, limit, operation))

            times['window'].append(window_time)
            times['batched'].append(batch_time)
            print(f"  Trial {trial + 1}/{trials}: window {window_time:.3f}s, batched {batch_time:.3f}s")

        return times

    async def measure_limit_scaling(self, count: int = 200,
                                    limits: List[int] | None = None) -> Dict[str, List]:
        """Measure how wall-clock time and throughput scale with the limit"""
        limits = limits or [1, 2, 5, 10, 20, 50]
        scaling_results = {
            'limits': [],
            'window_times': [],
            'batched_times': [],
            'throughputs': []
        }

        operation = simulated_operation(self.min_delay, self.max_delay, seed=42)
        tasks = list(range(count))

        for limit in limits:
            print(f"\n--- Testing with limit {limit} ---")
            window_time = await self._timed(WindowScheduler(limit).run(tasks, operation))
            batch_time = await self._timed(run_in_batches(tasks, limit, operation))

            scaling_results['limits'].append(limit)
            scaling_results['window_times'].append(window_time)
            scaling_results['batched_times'].append(batch_time)
            scaling_results['throughputs'].append(count / window_time)
            print(f"  window {window_time:.3f}s, batched {batch_time:.3f}s")

        return scaling_results

    async def measure_in_flight_profile(self, count: int = 60, limit: int = 8) -> Dict[str, List[float]]:
        """Sample the number of in-flight operations at every settlement"""
        operation = simulated_operation(self.min_delay, self.max_delay, seed=7)
        start = time.perf_counter()
        samples = {'time': [], 'in_flight': []}

        run_state = None

        def on_settle(outcome, completed, total):
            samples['time'].append(time.perf_counter() - start)
            samples['in_flight'].append(run_state.in_flight)

        run_state = SchedulerRun(range(count), limit, operation, on_settle=on_settle)
        await run_state.execute()

        return samples

    def plot_strategy_times(self, times: Dict[str, List[float]]):
        """Box plot of wall-clock time per strategy"""
        plt.figure(figsize=(8, 6))
        plt.boxplot([times['window'], times['batched']])
        plt.xticks([1, 2], ['Sliding window', 'Fixed batches'])
        plt.ylabel('Wall-clock time (seconds)')
        plt.title('Sliding Window vs Fixed Batches')
        plt.grid(True, alpha=0.3, axis='y')
        plt.tight_layout()
        plt.savefig(self.results_dir / 'strategy_times.png')
        plt.close()  # Close instead of show to continue execution

    def plot_scaling_results(self, scaling_results: Dict[str, List]):
        """Plot how performance scales with the concurrency limit"""
        fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 5))

        # Time vs limit
        ax1.plot(scaling_results['limits'], scaling_results['window_times'],
                 marker='o', linewidth=2, markersize=8, label='Sliding window')
        ax1.plot(scaling_results['limits'], scaling_results['batched_times'],
                 marker='s', linewidth=2, markersize=8, label='Fixed batches')
        ax1.set_xlabel('Concurrency limit')
        ax1.set_ylabel('Wall-clock time (seconds)')
        ax1.set_title('Time vs Concurrency Limit')
        ax1.set_xscale('log')
        ax1.legend()
        ax1.grid(True, alpha=0.3)

        # Throughput vs limit
        ax2.plot(scaling_results['limits'], scaling_results['throughputs'],
                 marker='o', linewidth=2, markersize=8, color='green')
        ax2.set_xlabel('Concurrency limit')
        ax2.set_ylabel('Throughput (tasks/second)')
        ax2.set_title('Sliding Window Throughput')
        ax2.set_xscale('log')
        ax2.grid(True, alpha=0.3)

        plt.tight_layout()
        plt.savefig(self.results_dir / 'limit_scaling.png')
        plt.close()

    def plot_in_flight_profile(self, samples: Dict[str, List[float]], limit: int):
        """Step plot of in-flight operations over time"""
        plt.figure(figsize=(16, 4))
        plt.step(samples['time'], samples['in_flight'], where='post', color='steelblue')
        plt.axhline(limit, color='red', linestyle='--', linewidth=1.5, label=f'Limit: {limit}')
        plt.xlabel('Time (seconds)')
        plt.ylabel('In flight after settlement')
        plt.title('Window Saturation')
        plt.legend(loc='lower left')
        plt.grid(True, alpha=0.3)
        plt.tight_layout()
        plt.savefig(self.results_dir / 'in_flight_profile.png', dpi=100)
        plt.close()

    def summarize(self, values: List[float]) -> Dict[str, float]:
        """Summary statistics for a list of timings"""
        arr = np.asarray(values)
        return {
            'count': len(values),
            'mean': float(arr.mean()),
            'median': float(np.median(arr)),
            'p90': float(np.percentile(arr, 90)),
            'stdev': statistics.stdev(values) if len(values) > 1 else 0,
            'min': float(arr.min()),
            'max': float(arr.max())
        }

    def save_results(self, experiment_name: str, results: Any):
        """Save experiment results to JSON"""
        timestamp = datetime.now().isoformat()
        filename = self.results_dir / f"{experiment_name}_{timestamp}.json"

        with open(filename, 'w') as f:
            json.dump({
                'experiment': experiment_name,
                'timestamp': timestamp,
                'results': results
            }, f, indent=2, default=str)

        print(f"Results saved to {filename}")


async def run_all_experiments():
    """Run comprehensive experiment suite"""
    exp = WindowExperiments()

    # Per-dispatch debug logging would dominate the timings
    logger.disable("slidepool")

    print("=" * 60)
    print("SLIDEPOOL PERFORMANCE EXPERIMENTS")
    print("=" * 60)

    # Experiment 1: Strategy comparison
    print("\n[1/3] Comparing sliding window with fixed batches (100 tasks, limit 10)...")
    times = await exp.measure_strategy_times(count=100, limit=10, trials=10)
    exp.plot_strategy_times(times)
    exp.save_results("strategy_times", {
        'times': times,
        'stats': {name: exp.summarize(values) for name, values in times.items()}
    })

    # Experiment 2: Scaling with the limit
    print("\n[2/3] Measuring scaling with the concurrency limit...")
    scaling_results = await exp.measure_limit_scaling()
    exp.plot_scaling_results(scaling_results)
    exp.save_results("limit_scaling", scaling_results)

    # Experiment 3: Window saturation
    print("\n[3/3] Sampling in-flight operations...")
    samples = await exp.measure_in_flight_profile(count=60, limit=8)
    exp.plot_in_flight_profile(samples, limit=8)
    exp.save_results("in_flight_profile", samples)

    logger.enable("slidepool")

    print("\n" + "=" * 60)
    print("EXPERIMENTS COMPLETE")
    print(f"Results saved in: {exp.results_dir}")
    print("=" * 60)


async def quick_comparison():
    """Quick test: one workload under both strategies"""
    exp = WindowExperiments()

    print("Quick Comparison - 100 Tasks, Limit 10, 3 Trials")
    print("-" * 50)

    logger.disable("slidepool")
    times = await exp.measure_strategy_times(count=100, limit=10, trials=3)
    logger.enable("slidepool")

    window = exp.summarize(times['window'])
    batched = exp.summarize(times['batched'])

    print("\n📊 Results:")
    print(f"  Sliding window mean: {window['mean']:.3f}s")
    print(f"  Fixed batches mean:  {batched['mean']:.3f}s")
    print(f"  Speedup: {batched['mean'] / window['mean']:.2f}x")


if __name__ == "__main__":
    choice = input("Run [A]ll experiments or [Q]uick comparison? ").lower()

    if choice == 'a':
        asyncio.run(run_all_experiments())
    else:
        asyncio.run(quick_comparison())
