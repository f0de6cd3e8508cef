#!/usr/bin/env python3
"""
Example usage of slidepool - Pure Python interface

This script demonstrates how to run many async tasks with a bounded
number in flight and get the results back in input order.
"""

import asyncio
import random

from slidepool import (
    FailurePolicy,
    OperationError,
    WindowScheduler,
    fetch_urls,
    run,
    split_outcomes,
)


async def fake_fetch(index: int) -> int:
    """Stand-in for a network request: random latency, returns its index."""
    await asyncio.sleep(random.uniform(0.01, 0.2))
    return index


async def basic_example():
    """Basic example: 100 tasks, 10 at a time, results in order."""
    print("🚀 Running 100 tasks with a limit of 10...")

    results = await run(range(100), 10, fake_fetch)

    print(f"✅ Got {len(results)} results")
    print(f"   In input order: {results == list(range(100))}")
    print(f"   First ten: {results[:10]}")


async def fast_fail_example():
    """The first failing task aborts the whole run."""
    print("🚀 Fast-fail example...")

    async def flaky(task: str) -> str:
        await asyncio.sleep(0.05)
        if task == "fail":
            raise ValueError("upstream returned 500")
        return task.upper()

    try:
        await run(["ok", "ok", "fail", "ok"], 2, flaky)
    except OperationError as e:
        print(f"❌ Run aborted at task {e.index} ({e.task!r}): {e.error}")


async def collect_all_example():
    """Collect every outcome instead of stopping at the first failure."""
    print("🚀 Collect-all example...")

    async def maybe_fail(n: int) -> int:
        await asyncio.sleep(random.uniform(0.01, 0.05))
        if n % 4 == 0:
            raise RuntimeError(f"task {n} failed")
        return n * n

    scheduler = WindowScheduler(3, policy=FailurePolicy.COLLECT_ALL)
    outcomes = await scheduler.run(range(12), maybe_fail)

    values, failures = split_outcomes(outcomes)
    print(f"✅ {len(values)} succeeded: {values}")
    print(f"❌ {len(failures)} failed: {[f.index for f in failures]}")

    stats = scheduler.last_run.stats
    print(f"📈 Peak in flight: {stats.peak_in_flight}, elapsed {stats.elapsed:.3f}s")


async def progress_example():
    """Report progress as tasks settle."""
    print("🚀 Progress example...")

    def on_settle(outcome, completed, total):
        if completed % 5 == 0:
            print(f"⏰ {completed}/{total} done (last: task {outcome.index})")

    await run(range(20), 4, fake_fetch, on_settle=on_settle)


async def http_example():
    """Fetch real URLs (needs network access)."""
    print("🚀 HTTP example...")

    urls = [f"https://httpbin.org/delay/{i % 3}" for i in range(6)]
    outcomes = await fetch_urls(urls, limit=3, policy=FailurePolicy.COLLECT_ALL, timeout=10)

    for url, outcome in zip(urls, outcomes):
        if outcome.ok:
            print(f"   {url} → {outcome.value.status} ({len(outcome.value.body)} bytes)")
        else:
            print(f"   {url} → error: {outcome.error}")


async def main():
    """Run all examples."""
    examples = [
        ("Basic Example", basic_example),
        ("Fast-Fail Example", fast_fail_example),
        ("Collect-All Example", collect_all_example),
        ("Progress Example", progress_example),
        ("HTTP Example", http_example),
    ]

    for name, example_func in examples:
        print(f"\n" + "=" * 60)
        print(f"Running: {name}")
        print("=" * 60)

        try:
            await example_func()
        except Exception as e:
            print(f"❌ Example failed: {e}")
            import traceback
            traceback.print_exc()

        print(f"\n✅ {name} completed")


if __name__ == "__main__":
    asyncio.run(main())
