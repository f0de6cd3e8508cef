# src/slidepool/cli/main.py
import asyncio
import time
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from ..core.errors import OperationError, SchedulerError
from ..core.outcome import Outcome
from ..core.scheduler import FailurePolicy, RunStats, WindowScheduler
from ..protocols.http import FetchResult, HttpFetcher
from ..utils.async_helpers import run_in_batches, simulated_operation
from ..utils.config import (
    DEFAULT_LIMIT,
    DEFAULT_MAX_DELAY,
    DEFAULT_MIN_DELAY,
    SLIDEPOOL_HOME,
    setup_console_logging,
    setup_logging,
)
from ..utils.helpers import format_duration, generate_uid

# Initialize console
console = Console()

# Rows printed before the results table is truncated
MAX_ROWS = 20


def get_or_create_event_loop():
    """Get the current event loop or create a new one."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop


def read_url_file(path: Path) -> list[str]:
    """Read URLs from a file, one per line; blank lines and # comments are skipped."""
    urls = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            urls.append(line)
    return urls


def _describe(value: Any) -> str:
    if isinstance(value, FetchResult):
        return f"{value.status} {value.content_type} ({len(value.body)} bytes)"
    return str(value)


def show_results(labels: list[str], results: list):
    """Print ordered results; collect-all runs show per-task status."""
    table = Table(title="Results (input order)")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Task")
    table.add_column("Status")
    table.add_column("Result")

    for index, (label, result) in enumerate(zip(labels, results)):
        if index >= MAX_ROWS:
            break
        if isinstance(result, Outcome) and not result.ok:
            table.add_row(str(index), label, "[red]failed[/red]", f"[red]{result.error}[/red]")
        else:
            value = result.value if isinstance(result, Outcome) else result
            table.add_row(str(index), label, "[green]ok[/green]", _describe(value))

    console.print(table)
    if len(results) > MAX_ROWS:
        console.print(f"[dim]... {len(results) - MAX_ROWS} more results not shown[/dim]")


def show_stats(stats: RunStats):
    """Print a summary panel for a finished run."""
    console.print(Panel(
        f"Run: [bold]{stats.run_id}[/bold]\n"
        f"Tasks: {stats.total}  Slots: {stats.limit}  Peak in flight: {stats.peak_in_flight}\n"
        f"Succeeded: [green]{stats.succeeded}[/green]  Failed: [red]{stats.failed}[/red]\n"
        f"Elapsed: {format_duration(stats.elapsed)}",
        title="Run Statistics"
    ))


async def run_with_progress(scheduler: WindowScheduler, tasks: list, operation, description: str) -> list:
    """Run tasks through the scheduler while drawing a progress bar."""
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
        transient=True
    ) as progress:
        bar = progress.add_task(description, total=len(tasks))

        def on_settle(outcome, completed, total):
            progress.advance(bar)

        return await scheduler.run(tasks, operation, on_settle=on_settle)


async def run_demo(
    count: int,
    limit: int,
    policy: FailurePolicy,
    cancel_pending: bool,
    min_delay: float,
    max_delay: float,
    failure_rate: float,
    seed: int | None
):
    """Run a simulated workload with random per-task latency."""
    console.print(Panel(f"[bold cyan]Simulated run: {count} tasks, limit {limit}[/bold cyan]"))

    operation = simulated_operation(min_delay, max_delay, failure_rate=failure_rate, seed=seed)
    scheduler = WindowScheduler(limit, policy=policy, cancel_pending=cancel_pending)
    tasks = list(range(count))

    try:
        results = await run_with_progress(scheduler, tasks, operation, "Running")
    finally:
        if scheduler.last_run is not None:
            show_stats(scheduler.last_run.stats)

    show_results([f"task-{t}" for t in tasks], results)


async def run_fetch(url_file: Path, limit: int, policy: FailurePolicy, cancel_pending: bool, timeout: float | None):
    """Fetch every URL listed in a file."""
    urls = read_url_file(url_file)
    console.print(Panel(f"[bold cyan]Fetching {len(urls)} URLs, limit {limit}[/bold cyan]"))

    scheduler = WindowScheduler(limit, policy=policy, cancel_pending=cancel_pending)
    async with HttpFetcher(timeout=timeout) as fetcher:
        try:
            results = await run_with_progress(scheduler, urls, fetcher.fetch, "Fetching")
        finally:
            if scheduler.last_run is not None:
                show_stats(scheduler.last_run.stats)

    show_results(urls, results)


async def run_compare(count: int, limit: int, min_delay: float, max_delay: float, seed: int | None):
    """Time the same workload under the sliding window and under fixed batches."""
    seed = seed if seed is not None else 0
    operation = simulated_operation(min_delay, max_delay, seed=seed)
    tasks = list(range(count))

    console.print(Panel(f"[bold cyan]Sliding window vs fixed batches: {count} tasks, limit {limit}[/bold cyan]"))

    start = time.perf_counter()
    windowed = await WindowScheduler(limit).run(tasks, operation)
    window_time = time.perf_counter() - start

    start = time.perf_counter()
    batched = await run_in_batches(tasks, limit, operation)
    batch_time = time.perf_counter() - start

    table = Table(title="Wall-clock time")
    table.add_column("Strategy", style="cyan")
    table.add_column("Elapsed", justify="right")
    table.add_column("Ordered", justify="center")
    table.add_row("Sliding window", format_duration(window_time), "✓" if windowed == tasks else "✗")
    table.add_row("Fixed batches", format_duration(batch_time), "✓" if batched == tasks else "✗")
    console.print(table)

    if window_time > 0:
        console.print(f"Fixed batches took [bold]{batch_time / window_time:.2f}x[/bold] as long")


def main(
    demo: Annotated[bool, typer.Option("--demo", "-d", help="Run a simulated workload")] = False,
    fetch: Annotated[Path | None, typer.Option("--fetch", "-f", help="Fetch the URLs listed in a file")] = None,
    compare: Annotated[bool, typer.Option("--compare", "-c", help="Compare sliding window with fixed batches")] = False,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum tasks in flight")] = DEFAULT_LIMIT,
    count: Annotated[int, typer.Option("--count", help="Number of simulated tasks")] = 100,
    collect_all: Annotated[bool, typer.Option("--collect-all", help="Collect failures instead of aborting on the first")] = False,
    cancel_pending: Annotated[bool, typer.Option("--cancel-pending", help="Cancel in-flight tasks after a failure")] = False,
    min_delay: Annotated[float, typer.Option("--min-delay", help="Minimum simulated latency (s)")] = DEFAULT_MIN_DELAY,
    max_delay: Annotated[float, typer.Option("--max-delay", help="Maximum simulated latency (s)")] = DEFAULT_MAX_DELAY,
    failure_rate: Annotated[float, typer.Option("--failure-rate", help="Probability a simulated task fails")] = 0.0,
    seed: Annotated[int | None, typer.Option("--seed", help="Seed for reproducible simulated latency")] = None,
    timeout: Annotated[float | None, typer.Option("--timeout", help="Per-request HTTP timeout (s)")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-V", help="Log scheduler events to the console")] = False,
):
    """
    slidepool - Sliding-window bounded concurrency

    Runs tasks with at most --limit in flight, refilling each slot as soon as it frees up.
    """
    SLIDEPOOL_HOME.mkdir(parents=True, exist_ok=True)
    setup_logging()
    if verbose:
        setup_console_logging(generate_uid("CLI-"))

    policy = FailurePolicy.COLLECT_ALL if collect_all else FailurePolicy.FAST_FAIL
    loop = get_or_create_event_loop()

    try:
        if demo:
            loop.run_until_complete(run_demo(
                count, limit, policy, cancel_pending, min_delay, max_delay, failure_rate, seed
            ))
        elif fetch is not None:
            loop.run_until_complete(run_fetch(fetch, limit, policy, cancel_pending, timeout))
        elif compare:
            loop.run_until_complete(run_compare(count, limit, min_delay, max_delay, seed))
        else:
            # No action specified, show help
            console.print("No action specified. Use --help to see available options.")
    except OperationError as e:
        console.print(f"[red]Run aborted: task {e.index} failed: {e.error}[/red]")
        raise typer.Exit(code=1)
    except SchedulerError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def cli():
    """Entry point for the CLI."""
    typer.run(main)


if __name__ == "__main__":
    cli()
