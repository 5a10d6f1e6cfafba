"""Command-line entry point running the scheduler demos and benchmarks."""

from __future__ import annotations

import argparse
import os
import sys
import time
from typing import List, Optional, TextIO

from .benchmark import EventBenchmarker, run_executor_benchmark
from .events import EventType, event_name
from .executor import SingleThreadExecutor
from .registry import EventRegistry
from .scheduler import EventScheduler, ExecutorEventScheduler
from .work_stealing import WorkStealingConfig, WorkStealingExecutor

_REGISTRATION_DELAY = 0.1
_PROCESSING_DELAY = 0.5

_DEMO_EVENTS = (
    (EventType.USER_LOGIN, "User logged in", "john_doe"),
    (EventType.NEW_MESSAGE, "New message received", "Hello, World!"),
    (EventType.SYSTEM_STATUS, "System status changed", 1),
)


async def _announce(
    scheduler: EventScheduler, name: str, label: str, output: TextIO
) -> None:
    if isinstance(scheduler, ExecutorEventScheduler):
        await scheduler.switch_to_executor()
    data = await scheduler.wait_for(name)
    print(f"{label}: {data}", file=output)


def _run_basic(output: TextIO) -> None:
    scheduler = EventScheduler()
    tasks = [
        scheduler.spawn(_announce(scheduler, event_name(kind), label, output))
        for kind, label, _ in _DEMO_EVENTS
    ]
    for kind, _, data in _DEMO_EVENTS:
        scheduler.emit(event_name(kind), data)
    for task in tasks:
        task.close()


def _run_executor_demo(output: TextIO) -> None:
    scheduler = ExecutorEventScheduler(SingleThreadExecutor(), one_shot=False)

    print("Starting executor...", file=output)
    scheduler.executor.start()

    print("Registering handlers...", file=output)
    tasks = [
        scheduler.spawn(_announce(scheduler, event_name(kind), label, output))
        for kind, label, _ in _DEMO_EVENTS
    ]
    time.sleep(_REGISTRATION_DELAY)

    for kind, _, data in _DEMO_EVENTS:
        name = event_name(kind)
        print(f"Emitting {name} event...", file=output)
        scheduler.emit(name, data)

    time.sleep(_PROCESSING_DELAY)

    print("Stopping executor...", file=output)
    scheduler.executor.stop()
    for task in tasks:
        task.close()


def _run_benchmarks(iterations: int, num_tasks: int, output: TextIO) -> None:
    regular = WorkStealingExecutor(
        WorkStealingConfig(
            thread_count=4,
            min_threads=2,
            tasks_per_thread_threshold=100,
            keep_alive=30.0,
            enable_work_stealing=True,
        )
    )
    run_executor_benchmark(regular, "Regular Executor", num_tasks, output)

    cpus = os.cpu_count() or 1
    executor = WorkStealingExecutor(
        WorkStealingConfig(thread_count=cpus, min_threads=max(1, cpus // 2))
    )
    scheduler = ExecutorEventScheduler(executor, one_shot=True)

    print("Starting executor...", file=output)
    executor.start()

    print("Registering handlers...", file=output)
    registry = EventRegistry(scheduler, output)
    registry.register_all_handlers()
    time.sleep(_REGISTRATION_DELAY)

    EventBenchmarker(scheduler, output).run_benchmark(iterations)

    print("Stopping executor...", file=output)
    executor.stop()
    for task in registry.tasks:
        task.close()


def _non_negative(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value}")
    return value


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eventsched", description="Run the event scheduler demos and benchmarks."
    )
    parser.add_argument(
        "mode",
        nargs="?",
        choices=("basic", "executor", "benchmark"),
        default="benchmark",
        help="which demo to run (default: benchmark)",
    )
    parser.add_argument(
        "--iterations",
        type=_non_negative,
        default=1000,
        help="event emission rounds in the benchmark (default: 1000)",
    )
    parser.add_argument(
        "--tasks",
        type=_non_negative,
        default=100000,
        help="tasks run by the executor benchmark (default: 100000)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the selected demo and return the exit status."""
    args = _parser().parse_args(argv)
    output = sys.stdout
    if args.mode == "basic":
        _run_basic(output)
    elif args.mode == "executor":
        _run_executor_demo(output)
    else:
        _run_benchmarks(args.iterations, args.tasks, output)
    return 0


if __name__ == "__main__":
    sys.exit(main())