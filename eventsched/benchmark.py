"""Latency benchmarks for the event scheduler and the executors."""

from __future__ import annotations

import sys
import threading
import time
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, TextIO

from .events import EventType, event_name
from .scheduler import EventScheduler, default_scheduler

_NO_DATA = "No benchmark data collected."
_PAUSE = 0.001
_SIMULATED_WORK = 0.0001
_POLL_INTERVAL = 0.01


def _out(output: Optional[TextIO]) -> TextIO:
    return output if output is not None else sys.stdout


@dataclass(frozen=True)
class LatencyStats:
    """Summary of a set of latency samples, in microseconds."""

    average: float
    median: int
    p95: int
    p99: int
    sample_size: int

    @classmethod
    def from_samples(cls, samples: Iterable[int]) -> "LatencyStats":
        """Summarise ``samples``; raises ``ValueError`` if there are none."""
        ordered = sorted(samples)
        size = len(ordered)
        if size == 0:
            raise ValueError("no latency samples")
        return cls(
            average=sum(ordered) / size,
            median=ordered[size // 2],
            p95=ordered[int(size * 0.95)],
            p99=ordered[int(size * 0.99)],
            sample_size=size,
        )


def format_statistics(stats: Optional[LatencyStats]) -> str:
    """Render ``stats`` as the report the benchmark prints."""
    if stats is None:
        return _NO_DATA
    return "\n".join(
        [
            "",
            "Emission Time Statistics (microseconds):",
            f"Average: {stats.average:g} microseconds",
            f"Median: {stats.median} microseconds",
            f"95th percentile: {stats.p95} microseconds",
            f"99th percentile: {stats.p99} microseconds",
            f"Sample size: {stats.sample_size} events",
        ]
    )


class EventBenchmarker:
    """Measures how long emitting the three demo events takes."""

    def __init__(
        self, scheduler: Optional[EventScheduler] = None, output: Optional[TextIO] = None
    ) -> None:
        self._scheduler = scheduler if scheduler is not None else default_scheduler()
        self._output = output
        self._latencies: List[int] = []

    def emit_test_events(self) -> None:
        """Emit one login, one message and one status event."""
        self._scheduler.emit(event_name(EventType.USER_LOGIN), "jack_smith")
        self._scheduler.emit(
            event_name(EventType.NEW_MESSAGE), "Hello, cpp20 coroutines world!"
        )
        self._scheduler.emit(event_name(EventType.SYSTEM_STATUS), 1)

    def run_benchmark(self, iterations: int = 1000) -> Optional[LatencyStats]:
        """Time ``iterations`` rounds of emission, print and return the summary."""
        out = _out(self._output)
        print(f"\nStarting benchmark with {iterations} iterations...", file=out)
        for _ in range(iterations):
            start = time.perf_counter_ns()
            self.emit_test_events()
            elapsed = time.perf_counter_ns() - start
            self._latencies.append(elapsed // 1000)
            time.sleep(_PAUSE)
        time.sleep(_PAUSE)
        stats = self.statistics()
        print(format_statistics(stats), file=out)
        return stats

    def statistics(self) -> Optional[LatencyStats]:
        """Summary of every emission timed so far, or ``None`` if there is none."""
        if not self._latencies:
            return None
        return LatencyStats.from_samples(self._latencies)


def run_executor_benchmark(
    executor: Any, name: str, num_tasks: int = 100000, output: Optional[TextIO] = None
) -> int:
    """Run ``num_tasks`` short tasks on ``executor`` and report the time taken.

    The executor is started before and stopped after. Returns the number of
    tasks that completed.
    """
    out = _out(output)
    print(f"\nTesting {name}...", file=out)
    executor.start()

    completed = 0
    lock = threading.Lock()

    def work() -> None:
        nonlocal completed
        time.sleep(_SIMULATED_WORK)
        with lock:
            completed += 1

    start = time.perf_counter()
    for _ in range(num_tasks):
        executor.schedule(work)

    while True:
        with lock:
            if completed >= num_tasks:
                break
        time.sleep(_POLL_INTERVAL)

    elapsed_ms = int((time.perf_counter() - start) * 1000)
    with lock:
        done = completed
    print(
        f"{name} completed {done} out of {num_tasks} tasks in {elapsed_ms}ms",
        file=out,
    )
    executor.stop()
    return done