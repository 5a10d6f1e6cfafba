"""Coroutine event scheduling with single-thread, pool, dynamic and work-stealing executors."""

__version__ = "0.1.0"

__all__ = [
    "benchmark",
    "cli",
    "events",
    "executor",
    "registry",
    "scheduler",
    "task_queue",
    "work_stealing",
]