"""Executors that run callables on background worker threads."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from .task_queue import TaskQueue

logger = logging.getLogger(__name__)

TaskFn = Callable[[], Any]

_EMPTY = object()


def _cpu_count() -> int:
    return os.cpu_count() or 1


def _try_pop(queue: TaskQueue) -> Any:
    try:
        return queue.pop()
    except IndexError:
        return _EMPTY


def _run_task(task: TaskFn) -> None:
    try:
        task()
    except Exception:
        logger.exception("Task exception")


def _join_all(threads: List[threading.Thread]) -> None:
    current = threading.current_thread()
    for thread in threads:
        if thread is not current and thread.is_alive():
            thread.join()


class SingleThreadExecutor:
    """Runs tasks one after another on a single worker thread.

    Tasks may be scheduled before ``start``. ``stop`` lets the worker finish
    every task already queued before it exits.
    """

    def __init__(self) -> None:
        self._tasks: TaskQueue[TaskFn] = TaskQueue()
        self._cond = threading.Condition()
        self._stopped = False
        self._thread: Optional[threading.Thread] = None

    def schedule(self, task: TaskFn) -> None:
        """Queue ``task`` to run on the worker thread."""
        with self._cond:
            self._tasks.push(task)
            self._cond.notify()

    def start(self) -> None:
        """Start the worker thread."""
        with self._cond:
            if self._thread is not None:
                raise RuntimeError("executor already started")
            self._thread = threading.Thread(
                target=self._run, name="executor-worker", daemon=True
            )
            self._thread.start()

    def stop(self) -> None:
        """Drain the queue, then stop and join the worker thread."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
            thread = self._thread
        if thread is not None:
            _join_all([thread])

    def __enter__(self) -> "SingleThreadExecutor":
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()

    def _run(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._stopped or bool(self._tasks))
                if self._stopped and not self._tasks:
                    return
                task = self._tasks.pop()
            _run_task(task)


class PoolExecutor:
    """Runs tasks on a fixed pool of worker threads started at construction.

    Once stopped, newly scheduled tasks are ignored and queued tasks that
    have not started are discarded.
    """

    def __init__(self, thread_count: Optional[int] = None) -> None:
        if thread_count is None:
            thread_count = _cpu_count()
        if thread_count < 1:
            raise ValueError(f"thread count must be at least 1, got {thread_count}")
        self._tasks: TaskQueue[TaskFn] = TaskQueue()
        self._cond = threading.Condition()
        self._stopped = False
        self._threads = [
            threading.Thread(target=self._run, name=f"pool-worker-{i}", daemon=True)
            for i in range(thread_count)
        ]
        self.start()

    @property
    def thread_count(self) -> int:
        """Number of worker threads still owned by the pool."""
        with self._cond:
            return len(self._threads)

    def schedule(self, task: TaskFn) -> None:
        """Queue ``task``; ignored once the executor is stopped."""
        if self._stopped:
            return
        with self._cond:
            self._tasks.push(task)
            self._cond.notify()

    def start(self) -> None:
        """Start any worker thread not yet running; construction calls this."""
        with self._cond:
            if self._stopped:
                raise RuntimeError("executor has been stopped")
            for thread in self._threads:
                if thread.ident is None:
                    thread.start()

    def stop(self) -> None:
        """Stop every worker and join them."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
            threads = list(self._threads)
            self._threads.clear()
        _join_all(threads)

    def __enter__(self) -> "PoolExecutor":
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()

    def _run(self) -> None:
        while True:
            task: Any = _EMPTY

            def ready() -> bool:
                nonlocal task
                task = _try_pop(self._tasks)
                return self._stopped or task is not _EMPTY

            with self._cond:
                self._cond.wait_for(ready)
                if self._stopped:
                    return
            _run_task(task)


@dataclass
class ExecutorConfig:
    """Sizing and scaling settings for a ``DynamicExecutor``."""

    thread_count: int = field(default_factory=_cpu_count)
    min_threads: int = field(default_factory=lambda: _cpu_count() // 2)
    tasks_per_thread_threshold: int = 3
    keep_alive: float = 60.0

    def __post_init__(self) -> None:
        if self.thread_count < 1:
            raise ValueError("thread_count must be at least 1")
        if self.min_threads < 0:
            raise ValueError("min_threads must not be negative")
        if self.tasks_per_thread_threshold < 0:
            raise ValueError("tasks_per_thread_threshold must not be negative")
        if self.keep_alive <= 0:
            raise ValueError("keep_alive must be positive")


class DynamicExecutor:
    """A thread pool that grows under load and shrinks when idle.

    It starts with ``min_threads`` workers. When the number of pending tasks
    per thread exceeds the configured threshold, another worker is added, up
    to ``thread_count``. A worker idle for ``keep_alive`` seconds exits while
    more than ``min_threads`` are active.
    """

    def __init__(self, config: Optional[ExecutorConfig] = None) -> None:
        self._config = config if config is not None else ExecutorConfig()
        self._tasks: TaskQueue[TaskFn] = TaskQueue()
        self._cond = threading.Condition()
        self._stopped = False
        self._threads: List[threading.Thread] = []
        self._active = 0
        self._pending = 0
        self.start()

    @property
    def active_threads(self) -> int:
        """Number of workers currently alive."""
        with self._cond:
            return self._active

    @property
    def pending_tasks(self) -> int:
        """Number of tasks queued and not yet taken by a worker."""
        with self._cond:
            return self._pending

    def schedule(self, task: TaskFn) -> None:
        """Queue ``task``, adding a worker if the pool is overloaded."""
        if self._stopped:
            return
        with self._cond:
            self._tasks.push(task)
            self._pending += 1
            if self._should_scale_up():
                self._add_thread()
            self._cond.notify()

    def start(self) -> None:
        """Bring the pool up to ``min_threads`` workers; construction calls this."""
        with self._cond:
            if self._stopped:
                raise RuntimeError("executor has been stopped")
            while self._active < self._config.min_threads:
                self._spawn_worker()

    def stop(self) -> None:
        """Stop every worker and join them."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
            threads = list(self._threads)
            self._threads.clear()
        _join_all(threads)

    def __enter__(self) -> "DynamicExecutor":
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()

    def _should_scale_up(self) -> bool:
        tasks_per_thread = self._pending // (self._active + 1)
        return (
            tasks_per_thread > self._config.tasks_per_thread_threshold
            and self._active < self._config.thread_count
            and self._pending > 0
        )

    def _add_thread(self) -> None:
        if self._active >= self._config.thread_count:
            return
        try:
            self._spawn_worker()
        except RuntimeError:
            logger.exception("Failed to create thread")

    def _spawn_worker(self) -> None:
        thread = threading.Thread(
            target=self._run,
            name=f"dynamic-worker-{len(self._threads)}",
            daemon=True,
        )
        thread.start()
        self._threads.append(thread)
        self._active += 1

    def _run(self) -> None:
        while True:
            task = self._wait_for_task()
            if task is _EMPTY:
                return
            _run_task(task)

    def _wait_for_task(self) -> Any:
        task: Any = _EMPTY

        def ready() -> bool:
            nonlocal task
            task = _try_pop(self._tasks)
            if task is not _EMPTY:
                self._pending -= 1
            return self._stopped or task is not _EMPTY

        with self._cond:
            while True:
                if self._cond.wait_for(ready, timeout=self._config.keep_alive):
                    if self._stopped:
                        self._active -= 1
                        return _EMPTY
                    return task
                if self._active > self._config.min_threads:
                    self._active -= 1
                    return _EMPTY