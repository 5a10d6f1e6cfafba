"""A prioritised thread pool whose workers steal tasks from each other."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .executor import (
    ExecutorConfig,
    _EMPTY,
    _join_all,
    _run_task,
    _try_pop,
)
from .task_queue import DEFAULT_POOL_SIZE, TaskQueue

logger = logging.getLogger(__name__)

TaskFn = Callable[[], Any]

_RESIZE_THRESHOLD = 0.8


class Priority(enum.IntEnum):
    """Task priority; lower values are taken from the global queues first."""

    HIGH = 0
    NORMAL = 1
    LOW = 2


@dataclass
class PrioritizedTask:
    """A callable paired with the priority it was scheduled at."""

    func: TaskFn
    priority: Priority = Priority.NORMAL

    def __call__(self) -> None:
        self.func()


@dataclass
class WorkStealingConfig(ExecutorConfig):
    """Settings for a ``WorkStealingExecutor``."""

    enable_work_stealing: bool = True
    initial_task_pool_size: int = DEFAULT_POOL_SIZE

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.initial_task_pool_size < 1:
            raise ValueError("initial_task_pool_size must be at least 1")


class WorkStealingExecutor:
    """A dynamic thread pool with priority queues and work stealing.

    Tasks scheduled from outside the pool go to one global queue per
    priority. Tasks scheduled from a worker go to that worker's local queue
    when work stealing is enabled. A worker looks in its own queue first,
    then the global queues from high to low priority, then steals from the
    other workers' local queues.

    Workers start with ``start``. The pool grows under load up to
    ``thread_count`` and idle workers above ``min_threads`` exit after
    ``keep_alive`` seconds. ``stop`` lets the workers drain every queued task
    and ignores tasks scheduled afterwards.
    """

    def __init__(self, config: Optional[WorkStealingConfig] = None) -> None:
        self._config = config if config is not None else WorkStealingConfig()
        self._cond = threading.Condition()
        self._stopped = False
        self._started = False
        self._threads: List[threading.Thread] = []
        self._local_queues: List[TaskQueue[PrioritizedTask]] = []
        self._active = 0
        self._pending = 0
        self._task_pool_size = self._config.initial_task_pool_size
        queue_size = max(
            self._config.thread_count * self._config.tasks_per_thread_threshold,
            DEFAULT_POOL_SIZE,
        )
        self._local_queue_size = max(1, queue_size // self._config.thread_count)
        self._global_queues: Dict[Priority, TaskQueue[PrioritizedTask]] = {
            priority: TaskQueue(queue_size) for priority in Priority
        }
        self._worker = threading.local()

    @property
    def pending_tasks(self) -> int:
        """Number of tasks queued and not yet taken by a worker."""
        with self._cond:
            return self._pending

    @property
    def active_threads(self) -> int:
        """Number of workers currently alive."""
        with self._cond:
            return self._active

    @property
    def task_pool_size(self) -> int:
        """Current slot budget that triggers queue pool growth."""
        with self._cond:
            return self._task_pool_size

    def schedule(self, task: TaskFn, priority: Priority = Priority.NORMAL) -> None:
        """Queue ``task`` at ``priority``; ignored once the executor is stopped."""
        if self._stopped:
            return
        item = PrioritizedTask(task, Priority(priority))
        with self._cond:
            self._check_task_queue_resize()
            worker_id = self._current_worker_id()
            if (
                self._config.enable_work_stealing
                and worker_id is not None
                and worker_id < len(self._local_queues)
            ):
                self._local_queues[worker_id].push(item)
            else:
                self._global_queues[item.priority].push(item)
            self._pending += 1
            if self._should_scale_up():
                self._add_thread()
            self._cond.notify()

    def start(self) -> None:
        """Start the initial ``min_threads`` workers."""
        with self._cond:
            if self._started:
                raise RuntimeError("executor already started")
            self._started = True
            for _ in range(self._config.min_threads):
                self._spawn_worker()

    def stop(self) -> None:
        """Let workers drain the queues, then stop and join them."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
            threads = list(self._threads)
            self._threads.clear()
        _join_all(threads)

    def __enter__(self) -> "WorkStealingExecutor":
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()

    def _current_worker_id(self) -> Optional[int]:
        return getattr(self._worker, "worker_id", None)

    def _check_task_queue_resize(self) -> None:
        if self._pending <= self._task_pool_size * _RESIZE_THRESHOLD:
            return
        new_size = self._task_pool_size * 2
        for queue in self._global_queues.values():
            queue.resize_pool(new_size)
        if self._config.enable_work_stealing and self._local_queues:
            per_queue = max(1, new_size // len(self._local_queues))
            for queue in self._local_queues:
                queue.resize_pool(per_queue)
        self._task_pool_size = new_size

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
        worker_id = len(self._local_queues)
        self._local_queues.append(TaskQueue(self._local_queue_size))
        thread = threading.Thread(
            target=self._run,
            args=(worker_id,),
            name=f"stealing-worker-{worker_id}",
            daemon=True,
        )
        thread.start()
        self._threads.append(thread)
        self._active += 1

    def _run(self, worker_id: int) -> None:
        self._worker.worker_id = worker_id
        while True:
            task = self._wait_for_task()
            if task is _EMPTY:
                return
            _run_task(task)

    def _take(self, queue: TaskQueue) -> Any:
        task = _try_pop(queue)
        if task is not _EMPTY:
            self._pending -= 1
        return task

    def _try_steal_task(self) -> Any:
        if not self._config.enable_work_stealing or not self._local_queues:
            return _EMPTY
        count = len(self._local_queues)
        own = self._current_worker_id()
        start = 0 if own is None else (own + 1) % count
        for offset in range(count):
            task = self._take(self._local_queues[(start + offset) % count])
            if task is not _EMPTY:
                return task
        return _EMPTY

    def _next_task(self) -> Any:
        worker_id = self._current_worker_id()
        if (
            self._config.enable_work_stealing
            and worker_id is not None
            and worker_id < len(self._local_queues)
        ):
            task = self._take(self._local_queues[worker_id])
            if task is not _EMPTY:
                return task
        for queue in self._global_queues.values():
            task = self._take(queue)
            if task is not _EMPTY:
                return task
        return self._try_steal_task()

    def _wait_for_task(self) -> Any:
        task: Any = _EMPTY

        def ready() -> bool:
            nonlocal task
            task = self._next_task()
            return self._stopped or task is not _EMPTY

        with self._cond:
            while True:
                if self._cond.wait_for(ready, timeout=self._config.keep_alive):
                    if task is not _EMPTY:
                        return task
                    self._active -= 1
                    return _EMPTY
                if self._stopped or self._active > self._config.min_threads:
                    self._active -= 1
                    return _EMPTY