import threading
import time

import pytest

from eventsched.work_stealing import (
    PrioritizedTask,
    Priority,
    WorkStealingConfig,
    WorkStealingExecutor,
)


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def make_config(**overrides):
    values = dict(
        thread_count=2,
        min_threads=1,
        tasks_per_thread_threshold=100,
        keep_alive=30.0,
    )
    values.update(overrides)
    return WorkStealingConfig(**values)


def test_integer_priorities_follow_source_order():
    order = []
    executor = WorkStealingExecutor(make_config(thread_count=1, min_threads=1))
    executor.schedule(lambda: order.append(2), 2)
    executor.schedule(lambda: order.append(1), 1)
    executor.schedule(lambda: order.append(0), 0)
    assert executor.pending_tasks == 3
    executor.start()
    executor.stop()
    assert order == [0, 1, 2]


def test_prioritized_task_calls_function():
    calls = []
    task = PrioritizedTask(lambda: calls.append("ran"), Priority.LOW)
    task()
    assert calls == ["ran"]
    assert task.priority is Priority.LOW


def test_prioritized_task_default_priority_is_normal():
    task = PrioritizedTask(lambda: None)
    assert task.priority is Priority.NORMAL


def test_config_rejects_bad_pool_size():
    with pytest.raises(ValueError):
        WorkStealingConfig(thread_count=1, min_threads=1, initial_task_pool_size=0)


def test_config_rejects_bad_thread_count():
    with pytest.raises(ValueError):
        WorkStealingConfig(thread_count=0, min_threads=0)


def test_tasks_run_by_priority():
    order = []
    executor = WorkStealingExecutor(make_config(thread_count=1, min_threads=1))
    executor.schedule(lambda: order.append("low"), Priority.LOW)
    executor.schedule(lambda: order.append("normal"), Priority.NORMAL)
    executor.schedule(lambda: order.append("high"), Priority.HIGH)
    assert executor.pending_tasks == 3
    executor.start()
    executor.stop()
    assert order == ["high", "normal", "low"]
    assert executor.pending_tasks == 0


def test_stop_drains_all_queued_tasks():
    done = []
    lock = threading.Lock()

    def work(i):
        with lock:
            done.append(i)

    with WorkStealingExecutor(make_config()) as executor:
        for i in range(200):
            executor.schedule(lambda i=i: work(i))
    assert sorted(done) == list(range(200))
    assert executor.active_threads == 0


def test_schedule_after_stop_is_ignored():
    executor = WorkStealingExecutor(make_config())
    executor.start()
    executor.stop()
    ran = []
    executor.schedule(lambda: ran.append(1))
    assert executor.pending_tasks == 0
    assert ran == []


def test_start_twice_raises():
    executor = WorkStealingExecutor(make_config())
    executor.start()
    try:
        with pytest.raises(RuntimeError):
            executor.start()
    finally:
        executor.stop()


def test_task_scheduled_from_worker_runs():
    finished = threading.Event()
    executor = WorkStealingExecutor(make_config())

    def outer():
        executor.schedule(finished.set, Priority.HIGH)

    with executor:
        executor.schedule(outer)
        assert finished.wait(5.0)
        assert wait_until(lambda: executor.pending_tasks == 0)
        assert executor.active_threads == 1
    assert executor.active_threads == 0


def test_local_task_runs_without_stealing():
    finished = threading.Event()
    executor = WorkStealingExecutor(make_config(enable_work_stealing=False))

    def outer():
        executor.schedule(finished.set)

    with executor:
        executor.schedule(outer)
        assert finished.wait(5.0)
        assert wait_until(lambda: executor.pending_tasks == 0)
        assert executor.active_threads == 1
    assert executor.active_threads == 0


def test_failing_task_does_not_kill_worker():
    finished = threading.Event()

    def boom():
        raise ValueError("boom")

    with WorkStealingExecutor(make_config(thread_count=1)) as executor:
        executor.schedule(boom)
        executor.schedule(finished.set)
        assert finished.wait(5.0)
        assert executor.active_threads == 1


def test_pool_grows_under_load_and_respects_maximum():
    release = threading.Event()
    executor = WorkStealingExecutor(
        make_config(thread_count=4, min_threads=1, tasks_per_thread_threshold=0)
    )
    executor.start()
    try:
        for _ in range(20):
            executor.schedule(lambda: release.wait(5.0))
        active = executor.active_threads
        assert 2 <= active <= 4
    finally:
        release.set()
        executor.stop()


def test_idle_workers_shrink_to_minimum():
    release = threading.Event()
    executor = WorkStealingExecutor(
        make_config(
            thread_count=4,
            min_threads=1,
            tasks_per_thread_threshold=0,
            keep_alive=0.05,
        )
    )
    executor.start()
    try:
        for _ in range(20):
            executor.schedule(lambda: release.wait(5.0))
        assert executor.active_threads > 1
        release.set()
        assert wait_until(lambda: executor.active_threads == 1)
    finally:
        release.set()
        executor.stop()


def test_task_pool_grows_when_backlog_passes_threshold():
    executor = WorkStealingExecutor(make_config(initial_task_pool_size=4))
    for _ in range(10):
        executor.schedule(lambda: None)
    assert executor.task_pool_size > 4
    assert executor.pending_tasks == 10
    executor.start()
    executor.stop()
    assert executor.pending_tasks == 0


def test_task_pool_unchanged_below_threshold():
    executor = WorkStealingExecutor(make_config(initial_task_pool_size=64))
    for _ in range(3):
        executor.schedule(lambda: None)
    assert executor.task_pool_size == 64
    executor.start()
    executor.stop()


def test_context_manager_starts_min_threads():
    with WorkStealingExecutor(make_config(thread_count=3, min_threads=2)) as executor:
        assert executor.active_threads == 2
    assert executor.active_threads == 0