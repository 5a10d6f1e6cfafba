import asyncio
import threading

import pytest

from eventsched.executor import SingleThreadExecutor
from eventsched.scheduler import (
    EventNotFoundError,
    EventScheduler,
    ExecutorEventScheduler,
    Task,
    await_event,
    default_scheduler,
)


def _collector(scheduler, name, results):
    async def handler():
        results.append(await scheduler.wait_for(name))

    return handler()


def test_task_runs_until_first_await():
    sched = EventScheduler()
    started = []

    async def handler():
        started.append(True)
        await sched.wait_for("a")
        started.append(False)

    task = sched.spawn(handler())
    assert started == [True]
    assert task.done() is False


def test_handler_receives_emitted_data():
    sched = EventScheduler()
    results = []
    task = sched.spawn(_collector(sched, "user_login", results))
    sched.emit("user_login", "john_doe")
    assert results == ["john_doe"]
    assert task.done() is True


def test_all_handlers_for_event_are_resumed_in_order():
    sched = EventScheduler()
    results = []
    sched.spawn(_collector(sched, "a", results))
    sched.spawn(_collector(sched, "a", results))
    sched.emit("a", 1)
    assert results == [1, 1]


def test_other_events_do_not_resume_handler():
    sched = EventScheduler()
    results = []
    sched.spawn(_collector(sched, "a", results))
    sched.emit("b", "ignored")
    assert results == []
    sched.emit("a", "seen")
    assert results == ["seen"]


def test_emit_without_handlers_leaves_no_data():
    sched = EventScheduler()
    sched.emit("a", 1)
    results = []
    sched.spawn(_collector(sched, "a", results))
    assert results == []


def test_stale_registration_raises_event_not_found():
    sched = EventScheduler()
    seen = []

    async def handler():
        seen.append(await sched.wait_for("a"))
        seen.append(await sched.wait_for("b"))

    sched.spawn(handler())
    sched.emit("a", 1)
    assert seen == [1]
    with pytest.raises(EventNotFoundError):
        sched.emit("a", 2)


def test_event_not_found_is_caught_as_lookup_error():
    sched = EventScheduler()

    async def handler():
        await sched.wait_for("a")
        await sched.wait_for("b")

    sched.spawn(handler())
    sched.emit("a", 1)
    with pytest.raises(LookupError):
        sched.emit("a", 2)


def test_closed_task_is_not_resumed():
    sched = EventScheduler()
    results = []
    task = sched.spawn(_collector(sched, "a", results))
    task.close()
    sched.emit("a", 1)
    assert task.done() is True
    assert results == []


def test_awaiting_foreign_awaitable_raises_type_error():
    async def handler():
        await asyncio.sleep(0)

    with pytest.raises(TypeError):
        Task(handler())


def test_exception_in_handler_propagates_from_emit():
    sched = EventScheduler()

    async def handler():
        await sched.wait_for("a")
        raise ValueError("boom")

    task = sched.spawn(handler())
    with pytest.raises(ValueError, match="boom"):
        sched.emit("a", 1)
    assert task.done() is True


def test_executor_scheduler_exposes_executor():
    executor = SingleThreadExecutor()
    sched = ExecutorEventScheduler(executor)
    assert sched.executor is executor


def test_executor_scheduler_resumes_on_worker_thread():
    with SingleThreadExecutor() as executor:
        sched = ExecutorEventScheduler(executor)
        received = []
        threads = []
        finished = threading.Event()

        async def handler():
            await sched.switch_to_executor()
            threads.append(threading.current_thread())
            received.append(await sched.wait_for("new_message"))
            finished.set()

        sched.spawn(handler())
        registered = threading.Event()
        executor.schedule(registered.set)
        assert registered.wait(5)
        sched.emit("new_message", "Hello, World!")
        assert finished.wait(5)
    assert received == ["Hello, World!"]
    assert threads[0] is not threading.main_thread()


def test_executor_scheduler_delivers_to_every_handler():
    with SingleThreadExecutor() as executor:
        sched = ExecutorEventScheduler(executor)
        received = []
        done = threading.Event()

        async def handler():
            await sched.switch_to_executor()
            received.append(await sched.wait_for("system_status"))
            if len(received) == 2:
                done.set()

        sched.spawn(handler())
        sched.spawn(handler())
        registered = threading.Event()
        executor.schedule(registered.set)
        assert registered.wait(5)
        sched.emit("system_status", 1)
        assert done.wait(5)
    assert received == [1, 1]


def test_default_scheduler_is_shared():
    first = default_scheduler()
    assert default_scheduler() is first
    assert isinstance(first, ExecutorEventScheduler)


def test_await_event_uses_given_scheduler():
    sched = EventScheduler()
    results = []
    awaiter = await_event("a", sched)

    async def handler():
        results.append(await awaiter)

    task = sched.spawn(handler())
    assert results == []
    sched.emit("a", "data")
    assert results == ["data"]
    assert task.done() is True