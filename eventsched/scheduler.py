"""Coroutine-driven event scheduler.

Handlers are ``async`` functions that await events by name. A ``Task``
drives such a coroutine by hand: it starts running at once and stops at each
awaiter, which decides when the task is resumed. ``EventScheduler`` resumes
waiting tasks synchronously inside ``emit``. ``ExecutorEventScheduler``
hands each resumption to an executor.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Callable, Coroutine, Deque, Dict, Generator, List, Optional, Tuple

from .executor import SingleThreadExecutor

logger = logging.getLogger(__name__)


class EventNotFoundError(LookupError):
    """Raised when a task resumes on an event whose data is not available."""


class Task:
    """Drives a coroutine that awaits this module's awaiters.

    The coroutine runs up to its first suspension as soon as the task is
    created. Exceptions raised by the coroutine end the task and propagate
    to whoever resumed it.
    """

    def __init__(self, coroutine: Coroutine[Any, Any, Any]) -> None:
        self._coro = coroutine
        self._lock = threading.RLock()
        self._done = False
        self._step()

    def done(self) -> bool:
        """Return whether the coroutine has finished or been closed."""
        return self._done

    def close(self) -> None:
        """Finish the task, closing its coroutine if still suspended."""
        with self._lock:
            if not self._done:
                self._done = True
                self._coro.close()

    def _step(self) -> None:
        with self._lock:
            if self._done:
                return
            try:
                awaiter = self._coro.send(None)
            except StopIteration:
                self._done = True
                return
            except BaseException:
                self._done = True
                raise
        suspend = getattr(awaiter, "_suspend", None)
        if suspend is None:
            self.close()
            raise TypeError(f"a scheduler task cannot await {awaiter!r}")
        suspend(self)

    def __repr__(self) -> str:
        state = "done" if self._done else "pending"
        return f"<Task {state}>"


class EventAwaiter:
    """Suspends a task until the named event is emitted, yielding its data."""

    def __init__(self, scheduler: "EventScheduler", event_name: str) -> None:
        self._scheduler = scheduler
        self._event_name = event_name

    def __await__(self) -> Generator[Any, None, Any]:
        yield self
        return self._scheduler._get_event_data(self._event_name)

    def _suspend(self, task: Task) -> None:
        self._scheduler.register_handler(self._event_name, task)


class ExecutorAwaiter:
    """Suspends a task and resumes it on the given executor."""

    def __init__(self, executor: Any) -> None:
        self._executor = executor

    def __await__(self) -> Generator[Any, None, None]:
        yield self

    def _suspend(self, task: Task) -> None:
        self._executor.schedule(task._step)


class EventScheduler:
    """Delivers emitted events to the tasks waiting for them.

    Waiting tasks are resumed synchronously, in registration order, from
    within ``emit``. Registrations persist: a task stays registered for an
    event after it has been resumed by it.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._handlers: Dict[str, List[Task]] = {}
        self._events: Deque[Tuple[str, Any]] = deque()
        self._event_data: Dict[str, Any] = {}

    def register_handler(self, event_name: str, task: Task) -> None:
        """Register ``task`` to be resumed when ``event_name`` is emitted."""
        logger.debug("Registering handler for: %s", event_name)
        with self._lock:
            handlers = self._handlers.setdefault(event_name, [])
            if task not in handlers:
                handlers.append(task)

    def emit(self, event_name: str, data: Any) -> None:
        """Emit ``event_name`` carrying ``data`` and process pending events."""
        with self._lock:
            self._events.append((event_name, data))
        self._process_events()

    def wait_for(self, event_name: str) -> EventAwaiter:
        """Return an awaitable that yields the data of the next ``event_name``."""
        return EventAwaiter(self, event_name)

    def spawn(self, coroutine: Coroutine[Any, Any, Any]) -> Task:
        """Start running ``coroutine`` as a task."""
        return Task(coroutine)

    def _get_event_data(self, event_name: str) -> Any:
        with self._lock:
            try:
                return self._event_data[event_name]
            except KeyError:
                raise EventNotFoundError(
                    f"Event data not found: {event_name}"
                ) from None

    def _take_handlers(self, event_name: str) -> List[Task]:
        return list(self._handlers.get(event_name, ()))

    def _process_events(self) -> None:
        while True:
            with self._lock:
                if not self._events:
                    return
                event_name, data = self._events.popleft()
                self._event_data[event_name] = data
                handlers = self._take_handlers(event_name)
            self._dispatch(event_name, handlers)

    def _dispatch(self, event_name: str, handlers: List[Task]) -> None:
        try:
            for task in handlers:
                task._step()
        finally:
            with self._lock:
                self._event_data.pop(event_name, None)


class ExecutorEventScheduler(EventScheduler):
    """An event scheduler that resumes waiting tasks on an executor.

    With ``one_shot`` set, the tasks waiting for an event are unregistered
    when it is emitted, so each registration is resumed at most once. The
    event's data is kept until every resumed task has run.
    """

    def __init__(self, executor: Any = None, one_shot: bool = True) -> None:
        super().__init__()
        self._executor = executor if executor is not None else SingleThreadExecutor()
        self._one_shot = one_shot

    @property
    def executor(self) -> Any:
        """The executor that runs resumed tasks."""
        return self._executor

    def switch_to_executor(self) -> ExecutorAwaiter:
        """Return an awaitable that moves the awaiting task onto the executor."""
        return ExecutorAwaiter(self._executor)

    def _take_handlers(self, event_name: str) -> List[Task]:
        if self._one_shot:
            return self._handlers.pop(event_name, [])
        return super()._take_handlers(event_name)

    def _dispatch(self, event_name: str, handlers: List[Task]) -> None:
        if not handlers:
            with self._lock:
                self._event_data.pop(event_name, None)
            return

        remaining = len(handlers)

        def resume(task: Task) -> Callable[[], None]:
            def run() -> None:
                nonlocal remaining
                try:
                    task._step()
                finally:
                    with self._lock:
                        remaining -= 1
                        if remaining == 0:
                            self._event_data.pop(event_name, None)

            return run

        for task in handlers:
            self._executor.schedule(resume(task))


_default: Optional[ExecutorEventScheduler] = None
_default_lock = threading.Lock()


def default_scheduler() -> ExecutorEventScheduler:
    """Return the process-wide scheduler, creating it on first use.

    Its executor is not started; call ``default_scheduler().executor.start()``.
    """
    global _default
    with _default_lock:
        if _default is None:
            _default = ExecutorEventScheduler()
        return _default


def await_event(event_name: str, scheduler: Optional[EventScheduler] = None) -> EventAwaiter:
    """Return an awaiter for ``event_name`` on ``scheduler`` or the default one."""
    if scheduler is None:
        scheduler = default_scheduler()
    return scheduler.wait_for(event_name)