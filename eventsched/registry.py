"""Registers the demo event handlers with a scheduler and keeps their tasks."""

from __future__ import annotations

from typing import List, Optional, TextIO, Tuple

from .events import handle_login_event, handle_message_event, handle_system_status_event
from .scheduler import EventScheduler, Task, default_scheduler

_HANDLERS = (handle_login_event, handle_message_event, handle_system_status_event)


class EventRegistry:
    """Starts the login, message and system-status handlers on a scheduler.

    The tasks are kept alive by the registry for as long as it exists.
    Handlers report to ``output``, or to standard output when it is ``None``.
    """

    def __init__(
        self, scheduler: Optional[EventScheduler] = None, output: Optional[TextIO] = None
    ) -> None:
        self._scheduler = scheduler if scheduler is not None else default_scheduler()
        self._output = output
        self._tasks: List[Task] = []

    @property
    def scheduler(self) -> EventScheduler:
        """The scheduler the handlers are registered with."""
        return self._scheduler

    def register_all_handlers(self) -> None:
        """Spawn one task for each demo handler."""
        for handler in _HANDLERS:
            coroutine = handler(self._scheduler, self._output)
            self._tasks.append(self._scheduler.spawn(coroutine))

    @property
    def tasks(self) -> Tuple[Task, ...]:
        """The tasks spawned so far, in registration order."""
        return tuple(self._tasks)