"""The demo event types and the handlers that report them."""

from __future__ import annotations

import enum
import sys
import time
from typing import Any, Optional, TextIO

from .scheduler import EventScheduler, ExecutorEventScheduler, default_scheduler


class EventType(enum.Enum):
    """The kinds of event the demo handlers listen for."""

    USER_LOGIN = 0
    NEW_MESSAGE = 1
    SYSTEM_STATUS = 2


_EVENT_NAMES = {
    EventType.USER_LOGIN: "user_login",
    EventType.NEW_MESSAGE: "new_message",
    EventType.SYSTEM_STATUS: "system_status",
}


def event_name(event_type: Any) -> str:
    """Return the name under which events of ``event_type`` are emitted."""
    try:
        return _EVENT_NAMES[EventType(event_type)]
    except (ValueError, KeyError):
        raise ValueError(f"Unknown event type: {event_type!r}") from None


async def _report(
    scheduler: Optional[EventScheduler],
    output: Optional[TextIO],
    event_type: EventType,
    label: str,
) -> Any:
    if scheduler is None:
        scheduler = default_scheduler()
    if isinstance(scheduler, ExecutorEventScheduler):
        await scheduler.switch_to_executor()
    start = time.perf_counter()
    data = await scheduler.wait_for(event_name(event_type))
    latency = int((time.perf_counter() - start) * 1_000_000)
    print(
        f"{label}: {data} (Latency: {latency} microseconds)",
        file=output if output is not None else sys.stdout,
    )
    return data


async def handle_login_event(
    scheduler: Optional[EventScheduler] = None, output: Optional[TextIO] = None
) -> Any:
    """Wait for a user login and report the user name."""
    return await _report(scheduler, output, EventType.USER_LOGIN, "User logged in")


async def handle_message_event(
    scheduler: Optional[EventScheduler] = None, output: Optional[TextIO] = None
) -> Any:
    """Wait for a new message and report it."""
    return await _report(
        scheduler, output, EventType.NEW_MESSAGE, "New message received"
    )


async def handle_system_status_event(
    scheduler: Optional[EventScheduler] = None, output: Optional[TextIO] = None
) -> Any:
    """Wait for a system status change and report the new status."""
    return await _report(
        scheduler, output, EventType.SYSTEM_STATUS, "System status changed"
    )