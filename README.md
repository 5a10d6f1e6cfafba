# eventsched

Event scheduling on Python coroutines. A handler is an `async` function that
suspends on an event name; `emit(name, data)` resumes it with the emitted data,
either inline or on a worker thread of an executor.

## Install

```
pip install .
pip install ".[test]"   # with the test requirements
```

## Handling events

```python
from eventsched.scheduler import EventScheduler

scheduler = EventScheduler()

async def on_login():
    user = await scheduler.wait_for("user_login")
    print("User logged in:", user)

task = scheduler.spawn(on_login())
scheduler.emit("user_login", "john_doe")   # prints "User logged in: john_doe"
assert task.done()
```

`spawn` wraps the coroutine in a `Task`, which runs it at once up to its first
suspension. `EventScheduler` resumes waiting tasks synchronously inside `emit`,
in the order they registered, and keeps them registered afterwards. The data of
an event is available only while its handlers are being resumed; a task that
resumes without it gets an `EventNotFoundError`. `Task.close()` ends a task that
is still suspended.

`await_event(name, scheduler)` builds the same awaitable as
`scheduler.wait_for(name)`; without a scheduler it uses `default_scheduler()`,
a shared `ExecutorEventScheduler` whose executor is not started until you call
`default_scheduler().executor.start()`.

## Running handlers on an executor

`ExecutorEventScheduler(executor, one_shot)` hands each resumption to an
executor (a `SingleThreadExecutor` by default). A handler can move onto the
executor first with `await scheduler.switch_to_executor()`. With
`one_shot=True` (the default) the tasks waiting for an event are unregistered
when it is emitted, so each registration is resumed at most once.

Executors, all usable as context managers:

- `eventsched.executor.SingleThreadExecutor`: one worker thread, started by
  `start()`; `stop()` runs every queued task before returning.
- `eventsched.executor.PoolExecutor(thread_count)`: a fixed pool started on
  construction (one thread per CPU by default). After `stop()` new tasks are
  ignored and queued tasks that have not started are dropped.
- `eventsched.executor.DynamicExecutor(config)`: starts with
  `ExecutorConfig.min_threads` workers, adds one when pending tasks per thread
  exceed `tasks_per_thread_threshold` (up to `thread_count`), and retires idle
  workers above the minimum after `keep_alive` seconds.
- `eventsched.work_stealing.WorkStealingExecutor(config)`: three global
  priority queues (`Priority.HIGH`, `NORMAL`, `LOW`), a local queue per worker
  for tasks scheduled from that worker, and stealing between workers
  (`WorkStealingConfig`). Workers start with `start()`; `stop()` lets them
  drain the queues.

```python
from eventsched.executor import SingleThreadExecutor

with SingleThreadExecutor() as executor:
    executor.schedule(lambda: print("ran on a worker"))
```

Exceptions raised by a task are logged and do not stop the worker.
`eventsched.task_queue.TaskQueue` is the thread-safe FIFO queue the executors
use.

## Ready-made handlers and benchmarks

`eventsched.events` defines `EventType`, `event_name()` and three handlers
(`handle_login_event`, `handle_message_event`, `handle_system_status_event`)
for the `user_login`, `new_message` and `system_status` events; each prints
what it received and how long it waited. `eventsched.registry.EventRegistry`
spawns all three on a scheduler and keeps their tasks.

`eventsched.benchmark.EventBenchmarker` times rounds of emitting the three
events and summarises the times as `LatencyStats` (average, median, 95th and
99th percentile, in microseconds), printed by `format_statistics`.
`run_executor_benchmark(executor, name, num_tasks)` runs a batch of short tasks
on an executor and reports how long they took.

## Command line

```
eventsched [basic|executor|benchmark] [--iterations N] [--tasks N]
```

- `basic`: emits the three sample events to handlers on an inline scheduler.
- `executor`: the same, with handlers resumed on a single worker thread.
- `benchmark` (default): runs `--tasks` tasks (default 100000) on a
  work-stealing executor, then times `--iterations` rounds (default 1000) of
  event emission and prints the latency statistics.

## What it does not do

Tasks are driven by the package's own awaiters only: they are not `asyncio`
tasks, and awaiting anything other than `wait_for`, `await_event` or
`switch_to_executor` inside a handler raises `TypeError`. Events are not
queued for handlers that register later, and nothing is stored beyond the life
of the process.