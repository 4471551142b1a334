"""In-process event bus.

Services announce what happened (a login, a client import, an application
review) by publishing a SystemEvent. Events go onto an asyncio queue that a
background worker drains, handing each one to the registered subscribers.
The audit logger is the only subscriber registered at startup.

Usage:
    from src.admin.events import publish

    await publish(
        EventType.CLIENTE_CREATED,
        actor_id=admin.email,
        actor_role="admin",
        data={"codigo_sn": cliente.codigo_sn},
        source_module="clientes.service",
    )
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]

_subscribers: list[EventHandler] = []
_type_subscribers: dict[EventType, list[EventHandler]] = {}
_queue: asyncio.Queue[SystemEvent] | None = None
_worker_task: asyncio.Task[None] | None = None


def subscribe(handler: EventHandler, event_types: list[EventType] | None = None) -> None:
    """Register an async handler, for every event or only for `event_types`."""
    if event_types is None:
        if handler not in _subscribers:
            _subscribers.append(handler)
        logger.info("Subscribed %s to all events", handler.__name__)
        return

    for et in event_types:
        handlers = _type_subscribers.setdefault(et, [])
        if handler not in handlers:
            handlers.append(handler)
    logger.info("Subscribed %s to %s", handler.__name__, ", ".join(t.value for t in event_types))


def clear_subscribers() -> None:
    """Drop every registered handler."""
    _subscribers.clear()
    _type_subscribers.clear()


async def emit(event: SystemEvent) -> None:
    """Queue an event for delivery; the caller never waits on subscribers."""
    global _queue
    if _queue is None:
        _queue = asyncio.Queue()
        _ensure_worker()

    await _queue.put(event)
    logger.debug("Event queued: %s (actor=%s)", event.event_type.value, event.actor_id)


async def publish(
    event_type: EventType,
    *,
    actor_id: str | None = None,
    actor_role: str | None = None,
    data: dict[str, Any] | None = None,
    source_module: str | None = None,
) -> SystemEvent:
    """Build a SystemEvent from its parts and emit it. Returns the event."""
    event = SystemEvent(
        event_type=event_type,
        actor_id=actor_id,
        actor_role=actor_role,
        data=data or {},
        source_module=source_module,
    )
    await emit(event)
    return event


def _ensure_worker() -> None:
    global _worker_task
    if _worker_task is None or _worker_task.done():
        _worker_task = asyncio.create_task(_event_worker())
        logger.info("Event worker started")


async def _event_worker() -> None:
    """Drain the queue forever; a failing delivery never stops the loop."""
    while _queue is not None:
        try:
            event = await _queue.get()
        except asyncio.CancelledError:
            logger.info("Event worker shutting down")
            break
        try:
            await deliver(event)
        except Exception:
            logger.exception("Error delivering %s", event.event_type.value)
        finally:
            _queue.task_done()


async def deliver(event: SystemEvent) -> None:
    """Hand one event to the global and type-specific handlers concurrently."""
    handlers = list(_subscribers) + _type_subscribers.get(event.event_type, [])
    if not handlers:
        return

    results = await asyncio.gather(*(h(event) for h in handlers), return_exceptions=True)
    for handler, result in zip(handlers, results, strict=True):
        if isinstance(result, Exception):
            logger.error(
                "Handler %s failed for %s: %s", handler.__name__, event.event_type.value, result
            )


async def start_event_system() -> None:
    """Create the queue and worker. Called from the app lifespan."""
    global _queue
    _queue = asyncio.Queue()
    _ensure_worker()
    logger.info(
        "Event system started with %d global + %d typed subscribers",
        len(_subscribers),
        sum(len(v) for v in _type_subscribers.values()),
    )


async def stop_event_system() -> None:
    """Deliver what is still queued, then cancel the worker."""
    global _worker_task, _queue

    if _queue is not None:
        await _queue.join()

    if _worker_task is not None and not _worker_task.done():
        _worker_task.cancel()
        try:
            await _worker_task
        except asyncio.CancelledError:
            pass

    _worker_task = None
    _queue = None
    logger.info("Event system stopped")
