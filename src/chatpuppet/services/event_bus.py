"""Typed publish/subscribe over the closed puppet event vocabulary."""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, TypeVar, overload

from chatpuppet.errors import EventPayloadError, PuppetError, UnknownEventError
from chatpuppet.models.events import (
    EVENT_MODELS,
    ErrorEvent,
    EventRecord,
    PuppetEvent,
    build_record,
    resolve_kind,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=EventRecord)

Handler = Callable[[Any], Any]


@dataclass(eq=False)
class _Listener:
    handler: Handler
    once: bool = False


class EventBus:
    """Synchronous, ordered event delivery.

    Handlers receive the payload model of their kind. A handler that raises
    never breaks ``emit``: the failure is logged and re-published as an
    ``error`` event. Coroutine handlers are scheduled on the running loop and
    report failures the same way.

    Taps are internal wiring owned by whoever built the bus. They run before
    listeners, report failures the same way, and are not counted, removed or
    listed by the public listener methods.
    """

    def __init__(self, name: str = "Puppet") -> None:
        self.name = name
        self._listeners: dict[PuppetEvent, list[_Listener]] = {kind: [] for kind in PuppetEvent}
        self._taps: dict[PuppetEvent, list[Handler]] = {kind: [] for kind in PuppetEvent}
        self._tasks: set[asyncio.Future] = set()

    # ── Subscription ───────────────────────────────────────

    @overload
    def on(self, event: type[E], handler: Callable[[E], Any]) -> None: ...

    @overload
    def on(self, event: PuppetEvent | str, handler: Handler) -> None: ...

    def on(self, event, handler) -> None:
        self._add(event, handler, once=False)

    @overload
    def once(self, event: type[E], handler: Callable[[E], Any]) -> None: ...

    @overload
    def once(self, event: PuppetEvent | str, handler: Handler) -> None: ...

    def once(self, event, handler) -> None:
        self._add(event, handler, once=True)

    def off(self, event: PuppetEvent | str | type[EventRecord], handler: Handler) -> bool:
        """Remove the earliest registration of ``handler``. Returns whether one was found."""
        listeners = self._listeners[resolve_kind(event)]
        for i, listener in enumerate(listeners):
            if listener.handler == handler:
                del listeners[i]
                return True
        return False

    def remove_all_listeners(self, event: PuppetEvent | str | type[EventRecord] | None = None) -> None:
        kinds = list(PuppetEvent) if event is None else [resolve_kind(event)]
        for kind in kinds:
            self._listeners[kind].clear()

    def listener_count(self, event: PuppetEvent | str | type[EventRecord]) -> int:
        return len(self._listeners[resolve_kind(event)])

    def tap(self, event: PuppetEvent | str | type[EventRecord], handler: Handler) -> None:
        kind = resolve_kind(event)
        if not callable(handler):
            raise TypeError(f"Tap for {kind.value!r} must be callable, got {handler!r}")
        self._taps[kind].append(handler)

    def _add(self, event: Any, handler: Any, once: bool) -> None:
        kind = resolve_kind(event)
        if not callable(handler):
            raise TypeError(f"Handler for {kind.value!r} must be callable, got {handler!r}")
        self._listeners[kind].append(_Listener(handler, once))

    # ── Emission ───────────────────────────────────────────

    def emit(self, event: EventRecord | PuppetEvent | str | type[EventRecord], *args: Any, **kwargs: Any) -> bool:
        """Deliver an event to its current subscribers in registration order.

        Accepts a payload model, or a kind followed by the payload arguments.
        Returns True if at least one subscriber existed.
        """
        record = self._to_record(event, args, kwargs)
        listeners = self._listeners[record.kind]
        snapshot = list(listeners)
        for listener in snapshot:
            if listener.once and listener in listeners:
                listeners.remove(listener)
        for tap in self._taps[record.kind]:
            self._deliver(record, tap)
        for listener in snapshot:
            self._deliver(record, listener.handler)
        return bool(snapshot)

    def _to_record(self, event: Any, args: tuple, kwargs: dict) -> EventRecord:
        if isinstance(event, EventRecord):
            if args or kwargs:
                raise EventPayloadError("Pass either a payload model or payload arguments, not both")
            if EVENT_MODELS.get(getattr(type(event), "kind", None)) is not type(event):
                raise UnknownEventError(f"{type(event).__name__} is not a puppet event payload")
            return event
        return build_record(resolve_kind(event), *args, **kwargs)

    def _deliver(self, record: EventRecord, handler: Handler) -> None:
        try:
            result = handler(record)
        except Exception as exc:
            self._report(record, handler, exc)
            return

        if not inspect.isawaitable(result):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            self._report(record, handler, PuppetError("Coroutine handler needs a running event loop"))
            return
        task = asyncio.ensure_future(result, loop=loop)
        self._tasks.add(task)
        task.add_done_callback(partial(self._on_task_done, record, handler))

    def _on_task_done(self, record: EventRecord, handler: Handler, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._report(record, handler, exc)

    def _report(self, record: EventRecord, handler: Handler, exc: BaseException) -> None:
        logger.error(
            "%s: %r handler %s failed",
            self.name,
            record.kind.value,
            getattr(handler, "__qualname__", repr(handler)),
            exc_info=exc,
        )
        # Failures inside error handlers stop here
        if record.kind is not PuppetEvent.ERROR:
            self.emit(ErrorEvent(error=exc))
