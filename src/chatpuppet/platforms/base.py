"""Base puppet interface.

A ``Puppet`` is the contract every chat backend implements. Public coroutine
methods check the lifecycle state and then delegate to the abstract
``_``-prefixed hooks a backend overrides, so no hook ever runs while the
puppet is not ON.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, TypeVar, overload

from chatpuppet.errors import PuppetError, PuppetOperationError, PuppetStateError
from chatpuppet.models.entities import (
    Contact,
    ContactQueryFilter,
    Message,
    Room,
    RoomQueryFilter,
)
from chatpuppet.models.events import (
    ErrorEvent,
    EventRecord,
    HeartbeatEvent,
    LoginEvent,
    LogoutEvent,
    PuppetEvent,
    WatchdogEvent,
    WatchdogFood,
)
from chatpuppet.models.options import PuppetClasses, PuppetOptions
from chatpuppet.scheduler.watchdog import Watchdog
from chatpuppet.services.event_bus import EventBus
from chatpuppet.services.state_switch import StateSwitch

logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E", bound=EventRecord)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


class Puppet(ABC):
    """Interface that all chat backends must implement."""

    def __init__(self, options: PuppetOptions, classes: PuppetClasses | Mapping[str, type]) -> None:
        # Validate before anything else exists
        self.classes = PuppetClasses.coerce(classes)
        self.options = options
        self.name = options.name

        self.user: Contact | None = None
        self.state = StateSwitch(self.name)
        self.events = EventBus(self.name)
        self.watchdog = Watchdog(
            timeout=options.watchdog_timeout,
            name=self.name,
            on_timeout=self._on_watchdog_timeout,
        )
        self.events.tap(HeartbeatEvent, self._on_heartbeat)

    # ── Events ─────────────────────────────────────────────

    @overload
    def on(self, event: type[E], handler: Callable[[E], Any]) -> "Puppet": ...

    @overload
    def on(self, event: PuppetEvent | str, handler: Callable[[Any], Any]) -> "Puppet": ...

    def on(self, event, handler) -> "Puppet":
        self.events.on(event, handler)
        return self

    def emit(self, event: EventRecord | PuppetEvent | str | type[EventRecord], *args: Any, **kwargs: Any) -> bool:
        return self.events.emit(event, *args, **kwargs)

    def _on_heartbeat(self, event: HeartbeatEvent) -> None:
        self.watchdog.feed(WatchdogFood(data=event.data))

    def _on_watchdog_timeout(self, event: WatchdogEvent) -> None:
        self.emit(event)

    def _mark_login(self, user: Contact) -> None:
        self.user = user
        logger.info("%s: logged in as %r", self.name, user)
        self.emit(LoginEvent(user=user))

    def _mark_logout(self) -> None:
        user, self.user = self.user, None
        if user is None:
            return
        logger.info("%s: logged out %r", self.name, user)
        self.emit(LogoutEvent(user=user))

    # ── Lifecycle ──────────────────────────────────────────

    async def start(self) -> None:
        if self.state.is_on():
            logger.debug("%s: start() while already on", self.name)
            return
        if self.state.is_pending():
            raise PuppetStateError(f"{self.name}: start() while {self.state.target.value} is pending")

        self.state.request_on()
        try:
            await self._start()
        except Exception as exc:
            self.state.revert()
            self.emit(ErrorEvent(error=exc))
            if isinstance(exc, PuppetError):
                raise
            raise PuppetOperationError("start") from exc
        self.watchdog.start()
        self.state.confirm_on()
        logger.info("%s: started", self.name)

    async def stop(self) -> None:
        if self.state.is_off():
            logger.debug("%s: stop() while already off", self.name)
            return
        if self.state.is_pending():
            raise PuppetStateError(f"{self.name}: stop() while {self.state.target.value} is pending")

        self.state.request_off()
        self.watchdog.stop()
        try:
            await self._stop()
        except Exception as exc:
            self.emit(ErrorEvent(error=exc))
            if isinstance(exc, PuppetError):
                raise
            raise PuppetOperationError("stop") from exc
        finally:
            self.state.confirm_off()
        logger.info("%s: stopped", self.name)

    # ── Session ────────────────────────────────────────────

    @abstractmethod
    def logonoff(self) -> bool:
        """Whether a contact is currently logged in."""

    @abstractmethod
    def self_contact(self) -> Contact:
        """The logged-in contact. Raises ``PuppetNotLoggedInError`` otherwise."""

    async def logout(self) -> None:
        await self._guard("logout", self._logout)

    # ── Messaging ──────────────────────────────────────────

    async def say(self, text: str) -> None:
        """Send ``text`` to the logged-in contact's own chat."""
        await self._guard("say", self._say, text)

    async def send(self, message: Message) -> None:
        await self._guard("send", self._send, message)

    async def forward(self, message: Message, target: Contact | Room) -> None:
        await self._guard("forward", self._forward, message, target)

    # ── Friend requests ────────────────────────────────────

    async def friend_request_send(self, contact: Contact, hello: str | None = None) -> None:
        await self._guard("friend_request_send", self._friend_request_send, contact, hello)

    async def friend_request_accept(self, contact: Contact, ticket: str) -> None:
        await self._guard("friend_request_accept", self._friend_request_accept, contact, ticket)

    # ── Rooms ──────────────────────────────────────────────

    async def room_create(self, contacts: list[Contact], topic: str | None = None) -> Room:
        return await self._guard("room_create", self._room_create, contacts, topic)

    async def room_add(self, room: Room, contact: Contact) -> None:
        await self._guard("room_add", self._room_add, room, contact)

    async def room_del(self, room: Room, contact: Contact) -> None:
        await self._guard("room_del", self._room_del, room, contact)

    async def room_topic(self, room: Room, topic: str = UNSET) -> str | None:
        """Return the topic when ``topic`` is omitted, otherwise change it and return None."""
        if topic is UNSET:
            return await self._guard("room_topic", self._room_topic_query, room)
        await self._guard("room_topic", self._room_topic_update, room, topic)
        return None

    async def room_find_all(self, query: RoomQueryFilter | None = None) -> list[Room]:
        return await self._guard("room_find_all", self._room_find_all, query or RoomQueryFilter())

    # ── Contacts ───────────────────────────────────────────

    async def contact_alias(self, contact: Contact, alias: str | None = UNSET) -> str | None:
        """Return the alias when ``alias`` is omitted, otherwise set it (None clears)."""
        if alias is UNSET:
            return await self._guard("contact_alias", self._contact_alias_query, contact)
        await self._guard("contact_alias", self._contact_alias_update, contact, alias)
        return None

    async def contact_find_all(self, query: ContactQueryFilter | None = None) -> list[Contact]:
        return await self._guard("contact_find_all", self._contact_find_all, query or ContactQueryFilter())

    # ── Misc ───────────────────────────────────────────────

    async def ding(self, data: Any = None) -> str:
        """Round-trip liveness check. Feeds the watchdog on success."""
        ack = await self._guard("ding", self._ding, data)
        self.watchdog.feed(WatchdogFood(data=data))
        return ack

    async def _guard(self, operation: str, hook: Callable[..., Awaitable[T]], *args: Any) -> T:
        self.state.require_on(operation)
        try:
            return await hook(*args)
        except PuppetError:
            raise
        except Exception as exc:
            raise PuppetOperationError(operation, f"{operation}() failed: {exc}") from exc

    # ── Backend hooks ──────────────────────────────────────

    @abstractmethod
    async def _start(self) -> None: ...

    @abstractmethod
    async def _stop(self) -> None: ...

    @abstractmethod
    async def _logout(self) -> None: ...

    @abstractmethod
    async def _say(self, text: str) -> None: ...

    @abstractmethod
    async def _send(self, message: Message) -> None: ...

    @abstractmethod
    async def _forward(self, message: Message, target: Contact | Room) -> None: ...

    @abstractmethod
    async def _friend_request_send(self, contact: Contact, hello: str | None) -> None: ...

    @abstractmethod
    async def _friend_request_accept(self, contact: Contact, ticket: str) -> None: ...

    @abstractmethod
    async def _room_create(self, contacts: list[Contact], topic: str | None) -> Room: ...

    @abstractmethod
    async def _room_add(self, room: Room, contact: Contact) -> None: ...

    @abstractmethod
    async def _room_del(self, room: Room, contact: Contact) -> None: ...

    @abstractmethod
    async def _room_topic_query(self, room: Room) -> str: ...

    @abstractmethod
    async def _room_topic_update(self, room: Room, topic: str) -> None: ...

    @abstractmethod
    async def _room_find_all(self, query: RoomQueryFilter) -> list[Room]: ...

    @abstractmethod
    async def _contact_alias_query(self, contact: Contact) -> str | None: ...

    @abstractmethod
    async def _contact_alias_update(self, contact: Contact, alias: str | None) -> None: ...

    @abstractmethod
    async def _contact_find_all(self, query: ContactQueryFilter) -> list[Contact]: ...

    @abstractmethod
    async def _ding(self, data: Any) -> str: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}<{self.name}: {self.state.state.value}>"
