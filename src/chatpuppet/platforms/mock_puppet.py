"""In-memory puppet backend.

Keeps contacts, rooms and sent messages in dictionaries and lists. The
``receive``/``scan``/``heartbeat``/``friend_request_receive`` helpers stand in
for inbound network traffic and emit the matching events.
"""

import itertools
import logging
import secrets
from collections.abc import Mapping
from typing import Any

from chatpuppet.errors import PuppetNotLoggedInError
from chatpuppet.models.entities import (
    Contact,
    ContactQueryFilter,
    FriendRequest,
    Message,
    Room,
    RoomQueryFilter,
)
from chatpuppet.models.events import (
    FriendEvent,
    HeartbeatEvent,
    MessageEvent,
    RoomJoinEvent,
    RoomLeaveEvent,
    RoomTopicEvent,
    ScanEvent,
)
from chatpuppet.models.options import PuppetClasses, PuppetOptions
from chatpuppet.platforms.base import Puppet

logger = logging.getLogger(__name__)

MIN_ROOM_MEMBERS = 2


class MockContact(Contact):
    def __init__(self, contact_id: str, name: str = "") -> None:
        super().__init__(contact_id)
        self._name = name or contact_id

    def name(self) -> str:
        return self._name


class MockRoom(Room):
    def __init__(self, room_id: str, members: list[Contact], topic: str = "") -> None:
        super().__init__(room_id)
        self.members = list(members)
        self.topic = topic

    def member_list(self) -> list[Contact]:
        return list(self.members)


class MockMessage(Message):
    def __init__(
        self,
        message_id: str,
        text: str,
        from_contact: Contact | None = None,
        to_contact: Contact | None = None,
        room: Room | None = None,
    ) -> None:
        super().__init__(message_id)
        self._text = text
        self._from = from_contact
        self._to = to_contact
        self._room = room

    def text(self) -> str:
        return self._text

    def from_contact(self) -> Contact | None:
        return self._from

    def to_contact(self) -> Contact | None:
        return self._to

    def room(self) -> Room | None:
        return self._room


class MockFriendRequest(FriendRequest):
    def __init__(self, contact: Contact, hello: str = "", ticket: str = "") -> None:
        self._contact = contact
        self._hello = hello
        self._ticket = ticket or secrets.token_hex(8)

    def contact(self) -> Contact:
        return self._contact

    def hello(self) -> str:
        return self._hello

    @property
    def ticket(self) -> str:
        return self._ticket


MOCK_CLASSES = PuppetClasses(
    contact=MockContact,
    friend_request=MockFriendRequest,
    message=MockMessage,
    room=MockRoom,
)


class MockPuppet(Puppet):
    def __init__(
        self,
        options: PuppetOptions | None = None,
        classes: PuppetClasses | Mapping[str, type] | None = None,
        user: Contact | None = None,
    ) -> None:
        if classes is None:
            classes = MOCK_CLASSES
        super().__init__(options or PuppetOptions(name="MockPuppet"), classes)
        self._account = user or self.classes.contact("mock-self", "Mock Self")
        self.contacts: dict[str, Contact] = {self._account.id: self._account}
        self.rooms: dict[str, Room] = {}
        self.aliases: dict[str, str] = {}
        self.outbox: list[Message] = []
        self.sent_friend_requests: list[tuple[Contact, str | None]] = []
        self.pending_friend_requests: dict[str, FriendRequest] = {}
        self._ids = itertools.count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    # ── Session ────────────────────────────────────────────

    def logonoff(self) -> bool:
        return self.user is not None

    def self_contact(self) -> Contact:
        if self.user is None:
            raise PuppetNotLoggedInError(f"{self.name}: nobody is logged in")
        return self.user

    async def _start(self) -> None:
        self._mark_login(self._account)

    async def _stop(self) -> None:
        self._mark_logout()

    async def _logout(self) -> None:
        self._mark_logout()

    # ── Messaging ──────────────────────────────────────────

    async def _say(self, text: str) -> None:
        me = self.self_contact()
        self.outbox.append(self.classes.message(self._next_id("msg"), text, me, me))

    async def _send(self, message: Message) -> None:
        self.outbox.append(message)

    async def _forward(self, message: Message, target: Contact | Room) -> None:
        if isinstance(target, Room):
            copy = self.classes.message(self._next_id("msg"), message.text(), self.self_contact(), room=target)
        else:
            copy = self.classes.message(self._next_id("msg"), message.text(), self.self_contact(), target)
        self.outbox.append(copy)

    # ── Friend requests ────────────────────────────────────

    async def _friend_request_send(self, contact: Contact, hello: str | None) -> None:
        self.sent_friend_requests.append((contact, hello))

    async def _friend_request_accept(self, contact: Contact, ticket: str) -> None:
        request = self.pending_friend_requests.get(ticket)
        if request is None or request.contact() != contact:
            raise LookupError(f"No pending friend request from {contact!r} with ticket {ticket!r}")
        del self.pending_friend_requests[ticket]
        self.contacts[contact.id] = contact
        self.emit(FriendEvent(contact=contact))

    # ── Rooms ──────────────────────────────────────────────

    async def _room_create(self, contacts: list[Contact], topic: str | None) -> Room:
        if len(contacts) < MIN_ROOM_MEMBERS:
            raise ValueError(f"A room needs at least {MIN_ROOM_MEMBERS} contacts, got {len(contacts)}")
        room = self.classes.room(self._next_id("room"), [self.self_contact(), *contacts], topic or "")
        self.rooms[room.id] = room
        logger.debug("%s: created %r with %d members", self.name, room, len(contacts) + 1)
        return room

    async def _room_add(self, room: Room, contact: Contact) -> None:
        known = self._room(room)
        if contact not in known.members:
            known.members.append(contact)
        self.emit(RoomJoinEvent(room=known, invitees=[contact], inviter=self.self_contact()))

    async def _room_del(self, room: Room, contact: Contact) -> None:
        known = self._room(room)
        if contact not in known.members:
            raise LookupError(f"{contact!r} is not in {room!r}")
        known.members.remove(contact)
        self.emit(RoomLeaveEvent(room=known, leavers=[contact]))

    async def _room_topic_query(self, room: Room) -> str:
        return self._room(room).topic

    async def _room_topic_update(self, room: Room, topic: str) -> None:
        known = self._room(room)
        event = RoomTopicEvent(room=known, topic=topic, old_topic=known.topic, changer=self.self_contact())
        known.topic = topic
        self.emit(event)

    async def _room_find_all(self, query: RoomQueryFilter) -> list[Room]:
        return [room for room in self.rooms.values() if query.matches(room.topic)]

    def _room(self, room: Room) -> MockRoom:
        try:
            return self.rooms[room.id]
        except KeyError:
            raise LookupError(f"Unknown room {room!r}") from None

    # ── Contacts ───────────────────────────────────────────

    async def _contact_alias_query(self, contact: Contact) -> str | None:
        return self.aliases.get(contact.id)

    async def _contact_alias_update(self, contact: Contact, alias: str | None) -> None:
        if alias is None:
            self.aliases.pop(contact.id, None)
        else:
            self.aliases[contact.id] = alias

    async def _contact_find_all(self, query: ContactQueryFilter) -> list[Contact]:
        return [
            contact
            for contact in self.contacts.values()
            if query.matches(contact.name(), self.aliases.get(contact.id))
        ]

    async def _ding(self, data: Any) -> str:
        return "dong"

    # ── Simulated inbound traffic ──────────────────────────

    def add_contact(self, contact: Contact) -> None:
        self.contacts[contact.id] = contact

    def receive(self, text: str, sender: Contact, room: Room | None = None) -> Message:
        self.state.require_on("receive")
        message = self.classes.message(self._next_id("msg"), text, sender, None if room else self.user, room)
        self.heartbeat({"message": message.id})
        self.emit(MessageEvent(message=message))
        return message

    def friend_request_receive(self, contact: Contact, hello: str = "") -> FriendRequest:
        self.state.require_on("friend_request_receive")
        request = self.classes.friend_request(contact, hello)
        self.pending_friend_requests[request.ticket] = request
        self.emit(FriendEvent(contact=contact, request=request))
        return request

    def scan(self, url: str, code: int = 0, avatar: str = "") -> None:
        self.emit(ScanEvent(avatar=avatar, url=url, code=code))

    def heartbeat(self, data: Any = None) -> None:
        self.emit(HeartbeatEvent(data=data))
