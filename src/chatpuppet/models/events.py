"""Closed puppet event vocabulary.

Every event kind has exactly one immutable payload model. Kinds outside
``PuppetEvent`` cannot be registered or emitted.
"""

from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from chatpuppet.errors import EventPayloadError, UnknownEventError
from chatpuppet.models.entities import Contact, FriendRequest, Message, Room


class PuppetEvent(str, Enum):
    ERROR = "error"
    FRIEND = "friend"
    HEARTBEAT = "heartbeat"
    LOGIN = "login"
    LOGOUT = "logout"
    MESSAGE = "message"
    ROOM_JOIN = "room-join"
    ROOM_LEAVE = "room-leave"
    ROOM_TOPIC = "room-topic"
    SCAN = "scan"
    WATCHDOG = "watchdog"


class EventRecord(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ClassVar[PuppetEvent]


class ErrorEvent(EventRecord):
    kind = PuppetEvent.ERROR

    error: BaseException


class FriendEvent(EventRecord):
    kind = PuppetEvent.FRIEND

    contact: Contact
    request: FriendRequest | None = None


class HeartbeatEvent(EventRecord):
    kind = PuppetEvent.HEARTBEAT

    data: Any = None


class LoginEvent(EventRecord):
    kind = PuppetEvent.LOGIN

    user: Contact


class LogoutEvent(EventRecord):
    kind = PuppetEvent.LOGOUT

    user: Contact | str


class MessageEvent(EventRecord):
    kind = PuppetEvent.MESSAGE

    message: Message


class RoomJoinEvent(EventRecord):
    kind = PuppetEvent.ROOM_JOIN

    room: Room
    invitees: list[Contact]
    inviter: Contact


class RoomLeaveEvent(EventRecord):
    kind = PuppetEvent.ROOM_LEAVE

    room: Room
    leavers: list[Contact]


class RoomTopicEvent(EventRecord):
    kind = PuppetEvent.ROOM_TOPIC

    room: Room
    topic: str
    old_topic: str
    changer: Contact


class ScanEvent(EventRecord):
    """Login QR code: image data URL, scan URL and backend status code."""

    kind = PuppetEvent.SCAN

    avatar: str = ""
    url: str
    code: int


class WatchdogFood(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: Any = None
    timeout: float | None = None


class WatchdogEvent(EventRecord):
    kind = PuppetEvent.WATCHDOG

    food: WatchdogFood = Field(default_factory=WatchdogFood)
    timeout: float
    elapsed: float


EVENT_MODELS: dict[PuppetEvent, type[EventRecord]] = {
    model.kind: model
    for model in (
        ErrorEvent,
        FriendEvent,
        HeartbeatEvent,
        LoginEvent,
        LogoutEvent,
        MessageEvent,
        RoomJoinEvent,
        RoomLeaveEvent,
        RoomTopicEvent,
        ScanEvent,
        WatchdogEvent,
    )
}


def resolve_kind(event: "PuppetEvent | str | type[EventRecord]") -> PuppetEvent:
    """Map an enum member, its string value or a payload class to its kind."""
    if isinstance(event, type):
        if issubclass(event, EventRecord) and EVENT_MODELS.get(getattr(event, "kind", None)) is event:
            return event.kind
        raise UnknownEventError(f"{event.__name__} is not a puppet event payload")
    try:
        return PuppetEvent(event)
    except ValueError:
        raise UnknownEventError(f"Unknown puppet event: {event!r}") from None


def build_record(kind: PuppetEvent, *args: Any, **kwargs: Any) -> EventRecord:
    """Build the payload of ``kind`` from positional and keyword arguments.

    Positional arguments follow field declaration order, so
    ``build_record(PuppetEvent.ROOM_LEAVE, room, [contact])`` works like the
    keyword form.
    """
    model = EVENT_MODELS[kind]
    fields = list(model.model_fields)
    if len(args) > len(fields):
        raise EventPayloadError(
            f"{kind.value!r} takes at most {len(fields)} arguments, got {len(args)}"
        )
    for name in fields[: len(args)]:
        if name in kwargs:
            raise EventPayloadError(f"{kind.value!r} got multiple values for {name!r}")
    try:
        return model(**dict(zip(fields, args)), **kwargs)
    except ValidationError as exc:
        raise EventPayloadError(f"Invalid {kind.value!r} payload: {exc}") from exc
