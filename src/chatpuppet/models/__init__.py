from chatpuppet.models.entities import (
    Contact,
    ContactQueryFilter,
    FriendRequest,
    Message,
    Room,
    RoomQueryFilter,
)
from chatpuppet.models.events import (
    EVENT_MODELS,
    ErrorEvent,
    EventRecord,
    FriendEvent,
    HeartbeatEvent,
    LoginEvent,
    LogoutEvent,
    MessageEvent,
    PuppetEvent,
    RoomJoinEvent,
    RoomLeaveEvent,
    RoomTopicEvent,
    ScanEvent,
    WatchdogEvent,
    WatchdogFood,
)
from chatpuppet.models.options import PuppetClasses, PuppetOptions

__all__ = [
    "Contact",
    "ContactQueryFilter",
    "FriendRequest",
    "Message",
    "Room",
    "RoomQueryFilter",
    "EVENT_MODELS",
    "ErrorEvent",
    "EventRecord",
    "FriendEvent",
    "HeartbeatEvent",
    "LoginEvent",
    "LogoutEvent",
    "MessageEvent",
    "PuppetEvent",
    "RoomJoinEvent",
    "RoomLeaveEvent",
    "RoomTopicEvent",
    "ScanEvent",
    "WatchdogEvent",
    "WatchdogFood",
    "PuppetClasses",
    "PuppetOptions",
]
