"""Base entity contracts every backend's concrete classes must satisfy."""

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict


class _Entity(ABC):
    """Entities are identified by backend id; equal ids mean the same entity."""

    def __init__(self, entity_id: str) -> None:
        self._id = entity_id

    @property
    def id(self) -> str:
        return self._id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _Entity):
            return NotImplemented
        return type(self) is type(other) and self._id == other._id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._id))

    def __repr__(self) -> str:
        return f"{type(self).__name__}<{self._id}>"


class Contact(_Entity):
    @abstractmethod
    def name(self) -> str:
        """Display name as set by the contact."""


class Room(_Entity):
    @abstractmethod
    def member_list(self) -> list[Contact]:
        """Current members, in backend order."""


class Message(_Entity):
    @abstractmethod
    def text(self) -> str: ...

    @abstractmethod
    def from_contact(self) -> Contact | None:
        """Sender, or None for system messages."""

    @abstractmethod
    def to_contact(self) -> Contact | None: ...

    @abstractmethod
    def room(self) -> Room | None:
        """Room the message was posted in, or None for a direct message."""


class FriendRequest(ABC):
    @abstractmethod
    def contact(self) -> Contact: ...

    @abstractmethod
    def hello(self) -> str: ...

    @property
    @abstractmethod
    def ticket(self) -> str:
        """Opaque token the backend needs to accept the request."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}<{self.contact()!r}>"


# ── Query filters ──────────────────────────────────────────


class ContactQueryFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str | None = None
    alias: str | None = None

    def matches(self, name: str, alias: str | None) -> bool:
        if self.name is not None and self.name != name:
            return False
        if self.alias is not None and self.alias != alias:
            return False
        return True


class RoomQueryFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic: str | None = None

    def matches(self, topic: str) -> bool:
        return self.topic is None or self.topic == topic
