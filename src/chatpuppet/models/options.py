"""Construction-time configuration of a puppet."""

import inspect
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from chatpuppet.errors import PuppetConfigError
from chatpuppet.models.entities import Contact, FriendRequest, Message, Room


@dataclass(frozen=True)
class PuppetClasses:
    """Concrete entity classes supplied by a backend.

    Each class must subclass its base contract and implement every abstract
    member. A failing binding raises ``PuppetConfigError`` naming the kind.
    """

    contact: type[Contact]
    friend_request: type[FriendRequest]
    message: type[Message]
    room: type[Room]

    CONTRACTS = {
        "contact": Contact,
        "friend_request": FriendRequest,
        "message": Message,
        "room": Room,
    }

    def __post_init__(self) -> None:
        for field in fields(self):
            _check_binding(field.name, getattr(self, field.name))

    @classmethod
    def coerce(cls, classes: "PuppetClasses | Mapping[str, Any]") -> "PuppetClasses":
        if isinstance(classes, cls):
            return classes
        if not isinstance(classes, Mapping):
            raise PuppetConfigError("classes", f"expected PuppetClasses or a mapping, got {type(classes).__name__}")
        missing = [kind for kind in cls.CONTRACTS if kind not in classes]
        if missing:
            raise PuppetConfigError(missing[0], "no class bound")
        unknown = sorted(set(classes) - set(cls.CONTRACTS))
        if unknown:
            raise PuppetConfigError(unknown[0], "not an entity kind")
        return cls(**classes)


def _check_binding(kind: str, bound: Any) -> None:
    contract = PuppetClasses.CONTRACTS[kind]
    if not isinstance(bound, type):
        raise PuppetConfigError(kind, f"{bound!r} is not a class")
    if not issubclass(bound, contract):
        raise PuppetConfigError(kind, f"{bound.__name__} does not subclass {contract.__name__}")
    if inspect.isabstract(bound):
        missing = ", ".join(sorted(bound.__abstractmethods__))
        raise PuppetConfigError(kind, f"{bound.__name__} does not implement {missing}")


@dataclass(frozen=True)
class PuppetOptions:
    """Profile and orchestrator references are opaque to the puppet layer."""

    profile: Any = None
    orchestrator: Any = None
    watchdog_timeout: float | None = None
    name: str = "Puppet"

    def __post_init__(self) -> None:
        if self.watchdog_timeout is not None and self.watchdog_timeout <= 0:
            raise ValueError(f"watchdog_timeout must be positive, got {self.watchdog_timeout}")
