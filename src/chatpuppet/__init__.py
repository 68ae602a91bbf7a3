from chatpuppet.errors import (
    EventPayloadError,
    PuppetConfigError,
    PuppetError,
    PuppetNotLoggedInError,
    PuppetNotReadyError,
    PuppetOperationError,
    PuppetStateError,
    StateTransitionError,
    UnknownEventError,
)
from chatpuppet.platforms.base import UNSET, Puppet
from chatpuppet.scheduler.watchdog import Watchdog
from chatpuppet.services.event_bus import EventBus
from chatpuppet.services.state_switch import PuppetState, StateSwitch

__all__ = [
    "EventPayloadError",
    "PuppetConfigError",
    "PuppetError",
    "PuppetNotLoggedInError",
    "PuppetNotReadyError",
    "PuppetOperationError",
    "PuppetStateError",
    "StateTransitionError",
    "UnknownEventError",
    "UNSET",
    "Puppet",
    "Watchdog",
    "EventBus",
    "PuppetState",
    "StateSwitch",
]
