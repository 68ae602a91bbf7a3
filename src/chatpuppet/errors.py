"""Puppet error taxonomy.

Configuration errors are fatal at construction. State errors are reported to
the caller and recoverable. Operation errors wrap backend failures. Liveness
failures are never raised; they travel as ``watchdog`` events.
"""


class PuppetError(Exception):
    """Base class for every error raised by the puppet layer."""


class PuppetConfigError(PuppetError):
    """An entity class binding does not satisfy its base contract."""

    def __init__(self, kind: str, reason: str) -> None:
        super().__init__(f"Puppet class binding for {kind!r} is invalid: {reason}")
        self.kind = kind
        self.reason = reason


class PuppetStateError(PuppetError):
    """An operation was invoked in a state that does not allow it."""


class PuppetNotReadyError(PuppetStateError):
    def __init__(self, operation: str, state: object) -> None:
        super().__init__(f"{operation}() requires state ON, current state is {state}")
        self.operation = operation
        self.state = state


class PuppetNotLoggedInError(PuppetStateError):
    """No contact is logged in."""


class StateTransitionError(PuppetStateError):
    """A state switch call would skip or reverse a lifecycle step."""


class PuppetOperationError(PuppetError):
    """A backend failed to complete an operation."""

    def __init__(self, operation: str, message: str = "") -> None:
        super().__init__(message or f"{operation}() failed")
        self.operation = operation


class UnknownEventError(PuppetError, ValueError):
    """Event kind outside the closed puppet vocabulary."""


class EventPayloadError(PuppetError, TypeError):
    """Event arguments do not match the payload shape of their kind."""
