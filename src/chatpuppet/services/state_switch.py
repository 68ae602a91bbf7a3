"""Puppet lifecycle state machine: OFF -> PENDING -> ON -> PENDING -> OFF."""

import asyncio
import logging
from enum import Enum

from chatpuppet.errors import PuppetNotReadyError, StateTransitionError

logger = logging.getLogger(__name__)


class PuppetState(str, Enum):
    OFF = "off"
    PENDING = "pending"
    ON = "on"


class StateSwitch:
    """Explicit, non-skipping lifecycle transitions.

    PENDING remembers where it is heading (``target``), so a stop request can
    never be confirmed as a start. The switch never retries; a backend that
    fails while PENDING calls ``revert()``.
    """

    def __init__(self, name: str = "Puppet") -> None:
        self.name = name
        self._state = PuppetState.OFF
        self._target: PuppetState | None = None
        self._waiters: list[tuple[PuppetState, asyncio.Future]] = []

    @property
    def state(self) -> PuppetState:
        return self._state

    @property
    def target(self) -> PuppetState | None:
        """Destination of the current PENDING phase, None when settled."""
        return self._target

    def is_on(self) -> bool:
        return self._state is PuppetState.ON

    def is_off(self) -> bool:
        return self._state is PuppetState.OFF

    def is_pending(self) -> bool:
        return self._state is PuppetState.PENDING

    # ── Transitions ────────────────────────────────────────

    def request_on(self) -> None:
        self._expect(PuppetState.OFF, None, "request_on")
        self._set(PuppetState.PENDING, target=PuppetState.ON)

    def confirm_on(self) -> None:
        self._expect(PuppetState.PENDING, PuppetState.ON, "confirm_on")
        self._set(PuppetState.ON, target=None)

    def request_off(self) -> None:
        self._expect(PuppetState.ON, None, "request_off")
        self._set(PuppetState.PENDING, target=PuppetState.OFF)

    def confirm_off(self) -> None:
        self._expect(PuppetState.PENDING, PuppetState.OFF, "confirm_off")
        self._set(PuppetState.OFF, target=None)

    def revert(self) -> None:
        """Abandon a PENDING transition in either direction and settle OFF."""
        if self._state is not PuppetState.PENDING:
            raise StateTransitionError(f"{self.name}: revert() needs PENDING, state is {self._state.value}")
        logger.warning("%s: reverting %s transition to off", self.name, self._target.value)
        self._set(PuppetState.OFF, target=None)

    def require_on(self, operation: str) -> None:
        if self._state is not PuppetState.ON:
            raise PuppetNotReadyError(operation, self._state.value)

    async def ready(self, state: PuppetState = PuppetState.ON) -> None:
        """Wait until the switch settles in ``state``."""
        if self._state is state:
            return
        future = asyncio.get_running_loop().create_future()
        self._waiters.append((state, future))
        await future

    # ── Internals ──────────────────────────────────────────

    def _expect(self, state: PuppetState, target: PuppetState | None, call: str) -> None:
        if self._state is not state or self._target is not target:
            current = self._state.value
            if self._target is not None:
                current = f"{current} (to {self._target.value})"
            raise StateTransitionError(f"{self.name}: {call}() not allowed in state {current}")

    def _set(self, state: PuppetState, target: PuppetState | None) -> None:
        logger.debug("%s: state %s -> %s", self.name, self._state.value, state.value)
        self._state = state
        self._target = target

        remaining = []
        for wanted, future in self._waiters:
            if future.done():
                continue
            if wanted is state:
                future.set_result(None)
            else:
                remaining.append((wanted, future))
        self._waiters = remaining

    def __repr__(self) -> str:
        return f"StateSwitch<{self.name}: {self._state.value}>"
